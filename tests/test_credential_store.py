"""
暗号化認証情報ストアのテスト
"""

import json
import os
import stat
import unittest
from pathlib import Path
import tempfile
import shutil
from unittest.mock import patch

from radiko_stream.auth import Credentials
from radiko_stream.credential_store import CredentialStore
from radiko_stream.error_handler import ConfigurationError


class TestCredentialStore(unittest.TestCase):
    """CredentialStore テスト"""

    def setUp(self):
        self.temp_dir = tempfile.mkdtemp()
        self.credentials_path = Path(self.temp_dir) / "credentials.json"
        self.key_path = Path(self.temp_dir) / "encryption.key"
        self.store = CredentialStore(self.credentials_path, self.key_path)
        self.credentials = Credentials.create("user@example.com", "secret-pass")

    def tearDown(self):
        shutil.rmtree(self.temp_dir, ignore_errors=True)

    def test_01_未保存ならNone(self):
        self.assertFalse(self.store.exists())
        self.assertIsNone(self.store.load())

    def test_02_保存と読み込み(self):
        self.store.save(self.credentials)
        loaded = self.store.load()

        self.assertEqual(loaded.mail.reveal(), "user@example.com")
        self.assertEqual(loaded.password.reveal(), "secret-pass")

    def test_03_ファイルに平文を残さない(self):
        self.store.save(self.credentials)
        content = self.credentials_path.read_text(encoding='utf-8')

        self.assertNotIn("user@example.com", content)
        self.assertNotIn("secret-pass", content)
        self.assertIn("saved_at", json.loads(content))

    @unittest.skipIf(os.name == 'nt', "POSIXパーミッションのみ")
    def test_04_所有者のみ読み書き可能(self):
        self.store.save(self.credentials)
        for path in (self.credentials_path, self.key_path):
            with self.subTest(path=path.name):
                self.assertEqual(stat.S_IMODE(path.stat().st_mode), 0o600)

    def test_05_別のキーでは復号できない(self):
        self.store.save(self.credentials)
        self.key_path.unlink()
        CredentialStore(Path(self.temp_dir) / "other.json", self.key_path).save(self.credentials)

        with self.assertRaises(ConfigurationError):
            self.store.load()

    def test_06_キーなし(self):
        self.store.save(self.credentials)
        self.key_path.unlink()
        with self.assertRaises(ConfigurationError):
            self.store.load()

    def test_07_削除(self):
        self.store.save(self.credentials)
        self.assertTrue(self.store.delete())
        self.assertFalse(self.store.exists())
        self.assertFalse(self.store.delete())

    @unittest.skipIf(os.name == 'nt', "POSIXパーミッションのみ")
    def test_08_作成時点から所有者のみ(self):
        with patch('radiko_stream.credential_store.os.open', wraps=os.open) as mock_open:
            self.store.save(self.credentials)

        opened = [call.args for call in mock_open.call_args_list]
        self.assertEqual({Path(args[0]).name for args in opened},
                         {"encryption.key", "credentials.tmp"})
        for path, flags, mode in opened:
            with self.subTest(path=Path(path).name):
                self.assertEqual(mode, 0o600)
                self.assertTrue(flags & os.O_CREAT)

    @unittest.skipIf(os.name == 'nt', "POSIXパーミッションのみ")
    def test_09_umaskに関係なく0600(self):
        previous = os.umask(0)
        try:
            self.store.save(self.credentials)
        finally:
            os.umask(previous)

        for path in (self.credentials_path, self.key_path):
            with self.subTest(path=path.name):
                self.assertEqual(stat.S_IMODE(path.stat().st_mode), 0o600)


if __name__ == '__main__':
    unittest.main()
