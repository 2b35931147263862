"""
認証情報保存モジュール

エリアフリー用の会員認証情報をFernetで暗号化してファイルに保存します。
暗号化キーと認証情報ファイルはどちらも所有者のみ読み書き可能（0600）にする。
"""

import json
import os
import time
from pathlib import Path
from typing import Optional, Union

from cryptography.fernet import Fernet, InvalidToken

from .auth import Credentials
from .error_handler import ConfigurationError
from .utils.base import LoggerMixin


class CredentialStore(LoggerMixin):
    """暗号化認証情報ストア"""

    def __init__(self, credentials_path: Union[str, Path] = "credentials.json",
                 key_path: Union[str, Path] = "encryption.key"):
        super().__init__()
        self.credentials_path = Path(credentials_path)
        self.key_path = Path(key_path)

    def _get_or_create_key(self) -> bytes:
        """暗号化キーを取得または作成"""
        try:
            if self.key_path.exists():
                return self.key_path.read_bytes()

            key = Fernet.generate_key()
            self.key_path.parent.mkdir(parents=True, exist_ok=True)
            self._write_private(self.key_path, key)
            self.logger.info(f"暗号化キーを作成しました: {self.key_path}")
            return key
        except OSError as e:
            self.logger.error(f"暗号化キーの処理でエラー: {e}")
            raise ConfigurationError(f"暗号化キーを準備できません: {self.key_path}: {e}") from e

    @staticmethod
    def _write_private(path: Path, content: bytes) -> None:
        """所有者のみ読み書き可能なファイルとして書き込む（作成時点から0600）"""
        fd = os.open(path, os.O_WRONLY | os.O_CREAT | os.O_TRUNC, 0o600)
        with os.fdopen(fd, 'wb') as f:
            f.write(content)
        os.chmod(path, 0o600)

    def exists(self) -> bool:
        return self.credentials_path.exists()

    def save(self, credentials: Credentials) -> None:
        """認証情報を暗号化して保存"""
        fernet = Fernet(self._get_or_create_key())
        data = {
            'mail': fernet.encrypt(credentials.mail.reveal().encode()).decode(),
            'password': fernet.encrypt(credentials.password.reveal().encode()).decode(),
            'saved_at': time.time()
        }

        try:
            self.credentials_path.parent.mkdir(parents=True, exist_ok=True)
            temp_path = self.credentials_path.with_suffix('.tmp')
            self._write_private(temp_path, json.dumps(data).encode('utf-8'))
            temp_path.replace(self.credentials_path)
        except OSError as e:
            self.logger.error(f"認証情報保存エラー: {e}")
            raise ConfigurationError(f"認証情報を保存できません: {self.credentials_path}: {e}") from e

        self.logger.info("認証情報を保存しました")

    def load(self) -> Optional[Credentials]:
        """保存された認証情報を復号して返す（未保存ならNone）

        Raises:
            ConfigurationError: ファイル破損・復号失敗
        """
        if not self.credentials_path.exists():
            return None

        if not self.key_path.exists():
            raise ConfigurationError(f"暗号化キーが見つかりません: {self.key_path}")

        try:
            with open(self.credentials_path, 'r', encoding='utf-8') as f:
                data = json.load(f)
            fernet = Fernet(self.key_path.read_bytes())
            return Credentials.create(
                fernet.decrypt(data['mail'].encode()).decode(),
                fernet.decrypt(data['password'].encode()).decode()
            )
        except (OSError, KeyError, TypeError, ValueError, InvalidToken) as e:
            self.logger.error(f"認証情報読み込みエラー: {type(e).__name__}")
            raise ConfigurationError(
                f"認証情報を読み込めません: {self.credentials_path} ({type(e).__name__})") from e

    def delete(self) -> bool:
        """保存された認証情報を削除"""
        if not self.credentials_path.exists():
            return False
        self.credentials_path.unlink()
        self.logger.info("認証情報を削除しました")
        return True
