"""
ネットワーク処理ユーティリティのテスト
"""

import asyncio
import unittest

from radiko_stream.utils.network_utils import STANDARD_HEADERS, create_radiko_session, is_success
from radiko_stream.utils.sensitive import SensitiveValue


class TestNetworkUtils(unittest.TestCase):
    """ネットワークユーティリティテスト"""

    def test_01_成功ステータス判定(self):
        self.assertTrue(is_success(200))
        self.assertTrue(is_success(204))
        self.assertFalse(is_success(302))
        self.assertFalse(is_success(403))

    def test_02_既定ヘッダーとタイムアウト(self):
        async def scenario():
            session = create_radiko_session(timeout=5)
            try:
                return dict(session.headers), session.timeout.total
            finally:
                await session.close()

        headers, total = asyncio.run(scenario())

        self.assertEqual(headers['User-Agent'], STANDARD_HEADERS['User-Agent'])
        self.assertEqual(total, 5)

    def test_03_秘匿ヘッダーとCookieを平文で設定(self):
        async def scenario():
            session = create_radiko_session(
                additional_headers={'X-Radiko-AuthToken': SensitiveValue("tok123")},
                cookies={'radiko_session': SensitiveValue("sess-abc")},
                cookie_urls=['https://radiko.jp/', 'https://si-f-radiko.smartstream.ne.jp/']
            )
            try:
                token = session.headers['X-Radiko-AuthToken']
                domains = {cookie['domain'] for cookie in session.cookie_jar}
                values = {cookie.value for cookie in session.cookie_jar}
            finally:
                await session.close()
            return session, token, domains, values

        session, token, domains, values = asyncio.run(scenario())

        self.assertEqual(token, "tok123")
        self.assertEqual(domains, {'radiko.jp', 'si-f-radiko.smartstream.ne.jp'})
        self.assertEqual(values, {"sess-abc"})
        self.assertTrue(session.closed)


if __name__ == '__main__':
    unittest.main()
