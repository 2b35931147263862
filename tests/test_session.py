"""
セッションとSessionManagerのテスト
"""

import asyncio
import dataclasses
import unittest
from unittest.mock import AsyncMock, MagicMock

from radiko_stream.auth import Credentials
from radiko_stream.error_handler import LoginRejected, NegotiationError
from radiko_stream.session import AUTH_TOKEN_HEADER, RadikoSession, SessionManager
from radiko_stream.utils.sensitive import SensitiveValue
from tests.utils.fake_http import FakeSessionFactory


def make_session(token: str, lsid: str, region_unlocked: bool = False) -> RadikoSession:
    return RadikoSession(
        region_code="JP13",
        auth_token=SensitiveValue(token),
        local_stream_id=lsid,
        region_unlocked=region_unlocked,
        transport=FakeSessionFactory({})()
    )


class TestRadikoSession(unittest.TestCase):
    """RadikoSession テスト"""

    def test_01_生成後は変更できない(self):
        session = make_session("tok123", "abc")
        with self.assertRaises(dataclasses.FrozenInstanceError):
            session.auth_token = SensitiveValue("other")

    def test_02_表示時はトークンを伏せる(self):
        session = make_session("tok123", "abc")
        self.assertNotIn("tok123", repr(session))
        self.assertNotIn("tok123", f"{session.auth_token}")
        self.assertEqual(session.auth_headers, {AUTH_TOKEN_HEADER: "tok123"})

    def test_03_close(self):
        session = make_session("tok123", "abc")
        self.assertFalse(session.closed)
        asyncio.run(session.close())
        self.assertTrue(session.closed)


class TestSessionManager(unittest.TestCase):
    """SessionManager テスト"""

    def setUp(self):
        self.first = make_session("tok-1", "lsid-1")
        self.second = make_session("tok-2", "lsid-2")
        self.negotiator = MagicMock()
        self.negotiator.negotiate = AsyncMock(return_value=self.first)
        self.negotiator.refresh = AsyncMock(return_value=self.second)

    def test_01_未確立ではcurrentがエラー(self):
        manager = SessionManager(self.negotiator)
        self.assertFalse(manager.has_session)
        with self.assertRaises(NegotiationError):
            manager.current

    def test_02_startで認証情報を渡す(self):
        credentials = Credentials.create("user@example.com", "secret-pass")
        manager = SessionManager(self.negotiator, credentials)

        session = asyncio.run(manager.start())

        self.assertIs(session, self.first)
        self.assertIs(manager.current, self.first)
        self.negotiator.negotiate.assert_awaited_once_with(credentials)

    def test_03_refreshは参照を差し替え旧セッションを変更しない(self):
        manager = SessionManager(self.negotiator)

        async def scenario():
            await manager.start()
            held = manager.current
            refreshed = await manager.refresh()
            return held, refreshed

        held, refreshed = asyncio.run(scenario())

        self.assertIs(refreshed, self.second)
        self.assertIs(manager.current, self.second)
        # 差し替え前の参照は一貫した古い値のまま
        self.assertEqual(held.auth_token.reveal(), "tok-1")
        self.assertEqual(held.local_stream_id, "lsid-1")
        self.assertFalse(held.closed)
        self.negotiator.refresh.assert_awaited_once_with(self.first)

    def test_04_refresh失敗時は現在のセッションを維持(self):
        self.negotiator.refresh = AsyncMock(side_effect=LoginRejected("rejected", status=403))
        manager = SessionManager(self.negotiator)

        async def scenario():
            await manager.start()
            await manager.refresh()

        with self.assertRaises(LoginRejected):
            asyncio.run(scenario())

        self.assertIs(manager.current, self.first)

    def test_05_未確立でのrefreshはstart(self):
        manager = SessionManager(self.negotiator)
        session = asyncio.run(manager.refresh())

        self.assertIs(session, self.first)
        self.negotiator.refresh.assert_not_awaited()

    def test_06_closeで全セッションを解放(self):
        manager = SessionManager(self.negotiator)

        async def scenario():
            await manager.start()
            await manager.refresh()
            await manager.close()

        asyncio.run(scenario())

        self.assertTrue(self.first.closed)
        self.assertTrue(self.second.closed)
        self.assertFalse(manager.has_session)

    def test_07_古い世代のセッションは差し替え時に閉じる(self):
        third = make_session("tok-3", "lsid-3")
        self.negotiator.refresh = AsyncMock(side_effect=[self.second, third])
        manager = SessionManager(self.negotiator, max_retired=1)

        async def scenario():
            await manager.start()
            await manager.refresh()
            await manager.refresh()

        asyncio.run(scenario())

        # 直前の世代だけは実行中の処理のために開いたまま
        self.assertTrue(self.first.closed)
        self.assertFalse(self.second.closed)
        self.assertFalse(third.closed)
        self.assertIs(manager.current, third)

    def test_08_再確立を繰り返しても保持数は増えない(self):
        sessions = [make_session(f"tok-r{i}", f"lsid-r{i}") for i in range(5)]
        self.negotiator.refresh = AsyncMock(side_effect=sessions)
        manager = SessionManager(self.negotiator)

        async def scenario():
            await manager.start()
            for _ in sessions:
                await manager.refresh()
            await manager.close()

        asyncio.run(scenario())

        self.assertEqual(manager._retired, [])
        self.assertTrue(all(s.closed for s in [self.first] + sessions))


if __name__ == '__main__':
    unittest.main()
