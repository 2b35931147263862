"""
RadikoStreamクライアント

セッション確立・再確立・ストリームURL解決・放送局と番組の取得をまとめた入口です。

Usage:
    async with RadikoStreamClient() as client:
        target = await client.resolve_stream("TBS")
        print(target.media_playlist_url)
"""

import asyncio
from typing import Any, Dict, List, Optional

from .auth import Credentials, SessionNegotiator
from .endpoints import RadikoEndpoints
from .program_info import Program, ProgramDirectory, SearchCondition, Station, StationDirectory
from .session import RadikoSession, SessionManager
from .streaming import StreamResolver, StreamTarget
from .utils.base import LoggerMixin
from .utils.config_utils import DEFAULT_CONFIG
from .utils.network_utils import SessionFactory, create_radiko_session


class RadikoStreamClient(LoggerMixin):
    """RadikoStreamクライアント"""

    def __init__(self,
                 config: Optional[Dict[str, Any]] = None,
                 credentials: Optional[Credentials] = None,
                 negotiator: Optional[SessionNegotiator] = None,
                 session_factory: SessionFactory = create_radiko_session):
        super().__init__()
        self.config = {**DEFAULT_CONFIG, **(config or {})}
        self.endpoints = RadikoEndpoints.from_config(self.config)

        self.negotiator = negotiator or SessionNegotiator(
            endpoints=self.endpoints,
            timeout=self.config["request_timeout"],
            session_factory=session_factory
        )
        self.sessions = SessionManager(self.negotiator, credentials)
        self.stream_resolver = StreamResolver(self.endpoints)
        self.station_directory = StationDirectory(self.endpoints)
        self.program_directory = ProgramDirectory(self.endpoints)
        self._start_lock: Optional[asyncio.Lock] = None

    async def __aenter__(self) -> 'RadikoStreamClient':
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.close()

    async def session(self) -> RadikoSession:
        """現在のセッション（未確立なら確立する）

        同時に呼ばれても最初のネゴシエーションは1回だけ行う。
        """
        if self.sessions.has_session:
            return self.sessions.current

        if self._start_lock is None:
            self._start_lock = asyncio.Lock()
        async with self._start_lock:
            if not self.sessions.has_session:
                return await self.sessions.start()
        return self.sessions.current

    async def refresh(self) -> RadikoSession:
        """セッションを再確立して差し替え"""
        return await self.sessions.refresh()

    async def resolve_stream(self, station_id: str) -> StreamTarget:
        """放送局のメディアプレイリストURLを求める"""
        session = await self.session()
        return await self.stream_resolver.resolve(session, station_id)

    async def playlist_url(self, station_id: str) -> str:
        """プレイリスト作成URLのみを求める"""
        session = await self.session()
        return self.stream_resolver.resolve_stream_url(session, station_id)

    async def stations(self, area_id: Optional[str] = None) -> List[Station]:
        """放送局リストを取得"""
        session = await self.session()
        return await self.station_directory.fetch_stations(session, area_id)

    async def now_on_air(self, area_id: Optional[str] = None) -> List[Program]:
        """放送中の番組を取得"""
        session = await self.session()
        return await self.program_directory.fetch_now_on_air(session, area_id)

    async def weekly_programs(self, station_id: str) -> List[Program]:
        """放送局の週間番組表を取得"""
        session = await self.session()
        return await self.program_directory.fetch_weekly(session, station_id)

    async def search_programs(self, condition: SearchCondition) -> List[Program]:
        """番組をキーワード検索"""
        session = await self.session()
        return await self.program_directory.search(session, condition)

    async def close(self) -> None:
        await self.sessions.close()
