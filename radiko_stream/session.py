"""
セッションモジュール

ネゴシエーション結果を保持する不変のセッション（RadikoSession）と、
現在のセッション参照を差し替えるSessionManagerを提供します。

- RadikoSession は生成後に変更しない。再認証は新しいインスタンスを作る
- 古いセッションを参照中の処理は、そのまま一貫した（失効しているかもしれない）値を見る
- 認証情報（メールアドレス・パスワード）はセッションに持たせない
"""

import time
from dataclasses import dataclass, field
from typing import List, Optional, TYPE_CHECKING

import aiohttp

from .error_handler import NegotiationError
from .utils.base import LoggerMixin
from .utils.sensitive import SensitiveValue

if TYPE_CHECKING:
    from .auth import Credentials, SessionNegotiator

AUTH_TOKEN_HEADER = "X-Radiko-AuthToken"


@dataclass(frozen=True)
class RadikoSession:
    """認証済みセッション

    Attributes:
        region_code: 判定された地域ID
        auth_token: サーバー発行の認証トークン（表示時は伏字）
        local_stream_id: クライアント生成のストリームID（lsid）
        region_unlocked: 会員ログイン済み（エリアフリー）かどうか
        transport: 認証トークンヘッダー（とログインCookie）を既定で持つHTTPセッション
        created_at: 生成時刻（UNIX秒、診断用）
    """
    region_code: str
    auth_token: SensitiveValue
    local_stream_id: str
    region_unlocked: bool
    transport: aiohttp.ClientSession = field(repr=False, compare=False)
    created_at: float = field(default_factory=time.time, compare=False)

    @property
    def auth_headers(self) -> dict:
        """外部プレイヤー等に渡す認証ヘッダー（生のトークンを含む）"""
        return {AUTH_TOKEN_HEADER: self.auth_token.reveal()}

    @property
    def closed(self) -> bool:
        return self.transport.closed

    async def close(self) -> None:
        """HTTPセッションを解放"""
        if not self.transport.closed:
            await self.transport.close()


class SessionManager(LoggerMixin):
    """現在のセッション参照を管理するクラス

    refresh() は新しいセッションを作ってから参照を差し替えるだけで、
    I/Oをまたいでロックは保持しない。差し替え前のセッションは実行中の処理が
    使い終わるよう max_retired 世代まで開いたまま残し、それより古いものは閉じる。
    """

    DEFAULT_MAX_RETIRED = 1

    def __init__(self, negotiator: 'SessionNegotiator',
                 credentials: Optional['Credentials'] = None,
                 max_retired: int = DEFAULT_MAX_RETIRED):
        super().__init__()
        self.negotiator = negotiator
        self.max_retired = max_retired
        self._credentials = credentials
        self._current: Optional[RadikoSession] = None
        self._retired: List[RadikoSession] = []

    @property
    def current(self) -> RadikoSession:
        """現在のセッション

        Raises:
            NegotiationError: セッション未確立
        """
        if self._current is None:
            raise NegotiationError("セッションが確立されていません（start() を先に呼び出してください）")
        return self._current

    @property
    def has_session(self) -> bool:
        return self._current is not None

    async def start(self) -> RadikoSession:
        """セッションを確立"""
        session = await self.negotiator.negotiate(self._credentials)
        await self._swap(session)
        return session

    async def refresh(self) -> RadikoSession:
        """セッションを作り直して差し替え

        失敗時は現在のセッションをそのまま残し、例外を送出する。
        """
        if self._current is None:
            return await self.start()

        self.logger.info("セッションを再確立します")
        session = await self.negotiator.refresh(self._current)
        await self._swap(session)
        return session

    async def _swap(self, session: RadikoSession) -> None:
        previous = self._current
        self._current = session
        if previous is not None:
            self._retired.append(previous)

        while len(self._retired) > self.max_retired:
            expired = self._retired.pop(0)
            self.logger.debug(f"古いセッションを解放: area={expired.region_code}")
            await expired.close()

        self.logger.info(
            f"セッション確立: area={session.region_code}, area_free={session.region_unlocked}"
        )

    async def close(self) -> None:
        """保持しているすべてのセッションを解放"""
        sessions = self._retired + ([self._current] if self._current else [])
        self._retired = []
        self._current = None
        for session in sessions:
            await session.close()
