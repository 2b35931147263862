"""
Radiko認証モジュール

このモジュールはRadikoサービスとのセッション確立（ネゴシエーション）を管理します。
- 会員ログイン（任意、エリアフリー用）とログイン確認
- auth1: 認証トークンと部分キーの範囲（offset/length）の取得
- 部分キー生成: 認証キーの [offset, offset+length) をBase64化
- auth2: 部分キーの送信による認証トークンの有効化
- 認証済みHTTPセッションを持つ RadikoSession の生成と再生成

各段階は直列で、内部リトライは行わない。どこかで失敗した時点で
ネゴシエーション全体が失敗する。
"""

import base64
import json
from dataclasses import dataclass
from typing import Callable, Mapping, Optional, Tuple

import aiohttp
from yarl import URL

from .endpoints import DEFAULT_ENDPOINTS, RadikoEndpoints
from .error_handler import (
    Auth2Rejected,
    ErrorCategory,
    KeySliceOutOfRange,
    LoginRejected,
    MissingAuthHeaders,
)
from .region_mapper import RegionResolver
from .secret_key import SecretKeyFetcher
from .session import AUTH_TOKEN_HEADER, RadikoSession
from .transport import fetch_text, require_success
from .utils.base import LoggerMixin
from .utils.hash_utils import generate_lsid
from .utils.network_utils import DEFAULT_TIMEOUT, SessionFactory, create_radiko_session
from .utils.sensitive import SensitiveValue

LOGIN_COOKIE_NAME = "radiko_session"

AUTH1_TOKEN_HEADER = "X-Radiko-AuthToken"
AUTH1_OFFSET_HEADER = "X-Radiko-KeyOffset"
AUTH1_LENGTH_HEADER = "X-Radiko-KeyLength"


@dataclass(frozen=True)
class Credentials:
    """会員ログイン用の認証情報（表示時は伏字）"""
    mail: SensitiveValue
    password: SensitiveValue

    def __post_init__(self):
        object.__setattr__(self, "mail", SensitiveValue(self.mail))
        object.__setattr__(self, "password", SensitiveValue(self.password))

    @classmethod
    def create(cls, mail: str, password: str) -> 'Credentials':
        if not mail or not password:
            raise ValueError("メールアドレスとパスワードの両方が必要です")
        return cls(SensitiveValue(mail), SensitiveValue(password))


def parse_auth1_headers(headers: Mapping[str, str]) -> Tuple[str, int, int]:
    """auth1レスポンスヘッダーから認証トークン・offset・lengthを取り出す

    Raises:
        MissingAuthHeaders: ヘッダーがない、または offset/length が非負整数でない
    """
    token = headers.get(AUTH1_TOKEN_HEADER)
    offset = headers.get(AUTH1_OFFSET_HEADER)
    length = headers.get(AUTH1_LENGTH_HEADER)

    missing = [name for name, value in (
        (AUTH1_TOKEN_HEADER, token),
        (AUTH1_OFFSET_HEADER, offset),
        (AUTH1_LENGTH_HEADER, length)
    ) if not value]
    if missing:
        raise MissingAuthHeaders(f"auth1レスポンスにヘッダーがありません: {', '.join(missing)}",
                                 missing=missing)

    invalid = [name for name, value in (
        (AUTH1_OFFSET_HEADER, offset),
        (AUTH1_LENGTH_HEADER, length)
    ) if not value.strip().isdecimal()]
    if invalid:
        raise MissingAuthHeaders(f"auth1レスポンスのヘッダーが数値ではありません: {', '.join(invalid)}",
                                 missing=invalid)

    return token, int(offset), int(length)


def generate_partial_key(auth_key: bytes, offset: int, length: int) -> str:
    """部分キーを生成

    範囲外を切り詰めずにエラーとする（offset/lengthの仕様変更を検知するため）。

    Raises:
        KeySliceOutOfRange: offset+length が認証キー長を超える
    """
    if offset < 0 or length < 0 or offset + length > len(auth_key):
        raise KeySliceOutOfRange(offset, length, len(auth_key))
    partial_key = auth_key[offset:offset + length]
    return base64.b64encode(partial_key).decode('ascii')


class SessionNegotiator(LoggerMixin):
    """Radikoセッション確立クラス"""

    # auth1/auth2で送るクライアント識別ヘッダー
    APP_HEADERS = {
        'X-Radiko-App': 'pc_html5',
        'X-Radiko-App-Version': '0.0.1',
        'X-Radiko-User': 'dummy_user',
        'X-Radiko-Device': 'pc'
    }

    def __init__(self,
                 endpoints: RadikoEndpoints = DEFAULT_ENDPOINTS,
                 timeout: float = DEFAULT_TIMEOUT,
                 session_factory: SessionFactory = create_radiko_session,
                 key_fetcher: Optional[SecretKeyFetcher] = None,
                 region_resolver: Optional[RegionResolver] = None,
                 lsid_factory: Callable[[], str] = generate_lsid):
        super().__init__()
        self.endpoints = endpoints
        self.timeout = timeout
        self.session_factory = session_factory
        self.key_fetcher = key_fetcher or SecretKeyFetcher(endpoints)
        self.region_resolver = region_resolver or RegionResolver(endpoints)
        self.lsid_factory = lsid_factory
        self._credentials: Optional[Credentials] = None

    @property
    def has_credentials(self) -> bool:
        return self._credentials is not None

    def forget_credentials(self) -> None:
        """保持している認証情報を破棄"""
        self._credentials = None

    async def negotiate(self, credentials: Optional[Credentials] = None) -> RadikoSession:
        """セッションを確立

        Args:
            credentials: 会員ログイン用の認証情報（指定時はエリアフリー）

        Returns:
            RadikoSession: 認証済みセッション

        Raises:
            LoginRejected: ログインまたはログイン確認の失敗
            MissingAuthHeaders: auth1ヘッダー不正
            KeySliceOutOfRange: 部分キー範囲外
            Auth2Rejected: 部分キー拒否
            FetchError: 通信失敗
            PatternNotFound: 地域ID・認証キーの抽出失敗
        """
        self.logger.info(f"セッション確立を開始 (エリアフリー: {credentials is not None})")

        http = self.session_factory(timeout=self.timeout)
        try:
            login_session_id = None
            if credentials is not None:
                login_session_id = await self._login(http, credentials)

            region_code = await self.region_resolver.resolve(http)
            auth_token, offset, length = await self._auth1(http)

            auth_key = await self.key_fetcher.fetch(http)
            partial_key = generate_partial_key(auth_key, offset, length)

            await self._auth2(http, auth_token, partial_key, offset, length, len(auth_key))
        finally:
            await http.close()

        if credentials is not None:
            self._credentials = credentials

        session = self._build_session(region_code, auth_token, login_session_id)
        self.logger.info(f"セッション確立完了: area={region_code}, area_free={session.region_unlocked}")
        return session

    async def refresh(self, existing: RadikoSession) -> RadikoSession:
        """既存セッションと同じモードで新しいセッションを確立

        既存セッションの値（地域・トークン・lsid）は再利用しない。

        Raises:
            LoginRejected: エリアフリーのセッションだが認証情報を保持していない
        """
        if existing.region_unlocked:
            if self._credentials is None:
                raise LoginRejected("エリアフリーセッションの再確立に必要な認証情報がありません")
            return await self.negotiate(self._credentials)
        return await self.negotiate(None)

    async def _login(self, http: aiohttp.ClientSession, credentials: Credentials) -> SensitiveValue:
        """会員ログインを行い、ログインCookieを設定して確認する"""
        self.logger.info("会員ログインを開始")

        response = await fetch_text(
            http, "POST", self.endpoints.login_url,
            category=ErrorCategory.AUTHENTICATION,
            data={'mail': credentials.mail, 'pass': credentials.password}
        )
        if not response.ok:
            self.logger.error(f"会員ログイン失敗: HTTP {response.status}")
            raise LoginRejected(f"会員ログインに失敗しました: HTTP {response.status}",
                                status=response.status)

        try:
            body = json.loads(response.text)
        except ValueError as e:
            raise LoginRejected("会員ログインのレスポンスを解析できません",
                                status=response.status) from e

        session_id = body.get(LOGIN_COOKIE_NAME) if isinstance(body, dict) else None
        if not isinstance(session_id, str) or not session_id:
            raise LoginRejected(f"会員ログインのレスポンスに {LOGIN_COOKIE_NAME} がありません",
                                status=response.status)
        session_id = SensitiveValue(session_id)

        http.cookie_jar.update_cookies({LOGIN_COOKIE_NAME: session_id.reveal()},
                                       response_url=URL(self.endpoints.cookie_url))

        check = await fetch_text(http, "GET", self.endpoints.login_check_url,
                                 category=ErrorCategory.AUTHENTICATION)
        if not check.ok:
            self.logger.error(f"ログイン確認失敗: HTTP {check.status}")
            raise LoginRejected(f"ログイン確認に失敗しました: HTTP {check.status}",
                                status=check.status)

        self.logger.info("会員ログイン完了")
        return session_id

    async def _auth1(self, http: aiohttp.ClientSession) -> Tuple[SensitiveValue, int, int]:
        """auth1: 認証トークンと部分キーの範囲を取得"""
        response = require_success(
            await fetch_text(http, "GET", self.endpoints.auth1_url,
                             category=ErrorCategory.AUTHENTICATION,
                             headers=self.APP_HEADERS),
            ErrorCategory.AUTHENTICATION
        )

        token, offset, length = parse_auth1_headers(response.headers)
        self.logger.info(f"auth1完了: offset={offset}, length={length}")
        return SensitiveValue(token), offset, length

    async def _auth2(self, http: aiohttp.ClientSession, auth_token: SensitiveValue,
                     partial_key: str, offset: int, length: int, key_size: int) -> None:
        """auth2: 部分キーを送信して認証トークンを有効化"""
        headers = {
            'X-Radiko-AuthToken': auth_token,
            'X-Radiko-Partialkey': SensitiveValue(partial_key),
            'X-Radiko-User': self.APP_HEADERS['X-Radiko-User'],
            'X-Radiko-Device': self.APP_HEADERS['X-Radiko-Device']
        }
        response = await fetch_text(http, "GET", self.endpoints.auth2_url,
                                    category=ErrorCategory.AUTHENTICATION,
                                    headers=headers)
        if not response.ok:
            self.logger.error(
                f"auth2拒否: HTTP {response.status} (offset={offset}, length={length}, key_size={key_size})"
            )
            raise Auth2Rejected(response.status, response.text, offset, length, key_size)

        self.logger.info("auth2完了")

    def _build_session(self, region_code: str, auth_token: SensitiveValue,
                       login_session_id: Optional[SensitiveValue]) -> RadikoSession:
        """認証済みHTTPセッションを作成し、RadikoSession にまとめる"""
        cookies = {LOGIN_COOKIE_NAME: login_session_id} if login_session_id is not None else None
        transport = self.session_factory(
            timeout=self.timeout,
            additional_headers={AUTH_TOKEN_HEADER: auth_token},
            cookies=cookies,
            cookie_urls=(self.endpoints.cookie_url, self.endpoints.stream_cookie_url)
        )
        return RadikoSession(
            region_code=region_code,
            auth_token=auth_token,
            local_stream_id=self.lsid_factory(),
            region_unlocked=login_session_id is not None,
            transport=transport
        )
