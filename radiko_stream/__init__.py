"""
RadikoStream - Radikoの認証とHLSストリームURL解決

主要コンポーネント:
- secret_key: 認証キー取得
- region_mapper: 地域判定
- auth: セッション確立（ログイン・auth1・auth2）と再確立
- session: 不変のセッションと参照の差し替え
- streaming: ストリームURL解決
- program_info: 放送局リスト・番組表・番組検索
- error_handler: 例外体系とエラー記録
- cli: コマンドライン操作
"""

__version__ = "1.0.0"
__license__ = "MIT"

from .auth import Credentials, SessionNegotiator, generate_partial_key
from .client import RadikoStreamClient
from .error_handler import (
    RadikoStreamError,
    FetchError,
    PatternNotFound,
    NegotiationError,
    MissingAuthHeaders,
    KeySliceOutOfRange,
    Auth2Rejected,
    LoginRejected,
    StreamResolutionError,
    PlaylistFetchError,
    PlaylistParseError,
    NoVariantStream,
    ConfigurationError,
    ErrorCategory,
    ErrorSeverity,
)
from .program_info import (
    Program,
    ProgramDirectory,
    SearchCondition,
    SearchFilter,
    Station,
    StationDirectory,
)
from .region_mapper import RegionMapper, RegionResolver
from .secret_key import SecretKeyFetcher
from .session import RadikoSession, SessionManager
from .streaming import StreamResolver, StreamTarget, extract_media_playlist_uri

__all__ = [
    # 認証関連
    'Credentials',
    'SessionNegotiator',
    'SecretKeyFetcher',
    'RegionResolver',
    'RegionMapper',
    'generate_partial_key',

    # セッション関連
    'RadikoSession',
    'SessionManager',
    'RadikoStreamClient',

    # ストリーミング関連
    'StreamResolver',
    'StreamTarget',
    'extract_media_playlist_uri',

    # 放送局・番組関連
    'Station',
    'StationDirectory',
    'Program',
    'ProgramDirectory',
    'SearchCondition',
    'SearchFilter',

    # エラーハンドリング関連
    'RadikoStreamError',
    'FetchError',
    'PatternNotFound',
    'NegotiationError',
    'MissingAuthHeaders',
    'KeySliceOutOfRange',
    'Auth2Rejected',
    'LoginRejected',
    'StreamResolutionError',
    'PlaylistFetchError',
    'PlaylistParseError',
    'NoVariantStream',
    'ConfigurationError',
    'ErrorCategory',
    'ErrorSeverity',
]
