"""
Radikoエンドポイント定義

サービス側の仕様変更でホストやパスが予告なく変わるため、
URLはすべてここに集約し、ベースURLは設定で差し替え可能にする。
"""

from dataclasses import dataclass
from typing import Sequence, Tuple
from urllib.parse import urlencode

RADIKO_BASE_URL = "https://radiko.jp"
STREAM_BASE_URL = "https://si-f-radiko.smartstream.ne.jp"
API_BASE_URL = "https://api.radiko.jp"

# プレイリスト作成リクエストの固定パラメータ
PLAYLIST_LOOKAHEAD = "15"
PLAYLIST_STREAM_TYPE = "b"


@dataclass(frozen=True)
class RadikoEndpoints:
    """Radiko API エンドポイント集"""

    radiko_base_url: str = RADIKO_BASE_URL
    stream_base_url: str = STREAM_BASE_URL
    api_base_url: str = API_BASE_URL

    @classmethod
    def from_config(cls, config: dict) -> 'RadikoEndpoints':
        """設定辞書から生成（未指定は既定値）"""
        return cls(
            radiko_base_url=(config.get("radiko_base_url") or RADIKO_BASE_URL).rstrip("/"),
            stream_base_url=(config.get("stream_base_url") or STREAM_BASE_URL).rstrip("/"),
            api_base_url=(config.get("api_base_url") or API_BASE_URL).rstrip("/")
        )

    @property
    def area_url(self) -> str:
        return f"{self.radiko_base_url}/area/"

    @property
    def player_script_url(self) -> str:
        return f"{self.radiko_base_url}/apps/js/playerCommon.js"

    @property
    def login_url(self) -> str:
        return f"{self.radiko_base_url}/api/member/login"

    @property
    def login_check_url(self) -> str:
        return f"{self.radiko_base_url}/ap/member/webapi/v2/member/login/check"

    @property
    def auth1_url(self) -> str:
        return f"{self.radiko_base_url}/v2/api/auth1"

    @property
    def auth2_url(self) -> str:
        return f"{self.radiko_base_url}/v2/api/auth2"

    @property
    def cookie_url(self) -> str:
        """ログインCookieのスコープとなるサービスホスト"""
        return f"{self.radiko_base_url}/"

    @property
    def stream_cookie_url(self) -> str:
        """ストリーミングホスト（エリアフリー時にCookieを送る先）"""
        return f"{self.stream_base_url}/"

    def station_list_url(self, area_id: str) -> str:
        return f"{self.radiko_base_url}/v3/station/list/{area_id}.xml"

    def now_on_air_url(self, area_id: str) -> str:
        return f"{self.api_base_url}/program/v3/now/{area_id}.xml"

    def weekly_programs_url(self, station_id: str) -> str:
        return f"{self.api_base_url}/program/v3/weekly/{station_id}.xml"

    def program_search_url(self, params: Sequence[Tuple[str, str]]) -> str:
        """番組検索API（JSON）。同名キーの繰り返しを許す"""
        return f"{self.radiko_base_url}/v3/api/program/search?{urlencode(list(params))}"

    def playlist_create_url(self, station_id: str, lsid: str, area_free: bool = False) -> str:
        """HLSマスタープレイリストを返すエンドポイント

        エリアフリー時は地域制限のないパス（/al/）、通常は地域制限パス（/so/）。
        """
        path = "al" if area_free else "so"
        query = urlencode([
            ("station_id", station_id),
            ("l", PLAYLIST_LOOKAHEAD),
            ("lsid", lsid),
            ("type", PLAYLIST_STREAM_TYPE)
        ])
        return f"{self.stream_base_url}/{path}/playlist.m3u8?{query}"


DEFAULT_ENDPOINTS = RadikoEndpoints()
