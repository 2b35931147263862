"""
認証キー取得モジュール

公式プレイヤーのスクリプト（playerCommon.js）に埋め込まれた認証キーを取得します。
スクリプトの形が変わるとここだけが失敗するため、抽出処理はこのモジュールに閉じ込める。
キーは予告なく更新されうるので、ネゴシエーションごとに毎回取得しキャッシュしない。
"""

import re

import aiohttp

from .endpoints import DEFAULT_ENDPOINTS, RadikoEndpoints
from .error_handler import ErrorCategory, PatternNotFound
from .transport import fetch_text, require_success
from .utils.base import LoggerMixin

# new RadikoJSPlayer($audio[0], 'pc_html5', 'bcd151073c03b352e1ef2fd66c32209da9ca0afa', {...
AUTH_KEY_PATTERN = re.compile(r"new RadikoJSPlayer\(.*?,.*?,.'(?P<auth_key>\w+)'")


def extract_auth_key(script_body: str, url: str = "") -> bytes:
    """スクリプト本文から認証キーを抽出

    Raises:
        PatternNotFound: 期待した形のリテラルがない
    """
    match = AUTH_KEY_PATTERN.search(script_body)
    if not match:
        raise PatternNotFound(
            "プレイヤースクリプトに認証キーが見つかりません（スクリプトの形式が変更された可能性）",
            what="auth_key",
            url=url,
            category=ErrorCategory.AUTHENTICATION
        )
    return match.group("auth_key").encode("utf-8")


class SecretKeyFetcher(LoggerMixin):
    """認証キー取得クラス"""

    def __init__(self, endpoints: RadikoEndpoints = DEFAULT_ENDPOINTS):
        super().__init__()
        self.endpoints = endpoints

    async def fetch(self, http: aiohttp.ClientSession) -> bytes:
        """認証キーを取得

        Args:
            http: 認証不要の通信に使うセッション

        Returns:
            bytes: 認証キー

        Raises:
            FetchError: 取得失敗
            PatternNotFound: 抽出失敗
        """
        url = self.endpoints.player_script_url
        self.logger.info("認証キーを取得中")

        response = require_success(
            await fetch_text(http, "GET", url, category=ErrorCategory.AUTHENTICATION),
            ErrorCategory.AUTHENTICATION
        )

        try:
            key = extract_auth_key(response.text, url)
        except PatternNotFound:
            self.logger.error(f"認証キー抽出失敗: {url}")
            raise

        self.logger.info(f"認証キー取得成功: {len(key)}バイト")
        return key
