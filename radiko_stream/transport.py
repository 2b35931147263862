"""
HTTP通信ヘルパー

aiohttp.ClientSession 上でリクエストを1回だけ送り、本文をテキストで返す。
不正なバイト列は置換文字にして、生の本文を失わずに呼び出し側へ渡す。
通信エラーは FetchError に変換する。ステータスの評価は呼び出し側で行い、
リトライは行わない（上流の失敗はほとんどが一時的ではなく仕様変更によるため）。
"""

import asyncio
from dataclasses import dataclass
from typing import Any, Mapping, Optional

import aiohttp

from .error_handler import ErrorCategory, FetchError
from .logging_config import get_logger
from .utils.network_utils import is_success
from .utils.sensitive import redact_for_log, reveal

logger = get_logger(__name__)


@dataclass(frozen=True)
class FetchedResponse:
    """取得済みレスポンス"""
    url: str
    status: int
    headers: Mapping[str, str]
    text: str

    @property
    def ok(self) -> bool:
        return is_success(self.status)


async def fetch_text(http: aiohttp.ClientSession,
                     method: str,
                     url: str,
                     *,
                     category: ErrorCategory,
                     headers: Optional[Mapping[str, Any]] = None,
                     data: Optional[Mapping[str, Any]] = None) -> FetchedResponse:
    """リクエストを送信してレスポンス本文を取得

    Args:
        http: 使用するセッション
        method: HTTPメソッド
        url: リクエストURL
        category: 失敗時のエラーカテゴリ（認証フェーズ／ストリームフェーズ）
        headers: 追加ヘッダー（SensitiveValue可）
        data: フォームデータ（SensitiveValue可）

    Returns:
        FetchedResponse: ステータス・ヘッダー・本文

    Raises:
        FetchError: 通信失敗・タイムアウト・デコード失敗
    """
    plain_headers = {k: reveal(v) for k, v in headers.items()} if headers else None
    plain_data = {k: reveal(v) for k, v in data.items()} if data else None

    logger.debug(f"{method} {url} headers={redact_for_log(dict(headers or {}))}")

    try:
        async with http.request(method, url, headers=plain_headers, data=plain_data) as response:
            text = await response.text(errors="replace")
            fetched = FetchedResponse(
                url=str(response.url),
                status=response.status,
                headers=response.headers,
                text=text
            )
    except asyncio.TimeoutError as e:
        logger.error(f"リクエストタイムアウト: {method} {url}")
        raise FetchError(f"リクエストがタイムアウトしました: {url}",
                         url=url, category=category) from e
    except aiohttp.ClientError as e:
        logger.error(f"通信エラー: {method} {url}: {e}")
        raise FetchError(f"通信に失敗しました: {url}: {e}",
                         url=url, category=category) from e
    except UnicodeDecodeError as e:
        logger.error(f"レスポンスのデコードに失敗: {method} {url}: {e}")
        raise FetchError(f"レスポンス本文をデコードできません: {url}: {e}",
                         url=url, category=category) from e

    logger.debug(f"{method} {url} -> HTTP {fetched.status}")
    return fetched


def require_success(response: FetchedResponse, category: ErrorCategory) -> FetchedResponse:
    """非成功ステータスを FetchError にする"""
    if not response.ok:
        raise FetchError(
            f"想定外のステータス: HTTP {response.status} ({response.url}): {response.text.strip()[:200]}",
            url=response.url,
            status=response.status,
            category=category
        )
    return response
