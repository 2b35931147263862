"""
ネットワーク処理ユーティリティ

aiohttp.ClientSession の生成を統一します。
認証前の匿名通信用セッションと、認証トークン・ログインCookieを
既定値として持つ認証済みセッションの両方をここで作成します。
"""

from typing import Callable, Dict, Iterable, Optional

import aiohttp
from yarl import URL

from .sensitive import reveal

DEFAULT_TIMEOUT = 30

# Radiko API標準ヘッダー
STANDARD_HEADERS = {
    'User-Agent': 'RadikoStream/1.0',
    'Accept': '*/*',
    'Accept-Language': 'ja,en;q=0.9',
    'Connection': 'keep-alive'
}

SessionFactory = Callable[..., aiohttp.ClientSession]


def create_radiko_session(
    timeout: float = DEFAULT_TIMEOUT,
    additional_headers: Optional[Dict[str, object]] = None,
    cookies: Optional[Dict[str, object]] = None,
    cookie_urls: Iterable[str] = ()
) -> aiohttp.ClientSession:
    """Radiko API用の標準セッションを作成

    イベントループ内（async関数内）から呼び出すこと。

    Args:
        timeout: リクエスト全体のタイムアウト秒数
        additional_headers: 既定ヘッダーに追加するヘッダー（SensitiveValue可）
        cookies: Cookie辞書（SensitiveValue可）
        cookie_urls: Cookieを有効にするホストのURL群

    Returns:
        aiohttp.ClientSession: 設定済みセッション

    Example:
        session = create_radiko_session(
            additional_headers={'X-Radiko-AuthToken': token},
            cookies={'radiko_session': session_id},
            cookie_urls=['https://radiko.jp/']
        )
    """
    headers = dict(STANDARD_HEADERS)
    if additional_headers:
        headers.update({k: reveal(v) for k, v in additional_headers.items()})

    session = aiohttp.ClientSession(
        headers=headers,
        timeout=aiohttp.ClientTimeout(total=timeout),
        cookie_jar=aiohttp.CookieJar()
    )

    if cookies:
        plain_cookies = {k: reveal(v) for k, v in cookies.items()}
        for url in cookie_urls:
            session.cookie_jar.update_cookies(plain_cookies, response_url=URL(url))

    return session


def is_success(status: int) -> bool:
    """2xxステータスかどうか"""
    return 200 <= status < 300
