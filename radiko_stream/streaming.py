"""
ストリーミングURL解決モジュール

このモジュールは放送局IDと認証済みセッションからHLSのメディアプレイリストURLを求めます。
- プレイリスト作成URLの組み立て（通信なし・決定的）
- マスタープレイリストの取得
- マスタープレイリストからメディアプレイリストURIの抽出

ここでの失敗は放送局単位であり、セッションを無効にしない。
"""

from dataclasses import dataclass
from typing import Optional
from urllib.parse import urljoin

import m3u8

from .endpoints import DEFAULT_ENDPOINTS, RadikoEndpoints
from .error_handler import (
    ErrorCategory,
    NoVariantStream,
    PlaylistFetchError,
    PlaylistParseError,
)
from .session import RadikoSession
from .transport import fetch_text
from .utils.base import LoggerMixin

M3U8_HEADER = "#EXTM3U"


@dataclass(frozen=True)
class StreamTarget:
    """ストリーム解決結果"""
    station_id: str
    playlist_url: str
    media_playlist_url: Optional[str] = None


def extract_media_playlist_uri(playlist_text: str, base_uri: Optional[str] = None) -> str:
    """マスタープレイリストから最初のバリアントのURIを取り出す

    サービスは常にバリアントを1つだけ返す。解析できないプレイリストは
    多くの場合パーサーではなく認証・権利の問題なので、生テキストを例外に添付する。

    Args:
        playlist_text: マスタープレイリスト本文
        base_uri: 相対URIを解決する基準URL

    Returns:
        str: メディアプレイリストURI

    Raises:
        PlaylistParseError: M3U8として解析できない
        NoVariantStream: バリアントストリームがない
    """
    if not playlist_text or not playlist_text.lstrip().startswith(M3U8_HEADER):
        raise PlaylistParseError("M3U8形式ではありません", playlist_text or "")

    try:
        playlist = m3u8.loads(playlist_text)
    except Exception as e:
        raise PlaylistParseError(f"プレイリストの解析に失敗しました: {e}", playlist_text) from e

    if not playlist.is_variant or not playlist.playlists:
        raise NoVariantStream(playlist_text)

    uri = playlist.playlists[0].uri
    if not uri:
        raise NoVariantStream(playlist_text)

    if base_uri:
        return urljoin(base_uri, uri)
    return uri


class StreamResolver(LoggerMixin):
    """ストリームURL解決クラス"""

    def __init__(self, endpoints: RadikoEndpoints = DEFAULT_ENDPOINTS):
        super().__init__()
        self.endpoints = endpoints

    def resolve_stream_url(self, session: RadikoSession, station_id: str) -> str:
        """プレイリスト作成URLを組み立てる（通信なし）

        エリアフリーのセッションでは地域制限のないパスを使う。
        """
        return self.endpoints.playlist_create_url(
            station_id,
            session.local_stream_id,
            area_free=session.region_unlocked
        )

    async def fetch_master_playlist(self, session: RadikoSession, station_id: str) -> str:
        """マスタープレイリストを取得

        Raises:
            PlaylistFetchError: 非成功ステータス（応答本文を添付）
            FetchError: 通信失敗
        """
        url = self.resolve_stream_url(session, station_id)
        self.logger.info(f"マスタープレイリスト取得: {station_id}")

        response = await fetch_text(session.transport, "GET", url,
                                    category=ErrorCategory.STREAMING)
        if not response.ok:
            self.logger.error(f"マスタープレイリスト取得失敗: {station_id} HTTP {response.status}")
            raise PlaylistFetchError(station_id, response.status, response.text, url)

        self.logger.debug(f"マスタープレイリスト内容: {response.text[:500]}")
        return response.text

    async def resolve(self, session: RadikoSession, station_id: str) -> StreamTarget:
        """放送局のメディアプレイリストURLを求める

        Raises:
            StreamResolutionError: 取得・解析失敗
            FetchError: 通信失敗
        """
        playlist_url = self.resolve_stream_url(session, station_id)
        master_text = await self.fetch_master_playlist(session, station_id)

        try:
            media_url = extract_media_playlist_uri(master_text, base_uri=playlist_url)
        except PlaylistParseError:
            self.logger.error(f"マスタープレイリスト解析失敗: {station_id}")
            raise

        self.logger.info(f"メディアプレイリスト取得成功: {station_id}")
        return StreamTarget(station_id=station_id,
                            playlist_url=playlist_url,
                            media_playlist_url=media_url)

    @staticmethod
    def playback_headers(session: RadikoSession) -> dict:
        """外部プレイヤーに渡すHTTPヘッダー"""
        return session.auth_headers
