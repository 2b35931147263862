"""
エラーハンドリングモジュール

このモジュールはRadikoStreamの統一エラーハンドリングを提供します。
- カスタム例外クラス（セッション確立失敗と放送局単位の失敗を区別）
- エラー記録と集計
- 秘匿値を伏せたエラーロギング

呼び出し側の扱い:
- ErrorCategory.AUTHENTICATION: 「セッションを開始できない」
- ErrorCategory.STREAMING: 「この放送局は現在利用できない」
"""

import hashlib
import logging
import threading
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Dict, List, Optional

from .logging_config import get_logger
from .utils.sensitive import redact_for_log


class ErrorSeverity(Enum):
    """エラー重要度"""
    LOW = "low"           # 軽微な警告
    MEDIUM = "medium"     # 注意が必要なエラー
    HIGH = "high"         # 重要なエラー
    CRITICAL = "critical" # 致命的なエラー


class ErrorCategory(Enum):
    """エラーカテゴリ"""
    AUTHENTICATION = "authentication"     # セッション確立（認証・地域判定・キー取得）
    STREAMING = "streaming"               # ストリームURL解決
    NETWORK = "network"                   # フェーズ不明のネットワークエラー
    CONFIGURATION = "configuration"       # 設定関連
    UNKNOWN = "unknown"                   # 不明


@dataclass
class ErrorRecord:
    """エラー記録"""
    id: str
    timestamp: datetime
    severity: ErrorSeverity
    category: ErrorCategory
    error_type: str
    message: str
    context: Dict[str, Any] = field(default_factory=dict)
    occurrence_count: int = 1
    last_occurred: datetime = field(default_factory=datetime.now)

    def to_dict(self) -> Dict[str, Any]:
        """辞書形式に変換"""
        return {
            'id': self.id,
            'timestamp': self.timestamp.isoformat(),
            'severity': self.severity.value,
            'category': self.category.value,
            'error_type': self.error_type,
            'message': self.message,
            'context': self.context,
            'occurrence_count': self.occurrence_count,
            'last_occurred': self.last_occurred.isoformat()
        }


# カスタム例外クラス群

class RadikoStreamError(Exception):
    """RadikoStream基底例外クラス"""
    def __init__(self, message: str, category: ErrorCategory = ErrorCategory.UNKNOWN,
                 severity: ErrorSeverity = ErrorSeverity.MEDIUM,
                 context: Optional[Dict[str, Any]] = None):
        super().__init__(message)
        self.message = message
        self.category = category
        self.severity = severity
        self.context = context or {}


class FetchError(RadikoStreamError):
    """必須エンドポイントへの到達失敗（通信エラー・想定外のステータス）"""
    def __init__(self, message: str, url: str = "", status: Optional[int] = None,
                 category: ErrorCategory = ErrorCategory.NETWORK,
                 context: Optional[Dict[str, Any]] = None):
        self.url = url
        self.status = status
        context = {**(context or {}), 'url': url, 'status': status}
        super().__init__(message, category, ErrorSeverity.HIGH, context)


class PatternNotFound(RadikoStreamError):
    """レスポンス本文に期待したリテラルが存在しない（上流の形式変更）"""
    def __init__(self, message: str, what: str, url: str = "",
                 category: ErrorCategory = ErrorCategory.AUTHENTICATION):
        self.what = what
        self.url = url
        super().__init__(message, category, ErrorSeverity.CRITICAL,
                         {'what': what, 'url': url})


class NegotiationError(RadikoStreamError):
    """セッション確立（ハンドシェイク）失敗の基底クラス"""
    def __init__(self, message: str, severity: ErrorSeverity = ErrorSeverity.HIGH,
                 context: Optional[Dict[str, Any]] = None):
        super().__init__(message, ErrorCategory.AUTHENTICATION, severity, context)


class MissingAuthHeaders(NegotiationError):
    """auth1レスポンスに必要なヘッダーがない、または数値でない"""
    def __init__(self, message: str, missing: Optional[List[str]] = None):
        self.missing = missing or []
        super().__init__(message, ErrorSeverity.CRITICAL, {'missing': self.missing})


class KeySliceOutOfRange(NegotiationError):
    """offset+length が認証キー長を超えている"""
    def __init__(self, offset: int, length: int, key_size: int):
        self.offset = offset
        self.length = length
        self.key_size = key_size
        super().__init__(
            f"部分キーの範囲が認証キー長を超えています: "
            f"offset={offset}, length={length}, key_size={key_size}",
            ErrorSeverity.CRITICAL,
            {'offset': offset, 'length': length, 'key_size': key_size}
        )


class Auth2Rejected(NegotiationError):
    """auth2で部分キーが拒否された

    キー本体や部分キーは保持しない。offset・length・キー長と
    サーバーの応答本文から、どれが古くなったかを切り分ける。
    """
    def __init__(self, status: int, body: str, offset: int, length: int, key_size: int):
        self.status = status
        self.body = body
        self.offset = offset
        self.length = length
        self.key_size = key_size
        super().__init__(
            f"auth2が拒否されました: HTTP {status} "
            f"(offset={offset}, length={length}, key_size={key_size}): {body.strip()}",
            ErrorSeverity.CRITICAL,
            {'status': status, 'body': body, 'offset': offset,
             'length': length, 'key_size': key_size}
        )


class LoginRejected(NegotiationError):
    """会員ログイン失敗（メールアドレス・パスワードは含めない）"""
    def __init__(self, message: str, status: Optional[int] = None):
        self.status = status
        super().__init__(message, ErrorSeverity.HIGH, {'status': status})


class StreamResolutionError(RadikoStreamError):
    """ストリームURL解決失敗の基底クラス（セッションは無効化されない）"""
    def __init__(self, message: str, severity: ErrorSeverity = ErrorSeverity.MEDIUM,
                 context: Optional[Dict[str, Any]] = None):
        super().__init__(message, ErrorCategory.STREAMING, severity, context)


class PlaylistFetchError(StreamResolutionError):
    """マスタープレイリスト取得で非成功ステータス（本文を添付）"""
    def __init__(self, station_id: str, status: int, body: str, url: str = ""):
        self.station_id = station_id
        self.status = status
        self.body = body
        self.url = url
        super().__init__(
            f"プレイリスト取得失敗: {station_id} HTTP {status}: {body.strip()}",
            ErrorSeverity.MEDIUM,
            {'station_id': station_id, 'status': status, 'body': body, 'url': url}
        )


class PlaylistParseError(StreamResolutionError):
    """マスタープレイリストの解析失敗（生テキストを添付）"""
    def __init__(self, message: str, playlist_text: str):
        self.playlist_text = playlist_text
        super().__init__(f"{message}\n--- playlist ---\n{playlist_text}",
                         ErrorSeverity.MEDIUM, {'playlist_text': playlist_text})


class NoVariantStream(PlaylistParseError):
    """マスタープレイリストにバリアントストリームがない"""
    def __init__(self, playlist_text: str):
        super().__init__("バリアントストリームが見つかりません", playlist_text)


class ConfigurationError(RadikoStreamError):
    """設定エラー"""
    def __init__(self, message: str, context: Optional[Dict[str, Any]] = None):
        super().__init__(message, ErrorCategory.CONFIGURATION, ErrorSeverity.HIGH, context)


class ErrorHandler:
    """エラー記録・集計クラス

    復旧処理は行わない。記録・ログ出力のみを担当し、
    呼び出し側は例外の種類で挙動を決める。
    """

    def __init__(self, max_records: int = 200):
        self.logger = get_logger("radiko_stream.ErrorHandler")
        self.max_records = max_records
        self.error_records: Dict[str, ErrorRecord] = {}
        self.lock = threading.Lock()

    def handle_error(self, error: Exception,
                     context: Optional[Dict[str, Any]] = None) -> str:
        """エラーを記録し、エラーIDを返す"""
        error_type = type(error).__name__
        message = str(error)

        if isinstance(error, RadikoStreamError):
            category = error.category
            severity = error.severity
            context = {**error.context, **(context or {})}
        else:
            category = ErrorCategory.UNKNOWN
            severity = ErrorSeverity.MEDIUM
            context = context or {}

        safe_context = redact_for_log(context)
        error_id = self._generate_error_id(error_type, message)

        with self.lock:
            record = self.error_records.get(error_id)
            if record:
                record.occurrence_count += 1
                record.last_occurred = datetime.now()
                record.context.update(safe_context)
            else:
                record = ErrorRecord(
                    id=error_id,
                    timestamp=datetime.now(),
                    severity=severity,
                    category=category,
                    error_type=error_type,
                    message=message,
                    context=safe_context
                )
                self.error_records[error_id] = record
                self._trim_records()

        self.logger.log(self._get_log_level(severity),
                        f"[{error_id}] {category.value}: {error_type}: {message}")
        if safe_context:
            self.logger.debug(f"[{error_id}] Context: {safe_context}")

        return error_id

    def get_error_statistics(self) -> Dict[str, Any]:
        """カテゴリ別・重要度別の集計を返す"""
        with self.lock:
            records = list(self.error_records.values())

        by_category: Dict[str, int] = {}
        by_severity: Dict[str, int] = {}
        for record in records:
            by_category[record.category.value] = (
                by_category.get(record.category.value, 0) + record.occurrence_count)
            by_severity[record.severity.value] = (
                by_severity.get(record.severity.value, 0) + record.occurrence_count)

        return {
            'unique_errors': len(records),
            'total_occurrences': sum(r.occurrence_count for r in records),
            'by_category': by_category,
            'by_severity': by_severity
        }

    def _generate_error_id(self, error_type: str, message: str) -> str:
        """エラーIDを生成（同一種別・同一メッセージは同じID）"""
        digest = hashlib.md5(f"{error_type}:{message}".encode('utf-8')).hexdigest()
        return digest[:12]

    def _trim_records(self) -> None:
        """古い記録を削除（lock保持中に呼ぶ）"""
        overflow = len(self.error_records) - self.max_records
        if overflow <= 0:
            return
        oldest = sorted(self.error_records.values(), key=lambda r: r.last_occurred)[:overflow]
        for record in oldest:
            del self.error_records[record.id]

    def _get_log_level(self, severity: ErrorSeverity) -> int:
        """重要度からログレベルを決定"""
        return {
            ErrorSeverity.LOW: logging.INFO,
            ErrorSeverity.MEDIUM: logging.WARNING,
            ErrorSeverity.HIGH: logging.ERROR,
            ErrorSeverity.CRITICAL: logging.CRITICAL
        }[severity]
