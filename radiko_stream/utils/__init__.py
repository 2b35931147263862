"""
RadikoStream ユーティリティモジュール

共通機能やヘルパー関数を提供するユーティリティパッケージ
"""

from typing import List
from .base import LoggerMixin
from .hash_utils import generate_lsid
from .network_utils import create_radiko_session, is_success
from .sensitive import SensitiveValue, redact_for_log

__all__: List[str] = [
    'LoggerMixin',
    'generate_lsid',
    'create_radiko_session',
    'is_success',
    'SensitiveValue',
    'redact_for_log'
]
