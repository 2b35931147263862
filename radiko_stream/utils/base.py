"""
基底クラスとMixin

共通機能を提供する基底クラスとMixin
"""

import logging

from radiko_stream.logging_config import get_logger


class LoggerMixin:
    """ロガー機能を提供するMixin

    Usage:
        class SecretKeyFetcher(LoggerMixin):
            def __init__(self):
                super().__init__()  # self.logger が利用可能になる
    """

    logger: logging.Logger

    def __init__(self) -> None:
        """ロガーを自動初期化"""
        self.logger = get_logger(self.__class__.__module__)
