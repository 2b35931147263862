"""
設定ファイル管理ユーティリティ

JSON設定ファイルの読み込み・保存・検証機能を提供します。
認証情報（メールアドレス・パスワード）は設定ファイルに保存せず、
CredentialStore で暗号化保存します。
"""

import json
from pathlib import Path
from typing import Dict, Any, Optional, Union, List

from radiko_stream.logging_config import get_logger

logger = get_logger(__name__)

# デフォルト設定
DEFAULT_CONFIG: Dict[str, Any] = {
    "area_id": "",                      # 期待する地域ID（空なら検証しない）
    "request_timeout": 30,              # 1リクエストあたりのタイムアウト秒数
    "radiko_base_url": "https://radiko.jp",
    "stream_base_url": "https://si-f-radiko.smartstream.ne.jp",
    "api_base_url": "https://api.radiko.jp",
    "log_level": "INFO",
    "log_file": "radiko_stream.log",
    "credentials_file": "credentials.json",
    "encryption_key_file": "encryption.key"
}

# 平文で設定ファイルに置いてはいけないキー
FORBIDDEN_KEYS = ("password", "pass", "mail")


class ConfigManager:
    """設定管理クラス

    Usage:
        config_manager = ConfigManager("config.json")
        config = config_manager.load_config(DEFAULT_CONFIG)
        config_manager.save_config(config)
    """

    def __init__(self, config_path: Union[str, Path], encoding: str = 'utf-8'):
        """初期化

        Args:
            config_path: 設定ファイルパス
            encoding: ファイルエンコーディング（デフォルト: utf-8）
        """
        self.config_path = Path(config_path)
        self.encoding = encoding

    def load_config(self, default_config: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
        """設定ファイルを読み込み

        Args:
            default_config: デフォルト設定辞書

        Returns:
            設定辞書（ファイルが存在しない・壊れている場合はデフォルト設定）
        """
        if default_config is None:
            default_config = {}

        if not self.config_path.exists():
            logger.info(f"設定ファイルが存在しません: {self.config_path}（デフォルト設定を使用）")
            return default_config.copy()

        try:
            with open(self.config_path, 'r', encoding=self.encoding) as f:
                config = json.load(f)
        except json.JSONDecodeError as e:
            logger.error(f"設定ファイルJSON解析エラー: {self.config_path} - {e}")
            return default_config.copy()
        except OSError as e:
            logger.error(f"設定ファイル読み込みエラー: {self.config_path} - {e}")
            return default_config.copy()

        if not isinstance(config, dict):
            logger.error(f"設定ファイルの形式が不正です: {self.config_path}")
            return default_config.copy()

        merged_config = default_config.copy()
        merged_config.update(config)

        logger.debug(f"設定ファイル読み込み成功: {self.config_path}")
        return merged_config

    def save_config(self, config: Dict[str, Any], indent: int = 2) -> bool:
        """設定ファイルを保存（一時ファイル経由で原子的に置換）

        Args:
            config: 保存する設定辞書
            indent: JSONインデント

        Returns:
            保存成功ならTrue
        """
        try:
            self.config_path.parent.mkdir(parents=True, exist_ok=True)
            temp_path = self.config_path.with_suffix('.tmp')

            with open(temp_path, 'w', encoding=self.encoding) as f:
                json.dump(config, f, ensure_ascii=False, indent=indent)

            temp_path.replace(self.config_path)

            logger.debug(f"設定ファイル保存成功: {self.config_path}")
            return True

        except OSError as e:
            logger.error(f"設定ファイル保存エラー: {self.config_path} - {e}")
            return False

    def validate_config(self, config: Dict[str, Any],
                        required_keys: Optional[List[str]] = None) -> List[str]:
        """設定データの検証

        Args:
            config: 検証する設定辞書
            required_keys: 必須キーのリスト

        Returns:
            エラーメッセージのリスト（空なら検証成功）
        """
        errors: List[str] = []

        if not isinstance(config, dict):
            return ["設定データが辞書型ではありません"]

        if required_keys:
            missing_keys = [key for key in required_keys if key not in config]
            if missing_keys:
                errors.append(f"必須キーが不足しています: {missing_keys}")

        for key in FORBIDDEN_KEYS:
            if key in config:
                errors.append(f"認証情報を設定ファイルに記載しないでください: {key}")

        timeout = config.get("request_timeout")
        if timeout is not None:
            if isinstance(timeout, bool) or not isinstance(timeout, (int, float)) or timeout <= 0:
                errors.append(f"request_timeout は正の数値で指定してください: {timeout!r}")

        for key in ("radiko_base_url", "stream_base_url", "api_base_url"):
            url = config.get(key)
            if url is not None and not (isinstance(url, str) and url.startswith("https://")):
                errors.append(f"{key} は https:// で始まるURLを指定してください: {url!r}")

        if errors:
            for error in errors:
                logger.error(f"設定検証エラー: {error}")
        else:
            logger.debug("設定データ検証成功")

        return errors
