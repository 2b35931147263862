"""
CLIインターフェースモジュール

このモジュールはRadikoStreamのコマンドライン操作を提供します。
- area: 接続元の地域判定
- stations: 放送局リスト表示
- url: メディアプレイリストURLの解決
- playlist-url: プレイリスト作成URLの表示
- programs: 放送中の番組・週間番組表・番組検索
- save-credentials / forget-credentials: エリアフリー用認証情報の管理
"""

import argparse
import asyncio
import getpass
import os
import sys
from pathlib import Path
from typing import Any, Dict, List, Optional

from . import __version__
from .auth import Credentials
from .client import RadikoStreamClient
from .credential_store import CredentialStore
from .error_handler import (
    ConfigurationError,
    ErrorCategory,
    ErrorHandler,
    RadikoStreamError,
)
from .logging_config import reset_logging, setup_logging
from .program_info import SearchCondition, SearchFilter
from .region_mapper import RegionMapper, RegionResolver
from .endpoints import RadikoEndpoints
from .utils.base import LoggerMixin
from .utils.config_utils import ConfigManager, DEFAULT_CONFIG
from .utils.network_utils import create_radiko_session


class RadikoStreamCLI(LoggerMixin):
    """RadikoStream CLIメインクラス"""

    VERSION = __version__

    def __init__(self, config_path: str = "config.json",
                 client_factory=RadikoStreamClient,
                 error_handler: Optional[ErrorHandler] = None):
        super().__init__()
        self.config_path = Path(config_path)
        self.client_factory = client_factory
        self.error_handler = error_handler or ErrorHandler()
        self.config: Dict[str, Any] = dict(DEFAULT_CONFIG)

    def _load_config(self) -> Dict[str, Any]:
        """設定ファイルを読み込み、検証する"""
        config_manager = ConfigManager(self.config_path)
        config = config_manager.load_config(DEFAULT_CONFIG)

        errors = config_manager.validate_config(config)
        area_id = config.get("area_id")
        if area_id and not RegionMapper.validate_area_id(area_id):
            errors.append(f"area_id が不正です: {area_id}")
        if errors:
            raise ConfigurationError("設定ファイルが不正です: " + "; ".join(errors))

        return config

    def _credential_store(self) -> CredentialStore:
        return CredentialStore(self.config["credentials_file"],
                               self.config["encryption_key_file"])

    def _load_credentials(self) -> Optional[Credentials]:
        """環境変数または暗号化ストアから認証情報を取得"""
        mail = os.environ.get("RADIKO_MAIL")
        password = os.environ.get("RADIKO_PASSWORD")
        if mail and password:
            return Credentials.create(mail, password)
        return self._credential_store().load()

    def create_parser(self) -> argparse.ArgumentParser:
        """コマンドライン引数パーサーを作成"""
        parser = argparse.ArgumentParser(
            prog="radiko-stream",
            description="Radikoの認証を行い、放送局のHLSストリームURLを取得します",
            formatter_class=argparse.RawDescriptionHelpFormatter,
            epilog="""
使用例:
  radiko-stream area
  radiko-stream stations --area JP13
  radiko-stream url TBS
  radiko-stream url TBS --area-free --show-token
  radiko-stream programs --station TBS
  radiko-stream programs --search 深夜 --filter timefree
            """
        )
        parser.add_argument('--version', action='version', version=f'RadikoStream {self.VERSION}')
        parser.add_argument('--config', help='設定ファイルパス', default=str(self.config_path))
        parser.add_argument('--verbose', '-v', action='store_true', help='詳細ログを表示')

        subparsers = parser.add_subparsers(dest='command')

        subparsers.add_parser('area', help='接続元の地域を判定')

        stations_parser = subparsers.add_parser('stations', help='放送局リストを表示')
        stations_parser.add_argument('--area', help='地域ID（例: JP13）')
        stations_parser.add_argument('--area-free', action='store_true', help='会員ログインを行う')

        url_parser = subparsers.add_parser('url', help='メディアプレイリストURLを取得')
        url_parser.add_argument('station_id', help='放送局ID（例: TBS）')
        url_parser.add_argument('--area-free', action='store_true', help='会員ログインを行う')
        url_parser.add_argument('--show-token', action='store_true',
                                help='外部プレイヤー用の認証ヘッダーも表示')

        playlist_parser = subparsers.add_parser('playlist-url', help='プレイリスト作成URLを表示')
        playlist_parser.add_argument('station_id', help='放送局ID（例: TBS）')
        playlist_parser.add_argument('--area-free', action='store_true', help='会員ログインを行う')

        programs_parser = subparsers.add_parser('programs', help='番組表を表示・番組を検索')
        programs_parser.add_argument('--station', help='週間番組表を表示する放送局ID')
        programs_parser.add_argument('--search', action='append', metavar='KEYWORD',
                                     help='番組検索キーワード（複数指定可）')
        programs_parser.add_argument('--filter', choices=['live', 'all', 'timefree'],
                                     default='live', help='検索対象（既定: live）')
        programs_parser.add_argument('--area', help='地域ID（例: JP13）')
        programs_parser.add_argument('--area-free', action='store_true', help='会員ログインを行う')

        subparsers.add_parser('save-credentials', help='エリアフリー用の認証情報を暗号化保存')
        subparsers.add_parser('forget-credentials', help='保存した認証情報を削除')

        return parser

    def run(self, args: Optional[List[str]] = None) -> int:
        """CLIを実行し、終了コードを返す"""
        parser = self.create_parser()
        parsed_args = parser.parse_args(args)

        if not parsed_args.command:
            parser.print_help()
            return 1

        self.config_path = Path(parsed_args.config)
        try:
            self.config = self._load_config()
        except ConfigurationError as e:
            print(f"設定エラー: {e}", file=sys.stderr)
            return 1

        reset_logging()
        setup_logging(
            log_level="DEBUG" if parsed_args.verbose else self.config.get("log_level"),
            log_file=self.config.get("log_file"),
            console_output=True if parsed_args.verbose else None
        )

        handler = getattr(self, f"_cmd_{parsed_args.command.replace('-', '_')}")
        try:
            return handler(parsed_args)
        except RadikoStreamError as e:
            self.error_handler.handle_error(e, {'command': parsed_args.command})
            print(self._describe_error(e), file=sys.stderr)
            return 1
        except KeyboardInterrupt:
            print("\n操作がキャンセルされました", file=sys.stderr)
            return 130

    def _describe_error(self, error: RadikoStreamError) -> str:
        """セッション確立失敗と放送局単位の失敗を区別して表示"""
        if error.category == ErrorCategory.AUTHENTICATION:
            return f"セッションを開始できません: {error.message}"
        if error.category == ErrorCategory.STREAMING:
            return f"この放送局は現在利用できません: {error.message}"
        if error.category == ErrorCategory.CONFIGURATION:
            return f"設定エラー: {error.message}"
        return f"エラー: {error.message}"

    def _create_client(self, area_free: bool) -> RadikoStreamClient:
        credentials = None
        if area_free:
            credentials = self._load_credentials()
            if credentials is None:
                raise ConfigurationError(
                    "認証情報がありません（save-credentials を実行するか、"
                    "RADIKO_MAIL / RADIKO_PASSWORD を設定してください）")
        return self.client_factory(config=self.config, credentials=credentials)

    def _cmd_area(self, args) -> int:
        """地域判定コマンド"""
        async def detect() -> str:
            http = create_radiko_session(timeout=self.config["request_timeout"])
            try:
                resolver = RegionResolver(RadikoEndpoints.from_config(self.config))
                return await resolver.resolve(http)
            finally:
                await http.close()

        area_id = asyncio.run(detect())
        prefecture = RegionMapper.get_prefecture_name(area_id) or "不明"
        print(f"{area_id} ({prefecture})")

        expected = self.config.get("area_id")
        if expected and expected != area_id:
            print(f"注意: 設定の地域 {expected} と判定結果 {area_id} が異なります", file=sys.stderr)
        return 0

    def _cmd_stations(self, args) -> int:
        """放送局リストコマンド"""
        async def fetch():
            async with self._create_client(args.area_free) as client:
                return await client.stations(args.area)

        stations = asyncio.run(fetch())
        if not stations:
            print("放送局が見つかりません")
            return 0

        for station in stations:
            print(f"{station.id:<12} {station.name}")
        return 0

    def _cmd_url(self, args) -> int:
        """メディアプレイリストURLコマンド"""
        async def resolve():
            async with self._create_client(args.area_free) as client:
                target = await client.resolve_stream(args.station_id)
                session = await client.session()
                return target, session.auth_headers

        target, headers = asyncio.run(resolve())
        print(target.media_playlist_url)
        if args.show_token:
            for name, value in headers.items():
                print(f"{name}: {value}")
        return 0

    def _cmd_playlist_url(self, args) -> int:
        """プレイリスト作成URLコマンド"""
        async def build() -> str:
            async with self._create_client(args.area_free) as client:
                return await client.playlist_url(args.station_id)

        print(asyncio.run(build()))
        return 0

    def _cmd_programs(self, args) -> int:
        """番組表・番組検索コマンド

        --search があれば検索、--station があれば週間番組表、
        どちらもなければ放送中の番組を表示する。
        """
        condition = None
        if args.search:
            condition = SearchCondition(
                keywords=args.search,
                filter=SearchFilter[args.filter.upper()],
                area_ids=[args.area] if args.area else [],
                station_ids=[args.station] if args.station else []
            )
            try:
                condition.to_query_params()
            except ValueError as e:
                print(f"エラー: {e}", file=sys.stderr)
                return 1

        async def fetch():
            async with self._create_client(args.area_free) as client:
                if condition is not None:
                    return await client.search_programs(condition)
                if args.station:
                    return await client.weekly_programs(args.station)
                return await client.now_on_air(args.area)

        programs = asyncio.run(fetch())
        if not programs:
            print("番組が見つかりません")
            return 0

        for program in programs:
            start = program.start_time.strftime('%Y-%m-%d %H:%M')
            end = program.end_time.strftime('%H:%M')
            print(f"{start}-{end} {program.station_id:<10} {program.title}")
        return 0

    def _cmd_save_credentials(self, args) -> int:
        """認証情報保存コマンド"""
        mail = input("メールアドレス: ").strip()
        password = getpass.getpass("パスワード: ")
        try:
            credentials = Credentials.create(mail, password)
        except ValueError as e:
            print(f"エラー: {e}", file=sys.stderr)
            return 1

        self._credential_store().save(credentials)
        print("認証情報を保存しました")
        return 0

    def _cmd_forget_credentials(self, args) -> int:
        """認証情報削除コマンド"""
        if self._credential_store().delete():
            print("認証情報を削除しました")
        else:
            print("保存された認証情報はありません")
        return 0


def main() -> int:
    """メインエントリーポイント"""
    return RadikoStreamCLI().run()


if __name__ == "__main__":
    sys.exit(main())
