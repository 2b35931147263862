#!/usr/bin/env python3
"""
RadikoStream - Radiko認証とライブストリームURL取得

このファイルはRadikoStreamのメインエントリーポイントです。
Radikoのセッションを確立し、放送局のHLSメディアプレイリストURLを表示します。

主要機能:
- 接続元の地域判定
- auth1/auth2による認証トークンの有効化
- 会員ログインによるエリアフリー
- 放送局IDからのメディアプレイリストURL解決

使用例:
    python RadikoStream.py url TBS
    python RadikoStream.py --config custom_config.json stations
"""

import sys
import warnings
from pathlib import Path

# プロジェクトルートディレクトリをPythonパスに追加
project_root = Path(__file__).parent
sys.path.insert(0, str(project_root))

try:
    from radiko_stream.cli import RadikoStreamCLI

except ImportError as e:
    print(f"モジュールインポートエラー: {e}")
    print("必要な依存関係がインストールされていない可能性があります。")
    print("pip install -e . を実行してください。")
    sys.exit(1)


def main():
    """メインエントリーポイント"""
    warnings.filterwarnings('ignore', category=DeprecationWarning)

    try:
        cli = RadikoStreamCLI()
        sys.exit(cli.run())

    except KeyboardInterrupt:
        print("\n操作がキャンセルされました")
        sys.exit(130)


if __name__ == "__main__":
    main()
