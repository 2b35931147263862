"""
pytest configuration for RadikoStream tests

Radikoへの実通信は行わず、tests.utils.fake_http の偽HTTPセッションを使う。
テストは unittest.TestCase で書き、非同期処理は asyncio.run で実行する。
"""

import os
import sys

sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..'))

# ロガー初期化前にテストモードを有効化
os.environ["RADIKO_STREAM_TEST_MODE"] = "true"
