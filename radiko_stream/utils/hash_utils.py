"""
ハッシュ生成ユーティリティ

公式プレイヤーがクライアント側で生成するストリームID（lsid）を模倣します。
サーバーはlsidの値を検証せず、存在と形式のみを確認します。
認証トークン（サーバー発行）とは無関係です。
"""

import hashlib
import random
import time
from typing import Optional

LSID_RANDOM_UPPER_BOUND = 10 ** 9


def generate_lsid(random_value: Optional[int] = None,
                  timestamp_ms: Optional[int] = None) -> str:
    """ローカルストリームIDを生成

    0以上10^9未満の乱数と現在時刻（ミリ秒）を文字列連結し、
    MD5ハッシュの16進小文字表現を返す。

    Args:
        random_value: 乱数（テスト用に固定可能）
        timestamp_ms: UNIXミリ秒（テスト用に固定可能）

    Returns:
        str: 32文字の16進文字列
    """
    if random_value is None:
        random_value = random.randrange(LSID_RANDOM_UPPER_BOUND)
    if timestamp_ms is None:
        timestamp_ms = int(time.time() * 1000)

    source = f"{random_value}{timestamp_ms}"
    return hashlib.md5(source.encode('utf-8')).hexdigest()
