"""
地域判定モジュール

- 接続元の地域ID（JP13等）をRadikoのエリア判定エンドポイントから取得
- 地域IDと都道府県名の相互変換（CLI表示・設定値の検証用）
"""

import re
from dataclasses import dataclass
from typing import Dict, List, Optional

import aiohttp

from .endpoints import DEFAULT_ENDPOINTS, RadikoEndpoints
from .error_handler import ErrorCategory, PatternNotFound
from .transport import fetch_text, require_success
from .utils.base import LoggerMixin

# <span class="JP13">TOKYO JAPAN</span>
AREA_ID_PATTERN = re.compile(r"[A-Z]{2}[0-9]{1,2}")


@dataclass(frozen=True)
class RegionInfo:
    """地域情報"""
    area_id: str           # 地域ID（JP13等）
    prefecture_ja: str     # 都道府県名（日本語）
    prefecture_en: str     # 都道府県名（英語）
    region_name: str       # 地方名


_PREFECTURES = [
    ("北海道", "Hokkaido", "北海道"),
    ("青森県", "Aomori", "東北"), ("岩手県", "Iwate", "東北"), ("宮城県", "Miyagi", "東北"),
    ("秋田県", "Akita", "東北"), ("山形県", "Yamagata", "東北"), ("福島県", "Fukushima", "東北"),
    ("茨城県", "Ibaraki", "関東"), ("栃木県", "Tochigi", "関東"), ("群馬県", "Gunma", "関東"),
    ("埼玉県", "Saitama", "関東"), ("千葉県", "Chiba", "関東"), ("東京都", "Tokyo", "関東"),
    ("神奈川県", "Kanagawa", "関東"),
    ("新潟県", "Niigata", "中部"), ("富山県", "Toyama", "中部"), ("石川県", "Ishikawa", "中部"),
    ("福井県", "Fukui", "中部"), ("山梨県", "Yamanashi", "中部"), ("長野県", "Nagano", "中部"),
    ("岐阜県", "Gifu", "中部"), ("静岡県", "Shizuoka", "中部"), ("愛知県", "Aichi", "中部"),
    ("三重県", "Mie", "近畿"), ("滋賀県", "Shiga", "近畿"), ("京都府", "Kyoto", "近畿"),
    ("大阪府", "Osaka", "近畿"), ("兵庫県", "Hyogo", "近畿"), ("奈良県", "Nara", "近畿"),
    ("和歌山県", "Wakayama", "近畿"),
    ("鳥取県", "Tottori", "中国"), ("島根県", "Shimane", "中国"), ("岡山県", "Okayama", "中国"),
    ("広島県", "Hiroshima", "中国"), ("山口県", "Yamaguchi", "中国"),
    ("徳島県", "Tokushima", "四国"), ("香川県", "Kagawa", "四国"), ("愛媛県", "Ehime", "四国"),
    ("高知県", "Kochi", "四国"),
    ("福岡県", "Fukuoka", "九州・沖縄"), ("佐賀県", "Saga", "九州・沖縄"),
    ("長崎県", "Nagasaki", "九州・沖縄"), ("熊本県", "Kumamoto", "九州・沖縄"),
    ("大分県", "Oita", "九州・沖縄"), ("宮崎県", "Miyazaki", "九州・沖縄"),
    ("鹿児島県", "Kagoshima", "九州・沖縄"), ("沖縄県", "Okinawa", "九州・沖縄"),
]


class RegionMapper:
    """地域IDマッピングクラス"""

    REGION_INFO: Dict[str, RegionInfo] = {
        f"JP{index}": RegionInfo(f"JP{index}", ja, en, region)
        for index, (ja, en, region) in enumerate(_PREFECTURES, start=1)
    }

    @classmethod
    def get_area_id(cls, prefecture_name: str) -> Optional[str]:
        """都道府県名（日本語・英語、接尾辞省略可）から地域IDを取得"""
        if not prefecture_name or not prefecture_name.strip():
            return None

        name = prefecture_name.strip()
        for area_id, info in cls.REGION_INFO.items():
            if name == info.prefecture_ja or name.lower() == info.prefecture_en.lower():
                return area_id
            # 「東京」「大阪」のような接尾辞なしの表記（北海道は接尾辞なし）
            if info.prefecture_ja != "北海道" and name == info.prefecture_ja[:-1]:
                return area_id
        return None

    @classmethod
    def get_prefecture_name(cls, area_id: str) -> Optional[str]:
        """地域IDから都道府県名（日本語）を取得"""
        region_info = cls.REGION_INFO.get(area_id)
        return region_info.prefecture_ja if region_info else None

    @classmethod
    def get_region_info(cls, area_id: str) -> Optional[RegionInfo]:
        """地域IDから詳細情報を取得"""
        return cls.REGION_INFO.get(area_id)

    @classmethod
    def search_prefecture(cls, query: str) -> List[RegionInfo]:
        """都道府県名の部分検索"""
        if not query or not query.strip():
            return []

        query = query.strip()
        return [
            info for info in cls.REGION_INFO.values()
            if query in info.prefecture_ja or query.lower() in info.prefecture_en.lower()
        ]

    @classmethod
    def validate_area_id(cls, area_id: str) -> bool:
        """地域IDの妥当性を確認"""
        return area_id in cls.REGION_INFO


def extract_area_id(body: str, url: str = "") -> str:
    """エリア判定レスポンス本文から地域IDを抽出

    Raises:
        PatternNotFound: 地域IDが含まれていない
    """
    match = AREA_ID_PATTERN.search(body)
    if not match:
        raise PatternNotFound(
            "エリア判定レスポンスに地域IDが見つかりません",
            what="area_id",
            url=url,
            category=ErrorCategory.AUTHENTICATION
        )
    return match.group(0)


class RegionResolver(LoggerMixin):
    """接続元の地域IDを判定するクラス"""

    def __init__(self, endpoints: RadikoEndpoints = DEFAULT_ENDPOINTS):
        super().__init__()
        self.endpoints = endpoints

    async def resolve(self, http: aiohttp.ClientSession) -> str:
        """地域IDを取得

        Raises:
            FetchError: 取得失敗
            PatternNotFound: 本文に地域IDがない
        """
        url = self.endpoints.area_url
        response = require_success(
            await fetch_text(http, "GET", url, category=ErrorCategory.AUTHENTICATION),
            ErrorCategory.AUTHENTICATION
        )

        area_id = extract_area_id(response.text, url)
        prefecture = RegionMapper.get_prefecture_name(area_id) or "不明"
        self.logger.info(f"地域判定成功: {area_id} ({prefecture})")
        return area_id
