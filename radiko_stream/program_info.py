"""
放送局・番組情報モジュール

認証済みセッションを使って以下を取得します。
- 放送局リスト（地域ID単位）
- 放送中の番組（地域ID単位）
- 週間番組表（放送局単位）
- 番組のキーワード検索

ハンドシェイクには関与しない薄いマッピング層で、
XML/JSONから必要な項目だけを取り出す。検索結果のページ送りは扱わない。
"""

import json
import re
import xml.etree.ElementTree as ET
from dataclasses import dataclass, asdict, field
from datetime import datetime
from enum import Enum
from typing import Any, Dict, List, Optional, Tuple

import pytz

from .endpoints import DEFAULT_ENDPOINTS, RadikoEndpoints
from .error_handler import ErrorCategory, FetchError
from .logging_config import get_logger
from .session import RadikoSession
from .transport import FetchedResponse, fetch_text, require_success
from .utils.base import LoggerMixin

logger = get_logger(__name__)

JST = pytz.timezone('Asia/Tokyo')


@dataclass
class Station:
    """放送局情報"""
    id: str
    name: str
    ascii_name: str = ""
    area_id: str = ""
    areafree: bool = False
    timefree: bool = False
    logo_url: str = ""
    banner_url: str = ""

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


def _get_element_text(parent: ET.Element, tag_name: str) -> str:
    element = parent.find(tag_name)
    return (element.text or "").strip() if element is not None else ""


def parse_station_list(xml_text: str, area_id: str = "") -> List[Station]:
    """放送局リストXMLを解析

    Raises:
        ET.ParseError: XMLとして解析できない
    """
    root = ET.fromstring(xml_text)
    area_id = root.get("area_id") or area_id

    stations = []
    for station_elem in root.findall('.//station'):
        station = Station(
            id=_get_element_text(station_elem, 'id'),
            name=_get_element_text(station_elem, 'name'),
            ascii_name=_get_element_text(station_elem, 'ascii_name'),
            area_id=area_id,
            areafree=_get_element_text(station_elem, 'areafree') == "1",
            timefree=_get_element_text(station_elem, 'timefree') == "1",
            logo_url=_get_element_text(station_elem, 'logo'),
            banner_url=_get_element_text(station_elem, 'banner')
        )
        if station.id and station.name:
            stations.append(station)

    return stations


class StationDirectory(LoggerMixin):
    """放送局リスト取得クラス"""

    def __init__(self, endpoints: RadikoEndpoints = DEFAULT_ENDPOINTS):
        super().__init__()
        self.endpoints = endpoints

    async def fetch_stations(self, session: RadikoSession,
                             area_id: Optional[str] = None) -> List[Station]:
        """放送局リストを取得

        Args:
            session: 認証済みセッション
            area_id: 地域ID（省略時はセッションの地域）

        Raises:
            FetchError: 取得失敗・XML解析失敗
        """
        area_id = area_id or session.region_code
        url = self.endpoints.station_list_url(area_id)
        self.logger.info(f"放送局リストを取得中: area_id={area_id}")

        response = require_success(
            await fetch_text(session.transport, "GET", url, category=ErrorCategory.NETWORK),
            ErrorCategory.NETWORK
        )

        try:
            stations = parse_station_list(response.text, area_id)
        except ET.ParseError as e:
            self.logger.error(f"XML解析エラー: {e}")
            raise FetchError(f"放送局リストの解析に失敗しました: {e}", url=url,
                             status=response.status) from e

        self.logger.info(f"放送局リスト取得完了: {len(stations)}局")
        return stations


@dataclass
class Program:
    """番組情報"""
    id: str
    station_id: str
    title: str
    start_time: datetime
    end_time: datetime
    duration: int  # 分
    description: str = ""
    performers: List[str] = None
    genre: str = ""
    url: str = ""
    image_url: str = ""

    def __post_init__(self):
        if self.performers is None:
            self.performers = []

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        data['start_time'] = self.start_time.isoformat()
        data['end_time'] = self.end_time.isoformat()
        return data

    def is_on_air(self, now: Optional[datetime] = None) -> bool:
        """指定時刻（省略時は現在）に放送中か"""
        now = now or datetime.now(JST)
        return self.start_time <= now < self.end_time


def _parse_radiko_time(time_str: str) -> datetime:
    """Radikoの時刻文字列をJSTのdatetimeに変換（複数形式対応）"""
    time_formats = [
        '%Y%m%d%H%M%S',       # 20250629050000 (番組表XML)
        '%Y-%m-%d %H:%M:%S',  # 2025-06-29 05:00:00 (検索API)
        '%Y-%m-%dT%H:%M:%S',
        '%Y%m%d%H%M',
    ]

    for fmt in time_formats:
        try:
            return JST.localize(datetime.strptime(time_str, fmt))
        except ValueError:
            continue

    raise ValueError(f"時刻の解析に失敗しました: {time_str}")


def _split_performers(text: str) -> List[str]:
    return [p.strip() for p in re.split(r'[,、]', text or "") if p.strip()]


def _make_program(station_id: str, title: str, start_str: str, end_str: str,
                  **extra: Any) -> Program:
    start_time = _parse_radiko_time(start_str)
    end_time = _parse_radiko_time(end_str)
    return Program(
        id=f"{station_id}_{start_time.strftime('%Y%m%d%H%M%S')}",
        station_id=station_id,
        title=title,
        start_time=start_time,
        end_time=end_time,
        duration=int((end_time - start_time).total_seconds() / 60),
        **extra
    )


def parse_program_list(xml_text: str) -> List[Program]:
    """番組表XML（放送中・週間番組表）を解析

    時刻やタイトルが欠けた番組は警告を出して読み飛ばす。

    Raises:
        ET.ParseError: XMLとして解析できない
    """
    root = ET.fromstring(xml_text)

    programs = []
    for station_elem in root.findall('.//station'):
        station_id = station_elem.get('id', '')
        for prog_elem in station_elem.findall('.//prog'):
            start_str = prog_elem.get('ft', '')
            end_str = prog_elem.get('to', '')
            title = _get_element_text(prog_elem, 'title')

            if not all([station_id, start_str, end_str, title]):
                logger.warning(f"必須項目のない番組を読み飛ばします: station_id={station_id}, ft={start_str}")
                continue

            try:
                program = _make_program(
                    station_id, title, start_str, end_str,
                    description=_get_element_text(prog_elem, 'desc'),
                    performers=_split_performers(_get_element_text(prog_elem, 'pfm')),
                    genre=_get_element_text(prog_elem, 'genre/program/name'),
                    url=_get_element_text(prog_elem, 'url'),
                    image_url=_get_element_text(prog_elem, 'img')
                )
            except ValueError as e:
                logger.warning(f"番組要素解析エラー: {e}")
                continue

            programs.append(program)

    return programs


def parse_search_results(json_text: str) -> List[Program]:
    """番組検索APIのJSONを解析

    Raises:
        ValueError: JSONとして解析できない、または形式が異なる
    """
    payload = json.loads(json_text)
    if not isinstance(payload, dict):
        raise ValueError("検索結果の形式が不正です")

    programs = []
    for item in payload.get('data') or []:
        if not isinstance(item, dict):
            continue
        station_id = item.get('station_id', '')
        title = item.get('title', '')
        start_str = item.get('start_time', '')
        end_str = item.get('end_time', '')

        if not all([station_id, title, start_str, end_str]):
            logger.warning(f"必須項目のない検索結果を読み飛ばします: {item.get('title', '')}")
            continue

        genre = (item.get('genre') or {}).get('program') or {}
        try:
            program = _make_program(
                station_id, title, start_str, end_str,
                description=item.get('description') or "",
                performers=_split_performers(item.get('performer') or ""),
                genre=genre.get('name', ""),
                url=item.get('program_url') or "",
                image_url=item.get('img') or ""
            )
        except ValueError as e:
            logger.warning(f"検索結果解析エラー: {e}")
            continue

        programs.append(program)

    return programs


class SearchFilter(Enum):
    """検索対象の期間"""
    LIVE = "future"
    ALL = ""
    TIMEFREE = "past"


@dataclass
class SearchCondition:
    """番組検索条件"""
    keywords: List[str]
    filter: SearchFilter = SearchFilter.LIVE
    start_day: Optional[str] = None
    end_day: Optional[str] = None
    row_limit: Optional[int] = 50
    area_ids: List[str] = field(default_factory=list)
    station_ids: List[str] = field(default_factory=list)
    cur_area_id: Optional[str] = None

    def to_query_params(self) -> List[Tuple[str, str]]:
        """クエリパラメータに変換（複数指定の項目は同じキーを繰り返す）

        Raises:
            ValueError: キーワードが指定されていない
        """
        keywords = [k for k in self.keywords if k and k.strip()]
        if not keywords:
            raise ValueError("検索キーワードが必要です")

        params = [('key', k) for k in keywords]
        params.extend(('station_id', s) for s in self.station_ids)
        params.extend(('area_id', a) for a in self.area_ids)

        if self.cur_area_id:
            params.append(('cur_area_id', self.cur_area_id))
        if self.start_day:
            params.append(('start_day', self.start_day))
        if self.end_day:
            params.append(('end_day', self.end_day))
        params.append(('filter', self.filter.value))
        if self.row_limit is not None:
            params.append(('row_limit', str(self.row_limit)))

        return params


class ProgramDirectory(LoggerMixin):
    """番組情報取得クラス"""

    def __init__(self, endpoints: RadikoEndpoints = DEFAULT_ENDPOINTS):
        super().__init__()
        self.endpoints = endpoints

    async def _get(self, session: RadikoSession, url: str) -> FetchedResponse:
        return require_success(
            await fetch_text(session.transport, "GET", url, category=ErrorCategory.NETWORK),
            ErrorCategory.NETWORK
        )

    def _parse_xml(self, response: FetchedResponse) -> List[Program]:
        try:
            return parse_program_list(response.text)
        except ET.ParseError as e:
            self.logger.error(f"XML解析エラー: {e}")
            raise FetchError(f"番組表の解析に失敗しました: {e}", url=response.url,
                             status=response.status) from e

    async def fetch_now_on_air(self, session: RadikoSession,
                               area_id: Optional[str] = None) -> List[Program]:
        """放送中の番組を取得

        Args:
            session: 認証済みセッション
            area_id: 地域ID（省略時はセッションの地域）

        Raises:
            FetchError: 取得失敗・XML解析失敗
        """
        area_id = area_id or session.region_code
        self.logger.info(f"放送中の番組を取得中: area_id={area_id}")

        response = await self._get(session, self.endpoints.now_on_air_url(area_id))
        programs = self._parse_xml(response)

        self.logger.info(f"放送中の番組取得完了: {len(programs)}件")
        return programs

    async def fetch_weekly(self, session: RadikoSession, station_id: str) -> List[Program]:
        """放送局の週間番組表を取得

        Raises:
            FetchError: 取得失敗・XML解析失敗
        """
        self.logger.info(f"週間番組表を取得中: station_id={station_id}")

        response = await self._get(session, self.endpoints.weekly_programs_url(station_id))
        programs = self._parse_xml(response)

        self.logger.info(f"週間番組表取得完了: {station_id} {len(programs)}件")
        return programs

    async def search(self, session: RadikoSession, condition: SearchCondition) -> List[Program]:
        """キーワードで番組を検索（先頭ページのみ）

        Raises:
            ValueError: キーワードが指定されていない
            FetchError: 取得失敗・JSON解析失敗
        """
        url = self.endpoints.program_search_url(condition.to_query_params())
        self.logger.info(f"番組検索中: keywords={condition.keywords}")

        response = await self._get(session, url)
        try:
            programs = parse_search_results(response.text)
        except ValueError as e:
            self.logger.error(f"検索結果の解析エラー: {e}")
            raise FetchError(f"番組検索結果の解析に失敗しました: {e}", url=url,
                             status=response.status) from e

        self.logger.info(f"番組検索完了: {len(programs)}件")
        return programs
