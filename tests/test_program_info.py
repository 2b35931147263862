"""
放送局リスト・番組表・番組検索のテスト
"""

import asyncio
import unittest
import xml.etree.ElementTree as ET
from datetime import datetime

from radiko_stream.endpoints import DEFAULT_ENDPOINTS
from radiko_stream.error_handler import FetchError
from radiko_stream.program_info import (
    JST,
    ProgramDirectory,
    SearchCondition,
    SearchFilter,
    StationDirectory,
    parse_program_list,
    parse_search_results,
    parse_station_list,
)
from radiko_stream.session import RadikoSession
from radiko_stream.utils.sensitive import SensitiveValue
from tests.utils.fake_http import (
    NOW_ON_AIR_XML,
    SEARCH_JSON,
    STATION_LIST_XML,
    WEEKLY_XML,
    FakeResponse,
    FakeSessionFactory,
    radiko_routes,
)


def make_session(routes):
    factory = FakeSessionFactory(routes)
    session = RadikoSession(
        region_code="JP13",
        auth_token=SensitiveValue("tok123"),
        local_stream_id="abc",
        region_unlocked=False,
        transport=factory()
    )
    return session, factory


class TestParseStationList(unittest.TestCase):
    """放送局リストXML解析テスト"""

    def test_01_放送局の解析(self):
        stations = parse_station_list(STATION_LIST_XML)

        self.assertEqual([s.id for s in stations], ["TBS", "QRR"])
        tbs = stations[0]
        self.assertEqual(tbs.name, "TBSラジオ")
        self.assertEqual(tbs.ascii_name, "TBS RADIO")
        self.assertEqual(tbs.area_id, "JP13")
        self.assertTrue(tbs.areafree)
        self.assertFalse(stations[1].areafree)
        self.assertEqual(stations[1].logo_url, "")

    def test_02_IDや名前のない局は除外(self):
        xml = "<stations><station><id>TBS</id></station></stations>"
        self.assertEqual(parse_station_list(xml, "JP13"), [])

    def test_03_辞書変換(self):
        data = parse_station_list(STATION_LIST_XML)[0].to_dict()
        self.assertEqual(data['id'], "TBS")
        self.assertTrue(data['timefree'])


class TestStationDirectory(unittest.TestCase):
    """放送局リスト取得テスト"""

    def test_01_セッションの地域で取得(self):
        session, _ = make_session(radiko_routes())
        stations = asyncio.run(StationDirectory().fetch_stations(session))
        self.assertEqual([s.id for s in stations], ["TBS", "QRR"])

    def test_02_別の地域を指定(self):
        session, _ = make_session({
            ('GET', DEFAULT_ENDPOINTS.station_list_url("JP27")):
                FakeResponse(body=STATION_LIST_XML.replace('area_id="JP13"', 'area_id="JP27"'))
        })
        stations = asyncio.run(StationDirectory().fetch_stations(session, "JP27"))
        self.assertEqual(stations[0].area_id, "JP27")

    def test_03_不正なXML(self):
        session, _ = make_session({
            ('GET', DEFAULT_ENDPOINTS.station_list_url("JP13")): FakeResponse(body="<stations>")
        })
        with self.assertRaises(FetchError):
            asyncio.run(StationDirectory().fetch_stations(session))


class TestParseProgramList(unittest.TestCase):
    """番組表XML解析テスト"""

    def test_01_放送中の番組の解析(self):
        programs = parse_program_list(NOW_ON_AIR_XML)

        self.assertEqual([p.station_id for p in programs], ["TBS", "QRR"])
        program = programs[0]
        self.assertEqual(program.id, "TBS_20250629060000")
        self.assertEqual(program.title, "森本毅郎・スタンバイ!")
        self.assertEqual(program.start_time, JST.localize(datetime(2025, 6, 29, 6, 0)))
        self.assertEqual(program.end_time, JST.localize(datetime(2025, 6, 29, 8, 30)))
        self.assertEqual(program.duration, 150)
        self.assertEqual(program.performers, ["森本毅郎", "遠藤泰子"])
        self.assertEqual(program.genre, "ニュース／天気／交通")
        self.assertEqual(program.description, "朝のニュース番組")
        self.assertEqual(program.url, "https://www.tbsradio.jp/stand-by/")
        self.assertEqual(program.image_url, "https://program-static.cf.radiko.jp/tbs.jpg")

    def test_02_時刻のない番組は読み飛ばす(self):
        titles = [p.title for p in parse_program_list(NOW_ON_AIR_XML)]
        self.assertNotIn("時刻のない番組", titles)

    def test_03_週間番組表は日付をまたいで連結(self):
        programs = parse_program_list(WEEKLY_XML)

        self.assertEqual([p.id for p in programs], ["TBS_20250629010000", "TBS_20250629050000"])
        self.assertEqual(programs[0].performers, ["出演者A", "出演者B"])
        self.assertEqual(programs[1].performers, [])

    def test_04_辞書変換と放送中判定(self):
        program = parse_program_list(NOW_ON_AIR_XML)[0]

        data = program.to_dict()
        self.assertEqual(data['start_time'], "2025-06-29T06:00:00+09:00")
        self.assertEqual(data['station_id'], "TBS")

        self.assertTrue(program.is_on_air(JST.localize(datetime(2025, 6, 29, 7, 0))))
        self.assertFalse(program.is_on_air(JST.localize(datetime(2025, 6, 29, 8, 30))))

    def test_05_不正なXML(self):
        with self.assertRaises(ET.ParseError):
            parse_program_list("<radiko>")


class TestSearch(unittest.TestCase):
    """番組検索条件と検索結果の解析テスト"""

    def test_01_既定の検索条件(self):
        condition = SearchCondition(keywords=["深夜"])
        self.assertEqual(condition.to_query_params(), [
            ('key', '深夜'), ('filter', 'future'), ('row_limit', '50')
        ])

    def test_02_すべての条件を指定(self):
        condition = SearchCondition(
            keywords=["深夜", "ラジオ"],
            filter=SearchFilter.TIMEFREE,
            start_day="2025-06-01",
            end_day="2025-06-07",
            row_limit=10,
            area_ids=["JP13"],
            station_ids=["TBS", "QRR"],
            cur_area_id="JP13"
        )
        self.assertEqual(condition.to_query_params(), [
            ('key', '深夜'), ('key', 'ラジオ'),
            ('station_id', 'TBS'), ('station_id', 'QRR'),
            ('area_id', 'JP13'),
            ('cur_area_id', 'JP13'),
            ('start_day', '2025-06-01'), ('end_day', '2025-06-07'),
            ('filter', 'past'), ('row_limit', '10')
        ])

    def test_03_全期間は空のfilter(self):
        condition = SearchCondition(keywords=["深夜"], filter=SearchFilter.ALL, row_limit=None)
        self.assertEqual(condition.to_query_params(), [('key', '深夜'), ('filter', '')])

    def test_04_キーワードは必須(self):
        for keywords in ([], [""], ["  "]):
            with self.subTest(keywords=keywords):
                with self.assertRaises(ValueError):
                    SearchCondition(keywords=keywords).to_query_params()

    def test_05_検索結果の解析(self):
        programs = parse_search_results(SEARCH_JSON)

        # 終了時刻のない結果は除外
        self.assertEqual(len(programs), 1)
        program = programs[0]
        self.assertEqual(program.id, "MBS_20250629000000")
        self.assertEqual(program.station_id, "MBS")
        self.assertEqual(program.duration, 90)
        self.assertEqual(program.performers, ["極楽とんぼ", "池田裕子"])
        self.assertEqual(program.genre, "バラエティ")
        self.assertEqual(program.url, "https://www.mbs1179.com/yaru/")

    def test_06_データなしは空リスト(self):
        self.assertEqual(parse_search_results('{"meta": {}, "data": []}'), [])
        self.assertEqual(parse_search_results('{"meta": {}}'), [])

    def test_07_JSONでない応答(self):
        for body in ("<html>error</html>", "[1, 2]"):
            with self.subTest(body=body):
                with self.assertRaises(ValueError):
                    parse_search_results(body)


class TestProgramDirectory(unittest.TestCase):
    """番組情報取得テスト"""

    def setUp(self):
        self.routes = radiko_routes()
        self.session, self.factory = make_session(self.routes)
        self.directory = ProgramDirectory()

    def test_01_セッションの地域で放送中の番組を取得(self):
        programs = asyncio.run(self.directory.fetch_now_on_air(self.session))

        self.assertEqual(len(programs), 2)
        self.assertEqual(self.factory.urls(), [DEFAULT_ENDPOINTS.now_on_air_url("JP13")])

    def test_02_別の地域を指定(self):
        url = DEFAULT_ENDPOINTS.now_on_air_url("JP27")
        self.routes[('GET', url)] = FakeResponse(body=NOW_ON_AIR_XML)

        asyncio.run(self.directory.fetch_now_on_air(self.session, "JP27"))

        self.assertEqual(self.factory.urls(), [url])

    def test_03_週間番組表(self):
        programs = asyncio.run(self.directory.fetch_weekly(self.session, "TBS"))
        self.assertEqual([p.title for p in programs], ["JUNK 土曜深夜", "早朝の番組"])

    def test_04_存在しない放送局は取得失敗(self):
        with self.assertRaises(FetchError) as cm:
            asyncio.run(self.directory.fetch_weekly(self.session, "NOPE"))
        self.assertEqual(cm.exception.status, 404)

    def test_05_不正なXMLはFetchError(self):
        self.routes[('GET', DEFAULT_ENDPOINTS.weekly_programs_url("TBS"))] = \
            FakeResponse(body="<radiko><stations>")

        with self.assertRaises(FetchError) as cm:
            asyncio.run(self.directory.fetch_weekly(self.session, "TBS"))
        self.assertEqual(cm.exception.status, 200)

    def test_06_番組検索(self):
        condition = SearchCondition(keywords=["深夜"], filter=SearchFilter.TIMEFREE)
        url = DEFAULT_ENDPOINTS.program_search_url(condition.to_query_params())
        self.routes[('GET', url)] = FakeResponse(body=SEARCH_JSON)

        programs = asyncio.run(self.directory.search(self.session, condition))

        self.assertEqual([p.title for p in programs], ["深夜のバラエティ"])
        self.assertIn("filter=past", self.factory.urls()[0])

    def test_07_検索結果がJSONでない(self):
        condition = SearchCondition(keywords=["深夜"])
        url = DEFAULT_ENDPOINTS.program_search_url(condition.to_query_params())
        self.routes[('GET', url)] = FakeResponse(body="<html>maintenance</html>")

        with self.assertRaises(FetchError) as cm:
            asyncio.run(self.directory.search(self.session, condition))
        self.assertEqual(cm.exception.url, url)

    def test_08_キーワードなしは送信しない(self):
        with self.assertRaises(ValueError):
            asyncio.run(self.directory.search(self.session, SearchCondition(keywords=[])))
        self.assertEqual(self.factory.requests, [])


if __name__ == '__main__':
    unittest.main()
