"""
エンドポイント定義のテスト
"""

import unittest

from radiko_stream.endpoints import DEFAULT_ENDPOINTS, RadikoEndpoints


class TestRadikoEndpoints(unittest.TestCase):
    """RadikoEndpoints テスト"""

    def test_01_既定のURL(self):
        self.assertEqual(DEFAULT_ENDPOINTS.area_url, "https://radiko.jp/area/")
        self.assertEqual(DEFAULT_ENDPOINTS.player_script_url, "https://radiko.jp/apps/js/playerCommon.js")
        self.assertEqual(DEFAULT_ENDPOINTS.auth1_url, "https://radiko.jp/v2/api/auth1")
        self.assertEqual(DEFAULT_ENDPOINTS.auth2_url, "https://radiko.jp/v2/api/auth2")
        self.assertEqual(DEFAULT_ENDPOINTS.login_url, "https://radiko.jp/api/member/login")
        self.assertEqual(DEFAULT_ENDPOINTS.login_check_url,
                         "https://radiko.jp/ap/member/webapi/v2/member/login/check")
        self.assertEqual(DEFAULT_ENDPOINTS.station_list_url("JP13"),
                         "https://radiko.jp/v3/station/list/JP13.xml")

    def test_02_プレイリスト作成URL(self):
        self.assertEqual(
            DEFAULT_ENDPOINTS.playlist_create_url("TBS", "abc"),
            "https://si-f-radiko.smartstream.ne.jp/so/playlist.m3u8?station_id=TBS&l=15&lsid=abc&type=b"
        )
        self.assertEqual(
            DEFAULT_ENDPOINTS.playlist_create_url("TBS", "abc", area_free=True),
            "https://si-f-radiko.smartstream.ne.jp/al/playlist.m3u8?station_id=TBS&l=15&lsid=abc&type=b"
        )

    def test_03_放送局IDのエスケープ(self):
        url = DEFAULT_ENDPOINTS.playlist_create_url("A&B", "abc")
        self.assertIn("station_id=A%26B&", url)

    def test_04_設定からの生成(self):
        endpoints = RadikoEndpoints.from_config({
            "radiko_base_url": "https://radiko.example/",
            "stream_base_url": ""
        })
        self.assertEqual(endpoints.auth1_url, "https://radiko.example/v2/api/auth1")
        self.assertEqual(endpoints.cookie_url, "https://radiko.example/")
        self.assertEqual(endpoints.stream_cookie_url, "https://si-f-radiko.smartstream.ne.jp/")

    def test_05_番組情報のURL(self):
        self.assertEqual(DEFAULT_ENDPOINTS.now_on_air_url("JP13"),
                         "https://api.radiko.jp/program/v3/now/JP13.xml")
        self.assertEqual(DEFAULT_ENDPOINTS.weekly_programs_url("TBS"),
                         "https://api.radiko.jp/program/v3/weekly/TBS.xml")

        endpoints = RadikoEndpoints.from_config({"api_base_url": "https://api.example/"})
        self.assertEqual(endpoints.weekly_programs_url("TBS"),
                         "https://api.example/program/v3/weekly/TBS.xml")

    def test_06_番組検索URLは同名キーを繰り返す(self):
        url = DEFAULT_ENDPOINTS.program_search_url(
            [('key', '深夜'), ('station_id', 'TBS'), ('station_id', 'QRR'), ('filter', '')])
        self.assertEqual(
            url,
            "https://radiko.jp/v3/api/program/search"
            "?key=%E6%B7%B1%E5%A4%9C&station_id=TBS&station_id=QRR&filter="
        )


if __name__ == '__main__':
    unittest.main()
