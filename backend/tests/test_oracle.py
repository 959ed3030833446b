"""
test_oracle.py — read-only single URL scan
"""
import unittest

from chartradar.core.exceptions import UnsupportedSourceError
from chartradar.intelligence.oracle_scanner import OracleScanner, detect_source, normalize_url
from tests.helpers import (
    BEATPORT,
    BEATPORT_CHART,
    TECHNO_CHART_URL,
    TOPTRACKER,
    TOPTRACKER_CHART,
    MockSite,
    make_fetcher,
    no_sessions,
    static_sessions,
)

GATED_URL = f"{TOPTRACKER}/top/track/afro-house/2026-02-05"


class TestDetectSource(unittest.TestCase):

    def test_known_hosts(self):
        self.assertEqual(detect_source(TECHNO_CHART_URL).platform, "beatport")
        self.assertEqual(detect_source(TECHNO_CHART_URL).page_type, "chart")
        self.assertEqual(detect_source(f"{BEATPORT}/genre/techno").page_type, "genre")
        gated = detect_source(GATED_URL)
        self.assertEqual(gated.platform, "bptoptracker")
        self.assertTrue(gated.gated)
        self.assertEqual(detect_source("https://www.beatstats.com/charts").platform, "beatstats")

    def test_unknown_host(self):
        with self.assertRaises(UnsupportedSourceError):
            detect_source("https://example.com/top-100")

    def test_normalize_url(self):
        self.assertEqual(normalize_url(" www.beatport.com/top-100 "), "https://www.beatport.com/top-100")
        self.assertEqual(normalize_url("http://x.com"), "http://x.com")


class TestOracleScanner(unittest.IsolatedAsyncioTestCase):

    async def test_beatport_preview(self):
        site = MockSite(routes={TECHNO_CHART_URL: (200, BEATPORT_CHART)})
        result = await OracleScanner(make_fetcher(site)).scan(TECHNO_CHART_URL)
        self.assertTrue(result.ok)
        self.assertEqual(result.platform, "beatport")
        self.assertEqual(result.genre, "techno-peak-time-driving")
        self.assertEqual(result.chart_family, "top_tracks")
        self.assertEqual(result.rows_parsed, 3)
        self.assertEqual(result.filtered, 1)
        self.assertEqual(result.artist_count, 2)
        self.assertEqual([a.artist_external_id for a in result.artists], ["1001", "1002"])
        self.assertFalse(result.truncated)

    async def test_preview_is_bounded(self):
        site = MockSite(routes={TECHNO_CHART_URL: (200, BEATPORT_CHART)})
        result = await OracleScanner(make_fetcher(site), preview_limit=1).scan(TECHNO_CHART_URL)
        self.assertEqual(result.artist_count, 2)
        self.assertEqual(len(result.artists), 1)
        self.assertTrue(result.truncated)

    async def test_gated_source_uses_session(self):
        site = MockSite(routes={GATED_URL: (200, TOPTRACKER_CHART)})
        result = await OracleScanner(make_fetcher(site), static_sessions()).scan(GATED_URL)
        self.assertTrue(result.ok)
        self.assertEqual(result.genre, "afro-house")
        self.assertEqual(result.rows_parsed, 3)
        self.assertEqual(site.requests[0].headers["cookie"], "tt_session=static")

    async def test_impossible_date_in_gated_url(self):
        url = f"{TOPTRACKER}/top/track/house/2026-02-30"
        site = MockSite(routes={url: (200, TOPTRACKER_CHART)})
        result = await OracleScanner(make_fetcher(site), static_sessions()).scan(url)
        self.assertTrue(result.ok)
        self.assertEqual(result.genre, "house")
        self.assertEqual(result.rows_parsed, 3)

    async def test_gated_source_without_session(self):
        site = MockSite(routes={GATED_URL: (200, TOPTRACKER_CHART)})
        result = await OracleScanner(make_fetcher(site), no_sessions()).scan(GATED_URL)
        self.assertFalse(result.ok)
        self.assertIn("no session", result.error)
        self.assertEqual(site.requests, [])

    async def test_unsupported_and_empty_urls(self):
        site = MockSite()
        scanner = OracleScanner(make_fetcher(site))
        unsupported = await scanner.scan("https://example.com/chart")
        self.assertFalse(unsupported.ok)
        self.assertIn("Unsupported", unsupported.error)
        beatstats = await scanner.scan("https://www.beatstats.com/charts/techno")
        self.assertFalse(beatstats.ok)
        self.assertEqual(beatstats.platform, "beatstats")
        empty = await scanner.scan("   ")
        self.assertFalse(empty.ok)
        self.assertEqual(site.requests, [])

    async def test_fetch_failure_is_reported(self):
        site = MockSite(default=(500, "boom"))
        result = await OracleScanner(make_fetcher(site, max_retries=0)).scan(TECHNO_CHART_URL)
        self.assertFalse(result.ok)
        self.assertIn("HTTP 500", result.error)


if __name__ == "__main__":
    unittest.main()
