"""
test_discovery.py — genre index crawl into the charts catalog, liveness
"""
import unittest

from chartradar.core.exceptions import DiscoveryError
from chartradar.db.models import CatalogEntry
from chartradar.ingestion.discovery import DiscoveryService
from tests.helpers import (
    AFRO_CHART_URL,
    AFRO_GENRE_PAGE,
    BEATPORT,
    GENRE_INDEX,
    TECHNO_CHART_URL,
    TECHNO_GENRE_PAGE,
    MockSite,
    make_fetcher,
    make_session,
)

INDEX_URL = f"{BEATPORT}/charts"
STALE_URL = f"{BEATPORT}/genre/old-genre/1/top-100"


def discovery_site(**overrides) -> MockSite:
    routes = {
        INDEX_URL: (200, GENRE_INDEX),
        f"{BEATPORT}/genre/techno-peak-time-driving/6": (200, TECHNO_GENRE_PAGE),
        f"{BEATPORT}/genre/afro-house/89": (200, AFRO_GENRE_PAGE),
    }
    routes.update(overrides)
    return MockSite(routes=routes)


class TestDiscovery(unittest.IsolatedAsyncioTestCase):

    def setUp(self):
        self.db = make_session()

    def tearDown(self):
        self.db.close()

    async def run_discovery(self, site: MockSite):
        service = DiscoveryService(self.db, make_fetcher(site, max_retries=0), index_url=INDEX_URL)
        return await service.run()

    async def test_two_genres_one_chart_each(self):
        result = await self.run_discovery(discovery_site())
        self.assertEqual(result.genres_fetched, 2)
        self.assertEqual(result.upserted, 2)
        self.assertEqual(result.errors, [])

        entries = {e.url: e for e in self.db.query(CatalogEntry).all()}
        self.assertEqual(set(entries), {TECHNO_CHART_URL, AFRO_CHART_URL})
        self.assertEqual(entries[TECHNO_CHART_URL].chart_family, "top_tracks")
        self.assertEqual(entries[AFRO_CHART_URL].chart_family, "hype_tracks")
        self.assertEqual(entries[AFRO_CHART_URL].genre_slug, "afro-house")
        self.assertEqual(entries[AFRO_CHART_URL].genre_name, "Afro House")

    async def test_rerun_does_not_duplicate(self):
        await self.run_discovery(discovery_site())
        first_seen = {e.url: e.discovered_at for e in self.db.query(CatalogEntry).all()}
        result = await self.run_discovery(discovery_site())
        self.assertEqual(result.upserted, 2)
        self.assertEqual(self.db.query(CatalogEntry).count(), 2)
        for entry in self.db.query(CatalogEntry).all():
            self.assertEqual(entry.discovered_at, first_seen[entry.url])

    async def test_unseen_entries_are_deactivated_then_reactivated(self):
        self.db.add(CatalogEntry(platform="beatport", url=STALE_URL, chart_family="top_tracks", genre_slug="old-genre"))
        self.db.commit()

        result = await self.run_discovery(discovery_site())
        self.assertEqual(result.marked_inactive, 1)
        stale = self.db.query(CatalogEntry).filter(CatalogEntry.url == STALE_URL).one()
        self.db.refresh(stale)
        self.assertFalse(stale.is_active)

        page_with_stale = TECHNO_GENRE_PAGE.replace(
            "</body>", '<a href="/genre/old-genre/1/top-100">Old Top 100</a></body>'
        )
        site = discovery_site(**{f"{BEATPORT}/genre/techno-peak-time-driving/6": (200, page_with_stale)})
        result = await self.run_discovery(site)
        self.assertEqual(result.marked_inactive, 0)
        self.db.refresh(stale)
        self.assertTrue(stale.is_active)
        self.assertEqual(self.db.query(CatalogEntry).filter(CatalogEntry.url == STALE_URL).count(), 1)

    async def test_failed_genre_is_reported_not_fatal(self):
        site = discovery_site(**{f"{BEATPORT}/genre/afro-house/89": (500, "boom")})
        result = await self.run_discovery(site)
        self.assertEqual(result.genres_fetched, 1)
        self.assertEqual(result.upserted, 1)
        self.assertEqual(len(result.errors), 1)
        self.assertIn("afro-house", result.errors[0])

    async def test_unreachable_index_is_fatal(self):
        with self.assertRaises(DiscoveryError):
            await self.run_discovery(discovery_site(**{INDEX_URL: (503, "down")}))

    async def test_empty_index_keeps_catalog(self):
        self.db.add(CatalogEntry(platform="beatport", url=STALE_URL, chart_family="top_tracks"))
        self.db.commit()
        result = await self.run_discovery(discovery_site(**{INDEX_URL: (200, "<html><body></body></html>")}))
        self.assertEqual(result.genres_fetched, 0)
        self.assertEqual(len(result.errors), 1)
        self.assertTrue(self.db.query(CatalogEntry).filter(CatalogEntry.url == STALE_URL).one().is_active)


if __name__ == "__main__":
    unittest.main()
