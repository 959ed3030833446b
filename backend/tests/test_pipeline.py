"""
test_pipeline.py — end-to-end orchestration and run records, optional
enrichment with a stubbed LLM client
"""
import json
import unittest
from datetime import date
from types import SimpleNamespace
from unittest import mock

from chartradar.core.config import settings
from chartradar.db.models import Artist, ArtistEnrichment, LeadScore, RunKind
from chartradar.services import enrichment
from chartradar.services.pipeline import add_chart_to_leads, latest_run, run_full_pipeline, start_run
from tests.helpers import (
    AFRO_CHART_URL,
    AFRO_GENRE_PAGE,
    BEATPORT,
    BEATPORT_CHART,
    GENRE_INDEX,
    TECHNO_CHART_URL,
    TECHNO_GENRE_PAGE,
    MockSite,
    make_fetcher,
    make_session,
)

DAY = date(2026, 3, 1)


def full_site(index_status: int = 200) -> MockSite:
    return MockSite(routes={
        settings.genre_index_url: (index_status, GENRE_INDEX),
        f"{BEATPORT}/genre/techno-peak-time-driving/6": (200, TECHNO_GENRE_PAGE),
        f"{BEATPORT}/genre/afro-house/89": (200, AFRO_GENRE_PAGE),
        TECHNO_CHART_URL: (200, BEATPORT_CHART),
        AFRO_CHART_URL: (200, BEATPORT_CHART),
    })


class TestPipeline(unittest.IsolatedAsyncioTestCase):

    def setUp(self):
        self.db = make_session()

    def tearDown(self):
        self.db.close()

    async def test_full_run_records_counters(self):
        run = start_run(self.db, RunKind.PIPELINE)
        run = await run_full_pipeline(self.db, make_fetcher(full_site(), max_retries=0), run, chart_date=DAY)

        self.assertEqual(run.status, "completed")
        self.assertEqual(run.stage, "done")
        self.assertEqual(run.counters["discovery"]["upserted"], 2)
        self.assertEqual(run.counters["ingest"]["inserted"], 6)
        self.assertEqual(run.counters["normalize"]["artists"], 2)
        self.assertEqual(run.counters["score"]["scored"], 2)
        self.assertEqual(latest_run(self.db, "pipeline").id, run.id)

    async def test_unreachable_index_fails_the_run(self):
        run = start_run(self.db, RunKind.PIPELINE)
        run = await run_full_pipeline(self.db, make_fetcher(full_site(index_status=503), max_retries=0), run)
        self.assertEqual(run.status, "error")
        self.assertIn("Genre index unreachable", run.error_message)
        self.assertIsNotNone(run.finished_at)

    async def test_add_chart_to_leads(self):
        site = MockSite(routes={TECHNO_CHART_URL: (200, BEATPORT_CHART)})
        summary = await add_chart_to_leads(self.db, make_fetcher(site), TECHNO_CHART_URL, DAY)
        self.assertEqual(summary["ingest"]["inserted"], 3)
        self.assertEqual(summary["metrics_updated"], 2)
        self.assertEqual(summary["scores_updated"], 2)
        self.assertEqual(self.db.query(LeadScore).count(), 2)


def fake_llm(content: str):
    message = SimpleNamespace(content=content)
    completions = mock.Mock()
    completions.create.return_value = SimpleNamespace(choices=[SimpleNamespace(message=message)])
    return SimpleNamespace(chat=SimpleNamespace(completions=completions))


class TestEnrichment(unittest.TestCase):

    def setUp(self):
        self.db = make_session()
        self.artist = Artist(name="Ama Kofi", normalized_name="ama kofi")
        self.db.add(self.artist)
        self.db.commit()

    def tearDown(self):
        self.db.close()

    def test_parse_llm_response(self):
        fenced = '```json\n{"bio_summary": "x", "role": "dj", "insight": "y"}\n```'
        self.assertEqual(enrichment.parse_llm_response(fenced)["role"], "dj")
        with self.assertRaises(ValueError):
            enrichment.parse_llm_response("not json")
        with self.assertRaises(ValueError):
            enrichment.parse_llm_response("[1, 2]")

    def test_disabled_is_a_no_op(self):
        client = fake_llm("{}")
        with mock.patch.object(settings, "enrichment_enabled", False):
            self.assertIsNone(enrichment.ArtistEnricher(self.db, client=client).enrich(self.artist.id))
        client.chat.completions.create.assert_not_called()

    def test_enrich_and_cache(self):
        payload = {"bio_summary": "Ghanaian producer.", "role": "producer", "insight": "Pitch afro house."}
        client = fake_llm(json.dumps(payload))
        with mock.patch.object(settings, "enrichment_enabled", True), \
                mock.patch.object(settings, "openai_api_key", "sk-test"):
            enricher = enrichment.ArtistEnricher(self.db, client=client)
            row = enricher.enrich(self.artist.id)
            again = enricher.enrich(self.artist.id)

        self.assertEqual(row.role, "producer")
        self.assertEqual(again.artist_id, row.artist_id)
        self.assertEqual(client.chat.completions.create.call_count, 1)
        self.assertEqual(self.db.query(ArtistEnrichment).count(), 1)

    def test_unknown_role_is_coerced(self):
        row = enrichment.set_enrichment(self.db, self.artist.id, {"bio_summary": "b", "role": "astronaut"})
        self.assertEqual(row.role, "unknown")

    def test_bad_llm_output_keeps_existing(self):
        with mock.patch.object(settings, "enrichment_enabled", True), \
                mock.patch.object(settings, "openai_api_key", "sk-test"):
            result = enrichment.ArtistEnricher(self.db, client=fake_llm("sorry")).enrich(self.artist.id, force=True)
        self.assertIsNone(result)


if __name__ == "__main__":
    unittest.main()
