"""
test_scoring.py — normalize (artist metrics) and score (segments) phases
"""
import unittest
from datetime import date, timedelta

from chartradar.db.models import Artist, ArtistMetrics, CatalogEntry, ChartEntry, LeadScore
from chartradar.scoring.metrics import EntryFact, compute_artist_metrics, refresh_artist_metrics
from chartradar.scoring.scorer import (
    SCORING_VERSION,
    ScoreInput,
    Segment,
    classify_segment,
    position_trend,
    refresh_lead_scores,
    score_artist,
)
from tests.helpers import make_session

AS_OF = date(2026, 3, 10)


def score_input(**overrides) -> ScoreInput:
    values = dict(
        artist_id=1,
        first_seen=AS_OF - timedelta(days=60),
        last_seen=AS_OF,
        total_entries=20,
        days_in_charts=10,
        best_position=40,
        recent_avg_position=50.0,
        previous_avg_position=50.0,
        as_of=AS_OF,
    )
    values.update(overrides)
    return ScoreInput(**values)


class TestMetrics(unittest.TestCase):

    def test_windows_and_aggregates(self):
        facts = [
            EntryFact(7, AS_OF, 10, "afro-house"),
            EntryFact(7, AS_OF - timedelta(days=2), 20, "amapiano"),
            EntryFact(7, AS_OF - timedelta(days=8), 40, "afro-house"),
            EntryFact(7, AS_OF - timedelta(days=8), 60, "afro-house"),
            EntryFact(7, AS_OF - timedelta(days=30), 5, None),
            EntryFact(3, AS_OF, 100, "house"),
        ]
        rows = compute_artist_metrics(facts, {7: ("Ama Kofi", "1002")}, AS_OF)
        self.assertEqual([r["artist_id"] for r in rows], [3, 7])

        ama = rows[1]
        self.assertEqual(ama["artist_name"], "Ama Kofi")
        self.assertEqual(ama["total_entries"], 5)
        self.assertEqual(ama["days_in_charts"], 4)
        self.assertEqual(ama["best_position"], 5)
        self.assertEqual(ama["first_seen"], AS_OF - timedelta(days=30))
        self.assertEqual(ama["recent_avg_position"], 15.0)
        self.assertEqual(ama["previous_avg_position"], 50.0)
        self.assertEqual(ama["avg_position"], 27.0)
        self.assertEqual(ama["genres"], ["afro-house", "amapiano"])

        unknown = rows[0]
        self.assertEqual(unknown["artist_name"], "3")
        self.assertIsNone(unknown["previous_avg_position"])


class TestScorer(unittest.TestCase):

    def test_trend(self):
        self.assertEqual(position_trend(15.0, 50.0), 35.0)
        self.assertEqual(position_trend(None, 50.0), 0.0)

    def test_segments_first_match_wins(self):
        self.assertEqual(classify_segment(0, 90, 20, 3, 10)[0], Segment.TOP_PERFORMING)
        self.assertEqual(classify_segment(1, 90, 15, 40, 10)[0], Segment.RAPIDLY_RISING)
        self.assertEqual(classify_segment(2, 5, 0, 80, 2)[0], Segment.NEWLY_CHARTING)
        self.assertEqual(classify_segment(20, 90, 0, 80, 2)[0], Segment.DECLINING)
        self.assertEqual(classify_segment(2, 90, -12, 80, 20)[0], Segment.DECLINING)
        self.assertEqual(classify_segment(2, 90, 0, 80, 20)[0], Segment.CONSISTENTLY_CHARTING)

    def test_maximal_score(self):
        scored = score_artist(score_input(best_position=1, days_in_charts=30, total_entries=100))
        self.assertAlmostEqual(scored.score, 92.5)
        self.assertEqual(scored.segment, Segment.TOP_PERFORMING)
        self.assertEqual(scored.signals["components"]["trend"], 0.5)
        self.assertIn("best_position<=10", scored.signals["rules"])

    def test_stale_artist_declines(self):
        scored = score_artist(score_input(last_seen=AS_OF - timedelta(days=40)))
        self.assertEqual(scored.segment, Segment.DECLINING)
        self.assertEqual(scored.signals["components"]["recency"], 0.0)
        self.assertEqual(scored.signals["inputs"]["recency_days"], 40)

    def test_score_is_deterministic(self):
        data = score_input(recent_avg_position=12.5, previous_avg_position=31.25)
        self.assertEqual(score_artist(data), score_artist(data))

    def test_row_carries_version(self):
        row = score_artist(score_input()).to_row(AS_OF)
        self.assertEqual(row["scoring_version"], SCORING_VERSION)
        self.assertEqual(row["segment"], "consistently_charting")


class TestRefresh(unittest.TestCase):

    def setUp(self):
        self.db = make_session()
        chart = CatalogEntry(platform="bptoptracker", url="https://www.bptoptracker.com/top/track/afro-house",
                             chart_family="top_tracks", genre_slug="afro-house")
        artists = [Artist(name=name, normalized_name=name.lower()) for name in ("Ama Kofi", "Kaleo Sun", "Nandi M")]
        self.db.add(chart)
        self.db.add_all(artists)
        self.db.flush()
        for offset in range(14):
            day = AS_OF - timedelta(days=offset)
            for position, artist in enumerate(artists, start=1):
                if artist.name == "Nandi M" and offset > 2:
                    continue
                rank = position if artist.name != "Kaleo Sun" else 10 + position + offset * 3
                self.db.add(ChartEntry(
                    chart_id=chart.id, snapshot_date=day, position=rank, source="bptoptracker",
                    chart_family="top_tracks", genre_slug="afro-house", artist_id=artist.id,
                ))
        self.db.commit()

    def tearDown(self):
        self.db.close()

    def snapshot(self):
        metrics = [
            {c.name: getattr(m, c.name) for c in ArtistMetrics.__table__.columns}
            for m in self.db.query(ArtistMetrics).order_by(ArtistMetrics.artist_id).all()
        ]
        scores = [
            {c.name: getattr(s, c.name) for c in LeadScore.__table__.columns}
            for s in self.db.query(LeadScore).order_by(LeadScore.artist_id).all()
        ]
        return metrics, scores

    def test_normalize_and_score(self):
        normalized = refresh_artist_metrics(self.db)
        self.assertEqual(normalized.as_of, AS_OF.isoformat())
        self.assertEqual(normalized.artists, 3)
        scored = refresh_lead_scores(self.db)
        self.assertEqual(scored.scored, 3)

        segments = {
            self.db.get(Artist, s.artist_id).name: s.segment
            for s in self.db.query(LeadScore).all()
        }
        self.assertEqual(segments["Ama Kofi"], "top_performing")
        self.assertEqual(segments["Nandi M"], "newly_charting")
        self.assertEqual(segments["Kaleo Sun"], "rapidly_rising")

    def test_rerun_is_identical(self):
        refresh_artist_metrics(self.db)
        refresh_lead_scores(self.db)
        first = self.snapshot()
        refresh_artist_metrics(self.db)
        refresh_lead_scores(self.db)
        self.assertEqual(self.snapshot(), first)

    def test_empty_database(self):
        db = make_session()
        self.assertIsNone(refresh_artist_metrics(db).as_of)
        self.assertEqual(refresh_lead_scores(db).scored, 0)
        db.close()


if __name__ == "__main__":
    unittest.main()
