"""
Score phase: artist metrics -> segment + numeric score (version v1).

score = 100 * (0.30 recency + 0.25 peak + 0.20 longevity + 0.15 trend + 0.10 volume)

Segments, first match wins:
    top_performing         best <= 10, seen within 7 days, >= 5 chart days
    rapidly_rising         trend >= 10 positions, seen within 3 days
    newly_charting         first seen <= 14 days ago, seen within 7 days
    declining              not seen for > 14 days, or trend <= -10
    consistently_charting  everything else

Trend is previous-window average minus recent-window average: positive
means the artist moved up the charts.
"""
import logging
from dataclasses import dataclass, field, asdict
from datetime import date
from enum import Enum
from typing import Any, Dict, List, Optional

from sqlalchemy.orm import Session

from chartradar.db.models import ArtistMetrics, LeadScore

logger = logging.getLogger(__name__)

SCORING_VERSION = "v1"

WEIGHTS = {
    "recency": 0.30,
    "peak": 0.25,
    "longevity": 0.20,
    "trend": 0.15,
    "volume": 0.10,
}

RECENCY_HORIZON_DAYS = 30
LONGEVITY_CAP_DAYS = 30
VOLUME_CAP_ENTRIES = 100
TREND_SPAN = 20


class Segment(str, Enum):
    TOP_PERFORMING = "top_performing"
    RAPIDLY_RISING = "rapidly_rising"
    NEWLY_CHARTING = "newly_charting"
    DECLINING = "declining"
    CONSISTENTLY_CHARTING = "consistently_charting"


@dataclass
class ScoreInput:
    """The subset of artist metrics the score depends on"""
    artist_id: int
    first_seen: date
    last_seen: date
    total_entries: int
    days_in_charts: int
    best_position: int
    recent_avg_position: Optional[float]
    previous_avg_position: Optional[float]
    as_of: date

    @classmethod
    def from_metrics(cls, m: ArtistMetrics) -> "ScoreInput":
        return cls(
            artist_id=m.artist_id,
            first_seen=m.first_seen,
            last_seen=m.last_seen,
            total_entries=m.total_entries,
            days_in_charts=m.days_in_charts,
            best_position=m.best_position,
            recent_avg_position=m.recent_avg_position,
            previous_avg_position=m.previous_avg_position,
            as_of=m.as_of,
        )


@dataclass
class ArtistScore:
    artist_id: int
    segment: Segment
    score: float
    signals: Dict[str, Any] = field(default_factory=dict)

    def to_row(self, as_of: date) -> Dict[str, Any]:
        return {
            "artist_id": self.artist_id,
            "segment": self.segment.value,
            "score": self.score,
            "signals": self.signals,
            "scoring_version": SCORING_VERSION,
            "as_of": as_of,
        }


def _clamp(value: float, low: float = 0.0, high: float = 1.0) -> float:
    return max(low, min(high, value))


def position_trend(recent_avg: Optional[float], previous_avg: Optional[float]) -> float:
    if recent_avg is None or previous_avg is None:
        return 0.0
    return round(previous_avg - recent_avg, 4)


def classify_segment(recency_days: int, age_days: int, trend: float, best: int, days: int):
    """Returns (segment, fired rules)"""
    if best <= 10 and recency_days <= 7 and days >= 5:
        return Segment.TOP_PERFORMING, ["best_position<=10", "recency_days<=7", "days_in_charts>=5"]
    if trend >= 10 and recency_days <= 3:
        return Segment.RAPIDLY_RISING, ["trend>=10", "recency_days<=3"]
    if age_days <= 14 and recency_days <= 7:
        return Segment.NEWLY_CHARTING, ["first_seen_days<=14", "recency_days<=7"]
    if recency_days > 14:
        return Segment.DECLINING, ["recency_days>14"]
    if trend <= -10:
        return Segment.DECLINING, ["trend<=-10"]
    return Segment.CONSISTENTLY_CHARTING, []


def score_artist(data: ScoreInput) -> ArtistScore:
    """Pure function of its input"""
    recency_days = (data.as_of - data.last_seen).days
    age_days = (data.as_of - data.first_seen).days
    trend = position_trend(data.recent_avg_position, data.previous_avg_position)

    components = {
        "recency": round(_clamp(1 - recency_days / RECENCY_HORIZON_DAYS), 4),
        "peak": round(_clamp((201 - data.best_position) / 200), 4),
        "longevity": round(min(data.days_in_charts, LONGEVITY_CAP_DAYS) / LONGEVITY_CAP_DAYS, 4),
        "trend": round(_clamp((trend + TREND_SPAN) / (2 * TREND_SPAN)), 4),
        "volume": round(min(data.total_entries, VOLUME_CAP_ENTRIES) / VOLUME_CAP_ENTRIES, 4),
    }
    score = round(100 * sum(WEIGHTS[name] * value for name, value in components.items()), 2)
    segment, rules = classify_segment(recency_days, age_days, trend, data.best_position, data.days_in_charts)

    return ArtistScore(
        artist_id=data.artist_id,
        segment=segment,
        score=score,
        signals={
            "components": components,
            "inputs": {
                "recency_days": recency_days,
                "first_seen_days": age_days,
                "trend": trend,
                "best_position": data.best_position,
                "days_in_charts": data.days_in_charts,
                "total_entries": data.total_entries,
            },
            "rules": rules,
        },
    )


@dataclass
class ScoreResult:
    as_of: Optional[str] = None
    scored: int = 0
    segments: Dict[str, int] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


def refresh_lead_scores(db: Session) -> ScoreResult:
    """Recompute and fully replace lead_scores from artist_metrics"""
    result = ScoreResult()
    metrics = db.query(ArtistMetrics).order_by(ArtistMetrics.artist_id).all()

    rows: List[Dict[str, Any]] = []
    for m in metrics:
        scored = score_artist(ScoreInput.from_metrics(m))
        rows.append(scored.to_row(m.as_of))
        result.segments[scored.segment.value] = result.segments.get(scored.segment.value, 0) + 1

    db.query(LeadScore).delete(synchronize_session=False)
    if rows:
        db.bulk_insert_mappings(LeadScore, rows)
    db.commit()

    result.scored = len(rows)
    result.as_of = metrics[0].as_of.isoformat() if metrics else None
    logger.info(f"Score: {result.scored} artists scored, segments={result.segments}")
    return result
