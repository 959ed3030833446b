"""
Normalize phase: chart entries -> per-artist metrics.

The reference date is the latest snapshot date in the data, never the wall
clock, so the table is a pure function of chart_entries.
"""
import logging
from dataclasses import dataclass, asdict
from datetime import date, timedelta
from typing import Any, Dict, Iterable, List, NamedTuple, Optional, Tuple

from sqlalchemy import func
from sqlalchemy.orm import Session

from chartradar.db.models import Artist, ArtistMetrics, ChartEntry

logger = logging.getLogger(__name__)

WINDOW_DAYS = 7


class EntryFact(NamedTuple):
    artist_id: int
    snapshot_date: date
    position: int
    genre_slug: Optional[str]


@dataclass
class NormalizeResult:
    as_of: Optional[str] = None
    artists: int = 0
    entries: int = 0

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


def _avg(values: List[int]) -> Optional[float]:
    if not values:
        return None
    return round(sum(values) / len(values), 4)


def compute_artist_metrics(
    facts: Iterable[EntryFact],
    artists: Dict[int, Tuple[str, Optional[str]]],
    as_of: date,
) -> List[Dict[str, Any]]:
    """
    Aggregate entry facts per artist.
    ``artists`` maps artist id -> (display name, external id).
    Output is sorted by artist id.
    """
    recent_start = as_of - timedelta(days=WINDOW_DAYS - 1)
    previous_start = recent_start - timedelta(days=WINDOW_DAYS)

    grouped: Dict[int, List[EntryFact]] = {}
    for fact in facts:
        grouped.setdefault(fact.artist_id, []).append(fact)

    rows = []
    for artist_id in sorted(grouped):
        items = grouped[artist_id]
        positions = [f.position for f in items]
        recent = [f.position for f in items if recent_start <= f.snapshot_date <= as_of]
        previous = [f.position for f in items if previous_start <= f.snapshot_date < recent_start]
        name, external_id = artists.get(artist_id, (str(artist_id), None))
        rows.append({
            "artist_id": artist_id,
            "artist_name": name,
            "external_id": external_id,
            "first_seen": min(f.snapshot_date for f in items),
            "last_seen": max(f.snapshot_date for f in items),
            "total_entries": len(items),
            "days_in_charts": len({f.snapshot_date for f in items}),
            "best_position": min(positions),
            "avg_position": _avg(positions),
            "recent_avg_position": _avg(recent),
            "previous_avg_position": _avg(previous),
            "genres": sorted({f.genre_slug for f in items if f.genre_slug}),
            "as_of": as_of,
        })
    return rows


def refresh_artist_metrics(db: Session) -> NormalizeResult:
    """Recompute and fully replace artist_metrics"""
    result = NormalizeResult()
    as_of = db.query(func.max(ChartEntry.snapshot_date)).scalar()

    db.query(ArtistMetrics).delete(synchronize_session=False)
    if as_of is None:
        db.commit()
        logger.info("Normalize: no chart entries, artist_metrics cleared")
        return result

    facts = [
        EntryFact(*row)
        for row in db.query(
            ChartEntry.artist_id,
            ChartEntry.snapshot_date,
            ChartEntry.position,
            ChartEntry.genre_slug,
        ).filter(ChartEntry.artist_id.isnot(None)).all()
    ]
    artists = {
        artist_id: (name, external_id)
        for artist_id, name, external_id in db.query(Artist.id, Artist.name, Artist.external_id).all()
    }
    rows = compute_artist_metrics(facts, artists, as_of)
    if rows:
        db.bulk_insert_mappings(ArtistMetrics, rows)
    db.commit()

    result.as_of = as_of.isoformat()
    result.artists = len(rows)
    result.entries = len(facts)
    logger.info(f"Normalize: {result.artists} artists from {result.entries} entries (as of {result.as_of})")
    return result
