"""
Catalog and chart-entry writes shared by discovery, ingestion and backfill.
All writes are keyed idempotently; re-running any of them is safe.
"""
from datetime import datetime
from typing import Any, Dict, List, Optional, Sequence

from sqlalchemy.orm import Session

from chartradar.db.models import CatalogEntry, ChartEntry
from chartradar.db.upsert import insert_ignore

CHART_ENTRY_KEY = ["chart_id", "snapshot_date", "position"]


def upsert_catalog_entry(
    db: Session,
    platform: str,
    url: str,
    chart_family: str,
    genre_slug: Optional[str] = None,
    genre_name: Optional[str] = None,
    title: Optional[str] = None,
    seen_at: Optional[datetime] = None,
) -> CatalogEntry:
    """Insert on first sighting, otherwise touch and reactivate"""
    seen_at = seen_at or datetime.utcnow()
    entry = db.query(CatalogEntry).filter(CatalogEntry.url == url).first()
    if entry is None:
        entry = CatalogEntry(
            platform=platform,
            url=url,
            chart_family=chart_family,
            genre_slug=genre_slug,
            genre_name=genre_name,
            title=title,
            is_active=True,
            discovered_at=seen_at,
            last_seen_at=seen_at,
        )
        db.add(entry)
    else:
        entry.is_active = True
        entry.last_seen_at = seen_at
        entry.chart_family = chart_family
        entry.genre_slug = genre_slug or entry.genre_slug
        entry.genre_name = genre_name or entry.genre_name
        entry.title = title or entry.title
    db.flush()
    return entry


def get_or_create_catalog_entry(
    db: Session,
    platform: str,
    url: str,
    chart_family: str,
    genre_slug: Optional[str] = None,
) -> CatalogEntry:
    """Chart reference used by ingestion paths that bypass discovery"""
    entry = db.query(CatalogEntry).filter(CatalogEntry.url == url).first()
    if entry is not None:
        return entry
    return upsert_catalog_entry(db, platform, url, chart_family, genre_slug=genre_slug)


def deactivate_unseen(db: Session, platform: str, seen_urls: Sequence[str]) -> int:
    """Mark active catalog rows of ``platform`` not in ``seen_urls`` inactive"""
    query = db.query(CatalogEntry).filter(
        CatalogEntry.platform == platform,
        CatalogEntry.is_active.is_(True),
    )
    if seen_urls:
        query = query.filter(CatalogEntry.url.notin_(list(seen_urls)))
    return query.update({CatalogEntry.is_active: False}, synchronize_session=False)


def insert_chart_entries(db: Session, rows: List[Dict[str, Any]]) -> int:
    """Multi-row idempotent insert on (chart_id, snapshot_date, position)"""
    return insert_ignore(db, ChartEntry, rows, conflict_columns=CHART_ENTRY_KEY)


def build_entry(
    chart: CatalogEntry,
    snapshot_date,
    row,
    source: str,
    artist_id: Optional[int] = None,
    label_id: Optional[int] = None,
    track_id: Optional[int] = None,
) -> Dict[str, Any]:
    """ParsedRow -> chart_entries row, using the chart's known family / genre"""
    return {
        "chart_id": chart.id,
        "snapshot_date": snapshot_date,
        "position": row.position,
        "source": source,
        "chart_family": chart.chart_family,
        "genre_slug": chart.genre_slug,
        "track_title": row.track_title,
        "artist_name_raw": row.artist_name,
        "artists_full": row.artists_full,
        "artist_external_id": row.artist_external_id,
        "label_name": row.label_name,
        "released": row.released,
        "movement": row.movement,
        "artist_id": artist_id,
        "label_id": label_id,
        "track_id": track_id,
        "created_at": datetime.utcnow(),
    }
