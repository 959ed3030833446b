"""
Ingestion engine: catalog-driven chart ingestion.

For every active catalog entry of the requested families: fetch, parse,
resolve names, insert idempotently. A chart that fails is recorded in the
result's error list and the run moves on to the next chart.
"""
import logging
from dataclasses import dataclass, field, asdict
from datetime import date
from typing import Any, Dict, List, Optional
from urllib.parse import urlparse

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from chartradar.core.exceptions import ChartRadarError, UnsupportedSourceError
from chartradar.db.models import CatalogEntry, ChartFamily, Platform, PRIMARY_FAMILIES
from chartradar.extraction.classify import classify_chart_family, genre_from_beatport_url
from chartradar.extraction.parsers import ParseResult, beatport_chart_parser
from chartradar.extraction.resolver import EntityResolver
from chartradar.ingestion import songstats
from chartradar.ingestion.fetcher import Fetcher
from chartradar.ingestion.store import (
    build_entry,
    get_or_create_catalog_entry,
    insert_chart_entries,
    upsert_catalog_entry,
)

logger = logging.getLogger(__name__)

SOURCES = [Platform.BEATPORT.value, Platform.SONGSTATS.value]


def available_sources() -> List[str]:
    return list(SOURCES)


@dataclass
class IngestResult:
    source: str
    chart_date: str
    charts_processed: int = 0
    fetched: int = 0
    inserted: int = 0
    skipped: int = 0
    filtered: int = 0
    strategies: Dict[str, int] = field(default_factory=dict)
    errors: List[str] = field(default_factory=list)

    def merge(self, other: "IngestResult") -> None:
        self.charts_processed += other.charts_processed
        self.fetched += other.fetched
        self.inserted += other.inserted
        self.skipped += other.skipped
        self.filtered += other.filtered
        for name, count in other.strategies.items():
            self.strategies[name] = self.strategies.get(name, 0) + count
        self.errors.extend(other.errors)

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


class IngestionEngine:
    """Fetch -> parse -> resolve -> insert, one chart at a time"""

    def __init__(self, db: Session, fetcher: Fetcher):
        self.db = db
        self.fetcher = fetcher

    # ================================================================
    # CATALOG-DRIVEN RUN
    # ================================================================

    def active_charts(self, platform: str, chart_families: Optional[List[str]] = None) -> List[CatalogEntry]:
        families = chart_families or PRIMARY_FAMILIES
        return (
            self.db.query(CatalogEntry)
            .filter(
                CatalogEntry.platform == platform,
                CatalogEntry.is_active.is_(True),
                CatalogEntry.chart_family.in_(families),
            )
            .order_by(CatalogEntry.genre_slug, CatalogEntry.url)
            .all()
        )

    async def run(
        self,
        source: str = Platform.BEATPORT.value,
        chart_date: Optional[date] = None,
        chart_families: Optional[List[str]] = None,
    ) -> IngestResult:
        chart_date = chart_date or date.today()
        if source == Platform.SONGSTATS.value:
            return await self.run_songstats(chart_date)
        if source != Platform.BEATPORT.value:
            raise UnsupportedSourceError(
                f"Unknown ingestion source '{source}'; available: {', '.join(SOURCES)}"
            )

        result = IngestResult(source=source, chart_date=chart_date.isoformat())
        charts = self.active_charts(source, chart_families)
        logger.info(f"Ingest {source} {chart_date}: {len(charts)} active charts")

        for chart in charts:
            result.merge(await self.ingest_chart(chart, chart_date))

        logger.info(
            f"Ingest {source} {chart_date}: fetched={result.fetched} inserted={result.inserted} "
            f"skipped={result.skipped} filtered={result.filtered} errors={len(result.errors)}"
        )
        return result

    async def ingest_chart(self, chart: CatalogEntry, chart_date: date) -> IngestResult:
        """One chart; failures land in the result, never escape"""
        result = IngestResult(source=chart.platform, chart_date=chart_date.isoformat())
        try:
            html = await self.fetcher.fetch(chart.url)
            parsed = beatport_chart_parser().parse(html)
            self._write(chart, chart_date, parsed, chart.platform, result)
        except ChartRadarError as e:
            self.db.rollback()
            result.errors.append(f"{chart.url}: {e}")
            logger.warning(f"Ingest: chart {chart.url} failed: {e}")
        except SQLAlchemyError as e:
            self.db.rollback()
            result.errors.append(f"{chart.url}: database error: {e}")
            logger.error(f"Ingest: chart {chart.url} write failed: {e}")
        return result

    def _write(
        self,
        chart: CatalogEntry,
        chart_date: date,
        parsed: ParseResult,
        source: str,
        result: IngestResult,
    ) -> None:
        resolver = EntityResolver(self.db, source)
        entries = []
        for row in parsed.rows:
            artist_id = resolver.resolve_artist(row.artist_name, row.artist_external_id)
            label_id = resolver.resolve_label(row.label_name)
            track_id = resolver.resolve_track(row.track_title, artist_id, label_id)
            entries.append(build_entry(chart, chart_date, row, source, artist_id, label_id, track_id))

        inserted = insert_chart_entries(self.db, entries)
        self.db.commit()

        result.charts_processed += 1
        result.fetched += len(parsed.rows)
        result.inserted += inserted
        result.skipped += len(entries) - inserted
        result.filtered += parsed.filtered
        if parsed.strategy:
            result.strategies[parsed.strategy] = result.strategies.get(parsed.strategy, 0) + 1

    # ================================================================
    # SINGLE URL
    # ================================================================

    async def ingest_url(self, url: str, chart_date: Optional[date] = None):
        """
        Register an external chart URL in the catalog, then ingest it right away.
        Returns (catalog entry, result).
        """
        chart_date = chart_date or date.today()
        host = (urlparse(url).hostname or "").lower()
        if "beatport.com" not in host:
            raise UnsupportedSourceError(f"Only Beatport chart URLs can be added, got {host or url}")

        chart = upsert_catalog_entry(
            self.db,
            platform=Platform.BEATPORT.value,
            url=url,
            chart_family=classify_chart_family(url),
            genre_slug=genre_from_beatport_url(url),
        )
        self.db.commit()
        return chart, await self.ingest_chart(chart, chart_date)

    # ================================================================
    # SONGSTATS
    # ================================================================

    async def run_songstats(self, chart_date: date) -> IngestResult:
        result = IngestResult(source=Platform.SONGSTATS.value, chart_date=chart_date.isoformat())
        try:
            parsed = await songstats.fetch_beatport_chart(self.fetcher, chart_date)
            if not parsed.rows:
                return result
            chart = get_or_create_catalog_entry(
                self.db,
                platform=Platform.SONGSTATS.value,
                url=songstats.chart_endpoint(),
                chart_family=ChartFamily.TOP_TRACKS.value,
            )
            self._write(chart, chart_date, parsed, Platform.SONGSTATS.value, result)
        except ChartRadarError as e:
            self.db.rollback()
            result.errors.append(f"songstats: {e}")
            logger.warning(f"Ingest: songstats {chart_date} failed: {e}")
        return result
