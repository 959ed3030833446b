"""
Top Tracker backfill: concurrency-bounded fetch over a (genre, date) grid,
then bulk entity resolution and batched idempotent inserts.

Also hosts the daily update ([yesterday, today] for the configured genres)
and the tab-separated paste import, which share the write path.
"""
import asyncio
import logging
from dataclasses import dataclass, field, asdict
from datetime import date, timedelta
from typing import Any, Dict, List, Optional, Tuple

from sqlalchemy.orm import Session

from chartradar.core.config import settings
from chartradar.core.exceptions import BackfillRequestError, ChartRadarError, HttpStatusError
from chartradar.db.models import CatalogEntry, ChartFamily, Platform
from chartradar.extraction.parsers import ParseResult, parse_chart_tsv
from chartradar.extraction.resolver import EntityResolver
from chartradar.ingestion.fetcher import Fetcher
from chartradar.ingestion.session import SessionStore
from chartradar.ingestion.store import build_entry, get_or_create_catalog_entry, insert_chart_entries
from chartradar.ingestion.toptracker import (
    ALL_GENRES,
    ChartPage,
    chart_url,
    date_range,
    fetch_chart_for_date,
    genre_slugs,
)

logger = logging.getLogger(__name__)

SOURCE = Platform.TOPTRACKER.value
MAX_REPORTED_ERRORS = 50

HINT_WRONG_SLUG = "Every request returned 404: check the genre slug on bptoptracker.com."
HINT_MISSING_DAYS = (
    "Some requests returned 404: Top Tracker may have no data for those dates "
    "in some genres; inserted rows were kept."
)

Task = Tuple[str, date]


@dataclass
class TaskOutcome:
    genre_slug: str
    snapshot_date: date
    page: Optional[ChartPage] = None
    error: Optional[str] = None
    status_code: Optional[int] = None


@dataclass
class BackfillResult:
    ok: bool = True
    genre: str = ""
    date_from: Optional[str] = None
    date_to: Optional[str] = None
    genres_processed: int = 0
    dates_requested: int = 0
    tasks: int = 0
    rows_parsed: int = 0
    filtered: int = 0
    total_inserted: int = 0
    total_skipped: int = 0
    errors: List[str] = field(default_factory=list)
    hint: Optional[str] = None
    error: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass
class PasteImportResult:
    genre_slug: str
    snapshot_date: str
    parsed: int = 0
    filtered: int = 0
    inserted: int = 0
    skipped: int = 0

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


def derive_hint(outcomes: List[TaskOutcome]) -> Optional[str]:
    failed = [o for o in outcomes if o.error]
    if not failed:
        return None
    not_found = [o for o in failed if o.status_code == 404]
    if len(not_found) == len(failed) and len(failed) >= len(outcomes):
        return HINT_WRONG_SLUG
    if not_found:
        return HINT_MISSING_DAYS
    return None


class BackfillEngine:
    """Historical and daily Top Tracker ingestion"""

    def __init__(
        self,
        db: Session,
        fetcher: Fetcher,
        sessions: SessionStore,
        concurrency: Optional[int] = None,
        batch_delay: Optional[float] = None,
        insert_batch_size: Optional[int] = None,
        max_days: Optional[int] = None,
        max_days_all_genres: Optional[int] = None,
    ):
        self.db = db
        self.fetcher = fetcher
        self.sessions = sessions
        self.concurrency = max(1, concurrency or settings.backfill_concurrency)
        self.batch_delay = settings.backfill_batch_delay_seconds if batch_delay is None else batch_delay
        self.insert_batch_size = insert_batch_size or settings.backfill_insert_batch_size
        self.max_days = max_days or settings.backfill_max_days
        self.max_days_all_genres = max_days_all_genres or settings.backfill_max_days_all_genres

    # ================================================================
    # PLANNING
    # ================================================================

    def plan(self, genre: str, date_from: date, date_to: date) -> List[Task]:
        """Validate the request and build the (genre, date) grid"""
        if not genre:
            raise BackfillRequestError("genre is required (a slug or '__all__')")
        if date_from > date_to:
            raise BackfillRequestError(f"date_from {date_from} is after date_to {date_to}")

        days = date_range(date_from, date_to)
        all_genres = genre == ALL_GENRES
        cap = self.max_days_all_genres if all_genres else self.max_days
        if len(days) > cap:
            raise BackfillRequestError(
                f"Range of {len(days)} days exceeds the limit of {cap} days"
                + (" for all genres" if all_genres else "")
            )

        genres = genre_slugs() if all_genres else [genre]
        return [(g, d) for g in genres for d in days]

    # ================================================================
    # RUN
    # ================================================================

    async def run(self, genre: str, date_from: date, date_to: date) -> BackfillResult:
        tasks = self.plan(genre, date_from, date_to)
        result = BackfillResult(
            genre=genre,
            date_from=date_from.isoformat(),
            date_to=date_to.isoformat(),
        )

        self.sessions.invalidate()
        return await self._execute(tasks, result)

    async def run_daily(self, genres: Optional[List[str]] = None, today: Optional[date] = None) -> BackfillResult:
        """Configured genres x [yesterday, today]"""
        today = today or date.today()
        genres = genres or settings.toptracker_genre_list
        yesterday = today - timedelta(days=1)
        tasks = [(g, d) for g in genres for d in (yesterday, today)]
        result = BackfillResult(
            genre=",".join(genres),
            date_from=yesterday.isoformat(),
            date_to=today.isoformat(),
        )
        return await self._execute(tasks, result, batch_delay=settings.daily_request_delay_seconds)

    async def _execute(
        self,
        tasks: List[Task],
        result: BackfillResult,
        batch_delay: Optional[float] = None,
    ) -> BackfillResult:
        delay = self.batch_delay if batch_delay is None else batch_delay
        result.tasks = len(tasks)
        result.genres_processed = len({g for g, _ in tasks})
        result.dates_requested = len({d for _, d in tasks})
        if not tasks:
            return result

        cookie = await self.sessions.get()
        if cookie is None:
            result.ok = False
            result.error = self.sessions.last_error or "Top Tracker session unavailable"
            logger.warning(f"Backfill aborted before fetching: {result.error}")
            return result

        outcomes: List[TaskOutcome] = []
        for start in range(0, len(tasks), self.concurrency):
            if start > 0 and delay > 0:
                await asyncio.sleep(delay)
            chunk = tasks[start:start + self.concurrency]
            outcomes.extend(await asyncio.gather(*(self._run_task(g, d) for g, d in chunk)))
            logger.debug(f"Backfill: {min(start + self.concurrency, len(tasks))}/{len(tasks)} tasks done")

        pages = [o.page for o in outcomes if o.page is not None]
        errors = [o.error for o in outcomes if o.error]
        result.rows_parsed = sum(len(p.result.rows) for p in pages)
        result.filtered = sum(p.result.filtered for p in pages)

        inserted, skipped = self._write_pages(pages)
        result.total_inserted = inserted
        result.total_skipped = skipped
        result.errors = errors[:MAX_REPORTED_ERRORS]
        result.hint = derive_hint(outcomes)

        logger.info(
            f"Backfill: {len(tasks)} tasks, {result.rows_parsed} rows, "
            f"inserted={inserted} skipped={skipped} errors={len(errors)}"
        )
        return result

    async def _run_task(self, genre_slug: str, snapshot_date: date) -> TaskOutcome:
        outcome = TaskOutcome(genre_slug=genre_slug, snapshot_date=snapshot_date)
        try:
            outcome.page = await fetch_chart_for_date(self.fetcher, self.sessions, genre_slug, snapshot_date)
        except HttpStatusError as e:
            outcome.error = f"{genre_slug} {snapshot_date}: {e}"
            outcome.status_code = e.status_code
        except ChartRadarError as e:
            outcome.error = f"{genre_slug} {snapshot_date}: {e}"
        return outcome

    # ================================================================
    # WRITES
    # ================================================================

    def genre_chart(self, genre_slug: str) -> CatalogEntry:
        return get_or_create_catalog_entry(
            self.db,
            platform=SOURCE,
            url=chart_url(genre_slug),
            chart_family=ChartFamily.TOP_TRACKS.value,
            genre_slug=genre_slug,
        )

    def _write_pages(self, pages: List[ChartPage]) -> Tuple[int, int]:
        """Bulk-resolve every name once, then insert in batches"""
        if not pages:
            return 0, 0
        resolver = EntityResolver(self.db, SOURCE)
        all_rows = [row for page in pages for row in page.result.rows]
        artists = resolver.resolve_artists_bulk(row.artist_name for row in all_rows)
        labels = resolver.resolve_labels_bulk(row.label_name for row in all_rows)

        resolved = [
            (
                page,
                row,
                artists.get((row.artist_name or "").strip()),
                labels.get((row.label_name or "").strip()),
            )
            for page in pages
            for row in page.result.rows
        ]
        tracks = resolver.resolve_tracks_bulk(
            (artist_id, (row.track_title or "").strip(), label_id)
            for _, row, artist_id, label_id in resolved
        )

        charts: Dict[str, CatalogEntry] = {}
        entries = []
        for page, row, artist_id, label_id in resolved:
            chart = charts.get(page.genre_slug)
            if chart is None:
                chart = charts[page.genre_slug] = self.genre_chart(page.genre_slug)
            track_id = tracks.get((artist_id, (row.track_title or "").strip(), label_id))
            entries.append(build_entry(chart, page.snapshot_date, row, SOURCE, artist_id, label_id, track_id))
        self.db.commit()

        inserted = 0
        for start in range(0, len(entries), self.insert_batch_size):
            batch = entries[start:start + self.insert_batch_size]
            inserted += insert_chart_entries(self.db, batch)
            self.db.commit()
        return inserted, len(entries) - inserted

    # ================================================================
    # PASTE IMPORT
    # ================================================================

    def import_paste(self, genre_slug: str, snapshot_date: date, text: str) -> PasteImportResult:
        """Tab-separated paste of one chart (same validity rules as HTML)"""
        if not genre_slug or genre_slug == ALL_GENRES:
            raise BackfillRequestError("A single genre slug is required for a paste import")
        parsed: ParseResult = parse_chart_tsv(text)
        page = ChartPage(
            genre_slug=genre_slug,
            snapshot_date=snapshot_date,
            url=chart_url(genre_slug, snapshot_date),
            result=parsed,
        )
        inserted, skipped = self._write_pages([page])
        return PasteImportResult(
            genre_slug=genre_slug,
            snapshot_date=snapshot_date.isoformat(),
            parsed=len(parsed.rows),
            filtered=parsed.filtered,
            inserted=inserted,
            skipped=skipped,
        )
