"""
Celery tasks for discovery, ingestion, backfill and scoring
"""
import asyncio
from datetime import date
from typing import Any, Dict, List, Optional

from sqlalchemy.orm import Session

from chartradar.workers.celery_app import celery_app
from chartradar.workers.task_logger import get_task_logger, logged_task
from chartradar.core.exceptions import BackfillRequestError, DiscoveryError
from chartradar.db.session import SessionLocal
from chartradar.db.models import PipelineRun, RunKind
from chartradar.ingestion.backfill import BackfillEngine
from chartradar.ingestion.discovery import DiscoveryService
from chartradar.ingestion.engine import IngestionEngine
from chartradar.ingestion.fetcher import Fetcher
from chartradar.ingestion.session import SessionStore
from chartradar.services import pipeline
from chartradar.services.enrichment import ArtistEnricher

# process-wide Top Tracker session, shared by every task of this worker
sessions = SessionStore()


def get_db() -> Session:
    """Get database session"""
    return SessionLocal()


def run_async(coro):
    """Run a coroutine on a fresh event loop (Celery workers are sync)"""
    loop = asyncio.new_event_loop()
    asyncio.set_event_loop(loop)
    try:
        return loop.run_until_complete(coro)
    finally:
        loop.close()


def _parse_date(value: Optional[str]) -> Optional[date]:
    return date.fromisoformat(value) if value else None


@celery_app.task(bind=True)
@logged_task("discovery")
def run_discovery_task(self, log, platform: str = "beatport") -> Dict[str, Any]:
    db = get_db()
    run = pipeline.start_run(db, RunKind.DISCOVERY)
    try:
        log.step(f"Discovery: {platform}")

        async def _run():
            async with Fetcher() as fetcher:
                return await DiscoveryService(db, fetcher, platform=platform).run()

        try:
            with log.timer("genre index walk"):
                result = run_async(_run())
        except DiscoveryError as e:
            log.error(str(e))
            pipeline.finish_run(db, run, error=str(e))
            return {"run_id": run.id, "error": str(e)}

        pipeline.finish_run(db, run, {"discovery": result.to_dict()})
        log.success(
            f"{result.upserted} charts upserted, {result.marked_inactive} deactivated",
            genres=result.genres_fetched, errors=len(result.errors),
        )
        return {"run_id": run.id, **result.to_dict()}
    finally:
        db.close()


@celery_app.task(bind=True, max_retries=2)
@logged_task("ingest")
def run_ingest_task(
    self,
    log,
    source: str = "beatport",
    chart_date: Optional[str] = None,
    chart_families: Optional[List[str]] = None,
) -> Dict[str, Any]:
    db = get_db()
    run = pipeline.start_run(db, RunKind.INGEST)
    try:
        log.step(f"Ingest: {source} {chart_date or 'today'}")

        async def _run():
            async with Fetcher() as fetcher:
                return await IngestionEngine(db, fetcher).run(
                    source=source,
                    chart_date=_parse_date(chart_date),
                    chart_families=chart_families,
                )

        with log.timer(f"ingest {source}"):
            result = run_async(_run())

        pipeline.finish_run(db, run, {"ingest": result.to_dict()})
        log.success(
            f"{result.inserted} inserted, {result.skipped} skipped",
            charts=result.charts_processed, filtered=result.filtered, errors=len(result.errors),
        )
        return {"run_id": run.id, **result.to_dict()}
    finally:
        db.close()


@celery_app.task(bind=True)
@logged_task("scoring")
def run_scoring_task(self, log) -> Dict[str, Any]:
    db = get_db()
    run = pipeline.start_run(db, RunKind.SCORING)
    try:
        log.step("Normalize + score")
        with log.timer("normalize + score"):
            counters = pipeline.normalize_and_score(db)
        pipeline.finish_run(db, run, counters)
        log.success(f"{counters['score']['scored']} artists scored", segments=counters["score"]["segments"])
        return {"run_id": run.id, **counters}
    finally:
        db.close()


@celery_app.task(bind=True)
@logged_task("pipeline")
def run_pipeline_task(
    self,
    log,
    run_id: Optional[int] = None,
    chart_date: Optional[str] = None,
    chart_families: Optional[List[str]] = None,
) -> Dict[str, Any]:
    """
    Full run: discovery -> ingest -> normalize -> score.
    ``run_id`` lets the API create the run record before queueing.
    """
    db = get_db()
    try:
        run = db.query(PipelineRun).filter(PipelineRun.id == run_id).first() if run_id else None
        if run is None:
            run = pipeline.start_run(db, RunKind.PIPELINE)
        log.step(f"Pipeline run {run.id}")

        async def _run():
            async with Fetcher() as fetcher:
                return await pipeline.run_full_pipeline(
                    db, fetcher, run,
                    chart_date=_parse_date(chart_date),
                    chart_families=chart_families,
                )

        with log.timer("full pipeline"):
            run = run_async(_run())

        if run.error_message:
            log.error(f"Pipeline failed at {run.stage}: {run.error_message}")
        else:
            log.success(f"Pipeline run {run.id} completed in {log.elapsed_str()}")
        return {"run_id": run.id, "status": run.status, "counters": run.counters}
    finally:
        db.close()


def _backfill(db: Session, log, coro_factory, rescore: bool, kind: RunKind) -> Dict[str, Any]:
    run = pipeline.start_run(db, kind)

    async def _run():
        async with Fetcher() as fetcher:
            return await coro_factory(BackfillEngine(db, fetcher, sessions))

    try:
        with log.timer(kind.value):
            result = run_async(_run())
    except BackfillRequestError as e:
        log.error(str(e))
        pipeline.finish_run(db, run, error=str(e))
        return {"run_id": run.id, "ok": False, "error": str(e)}

    counters: Dict[str, Any] = {"backfill": result.to_dict()}
    if not result.ok:
        log.warning(f"Backfill aborted: {result.error}")
        pipeline.finish_run(db, run, counters, error=result.error)
        return {"run_id": run.id, **result.to_dict()}

    if rescore and result.total_inserted:
        pipeline.update_stage(db, run, "normalize")
        counters.update(pipeline.normalize_and_score(db))
    pipeline.finish_run(db, run, counters)
    log.success(
        f"{result.total_inserted} inserted, {result.total_skipped} skipped",
        tasks=result.tasks, errors=len(result.errors),
    )
    if result.hint:
        log.warning(result.hint)
    return {"run_id": run.id, **result.to_dict()}


@celery_app.task(bind=True)
@logged_task("backfill")
def toptracker_backfill_task(
    self,
    log,
    genre: str,
    date_from: str,
    date_to: str,
    rescore: bool = False,
) -> Dict[str, Any]:
    db = get_db()
    try:
        log.step(f"Top Tracker backfill {genre} {date_from}..{date_to}")
        return _backfill(
            db, log,
            lambda engine: engine.run(genre, date.fromisoformat(date_from), date.fromisoformat(date_to)),
            rescore,
            RunKind.BACKFILL,
        )
    finally:
        db.close()


@celery_app.task(bind=True)
@logged_task("toptracker")
def toptracker_daily_task(self, log, genres: Optional[List[str]] = None, rescore: bool = True) -> Dict[str, Any]:
    db = get_db()
    try:
        log.step("Top Tracker daily update")
        return _backfill(db, log, lambda engine: engine.run_daily(genres), rescore, RunKind.DAILY)
    finally:
        db.close()


@celery_app.task
def enrich_artist_task(artist_id: int, force: bool = False) -> Dict[str, Any]:
    log = get_task_logger("enrichment")
    db = get_db()
    try:
        row = ArtistEnricher(db).enrich(artist_id, force=force)
        if row is None:
            log.info(f"Artist {artist_id}: enrichment disabled or artist unknown")
            return {"artist_id": artist_id, "enriched": False}
        log.success(f"Artist {artist_id} enriched", role=row.role)
        return {"artist_id": artist_id, "enriched": True, "role": row.role}
    finally:
        db.close()
