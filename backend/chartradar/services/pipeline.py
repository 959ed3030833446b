"""
Pipeline Service - orchestration shared by the API and the Celery tasks.

discovery -> ingest -> normalize -> score, with each run recorded in
pipeline_runs (stage, progress, counters, error).
"""
import logging
from datetime import date, datetime
from typing import Any, Dict, List, Optional

from sqlalchemy.orm import Session

from chartradar.core.exceptions import ChartRadarError
from chartradar.db.models import PipelineRun, Platform, RunKind, RunStatus
from chartradar.ingestion.discovery import DiscoveryService
from chartradar.ingestion.engine import IngestionEngine
from chartradar.ingestion.fetcher import Fetcher
from chartradar.scoring import refresh_artist_metrics, refresh_lead_scores

logger = logging.getLogger(__name__)


# ================================================================
# RUN RECORDS
# ================================================================

def start_run(db: Session, kind: RunKind) -> PipelineRun:
    run = PipelineRun(kind=kind.value, status=RunStatus.RUNNING.value, stage="starting", counters={})
    db.add(run)
    db.commit()
    db.refresh(run)
    return run


def update_stage(db: Session, run: PipelineRun, stage: str, progress: Optional[str] = None) -> None:
    run.stage = stage
    run.progress = progress
    db.commit()


def finish_run(
    db: Session,
    run: PipelineRun,
    counters: Optional[Dict[str, Any]] = None,
    error: Optional[str] = None,
) -> PipelineRun:
    run.counters = counters or run.counters or {}
    run.status = RunStatus.ERROR.value if error else RunStatus.COMPLETED.value
    run.error_message = error
    run.stage = "failed" if error else "done"
    run.finished_at = datetime.utcnow()
    db.commit()
    return run


def latest_run(db: Session, kind: Optional[str] = None) -> Optional[PipelineRun]:
    query = db.query(PipelineRun)
    if kind:
        query = query.filter(PipelineRun.kind == kind)
    return query.order_by(PipelineRun.id.desc()).first()


# ================================================================
# STAGES
# ================================================================

def normalize_and_score(db: Session) -> Dict[str, Any]:
    normalized = refresh_artist_metrics(db)
    scored = refresh_lead_scores(db)
    return {"normalize": normalized.to_dict(), "score": scored.to_dict()}


async def run_full_pipeline(
    db: Session,
    fetcher: Fetcher,
    run: PipelineRun,
    chart_date: Optional[date] = None,
    chart_families: Optional[List[str]] = None,
) -> PipelineRun:
    """All four stages; a fatal stage error marks the run failed"""
    counters: Dict[str, Any] = {}
    try:
        update_stage(db, run, "discovery", "Walking the genre index")
        discovery = await DiscoveryService(db, fetcher).run()
        counters["discovery"] = discovery.to_dict()

        update_stage(
            db, run, "ingest",
            f"{discovery.upserted} charts in catalog, {discovery.marked_inactive} deactivated",
        )
        ingest = await IngestionEngine(db, fetcher).run(
            source=Platform.BEATPORT.value,
            chart_date=chart_date,
            chart_families=chart_families,
        )
        counters["ingest"] = ingest.to_dict()

        update_stage(db, run, "normalize", f"{ingest.inserted} new chart entries")
        counters.update(normalize_and_score(db))
    except ChartRadarError as e:
        db.rollback()
        logger.error(f"Pipeline run {run.id} failed at {run.stage}: {e}")
        return finish_run(db, run, counters, error=str(e))

    return finish_run(db, run, counters)


async def add_chart_to_leads(db: Session, fetcher: Fetcher, url: str, chart_date: Optional[date] = None) -> Dict[str, Any]:
    """Register + ingest one chart URL, then refresh metrics and scores"""
    chart, result = await IngestionEngine(db, fetcher).ingest_url(url, chart_date)
    derived = normalize_and_score(db)
    return {
        "chart_id": chart.id,
        "ingest": result.to_dict(),
        "metrics_updated": derived["normalize"]["artists"],
        "scores_updated": derived["score"]["scored"],
    }
