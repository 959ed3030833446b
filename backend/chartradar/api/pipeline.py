"""
Pipeline API - queue runs and read their diagnostics

Routes:
POST /pipeline/run - Queue discovery -> ingest -> normalize -> score
POST /pipeline/score - Queue normalize + score only
GET /pipeline/status - Latest run (optionally of one kind)
GET /pipeline/runs/{run_id} - One run
POST /discovery/run - Queue a discovery run
GET /discovery/status - Latest discovery run + catalog counts
POST /ingest/run - Queue catalog-driven ingestion
GET /ingest/sources - Available ingestion sources
"""
from typing import Optional, List

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy import func
from sqlalchemy.orm import Session

from chartradar.api.deps import verify_internal_token
from chartradar.db import get_db
from chartradar.db.models import CatalogEntry, PipelineRun, RunKind
from chartradar.ingestion.engine import available_sources
from chartradar.schemas import (
    PipelineRunRequest, DiscoveryRunRequest, IngestRunRequest,
    PipelineRunResponse, TaskQueuedResponse,
)
from chartradar.services import pipeline
from chartradar.workers.tasks import (
    run_discovery_task, run_ingest_task, run_pipeline_task, run_scoring_task,
)

router = APIRouter(tags=["Pipeline"], dependencies=[Depends(verify_internal_token)])


# ================================================================
# PIPELINE
# ================================================================

@router.post("/pipeline/run", response_model=TaskQueuedResponse, status_code=202)
def queue_pipeline_run(request: PipelineRunRequest, db: Session = Depends(get_db)):
    run = pipeline.start_run(db, RunKind.PIPELINE)
    task = run_pipeline_task.delay(
        run_id=run.id,
        chart_date=request.chart_date.isoformat() if request.chart_date else None,
        chart_families=request.chart_families,
    )
    return TaskQueuedResponse(task_id=task.id, run_id=run.id, message="Pipeline run queued")


@router.post("/pipeline/score", response_model=TaskQueuedResponse, status_code=202)
def queue_scoring():
    task = run_scoring_task.delay()
    return TaskQueuedResponse(task_id=task.id, message="Normalize + score queued")


@router.get("/pipeline/status", response_model=Optional[PipelineRunResponse])
def pipeline_status(kind: Optional[str] = None, db: Session = Depends(get_db)):
    return pipeline.latest_run(db, kind)


@router.get("/pipeline/runs/{run_id}", response_model=PipelineRunResponse)
def get_run(run_id: int, db: Session = Depends(get_db)):
    run = db.query(PipelineRun).filter(PipelineRun.id == run_id).first()
    if not run:
        raise HTTPException(status_code=404, detail="Run not found")
    return run


# ================================================================
# DISCOVERY
# ================================================================

@router.post("/discovery/run", response_model=TaskQueuedResponse, status_code=202)
def queue_discovery(request: DiscoveryRunRequest):
    task = run_discovery_task.delay(platform=request.platform)
    return TaskQueuedResponse(task_id=task.id, message=f"Discovery queued for {request.platform}")


@router.get("/discovery/status")
def discovery_status(db: Session = Depends(get_db)):
    latest = pipeline.latest_run(db, RunKind.DISCOVERY.value)
    counts = (
        db.query(CatalogEntry.platform, CatalogEntry.is_active, func.count(CatalogEntry.id))
        .group_by(CatalogEntry.platform, CatalogEntry.is_active)
        .all()
    )
    catalog = {}
    for platform, is_active, count in counts:
        entry = catalog.setdefault(platform, {"active": 0, "inactive": 0})
        entry["active" if is_active else "inactive"] += count
    return {
        "latest_run": PipelineRunResponse.model_validate(latest) if latest else None,
        "catalog": catalog,
    }


# ================================================================
# INGEST
# ================================================================

@router.post("/ingest/run", response_model=TaskQueuedResponse, status_code=202)
def queue_ingest(request: IngestRunRequest):
    if request.source not in available_sources():
        raise HTTPException(
            status_code=400,
            detail=f"Unknown source '{request.source}'; available: {', '.join(available_sources())}",
        )
    task = run_ingest_task.delay(
        source=request.source,
        chart_date=request.chart_date.isoformat() if request.chart_date else None,
        chart_families=request.chart_families,
    )
    return TaskQueuedResponse(task_id=task.id, message=f"Ingestion queued for {request.source}")


@router.get("/ingest/sources", response_model=List[str])
def ingest_sources():
    return available_sources()
