"""
Artists API - metrics, chart history and optional enrichment

Routes:
GET /artists/{artist_id} - Identity, aliases, metrics, lead score, enrichment
GET /artists/{artist_id}/history - Chart entries, newest first
GET /artists/{artist_id}/enrichment - Cached enrichment
PUT /artists/{artist_id}/enrichment - Manual enrichment
POST /artists/{artist_id}/enrichment/run - Queue LLM enrichment
"""
from typing import List

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.orm import Session

from chartradar.api.deps import verify_internal_token
from chartradar.api.leads import to_lead_response
from chartradar.db import get_db
from chartradar.db.models import Artist, ArtistMetrics, ChartEntry, LeadScore
from chartradar.schemas import (
    ArtistDetailResponse, ArtistMetricsResponse, ChartEntryResponse,
    EnrichmentResponse, EnrichmentUpdate, TaskQueuedResponse,
)
from chartradar.services import enrichment
from chartradar.workers.tasks import enrich_artist_task

router = APIRouter(prefix="/artists", tags=["Artists"], dependencies=[Depends(verify_internal_token)])


def _get_artist(db: Session, artist_id: int) -> Artist:
    artist = db.query(Artist).filter(Artist.id == artist_id).first()
    if not artist:
        raise HTTPException(status_code=404, detail="Artist not found")
    return artist


@router.get("/{artist_id}", response_model=ArtistDetailResponse)
def get_artist(artist_id: int, db: Session = Depends(get_db)):
    artist = _get_artist(db, artist_id)
    metrics = db.query(ArtistMetrics).filter(ArtistMetrics.artist_id == artist_id).first()
    lead = db.query(LeadScore).filter(LeadScore.artist_id == artist_id).first()
    cached = enrichment.get_enrichment(db, artist_id)
    return ArtistDetailResponse(
        artist_id=artist.id,
        name=artist.name,
        external_id=artist.external_id,
        aliases=sorted({alias.raw_name for alias in artist.aliases}),
        metrics=ArtistMetricsResponse.model_validate(metrics) if metrics else None,
        lead=to_lead_response(lead, artist) if lead else None,
        enrichment=EnrichmentResponse.model_validate(cached) if cached else None,
    )


@router.get("/{artist_id}/history", response_model=List[ChartEntryResponse])
def artist_history(
    artist_id: int,
    limit: int = Query(200, ge=1, le=2000),
    db: Session = Depends(get_db),
):
    _get_artist(db, artist_id)
    return (
        db.query(ChartEntry)
        .filter(ChartEntry.artist_id == artist_id)
        .order_by(ChartEntry.snapshot_date.desc(), ChartEntry.position)
        .limit(limit)
        .all()
    )


@router.get("/{artist_id}/enrichment", response_model=EnrichmentResponse)
def get_enrichment(artist_id: int, db: Session = Depends(get_db)):
    cached = enrichment.get_enrichment(db, artist_id)
    if not cached:
        raise HTTPException(status_code=404, detail="No enrichment for this artist")
    return cached


@router.put("/{artist_id}/enrichment", response_model=EnrichmentResponse)
def set_enrichment(artist_id: int, data: EnrichmentUpdate, db: Session = Depends(get_db)):
    _get_artist(db, artist_id)
    return enrichment.set_enrichment(db, artist_id, data.model_dump())


@router.post("/{artist_id}/enrichment/run", response_model=TaskQueuedResponse, status_code=202)
def run_enrichment(artist_id: int, force: bool = False, db: Session = Depends(get_db)):
    _get_artist(db, artist_id)
    if not enrichment.is_enabled():
        raise HTTPException(status_code=409, detail="Enrichment is disabled (ENRICHMENT_ENABLED / OPENAI_API_KEY)")
    task = enrich_artist_task.delay(artist_id, force=force)
    return TaskQueuedResponse(task_id=task.id, message="Enrichment queued")
