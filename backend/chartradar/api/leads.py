"""
Leads API - read-only lead scores

Routes:
GET /leads - Lead list with segment / score filters
GET /leads/segments - Lead count per segment
"""
from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy import func
from sqlalchemy.orm import Session

from chartradar.api.deps import verify_internal_token
from chartradar.db import get_db
from chartradar.db.models import Artist, LeadScore
from chartradar.schemas import LeadListResponse, LeadResponse

router = APIRouter(prefix="/leads", tags=["Leads"], dependencies=[Depends(verify_internal_token)])


def to_lead_response(lead: LeadScore, artist: Artist) -> LeadResponse:
    return LeadResponse(
        artist_id=lead.artist_id,
        artist_name=artist.name,
        external_id=artist.external_id,
        segment=lead.segment,
        score=lead.score,
        signals=lead.signals or {},
        scoring_version=lead.scoring_version,
        as_of=lead.as_of,
    )


@router.get("", response_model=LeadListResponse)
@router.get("/", response_model=LeadListResponse)
def list_leads(
    segment: Optional[str] = None,
    score_min: Optional[float] = Query(None, ge=0, le=100),
    search: Optional[str] = None,
    limit: int = Query(50, ge=1, le=500),
    offset: int = Query(0, ge=0),
    db: Session = Depends(get_db),
):
    query = db.query(LeadScore, Artist).join(Artist, Artist.id == LeadScore.artist_id)
    if segment:
        query = query.filter(LeadScore.segment == segment)
    if score_min is not None:
        query = query.filter(LeadScore.score >= score_min)
    if search:
        query = query.filter(Artist.normalized_name.contains(search.strip().lower()))

    total = query.count()
    rows = (
        query.order_by(LeadScore.score.desc(), LeadScore.artist_id)
        .offset(offset)
        .limit(limit)
        .all()
    )
    return LeadListResponse(
        items=[to_lead_response(lead, artist) for lead, artist in rows],
        total=total,
        limit=limit,
        offset=offset,
    )


@router.get("/segments")
def segment_counts(db: Session = Depends(get_db)):
    rows = db.query(LeadScore.segment, func.count(LeadScore.artist_id)).group_by(LeadScore.segment).all()
    return {segment: count for segment, count in rows}
