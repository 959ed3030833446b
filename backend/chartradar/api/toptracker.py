"""
Top Tracker API - gated source operations

Routes:
POST /toptracker/backfill - Historical backfill over a genre x date range
POST /toptracker/daily - Yesterday + today for the configured genres
POST /toptracker/import-paste - Tab-separated paste of one chart
GET /toptracker/genres - Known genre slugs
GET /toptracker/links - Manual artist links
PUT /toptracker/links - Create or update a manual artist link
POST /toptracker/session/clear - Drop the cached session
GET /toptracker/debug - Describe one chart page without persisting
"""
from datetime import date, timedelta
from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.orm import Session

from chartradar.api.deps import get_fetcher, get_session_store, verify_internal_token
from chartradar.core.exceptions import BackfillRequestError, FetchError, NoValidRowsError
from chartradar.core.config import settings
from chartradar.db import get_db
from chartradar.db.models import Artist, ManualArtistLink
from chartradar.ingestion.backfill import BackfillEngine, BackfillResult
from chartradar.ingestion.fetcher import Fetcher
from chartradar.ingestion.session import SessionStore
from chartradar.ingestion.toptracker import GENRES, diagnose_chart_page
from chartradar.schemas import (
    BackfillRequest, BackfillResponse, DailyUpdateRequest,
    PasteImportRequest, PasteImportResponse,
    ManualLinkRequest, ManualLinkResponse, GenreResponse,
)
from chartradar.services import pipeline

router = APIRouter(prefix="/toptracker", tags=["Top Tracker"], dependencies=[Depends(verify_internal_token)])


def _finish(db: Session, result: BackfillResult, rescore: bool) -> BackfillResponse:
    if not result.ok:
        raise HTTPException(status_code=401, detail=result.error)
    scoring = pipeline.normalize_and_score(db) if rescore and result.total_inserted else None
    return BackfillResponse(**result.to_dict(), scoring=scoring)


@router.post("/backfill", response_model=BackfillResponse)
async def backfill(
    request: BackfillRequest,
    db: Session = Depends(get_db),
    fetcher: Fetcher = Depends(get_fetcher),
    sessions: SessionStore = Depends(get_session_store),
):
    engine = BackfillEngine(db, fetcher, sessions)
    try:
        result = await engine.run(request.genre, request.date_from, request.date_to)
    except BackfillRequestError as e:
        raise HTTPException(status_code=400, detail=str(e))
    return _finish(db, result, request.rescore)


@router.post("/daily", response_model=BackfillResponse)
async def daily_update(
    request: DailyUpdateRequest,
    db: Session = Depends(get_db),
    fetcher: Fetcher = Depends(get_fetcher),
    sessions: SessionStore = Depends(get_session_store),
):
    engine = BackfillEngine(db, fetcher, sessions)
    result = await engine.run_daily(request.genres)
    return _finish(db, result, request.rescore)


@router.post("/import-paste", response_model=PasteImportResponse)
def import_paste(request: PasteImportRequest, db: Session = Depends(get_db)):
    engine = BackfillEngine(db, fetcher=None, sessions=None)
    try:
        result = engine.import_paste(request.genre.strip(), request.snapshot_date, request.text)
    except (BackfillRequestError, NoValidRowsError) as e:
        raise HTTPException(status_code=400, detail=str(e))
    return PasteImportResponse(**result.to_dict())


@router.get("/genres", response_model=List[GenreResponse])
def list_genres():
    return [GenreResponse(slug=slug, name=name) for slug, name in GENRES.items()]


# ================================================================
# MANUAL LINKS
# ================================================================

@router.get("/links", response_model=List[ManualLinkResponse])
def list_links(db: Session = Depends(get_db)):
    return db.query(ManualArtistLink).order_by(ManualArtistLink.raw_name).all()


@router.put("/links", response_model=ManualLinkResponse)
def upsert_link(request: ManualLinkRequest, db: Session = Depends(get_db)):
    if not db.query(Artist.id).filter(Artist.id == request.artist_id).first():
        raise HTTPException(status_code=404, detail="Artist not found")
    raw_name = request.raw_name.strip()
    link = db.query(ManualArtistLink).filter(ManualArtistLink.raw_name == raw_name).first()
    if link is None:
        link = ManualArtistLink(raw_name=raw_name)
        db.add(link)
    link.artist_id = request.artist_id
    link.note = request.note
    db.commit()
    db.refresh(link)
    return link


# ================================================================
# SESSION / DEBUG
# ================================================================

@router.post("/session/clear")
def clear_session(sessions: SessionStore = Depends(get_session_store)):
    sessions.invalidate()
    return {"state": sessions.state.value}


@router.get("/debug")
async def debug_chart_page(
    genre: Optional[str] = None,
    snapshot_date: Optional[date] = Query(None, alias="date"),
    fetcher: Fetcher = Depends(get_fetcher),
    sessions: SessionStore = Depends(get_session_store),
):
    try:
        return await diagnose_chart_page(
            fetcher,
            sessions,
            (genre or settings.toptracker_verify_genre).strip(),
            snapshot_date or date.today() - timedelta(days=1),
        )
    except FetchError as e:
        raise HTTPException(status_code=502, detail=str(e))
