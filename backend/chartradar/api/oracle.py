"""
Oracle API - one-off chart URL inspection

Routes:
POST /oracle/scan - Preview a chart URL (writes nothing)
POST /oracle/add-to-leads - Catalog + ingest the URL, then normalize + score
"""
from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session

from chartradar.api.deps import get_fetcher, get_session_store, verify_internal_token
from chartradar.core.exceptions import UnsupportedSourceError
from chartradar.db import get_db
from chartradar.ingestion.fetcher import Fetcher
from chartradar.ingestion.session import SessionStore
from chartradar.intelligence.oracle_scanner import OracleScanner, normalize_url
from chartradar.schemas import AddToLeadsRequest, OracleScanRequest
from chartradar.services import pipeline

router = APIRouter(prefix="/oracle", tags=["Oracle"], dependencies=[Depends(verify_internal_token)])


@router.post("/scan")
async def scan(
    request: OracleScanRequest,
    fetcher: Fetcher = Depends(get_fetcher),
    sessions: SessionStore = Depends(get_session_store),
):
    result = await OracleScanner(fetcher, sessions).scan(request.url)
    return result.to_dict()


@router.post("/add-to-leads")
async def add_to_leads(
    request: AddToLeadsRequest,
    db: Session = Depends(get_db),
    fetcher: Fetcher = Depends(get_fetcher),
):
    try:
        return await pipeline.add_chart_to_leads(db, fetcher, normalize_url(request.url), request.chart_date)
    except UnsupportedSourceError as e:
        raise HTTPException(status_code=400, detail=str(e))
