"""
Catalog API - discovered chart URLs

Routes:
GET /catalog - Catalog listing (platform / family / active filters)
"""
from typing import List, Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from chartradar.api.deps import verify_internal_token
from chartradar.db import get_db
from chartradar.db.models import CatalogEntry
from chartradar.schemas import CatalogEntryResponse

router = APIRouter(prefix="/catalog", tags=["Catalog"], dependencies=[Depends(verify_internal_token)])


@router.get("", response_model=List[CatalogEntryResponse])
@router.get("/", response_model=List[CatalogEntryResponse])
def list_catalog(
    platform: Optional[str] = None,
    chart_family: Optional[str] = None,
    active: Optional[bool] = None,
    limit: int = Query(500, ge=1, le=5000),
    db: Session = Depends(get_db),
):
    query = db.query(CatalogEntry)
    if platform:
        query = query.filter(CatalogEntry.platform == platform)
    if chart_family:
        query = query.filter(CatalogEntry.chart_family == chart_family)
    if active is not None:
        query = query.filter(CatalogEntry.is_active.is_(active))
    return query.order_by(CatalogEntry.platform, CatalogEntry.genre_slug, CatalogEntry.url).limit(limit).all()
