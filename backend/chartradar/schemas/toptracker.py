"""
Top Tracker schemas: backfill, daily update, paste import, manual links
"""
from datetime import date, datetime
from typing import Optional, List, Dict, Any
from pydantic import BaseModel, Field


class BackfillRequest(BaseModel):
    genre: str = Field(..., description="Genre slug, or '__all__'")
    date_from: date
    date_to: date
    rescore: bool = False


class BackfillResponse(BaseModel):
    ok: bool
    genre: str
    date_from: Optional[str] = None
    date_to: Optional[str] = None
    genres_processed: int
    dates_requested: int
    tasks: int
    rows_parsed: int
    filtered: int
    total_inserted: int
    total_skipped: int
    errors: List[str]
    hint: Optional[str] = None
    error: Optional[str] = None
    scoring: Optional[Dict[str, Any]] = None


class DailyUpdateRequest(BaseModel):
    genres: Optional[List[str]] = None  # defaults to TOPTRACKER_GENRES
    rescore: bool = True


class PasteImportRequest(BaseModel):
    genre: str
    snapshot_date: date
    text: str = Field(..., min_length=1, description="Tab-separated chart table")


class PasteImportResponse(BaseModel):
    genre_slug: str
    snapshot_date: str
    parsed: int
    filtered: int
    inserted: int
    skipped: int


class ManualLinkRequest(BaseModel):
    raw_name: str = Field(..., min_length=1)
    artist_id: int
    note: Optional[str] = None


class ManualLinkResponse(BaseModel):
    id: int
    raw_name: str
    artist_id: int
    note: Optional[str] = None
    linked_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class GenreResponse(BaseModel):
    slug: str
    name: str
