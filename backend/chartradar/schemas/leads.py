"""
Read-side schemas: leads, artist metrics, chart history, catalog, oracle
"""
from datetime import date, datetime
from typing import Optional, List, Dict, Any
from pydantic import BaseModel, Field


class LeadResponse(BaseModel):
    artist_id: int
    artist_name: str
    external_id: Optional[str] = None
    segment: str
    score: float
    signals: Dict[str, Any]
    scoring_version: str
    as_of: date


class LeadListResponse(BaseModel):
    items: List[LeadResponse]
    total: int
    limit: int
    offset: int


class ArtistMetricsResponse(BaseModel):
    artist_id: int
    artist_name: str
    external_id: Optional[str] = None
    first_seen: date
    last_seen: date
    total_entries: int
    days_in_charts: int
    best_position: int
    avg_position: float
    recent_avg_position: Optional[float] = None
    previous_avg_position: Optional[float] = None
    genres: List[str]
    as_of: date

    class Config:
        from_attributes = True


class ChartEntryResponse(BaseModel):
    chart_id: int
    snapshot_date: date
    position: int
    source: str
    chart_family: str
    genre_slug: Optional[str] = None
    track_title: Optional[str] = None
    artist_name_raw: Optional[str] = None
    label_name: Optional[str] = None
    movement: Optional[str] = None

    class Config:
        from_attributes = True


class EnrichmentResponse(BaseModel):
    artist_id: int
    bio_summary: Optional[str] = None
    role: Optional[str] = None
    insight: Optional[str] = None
    enriched_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class EnrichmentUpdate(BaseModel):
    bio_summary: Optional[str] = None
    role: Optional[str] = None
    insight: Optional[str] = None


class ArtistDetailResponse(BaseModel):
    artist_id: int
    name: str
    external_id: Optional[str] = None
    aliases: List[str]
    metrics: Optional[ArtistMetricsResponse] = None
    lead: Optional[LeadResponse] = None
    enrichment: Optional[EnrichmentResponse] = None


class CatalogEntryResponse(BaseModel):
    id: int
    platform: str
    chart_family: str
    genre_slug: Optional[str] = None
    genre_name: Optional[str] = None
    url: str
    title: Optional[str] = None
    is_active: bool
    discovered_at: Optional[datetime] = None
    last_seen_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class OracleScanRequest(BaseModel):
    url: str = Field(..., min_length=1)


class AddToLeadsRequest(BaseModel):
    url: str = Field(..., min_length=1)
    chart_date: Optional[date] = None
