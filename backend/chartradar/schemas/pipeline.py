"""
Pipeline, discovery and ingestion run schemas
"""
from datetime import date, datetime
from typing import Optional, List, Dict, Any
from pydantic import BaseModel


class PipelineRunRequest(BaseModel):
    """Request to queue a full pipeline run"""
    chart_date: Optional[date] = None  # defaults to today
    chart_families: Optional[List[str]] = None  # defaults to top + hype tracks


class DiscoveryRunRequest(BaseModel):
    platform: str = "beatport"


class IngestRunRequest(BaseModel):
    source: str = "beatport"
    chart_date: Optional[date] = None
    chart_families: Optional[List[str]] = None


class PipelineRunResponse(BaseModel):
    id: int
    kind: str
    status: str
    stage: Optional[str] = None
    progress: Optional[str] = None
    counters: Optional[Dict[str, Any]] = None
    error_message: Optional[str] = None
    started_at: Optional[datetime] = None
    finished_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class TaskQueuedResponse(BaseModel):
    task_id: str
    run_id: Optional[int] = None
    message: str
