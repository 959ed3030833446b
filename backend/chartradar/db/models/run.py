"""
Pipeline run diagnostics (per-run counters, stage and progress)
"""
from datetime import datetime
from enum import Enum as PyEnum

from sqlalchemy import Column, Integer, String, Text, DateTime, JSON

from chartradar.db.base import Base


class RunKind(str, PyEnum):
    PIPELINE = "pipeline"
    DISCOVERY = "discovery"
    INGEST = "ingest"
    SCORING = "scoring"
    BACKFILL = "backfill"
    DAILY = "daily"


class RunStatus(str, PyEnum):
    RUNNING = "running"
    COMPLETED = "completed"
    ERROR = "error"


class PipelineRun(Base):
    __tablename__ = "pipeline_runs"

    id = Column(Integer, primary_key=True, autoincrement=True)
    kind = Column(String(30), nullable=False, default=RunKind.PIPELINE.value)
    status = Column(String(20), nullable=False, default=RunStatus.RUNNING.value)
    stage = Column(String(50), nullable=True)
    progress = Column(Text, nullable=True)
    counters = Column(JSON, nullable=True)
    error_message = Column(Text, nullable=True)
    started_at = Column(DateTime, default=datetime.utcnow)
    finished_at = Column(DateTime, nullable=True)

    def __repr__(self):
        return f"<PipelineRun {self.id} {self.kind} {self.status}>"
