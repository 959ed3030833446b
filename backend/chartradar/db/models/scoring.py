"""
Derived tables: artist metrics and lead scores.
Both are fully replaced on every refresh and carry no wall-clock columns so a
re-run on unchanged chart entries reproduces them exactly.
"""
from sqlalchemy import Column, Integer, String, Float, Date, JSON, ForeignKey

from chartradar.db.base import Base


class ArtistMetrics(Base):
    __tablename__ = "artist_metrics"

    artist_id = Column(Integer, ForeignKey("artists.id"), primary_key=True)
    artist_name = Column(String(500), nullable=False)
    external_id = Column(String(255), nullable=True)
    first_seen = Column(Date, nullable=False)
    last_seen = Column(Date, nullable=False)
    total_entries = Column(Integer, nullable=False)
    days_in_charts = Column(Integer, nullable=False)
    best_position = Column(Integer, nullable=False)
    avg_position = Column(Float, nullable=False)
    recent_avg_position = Column(Float, nullable=True)
    previous_avg_position = Column(Float, nullable=True)
    genres = Column(JSON, nullable=False, default=list)
    as_of = Column(Date, nullable=False)


class LeadScore(Base):
    __tablename__ = "lead_scores"

    artist_id = Column(Integer, ForeignKey("artists.id"), primary_key=True)
    segment = Column(String(50), nullable=False, index=True)
    score = Column(Float, nullable=False)
    signals = Column(JSON, nullable=False, default=dict)
    scoring_version = Column(String(20), nullable=False)
    as_of = Column(Date, nullable=False)
