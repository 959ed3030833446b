"""
Optional artist enrichment (LLM bio summary). Never read by scoring.
"""
from datetime import datetime

from sqlalchemy import Column, Integer, String, Text, DateTime, ForeignKey

from chartradar.db.base import Base


class ArtistEnrichment(Base):
    __tablename__ = "artist_enrichment"

    artist_id = Column(Integer, ForeignKey("artists.id"), primary_key=True)
    bio_summary = Column(Text, nullable=True)
    role = Column(String(100), nullable=True)
    insight = Column(Text, nullable=True)
    enriched_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)
