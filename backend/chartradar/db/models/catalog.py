"""
Charts catalog: registry of known chart URLs and their liveness
"""
from datetime import datetime
from enum import Enum as PyEnum

from sqlalchemy import Column, Integer, String, Boolean, DateTime, Text, Index

from chartradar.db.base import Base


class Platform(str, PyEnum):
    BEATPORT = "beatport"
    TOPTRACKER = "bptoptracker"
    BEATSTATS = "beatstats"
    SONGSTATS = "songstats"


class ChartFamily(str, PyEnum):
    TOP_TRACKS = "top_tracks"
    HYPE_TRACKS = "hype_tracks"
    TOP_RELEASES = "top_releases"
    HYPE_RELEASES = "hype_releases"
    UNKNOWN = "unknown"


PRIMARY_FAMILIES = [ChartFamily.TOP_TRACKS.value, ChartFamily.HYPE_TRACKS.value]


class CatalogEntry(Base):
    """
    One chart URL discovered on a platform.
    Created on first sighting, touched on every later sighting, never deleted.
    """
    __tablename__ = "charts_catalog"

    id = Column(Integer, primary_key=True, autoincrement=True)
    platform = Column(String(50), nullable=False, index=True)
    chart_family = Column(String(50), nullable=False, default=ChartFamily.UNKNOWN.value)
    genre_slug = Column(String(255), nullable=True)
    genre_name = Column(String(255), nullable=True)
    url = Column(String(2000), nullable=False, unique=True)
    title = Column(Text, nullable=True)
    is_active = Column(Boolean, nullable=False, default=True)
    discovered_at = Column(DateTime, default=datetime.utcnow)
    last_seen_at = Column(DateTime, default=datetime.utcnow)

    __table_args__ = (
        Index("ix_charts_catalog_platform_active", "platform", "is_active"),
    )

    def __repr__(self):
        return f"<CatalogEntry {self.platform} {self.chart_family} {self.url}>"
