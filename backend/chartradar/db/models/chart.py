"""
Chart entries: append-only snapshot rows
"""
from datetime import datetime

from sqlalchemy import (
    Column, Integer, String, Date, DateTime, Text, ForeignKey, UniqueConstraint, Index
)
from sqlalchemy.orm import relationship

from chartradar.db.base import Base


class ChartEntry(Base):
    """
    One ranked row of one chart on one snapshot date.
    Natural key: (chart_id, snapshot_date, position). Catalog entries are
    family-scoped by URL so the chart reference already carries the family.
    """
    __tablename__ = "chart_entries"

    id = Column(Integer, primary_key=True, autoincrement=True)
    chart_id = Column(Integer, ForeignKey("charts_catalog.id"), nullable=False, index=True)
    snapshot_date = Column(Date, nullable=False, index=True)
    position = Column(Integer, nullable=False)

    source = Column(String(50), nullable=False)
    chart_family = Column(String(50), nullable=False)
    genre_slug = Column(String(255), nullable=True)

    track_title = Column(Text, nullable=True)
    artist_name_raw = Column(String(500), nullable=True)
    artists_full = Column(Text, nullable=True)
    artist_external_id = Column(String(255), nullable=True)
    label_name = Column(String(500), nullable=True)
    released = Column(Text, nullable=True)
    movement = Column(Text, nullable=True)

    artist_id = Column(Integer, ForeignKey("artists.id"), nullable=True, index=True)
    label_id = Column(Integer, ForeignKey("labels.id"), nullable=True)
    track_id = Column(Integer, ForeignKey("tracks.id"), nullable=True)

    created_at = Column(DateTime, default=datetime.utcnow)

    chart = relationship("CatalogEntry")
    artist = relationship("Artist")

    __table_args__ = (
        UniqueConstraint("chart_id", "snapshot_date", "position", name="uq_chart_entries_natural_key"),
        Index("ix_chart_entries_artist_date", "artist_id", "snapshot_date"),
    )

    def __repr__(self):
        return f"<ChartEntry chart={self.chart_id} {self.snapshot_date} #{self.position}>"
