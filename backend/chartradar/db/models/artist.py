"""
Canonical identities: artists, labels, tracks and their raw-name aliases
"""
from datetime import datetime

from sqlalchemy import (
    Column, Integer, String, Text, DateTime, ForeignKey, UniqueConstraint
)
from sqlalchemy.orm import relationship

from chartradar.db.base import Base


def normalize_name(name: str) -> str:
    """Normalize a name for matching: trim, lowercase, collapse whitespace"""
    if not name or not isinstance(name, str):
        return ""
    return " ".join(name.split()).lower()


class Artist(Base):
    """
    Canonical artist keyed by normalized name.
    ``external_id`` holds a platform-native id (e.g. Beatport numeric id) or a
    synthetic ``<source>:<slug>-<hash>`` id when nothing better is known.
    """
    __tablename__ = "artists"

    id = Column(Integer, primary_key=True, autoincrement=True)
    name = Column(String(500), nullable=False)
    normalized_name = Column(String(500), nullable=False, unique=True, index=True)
    external_id = Column(String(255), nullable=True, unique=True)
    created_at = Column(DateTime, default=datetime.utcnow)

    aliases = relationship("ArtistAlias", back_populates="artist", cascade="all, delete-orphan")

    def __repr__(self):
        return f"<Artist {self.name}>"


class ArtistAlias(Base):
    """Raw name variant seen on a source that resolved to an artist"""
    __tablename__ = "artist_aliases"

    id = Column(Integer, primary_key=True, autoincrement=True)
    artist_id = Column(Integer, ForeignKey("artists.id"), nullable=False, index=True)
    source = Column(String(50), nullable=False)
    raw_name = Column(String(500), nullable=False)

    artist = relationship("Artist", back_populates="aliases")

    __table_args__ = (
        UniqueConstraint("source", "raw_name", name="uq_artist_aliases_source_raw"),
    )


class Label(Base):
    __tablename__ = "labels"

    id = Column(Integer, primary_key=True, autoincrement=True)
    name = Column(String(500), nullable=False)
    normalized_name = Column(String(500), nullable=False, unique=True, index=True)
    created_at = Column(DateTime, default=datetime.utcnow)


class LabelAlias(Base):
    __tablename__ = "label_aliases"

    id = Column(Integer, primary_key=True, autoincrement=True)
    label_id = Column(Integer, ForeignKey("labels.id"), nullable=False, index=True)
    source = Column(String(50), nullable=False)
    raw_name = Column(String(500), nullable=False)

    __table_args__ = (
        UniqueConstraint("source", "raw_name", name="uq_label_aliases_source_raw"),
    )


class Track(Base):
    """Track identity = (artist, title, label)"""
    __tablename__ = "tracks"

    id = Column(Integer, primary_key=True, autoincrement=True)
    title = Column(Text, nullable=False)
    artist_id = Column(Integer, ForeignKey("artists.id"), nullable=False, index=True)
    label_id = Column(Integer, ForeignKey("labels.id"), nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow)


class ManualArtistLink(Base):
    """
    Operator override: one raw scraped name -> canonical artist.
    Wins over automatic name matching during resolution.
    """
    __tablename__ = "manual_artist_links"

    id = Column(Integer, primary_key=True, autoincrement=True)
    raw_name = Column(String(500), nullable=False, unique=True)
    artist_id = Column(Integer, ForeignKey("artists.id"), nullable=False)
    note = Column(Text, nullable=True)
    linked_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    artist = relationship("Artist")
