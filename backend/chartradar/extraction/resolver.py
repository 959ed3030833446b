"""
Entity resolver: maps scraped raw names onto canonical artists, labels and
tracks.

Artist lookup order:
1. ManualArtistLink on the exact (trimmed) raw name - always wins
2. Existing artist whose normalized name equals the normalized raw name
3. New artist (bulk mode: with a synthetic ``<source>:<slug>-<hash>`` id)

Every raw variant that resolved is kept as an alias tied to its source.
"""
import hashlib
import logging
import re
from typing import Dict, Iterable, List, Optional, Tuple

from sqlalchemy.orm import Session

from chartradar.db.models import (
    Artist,
    ArtistAlias,
    Label,
    LabelAlias,
    ManualArtistLink,
    Track,
    normalize_name,
)
from chartradar.db.upsert import insert_ignore

logger = logging.getLogger(__name__)

TrackKey = Tuple[int, str, Optional[int]]


def slugify(name: str) -> str:
    """'Black Coffee & Friends' -> 'black-coffee-friends'"""
    slug = re.sub(r"[^a-z0-9]+", "-", normalize_name(name))
    return slug.strip("-")


def synthetic_artist_id(source: str, raw_name: str) -> str:
    """
    Deterministic id for names with no platform-native id:
    ``<source>:<slug>-<hash8>``, or ``<source>:<hash8>`` when the name has no
    ASCII letters or digits. The hash covers the normalized name, so distinct
    artists never share an id even when their slugs collide.
    """
    normalized = normalize_name(raw_name)
    digest = hashlib.sha1(normalized.encode("utf-8")).hexdigest()[:8]
    slug = slugify(raw_name)
    return f"{source}:{slug}-{digest}" if slug else f"{source}:{digest}"


def _distinct(names: Iterable[Optional[str]]) -> List[str]:
    out = []
    seen = set()
    for name in names:
        trimmed = (name or "").strip()
        if trimmed and trimmed not in seen:
            seen.add(trimmed)
            out.append(trimmed)
    return out


class EntityResolver:
    """Resolution bound to one DB session and one data source"""

    def __init__(self, db: Session, source: str):
        self.db = db
        self.source = source

    # ================================================================
    # ARTISTS
    # ================================================================

    def resolve_artist(self, raw_name: Optional[str], external_id: Optional[str] = None) -> Optional[int]:
        """Resolve one raw artist name; returns the canonical artist id"""
        name = (raw_name or "").strip()
        if not name:
            return None

        link = self.db.query(ManualArtistLink).filter(ManualArtistLink.raw_name == name).first()
        if link:
            self._add_artist_aliases({name: link.artist_id})
            return link.artist_id

        normalized = normalize_name(name)
        artist = self.db.query(Artist).filter(Artist.normalized_name == normalized).first()
        if artist is None:
            if external_id and self.db.query(Artist.id).filter(Artist.external_id == external_id).first():
                external_id = None
            insert_ignore(self.db, Artist, [{
                "name": name,
                "normalized_name": normalized,
                "external_id": external_id,
            }])
            artist = self.db.query(Artist).filter(Artist.normalized_name == normalized).one()
        elif external_id and not artist.external_id:
            taken = self.db.query(Artist.id).filter(Artist.external_id == external_id).first()
            if not taken:
                artist.external_id = external_id

        self._add_artist_aliases({name: artist.id})
        return artist.id

    def resolve_artists_bulk(self, raw_names: Iterable[Optional[str]]) -> Dict[str, int]:
        """
        Resolve many raw names with a fixed number of queries: one manual-link
        lookup, one canonical-name lookup, one insert for the leftovers.
        Returns {trimmed raw name: artist id}.
        """
        names = _distinct(raw_names)
        if not names:
            return {}

        resolved: Dict[str, int] = {}
        for link in self.db.query(ManualArtistLink).filter(ManualArtistLink.raw_name.in_(names)).all():
            resolved[link.raw_name] = link.artist_id

        pending = [n for n in names if n not in resolved]
        by_norm: Dict[str, List[str]] = {}
        for name in pending:
            by_norm.setdefault(normalize_name(name), []).append(name)

        if by_norm:
            rows = self.db.query(Artist.id, Artist.normalized_name).filter(
                Artist.normalized_name.in_(list(by_norm))
            ).all()
            for artist_id, norm in rows:
                for name in by_norm.pop(norm, []):
                    resolved[name] = artist_id

        if by_norm:
            new_rows = []
            for norm, variants in by_norm.items():
                first = variants[0]
                new_rows.append({
                    "name": first,
                    "normalized_name": norm,
                    "external_id": synthetic_artist_id(self.source, first),
                })
            created = insert_ignore(self.db, Artist, new_rows)
            logger.debug(f"resolver[{self.source}]: {created} synthetic artists created")

            rows = self.db.query(Artist.id, Artist.normalized_name).filter(
                Artist.normalized_name.in_(list(by_norm))
            ).all()
            for artist_id, norm in rows:
                for name in by_norm.pop(norm, []):
                    resolved[name] = artist_id

            # synthetic id already held by another artist: create without one
            if by_norm:
                logger.warning(
                    f"resolver[{self.source}]: synthetic id taken for {len(by_norm)} names, "
                    f"creating them without external id"
                )
                insert_ignore(self.db, Artist, [
                    {"name": variants[0], "normalized_name": norm, "external_id": None}
                    for norm, variants in by_norm.items()
                ])
                rows = self.db.query(Artist.id, Artist.normalized_name).filter(
                    Artist.normalized_name.in_(list(by_norm))
                ).all()
                for artist_id, norm in rows:
                    for name in by_norm.pop(norm, []):
                        resolved[name] = artist_id

        self._add_artist_aliases(resolved)
        return resolved

    def _add_artist_aliases(self, mapping: Dict[str, int]) -> None:
        insert_ignore(self.db, ArtistAlias, [
            {"artist_id": artist_id, "source": self.source, "raw_name": name}
            for name, artist_id in mapping.items()
        ])

    # ================================================================
    # LABELS
    # ================================================================

    def resolve_label(self, raw_name: Optional[str]) -> Optional[int]:
        name = (raw_name or "").strip()
        if not name:
            return None
        return self.resolve_labels_bulk([name]).get(name)

    def resolve_labels_bulk(self, raw_names: Iterable[Optional[str]]) -> Dict[str, int]:
        names = _distinct(raw_names)
        if not names:
            return {}
        by_norm: Dict[str, List[str]] = {}
        for name in names:
            by_norm.setdefault(normalize_name(name), []).append(name)

        existing = {
            norm: label_id
            for label_id, norm in self.db.query(Label.id, Label.normalized_name).filter(
                Label.normalized_name.in_(list(by_norm))
            ).all()
        }
        missing = [
            {"name": variants[0], "normalized_name": norm}
            for norm, variants in by_norm.items() if norm not in existing
        ]
        if missing:
            insert_ignore(self.db, Label, missing)
            existing.update({
                norm: label_id
                for label_id, norm in self.db.query(Label.id, Label.normalized_name).filter(
                    Label.normalized_name.in_([m["normalized_name"] for m in missing])
                ).all()
            })

        resolved = {
            name: existing[norm]
            for norm, variants in by_norm.items() if norm in existing
            for name in variants
        }
        insert_ignore(self.db, LabelAlias, [
            {"label_id": label_id, "source": self.source, "raw_name": name}
            for name, label_id in resolved.items()
        ])
        return resolved

    # ================================================================
    # TRACKS
    # ================================================================

    def resolve_track(self, title: Optional[str], artist_id: Optional[int], label_id: Optional[int]) -> Optional[int]:
        if not title or not title.strip() or artist_id is None:
            return None
        key = (artist_id, title.strip(), label_id)
        return self.resolve_tracks_bulk([key]).get(key)

    def resolve_tracks_bulk(self, keys: Iterable[TrackKey]) -> Dict[TrackKey, int]:
        """Track identity = (artist, title, label)"""
        wanted = {}
        for artist_id, title, label_id in keys:
            if artist_id is None or not title or not title.strip():
                continue
            wanted[(artist_id, title.strip(), label_id)] = None
        if not wanted:
            return {}

        artist_ids = sorted({k[0] for k in wanted})
        for track_id, artist_id, title, label_id in self.db.query(
            Track.id, Track.artist_id, Track.title, Track.label_id
        ).filter(Track.artist_id.in_(artist_ids)).all():
            key = (artist_id, title, label_id)
            if key in wanted and wanted[key] is None:
                wanted[key] = track_id

        created = []
        for (artist_id, title, label_id), track_id in wanted.items():
            if track_id is None:
                track = Track(title=title, artist_id=artist_id, label_id=label_id)
                self.db.add(track)
                created.append(((artist_id, title, label_id), track))
        if created:
            self.db.flush()
            for key, track in created:
                wanted[key] = track.id
        return dict(wanted)
