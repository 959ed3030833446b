"""
Oracle Scanner - one-off inspection of a chart URL

Detects the platform from host/path, obtains a session for gated sources,
fetches and parses the page with the matching parser and returns a bounded
preview. Nothing is written: adding a scanned chart to the pipeline is a
separate step (IngestionEngine.ingest_url).
"""
import logging
import re
from dataclasses import dataclass, field, asdict
from typing import Any, Dict, List, Optional
from urllib.parse import urlparse

from chartradar.core.exceptions import AuthError, ChartRadarError, UnsupportedSourceError
from chartradar.db.models import Platform
from chartradar.extraction.classify import (
    classify_chart_family,
    genre_from_beatport_url,
    toptracker_chart_parts,
)
from chartradar.extraction.parsers import beatport_chart_parser, toptracker_chart_parser
from chartradar.ingestion.fetcher import Fetcher
from chartradar.ingestion.session import SessionStore

logger = logging.getLogger(__name__)

PREVIEW_LIMIT = 50


@dataclass
class DetectedSource:
    platform: str
    page_type: str
    gated: bool = False


@dataclass
class ArtistPreview:
    artist_name: str
    artist_external_id: Optional[str] = None
    artist_slug: Optional[str] = None


@dataclass
class ScanResult:
    ok: bool
    url: str
    platform: Optional[str] = None
    page_type: Optional[str] = None
    chart_family: Optional[str] = None
    genre: Optional[str] = None
    rows_parsed: int = 0
    filtered: int = 0
    strategy: Optional[str] = None
    artist_count: int = 0
    artists: List[ArtistPreview] = field(default_factory=list)
    truncated: bool = False
    error: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


def normalize_url(raw: str) -> str:
    trimmed = (raw or "").strip()
    if trimmed and not re.match(r"^https?://", trimmed, re.IGNORECASE):
        trimmed = f"https://{trimmed}"
    return trimmed


def detect_source(url: str) -> DetectedSource:
    """Map a URL onto a known platform or raise UnsupportedSourceError"""
    parsed = urlparse(url)
    host = (parsed.hostname or "").lower()
    path = parsed.path.lower()

    if "bptoptracker" in host:
        return DetectedSource(Platform.TOPTRACKER.value, "chart", gated=True)
    if "beatport.com" in host:
        if "/genre/" in path and not re.search(r"/(tracks|top|hype)|/\d+/?$", path):
            return DetectedSource(Platform.BEATPORT.value, "genre")
        return DetectedSource(Platform.BEATPORT.value, "chart")
    if "beatstats" in host:
        return DetectedSource(Platform.BEATSTATS.value, "chart")
    raise UnsupportedSourceError(
        f"Unsupported URL host '{host or url}': use a Beatport or Top Tracker chart URL"
    )


class OracleScanner:
    """Read-only single URL scan"""

    def __init__(self, fetcher: Fetcher, sessions: Optional[SessionStore] = None, preview_limit: int = PREVIEW_LIMIT):
        self.fetcher = fetcher
        self.sessions = sessions
        self.preview_limit = preview_limit

    async def scan(self, raw_url: str) -> ScanResult:
        url = normalize_url(raw_url)
        if not url:
            return ScanResult(ok=False, url=raw_url or "", error="URL is required")

        try:
            detected = detect_source(url)
        except UnsupportedSourceError as e:
            return ScanResult(ok=False, url=url, error=str(e))

        result = ScanResult(ok=False, url=url, platform=detected.platform, page_type=detected.page_type)
        if detected.platform == Platform.BEATSTATS.value:
            result.error = "Beatstats pages are not supported yet; use a Beatport or Top Tracker chart URL"
            return result

        try:
            headers = await self._headers(detected)
            html = await self.fetcher.fetch(url, headers=headers)
            if detected.platform == Platform.TOPTRACKER.value:
                result.genre, _ = toptracker_chart_parts(url)
                parsed = toptracker_chart_parser().parse(html)
            else:
                result.genre = genre_from_beatport_url(url)
                parsed = beatport_chart_parser().parse(html)
        except ChartRadarError as e:
            result.error = str(e)
            logger.info(f"Oracle scan {url} failed: {e}")
            return result

        result.chart_family = classify_chart_family(url)
        result.rows_parsed = len(parsed.rows)
        result.filtered = parsed.filtered
        result.strategy = parsed.strategy

        artists: List[ArtistPreview] = []
        seen = set()
        for row in parsed.rows:
            key = row.artist_external_id or row.artist_slug or (row.artist_name or "").lower()
            if not key or key in seen:
                continue
            seen.add(key)
            artists.append(ArtistPreview(
                artist_name=row.artist_name or "",
                artist_external_id=row.artist_external_id,
                artist_slug=row.artist_slug,
            ))

        result.ok = True
        result.artist_count = len(artists)
        result.artists = artists[:self.preview_limit]
        result.truncated = len(artists) > self.preview_limit
        return result

    async def _headers(self, detected: DetectedSource) -> Optional[Dict[str, str]]:
        if not detected.gated:
            return None
        if self.sessions is None:
            raise AuthError(f"{detected.platform} requires a session and none is configured")
        cookie = await self.sessions.get()
        if cookie is None:
            raise AuthError(
                f"{detected.platform}: no session ({self.sessions.last_error or 'no credentials'})"
            )
        return {"Cookie": cookie}
