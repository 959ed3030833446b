"""
Chart family / genre / date classification from URLs and titles
"""
import re
from datetime import date
from typing import Optional, Tuple

from chartradar.db.models.catalog import ChartFamily

_BEATPORT_GENRE_RE = re.compile(r"/genre/([^/?#]+)", re.IGNORECASE)
_TOPTRACKER_CHART_RE = re.compile(r"/top/track/([^/?#]+)(?:/(\d{4}-\d{2}-\d{2}))?", re.IGNORECASE)


def classify_chart_family(url: str, title: Optional[str] = None) -> str:
    """
    Classify a chart from URL + title keywords.
    "hype" beats "top"; "release" beats "track".
    """
    u = (url or "").lower()
    t = (title or "").lower()
    is_release = "release" in u or "release" in t
    if "hype" in u or "hype" in t:
        return ChartFamily.HYPE_RELEASES.value if is_release else ChartFamily.HYPE_TRACKS.value
    if "top" in u or "top" in t:
        return ChartFamily.TOP_RELEASES.value if is_release else ChartFamily.TOP_TRACKS.value
    if is_release:
        return ChartFamily.TOP_RELEASES.value
    if "track" in u or "track" in t or "chart" in u:
        return ChartFamily.TOP_TRACKS.value
    return ChartFamily.UNKNOWN.value


def genre_from_beatport_url(url: str) -> Optional[str]:
    """/genre/techno/6/top-100 -> techno"""
    match = _BEATPORT_GENRE_RE.search(url or "")
    return match.group(1) if match else None


def toptracker_chart_parts(url: str) -> Tuple[Optional[str], Optional[date]]:
    """/top/track/afro-house/2026-02-05 -> ('afro-house', date(2026, 2, 5))"""
    match = _TOPTRACKER_CHART_RE.search(url or "")
    if not match:
        return None, None
    snapshot = None
    if match.group(2):
        try:
            snapshot = date.fromisoformat(match.group(2))
        except ValueError:
            # 2026-02-30 and the like
            snapshot = None
    return match.group(1), snapshot
