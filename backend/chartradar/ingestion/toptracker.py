"""
Top Tracker (bptoptracker.com) chart access: genre list, URL layout and the
authenticated per-genre per-date chart fetch.
"""
import logging
from dataclasses import dataclass
from datetime import date, timedelta
from typing import Any, Dict, List, Optional

import httpx
from bs4 import BeautifulSoup

from chartradar.core.config import settings
from chartradar.core.exceptions import AuthError, NetworkError, ParseError
from chartradar.extraction.blocklist import looks_like_login_or_landing
from chartradar.extraction.parsers import MAX_RANK, MIN_RANK, ParseResult, toptracker_chart_parser
from chartradar.extraction.strategies import parse_rank
from chartradar.ingestion.fetcher import Fetcher, default_headers
from chartradar.ingestion.session import SessionStore

logger = logging.getLogger(__name__)

ALL_GENRES = "__all__"

# slug -> label, as listed on bptoptracker.com (/top/track/{slug}/{date})
GENRES = {
    "140-deep-dubstep-grime": "140 / Deep Dubstep / Grime",
    "african": "African",
    "afro-house": "Afro House",
    "ambient-experimental": "Ambient / Experimental",
    "amapiano": "Amapiano",
    "bass-club": "Bass / Club",
    "bass-house": "Bass House",
    "brazilian-funk": "Brazilian Funk",
    "breaks-breakbeat-uk-bass": "Breaks / Breakbeat / UK Bass",
    "caribbean": "Caribbean",
    "country": "Country",
    "dance-pop": "Dance / Pop",
    "deep-house": "Deep House",
    "dj-tools-acapellas": "DJ Tools / Acapellas",
    "downtempo": "Downtempo",
    "drum-bass": "Drum & Bass",
    "dubstep": "Dubstep",
    "electro-classic-detroit-modern": "Electro (Classic / Detroit / Modern)",
    "electronica": "Electronica",
    "funky-house": "Funky House",
    "global": "Global",
    "hard-dance-hardcore-neo-rave": "Hard Dance / Hardcore / Neo Rave",
    "hard-techno": "Hard Techno",
    "hip-hop": "Hip-Hop",
    "house": "House",
    "indie-dance": "Indie Dance",
    "jackin-house": "Jackin House",
    "latin": "Latin",
    "mainstage": "Mainstage",
    "melodic-house-and-techno": "Melodic House & Techno",
    "minimal-deep-tech": "Minimal / Deep Tech",
    "nu-disco-disco": "Nu Disco / Disco",
    "organic-house": "Organic House",
    "pop": "Pop",
    "progressive-house": "Progressive House",
    "psy-trance": "Psy-Trance",
    "r-b": "R&B",
    "rock": "Rock",
    "tech-house": "Tech House",
    "techno-peak-time-driving": "Techno (Peak Time / Driving)",
    "techno-raw-deep-hypnotic": "Techno (Raw / Deep / Hypnotic)",
    "trance-main-floor": "Trance (Main Floor)",
    "trance-raw-deep-hypnotic": "Trance (Raw / Deep / Hypnotic)",
    "trap-future-bass": "Trap / Future Bass",
    "uk-garage-bassline": "UK Garage / Bassline",
}


def genre_slugs() -> List[str]:
    return list(GENRES)


def chart_url(genre_slug: str, snapshot_date: Optional[date] = None, origin: Optional[str] = None) -> str:
    """Dated chart page, or the genre chart reference when no date is given"""
    base = f"{(origin or settings.toptracker_origin).rstrip('/')}/top/track/{genre_slug}"
    return f"{base}/{snapshot_date.isoformat()}" if snapshot_date else base


def date_range(date_from: date, date_to: date) -> List[date]:
    """Inclusive list of days"""
    days = []
    current = date_from
    while current <= date_to:
        days.append(current)
        current += timedelta(days=1)
    return days


@dataclass
class ChartPage:
    genre_slug: str
    snapshot_date: date
    url: str
    result: ParseResult


async def fetch_chart_for_date(
    fetcher: Fetcher,
    sessions: SessionStore,
    genre_slug: str,
    snapshot_date: date,
) -> ChartPage:
    """Fetch and parse one Top Tracker chart page (genre + date)"""
    cookie = await sessions.get()
    if cookie is None and sessions.has_credentials:
        raise AuthError(sessions.last_error or "Top Tracker session unavailable")
    url = chart_url(genre_slug, snapshot_date, sessions.origin)
    headers = {"Cookie": cookie} if cookie else None
    html = await fetcher.fetch(url, headers=headers)
    result = toptracker_chart_parser().parse(html)
    return ChartPage(genre_slug=genre_slug, snapshot_date=snapshot_date, url=url, result=result)


async def diagnose_chart_page(
    fetcher: Fetcher,
    sessions: SessionStore,
    genre_slug: str,
    snapshot_date: date,
) -> Dict[str, Any]:
    """
    Fetch one chart page and describe it (size, landing classification,
    table structure, parse outcome) without persisting anything.
    """
    cookie = await sessions.get()
    url = chart_url(genre_slug, snapshot_date, sessions.origin)
    headers = default_headers()
    if cookie:
        headers["Cookie"] = cookie
    try:
        response = await fetcher.client.get(url, headers=headers, timeout=fetcher.timeout)
    except httpx.HTTPError as e:
        raise NetworkError(f"Debug fetch failed for {url}: {e}", url) from e
    html = response.text
    soup = BeautifulSoup(html, "lxml")

    tables = soup.find_all("table")
    ranked_rows = 0
    for tr in soup.select("tbody tr"):
        cells = tr.find_all("td")
        if len(cells) < 3:
            continue
        rank = parse_rank(cells[0].get_text(" ", strip=True))
        if rank is not None and MIN_RANK <= rank <= MAX_RANK:
            ranked_rows += 1

    report: Dict[str, Any] = {
        "url": url,
        "status": response.status_code,
        "html_length": len(html),
        "title": soup.title.get_text(strip=True) if soup.title else None,
        "cookie_used": bool(cookie),
        "session_error": sessions.last_error,
        "looks_like_login_or_landing": looks_like_login_or_landing(html),
        "table_count": len(tables),
        "tables": [
            {
                "tbody_rows": len(table.select("tbody tr")),
                "first_row_cells": len(table.find("tr").find_all("td")) if table.find("tr") else 0,
                "first_row_text": table.find("tr").get_text(" ", strip=True)[:120] if table.find("tr") else "",
            }
            for table in tables[:5]
        ],
        "ranked_rows": ranked_rows,
        "has_embedded_json": bool(
            soup.find("script", attrs={"type": "application/json"}) or soup.find("script", id="__NEXT_DATA__")
        ),
        "parse": None,
        "parse_error": None,
    }
    if not tables:
        report["parse_error"] = (
            "No table in the initial HTML: the chart is probably rendered client-side; "
            "use the paste import instead"
        )
    try:
        result = toptracker_chart_parser().parse(html)
        report["parse"] = {
            "rows": len(result.rows),
            "filtered": result.filtered,
            "strategy": result.strategy,
            "preview": [row.to_dict() for row in result.rows[:5]],
        }
    except ParseError as e:
        report["parse_error"] = str(e)
    return report
