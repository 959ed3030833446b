"""
helpers.py — shared test fixtures
=================================
In-memory database, a recording mock site for httpx and sample pages
(no network, no PostgreSQL required).
"""
from __future__ import annotations

from datetime import date
from typing import Callable, Dict, List, Optional, Tuple, Union

import httpx
from sqlalchemy import create_engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from chartradar.db import models  # noqa: F401  (registers the tables)
from chartradar.db.base import Base
from chartradar.ingestion.fetcher import Fetcher
from chartradar.ingestion.session import SessionStore

BEATPORT = "https://www.beatport.com"
TOPTRACKER = "https://www.bptoptracker.com"

Route = Union[Tuple, Callable[[httpx.Request], httpx.Response]]


def make_session() -> Session:
    """Fresh SQLite database shared across threads and event loops"""
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(engine)
    return sessionmaker(bind=engine, autoflush=False)()


class MockSite:
    """
    httpx MockTransport handler.
    ``routes`` maps a full URL (or a (method, URL) pair) to either a
    (status, body[, headers]) tuple or a callable taking the request.
    Every request is recorded.
    """

    def __init__(self, routes: Optional[Dict] = None, default: Optional[Route] = None):
        self.routes = dict(routes or {})
        self.default = default
        self.requests: List[httpx.Request] = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        url = str(request.url)
        route = self.routes.get((request.method, url))
        if route is None:
            route = self.routes.get(url, self.default)
        if route is None:
            return httpx.Response(404, text="not found")
        if callable(route):
            return route(request)
        status, body = route[0], route[1]
        headers = route[2] if len(route) > 2 else None
        return httpx.Response(status, text=body, headers=headers)

    def calls(self, fragment: str) -> List[httpx.Request]:
        return [r for r in self.requests if fragment in str(r.url)]

    def client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(transport=httpx.MockTransport(self))


def make_fetcher(site: MockSite, **kwargs) -> Fetcher:
    kwargs.setdefault("retry_delay", 0)
    return Fetcher(client=site.client(), **kwargs)


def static_sessions(cookie: str = "tt_session=static") -> SessionStore:
    return SessionStore(email="", password="", static_cookie=cookie, origin=TOPTRACKER)


def no_sessions() -> SessionStore:
    return SessionStore(email="", password="", static_cookie="", origin=TOPTRACKER)


# ================================================================
# SAMPLE PAGES
# ================================================================

GENRE_INDEX = """
<html><body>
<nav>
  <a href="/genre/techno-peak-time-driving/6">Techno (Peak Time / Driving)</a>
  <a href="/genre/afro-house/89">Afro House</a>
  <a href="/about">About</a>
</nav>
</body></html>
"""

TECHNO_GENRE_PAGE = """
<html><body>
<a href="/genre/techno-peak-time-driving/6">Overview</a>
<a href="/genre/techno-peak-time-driving/6/top-100">Techno Top 100</a>
</body></html>
"""

AFRO_GENRE_PAGE = """
<html><body>
<a href="/genre/afro-house/89/hype-100">Afro House Hype 100</a>
<a href="https://twitter.com/beatport/charts/x">Share</a>
</body></html>
"""

TECHNO_CHART_URL = f"{BEATPORT}/genre/techno-peak-time-driving/6/top-100"
AFRO_CHART_URL = f"{BEATPORT}/genre/afro-house/89/hype-100"

# 4 rows; the last one is site navigation scraped as an artist
BEATPORT_CHART = """
<html><head><title>Techno Top 100</title></head><body>
<ul class="chart">
  <li class="chart-list-item" data-position="1">
    <a class="track-title" href="/track/midnight-drive/9001">Midnight Drive</a>
    <span class="artist"><a href="/artist/kaleo-sun/1001">Kaleo Sun</a></span>
    <span class="label"><a href="/label/deep-roots/55">Deep Roots</a></span>
  </li>
  <li class="chart-list-item" data-position="2">
    <a class="track-title" href="/track/lagos-nights/9002">Lagos Nights</a>
    <span class="artist"><a href="/artist/ama-kofi/1002">Ama Kofi</a></span>
    <span class="label"><a href="/label/afrika-beats/56">Afrika Beats</a></span>
  </li>
  <li class="chart-list-item" data-position="3">
    <a class="track-title" href="/track/second-wind/9003">Second Wind</a>
    <span class="artist"><a href="/artist/kaleo-sun/1001">Kaleo Sun</a></span>
    <span class="label"><a href="/label/deep-roots/55">Deep Roots</a></span>
  </li>
  <li class="chart-list-item" data-position="4">
    <span class="artist"><a href="/company/about-us">About us →</a></span>
  </li>
</ul>
</body></html>
"""

TOPTRACKER_CHART = """
<html><head><title>Afro House Top 100</title></head><body>
<table class="chart-table">
  <thead><tr><th>#</th><th>Track</th><th>Artists</th><th>Label</th><th>Released</th></tr></thead>
  <tbody>
    <tr><td class="rank">1</td><td class="title">Jua ↑2</td>
        <td class="artist"><a href="/artist/ama-kofi">Ama Kofi, Zola</a></td>
        <td class="label">Afrika Beats</td><td class="release">2026-01-12</td></tr>
    <tr><td class="rank">2</td><td class="title">Ritual</td>
        <td class="artist">Kaleo Sun</td>
        <td class="label">Deep Roots</td><td class="release">2026-01-03</td></tr>
    <tr><td class="rank">3</td><td class="title">Ubuntu</td>
        <td class="artist">Nandi M</td>
        <td class="label">Afrika Beats</td><td class="release">2025-12-20</td></tr>
  </tbody>
</table>
</body></html>
"""

LOGIN_PAGE = """
<html><body>
<form method="post" action="/login">
  <input type="hidden" name="_token" value="tok123">
  <input type="email" name="email">
  <input type="password" name="password">
  <button type="submit">Sign in</button>
</form>
<a href="/about">About us →</a>
</body></html>
"""

PASTE_TEXT = (
    "#\tTitle\tArtists\tLabel\tReleased\n"
    "1\tJua ↑2\tAma Kofi, Zola\tAfrika Beats\t2026-01-12\n"
    "2\tRitual\tKaleo Sun\tDeep Roots\t2026-01-03\n"
    "3\tSign in\tRegister now\t\t\n"
)


def toptracker_day_url(genre: str, day: date) -> str:
    return f"{TOPTRACKER}/top/track/{genre}/{day.isoformat()}"
