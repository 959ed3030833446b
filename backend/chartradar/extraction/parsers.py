"""
Page parsers: per-source chart parsing on top of the ordered extraction
strategies, genre index / chart link discovery parsing, and the
tab-separated paste fallback.
"""
import logging
from dataclasses import dataclass, field
from typing import Callable, List, Optional
from urllib.parse import urljoin, urlparse
import re

from bs4 import BeautifulSoup

from chartradar.core.exceptions import LoginPageError, NoValidRowsError
from chartradar.extraction.blocklist import (
    has_login_form,
    is_blocked_artist,
    is_blocked_track,
    looks_like_login_or_landing,
)
from chartradar.extraction.strategies import (
    ExtractionStrategy,
    LinkPairStrategy,
    ParsedRow,
    PositionalCellStrategy,
    StructuredSelectorStrategy,
    clean_text,
    parse_rank,
    primary_artist,
    split_movement,
)

logger = logging.getLogger(__name__)

MIN_RANK = 1
MAX_RANK = 200


@dataclass
class ParseResult:
    """Validated rows plus how they were obtained"""
    rows: List[ParsedRow]
    filtered: int = 0
    strategy: Optional[str] = None
    attempts: List[str] = field(default_factory=list)


def accept_rows(candidates: List[ParsedRow]):
    """
    Apply the row validity rules: plausible rank, at least one of
    title / artist, not blocklisted, first row per position wins.
    Returns (accepted, filtered_count); only blocklist hits count as filtered.
    """
    accepted: List[ParsedRow] = []
    filtered = 0
    seen_positions = set()
    for row in candidates:
        if row.position is None or not (MIN_RANK <= row.position <= MAX_RANK):
            continue
        title = (row.track_title or "").strip()
        artist = (row.artist_name or "").strip()
        if not title and not artist:
            continue
        if (artist and is_blocked_artist(artist)) or is_blocked_track(title):
            filtered += 1
            continue
        if row.position in seen_positions:
            continue
        seen_positions.add(row.position)
        accepted.append(row)
    return accepted, filtered


class ChartPageParser:
    """Ordered, first-success-wins chart parsing"""

    def __init__(
        self,
        strategies: List[ExtractionStrategy],
        landing_check: Callable[[str], bool] = has_login_form,
        source: str = "chart",
    ):
        self.strategies = strategies
        self.landing_check = landing_check
        self.source = source

    def parse(self, html: str) -> ParseResult:
        if self.landing_check(html):
            raise LoginPageError(
                f"{self.source}: got a login or landing page instead of a chart"
            )
        soup = BeautifulSoup(html, "lxml")
        attempts = []
        for strategy in self.strategies:
            attempts.append(strategy.name)
            accepted, filtered = accept_rows(strategy.extract(soup))
            if accepted:
                logger.debug(f"{self.source}: strategy '{strategy.name}' extracted {len(accepted)} rows")
                return ParseResult(rows=accepted, filtered=filtered, strategy=strategy.name, attempts=attempts)
        raise NoValidRowsError(
            f"{self.source}: no valid chart row found (tried {', '.join(attempts)}); "
            "page structure may have changed"
        )


# ================================================================
# SOURCE PROFILES
# ================================================================

def beatport_chart_parser() -> ChartPageParser:
    """Public Beatport chart pages"""
    return ChartPageParser(
        strategies=[
            StructuredSelectorStrategy(
                row_selectors=[
                    "[data-position]",
                    "[data-testid='tracks-list-item']",
                    ".chart-list-item",
                    "tr[data-ec-item]",
                    ".bucket-item",
                ],
                title_selectors=[
                    "[data-ec-dtr-detail='track']",
                    ".track-title",
                    ".title a",
                    "a[href*='/track/']",
                ],
                artist_selectors=[
                    "[data-ec-dtr-detail='artist']",
                    ".artist a",
                    "a[href*='/artist/']",
                ],
                label_selectors=[
                    "[data-ec-dtr-detail='label']",
                    ".label a",
                    "a[href*='/label/']",
                ],
                rank_selectors=[".position", ".chart-position", "[class*='rank']"],
            ),
            PositionalCellStrategy(row_selector="table tr", columns={"rank": 0, "title": 1, "artists": 2, "label": 3}),
            LinkPairStrategy(),
        ],
        landing_check=has_login_form,
        source="beatport",
    )


def toptracker_chart_parser() -> ChartPageParser:
    """Gated Top Tracker chart pages; landing detection is strict here"""
    return ChartPageParser(
        strategies=[
            StructuredSelectorStrategy(
                row_selectors=["table tbody tr", ".chart-table tbody tr"],
                title_selectors=["[class*='title']", "[class*='track']"],
                artist_selectors=["[class*='artist']"],
                label_selectors=["[class*='label']"],
                released_selectors=["[class*='release']"],
                rank_selectors=["[class*='rank']", "[class*='position']"],
                rank_attribute=None,
            ),
            PositionalCellStrategy(row_selector="tbody tr", min_cells=5),
            LinkPairStrategy(),
        ],
        landing_check=looks_like_login_or_landing,
        source="bptoptracker",
    )


# ================================================================
# PASTE FALLBACK
# ================================================================

def parse_chart_tsv(text: str) -> ParseResult:
    """
    Tab-separated paste of a chart table (client-rendered pages).
    Columns: rank, title (+movement), artists, label, released.
    """
    candidates = []
    for line in (text or "").splitlines():
        cells = [clean_text(c) for c in line.split("\t")]
        if len(cells) < 3:
            continue
        title, movement = split_movement(cells[1])
        artists = cells[2]
        candidates.append(ParsedRow(
            position=parse_rank(cells[0]),
            track_title=title or None,
            artist_name=primary_artist(artists) or None,
            artists_full=artists or None,
            label_name=(cells[3] if len(cells) > 3 else "") or None,
            released=(cells[4] if len(cells) > 4 else "") or None,
            movement=movement,
        ))
    accepted, filtered = accept_rows(candidates)
    if not accepted:
        raise NoValidRowsError("No valid rows parsed; paste the full tab-separated chart table")
    return ParseResult(rows=accepted, filtered=filtered, strategy="tsv", attempts=["tsv"])


# ================================================================
# DISCOVERY PAGES
# ================================================================

@dataclass
class GenreLink:
    name: str
    slug: str
    url: str


@dataclass
class ChartLink:
    url: str
    title: Optional[str] = None


_GENRE_ROOT_RE = re.compile(r"^/genre/([^/?#]+)(?:/(\d+))?/?$", re.IGNORECASE)
CHART_LINK_MARKERS = ("/charts/", "/chart/", "/tracks", "/releases", "/top-100", "/hype-100", "/top-10")


def parse_genres(html: str, base_url: str) -> List[GenreLink]:
    """Genre index: links to /genre/<slug>[/<id>] roots, deduplicated by URL"""
    soup = BeautifulSoup(html, "lxml")
    genres: List[GenreLink] = []
    seen = set()
    for anchor in soup.select("a[href*='/genre/']"):
        href = anchor.get("href") or ""
        name = clean_text(anchor.get_text(" "))
        path = urlparse(urljoin(base_url, href)).path
        match = _GENRE_ROOT_RE.match(path)
        if not match or not name:
            continue
        full_url = urljoin(base_url, href)
        if full_url in seen:
            continue
        seen.add(full_url)
        genres.append(GenreLink(name=name, slug=match.group(1), url=full_url))
    return genres


def parse_chart_links(html: str, base_url: str) -> List[ChartLink]:
    """Chart-like links on a genre page (top / hype / releases / curated charts)"""
    soup = BeautifulSoup(html, "lxml")
    base_host = urlparse(base_url).netloc
    links: List[ChartLink] = []
    seen = set()
    for anchor in soup.find_all("a", href=True):
        full_url = urljoin(base_url, anchor["href"]).split("#")[0]
        parsed = urlparse(full_url)
        if parsed.netloc and parsed.netloc != base_host:
            continue
        path = parsed.path.lower()
        if not any(marker in path for marker in CHART_LINK_MARKERS):
            continue
        if full_url in seen or full_url.rstrip("/") == base_url.rstrip("/"):
            continue
        seen.add(full_url)
        links.append(ChartLink(url=full_url, title=clean_text(anchor.get_text(" ")) or None))
    return links
