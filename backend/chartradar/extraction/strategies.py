"""
Row extraction strategies.

Each strategy turns a parsed document into candidate chart rows without
judging them; ``ChartPageParser`` validates the candidates and tries the
strategies in order until one yields valid rows. Strategies are configured
per source through their selectors so each can be exercised in isolation.
"""
import re
from dataclasses import dataclass, field, asdict
from typing import Any, Dict, List, Optional, Sequence

from bs4 import BeautifulSoup, Tag

MOVEMENT_RE = re.compile(r"[↑↓→▲▼]\s*\d*")
_RANK_RE = re.compile(r"^\s*#?(\d{1,4})\b")
_ARTIST_HREF_RE = re.compile(r"/artist/([^/?#]+)(?:/(\d+))?", re.IGNORECASE)


@dataclass
class ParsedRow:
    """One candidate chart row, as scraped (no identity resolution yet)"""
    position: Optional[int]
    track_title: Optional[str] = None
    artist_name: Optional[str] = None
    artists_full: Optional[str] = None
    artist_external_id: Optional[str] = None
    artist_slug: Optional[str] = None
    label_name: Optional[str] = None
    released: Optional[str] = None
    movement: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


# ================================================================
# HELPERS
# ================================================================

def clean_text(value: Optional[str]) -> str:
    if not value:
        return ""
    return " ".join(value.split())


def parse_rank(value: Optional[str]) -> Optional[int]:
    """'12', '#12', '12 ↑3' -> 12"""
    if value is None:
        return None
    match = _RANK_RE.match(str(value))
    if not match:
        return None
    return int(match.group(1))


def split_movement(text: str):
    """'Track Name ↑4' -> ('Track Name', '↑4')"""
    match = MOVEMENT_RE.search(text or "")
    movement = match.group(0).replace(" ", "") if match else None
    title = clean_text(MOVEMENT_RE.sub("", text or ""))
    return title, movement


def primary_artist(artists: str) -> str:
    """First credited artist of 'A, B & C' style credits"""
    for part in (artists or "").split(","):
        part = part.strip()
        if part:
            return part
    return ""


def artist_identity_from_href(href: Optional[str]):
    """'/artist/some-dj/12345' -> ('12345', 'some-dj')"""
    if not href:
        return None, None
    match = _ARTIST_HREF_RE.search(href)
    if not match:
        return None, None
    return match.group(2), match.group(1)


def _first_text(node: Tag, selectors: Sequence[str]) -> str:
    for selector in selectors:
        found = node.select_one(selector)
        if found is not None:
            text = clean_text(found.get_text(" "))
            if text:
                return text
    return ""


def _first_node(node: Tag, selectors: Sequence[str]) -> Optional[Tag]:
    for selector in selectors:
        found = node.select_one(selector)
        if found is not None and clean_text(found.get_text(" ")):
            return found
    return None


def _anchor_href(node: Optional[Tag]) -> Optional[str]:
    if node is None:
        return None
    if node.name == "a":
        return node.get("href")
    anchor = node.find("a", href=True)
    return anchor.get("href") if anchor else None


# ================================================================
# STRATEGIES
# ================================================================

class ExtractionStrategy:
    """Try to extract candidate rows from a document"""

    name = "base"

    def extract(self, soup: BeautifulSoup) -> List[ParsedRow]:
        raise NotImplementedError


class StructuredSelectorStrategy(ExtractionStrategy):
    """
    Known markup: row containers matched by class / data attributes, fields
    read from selectors inside each container.
    """

    name = "structured"

    def __init__(
        self,
        row_selectors: Sequence[str],
        title_selectors: Sequence[str],
        artist_selectors: Sequence[str],
        label_selectors: Sequence[str] = (),
        released_selectors: Sequence[str] = (),
        rank_selectors: Sequence[str] = (),
        rank_attribute: Optional[str] = "data-position",
    ):
        self.row_selectors = list(row_selectors)
        self.title_selectors = list(title_selectors)
        self.artist_selectors = list(artist_selectors)
        self.label_selectors = list(label_selectors)
        self.released_selectors = list(released_selectors)
        self.rank_selectors = list(rank_selectors)
        self.rank_attribute = rank_attribute

    def _rank(self, row: Tag) -> Optional[int]:
        if self.rank_attribute:
            value = row.get(self.rank_attribute)
            if value is None:
                inner = row.select_one(f"[{self.rank_attribute}]")
                value = inner.get(self.rank_attribute) if inner is not None else None
            rank = parse_rank(value)
            if rank is not None:
                return rank
        if self.rank_selectors:
            rank = parse_rank(_first_text(row, self.rank_selectors))
            if rank is not None:
                return rank
        first_cell = row.find("td")
        if first_cell is not None:
            return parse_rank(clean_text(first_cell.get_text(" ")))
        return None

    def extract(self, soup: BeautifulSoup) -> List[ParsedRow]:
        rows: List[ParsedRow] = []
        for row in soup.select(", ".join(self.row_selectors)):
            title_raw = _first_text(row, self.title_selectors)
            artist_node = _first_node(row, self.artist_selectors)
            artists = clean_text(artist_node.get_text(" ")) if artist_node is not None else ""
            if not title_raw and not artists:
                continue
            title, movement = split_movement(title_raw)
            external_id, slug = artist_identity_from_href(_anchor_href(artist_node))
            rows.append(ParsedRow(
                position=self._rank(row),
                track_title=title or None,
                artist_name=primary_artist(artists) or None,
                artists_full=artists or None,
                artist_external_id=external_id,
                artist_slug=slug,
                label_name=_first_text(row, self.label_selectors) or None,
                released=_first_text(row, self.released_selectors) or None,
                movement=movement,
            ))
        return rows


class PositionalCellStrategy(ExtractionStrategy):
    """
    Tables without usable classes: read cells by column index.
    Default layout: rank | title (+movement) | artists | label | released.
    """

    name = "positional"

    DEFAULT_COLUMNS = {"rank": 0, "title": 1, "artists": 2, "label": 3, "released": 4}

    def __init__(
        self,
        row_selector: str = "table tr",
        columns: Optional[Dict[str, int]] = None,
        min_cells: int = 3,
    ):
        self.row_selector = row_selector
        self.columns = dict(columns or self.DEFAULT_COLUMNS)
        self.min_cells = min_cells

    def _cell(self, texts: List[str], key: str) -> str:
        index = self.columns.get(key)
        if index is None or index >= len(texts):
            return ""
        return texts[index]

    def extract(self, soup: BeautifulSoup) -> List[ParsedRow]:
        rows: List[ParsedRow] = []
        for row in soup.select(self.row_selector):
            cells = row.find_all("td", recursive=False) or row.find_all("td")
            if len(cells) < self.min_cells:
                continue
            texts = [clean_text(cell.get_text(" ")) for cell in cells]
            title, movement = split_movement(self._cell(texts, "title"))
            artists = self._cell(texts, "artists")
            artist_index = self.columns.get("artists")
            artist_href = None
            if artist_index is not None and artist_index < len(cells):
                artist_href = _anchor_href(cells[artist_index])
            external_id, slug = artist_identity_from_href(artist_href)
            rows.append(ParsedRow(
                position=parse_rank(self._cell(texts, "rank")),
                track_title=title or None,
                artist_name=primary_artist(artists) or None,
                artists_full=artists or None,
                artist_external_id=external_id,
                artist_slug=slug,
                label_name=self._cell(texts, "label") or None,
                released=self._cell(texts, "released") or None,
                movement=movement,
            ))
        return rows


class LinkPairStrategy(ExtractionStrategy):
    """
    Last resort: locate track anchors directly and pair each with the nearest
    artist / label anchor inside the same row-like container. Position is the
    ordinal of the track anchor.
    """

    name = "links"

    def __init__(
        self,
        track_href: str = "/track/",
        artist_href: str = "/artist/",
        label_href: str = "/label/",
        containers: Sequence[str] = ("tr", "li", "article", "div"),
    ):
        self.track_href = track_href
        self.artist_href = artist_href
        self.label_href = label_href
        self.containers = list(containers)

    def extract(self, soup: BeautifulSoup) -> List[ParsedRow]:
        rows: List[ParsedRow] = []
        seen_containers = set()
        anchors = soup.select(f"a[href*='{self.track_href}']")
        for anchor in anchors:
            container = anchor.find_parent(self.containers) or anchor.parent
            if id(container) in seen_containers:
                continue
            seen_containers.add(id(container))
            title, movement = split_movement(clean_text(anchor.get_text(" ")))
            if not title:
                continue
            artist_anchor = container.select_one(f"a[href*='{self.artist_href}']")
            label_anchor = container.select_one(f"a[href*='{self.label_href}']")
            artists = clean_text(artist_anchor.get_text(" ")) if artist_anchor is not None else ""
            external_id, slug = artist_identity_from_href(
                artist_anchor.get("href") if artist_anchor is not None else None
            )
            rows.append(ParsedRow(
                position=len(rows) + 1,
                track_title=title,
                artist_name=primary_artist(artists) or None,
                artists_full=artists or None,
                artist_external_id=external_id,
                artist_slug=slug,
                label_name=clean_text(label_anchor.get_text(" ")) if label_anchor is not None else None,
                movement=movement,
            ))
        return rows
