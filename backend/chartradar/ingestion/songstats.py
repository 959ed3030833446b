"""
Songstats API: optional secondary source for the Beatport chart.

Response bodies are accepted in exactly three shapes (bare list,
``{"entries": [...]}``, ``{"chart": [...]}``) with rows in either camelCase or
snake_case. Anything else raises UnsupportedSourceError instead of being
guessed at.
"""
import logging
from datetime import date
from typing import Any, List, Literal, Optional, Union

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, TypeAdapter, ValidationError

from chartradar.core.config import settings
from chartradar.core.exceptions import UnsupportedSourceError
from chartradar.extraction.parsers import ParseResult, accept_rows
from chartradar.extraction.strategies import ParsedRow, clean_text
from chartradar.ingestion.fetcher import Fetcher

logger = logging.getLogger(__name__)

CHART_PATH = "/v1/charts/beatport"


class SongstatsRow(BaseModel):
    model_config = ConfigDict(extra="ignore")

    position: int = Field(validation_alias=AliasChoices("position", "rank"))
    track_title: Optional[str] = Field(
        default=None, validation_alias=AliasChoices("trackTitle", "track_title", "title")
    )
    artist_name: Optional[str] = Field(
        default=None, validation_alias=AliasChoices("artistName", "artist_name", "artist")
    )
    label_name: Optional[str] = Field(
        default=None, validation_alias=AliasChoices("labelName", "label_name", "label")
    )


class BareListShape(BaseModel):
    shape: Literal["list"] = "list"
    rows: List[SongstatsRow]


class EntriesShape(BaseModel):
    shape: Literal["entries"] = "entries"
    entries: List[SongstatsRow]


class ChartShape(BaseModel):
    shape: Literal["chart"] = "chart"
    chart: List[SongstatsRow]


SongstatsPayload = Union[BareListShape, EntriesShape, ChartShape]

_payload_adapter = TypeAdapter(SongstatsPayload)


def classify_payload(body: Any) -> SongstatsPayload:
    """Tag the body with its shape and validate it against that shape only"""
    if isinstance(body, list):
        tagged = {"shape": "list", "rows": body}
    elif isinstance(body, dict) and isinstance(body.get("entries"), list):
        tagged = {"shape": "entries", "entries": body["entries"]}
    elif isinstance(body, dict) and isinstance(body.get("chart"), list):
        tagged = {"shape": "chart", "chart": body["chart"]}
    else:
        raise UnsupportedSourceError(
            f"Songstats: unrecognised response shape ({type(body).__name__})"
        )
    try:
        return _payload_adapter.validate_python(tagged)
    except ValidationError as e:
        raise UnsupportedSourceError(f"Songstats: rows do not match the expected fields: {e}") from e


def payload_rows(payload: SongstatsPayload) -> List[SongstatsRow]:
    if isinstance(payload, BareListShape):
        return payload.rows
    if isinstance(payload, EntriesShape):
        return payload.entries
    return payload.chart


def normalize_payload(body: Any) -> ParseResult:
    """JSON body -> validated rows (same validity rules as HTML parsing)"""
    payload = classify_payload(body)
    candidates = [
        ParsedRow(
            position=row.position,
            track_title=clean_text(row.track_title) or None,
            artist_name=clean_text(row.artist_name) or None,
            artists_full=clean_text(row.artist_name) or None,
            label_name=clean_text(row.label_name) or None,
        )
        for row in payload_rows(payload)
    ]
    accepted, filtered = accept_rows(candidates)
    return ParseResult(rows=accepted, filtered=filtered, strategy=f"songstats:{payload.shape}", attempts=["songstats"])


def chart_endpoint() -> str:
    return f"{settings.songstats_base_url.rstrip('/')}{CHART_PATH}"


def is_enabled() -> bool:
    return bool(settings.songstats_api_key)


async def fetch_beatport_chart(fetcher: Fetcher, chart_date: date) -> ParseResult:
    """Fetch the Beatport chart for one date; empty result without an API key"""
    if not is_enabled():
        logger.warning("Songstats: SONGSTATS_API_KEY not set, skipping")
        return ParseResult(rows=[], strategy="songstats:disabled")
    response = await fetcher.get(
        f"{chart_endpoint()}?date={chart_date.isoformat()}",
        headers={
            "Authorization": f"Bearer {settings.songstats_api_key}",
            "Accept": "application/json",
        },
    )
    try:
        body = response.json()
    except ValueError as e:
        raise UnsupportedSourceError(f"Songstats: response is not JSON: {e}") from e
    return normalize_payload(body)
