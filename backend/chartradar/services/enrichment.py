"""
Artist Enrichment Service - optional LLM bio summary, role and insight.

Stored in artist_enrichment, never read by scoring. Disabled unless
ENRICHMENT_ENABLED is true and an OpenAI key is configured; when disabled
every call is a no-op.
"""
import json
import logging
from datetime import datetime
from typing import Any, Dict, Optional

from openai import OpenAI, OpenAIError
from sqlalchemy.orm import Session

from chartradar.core.config import settings
from chartradar.db.models import Artist, ArtistEnrichment, ArtistMetrics

logger = logging.getLogger(__name__)

ROLES = ["dj", "producer", "dj_producer", "live_act", "vocalist", "unknown"]

SYSTEM_PROMPT = (
    "You are a music industry analyst. Answer only with valid JSON of the form "
    '{"bio_summary": str, "role": one of ' + json.dumps(ROLES) + ', "insight": str}.'
)


def is_enabled() -> bool:
    return bool(settings.enrichment_enabled and settings.openai_api_key)


def get_enrichment(db: Session, artist_id: int) -> Optional[ArtistEnrichment]:
    return db.query(ArtistEnrichment).filter(ArtistEnrichment.artist_id == artist_id).first()


def set_enrichment(db: Session, artist_id: int, data: Dict[str, Any]) -> ArtistEnrichment:
    """Upsert the cached enrichment for one artist"""
    row = get_enrichment(db, artist_id)
    if row is None:
        row = ArtistEnrichment(artist_id=artist_id)
        db.add(row)
    row.bio_summary = data.get("bio_summary")
    row.role = data.get("role") if data.get("role") in ROLES else "unknown"
    row.insight = data.get("insight")
    row.enriched_at = datetime.utcnow()
    db.commit()
    db.refresh(row)
    return row


def parse_llm_response(response_text: str) -> Dict[str, Any]:
    """Strip optional markdown fences and decode the JSON object"""
    text = (response_text or "").strip()
    if text.startswith("```json"):
        text = text[7:]
    elif text.startswith("```"):
        text = text[3:]
    if text.endswith("```"):
        text = text[:-3]
    try:
        parsed = json.loads(text.strip())
    except json.JSONDecodeError as e:
        raise ValueError(f"Invalid JSON response from LLM: {e}") from e
    if not isinstance(parsed, dict):
        raise ValueError("LLM response is not a JSON object")
    return parsed


class ArtistEnricher:
    """One LLM call per artist, result cached in artist_enrichment"""

    def __init__(self, db: Session, client: Optional[OpenAI] = None):
        self.db = db
        self.client = client
        self.model = settings.openai_model
        if self.client is None and settings.openai_api_key:
            self.client = OpenAI(api_key=settings.openai_api_key)

    def build_prompt(self, artist: Artist, metrics: Optional[ArtistMetrics]) -> str:
        lines = [f"Artist: {artist.name}"]
        if metrics:
            lines.append(f"Genres: {', '.join(metrics.genres or []) or 'unknown'}")
            lines.append(
                f"Chart history: best position {metrics.best_position}, "
                f"{metrics.days_in_charts} days in charts between {metrics.first_seen} and {metrics.last_seen}"
            )
        lines.append("Summarize who this artist is in two sentences, classify the role and give one outreach insight.")
        return "\n".join(lines)

    def enrich(self, artist_id: int, force: bool = False) -> Optional[ArtistEnrichment]:
        """Returns the enrichment row, or None when the feature is off"""
        if not is_enabled() or self.client is None:
            logger.debug("Enrichment disabled, skipping")
            return None

        existing = get_enrichment(self.db, artist_id)
        if existing is not None and not force:
            return existing

        artist = self.db.query(Artist).filter(Artist.id == artist_id).first()
        if artist is None:
            return None
        metrics = self.db.query(ArtistMetrics).filter(ArtistMetrics.artist_id == artist_id).first()

        try:
            response = self.client.chat.completions.create(
                model=self.model,
                messages=[
                    {"role": "system", "content": SYSTEM_PROMPT},
                    {"role": "user", "content": self.build_prompt(artist, metrics)},
                ],
                temperature=0.3,
                max_tokens=400,
            )
            parsed = parse_llm_response(response.choices[0].message.content)
        except (OpenAIError, ValueError) as e:
            logger.warning(f"Enrichment failed for artist {artist_id}: {e}")
            return existing

        return set_enrichment(self.db, artist_id, parsed)
