"""
Discovery: walk a platform's genre index, collect chart links per genre and
upsert them into the catalog. Catalog rows of the platform that were not
seen during the run are marked inactive at the end of it.
"""
import logging
from dataclasses import dataclass, field, asdict
from datetime import datetime
from typing import Any, Dict, List, Optional

from sqlalchemy.orm import Session

from chartradar.core.config import settings
from chartradar.core.exceptions import ChartRadarError, DiscoveryError, FetchError
from chartradar.db.models import Platform
from chartradar.extraction.classify import classify_chart_family
from chartradar.extraction.parsers import parse_chart_links, parse_genres
from chartradar.ingestion.fetcher import Fetcher
from chartradar.ingestion.store import deactivate_unseen, upsert_catalog_entry

logger = logging.getLogger(__name__)


@dataclass
class DiscoveryResult:
    platform: str
    genres_fetched: int = 0
    chart_urls_seen: int = 0
    upserted: int = 0
    marked_inactive: int = 0
    errors: List[str] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


class DiscoveryService:
    """Genre index -> genre pages -> chart links -> catalog"""

    def __init__(
        self,
        db: Session,
        fetcher: Fetcher,
        platform: str = Platform.BEATPORT.value,
        index_url: Optional[str] = None,
    ):
        self.db = db
        self.fetcher = fetcher
        self.platform = platform
        self.index_url = index_url or settings.genre_index_url

    async def run(self) -> DiscoveryResult:
        result = DiscoveryResult(platform=self.platform)
        run_started = datetime.utcnow()

        try:
            index_html = await self.fetcher.fetch(self.index_url)
        except FetchError as e:
            raise DiscoveryError(f"Genre index unreachable ({self.index_url}): {e}") from e

        genres = parse_genres(index_html, self.index_url)
        if not genres:
            result.errors.append(
                f"No genres parsed from {self.index_url}; check the index URL or page structure"
            )
            return result

        seen_urls = set()
        for genre in genres:
            try:
                genre_html = await self.fetcher.fetch(genre.url)
                links = parse_chart_links(genre_html, genre.url)
            except ChartRadarError as e:
                result.errors.append(f"Genre {genre.slug}: {e}")
                logger.warning(f"Discovery: genre {genre.slug} failed: {e}")
                continue

            result.genres_fetched += 1
            result.chart_urls_seen += len(links)
            for link in links:
                if link.url in seen_urls:
                    continue
                seen_urls.add(link.url)
                upsert_catalog_entry(
                    self.db,
                    platform=self.platform,
                    url=link.url,
                    chart_family=classify_chart_family(link.url, link.title),
                    genre_slug=genre.slug,
                    genre_name=genre.name,
                    title=link.title,
                    seen_at=run_started,
                )
                result.upserted += 1
            self.db.commit()

        if seen_urls:
            result.marked_inactive = deactivate_unseen(self.db, self.platform, sorted(seen_urls))
            self.db.commit()

        logger.info(
            f"Discovery {self.platform}: {result.genres_fetched} genres, "
            f"{result.chart_urls_seen} links, {result.upserted} upserted, "
            f"{result.marked_inactive} deactivated, {len(result.errors)} errors"
        )
        return result
