"""
API dependencies: internal token guard, shared session store, fetcher
"""
import secrets
from functools import lru_cache
from typing import AsyncGenerator, Optional

from fastapi import Header, HTTPException, status

from chartradar.core.config import settings
from chartradar.ingestion.fetcher import Fetcher
from chartradar.ingestion.session import SessionStore


def verify_internal_token(x_internal_token: Optional[str] = Header(None)) -> None:
    """Shared-secret check; open when INTERNAL_API_TOKEN is empty"""
    expected = settings.internal_api_token
    if not expected:
        return
    if not x_internal_token or not secrets.compare_digest(x_internal_token, expected):
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid or missing X-Internal-Token",
        )


@lru_cache()
def get_session_store() -> SessionStore:
    """Process-wide Top Tracker session, cached until invalidated"""
    return SessionStore()


async def get_fetcher() -> AsyncGenerator[Fetcher, None]:
    async with Fetcher() as fetcher:
        yield fetcher
