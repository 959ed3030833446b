"""
Resilient fetcher: HTTP GET with per-attempt timeout, bounded retries and
linearly increasing delay. Everything that talks to a chart site goes
through here; callers decide whether a FetchError is per-item or fatal.
"""
import asyncio
import logging
from typing import Dict, Optional

import httpx

from chartradar.core.config import settings
from chartradar.core.exceptions import FetchError, HttpStatusError, NetworkError

logger = logging.getLogger(__name__)


def default_headers() -> Dict[str, str]:
    return {
        "User-Agent": settings.http_user_agent,
        "Accept": "text/html,application/xhtml+xml,application/xml;q=0.9,*/*;q=0.8",
        "Accept-Language": "en-US,en;q=0.9",
    }


class Fetcher:
    """
    Thin retry layer over an ``httpx.AsyncClient``.
    Pass ``client`` to share a connection pool (or a mock transport in tests).
    """

    def __init__(
        self,
        client: Optional[httpx.AsyncClient] = None,
        timeout: Optional[float] = None,
        max_retries: Optional[int] = None,
        retry_delay: Optional[float] = None,
    ):
        self._client = client
        self._owns_client = client is None
        self.timeout = settings.http_timeout_seconds if timeout is None else timeout
        self.max_retries = settings.http_max_retries if max_retries is None else max_retries
        self.retry_delay = settings.http_retry_delay_seconds if retry_delay is None else retry_delay

    @property
    def client(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(headers=default_headers(), follow_redirects=True)
        return self._client

    async def __aenter__(self):
        return self

    async def __aexit__(self, *args):
        await self.aclose()

    async def aclose(self):
        if self._owns_client and self._client is not None:
            await self._client.aclose()
            self._client = None

    async def get(
        self,
        url: str,
        headers: Optional[Dict[str, str]] = None,
        timeout: Optional[float] = None,
        max_retries: Optional[int] = None,
    ) -> httpx.Response:
        """GET with retries; returns the 2xx response or raises FetchError"""
        retries = self.max_retries if max_retries is None else max_retries
        request_headers = default_headers()
        request_headers.update(headers or {})
        last_error: Optional[FetchError] = None

        for attempt in range(retries + 1):
            try:
                response = await self.client.get(
                    url,
                    headers=request_headers,
                    timeout=self.timeout if timeout is None else timeout,
                )
                if 200 <= response.status_code < 300:
                    return response
                last_error = HttpStatusError(response.status_code, url)
            except httpx.TimeoutException as e:
                last_error = NetworkError(f"Timeout fetching {url}: {e}", url)
            except httpx.TransportError as e:
                last_error = NetworkError(f"Network error fetching {url}: {e}", url)

            if attempt < retries:
                delay = self.retry_delay * (attempt + 1)
                logger.debug(f"Retry {attempt + 1}/{retries} for {url} in {delay:.1f}s ({last_error})")
                if delay > 0:
                    await asyncio.sleep(delay)

        logger.warning(f"Giving up on {url}: {last_error}")
        raise last_error

    async def fetch(
        self,
        url: str,
        headers: Optional[Dict[str, str]] = None,
        timeout: Optional[float] = None,
        max_retries: Optional[int] = None,
    ) -> str:
        """GET and return the body text"""
        response = await self.get(url, headers=headers, timeout=timeout, max_retries=max_retries)
        return response.text
