"""
Error taxonomy for the harvesting pipeline.

Per-item failures are caught by the engines and aggregated into the
``errors`` list of their result objects; only the errors that have no
fallback path (index unreachable, rejected request) escape a run.
"""
from typing import Optional


class ChartRadarError(Exception):
    """Base class for every pipeline error"""


# ================================================================
# FETCH
# ================================================================

class FetchError(ChartRadarError):
    """Remote fetch failed after the retry budget was spent (retryable class)"""

    def __init__(self, message: str, url: Optional[str] = None):
        super().__init__(message)
        self.url = url


class NetworkError(FetchError):
    """Timeout or connection failure"""


class HttpStatusError(FetchError):
    """Non-2xx response"""

    def __init__(self, status_code: int, url: str):
        super().__init__(f"HTTP {status_code} {url}", url)
        self.status_code = status_code


# ================================================================
# AUTH / PARSE
# ================================================================

class AuthError(ChartRadarError):
    """Login, CSRF or post-login verification failure"""

    def __init__(self, reason: str):
        super().__init__(reason)
        self.reason = reason


class ParseError(ChartRadarError):
    """Page structure could not be turned into chart rows"""


class LoginPageError(ParseError):
    """The page is a login / landing page, not a chart"""


class NoValidRowsError(ParseError):
    """Every extraction strategy came back empty"""


# ================================================================
# RUN LEVEL
# ================================================================

class DiscoveryError(ChartRadarError):
    """Genre index could not be fetched or parsed at all"""


class BackfillRequestError(ChartRadarError):
    """Backfill request rejected before any fetch (caps, bad dates)"""


class UnsupportedSourceError(ChartRadarError):
    """URL or upstream payload belongs to no supported shape"""
