"""
Session manager for the gated Top Tracker site.

States: NO_CREDENTIALS -> LOGGING_IN -> AUTHENTICATED | INVALID.
- A static cookie from configuration jumps straight to a trusted
  AUTHENTICATED state (no login, no verification).
- A verified cookie is cached on the store until ``invalidate()``.
- INVALID is a negative result: further ``get()`` calls return None without
  a new login attempt until ``invalidate()``.
- ``get()`` never raises; on failure it returns None and ``last_error``
  carries a human-readable reason.

The store is an explicit value handed to whatever needs authentication; two
concurrent logins simply overwrite the cached cookie with an equally valid one.
"""
import logging
from datetime import date, timedelta
from enum import Enum
from typing import Dict, Optional
from urllib.parse import urljoin

import httpx
from bs4 import BeautifulSoup

from chartradar.core.config import settings
from chartradar.core.exceptions import AuthError, FetchError
from chartradar.extraction.blocklist import looks_like_login_or_landing
from chartradar.ingestion.fetcher import Fetcher, default_headers

logger = logging.getLogger(__name__)

CSRF_FIELD_NAMES = ("_token", "csrf_token", "csrfmiddlewaretoken", "authenticity_token", "_csrf")


class SessionState(str, Enum):
    NO_CREDENTIALS = "no_credentials"
    LOGGING_IN = "logging_in"
    AUTHENTICATED = "authenticated"
    INVALID = "invalid"


def extract_login_form(html: str, page_url: str):
    """
    Locate the form holding the password field (not a search form on the
    same page) and return (action_url, hidden_fields, email_field_name).
    """
    soup = BeautifulSoup(html, "lxml")
    form = None
    for candidate in soup.find_all("form"):
        if candidate.find("input", attrs={"type": "password"}) or candidate.find("input", attrs={"name": "password"}):
            form = candidate
            break
    if form is None:
        raise AuthError("Login page has no form with a password field")

    action = form.get("action") or page_url
    hidden: Dict[str, str] = {}
    for field in form.find_all("input"):
        name = field.get("name")
        if not name:
            continue
        if field.get("type") == "hidden" or name in CSRF_FIELD_NAMES:
            hidden[name] = field.get("value") or ""
    if not any(name in hidden for name in CSRF_FIELD_NAMES):
        meta = soup.find("meta", attrs={"name": "csrf-token"})
        if meta is None or not meta.get("content"):
            raise AuthError("No CSRF token found in the login form")
        hidden["_token"] = meta["content"]

    email_field = "email"
    if not form.find("input", attrs={"name": "email"}) and form.find("input", attrs={"name": "login"}):
        email_field = "login"
    return urljoin(page_url, action), hidden, email_field


def cookie_header(cookies: httpx.Cookies) -> str:
    """Serialize a cookie jar into a Cookie header value"""
    pairs = []
    seen = set()
    for cookie in cookies.jar:
        if cookie.name in seen:
            continue
        seen.add(cookie.name)
        pairs.append(f"{cookie.name}={cookie.value}")
    return "; ".join(pairs)


class SessionStore:
    """Cookie-based auth state for the gated source"""

    def __init__(
        self,
        email: Optional[str] = None,
        password: Optional[str] = None,
        static_cookie: Optional[str] = None,
        origin: Optional[str] = None,
        client: Optional[httpx.AsyncClient] = None,
        remember: Optional[bool] = None,
        verify_genre: Optional[str] = None,
    ):
        self.email = (settings.toptracker_email if email is None else email).strip()
        self.password = settings.toptracker_password if password is None else password
        self.static_cookie = (settings.toptracker_cookie if static_cookie is None else static_cookie).strip()
        self.origin = (origin or settings.toptracker_origin).rstrip("/")
        self.remember = settings.toptracker_remember if remember is None else remember
        self.verify_genre = verify_genre or settings.toptracker_verify_genre
        self._client = client
        self._cookie: Optional[str] = None
        self.state = SessionState.NO_CREDENTIALS
        self.last_error: Optional[str] = None

    @property
    def login_url(self) -> str:
        return f"{self.origin}/login"

    @property
    def has_credentials(self) -> bool:
        return bool(self.static_cookie) or bool(self.email and self.password)

    def invalidate(self) -> None:
        """Drop the cached cookie and any negative result"""
        self._cookie = None
        self.last_error = None
        self.state = SessionState.NO_CREDENTIALS

    async def get(self) -> Optional[str]:
        """Cookie header for authenticated requests, or None (see ``last_error``)"""
        if self.static_cookie:
            self.state = SessionState.AUTHENTICATED
            return self.static_cookie
        if not (self.email and self.password):
            self.state = SessionState.NO_CREDENTIALS
            self.last_error = "No Top Tracker credentials configured (email + password, or a static cookie)"
            return None
        if self.state == SessionState.AUTHENTICATED and self._cookie:
            return self._cookie
        if self.state == SessionState.INVALID:
            return None

        self.state = SessionState.LOGGING_IN
        try:
            cookie = await self._login()
            await self._verify(cookie)
        except (AuthError, FetchError, httpx.HTTPError) as e:
            self._cookie = None
            self.state = SessionState.INVALID
            self.last_error = getattr(e, "reason", None) or str(e) or type(e).__name__
            logger.warning(f"Top Tracker login failed: {self.last_error}")
            return None

        self._cookie = cookie
        self.state = SessionState.AUTHENTICATED
        self.last_error = None
        logger.info("Top Tracker session established")
        return cookie

    async def _login(self) -> str:
        client = self._client or httpx.AsyncClient()
        owns_client = self._client is None
        try:
            page = await client.get(
                self.login_url,
                headers=default_headers(),
                timeout=settings.http_timeout_seconds,
            )
            if page.status_code >= 400:
                raise AuthError(f"Login page returned HTTP {page.status_code}")
            post_url, fields, email_field = extract_login_form(page.text, str(page.url))

            jar = httpx.Cookies()
            jar.update(page.cookies)
            fields[email_field] = self.email
            fields["password"] = self.password
            if self.remember:
                fields["remember"] = "1"

            headers = default_headers()
            headers.update({
                "Origin": self.origin,
                "Referer": self.login_url,
                "Content-Type": "application/x-www-form-urlencoded",
            })
            cookie_value = cookie_header(jar)
            if cookie_value:
                headers["Cookie"] = cookie_value
            response = await client.post(
                post_url,
                data=fields,
                headers=headers,
                follow_redirects=False,
                timeout=settings.http_timeout_seconds,
            )
            if response.status_code == 419:
                raise AuthError("CSRF token rejected by Top Tracker (HTTP 419)")
            if response.status_code >= 400:
                raise AuthError(f"Login POST returned HTTP {response.status_code}")
            jar.update(response.cookies)

            # at most one redirect
            location = response.headers.get("location")
            if response.status_code in (301, 302, 303, 307, 308) and location:
                headers = default_headers()
                cookie_value = cookie_header(jar)
                if cookie_value:
                    headers["Cookie"] = cookie_value
                redirected = await client.get(
                    urljoin(post_url, location),
                    headers=headers,
                    follow_redirects=False,
                    timeout=settings.http_timeout_seconds,
                )
                jar.update(redirected.cookies)

            cookie_value = cookie_header(jar)
            if not cookie_value:
                raise AuthError("Login response set no session cookie")
            return cookie_value
        finally:
            if owns_client:
                await client.aclose()

    async def _verify(self, cookie: str) -> None:
        """One fetch of a known gated chart page with the new cookie"""
        yesterday = (date.today() - timedelta(days=1)).isoformat()
        url = f"{self.origin}/top/track/{self.verify_genre}/{yesterday}"
        fetcher = Fetcher(client=self._client, max_retries=0)
        try:
            html = await fetcher.fetch(url, headers={"Cookie": cookie})
        finally:
            await fetcher.aclose()
        if looks_like_login_or_landing(html):
            raise AuthError(
                "Logged in but Top Tracker still serves the login/landing page; "
                "check the email and password"
            )
