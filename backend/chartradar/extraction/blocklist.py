"""
Blocklist filter: UI / navigation text that must never be stored as an
artist or a track ("Sign in", "About us →", "© 2013-2026", "Top 25" ...),
and detection of login / landing pages served instead of a chart.
"""
import re
from typing import List, Optional

# Curated junk phrases (compared after normalization)
BLOCKLIST = frozenset([
    "try now",
    "register now.",
    "register now",
    "sign in",
    "sign up",
    "log in",
    "about us",
    "about us →",
    "forgot password?",
    "forgot password",
    "login",
    "logout",
    "password",
    "email",
    "remember me",
    "unknown",
    "tops",
    "©",
    "all rights reserved",
    "privacy policy",
    "terms of service",
    "terms of use",
    "contact",
    "faq",
    "about",
    "→",
    "home",
    "dashboard",
    "settings",
    "search",
    "see more",
    "load more",
    "view all",
    "next",
    "previous",
    "submit",
    "cancel",
    "close",
    "menu",
    "nav",
    "footer",
    "cookie",
    "accept",
    "decline",
    "bptoptracker",
    "beatport top tracker",
    "keeping an eye",
    "don't miss",
    "historical data",
    "register for free",
    "beatport top 100",
    "140 / deep dubstep / grime",
])

BLOCKLIST_TRACK = BLOCKLIST | frozenset([
    "© 2013-2026 bp top tracker.",
])

MAX_NAME_LENGTH = 80

# Login pages are small; real chart pages are well above this
LOGIN_PAGE_MAX_BYTES = 15000

_TRAILING_NAV_RE = re.compile(r"\s*[→↗⟶➔›»]\s*.*$")
_TRAILING_COPYRIGHT_RE = re.compile(r"\s*[©®™].*$")
_RANK_PLACEHOLDER_RE = re.compile(r"^(top|chart|charts|track|tracks|artist|artists)\s*\d*$", re.IGNORECASE)
_GENRE_CRUMB_RE = re.compile(r"^\d+\s*/\s*.+")
_ABOUT_US_RE = re.compile(r"about\s+us\b", re.IGNORECASE)
_TRACK_UI_PREFIX_RE = re.compile(r"^(forgot|password|sign in|login|log in|email|remember)", re.IGNORECASE)

_LOGIN_WORDS_RE = re.compile(r"\b(sign in|login|password|email\s*:)", re.IGNORECASE)
_NAV_WORDS_RE = re.compile(r"\b(try now|register now|about us)\b", re.IGNORECASE)
_CHART_WORDS_RE = re.compile(r"\b(top 100|chart|position)\b", re.IGNORECASE)
_EMAIL_FIELD_RE = re.compile(r"""name=["']?(email|login)["'\s>]""", re.IGNORECASE)
_PASSWORD_FIELD_RE = re.compile(r"""(name=["']?password["'\s>]|type=["']?password["'\s>])""", re.IGNORECASE)


def normalize_for_match(text: str) -> str:
    """Lowercase and collapse whitespace"""
    return " ".join(text.split()).lower()


def strip_trailing_nav(text: str) -> str:
    """Drop trailing arrows / copyright marks: 'About us →' -> 'About us'"""
    text = _TRAILING_NAV_RE.sub("", text)
    return _TRAILING_COPYRIGHT_RE.sub("", text).strip()


def is_blocked_artist(name: Optional[str]) -> bool:
    """True when ``name`` is UI junk and must not become an artist"""
    if not name or not isinstance(name, str):
        return True
    n = normalize_for_match(name)
    if len(n) < 2:
        return True
    if n in BLOCKLIST:
        return True
    stripped = normalize_for_match(strip_trailing_nav(name))
    if stripped and stripped in BLOCKLIST:
        return True
    if _ABOUT_US_RE.search(n):
        return True
    if "→" in n or "©" in n or len(n) > MAX_NAME_LENGTH:
        return True
    if _RANK_PLACEHOLDER_RE.match(n):
        return True
    if _GENRE_CRUMB_RE.match(n):
        return True
    return False


def is_blocked_track(title: Optional[str]) -> bool:
    """True when ``title`` is UI junk. An empty title is allowed (artist-only rows)."""
    if title is None or title == "":
        return False
    t = normalize_for_match(str(title))
    if len(t) < 2:
        return False
    if t in BLOCKLIST_TRACK:
        return True
    stripped = normalize_for_match(strip_trailing_nav(str(title)))
    if stripped and stripped in BLOCKLIST_TRACK:
        return True
    if "→" in t or "©" in t:
        return True
    if _RANK_PLACEHOLDER_RE.match(t):
        return True
    if _TRACK_UI_PREFIX_RE.match(t):
        return True
    return False


def has_login_form(html: str) -> bool:
    """Strong signal: both an email/login field and a password field"""
    return bool(_EMAIL_FIELD_RE.search(html)) and bool(_PASSWORD_FIELD_RE.search(html))


def looks_like_login_or_landing(html: str) -> bool:
    """
    Classify a response body as a login / landing page rather than a chart.
    A login form alone is enough; otherwise login or marketing wording on a
    page that is small or has no chart wording.
    """
    if not html:
        return True
    if has_login_form(html):
        return True
    has_login_words = bool(_LOGIN_WORDS_RE.search(html))
    has_nav_words = bool(_NAV_WORDS_RE.search(html))
    small_or_no_chart = (
        len(html.encode("utf-8")) < LOGIN_PAGE_MAX_BYTES
        or not _CHART_WORDS_RE.search(html)
    )
    return (has_login_words or has_nav_words) and small_or_no_chart


def blocklist_values() -> List[str]:
    """Sorted blocklist, e.g. for reporting or SQL cleanup"""
    return sorted(BLOCKLIST)
