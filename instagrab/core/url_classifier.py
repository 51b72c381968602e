"""Recognize Instagram content URLs and tell what kind of content they point to."""

import re
from typing import Optional
from urllib.parse import parse_qsl, urlencode, urlsplit, urlunsplit

from instagrab.models.data_models import ContentType
from instagrab.utils.config import (
    INSTAGRAM_MOBILE_HOST,
    TRACKING_PARAM_PREFIXES,
    TRACKING_PARAMS,
)

_HOST = r"^https?://(?:www\.)?instagram\.com"

URL_PATTERNS = {
    ContentType.POST: re.compile(_HOST + r"/p/[\w-]+"),
    ContentType.REEL: re.compile(_HOST + r"/reel/[\w-]+"),
    ContentType.STORY: re.compile(_HOST + r"/stories/[\w.-]+/[\w-]+"),
    ContentType.IGTV: re.compile(_HOST + r"/tv/[\w-]+"),
}

# Checked in this order; the first segment found wins
SEGMENT_PRIORITY = (
    ("reel", ContentType.REEL),
    ("stories", ContentType.STORY),
    ("tv", ContentType.IGTV),
    ("p", ContentType.POST),
)

_RESERVED_SEGMENTS = {"p", "reel", "reels", "tv", "stories", "explore", "accounts"}


def _segments(url: str) -> list:
    return [part for part in urlsplit(url.strip()).path.split("/") if part]


def validate_url(url: str) -> bool:
    """Return True only for post, reel, story or IGTV links on instagram.com."""
    if not isinstance(url, str):
        return False
    url = url.strip()
    return any(pattern.match(url) for pattern in URL_PATTERNS.values())


def classify(url: str) -> ContentType:
    """
    Derive the content type from the URL path.

    Never fails: anything unrecognized is treated as a post.
    """
    segments = _segments(url)
    for segment, content_type in SEGMENT_PRIORITY:
        if segment in segments:
            return content_type
    return ContentType.POST


def normalize_url(url: str) -> str:
    """Drop tracking parameters and the fragment so shared links map to one cache key."""
    parts = urlsplit(url.strip())
    query = [
        (key, value)
        for key, value in parse_qsl(parts.query, keep_blank_values=True)
        if key not in TRACKING_PARAMS and not key.startswith(TRACKING_PARAM_PREFIXES)
    ]
    host = parts.netloc.lower()
    if host == "instagram.com":
        host = "www.instagram.com"
    path = parts.path if parts.path.endswith("/") else parts.path + "/"
    return urlunsplit(("https", host, path, urlencode(query), ""))


def to_mobile_url(url: str) -> str:
    """Point the URL at the lightweight mobile site, which serves simpler markup."""
    parts = urlsplit(normalize_url(url))
    return urlunsplit((parts.scheme, INSTAGRAM_MOBILE_HOST, parts.path, parts.query, ""))


def extract_shortcode(url: str) -> Optional[str]:
    """Media shortcode (or story id) from the URL, if present."""
    segments = _segments(url)
    for marker in ("p", "reel", "tv"):
        if marker in segments:
            index = segments.index(marker)
            if index + 1 < len(segments):
                return segments[index + 1]
    if "stories" in segments:
        index = segments.index("stories")
        if index + 2 < len(segments):
            return segments[index + 2]
    return None


def username_from_url(url: str) -> Optional[str]:
    """Owner handle when the URL carries one (stories, or /<user>/p/<code> links)."""
    segments = _segments(url)
    if "stories" in segments:
        index = segments.index("stories")
        if index + 1 < len(segments):
            return segments[index + 1]
        return None
    if segments and segments[0] not in _RESERVED_SEGMENTS:
        return segments[0]
    return None
