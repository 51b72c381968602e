"""
Media URL patterns shared by the HTTP and browser extraction paths.

The pattern table is plain data (regex source strings) so that it can be
handed to ``page.evaluate`` and compiled with ``new RegExp`` inside the page
as well as with ``re`` here. Every regex must therefore stay within the
syntax both engines accept: no named groups, no inline flags.
"""

import html
import re
from typing import Dict, Iterable, Optional
from urllib.parse import urlsplit, urlunsplit

from instagrab.models.data_models import MediaCandidates
from instagrab.utils.config import (
    CDN_DOMAINS,
    PROFILE_PIC_TOKENS,
    STATIC_PATH_TOKENS,
    TINY_SIZE_TOKENS,
)

_JSON_STRING = r'"((?:[^"\\]|\\.)+)"'

MEDIA_PATTERNS: Dict = {
    # Structured version lists, one best candidate per occurrence
    "groups": [
        {
            "name": "video_versions",
            "kind": "video",
            "group": r'"video_versions"\s*:\s*\[([\s\S]*?)\]',
        },
        {
            "name": "image_versions2",
            "kind": "image",
            "group": r'"image_versions2"\s*:\s*\{\s*"candidates"\s*:\s*\[([\s\S]*?)\]',
        },
    ],
    "item": r"\{[^{}]*\}",
    "url": r'"url"\s*:\s*' + _JSON_STRING,
    "width": r'"width"\s*:\s*(\d+)',
    # Legacy flat keys, scanned after the structured groups
    "flat": [
        {"name": "video_url", "kind": "video", "pattern": r'"video_url"\s*:\s*' + _JSON_STRING},
        {"name": "playback_url", "kind": "video", "pattern": r'"playback_url"\s*:\s*' + _JSON_STRING},
        {"name": "display_url", "kind": "image", "pattern": r'"display_url"\s*:\s*' + _JSON_STRING},
        {"name": "video_duration", "kind": "duration", "pattern": r'"video_duration"\s*:\s*([\d.]+)'},
        {
            "name": "view_count",
            "kind": "views",
            "pattern": r'"(?:play_count|video_play_count|video_view_count|view_count)"\s*:\s*(\d+)',
        },
    ],
}

_UNICODE_ESCAPE = re.compile(r"\\u([0-9a-fA-F]{4})")
_VIDEO_EXTENSIONS = (".mp4", ".m4v", ".mov", ".webm")
_IMAGE_EXTENSIONS = (".jpg", ".jpeg", ".png", ".webp", ".heic")


def decode_escaped_url(raw: str) -> str:
    """Undo JSON and HTML escaping: ``\\/``, ``\\u0026`` and ``&amp;``."""
    url = raw.strip().replace("\\/", "/")
    url = _UNICODE_ESCAPE.sub(lambda m: chr(int(m.group(1), 16)), url)
    url = html.unescape(url)
    if url.startswith("//"):
        url = "https:" + url
    return url


def is_allowed_media_url(url: str, require_cdn: bool = True) -> bool:
    """
    Denylist filter for candidate media URLs.

    Keeps only URLs that are not static assets, tiny thumbnails or profile
    pictures. With ``require_cdn`` the host must also be an Instagram CDN
    domain; Open-Graph tags are checked without it since Instagram serves
    them from regional mirrors too.
    """
    try:
        parts = urlsplit(url)
    except ValueError:
        return False
    if parts.scheme not in ("http", "https"):
        return False

    host = (parts.hostname or "").lower()
    if not host:
        return False
    if require_cdn and not any(host == domain or host.endswith("." + domain) for domain in CDN_DOMAINS):
        return False

    lowered = url.lower()
    if any(token in parts.path.lower() for token in STATIC_PATH_TOKENS):
        return False
    if any(token in lowered for token in TINY_SIZE_TOKENS):
        return False
    if any(token in lowered for token in PROFILE_PIC_TOKENS):
        return False
    return True


def strip_byte_range(url: str) -> str:
    """Drop ``bytestart``/``byteend`` so a ranged CDN fetch maps to the whole file."""
    parts = urlsplit(url)
    if "bytestart" not in parts.query and "byteend" not in parts.query:
        return url
    query = "&".join(
        pair for pair in parts.query.split("&")
        if pair.split("=", 1)[0] not in ("bytestart", "byteend")
    )
    return urlunsplit((parts.scheme, parts.netloc, parts.path, query, parts.fragment))


def media_kind(url: str, content_type: Optional[str] = None) -> Optional[str]:
    """
    Tell whether a network response is a video or an image.

    The declared content type wins; the URL extension is the fallback.
    """
    if content_type:
        content_type = content_type.lower()
        if content_type.startswith("video/"):
            return "video"
        if content_type.startswith("image/"):
            return "image"
    path = urlsplit(url).path.lower()
    if path.endswith(_VIDEO_EXTENSIONS):
        return "video"
    if path.endswith(_IMAGE_EXTENSIONS):
        return "image"
    return None


def _best_in_group(body: str, table: Dict) -> Optional[str]:
    best, best_width = None, -1
    for item in re.findall(table["item"], body):
        url = re.search(table["url"], item)
        if not url:
            continue
        width = re.search(table["width"], item)
        value = int(width.group(1)) if width else 0
        if value > best_width:
            best, best_width = url.group(1), value
    return best


def add_candidate(candidates: MediaCandidates, kind: str, raw: Optional[str]) -> None:
    """Decode, filter and file one raw value under its kind."""
    if not raw:
        return
    if kind == "duration":
        candidates.duration = candidates.duration or raw
        return
    if kind == "views":
        candidates.views = candidates.views or raw
        return

    url = decode_escaped_url(raw)
    if not is_allowed_media_url(url):
        return
    if kind == "video":
        candidates.add_video(url)
    elif kind == "image":
        candidates.add_image(url)


def scan_script_text(text: str, table: Dict = MEDIA_PATTERNS,
                     candidates: Optional[MediaCandidates] = None) -> MediaCandidates:
    """
    Find media URLs in one script payload.

    Structured ``video_versions``/``image_versions2`` groups are scanned first
    (widest candidate per group), then the flat legacy keys.
    """
    if candidates is None:
        candidates = MediaCandidates()

    for group in table["groups"]:
        for match in re.finditer(group["group"], text):
            add_candidate(candidates, group["kind"], _best_in_group(match.group(1), table))

    for flat in table["flat"]:
        for match in re.finditer(flat["pattern"], text):
            add_candidate(candidates, flat["kind"], match.group(1))

    return candidates


def scan_scripts(scripts: Iterable[str], table: Dict = MEDIA_PATTERNS) -> MediaCandidates:
    candidates = MediaCandidates()
    for text in scripts:
        if text:
            scan_script_text(text, table, candidates)
    return candidates


def candidates_from_raw(raw: Dict, candidates: Optional[MediaCandidates] = None) -> MediaCandidates:
    """
    Build candidates from the plain dict the in-page scan returns.

    ``raw`` holds undecoded ``videos``/``images`` lists plus optional
    ``duration``/``views`` strings.
    """
    if candidates is None:
        candidates = MediaCandidates()
    for url in raw.get("videos") or []:
        add_candidate(candidates, "video", url)
    for url in raw.get("images") or []:
        add_candidate(candidates, "image", url)
    add_candidate(candidates, "duration", raw.get("duration"))
    add_candidate(candidates, "views", raw.get("views"))
    return candidates
