"""Turn raw page findings into an ExtractionResult."""

import re
from typing import List, Optional, Tuple

from instagrab.core.exceptions import ExtractionFailedError
from instagrab.core.patterns import decode_escaped_url, is_allowed_media_url
from instagrab.core.url_classifier import username_from_url
from instagrab.models.data_models import (
    ContentType,
    ExtractionResult,
    MediaCandidates,
    OpenGraphTags,
)
from instagrab.utils.config import DEFAULT_CAPTION, DEFAULT_USERNAME

_ON_INSTAGRAM = re.compile(r"^(.+?)\s+on\s+Instagram", re.IGNORECASE)
_HANDLE = re.compile(r"@([\w.]+)")
_LIKES = re.compile(r"([\d][\d,.]*\s*[KkMm]?)\s+likes?\b")
_COMMENTS = re.compile(r"([\d][\d,.]*\s*[KkMm]?)\s+comments?\b")


def parse_username(og_title: Optional[str], url: str) -> str:
    """Owner handle from the og:title, then the URL, then a placeholder."""
    if og_title:
        match = _ON_INSTAGRAM.search(og_title) or _HANDLE.search(og_title)
        if match:
            name = match.group(1).strip().lstrip("@")
            if name:
                return name
    return username_from_url(url) or DEFAULT_USERNAME


def parse_count(text: str) -> Optional[int]:
    """``"1,234"`` -> 1234, ``"12.5K"`` -> 12500."""
    text = text.strip().replace(",", "").replace(" ", "")
    multiplier = 1
    if text[-1:].lower() == "k":
        multiplier, text = 1_000, text[:-1]
    elif text[-1:].lower() == "m":
        multiplier, text = 1_000_000, text[:-1]
    try:
        return int(float(text) * multiplier)
    except ValueError:
        return None


def parse_engagement(description: Optional[str]) -> Tuple[Optional[int], Optional[int]]:
    """Likes and comments as printed in og:description, when present."""
    if not description:
        return None, None
    likes = _LIKES.search(description)
    comments = _COMMENTS.search(description)
    return (
        parse_count(likes.group(1)) if likes else None,
        parse_count(comments.group(1)) if comments else None,
    )


def format_duration(seconds: Optional[str]) -> Optional[str]:
    """Raw seconds to ``m:ss``."""
    if not seconds:
        return None
    try:
        total = int(round(float(seconds)))
    except ValueError:
        return None
    return f"{total // 60}:{total % 60:02d}"


def og_media_url(raw: Optional[str]) -> Optional[str]:
    """Decoded og:image / og:video, or None for logos, avatars and tiny thumbnails."""
    if not raw:
        return None
    url = decode_escaped_url(raw)
    return url if is_allowed_media_url(url, require_cdn=False) else None


def select_media(content_type: ContentType, candidates: MediaCandidates,
                 og: OpenGraphTags) -> List[str]:
    """
    Apply the per-type selection rule.

    Reels and IGTV must yield video URLs; an image is never returned in
    their place. Stories take videos, then images, then og tags. Posts
    take images, then og:image.

    Raises:
        ExtractionFailedError: If the rule cannot be satisfied
    """
    og_video = og_media_url(og.video)
    og_image = og_media_url(og.image)

    if content_type.is_video:
        if candidates.videos:
            return list(candidates.videos)
        if og_video:
            return [og_video]
        raise ExtractionFailedError(f"No video URL found for {content_type.value}")

    if content_type == ContentType.STORY:
        if candidates.videos:
            return list(candidates.videos)
        if candidates.images:
            return list(candidates.images)
        if og_video:
            return [og_video]
        if og_image:
            return [og_image]
        raise ExtractionFailedError("No media found for story")

    if candidates.images:
        return list(candidates.images)
    if og_image:
        return [og_image]
    raise ExtractionFailedError(f"No image URL found for {content_type.value}")


def build_result(content_type: ContentType, url: str, candidates: MediaCandidates,
                 og: OpenGraphTags) -> ExtractionResult:
    """Normalize findings from either extraction path into the canonical shape."""
    media_urls = select_media(content_type, candidates, og)

    thumbnail = og_media_url(og.image)
    if not thumbnail and candidates.images:
        thumbnail = candidates.images[0]
    if not thumbnail and content_type == ContentType.POST:
        thumbnail = media_urls[0]

    likes, comments = parse_engagement(og.description)

    views = duration = None
    if content_type.is_video:
        views = int(candidates.views) if candidates.views else None
        duration = format_duration(candidates.duration)

    return ExtractionResult(
        type=content_type,
        media_urls=media_urls,
        username=parse_username(og.title, url),
        caption=(og.description or "").strip() or DEFAULT_CAPTION,
        thumbnail=thumbnail,
        likes=likes,
        comments=comments,
        views=views,
        duration=duration,
    )
