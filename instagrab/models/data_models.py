"""Data models for extracted Instagram content."""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional

from instagrab.core.exceptions import ExtractionFailedError
from instagrab.utils.config import DEFAULT_CAPTION, DEFAULT_USERNAME


class ContentType(str, Enum):
    """Kind of Instagram page, derived from the URL path."""
    POST = "post"
    REEL = "reel"
    STORY = "story"
    IGTV = "igtv"

    @property
    def is_video(self) -> bool:
        return self in (ContentType.REEL, ContentType.IGTV)


@dataclass
class OpenGraphTags:
    """Open-Graph meta tags read from a page."""
    title: Optional[str] = None
    description: Optional[str] = None
    image: Optional[str] = None
    video: Optional[str] = None


@dataclass
class MediaCandidates:
    """Ordered, de-duplicated media URLs found on a page."""
    videos: List[str] = field(default_factory=list)
    images: List[str] = field(default_factory=list)
    duration: Optional[str] = None  # raw seconds, e.g. "14.6"
    views: Optional[str] = None

    def add_video(self, url: str) -> None:
        if url not in self.videos:
            self.videos.append(url)

    def add_image(self, url: str) -> None:
        if url not in self.images:
            self.images.append(url)

    def merge(self, other: "MediaCandidates") -> "MediaCandidates":
        """Union of two candidate sets; self's order wins."""
        merged = MediaCandidates(
            videos=list(self.videos),
            images=list(self.images),
            duration=self.duration or other.duration,
            views=self.views or other.views,
        )
        for url in other.videos:
            merged.add_video(url)
        for url in other.images:
            merged.add_image(url)
        return merged

    def __bool__(self) -> bool:
        return bool(self.videos or self.images)


@dataclass
class ExtractionResult:
    """Canonical metadata for one piece of Instagram content."""
    type: ContentType
    media_urls: List[str]
    username: str = DEFAULT_USERNAME
    caption: Optional[str] = DEFAULT_CAPTION
    thumbnail: Optional[str] = None
    likes: Optional[int] = None
    comments: Optional[int] = None
    views: Optional[int] = None
    duration: Optional[str] = None

    @property
    def media_count(self) -> int:
        return len(self.media_urls)

    def to_dict(self) -> Dict[str, Any]:
        """Serialize to the JSON shape stored on a download job."""
        return {
            "type": self.type.value,
            "username": self.username,
            "caption": self.caption,
            "thumbnail": self.thumbnail,
            "mediaUrls": list(self.media_urls),
            "likes": self.likes,
            "comments": self.comments,
            "views": self.views,
            "duration": self.duration,
            "mediaCount": self.media_count,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ExtractionResult":
        return cls(
            type=ContentType(data["type"]),
            media_urls=list(data.get("mediaUrls") or []),
            username=data.get("username") or DEFAULT_USERNAME,
            caption=data.get("caption"),
            thumbnail=data.get("thumbnail"),
            likes=data.get("likes"),
            comments=data.get("comments"),
            views=data.get("views"),
            duration=data.get("duration"),
        )


@dataclass
class ExtractionOutcome:
    """
    Result of running one extraction strategy.

    Exactly one of ``result`` and ``error`` is set. The orchestrator
    branches on ``ok`` instead of catching exceptions across strategies.
    """
    strategy: str
    result: Optional[ExtractionResult] = None
    error: Optional[ExtractionFailedError] = None

    @property
    def ok(self) -> bool:
        return self.result is not None


@dataclass
class DownloadResult:
    """A media file written to local storage."""
    file_path: str
    file_size: int
