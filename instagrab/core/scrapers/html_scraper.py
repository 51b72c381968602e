"""Fast extraction strategy: one plain HTTP request, no JavaScript."""

from typing import Optional

import httpx
from bs4 import BeautifulSoup

from instagrab.core.exceptions import ExtractionFailedError, RateLimitedError
from instagrab.core.normalize import build_result
from instagrab.core.patterns import MEDIA_PATTERNS, scan_scripts
from instagrab.core.rate_limiter import RateLimiter, get_rate_limiter
from instagrab.core.scrapers.base import ExtractionStrategy
from instagrab.models.data_models import ContentType, ExtractionResult, MediaCandidates, OpenGraphTags
from instagrab.utils.config import FAST_PATH_TIMEOUT, MOBILE_USER_AGENT
from instagrab.utils.logging import get_logger

logger = get_logger(__name__)


def parse_open_graph(soup: BeautifulSoup) -> OpenGraphTags:
    """Read og:title, og:description, og:image and og:video from parsed HTML."""

    def meta(*properties: str) -> Optional[str]:
        for prop in properties:
            tag = soup.find("meta", attrs={"property": prop}) or soup.find("meta", attrs={"name": prop})
            if tag and tag.get("content"):
                return tag["content"].strip()
        return None

    return OpenGraphTags(
        title=meta("og:title") or (soup.title.string.strip() if soup.title and soup.title.string else None),
        description=meta("og:description", "description"),
        image=meta("og:image", "og:image:secure_url"),
        video=meta("og:video:secure_url", "og:video", "og:video:url"),
    )


def parse_page(html: str) -> tuple[OpenGraphTags, MediaCandidates]:
    """Open-Graph tags and scanned script candidates for one HTML document."""
    soup = BeautifulSoup(html, "lxml")
    og = parse_open_graph(soup)
    scripts = [script.string or script.get_text() for script in soup.find_all("script")]
    candidates = scan_scripts(scripts, MEDIA_PATTERNS)
    logger.debug(
        f"Scanned {len(scripts)} scripts: {len(candidates.videos)} videos, "
        f"{len(candidates.images)} images"
    )
    return og, candidates


class HTMLExtractor(ExtractionStrategy):
    """
    Extracts media from the server-rendered page.

    Sends a single GET pretending to be the Instagram app on a phone, then
    reads embedded JSON and Open-Graph tags. Cannot handle stories, which
    need a logged-in session.
    """

    name = "fast"

    def __init__(
        self,
        rate_limiter: Optional[RateLimiter] = None,
        timeout: float = FAST_PATH_TIMEOUT,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        """
        Args:
            rate_limiter: Limiter shared with other extractors (default: global)
            timeout: Total request timeout in seconds
            transport: Optional httpx transport, used by tests
        """
        self.rate_limiter = rate_limiter or get_rate_limiter()
        self.timeout = timeout
        self.transport = transport
        self.client: Optional[httpx.AsyncClient] = None

    async def __aenter__(self):
        """Create HTTP client on context entry."""
        self.client = httpx.AsyncClient(
            timeout=httpx.Timeout(self.timeout),
            follow_redirects=True,
            transport=self.transport,
        )
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        """Close HTTP client on context exit."""
        if self.client:
            await self.client.aclose()
            self.client = None

    def _get_headers(self) -> dict:
        return {
            "User-Agent": MOBILE_USER_AGENT,
            "Accept": "text/html,application/xhtml+xml,application/xml;q=0.9,*/*;q=0.8",
            "Accept-Language": "en-US,en;q=0.9",
        }

    async def extract(self, url: str, content_type: ContentType) -> ExtractionResult:
        """
        Extract media with a single HTTP request.

        Args:
            url: Validated Instagram URL
            content_type: Classified content type

        Returns:
            ExtractionResult

        Raises:
            RateLimitedError: If Instagram answers 429
            ExtractionFailedError: On any other failure
        """
        if content_type == ContentType.STORY:
            raise ExtractionFailedError("Stories cannot be extracted without a browser session")
        if not self.client:
            raise ExtractionFailedError("HTMLExtractor must be used as context manager")

        await self.rate_limiter.wait()
        logger.info(f"Fetching page HTML: {url}")

        try:
            response = await self.client.get(url, headers=self._get_headers())
        except httpx.TimeoutException as e:
            raise ExtractionFailedError(f"Request timeout: {e}") from e
        except httpx.HTTPError as e:
            raise ExtractionFailedError(f"HTTP error: {e}") from e

        if response.status_code == 404:
            raise ExtractionFailedError(f"Content not found: {url}")
        elif response.status_code == 429:
            cooldown = self.rate_limiter.penalize()
            raise RateLimitedError(f"Rate limited by Instagram, pausing {cooldown:.0f}s")
        elif response.status_code != 200:
            raise ExtractionFailedError(f"HTTP {response.status_code}")

        self.rate_limiter.relax()

        if "accounts/login" in str(response.url):
            raise ExtractionFailedError("Redirected to login page")

        html = response.text
        if len(html) < 1000:
            logger.debug(f"Very short HTML response ({len(html)} bytes)")

        try:
            og, candidates = parse_page(html)
        except Exception as e:
            logger.exception(f"Unexpected error parsing {url}")
            raise ExtractionFailedError(f"Failed to parse page: {e}") from e

        result = build_result(content_type, url, candidates, og)
        logger.info(f"Fast path found {result.media_count} media for {url}")
        return result
