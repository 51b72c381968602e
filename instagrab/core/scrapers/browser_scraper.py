"""Browser-driven extraction strategy using headless Chromium."""

from typing import Dict, List, Optional

from playwright.async_api import Error as PlaywrightError

from instagrab.core.browser.pool import BrowserPool
from instagrab.core.exceptions import (
    AuthRequiredError,
    ExtractionFailedError,
    PrivateOrExpiredError,
    StoryUnavailableError,
)
from instagrab.core.normalize import build_result
from instagrab.core.patterns import (
    MEDIA_PATTERNS,
    add_candidate,
    candidates_from_raw,
    media_kind,
    strip_byte_range,
)
from instagrab.core.rate_limiter import RateLimiter, get_rate_limiter
from instagrab.core.scrapers.base import ExtractionStrategy
from instagrab.core.url_classifier import to_mobile_url
from instagrab.models.data_models import ContentType, ExtractionResult, MediaCandidates, OpenGraphTags
from instagrab.utils.config import (
    IG_SESSIONID,
    NAVIGATION_TIMEOUT_MS,
    SESSION_COOKIE_DOMAIN,
    SESSION_COOKIE_NAME,
    SETTLE_DELAY_MS,
    STORY_SETTLE_DELAY_MS,
)
from instagrab.utils.logging import get_logger

logger = get_logger(__name__)

OPEN_GRAPH_SCRIPT = """
() => {
    const read = (names) => {
        for (const name of names) {
            const el = document.querySelector(`meta[property="${name}"]`)
                || document.querySelector(`meta[name="${name}"]`);
            if (el && el.content) return el.content;
        }
        return null;
    };
    return {
        title: read(['og:title']) || document.title || null,
        description: read(['og:description', 'description']),
        image: read(['og:image', 'og:image:secure_url']),
        video: read(['og:video:secure_url', 'og:video', 'og:video:url']),
    };
}
"""

# Mirrors patterns.scan_script_text; the table arrives as data because the
# page context cannot reach Python code.
PAGE_SCAN_SCRIPT = """
(table) => {
    const found = { videos: [], images: [], duration: null, views: null };
    const push = (kind, value) => {
        if (!value) return;
        if (kind === 'video') found.videos.push(value);
        else if (kind === 'image') found.images.push(value);
        else if (kind === 'duration' && found.duration === null) found.duration = value;
        else if (kind === 'views' && found.views === null) found.views = value;
    };

    document.querySelectorAll('video').forEach((video) => {
        if (video.src) push('video', video.src);
        video.querySelectorAll('source').forEach((source) => {
            if (source.src) push('video', source.src);
        });
        if (video.poster) push('image', video.poster);
    });

    document.querySelectorAll('link[rel="preload"]').forEach((link) => {
        const as = (link.getAttribute('as') || '').toLowerCase();
        if (as === 'video') push('video', link.href);
        else if (as === 'image') push('image', link.href);
    });

    const bestInGroup = (body) => {
        let best = null;
        let bestWidth = -1;
        for (const item of body.match(new RegExp(table.item, 'g')) || []) {
            const url = item.match(new RegExp(table.url));
            if (!url) continue;
            const width = item.match(new RegExp(table.width));
            const value = width ? parseInt(width[1], 10) : 0;
            if (value > bestWidth) {
                best = url[1];
                bestWidth = value;
            }
        }
        return best;
    };

    const scan = (text) => {
        for (const group of table.groups) {
            const re = new RegExp(group.group, 'g');
            let match;
            while ((match = re.exec(text)) !== null) push(group.kind, bestInGroup(match[1]));
        }
        for (const flat of table.flat) {
            const re = new RegExp(flat.pattern, 'g');
            let match;
            while ((match = re.exec(text)) !== null) push(flat.kind, match[1]);
        }
    };

    document.querySelectorAll('script').forEach((script) => {
        const text = script.textContent || '';
        if (text) scan(text);
    });
    return found;
}
"""

_UNSET = object()


def classify_story_failure(error: Exception, session_configured: bool) -> StoryUnavailableError:
    """
    Map a story failure onto private/expired, login-required or unknown.

    Only the user-facing message differs; all three end the job attempt.
    """
    detail = str(error)
    lowered = detail.lower()
    if any(token in lowered for token in ("private", "expired", "not available", "isn't available")):
        return PrivateOrExpiredError(detail, session_configured=session_configured)
    if any(token in lowered for token in ("login", "log in", "authentic")):
        return AuthRequiredError(detail, session_configured=session_configured)
    return StoryUnavailableError(detail, session_configured=session_configured)


class BrowserExtractor(ExtractionStrategy):
    """
    Renders the page in headless Chromium and collects media from three
    places: network responses seen while loading, rendered ``<video>`` and
    preload elements, and script payloads scanned with the shared pattern
    table.
    """

    name = "browser"

    def __init__(
        self,
        pool: BrowserPool,
        session_id=_UNSET,
        rate_limiter: Optional[RateLimiter] = None,
        navigation_timeout_ms: int = NAVIGATION_TIMEOUT_MS,
        settle_ms: int = SETTLE_DELAY_MS,
        story_settle_ms: int = STORY_SETTLE_DELAY_MS,
    ):
        """
        Args:
            pool: Shared browser pool
            session_id: Instagram ``sessionid`` cookie for stories
                (default: IG_SESSIONID from the environment)
            rate_limiter: Limiter shared with other extractors (default: global)
            navigation_timeout_ms: Timeout for the page load
            settle_ms: Extra wait after DOM content loaded
            story_settle_ms: Extra wait for story pages, which render late
        """
        self.pool = pool
        self.session_id: Optional[str] = IG_SESSIONID if session_id is _UNSET else session_id
        self.rate_limiter = rate_limiter or get_rate_limiter()
        self.navigation_timeout_ms = navigation_timeout_ms
        self.settle_ms = settle_ms
        self.story_settle_ms = story_settle_ms

    def _session_cookies(self, content_type: ContentType) -> Optional[List[Dict]]:
        if content_type != ContentType.STORY or not self.session_id:
            return None
        return [{
            "name": SESSION_COOKIE_NAME,
            "value": self.session_id,
            "domain": SESSION_COOKIE_DOMAIN,
            "path": "/",
            "httpOnly": True,
            "secure": True,
            "sameSite": "None",
        }]

    async def extract(self, url: str, content_type: ContentType) -> ExtractionResult:
        """
        Extract media by rendering the page.

        Args:
            url: Validated Instagram URL
            content_type: Classified content type

        Returns:
            ExtractionResult

        Raises:
            StoryUnavailableError: For any story failure (or a subclass)
            ExtractionFailedError: For any other failure
        """
        try:
            return await self._extract(url, content_type)
        except StoryUnavailableError:
            raise
        except ExtractionFailedError as e:
            if content_type == ContentType.STORY:
                raise classify_story_failure(e, bool(self.session_id)) from e
            raise
        except PlaywrightError as e:
            error = ExtractionFailedError(f"Browser error: {e}")
            if content_type == ContentType.STORY:
                raise classify_story_failure(error, bool(self.session_id)) from e
            raise error from e
        except Exception as e:
            logger.exception(f"Unexpected error rendering {url}")
            error = ExtractionFailedError(f"Unexpected error: {e}")
            if content_type == ContentType.STORY:
                raise classify_story_failure(error, bool(self.session_id)) from e
            raise error from e

    async def _extract(self, url: str, content_type: ContentType) -> ExtractionResult:
        cookies = self._session_cookies(content_type)
        if content_type == ContentType.STORY and not cookies:
            logger.info("IG_SESSIONID not set, only public stories can be read")

        target = to_mobile_url(url)
        network = MediaCandidates()

        def on_response(response) -> None:
            try:
                kind = media_kind(response.url, response.headers.get("content-type"))
            except Exception as e:
                logger.debug(f"Ignoring unreadable response: {e}")
                return
            if kind:
                add_candidate(network, kind, strip_byte_range(response.url))

        settle = self.story_settle_ms if content_type == ContentType.STORY else self.settle_ms

        await self.rate_limiter.wait()
        async with self.pool.page(cookies=cookies) as page:
            # Registered before navigation: media can be fetched before the DOM settles
            page.on("response", on_response)

            logger.info(f"Rendering {target}")
            await page.goto(target, wait_until="domcontentloaded", timeout=self.navigation_timeout_ms)
            await page.wait_for_timeout(settle)

            if "accounts/login" in page.url:
                raise ExtractionFailedError("Redirected to login page")

            og_raw = await page.evaluate(OPEN_GRAPH_SCRIPT) or {}
            dom_raw = await page.evaluate(PAGE_SCAN_SCRIPT, MEDIA_PATTERNS) or {}

        og = OpenGraphTags(
            title=og_raw.get("title"),
            description=og_raw.get("description"),
            image=og_raw.get("image"),
            video=og_raw.get("video"),
        )
        candidates = candidates_from_raw(dom_raw).merge(network)
        logger.debug(
            f"Browser candidates for {url}: {len(candidates.videos)} videos, "
            f"{len(candidates.images)} images ({len(network.videos) + len(network.images)} from network)"
        )

        result = build_result(content_type, url, candidates, og)
        logger.info(f"Browser path found {result.media_count} media for {url}")
        return result
