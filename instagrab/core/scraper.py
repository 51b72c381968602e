"""Instagram metadata extraction with fast-path and browser fallback."""

from contextlib import AsyncExitStack
from typing import List, Optional

from instagrab.core.browser.pool import BrowserPool
from instagrab.core.cache import ExtractionCache
from instagrab.core.exceptions import ExtractionFailedError, InvalidURLError
from instagrab.core.rate_limiter import RateLimiter, get_rate_limiter
from instagrab.core.scrapers.base import ExtractionStrategy
from instagrab.core.scrapers.browser_scraper import BrowserExtractor
from instagrab.core.scrapers.html_scraper import HTMLExtractor
from instagrab.core.url_classifier import classify, normalize_url, validate_url
from instagrab.models.data_models import ContentType, ExtractionOutcome, ExtractionResult
from instagrab.utils.logging import get_logger

logger = get_logger(__name__)


class InstagramExtractor:
    """
    Picks an extraction strategy per content type and caches the result.

    Posts, reels and IGTV try the single-request HTML path first and fall
    back to the browser; stories go straight to the browser. Only the last
    strategy's failure reaches the caller.

    Use as an async context manager: entering opens the HTTP client,
    leaving closes it and shuts the browser down.
    """

    def __init__(
        self,
        fast: Optional[ExtractionStrategy] = None,
        browser: Optional[ExtractionStrategy] = None,
        pool: Optional[BrowserPool] = None,
        cache: Optional[ExtractionCache] = None,
        rate_limiter: Optional[RateLimiter] = None,
    ):
        """
        Args:
            fast: Fast-path strategy (default: HTMLExtractor)
            browser: Browser strategy (default: BrowserExtractor on ``pool``)
            pool: Browser pool owned by this extractor (default: new pool)
            cache: Result cache (default: 5 minute in-process cache)
            rate_limiter: Limiter shared by the default strategies
        """
        limiter = rate_limiter or get_rate_limiter()
        self.pool = pool if pool is not None else BrowserPool()
        self.fast = fast if fast is not None else HTMLExtractor(rate_limiter=limiter)
        self.browser = browser if browser is not None else BrowserExtractor(self.pool, rate_limiter=limiter)
        self.cache = cache if cache is not None else ExtractionCache()
        self.extraction_count = 0
        self._stack: Optional[AsyncExitStack] = None

    async def __aenter__(self):
        self._stack = AsyncExitStack()
        for strategy in (self.fast, self.browser):
            if hasattr(strategy, "__aenter__"):
                await self._stack.enter_async_context(strategy)
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.close()

    async def close(self) -> None:
        """Close strategy resources and the browser."""
        if self._stack is not None:
            stack, self._stack = self._stack, None
            await stack.aclose()
        await self.pool.shutdown()

    def _strategies_for(self, content_type: ContentType) -> List[ExtractionStrategy]:
        if content_type == ContentType.STORY:
            return [self.browser]
        return [self.fast, self.browser]

    async def extract_metadata(self, url: str) -> ExtractionResult:
        """
        Extract media and metadata for an Instagram URL.

        Args:
            url: Post, reel, story or IGTV URL

        Returns:
            ExtractionResult, possibly from cache

        Raises:
            InvalidURLError: If the URL is not a supported Instagram link
            ExtractionFailedError: If every applicable strategy failed
        """
        url = url.strip() if isinstance(url, str) else url
        if not validate_url(url):
            raise InvalidURLError(f"Invalid Instagram URL: {url}")

        key = normalize_url(url)
        cached = self.cache.get(key)
        if cached is not None:
            logger.debug(f"Cache hit: {key}")
            return cached

        content_type = classify(url)
        outcome: Optional[ExtractionOutcome] = None

        for strategy in self._strategies_for(content_type):
            self.extraction_count += 1
            outcome = await strategy.run(url, content_type)
            if outcome.ok:
                logger.info(f"✓ Extracted {content_type.value} via {outcome.strategy}: {url}")
                self.cache.set(key, outcome.result)
                return outcome.result

        logger.error(f"All strategies failed for {url}: {outcome.error}")
        raise outcome.error or ExtractionFailedError(f"No strategy could extract {url}")

    def get_stats(self) -> dict:
        return {
            "extractions": self.extraction_count,
            "cache": self.cache.get_stats(),
            "browser_launches": self.pool.launch_count,
        }
