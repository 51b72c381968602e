"""Shared headless browser with per-call pages."""

import asyncio
from contextlib import asynccontextmanager
from typing import AsyncIterator, Awaitable, Callable, Dict, List, Optional

from playwright.async_api import Browser, Page, Playwright, async_playwright
from playwright.async_api import Error as PlaywrightError

from instagrab.core.exceptions import ExtractionFailedError
from instagrab.utils.config import (
    BROWSER_ARGS,
    BROWSER_HEADLESS,
    BROWSER_VIEWPORT,
    MOBILE_USER_AGENT,
)
from instagrab.utils.logging import get_logger

logger = get_logger(__name__)

Launcher = Callable[[], Awaitable[Browser]]


class BrowserPool:
    """
    Owns the single Chromium process used for browser-driven extraction.

    The browser is launched on first use, checked before every reuse and
    relaunched if it has disconnected. Starting Chromium is expensive, so it
    stays up between calls; each call gets its own context and page, which
    are always closed afterwards. Only ``shutdown`` closes the browser.
    """

    def __init__(self, launcher: Optional[Launcher] = None, headless: bool = BROWSER_HEADLESS):
        """
        Args:
            launcher: Coroutine function returning a connected browser
                (default: launch Chromium through Playwright)
            headless: Run Chromium without a window
        """
        self._launcher = launcher
        self.headless = headless
        self._playwright: Optional[Playwright] = None
        self._browser: Optional[Browser] = None
        # Serializes check-connected / relaunch so concurrent callers
        # never start two browsers
        self._lock = asyncio.Lock()
        self.launch_count = 0

    def is_healthy(self) -> bool:
        """True when a browser exists and is still connected."""
        return self._browser is not None and self._browser.is_connected()

    async def acquire(self) -> Browser:
        """
        Return the shared browser, launching or relaunching it if needed.

        Raises:
            ExtractionFailedError: If Chromium cannot be started
        """
        async with self._lock:
            if self.is_healthy():
                return self._browser

            if self._browser is not None:
                logger.warning("Browser disconnected, relaunching")
                await self._close_browser()

            self._browser = await self._launch()
            self.launch_count += 1
            return self._browser

    async def _launch(self) -> Browser:
        if self._launcher is not None:
            return await self._launcher()

        logger.info("Launching headless Chromium")
        try:
            if self._playwright is None:
                self._playwright = await async_playwright().start()
            browser = await self._playwright.chromium.launch(
                headless=self.headless,
                args=BROWSER_ARGS,
            )
        except PlaywrightError as e:
            raise ExtractionFailedError(f"Could not launch browser: {e}") from e

        browser.on("disconnected", lambda _: logger.warning("Browser process disconnected"))
        return browser

    async def _close_browser(self) -> None:
        browser, self._browser = self._browser, None
        if browser is None:
            return
        try:
            await browser.close()
        except Exception as e:
            logger.warning(f"Error closing browser: {e}")

    @asynccontextmanager
    async def page(
        self,
        user_agent: str = MOBILE_USER_AGENT,
        cookies: Optional[List[Dict]] = None,
    ) -> AsyncIterator[Page]:
        """
        Open an isolated page for one extraction.

        Args:
            user_agent: User agent for the page
            cookies: Cookies to install before the page is created

        Yields:
            Playwright Page, closed on exit whatever happens
        """
        browser = await self.acquire()
        context = await browser.new_context(
            user_agent=user_agent,
            viewport=BROWSER_VIEWPORT,
            is_mobile=True,
            has_touch=True,
            locale="en-US",
        )
        page = None
        try:
            if cookies:
                await context.add_cookies(cookies)
            page = await context.new_page()
            yield page
        finally:
            if page is not None:
                try:
                    await page.close()
                except Exception as e:
                    logger.warning(f"Error closing page: {e}")
            try:
                await context.close()
            except Exception as e:
                logger.warning(f"Error closing browser context: {e}")

    async def shutdown(self) -> None:
        """Close the browser and stop Playwright."""
        async with self._lock:
            await self._close_browser()
            if self._playwright is not None:
                try:
                    await self._playwright.stop()
                except Exception as e:
                    logger.warning(f"Error stopping Playwright: {e}")
                self._playwright = None
        logger.info("Browser pool shut down")
