from __future__ import annotations

from contextlib import asynccontextmanager
from typing import Any

import httpx
import pytest

from instagrab.core.jobs import JobManager
from instagrab.core.rate_limiter import RateLimiter
from instagrab.storage.database import (
    create_engine_for,
    create_session_factory,
    init_db,
    session_scope,
)

CDN = "https://scontent-lhr8-1.cdninstagram.com"

POST_IMAGE = f"{CDN}/v/t51.2885-15/431234_n.jpg?stp=dst-jpg_e35&_nc_ht=scontent&oh=00_AfB"
REEL_VIDEO_SMALL = f"{CDN}/o1/v/t16/f1/m82/small.mp4?efg=eyJ2&_nc_ht=scontent&oh=00_A1"
REEL_VIDEO_BIG = f"{CDN}/o1/v/t16/f1/m82/big.mp4?efg=eyJ2&_nc_ht=scontent&oh=00_A2"
REEL_COVER = f"{CDN}/v/t51.2885-15/cover_n.jpg?_nc_ht=scontent"

# What Instagram puts in og:image when the media itself is not available
STATIC_LOGO = "https://static.cdninstagram.com/rsrc.php/v3/yt/r/30PrGfR3xhB.png"
PROFILE_PIC = f"{CDN}/v/t51.2885-19/44884218_345707102882519_n.jpg"


def js_escape(url: str) -> str:
    """Escape a URL the way Instagram embeds it in JSON payloads."""
    return url.replace("/", "\\/").replace("&", "\\u0026")


def make_html(og: dict[str, str] | None = None, scripts: tuple[str, ...] = ()) -> str:
    """Minimal Instagram-like page with Open-Graph tags and inline scripts."""
    metas = "".join(
        f'<meta property="{prop}" content="{value}" />'
        for prop, value in (og or {}).items()
    )
    bodies = "".join(f'<script type="application/json">{body}</script>' for body in scripts)
    return f"<html><head><title>Instagram</title>{metas}</head><body>{bodies}</body></html>"


def reel_payload() -> str:
    return (
        '{"items":[{"code":"XYZ","video_versions":['
        f'{{"type":101,"width":480,"height":854,"url":"{js_escape(REEL_VIDEO_SMALL)}"}},'
        f'{{"type":101,"width":720,"height":1280,"url":"{js_escape(REEL_VIDEO_BIG)}"}}'
        '],"image_versions2":{"candidates":['
        f'{{"width":1080,"height":1920,"url":"{js_escape(REEL_COVER)}"}}'
        ']},"video_duration":74.2,"play_count":48210}]}'
    )


def html_transport(html: str, status: int = 200, calls: list | None = None) -> httpx.MockTransport:
    def handler(request: httpx.Request) -> httpx.Response:
        if calls is not None:
            calls.append(request)
        return httpx.Response(status, text=html, headers={"content-type": "text/html"})

    return httpx.MockTransport(handler)


def failing_transport(calls: list | None = None) -> httpx.MockTransport:
    def handler(request: httpx.Request) -> httpx.Response:
        if calls is not None:
            calls.append(request)
        raise httpx.ConnectError("connection refused", request=request)

    return httpx.MockTransport(handler)


# ── Browser fakes ────────────────────────────────────────────────────


class FakeResponse:
    def __init__(self, url: str, content_type: str) -> None:
        self.url = url
        self.headers = {"content-type": content_type}


class FakePage:
    """Stands in for a Playwright page: replays responses and canned evaluations."""

    def __init__(
        self,
        responses: list[FakeResponse] | None = None,
        og: dict[str, Any] | None = None,
        dom: dict[str, Any] | None = None,
        final_url: str | None = None,
        goto_error: Exception | None = None,
    ) -> None:
        self.responses = responses or []
        self.og = og or {}
        self.dom = dom or {}
        self.final_url = final_url
        self.goto_error = goto_error
        self.handlers: dict[str, Any] = {}
        self.handlers_at_goto: set[str] = set()
        self.visited: list[str] = []
        self.wait_until: str | None = None
        self.waited: list[int] = []
        self.scan_arg: Any = None
        self.url = "about:blank"

    def on(self, event: str, handler: Any) -> None:
        self.handlers[event] = handler

    async def goto(self, url: str, wait_until: str | None = None, timeout: int | None = None) -> None:
        self.visited.append(url)
        self.handlers_at_goto = set(self.handlers)
        self.wait_until = wait_until
        if self.goto_error is not None:
            raise self.goto_error
        self.url = self.final_url or url
        for response in self.responses:
            self.handlers["response"](response)

    async def wait_for_timeout(self, ms: int) -> None:
        self.waited.append(ms)

    async def evaluate(self, script: str, arg: Any = None) -> Any:
        if arg is None:
            return self.og
        self.scan_arg = arg
        return self.dom


class FakePool:
    """Stands in for BrowserPool, handing out one FakePage."""

    def __init__(self, page: FakePage) -> None:
        self._page = page
        self.cookies_seen: list[Any] = []
        self.opened = 0
        self.closed = 0
        self.launch_count = 0
        self.shut_down = False

    @asynccontextmanager
    async def page(self, user_agent: str | None = None, cookies: list | None = None):
        self.cookies_seen.append(cookies)
        self.opened += 1
        try:
            yield self._page
        finally:
            self.closed += 1

    async def shutdown(self) -> None:
        self.shut_down = True


# ── Fixtures ─────────────────────────────────────────────────────────


@pytest.fixture()
def no_delay() -> RateLimiter:
    return RateLimiter(delay=0, jitter=0)


@pytest.fixture()
async def job_manager(tmp_path):
    engine = create_engine_for(f"sqlite:///{tmp_path / 'jobs.db'}")
    await init_db(engine)
    yield JobManager(session_scope(create_session_factory(engine)))
    await engine.dispose()
