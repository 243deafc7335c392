"""
Pytest fixtures for ncb-e2e tests.

This module provides the fixtures shared by the library tests: a
Chromium page whose network is served from in-memory HTML, so the
verification and dropdown helpers can be exercised without the site.
"""

import os
import sys
from typing import AsyncGenerator, Callable, Dict

import pytest
import pytest_asyncio
from playwright.async_api import (
    Browser,
    BrowserContext,
    Error as PlaywrightError,
    Page,
    Route,
    async_playwright,
)

# Add src to path for imports
sys.path.insert(0, os.path.join(os.path.dirname(__file__), "..", "src"))

from ncb_e2e.config import TimeoutSettings  # noqa: E402

FAKE_ORIGIN = "http://ncb.test"


def pytest_configure(config):
    config.addinivalue_line(
        "markers", "live: scenario against the site under test (needs E2E_BASE_URL)"
    )
    config.addinivalue_line(
        "markers", "browser: needs a Chromium binary; skipped when it cannot launch"
    )


class FakeSite:
    """In-memory pages served to a browser context by URL path."""

    def __init__(self, origin: str = FAKE_ORIGIN):
        self.origin = origin
        self.pages: Dict[str, str] = {}

    def add(self, path: str, html: str) -> str:
        """Serve ``html`` at ``path`` and return its absolute URL."""
        self.pages[path] = html
        return self.url(path)

    def url(self, path: str) -> str:
        return f"{self.origin}{path}"

    async def handle(self, route: Route) -> None:
        url = route.request.url
        path = url[len(self.origin):] if url.startswith(self.origin) else url
        path = path.split("#", 1)[0]
        body = self.pages.get(path) or self.pages.get(path.split("?", 1)[0])
        if body is None:
            # Unknown targets still render, so navigation can be observed
            body = f"<html><body><h1>{path}</h1></body></html>"
        await route.fulfill(status=200, content_type="text/html", body=body)


@pytest_asyncio.fixture
async def chromium() -> AsyncGenerator[Browser, None]:
    """Launch headless Chromium, skipping the test when it is unavailable."""
    async with async_playwright() as pw:
        try:
            browser = await pw.chromium.launch(headless=True)
        except PlaywrightError as e:
            pytest.skip(f"Chromium cannot be launched: {e.message.splitlines()[0]}")
        yield browser
        await browser.close()


@pytest.fixture
def fake_site() -> FakeSite:
    return FakeSite()


@pytest_asyncio.fixture
async def site_context(
    chromium: Browser, fake_site: FakeSite
) -> AsyncGenerator[BrowserContext, None]:
    """Browser context whose every request is answered by ``fake_site``."""
    context = await chromium.new_context(viewport={"width": 1280, "height": 720})
    context.set_default_timeout(10000)
    await context.route(f"{fake_site.origin}/**", fake_site.handle)
    yield context
    await context.close()


@pytest_asyncio.fixture
async def site_page(site_context: BrowserContext) -> AsyncGenerator[Page, None]:
    page = await site_context.new_page()
    yield page


@pytest.fixture
def fast_timeouts() -> TimeoutSettings:
    """Short helper timeouts so negative cases fail quickly."""
    return TimeoutSettings(
        listing=2000,
        link=2000,
        new_page=2000,
        navigation=2000,
        fallback=1000,
        options=2000,
        enable=3000,
        poll_interval=50,
    )


@pytest.fixture
def html_page() -> Callable[..., str]:
    """Build a minimal HTML document from a body fragment."""

    def build(body: str, script: str = "", title: str = "fake") -> str:
        return (
            f"<!doctype html><html><head><title>{title}</title></head>"
            f"<body>{body}<script>{script}</script></body></html>"
        )

    return build
