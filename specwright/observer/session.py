"""Browser session: one Playwright browser, context and page per run."""

from __future__ import annotations

import logging
from typing import Optional

from playwright.async_api import Browser, BrowserContext, Page, Playwright, async_playwright

from specwright.models.config import BrowserConfig

logger = logging.getLogger(__name__)

DEFAULT_USER_AGENT = (
    "Mozilla/5.0 (Macintosh; Intel Mac OS X 10_15_7) "
    "AppleWebKit/537.36 (KHTML, like Gecko) "
    "Chrome/122.0.0.0 Safari/537.36"
)

_STEALTH_INIT_SCRIPT = """
Object.defineProperty(navigator, 'webdriver', { get: () => false });
Object.defineProperty(navigator, 'languages', { get: () => ['en-US', 'en'] });
if (!window.chrome) { window.chrome = {}; }
if (!window.chrome.runtime) { window.chrome.runtime = {}; }
"""


class Session:
    """Owns the browser for the duration of a run.

    Passed explicitly through every driver stage; ``close`` is idempotent so
    the orchestrator can call it from a timeout path as well.
    """

    def __init__(self, config: BrowserConfig):
        self.config = config
        self.playwright: Optional[Playwright] = None
        self.browser: Optional[Browser] = None
        self.context: Optional[BrowserContext] = None
        self.page: Optional[Page] = None
        self.closed = False

    async def open(self) -> Page:
        logger.info("Launching browser (headless=%s)", self.config.headless)
        self.playwright = await async_playwright().start()
        self.browser = await self.playwright.chromium.launch(
            headless=self.config.headless,
            args=["--disable-blink-features=AutomationControlled"],
        )
        self.context = await self.browser.new_context(
            viewport=self.config.viewport.model_dump(),
            user_agent=self.config.user_agent or DEFAULT_USER_AGENT,
            locale="en-US",
            extra_http_headers={"Accept-Language": "en-US,en;q=0.9"},
        )
        await self.context.add_init_script(_STEALTH_INIT_SCRIPT)
        self.page = await self.context.new_page()
        self.page.set_default_timeout(self.config.navigation_timeout_ms)
        return self.page

    async def close(self) -> None:
        if self.closed:
            return
        self.closed = True
        for name, resource in (("context", self.context), ("browser", self.browser)):
            if resource is None:
                continue
            try:
                await resource.close()
            except Exception as e:
                logger.debug("Error closing %s: %s", name, e)
        if self.playwright is not None:
            try:
                await self.playwright.stop()
            except Exception as e:
                logger.debug("Error stopping playwright: %s", e)
        logger.debug("Browser session closed")

    async def __aenter__(self) -> "Session":
        await self.open()
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.close()
