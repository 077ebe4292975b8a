"""Playwright browser session with anti-detection.

A ``BrowserSession`` owns exactly one Chromium process for the duration of
an ``async with`` block.  Pages are opened per URL and always closed, and
the browser and driver are torn down on every exit path.
"""

from typing import Optional

import structlog
from playwright.async_api import Browser, BrowserContext, Playwright, async_playwright

from budgetgamer.config import settings
from budgetgamer.scrapers.utils.user_agents import DESKTOP_USER_AGENT

logger = structlog.get_logger(__name__)


class BrowserSession:
    """Scoped headless browser used by scraper adapters.

    Usage:
        async with BrowserSession() as browser:
            html = await browser.fetch_rendered_page(url, wait_for=".card")
    """

    def __init__(
        self,
        headless: Optional[bool] = None,
        navigation_timeout_ms: Optional[int] = None,
        selector_timeout_ms: Optional[int] = None,
        block_resources: bool = True,
    ):
        self._headless = settings.BROWSER_HEADLESS if headless is None else headless
        self._navigation_timeout_ms = navigation_timeout_ms or settings.BROWSER_NAVIGATION_TIMEOUT_MS
        self._selector_timeout_ms = selector_timeout_ms or settings.BROWSER_SELECTOR_TIMEOUT_MS
        self._block_resources = block_resources
        self._playwright: Optional[Playwright] = None
        self._browser: Optional[Browser] = None
        self._context: Optional[BrowserContext] = None

    async def __aenter__(self) -> "BrowserSession":
        await self.start()
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.stop()

    async def start(self) -> None:
        """Launch the browser and its single context."""
        self._playwright = await async_playwright().start()
        try:
            self._browser = await self._playwright.chromium.launch(
                headless=self._headless,
                args=[
                    "--disable-blink-features=AutomationControlled",
                    "--disable-dev-shm-usage",
                    "--no-sandbox",
                ],
            )
            self._context = await self._browser.new_context(
                user_agent=DESKTOP_USER_AGENT,
                viewport={"width": 1920, "height": 1080},
                locale="en-GB",
                timezone_id=settings.SCRAPE_TIMEZONE,
                java_script_enabled=True,
                bypass_csp=True,
            )
            # Inject stealth script to avoid detection
            await self._context.add_init_script(STEALTH_JS)

            # Fonts and media are never parsed, skip them
            if self._block_resources:
                await self._context.route(
                    "**/*.{woff,woff2,ttf,eot,mp4,webm}",
                    lambda route: route.abort(),
                )
        except Exception:
            await self.stop()
            raise
        logger.info("browser_started", headless=self._headless)

    async def stop(self) -> None:
        """Close the context, browser and driver, whichever are open."""
        try:
            if self._context:
                await self._context.close()
        finally:
            self._context = None
            try:
                if self._browser:
                    await self._browser.close()
            finally:
                self._browser = None
                if self._playwright:
                    await self._playwright.stop()
                    self._playwright = None
        logger.info("browser_stopped")

    async def fetch_rendered_page(
        self,
        url: str,
        wait_for: Optional[str] = None,
        hover: Optional[str] = None,
    ) -> str:
        """Navigate to ``url`` and return the rendered HTML.

        Args:
            url: Page to load
            wait_for: CSS selector that must appear before the snapshot
            hover: CSS selector to hover first (lazy sections render on hover)

        Raises:
            playwright.async_api.TimeoutError: If navigation or ``wait_for`` times out
        """
        if self._context is None:
            raise RuntimeError("BrowserSession is not started")

        page = await self._context.new_page()
        try:
            page.set_default_navigation_timeout(self._navigation_timeout_ms)
            page.set_default_timeout(self._selector_timeout_ms)
            await page.goto(url, wait_until="domcontentloaded")
            if hover:
                await page.hover(hover)
            if wait_for:
                await page.wait_for_selector(wait_for)
            return await page.content()
        finally:
            await page.close()


# Minimal stealth JS to mask automation signals
STEALTH_JS = """
Object.defineProperty(navigator, 'webdriver', { get: () => undefined });
Object.defineProperty(navigator, 'languages', { get: () => ['en-GB', 'en'] });
Object.defineProperty(navigator, 'plugins', { get: () => [1, 2, 3, 4, 5] });
window.chrome = { runtime: {} };
const originalQuery = window.navigator.permissions.query;
window.navigator.permissions.query = (parameters) =>
  parameters.name === 'notifications'
    ? Promise.resolve({ state: Notification.permission })
    : originalQuery(parameters);
"""


def get_browser_session() -> BrowserSession:
    """Browser factory injected into scraper adapters."""
    return BrowserSession()
