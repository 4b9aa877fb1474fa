"""Capture session — one Chromium browser per run, one tab per URL."""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import AsyncIterator, Optional

from playwright.async_api import Browser, BrowserContext, Page, Playwright, async_playwright

from shotdiff.models.config import CaptureConfig

logger = logging.getLogger(__name__)

DEFAULT_USER_AGENT = (
    "Mozilla/5.0 (Macintosh; Intel Mac OS X 10_15_7) "
    "AppleWebKit/537.36 (KHTML, like Gecko) "
    "Chrome/122.0.0.0 Safari/537.36"
)

# Sites that gate headless browsers otherwise render a challenge page
# instead of the content we want to compare.
_INIT_SCRIPT = """
Object.defineProperty(navigator, 'webdriver', { get: () => false });
Object.defineProperty(navigator, 'languages', {
    get: () => ['en-US', 'en'],
});
if (!window.chrome) {
    window.chrome = {};
}
if (!window.chrome.runtime) {
    window.chrome.runtime = {};
}
"""


async def launch_browser(playwright: Playwright, headless: bool = True) -> Browser:
    """Launch Chromium with automation banners and signals turned down."""
    return await playwright.chromium.launch(
        headless=headless,
        args=[
            "--disable-blink-features=AutomationControlled",
            "--hide-scrollbars",
        ],
    )


async def create_capture_context(
    browser: Browser,
    config: CaptureConfig,
    user_agent: Optional[str] = None,
) -> BrowserContext:
    """Create the browser context every capture tab is opened in.

    The viewport here is only the starting point: the capture driver resizes
    each tab itself once the page height is known.
    """
    context = await browser.new_context(
        viewport={"width": config.viewport_width, "height": config.initial_viewport_height},
        device_scale_factor=config.device_scale_factor,
        user_agent=user_agent or DEFAULT_USER_AGENT,
        locale="en-US",
        timezone_id="America/New_York",
        extra_http_headers={"Accept-Language": "en-US,en;q=0.9"},
    )
    await context.add_init_script(_INIT_SCRIPT)
    return context


class CaptureSession:
    """Owns the live browser connection for the duration of one run.

    Sessions are not reused across runs. Tabs are short-lived: callers take
    one per URL with :meth:`tab` and it is closed when the block exits.
    """

    def __init__(self, context: BrowserContext):
        self.context = context
        self.tabs_opened = 0

    async def new_tab(self) -> Page:
        page = await self.context.new_page()
        self.tabs_opened += 1
        return page

    @asynccontextmanager
    async def tab(self) -> AsyncIterator[Page]:
        page = await self.new_tab()
        try:
            yield page
        finally:
            try:
                await page.close()
            except Exception as e:
                logger.debug("Closing tab failed: %s", e)


@asynccontextmanager
async def open_session(config: CaptureConfig) -> AsyncIterator[CaptureSession]:
    """Start Playwright, launch the browser and yield a :class:`CaptureSession`.

    Launch failures propagate: without a browser no capture can run.
    """
    async with async_playwright() as p:
        logger.debug("Launching Chromium (headless=%s)...", config.headless)
        browser = await launch_browser(p, headless=config.headless)
        try:
            context = await create_capture_context(browser, config, user_agent=config.user_agent)
            yield CaptureSession(context)
            await context.close()
        finally:
            await browser.close()
