"""Capture driver — renders one URL in a tab and returns the full-page raster."""

from __future__ import annotations

import logging
import math

from playwright.async_api import Error as PlaywrightError
from playwright.async_api import Page
from playwright.async_api import TimeoutError as PlaywrightTimeoutError

from shotdiff.errors import CaptureError
from shotdiff.models.capture import PageSnapshot
from shotdiff.models.config import CaptureConfig

logger = logging.getLogger(__name__)

# Height is whichever of these is largest: absolutely positioned or
# overflowing content only shows up in some of them.
_MEASURE_HEIGHT_SCRIPT = """
() => {
    const body = document.body;
    const root = document.documentElement;
    if (!root) {
        return null;
    }
    const values = [root.scrollHeight, root.offsetHeight, root.clientHeight];
    if (body) {
        values.push(body.scrollHeight, body.offsetHeight, body.clientHeight);
    }
    return Math.max(...values);
}
"""


async def measure_page_height(page: Page) -> float:
    """Return the rendered document height in CSS pixels.

    Raises ``ValueError`` when the page has no usable document element.
    """
    height = await page.evaluate(_MEASURE_HEIGHT_SCRIPT)
    if height is None:
        raise ValueError("page has no document element")
    if isinstance(height, bool) or not isinstance(height, (int, float)):
        raise ValueError(f"unexpected height value: {height!r}")
    if not math.isfinite(height) or height <= 0:
        raise ValueError(f"page reported height {height}")
    return float(height)


async def capture_page(page: Page, url: str, config: CaptureConfig) -> PageSnapshot:
    """Capture the full rendered content of ``url`` in ``page``.

    Runs the steps in order: initial viewport, navigation, height
    measurement, resize, screenshot. Any failure is raised as
    :class:`CaptureError` tagged with the step it happened in.
    """
    width = config.viewport_width

    logger.debug("Navigating to %s (timeout=%dms)", url, config.navigation_timeout_ms)
    try:
        # Step 1: fixed width, minimal height
        await page.set_viewport_size({"width": width, "height": config.initial_viewport_height})
        # Step 2: navigate
        await page.goto(url, wait_until=config.wait_until, timeout=config.navigation_timeout_ms)
        if config.settle_delay_ms > 0:
            await page.wait_for_timeout(config.settle_delay_ms)
    except PlaywrightTimeoutError as e:
        raise CaptureError(url, "navigate", f"timed out after {config.navigation_timeout_ms}ms") from e
    except PlaywrightError as e:
        raise CaptureError(url, "navigate", first_line(e)) from e

    # Step 3: measure
    try:
        measured = await measure_page_height(page)
    except (PlaywrightError, ValueError) as e:
        raise CaptureError(url, "measure", first_line(e)) from e

    height = max(1, math.ceil(measured))
    if height > config.max_page_height:
        logger.warning("Page %s is %dpx tall, capping at %dpx", url, height, config.max_page_height)
        height = config.max_page_height
    logger.debug("Measured %s: %dx%d", url, width, height)

    # Step 4: resize
    try:
        await page.set_viewport_size({"width": width, "height": height})
    except PlaywrightError as e:
        raise CaptureError(url, "capture", f"resize failed: {first_line(e)}") from e

    # Step 5: capture
    screenshot_kwargs: dict = {"type": config.output_format, "full_page": False}
    if config.output_format == "jpeg":
        screenshot_kwargs["quality"] = config.jpeg_quality
    try:
        data = await page.screenshot(**screenshot_kwargs)
    except PlaywrightError as e:
        raise CaptureError(url, "capture", first_line(e)) from e

    if not data:
        raise CaptureError(url, "capture", "browser returned an empty screenshot")

    return PageSnapshot(
        url=url,
        data=data,
        format=config.output_format,
        viewport_width=width,
        viewport_height=height,
    )


def first_line(error: Exception) -> str:
    # Playwright messages carry a multi-line call log after the first line
    text = str(error).strip()
    return text.splitlines()[0] if text else type(error).__name__
