"""Pytest configuration and shared fixtures."""

import io
from contextlib import asynccontextmanager
from pathlib import Path
from unittest.mock import AsyncMock

import pytest
from PIL import Image

from shotdiff.browser.session import CaptureSession
from shotdiff.models.config import CaptureConfig, CompareConfig, ShotdiffConfig


# ============================================================================
# Configuration Fixtures
# ============================================================================


@pytest.fixture
def capture_config() -> CaptureConfig:
    """Create a test capture configuration."""
    return CaptureConfig(
        viewport_width=320,
        initial_viewport_height=1,
        navigation_timeout_ms=5000,
        output_format="png",
    )


@pytest.fixture
def compare_config(tmp_path: Path) -> CompareConfig:
    """Create a test compare configuration writing diffs under tmp_path."""
    return CompareConfig(diff_output_dir=str(tmp_path / "diffs"))


@pytest.fixture
def shotdiff_config(capture_config: CaptureConfig, compare_config: CompareConfig) -> ShotdiffConfig:
    return ShotdiffConfig(capture=capture_config, compare=compare_config)


# ============================================================================
# Image Fixtures
# ============================================================================


def encode_image(width: int, height: int, color=(255, 255, 255), fmt: str = "PNG") -> bytes:
    """Encode a solid-colour image."""
    buf = io.BytesIO()
    Image.new("RGB", (width, height), color).save(buf, format=fmt)
    return buf.getvalue()


def write_image(path: Path, width: int = 40, height: int = 30, color=(255, 255, 255), pixels=None) -> Path:
    """Write a solid PNG to ``path``, optionally overriding single pixels."""
    img = Image.new("RGB", (width, height), color)
    for xy, value in (pixels or {}).items():
        img.putpixel(xy, value)
    path.parent.mkdir(parents=True, exist_ok=True)
    img.save(path, format="PNG")
    return path


@pytest.fixture
def image_bytes():
    """Fixture that provides the encode_image helper."""
    return encode_image


@pytest.fixture
def image_file():
    """Fixture that provides the write_image helper."""
    return write_image


# ============================================================================
# Browser Fixtures
# ============================================================================


def build_mock_page(
    height=900,
    failures: dict | None = None,
    screenshot_data: bytes | None = None,
    screenshot_error: Exception | None = None,
    evaluate_error: Exception | None = None,
) -> AsyncMock:
    """Create a mock Playwright page that renders a blank page of ``height``.

    ``failures`` maps URLs to the exception ``goto`` raises for them.
    Screenshots are real PNGs sized to the last viewport that was set.
    """
    failures = failures or {}
    viewport: dict = {}
    page = AsyncMock()

    def set_viewport_size(size):
        viewport.update(size)

    def goto(url, **kwargs):
        if url in failures:
            raise failures[url]
        page.url = url

    def screenshot(**kwargs):
        if screenshot_error is not None:
            raise screenshot_error
        if screenshot_data is not None:
            return screenshot_data
        fmt = "JPEG" if kwargs.get("type") == "jpeg" else "PNG"
        return encode_image(viewport["width"], viewport["height"], fmt=fmt)

    page.set_viewport_size = AsyncMock(side_effect=set_viewport_size)
    page.goto = AsyncMock(side_effect=goto)
    if evaluate_error is not None:
        page.evaluate = AsyncMock(side_effect=evaluate_error)
    else:
        page.evaluate = AsyncMock(return_value=height)
    page.screenshot = AsyncMock(side_effect=screenshot)
    page.wait_for_timeout = AsyncMock()
    page.close = AsyncMock()
    page.viewport = viewport
    return page


@pytest.fixture
def make_page():
    """Fixture that provides the build_mock_page helper."""
    return build_mock_page


@pytest.fixture
def fake_session_factory():
    """Build a session factory whose tabs are mock pages.

    Keyword arguments are forwarded to ``build_mock_page`` for every tab.
    The returned factory exposes ``pages`` (tabs handed out, in order).
    """
    def _build(**page_kwargs):
        pages = []
        context = AsyncMock()

        def new_page():
            page = build_mock_page(**page_kwargs)
            pages.append(page)
            return page

        context.new_page = AsyncMock(side_effect=new_page)

        @asynccontextmanager
        async def factory(config):
            yield CaptureSession(context)

        factory.pages = pages
        factory.context = context
        return factory

    return _build
