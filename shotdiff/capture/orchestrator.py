"""Capture orchestrator — captures a URL list into a directory, one tab per URL."""

from __future__ import annotations

import asyncio
import io
import logging
import time
from pathlib import Path
from typing import Callable, Optional

from PIL import Image, UnidentifiedImageError
from playwright.async_api import Error as PlaywrightError

from shotdiff.browser.session import CaptureSession, open_session
from shotdiff.errors import CaptureError, DecodeError
from shotdiff.models.capture import CaptureOutcome, CaptureReport, CaptureTarget, PageSnapshot
from shotdiff.models.config import CaptureConfig
from shotdiff.url_utils import find_collisions

from .driver import capture_page, first_line

logger = logging.getLogger(__name__)

ProgressCallback = Callable[[CaptureOutcome], None]


def validate_snapshot(snapshot: PageSnapshot) -> tuple[int, int]:
    """Decode-check the snapshot bytes and return their pixel size.

    Raises :class:`DecodeError` so corrupt captures are never persisted.
    """
    try:
        with Image.open(io.BytesIO(snapshot.data)) as img:
            img.verify()
        with Image.open(io.BytesIO(snapshot.data)) as img:
            img.load()
            return img.size
    except (UnidentifiedImageError, Image.DecompressionBombError, OSError, SyntaxError, ValueError) as e:
        raise DecodeError(snapshot.url, str(e)) from e


class CaptureOrchestrator:
    """Runs the capture protocol over a list of URLs.

    One browser session is opened per run. Each URL gets its own tab and
    its failure is recorded without affecting the others.
    """

    def __init__(
        self,
        config: CaptureConfig,
        session_factory=open_session,
        on_outcome: Optional[ProgressCallback] = None,
    ):
        self.config = config
        self.session_factory = session_factory
        self.on_outcome = on_outcome

    def capture_all(self, urls: list[str], output_dir: str | Path) -> CaptureReport:
        """Capture every URL into ``output_dir``. Blocks until the run ends."""
        return asyncio.run(self.capture_all_async(urls, output_dir))

    async def capture_all_async(self, urls: list[str], output_dir: str | Path) -> CaptureReport:
        output_dir = Path(output_dir)
        output_dir.mkdir(parents=True, exist_ok=True)

        started_at = time.strftime("%Y-%m-%dT%H:%M:%SZ")
        start = time.time()
        report = CaptureReport(
            started_at=started_at,
            output_dir=str(output_dir),
            output_format=self.config.output_format,
        )

        report.collisions = find_collisions(urls)
        for name, group in report.collisions.items():
            logger.warning(
                "%d URLs map to %s; the last one (%s) wins", len(group), name, group[-1]
            )

        logger.info("Capturing %d URLs into %s", len(urls), output_dir)
        async with self.session_factory(self.config) as session:
            semaphore = asyncio.Semaphore(self.config.max_parallel_tabs)
            # Writes happen in input order so colliding names resolve last-write-wins
            write_turns = [asyncio.Event() for _ in urls]

            async def _run_one(index: int, url: str) -> CaptureOutcome:
                try:
                    async with semaphore:
                        snapshot, outcome = await self._capture_one(session, index, url)
                    if index > 0:
                        await write_turns[index - 1].wait()
                    if snapshot is not None:
                        self._write(snapshot, outcome, output_dir)
                finally:
                    write_turns[index].set()
                if self.on_outcome:
                    self.on_outcome(outcome)
                return outcome

            report.outcomes = list(
                await asyncio.gather(*(_run_one(i, url) for i, url in enumerate(urls)))
            )
            logger.debug("Closing session after %d tabs", session.tabs_opened)

        report.completed_at = time.strftime("%Y-%m-%dT%H:%M:%SZ")
        report.duration_seconds = round(time.time() - start, 2)
        logger.info(
            "Capture complete: %d succeeded, %d failed in %.1fs",
            report.succeeded, report.failed, report.duration_seconds,
        )
        return report

    async def _capture_one(
        self, session: CaptureSession, index: int, url: str
    ) -> tuple[PageSnapshot | None, CaptureOutcome]:
        target = CaptureTarget(url=url)
        outcome = CaptureOutcome(url=url, filename=target.filename(self.config.output_format))
        start = time.time()
        logger.info("Capturing [%d]: %s", index + 1, url)

        snapshot = None
        try:
            async with session.tab() as page:
                snapshot = await capture_page(page, url, self.config)
            outcome.width, outcome.height = validate_snapshot(snapshot)
        except CaptureError as e:
            snapshot = None
            outcome.status = "failed"
            outcome.stage = e.stage
            outcome.error = e.message
            logger.error("Failed to capture %s: %s", url, e)
        except DecodeError as e:
            snapshot = None
            outcome.status = "failed"
            outcome.stage = "decode"
            outcome.error = e.message
            logger.error("Discarding corrupt capture of %s: %s", url, e.message)
        except PlaywrightError as e:
            # Opening or closing the tab itself failed
            snapshot = None
            outcome.status = "failed"
            outcome.stage = "tab"
            outcome.error = first_line(e)
            logger.error("Failed to capture %s: %s", url, outcome.error)

        outcome.duration_seconds = round(time.time() - start, 2)
        return snapshot, outcome

    def _write(self, snapshot: PageSnapshot, outcome: CaptureOutcome, output_dir: Path) -> None:
        path = output_dir / outcome.filename
        try:
            path.write_bytes(snapshot.data)
        except OSError as e:
            outcome.status = "failed"
            outcome.stage = "write"
            outcome.error = str(e)
            logger.error("Failed to write %s: %s", path, e)
            return
        outcome.path = str(path)
        logger.debug("Wrote %s (%dx%d)", path, outcome.width or 0, outcome.height or 0)
