"""Directory reconciler — pairs captures from two runs by filename and compares them."""

from __future__ import annotations

import logging
import time
from concurrent.futures import ThreadPoolExecutor
from pathlib import Path
from typing import Callable, Optional

from shotdiff.errors import DecodeError
from shotdiff.models.comparison import ComparisonResult, PairFailure, ReconcileReport, Verdict
from shotdiff.models.config import CompareConfig, extension_for

from .diff_artifact import render_diff
from .engine import compare, open_image

logger = logging.getLogger(__name__)

PairCallback = Callable[[str], None]


def list_captures(directory: str | Path) -> set[str]:
    """Names of the regular, non-hidden files directly inside ``directory``."""
    directory = Path(directory)
    if not directory.is_dir():
        raise NotADirectoryError(f"Capture directory not found: {directory}")
    return {p.name for p in directory.iterdir() if p.is_file() and not p.name.startswith(".")}


def diff_path_for(filename: str, diff_dir: str | Path, fmt: str = "png") -> Path:
    return Path(diff_dir) / f"{Path(filename).stem}.{extension_for(fmt)}"


class Reconciler:
    """Compares every capture present in both an old and a new directory."""

    def __init__(self, config: CompareConfig | None = None, on_pair: Optional[PairCallback] = None):
        self.config = config or CompareConfig()
        self.on_pair = on_pair

    def reconcile(
        self,
        old_dir: str | Path,
        new_dir: str | Path,
        diff_dir: str | Path | None = None,
    ) -> ReconcileReport:
        old_dir, new_dir = Path(old_dir), Path(new_dir)
        diff_dir = Path(diff_dir or self.config.diff_output_dir)
        start = time.time()

        old_names = list_captures(old_dir)
        new_names = list_captures(new_dir)
        matched = sorted(new_names & old_names)

        report = ReconcileReport(
            old_dir=str(old_dir),
            new_dir=str(new_dir),
            diff_dir=str(diff_dir),
            skipped_old_only=sorted(old_names - new_names),
            skipped_new_only=sorted(new_names - old_names),
        )
        for name in report.skipped_old_only + report.skipped_new_only:
            logger.debug("No counterpart for %s, skipping", name)
        logger.info(
            "Comparing %d matched captures (%d only in old, %d only in new)",
            len(matched), len(report.skipped_old_only), len(report.skipped_new_only),
        )

        def _run(name: str) -> ComparisonResult | PairFailure:
            outcome = self._compare_pair(name, old_dir / name, new_dir / name, diff_dir)
            if self.on_pair:
                self.on_pair(name)
            return outcome

        if self.config.max_parallel_compares > 1:
            with ThreadPoolExecutor(max_workers=self.config.max_parallel_compares) as pool:
                outcomes = list(pool.map(_run, matched))
        else:
            outcomes = [_run(name) for name in matched]

        for outcome in outcomes:
            if isinstance(outcome, PairFailure):
                report.failures.append(outcome)
            else:
                report.results.append(outcome)

        report.duration_seconds = round(time.time() - start, 2)
        logger.info(
            "Compare complete: %d identical, %d content changes, %d size changes, %d failed",
            report.count(Verdict.IDENTICAL),
            report.count(Verdict.CONTENT_MISMATCH),
            report.count(Verdict.SIZE_MISMATCH),
            len(report.failures),
        )
        return report

    def _compare_pair(
        self, name: str, old_path: Path, new_path: Path, diff_dir: Path
    ) -> ComparisonResult | PairFailure:
        try:
            with open_image(old_path) as old_img, open_image(new_path) as new_img:
                result = compare(old_img, new_img, filename=name)
                if result.verdict != Verdict.CONTENT_MISMATCH:
                    return result
                target = diff_path_for(name, diff_dir, self.config.diff_format)
                try:
                    render_diff(
                        old_img,
                        new_img,
                        target,
                        tolerance=self.config.pixel_tolerance,
                        highlight=self.config.highlight_color,
                        fmt=self.config.diff_format,
                    )
                except OSError as e:
                    logger.error("Failed to write diff for %s: %s", name, e)
                    return PairFailure(filename=name, stage="diff", error=str(e))
        except DecodeError as e:
            logger.error("Cannot compare %s: %s", name, e)
            return PairFailure(filename=name, stage="decode", error=e.message)
        except (OSError, SyntaxError) as e:
            logger.error("Cannot compare %s: %s", name, e)
            return PairFailure(filename=name, stage="decode", error=str(e))

        result.diff_path = str(target)
        logger.info("%s changed (score=%.4f), diff written to %s", name, result.score, target)
        return result


def reconcile(
    old_dir: str | Path,
    new_dir: str | Path,
    diff_dir: str | Path | None = None,
    config: CompareConfig | None = None,
) -> ReconcileReport:
    """Compare captures shared by ``old_dir`` and ``new_dir``."""
    return Reconciler(config).reconcile(old_dir, new_dir, diff_dir)
