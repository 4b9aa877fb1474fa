"""Integration tests for shotdiff.

These run the capture and compare pipelines end to end. The browser is
mocked; image decoding, comparison and diff rendering are real.
"""

from pathlib import Path

import pytest
from PIL import Image
from playwright.async_api import Error as PlaywrightError

from shotdiff.capture.orchestrator import CaptureOrchestrator
from shotdiff.compare.reconciler import reconcile
from shotdiff.models.comparison import Verdict
from shotdiff.url_utils import load_url_list


@pytest.mark.integration
class TestCaptureFlow:

    def test_partial_success_leaves_output(self, tmp_path: Path, capture_config, fake_session_factory):
        url_file = tmp_path / "urls.txt"
        url_file.write_text("https://example.com\nhttps://no-such-host.invalid\n")
        out = tmp_path / "captures"
        factory = fake_session_factory(
            height=700,
            failures={"https://no-such-host.invalid": PlaywrightError("net::ERR_NAME_NOT_RESOLVED")},
        )

        report = CaptureOrchestrator(capture_config, session_factory=factory).capture_all(
            load_url_list(url_file), out
        )

        files = list(out.iterdir())
        assert [p.name for p in files] == ["https_example_com.png"]
        assert report.succeeded == 1
        assert report.failed == 1
        assert report.failures[0].url == "https://no-such-host.invalid"
        with Image.open(files[0]) as img:
            assert img.width == capture_config.viewport_width


@pytest.mark.integration
class TestCaptureThenCompare:

    def _capture(self, config, factory, urls, out):
        return CaptureOrchestrator(config, session_factory=factory).capture_all(urls, out)

    def test_identical_runs_produce_no_diffs(self, tmp_path: Path, capture_config, fake_session_factory):
        urls = ["https://example.com", "https://example.com/about"]
        self._capture(capture_config, fake_session_factory(height=400), urls, tmp_path / "old")
        self._capture(capture_config, fake_session_factory(height=400), urls, tmp_path / "new")

        report = reconcile(tmp_path / "old", tmp_path / "new", tmp_path / "diffs")

        assert len(report.results) == 2
        assert all(r.verdict == Verdict.IDENTICAL for r in report.results)
        assert not (tmp_path / "diffs").exists()

    def test_page_grew_is_size_mismatch(self, tmp_path: Path, capture_config, fake_session_factory):
        urls = ["https://example.com"]
        self._capture(capture_config, fake_session_factory(height=400), urls, tmp_path / "old")
        self._capture(capture_config, fake_session_factory(height=450), urls, tmp_path / "new")

        report = reconcile(tmp_path / "old", tmp_path / "new", tmp_path / "diffs")

        assert report.results[0].verdict == Verdict.SIZE_MISMATCH

    def test_failed_url_in_one_run_is_skipped(self, tmp_path: Path, capture_config, fake_session_factory):
        urls = ["https://example.com", "https://flaky.example.com"]
        self._capture(capture_config, fake_session_factory(), urls, tmp_path / "old")
        self._capture(
            capture_config,
            fake_session_factory(failures={"https://flaky.example.com": PlaywrightError("reset")}),
            urls,
            tmp_path / "new",
        )

        report = reconcile(tmp_path / "old", tmp_path / "new", tmp_path / "diffs")

        assert [r.filename for r in report.results] == ["https_example_com.png"]
        assert report.skipped_old_only == ["https_flaky_example_com.png"]
        assert report.failures == []


@pytest.mark.integration
class TestCompareFlow:

    def test_one_changed_pixel_gives_one_diff(self, tmp_path: Path, image_file):
        old_dir, new_dir, diff_dir = tmp_path / "old", tmp_path / "new", tmp_path / "diffs"
        image_file(old_dir / "https_example_com.png", width=200, height=150)
        image_file(new_dir / "https_example_com.png", width=200, height=150)

        first = reconcile(old_dir, new_dir, diff_dir)
        assert first.results[0].verdict == Verdict.IDENTICAL
        assert not diff_dir.exists()

        image_file(new_dir / "https_example_com.png", width=200, height=150, pixels={(100, 75): (0, 0, 0)})
        second = reconcile(old_dir, new_dir, diff_dir)

        assert second.results[0].verdict == Verdict.CONTENT_MISMATCH
        assert [p.name for p in diff_dir.iterdir()] == ["https_example_com.png"]
        with Image.open(diff_dir / "https_example_com.png") as img:
            assert img.size == (200, 150)
