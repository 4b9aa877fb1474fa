"""Error types shared by the capture and compare pipelines."""

from __future__ import annotations


class ShotdiffError(Exception):
    """Base class for per-item errors that a batch recovers from."""


class CaptureError(ShotdiffError):
    """A single URL could not be captured.

    ``stage`` is one of ``navigate``, ``measure`` or ``capture`` and names the
    step of the capture protocol that failed.
    """

    def __init__(self, url: str, stage: str, message: str):
        self.url = url
        self.stage = stage
        self.message = message
        super().__init__(f"{stage} failed for {url}: {message}")


class DecodeError(ShotdiffError):
    """Bytes or a file on disk are not a well-formed image."""

    def __init__(self, source: str, message: str):
        self.source = source
        self.message = message
        super().__init__(f"could not decode image {source}: {message}")
