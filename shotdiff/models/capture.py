"""Capture data structures produced by the capture pipeline."""

from __future__ import annotations

from typing import Literal, Optional

from pydantic import BaseModel, Field

from shotdiff.models.config import extension_for
from shotdiff.url_utils import sanitize_filename


class CaptureTarget(BaseModel):
    url: str

    @property
    def identifier(self) -> str:
        return sanitize_filename(self.url)

    def filename(self, fmt: str = "png") -> str:
        return f"{self.identifier}.{extension_for(fmt)}"


class PageSnapshot(BaseModel):
    """Encoded screenshot bytes for one URL, as returned by the browser."""

    model_config = {"frozen": True}

    url: str
    data: bytes
    format: Literal["png", "jpeg"] = "png"
    viewport_width: int
    viewport_height: int


class CaptureOutcome(BaseModel):
    url: str
    filename: str
    status: str = "ok"  # ok, failed
    path: Optional[str] = None
    width: Optional[int] = None
    height: Optional[int] = None
    stage: Optional[str] = None  # navigate, measure, capture, decode, write
    error: Optional[str] = None
    duration_seconds: float = 0.0


class CaptureReport(BaseModel):
    started_at: str
    completed_at: str = ""
    output_dir: str
    output_format: str = "png"
    outcomes: list[CaptureOutcome] = Field(default_factory=list)
    # sanitized filename -> URLs that map to it (last one wins on disk)
    collisions: dict[str, list[str]] = Field(default_factory=dict)
    duration_seconds: float = 0.0

    @property
    def succeeded(self) -> int:
        return sum(1 for o in self.outcomes if o.status == "ok")

    @property
    def failed(self) -> int:
        return sum(1 for o in self.outcomes if o.status == "failed")

    @property
    def failures(self) -> list[CaptureOutcome]:
        return [o for o in self.outcomes if o.status == "failed"]
