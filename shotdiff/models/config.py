"""Configuration models for capture and compare runs."""

from __future__ import annotations

import json
from pathlib import Path
from typing import Literal

from pydantic import BaseModel, Field, field_validator

ImageFormat = Literal["png", "jpeg"]


class CaptureConfig(BaseModel):
    # Viewport
    viewport_width: int = 1200
    initial_viewport_height: int = 1  # minimal, so measurement reflects content
    max_page_height: int = 16384  # Chromium texture limit
    device_scale_factor: float = 1.0

    # Navigation
    navigation_timeout_ms: int = 30000
    wait_until: Literal["load", "domcontentloaded", "networkidle", "commit"] = "load"
    settle_delay_ms: int = 0

    # Output
    output_format: ImageFormat = "png"
    jpeg_quality: int = 90

    # Browser
    headless: bool = True
    user_agent: str | None = None
    max_parallel_tabs: int = 1

    @field_validator("output_format", mode="before")
    @classmethod
    def normalize_format(cls, v: str) -> str:
        if isinstance(v, str) and v.lower() == "jpg":
            return "jpeg"
        return v.lower() if isinstance(v, str) else v

    @field_validator("viewport_width", "initial_viewport_height", "max_page_height", "max_parallel_tabs")
    @classmethod
    def must_be_positive(cls, v: int) -> int:
        if v < 1:
            raise ValueError("must be at least 1")
        return v

    @field_validator("device_scale_factor")
    @classmethod
    def scale_must_be_positive(cls, v: float) -> float:
        if v <= 0:
            raise ValueError("device_scale_factor must be greater than 0")
        return v

    @field_validator("jpeg_quality")
    @classmethod
    def quality_in_range(cls, v: int) -> int:
        if not 0 <= v <= 100:
            raise ValueError("jpeg_quality must be between 0 and 100")
        return v

    @property
    def file_extension(self) -> str:
        return extension_for(self.output_format)


class CompareConfig(BaseModel):
    diff_output_dir: str = "./diffs"
    diff_format: ImageFormat = "png"
    # Per-channel difference (0-255) a pixel must exceed to be marked
    pixel_tolerance: int = 100
    highlight_color: tuple[int, int, int] = (255, 0, 0)
    max_parallel_compares: int = 1

    @field_validator("diff_format", mode="before")
    @classmethod
    def normalize_format(cls, v: str) -> str:
        if isinstance(v, str) and v.lower() == "jpg":
            return "jpeg"
        return v.lower() if isinstance(v, str) else v

    @field_validator("pixel_tolerance")
    @classmethod
    def tolerance_in_range(cls, v: int) -> int:
        if not 0 <= v <= 255:
            raise ValueError("pixel_tolerance must be between 0 and 255")
        return v

    @field_validator("max_parallel_compares")
    @classmethod
    def must_be_positive(cls, v: int) -> int:
        if v < 1:
            raise ValueError("must be at least 1")
        return v


class ShotdiffConfig(BaseModel):
    capture: CaptureConfig = Field(default_factory=CaptureConfig)
    compare: CompareConfig = Field(default_factory=CompareConfig)

    @classmethod
    def load(cls, path: str | Path) -> "ShotdiffConfig":
        """Load config from a JSON file."""
        path = Path(path)
        if not path.exists():
            raise FileNotFoundError(f"Config file not found: {path}")
        with open(path) as f:
            data = json.load(f)
        return cls(**data)

    def save(self, path: str | Path) -> None:
        """Save config to a JSON file."""
        path = Path(path)
        path.parent.mkdir(parents=True, exist_ok=True)
        with open(path, "w") as f:
            json.dump(self.model_dump(), f, indent=2)


def extension_for(fmt: str) -> str:
    return "jpg" if fmt == "jpeg" else "png"
