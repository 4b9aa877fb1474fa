"""Comparison result data structures produced by the compare pipeline."""

from __future__ import annotations

from enum import Enum
from typing import Optional

from pydantic import BaseModel, Field

# Score assigned to pages whose dimensions differ
MAX_DISSIMILARITY = 1.0


class Verdict(str, Enum):
    IDENTICAL = "identical"
    SIZE_MISMATCH = "size_mismatch"
    CONTENT_MISMATCH = "content_mismatch"


class ComparisonResult(BaseModel):
    filename: str
    score: float = Field(ge=0.0)
    verdict: Verdict
    old_size: Optional[tuple[int, int]] = None
    new_size: Optional[tuple[int, int]] = None
    diff_path: Optional[str] = None

    @property
    def changed(self) -> bool:
        return self.verdict != Verdict.IDENTICAL


class PairFailure(BaseModel):
    filename: str
    stage: str  # decode, diff
    error: str


class ReconcileReport(BaseModel):
    old_dir: str
    new_dir: str
    diff_dir: str
    results: list[ComparisonResult] = Field(default_factory=list)
    failures: list[PairFailure] = Field(default_factory=list)
    skipped_old_only: list[str] = Field(default_factory=list)
    skipped_new_only: list[str] = Field(default_factory=list)
    duration_seconds: float = 0.0

    def count(self, verdict: Verdict) -> int:
        return sum(1 for r in self.results if r.verdict == verdict)

    @property
    def changed(self) -> list[ComparisonResult]:
        return [r for r in self.results if r.changed]
