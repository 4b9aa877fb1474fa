"""JSON report output."""

from __future__ import annotations

import json
from pathlib import Path

from shotdiff.models.capture import CaptureReport
from shotdiff.models.comparison import ReconcileReport


def generate_json_report(report: CaptureReport | ReconcileReport, output_path: Path) -> None:
    """Write a machine-readable JSON report."""
    data = report.model_dump(mode="json")
    if isinstance(report, CaptureReport):
        data["succeeded"] = report.succeeded
        data["failed"] = report.failed
    else:
        data["changed"] = [r.filename for r in report.changed]

    output_path.parent.mkdir(parents=True, exist_ok=True)
    with open(output_path, "w") as f:
        json.dump(data, f, indent=2, default=str)
