"""Console summaries of capture and compare runs."""

from __future__ import annotations

from rich.console import Console
from rich.table import Table

from shotdiff.models.capture import CaptureReport
from shotdiff.models.comparison import ReconcileReport, Verdict

_VERDICT_STYLE = {
    Verdict.IDENTICAL: "green",
    Verdict.CONTENT_MISMATCH: "red",
    Verdict.SIZE_MISMATCH: "yellow",
}


def print_capture_summary(console: Console, report: CaptureReport) -> None:
    table = Table(title="Capture Summary")
    table.add_column("Metric", style="bold")
    table.add_column("Value")
    table.add_row("Output", report.output_dir)
    table.add_row("Duration", f"{report.duration_seconds}s")
    table.add_row("URLs", str(len(report.outcomes)))
    table.add_row("Captured", f"[green]{report.succeeded}[/green]")
    table.add_row("Failed", f"[red]{report.failed}[/red]")
    if report.collisions:
        table.add_row("Name collisions", f"[yellow]{len(report.collisions)}[/yellow]")
    console.print(table)

    if report.failures:
        failures = Table(title="Failed URLs")
        failures.add_column("URL")
        failures.add_column("Stage")
        failures.add_column("Error")
        for outcome in report.failures:
            failures.add_row(outcome.url, outcome.stage or "", outcome.error or "")
        console.print(failures)


def print_compare_summary(console: Console, report: ReconcileReport) -> None:
    table = Table(title="Compare Summary")
    table.add_column("Metric", style="bold")
    table.add_column("Value")
    table.add_row("Old", report.old_dir)
    table.add_row("New", report.new_dir)
    table.add_row("Compared", str(len(report.results)))
    table.add_row("Identical", f"[green]{report.count(Verdict.IDENTICAL)}[/green]")
    table.add_row("Content changed", f"[red]{report.count(Verdict.CONTENT_MISMATCH)}[/red]")
    table.add_row("Size changed", f"[yellow]{report.count(Verdict.SIZE_MISMATCH)}[/yellow]")
    table.add_row("Failed", f"[red]{len(report.failures)}[/red]")
    table.add_row("Only in old", str(len(report.skipped_old_only)))
    table.add_row("Only in new", str(len(report.skipped_new_only)))
    console.print(table)

    if report.changed:
        changes = Table(title="Changed Pages")
        changes.add_column("File")
        changes.add_column("Verdict")
        changes.add_column("Score", justify="right")
        changes.add_column("Diff")
        for result in report.changed:
            style = _VERDICT_STYLE[result.verdict]
            changes.add_row(
                result.filename,
                f"[{style}]{result.verdict.value}[/{style}]",
                f"{result.score:.4f}",
                result.diff_path or "",
            )
        console.print(changes)

    for failure in report.failures:
        console.print(f"[red]Failed to compare {failure.filename} ({failure.stage}): {failure.error}[/red]")
