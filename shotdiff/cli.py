"""CLI entry point for shotdiff."""

from __future__ import annotations

import logging
import sys
from pathlib import Path

import click
from playwright.async_api import Error as PlaywrightError
from pydantic import ValidationError
from rich.console import Console
from rich.logging import RichHandler
from rich.progress import BarColumn, MofNCompleteColumn, Progress, TextColumn, TimeElapsedColumn

from shotdiff.capture.orchestrator import CaptureOrchestrator
from shotdiff.compare.reconciler import Reconciler
from shotdiff.models.config import CaptureConfig, CompareConfig, ShotdiffConfig
from shotdiff.reporter.console_report import print_capture_summary, print_compare_summary
from shotdiff.reporter.json_report import generate_json_report
from shotdiff.url_utils import load_url_list

console = Console()

DEFAULT_CONFIG_PATH = "shotdiff.json"


def setup_logging(verbose: bool = False) -> None:
    level = logging.DEBUG if verbose else logging.INFO
    logging.basicConfig(
        level=level,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=console, rich_tracebacks=True)],
    )


def _load_config(path: str | None) -> ShotdiffConfig:
    if path is None:
        return ShotdiffConfig()
    try:
        return ShotdiffConfig.load(path)
    except FileNotFoundError:
        console.print(f"[red]Config file not found: {path}[/red]")
        console.print("Run 'shotdiff init' to create a default config.")
        sys.exit(1)
    except (ValueError, ValidationError) as e:
        console.print(f"[red]Invalid config file {path}: {e}[/red]")
        sys.exit(1)


def _override(model, **overrides):
    """Re-validate ``model`` with the CLI options that were actually given."""
    updates = {k: v for k, v in overrides.items() if v is not None}
    try:
        return type(model)(**{**model.model_dump(), **updates})
    except ValidationError as e:
        console.print(f"[red]Invalid option: {e}[/red]")
        sys.exit(1)


def _progress() -> Progress:
    return Progress(
        TextColumn("[progress.description]{task.description}"),
        BarColumn(),
        MofNCompleteColumn(),
        TimeElapsedColumn(),
        console=console,
        transient=True,
    )


@click.group()
@click.option("--verbose", "-v", is_flag=True, help="Enable debug logging")
def cli(verbose: bool) -> None:
    """Full-page screenshot capture and visual-regression comparison."""
    setup_logging(verbose)


@cli.command()
@click.argument("input_file", type=click.Path(dir_okay=False))
@click.argument("output_dir", type=click.Path(file_okay=False))
@click.option("--config", "-c", default=None, help="Config file path")
@click.option("--format", "-f", "output_format", type=click.Choice(["png", "jpeg", "jpg"]), default=None,
              help="Screenshot encoding")
@click.option("--width", "-w", type=int, default=None, help="Viewport width in pixels")
@click.option("--timeout", "-t", type=int, default=None, help="Navigation timeout in milliseconds")
@click.option("--parallel", "-p", type=int, default=None, help="Number of tabs captured at once")
@click.option("--report", "-r", type=click.Path(dir_okay=False), default=None, help="Write a JSON report here")
def capture(
    input_file: str,
    output_dir: str,
    config: str | None,
    output_format: str | None,
    width: int | None,
    timeout: int | None,
    parallel: int | None,
    report: str | None,
) -> None:
    """Capture every URL in INPUT_FILE into OUTPUT_DIR."""
    cfg = _load_config(config)
    capture_cfg: CaptureConfig = _override(
        cfg.capture,
        output_format=output_format,
        viewport_width=width,
        navigation_timeout_ms=timeout,
        max_parallel_tabs=parallel,
    )

    try:
        urls = load_url_list(input_file)
    except (OSError, UnicodeDecodeError) as e:
        console.print(f"[red]Cannot read URL list {input_file}: {e}[/red]")
        sys.exit(1)
    if not urls:
        console.print(f"[yellow]No URLs found in {input_file}[/yellow]")
        return

    with _progress() as progress:
        task = progress.add_task("Capturing", total=len(urls))
        orchestrator = CaptureOrchestrator(
            capture_cfg, on_outcome=lambda outcome: progress.advance(task)
        )
        try:
            result = orchestrator.capture_all(urls, output_dir)
        except PlaywrightError as e:
            console.print(f"[red]Could not start the browser: {e}[/red]")
            console.print("Install it with: [blue]playwright install chromium[/blue]")
            sys.exit(1)
        except OSError as e:
            console.print(f"[red]Cannot write to {output_dir}: {e}[/red]")
            sys.exit(1)

    print_capture_summary(console, result)

    if report:
        generate_json_report(result, Path(report))
        console.print(f"  JSON report: [blue]{report}[/blue]")


@cli.command()
@click.argument("new_dir", type=click.Path(file_okay=False))
@click.argument("old_dir", type=click.Path(file_okay=False))
@click.option("--config", "-c", default=None, help="Config file path")
@click.option("--diff-dir", "-d", default=None, help="Directory diff images are written to")
@click.option("--format", "-f", "diff_format", type=click.Choice(["png", "jpeg", "jpg"]), default=None,
              help="Diff image encoding")
@click.option("--tolerance", type=int, default=None, help="Per-channel difference (0-255) marked in diffs")
@click.option("--parallel", "-p", type=int, default=None, help="Number of pairs compared at once")
@click.option("--report", "-r", type=click.Path(dir_okay=False), default=None, help="Write a JSON report here")
@click.option("--fail-on-diff", is_flag=True, help="Exit with status 2 if any page changed")
def compare(
    new_dir: str,
    old_dir: str,
    config: str | None,
    diff_dir: str | None,
    diff_format: str | None,
    tolerance: int | None,
    parallel: int | None,
    report: str | None,
    fail_on_diff: bool,
) -> None:
    """Compare captures in NEW_DIR against OLD_DIR and write diff images."""
    cfg = _load_config(config)
    compare_cfg: CompareConfig = _override(
        cfg.compare,
        diff_output_dir=diff_dir,
        diff_format=diff_format,
        pixel_tolerance=tolerance,
        max_parallel_compares=parallel,
    )

    with _progress() as progress:
        task = progress.add_task("Comparing", total=None)
        reconciler = Reconciler(compare_cfg, on_pair=lambda name: progress.advance(task))
        try:
            result = reconciler.reconcile(old_dir, new_dir)
        except OSError as e:
            console.print(f"[red]{e}[/red]")
            sys.exit(1)

    print_compare_summary(console, result)

    if report:
        generate_json_report(result, Path(report))
        console.print(f"  JSON report: [blue]{report}[/blue]")

    if fail_on_diff and result.changed:
        sys.exit(2)


@cli.command()
@click.option("--path", "-o", default=DEFAULT_CONFIG_PATH, help="Where to write the config file")
def init(path: str) -> None:
    """Create a default configuration file."""
    config_path = Path(path)
    if config_path.exists():
        if not click.confirm(f"{config_path} already exists. Overwrite?"):
            return

    ShotdiffConfig().save(config_path)
    console.print(f"[green]Created {config_path}[/green]")
    console.print("\nUse it with:")
    console.print(f"  [blue]shotdiff capture -c {config_path} urls.txt captures/[/blue]")


if __name__ == "__main__":
    cli()
