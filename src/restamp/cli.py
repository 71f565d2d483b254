"""Command line interface for restamp."""

from __future__ import annotations

import difflib
from pathlib import Path
from typing import Any, Callable

import click
import yaml
from click.core import ParameterSource
from rich.console import Console
from rich.progress import BarColumn, MofNCompleteColumn, Progress, TaskID, TextColumn
from rich.syntax import Syntax

from restamp.config import ConfigError, ConfigManager, RestampConfig, resolve_with_precedence
from restamp.logging_setup import configure_logging
from restamp.materialize import MaterializeError
from restamp.run import PHASE_SELECTIONS, RestampRun, RunError, RunLayout, RunSummary

console = Console()


def _handle_cli_error(
    message: str,
    *,
    code: str,
    json_output: bool,
    details: Any | None = None,
    original: Exception | None = None,
) -> None:
    """Emit a standardized error and terminate the command.

    Args:
        message: Human-readable error message.
        code: Machine-readable error identifier.
        json_output: Indicates whether JSON mode is active.
        details: Optional structured details to include in the payload.
        original: Original exception for chaining when not using JSON.

    Raises:
        SystemExit: When emitting JSON output.
        click.ClickException: For non-JSON flows.
    """

    if json_output:
        payload: dict[str, Any] = {"error": {"code": code, "message": message}}
        if details is not None:
            payload["error"]["details"] = details
        console.print_json(data=payload)
        raise SystemExit(1)

    if isinstance(original, click.ClickException):
        raise original

    raise click.ClickException(message) from original


def _emit_message(message: Any, *, mode: str, quiet: bool, summary_only: bool) -> None:
    """Print `message` unless quiet or summary-only settings suppress it.

    Args:
        message: Renderable or string to emit.
        mode: Output mode identifier (`detail`, `summary`, `warning`, or `error`).
        quiet: Whether quiet mode is active.
        summary_only: Whether only summary lines should be emitted.
    """

    if quiet and mode != "error":
        return
    if summary_only and mode not in {"summary", "warning", "error"}:
        return
    console.print(message)


def _format_summary_line(command: str, root: Path | str, metrics: dict[str, Any]) -> str:
    """Return a one-line summary for a run section.

    Args:
        command: Section title, such as `Extract` or `File mtime`.
        root: Download directory the run operated on.
        metrics: Ordered mapping of metric names to values.

    Returns:
        str: Rich markup for the summary line.
    """

    parts = ", ".join(f"{key}={value}" for key, value in metrics.items())
    return f"[green]{command} summary for {root}: {parts}.[/green]"


def _summary_sections(summary: RunSummary) -> list[tuple[str, dict[str, Any]]]:
    """Collect the summary sections for the phases a run executed.

    Args:
        summary: Completed run summary.

    Returns:
        list[tuple[str, dict[str, Any]]]: Section titles paired with their metrics.
    """

    sections: list[tuple[str, dict[str, Any]]] = []
    if summary.materialize is not None:
        sections.append(
            (
                "Extract",
                {
                    "archives": len(summary.materialize.found),
                    "extracted": len(summary.materialize.extracted),
                    "skipped": len(summary.materialize.skipped),
                },
            )
        )
    if summary.scan is not None:
        sections.append(("Prescan", dict(summary.scan)))
    if summary.files is not None:
        sections.append(("File mtime", summary.files.model_dump()))
    if summary.folders is not None:
        sections.append(("Folder mtime", summary.folders.model_dump()))
    return sections


class _ProgressReporter:
    """Render per-stage progress bars for a run."""

    def __init__(self, progress: Progress) -> None:
        self._progress = progress
        self._tasks: dict[str, TaskID] = {}

    def __call__(self, stage: str, done: int, total: int) -> None:
        """Advance the bar for `stage`, creating it on first use.

        Args:
            stage: Stage name, such as `mtime-files`.
            done: Items completed so far.
            total: Items in the stage.
        """

        task = self._tasks.get(stage)
        if task is None:
            task = self._progress.add_task(f"[{stage}]", total=total)
            self._tasks[stage] = task
        self._progress.update(task, completed=done)


@click.group(context_settings={"help_option_names": ["-h", "--help"]})
@click.version_option(package_name="restamp")
def cli() -> None:
    """Restamp restores capture timestamps onto exported photos and videos."""


@cli.command()
@click.argument("download_dir", type=click.Path(exists=True, file_okay=False, path_type=Path))
@click.option(
    "--phase",
    type=click.Choice(PHASE_SELECTIONS),
    default="all",
    show_default=True,
    help="Part of the pipeline to run.",
)
@click.option("--reset", is_flag=True, help="Remove extracted data and markers before running.")
@click.option(
    "--photos-root",
    type=str,
    help="Media root folder name under Takeout (default: the configured pair).",
)
@click.option(
    "--workers", type=click.IntRange(min=1), help="Worker pool size for file restoration."
)
@click.option(
    "--log-dir",
    type=click.Path(file_okay=False, path_type=Path),
    help="Override the per-run log directory.",
)
@click.option("-n", "--dry-run", is_flag=True, help="Forwarded to the transfer stage only.")
@click.option("-v", "--verbose", is_flag=True, help="Show live progress and INFO logs.")
@click.option("--json", "json_output", is_flag=True, help="Emit the run summary as JSON.")
@click.option("--summary", "summary_mode", is_flag=True, help="Only emit summary lines.")
@click.option("--quiet", is_flag=True, help="Suppress non-error output.")
@click.pass_context
def run(
    ctx: click.Context,
    download_dir: Path,
    phase: str,
    reset: bool,
    photos_root: str | None,
    workers: int | None,
    log_dir: Path | None,
    dry_run: bool,
    verbose: bool,
    json_output: bool,
    summary_mode: bool,
    quiet: bool,
) -> None:
    """Extract the archives in DOWNLOAD_DIR and restore media timestamps.

    Args:
        ctx: Click context used for parameter source inspection.
        download_dir: Directory containing the export archives.
        phase: Pipeline part to run (extract, prescan, mtime, all).
        reset: Whether to wipe the overlay tree and markers first.
        photos_root: Single media-root folder name override.
        workers: Worker pool size override.
        log_dir: Per-run log directory override.
        dry_run: Recorded for the transfer stage.
        verbose: Show progress bars and INFO-level logs.
        json_output: Emit the summary as JSON.
        summary_mode: Limit output to summary lines and warnings.
        quiet: Suppress non-error output.
    """

    json_enabled = json_output
    try:
        cli_overrides: dict[str, Any] = {}
        if workers is not None:
            cli_overrides["restore.workers"] = workers
        config = ConfigManager().load(cli_overrides=cli_overrides)

        explicit_quiet = ctx.get_parameter_source("quiet") == ParameterSource.COMMANDLINE
        explicit_summary = ctx.get_parameter_source("summary_mode") == ParameterSource.COMMANDLINE
        quiet_enabled = quiet if explicit_quiet else config.cli.quiet_default
        summary_only = summary_mode if explicit_summary else config.cli.summary_default

        if json_output:
            if explicit_quiet and quiet_enabled:
                raise click.ClickException("--json cannot be combined with --quiet.")
            if explicit_summary and summary_only:
                raise click.ClickException("--json cannot be combined with --summary.")
            quiet_enabled = False
            summary_only = False
        if quiet_enabled and summary_only:
            raise click.ClickException(
                "Quiet and summary modes cannot both be enabled. Adjust CLI defaults or flags."
            )

        layout = RunLayout.from_config(config, download_dir, log_dir=log_dir)
        configure_logging(
            config.logging,
            log_file=layout.run_log_path,
            verbose=verbose and not json_output,
        )

        show_progress = verbose and not (json_output or quiet_enabled or summary_only)
        summary = _execute(
            config,
            layout,
            phase=phase,
            reset=reset,
            media_root_override=photos_root,
            dry_run=dry_run,
            show_progress=show_progress,
        )

        if json_output:
            payload = summary.model_dump(mode="json")
            payload["logs"] = {
                "run": str(layout.run_log_path),
                "diagnostics": str(layout.diagnostics_path),
                "summary": str(layout.summary_path),
            }
            console.print_json(data=payload)
            return

        for title, metrics in _summary_sections(summary):
            _emit_message(
                _format_summary_line(title, layout.download_dir, metrics),
                mode="summary",
                quiet=quiet_enabled,
                summary_only=summary_only,
            )
        if summary.diagnostics:
            total = sum(summary.diagnostics.values())
            _emit_message(
                f"[yellow]{total} item(s) need review; see {layout.diagnostics_path}.[/yellow]",
                mode="warning",
                quiet=quiet_enabled,
                summary_only=summary_only,
            )
        for source in summary.sync_sources:
            _emit_message(
                f"  sync source: {source}",
                mode="detail",
                quiet=quiet_enabled,
                summary_only=summary_only,
            )
    except ConfigError as exc:
        _handle_cli_error(str(exc), code="config_error", json_output=json_enabled, original=exc)
    except MaterializeError as exc:
        _handle_cli_error(str(exc), code="extract_error", json_output=json_enabled, original=exc)
    except RunError as exc:
        _handle_cli_error(str(exc), code="run_error", json_output=json_enabled, original=exc)
    except click.ClickException as exc:
        _handle_cli_error(str(exc), code="cli_error", json_output=json_enabled, original=exc)
    except Exception as exc:
        _handle_cli_error(
            f"Unexpected error while restoring timestamps: {exc}",
            code="internal_error",
            json_output=json_enabled,
            details={"exception": type(exc).__name__},
            original=exc,
        )


def _execute(
    config: RestampConfig,
    layout: RunLayout,
    *,
    phase: str,
    reset: bool,
    media_root_override: str | None,
    dry_run: bool,
    show_progress: bool,
) -> RunSummary:
    """Run the pipeline, optionally rendering rich progress bars.

    Args:
        config: Effective configuration.
        layout: Filesystem locations for the run.
        phase: Pipeline part to run.
        reset: Whether to wipe the overlay tree and markers first.
        media_root_override: Single media-root folder name override.
        dry_run: Recorded for the transfer stage.
        show_progress: Whether to display progress bars.

    Returns:
        RunSummary: Summary of the completed run.
    """

    def _build(progress: Callable[[str, int, int], None] | None) -> RestampRun:
        return RestampRun(
            config,
            layout,
            phase=phase,  # type: ignore[arg-type]
            reset=reset,
            media_root_override=media_root_override,
            dry_run=dry_run,
            progress=progress,
        )

    if not show_progress:
        return _build(None).execute()

    columns = (TextColumn("{task.description}"), BarColumn(), MofNCompleteColumn())
    with Progress(*columns, console=console, transient=False) as progress:
        return _build(_ProgressReporter(progress)).execute()


@cli.group()
def config() -> None:
    """Inspect and update restamp configuration."""


@config.command("view")
@click.option("--no-env", is_flag=True, help="Ignore environment overrides when displaying output.")
def config_view(no_env: bool) -> None:
    """Display the effective configuration after applying precedence rules.

    Args:
        no_env: Ignore `RESTAMP__` environment overrides.
    """

    try:
        effective = ConfigManager().load(include_env=not no_env)
    except ConfigError as exc:
        raise click.ClickException(str(exc)) from exc

    yaml_text = yaml.safe_dump(effective.model_dump(mode="python"), sort_keys=False)
    console.print(Syntax(yaml_text, "yaml", word_wrap=True))


@config.command("set")
@click.argument("key")
@click.option("--value", required=True, help="YAML literal assigned to KEY.")
def config_set(key: str, value: str) -> None:
    """Persist a configuration value addressed by a dotted KEY such as `restore.workers`.

    Args:
        key: Dotted configuration path.
        value: YAML literal to assign.

    Raises:
        click.ClickException: If the key is empty or the value is invalid.
    """

    manager = ConfigManager()
    manager.ensure_exists()

    segments = [segment.strip() for segment in key.split(".") if segment.strip()]
    if not segments:
        raise click.ClickException("KEY must be a dotted path such as 'restore.workers'.")
    try:
        parsed_value = yaml.safe_load(value)
    except yaml.YAMLError as exc:
        raise click.ClickException(f"Unable to parse value: {exc}") from exc

    before = manager.read_text().splitlines()
    file_data = manager.load_file_overrides()
    try:
        resolve_with_precedence(
            defaults=RestampConfig(),
            file_overrides=file_data,
            cli_overrides={".".join(segments): parsed_value},
        )
    except ConfigError as exc:
        raise click.ClickException(str(exc)) from exc

    node = file_data
    for segment in segments[:-1]:
        child = node.get(segment)
        if not isinstance(child, dict):
            child = {}
            node[segment] = child
        node = child
    node[segments[-1]] = parsed_value
    manager.save(file_data)

    diff = list(
        difflib.unified_diff(
            before,
            manager.read_text().splitlines(),
            fromfile="config.yaml (before)",
            tofile="config.yaml (after)",
            lineterm="",
        )
    )
    if diff:
        console.print(Syntax("\n".join(diff), "diff", word_wrap=False))
    console.print(f"[green]Updated {'.'.join(segments)}.[/green]")


def main() -> None:
    """Invoke the Click CLI as the console script entry point."""

    cli()


if __name__ == "__main__":
    main()
