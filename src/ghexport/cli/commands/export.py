"""
Export commands for running repository exports.
"""

from __future__ import annotations

import asyncio
from datetime import datetime, timezone
from pathlib import Path
from typing import List, Optional

import typer
from rich.console import Console
from rich.progress import Progress, SpinnerColumn, TextColumn, TimeElapsedColumn
from rich.table import Table

from ghexport.core.config import AppConfig, ConfigError, ExportFormat, ExportType, load_app_config
from ghexport.core.exporters import ExporterFactory
from ghexport.core.logging import setup_logging
from ghexport.core.orchestrator import (
    DiffModeOptions,
    ExportRequest,
    OrchestrationResult,
    ProgressEvent,
    ProgressPhase,
    run_export,
)
from ghexport.core.sources import DataSource, GitHubDataSource
from ghexport.core.state import StateError

console = Console()
err_console = Console(stderr=True)

app = typer.Typer(
    help="Run exports",
    no_args_is_help=True,
)

EXIT_PARTIAL_FAILURE = 2


def _load_config(config_path: Optional[Path]) -> AppConfig:
    try:
        return load_app_config(config_path)
    except ConfigError as e:
        err_console.print(f"[red]Error loading config:[/red] {e}")
        if e.details:
            err_console.print(f"[dim]{e.details}[/dim]")
        raise typer.Exit(1)


def _build_data_source(config: AppConfig) -> DataSource:
    return GitHubDataSource.from_config(config.github)


def _build_factory() -> ExporterFactory:
    return ExporterFactory.default()


def parse_since(value: str) -> datetime:
    """Parse a user-supplied date ("2024-01-01", "2 weeks ago") as aware UTC."""
    import dateparser

    parsed = dateparser.parse(
        value,
        settings={
            "TIMEZONE": "UTC",
            "RETURN_AS_TIMEZONE_AWARE": True,
            "TO_TIMEZONE": "UTC",
            "PREFER_DATES_FROM": "past",
        },
    )
    if parsed is None:
        raise typer.BadParameter(f"Cannot understand date: {value!r}", param_hint="--since")
    return parsed.astimezone(timezone.utc)


class ProgressReporter:
    """Progress sink that mirrors orchestrator events onto a Rich progress display."""

    def __init__(self, progress: Progress) -> None:
        self.progress = progress
        self._tasks: dict[ExportRequest, int] = {}

    def add(self, request: ExportRequest) -> None:
        self._tasks[request] = self.progress.add_task(
            f"[dim]{request.label}: queued[/dim]", total=None
        )

    def __call__(self, event: ProgressEvent) -> None:
        task = self._tasks.get(event.request)
        if task is None:
            return

        label = event.request.label
        if event.phase is ProgressPhase.FETCHING:
            description = f"[cyan]{label}: fetching...[/cyan]"
        elif event.phase is ProgressPhase.WRITING:
            description = f"[cyan]{label}: writing...[/cyan]"
        elif event.phase is ProgressPhase.COMPLETE and event.result is not None:
            description = f"[green]{label}: {event.result.item_count} item(s)[/green]"
        else:
            error = event.result.error if event.result else "failed"
            description = f"[red]{label}: {error}[/red]"

        self.progress.update(task, description=description)


@app.command("run")
def run_exports(
    repos: List[str] = typer.Option(
        ...,
        "--repo",
        "-r",
        help="Repository as owner/name (repeatable)",
    ),
    types: List[ExportType] = typer.Option(
        [ExportType.CONTRIBUTORS],
        "--type",
        "-t",
        help="Export type (repeatable)",
        case_sensitive=False,
    ),
    format: Optional[ExportFormat] = typer.Option(
        None,
        "--format",
        "-f",
        help="Output format (default from config)",
        case_sensitive=False,
    ),
    diff: Optional[bool] = typer.Option(
        None,
        "--diff/--no-diff",
        help="Only export changes since the last run (default from config)",
    ),
    since: Optional[str] = typer.Option(
        None,
        "--since",
        "-s",
        help="Explicit cutoff, e.g. 2024-01-01 or '2 weeks ago' (implies --diff)",
    ),
    full: bool = typer.Option(
        False,
        "--full",
        help="Force a full export even if state exists",
    ),
    concurrency: Optional[int] = typer.Option(
        None,
        "--concurrency",
        "-j",
        min=1,
        max=16,
        help="Exports in flight at once (default from config)",
    ),
    output: Optional[Path] = typer.Option(
        None,
        "--output",
        "-o",
        help="Base output directory (default from config)",
    ),
    state_file: Optional[Path] = typer.Option(
        None,
        "--state-file",
        help="State file location (default from config)",
    ),
    config_path: Optional[Path] = typer.Option(
        None,
        "--config",
        "-c",
        help="Path to app.yaml",
    ),
) -> None:
    """Export one or more datasets for one or more repositories.

    Examples:
        ghexport export run -r octocat/hello-world -t contributors
        ghexport export run -r a/b -r c/d -t issues -t prs -f both --diff
        ghexport export run -r a/b -t commits --since "2 weeks ago"
    """
    config = _load_config(config_path)

    updates: dict[str, object] = {}
    if output is not None:
        updates["output_path"] = output
    if state_file is not None:
        updates["diff"] = config.diff.model_copy(update={"state_file": state_file})
    if updates:
        config = config.model_copy(update=updates)

    setup_logging(
        level=config.logging.level,
        log_file=config.logging.file,
        json_format=config.logging.json_format,
        rich_console=config.logging.rich_console,
    )

    try:
        requests = [
            ExportRequest(repository=repo, export_type=export_type, format=format or config.default_format)
            for repo in repos
            for export_type in types
        ]
    except ValueError as e:
        err_console.print(f"[red]{e}[/red]")
        raise typer.Exit(1)

    factory = _build_factory()
    unsupported = sorted({
        f"{r.export_type.value} as {r.format.value}"
        for r in requests
        if not factory.supports(r.export_type, r.format)
    })
    if unsupported:
        err_console.print(f"[red]No exporter for:[/red] {', '.join(unsupported)}")
        raise typer.Exit(1)

    since_date = parse_since(since) if since else None
    options = DiffModeOptions(
        enabled=since_date is not None or (config.diff.enabled if diff is None else diff),
        since=since_date,
        force_full_export=full,
    )

    console.print()
    console.print(f"[bold]Exporting {len(requests)} dataset(s)[/bold]")
    if options.force_full_export:
        console.print("[yellow]Full export forced - stored state ignored[/yellow]")
    elif options.enabled:
        console.print("[cyan]Diff mode - only changes since the last export[/cyan]")
    console.print()

    data_source = _build_data_source(config)

    with Progress(
        SpinnerColumn(),
        TextColumn("[progress.description]{task.description}"),
        TimeElapsedColumn(),
        console=console,
    ) as progress:
        reporter = ProgressReporter(progress)
        for request in requests:
            reporter.add(request)

        try:
            result = asyncio.run(
                _run(requests, options, config, data_source, factory, reporter, concurrency)
            )
        except StateError as e:
            err_console.print(f"[red]Export state problem:[/red] {e}")
            raise typer.Exit(1)

    console.print()
    _show_summary(result, config.output_path)

    if not result.success:
        raise typer.Exit(EXIT_PARTIAL_FAILURE)


async def _run(
    requests: list[ExportRequest],
    options: DiffModeOptions,
    config: AppConfig,
    data_source: DataSource,
    factory: ExporterFactory,
    reporter: ProgressReporter,
    concurrency: Optional[int],
) -> OrchestrationResult:
    async with data_source:
        return await run_export(
            requests,
            options,
            config=config,
            data_source=data_source,
            factory=factory,
            progress=reporter,
            concurrency=concurrency,
        )


def _show_summary(result: OrchestrationResult, output_path: Path) -> None:
    """Display summary table of export results."""
    table = Table(title="Export Summary", show_header=True, header_style="bold magenta")
    table.add_column("Repository", style="cyan")
    table.add_column("Type")
    table.add_column("Mode")
    table.add_column("Items", justify="right")
    table.add_column("Status", justify="center")

    for r in result.results:
        mode = f"since {r.since:%Y-%m-%d %H:%M}" if r.since else "full"
        if r.success:
            status = "[green]OK[/green]"
        elif r.cancelled:
            status = "[yellow]skipped[/yellow]"
        else:
            status = "[red]FAILED[/red]"
        table.add_row(
            r.request.repository,
            r.request.export_type.value,
            mode,
            str(r.item_count) if r.success else "-",
            status,
        )

    table.add_section()
    table.add_row(
        "[bold]Total[/bold]",
        "",
        "",
        str(sum(r.item_count for r in result.results)),
        f"[bold]{result.succeeded}/{result.total_requested}[/bold]",
    )

    console.print(table)

    for r in result.results:
        if r.error and not r.cancelled:
            err_console.print(f"[red]{r.request.label}:[/red] {r.error}")

    files = result.exported_files()
    if files:
        console.print(f"[dim]{len(files)} file(s) written under {output_path}[/dim]")
