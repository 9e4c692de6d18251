"""
State commands for inspecting and resetting incremental export state.
"""

from __future__ import annotations

from pathlib import Path
from typing import Optional

import typer
from rich.console import Console
from rich.table import Table

from ghexport.core.config import ConfigError, ExportType, load_app_config
from ghexport.core.output import split_repository
from ghexport.core.state import StateError, StateStore

console = Console()
err_console = Console(stderr=True)

app = typer.Typer(
    help="Inspect and reset export state",
    no_args_is_help=True,
)


def _resolve_state_file(state_file: Optional[Path], config_path: Optional[Path]) -> Path:
    if state_file is not None:
        return state_file.expanduser()
    try:
        return load_app_config(config_path).diff.resolved_state_file
    except ConfigError as e:
        err_console.print(f"[red]Error loading config:[/red] {e}")
        raise typer.Exit(1)


def _normalize_repo(repo: str) -> str:
    try:
        owner, name = split_repository(repo)
    except ValueError as e:
        err_console.print(f"[red]{e}[/red]")
        raise typer.Exit(1)
    return f"{owner}/{name}"


def _load(path: Path) -> StateStore:
    try:
        return StateStore.load(path)
    except StateError as e:
        err_console.print(f"[red]Cannot load state:[/red] {e}")
        raise typer.Exit(1)


def _save(store: StateStore, path: Path) -> None:
    try:
        store.save(path)
    except StateError as e:
        err_console.print(f"[red]Cannot save state:[/red] {e}")
        raise typer.Exit(1)


StateFileOption = typer.Option(None, "--state-file", help="State file location (default from config)")
ConfigOption = typer.Option(None, "--config", "-c", help="Path to app.yaml")


@app.command("show")
def show_state(
    repo: Optional[str] = typer.Option(
        None,
        "--repo",
        "-r",
        help="Only show this repository (owner/name)",
    ),
    as_json: bool = typer.Option(
        False,
        "--json",
        help="Print the raw state document",
    ),
    state_file: Optional[Path] = StateFileOption,
    config_path: Optional[Path] = ConfigOption,
) -> None:
    """Show recorded exports."""
    repo = _normalize_repo(repo) if repo else None
    path = _resolve_state_file(state_file, config_path)
    store = _load(path)

    if as_json:
        console.print_json(store.to_json())
        return

    states = store.for_repository(repo) if repo else store.exports
    if not states:
        console.print(f"[dim]No exports recorded in {path}[/dim]")
        return

    table = Table(title="Export State", show_header=True, header_style="bold magenta")
    table.add_column("Repository", style="cyan")
    table.add_column("Type")
    table.add_column("Format")
    table.add_column("Last Export", justify="right")
    table.add_column("Items", justify="right")
    table.add_column("Output")

    for s in states:
        table.add_row(
            s.repository,
            s.type.value,
            s.format.value,
            s.last_export_at.strftime("%Y-%m-%d %H:%M"),
            str(s.last_count),
            s.output_path,
        )

    console.print(table)
    console.print(f"[dim]State file: {path} (version {store.version})[/dim]")


@app.command("delete")
def delete_state(
    repo: str = typer.Argument(..., help="Repository as owner/name"),
    export_type: ExportType = typer.Argument(..., help="Export type", case_sensitive=False),
    state_file: Optional[Path] = StateFileOption,
    config_path: Optional[Path] = ConfigOption,
) -> None:
    """Forget one recorded export so the next run is a full export."""
    repo = _normalize_repo(repo)
    path = _resolve_state_file(state_file, config_path)
    store = _load(path)

    if not store.remove(repo, export_type):
        err_console.print(f"[yellow]No state recorded for {repo} ({export_type.value})[/yellow]")
        raise typer.Exit(1)

    _save(store, path)
    console.print(f"[green]OK[/green] Removed state for {repo} ({export_type.value})")


@app.command("clear")
def clear_state(
    yes: bool = typer.Option(
        False,
        "--yes",
        "-y",
        help="Don't ask for confirmation",
    ),
    state_file: Optional[Path] = StateFileOption,
    config_path: Optional[Path] = ConfigOption,
) -> None:
    """Forget all recorded exports."""
    path = _resolve_state_file(state_file, config_path)
    store = _load(path)

    if not store.exports:
        console.print("[dim]Nothing to clear.[/dim]")
        return

    if not yes:
        typer.confirm(f"Remove {len(store.exports)} recorded export(s)?", abort=True)

    store.clear()
    _save(store, path)
    console.print(f"[green]OK[/green] Cleared export state in {path}")
