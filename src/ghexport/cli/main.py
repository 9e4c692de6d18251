"""
ghexport CLI - Main entry point.

Exports GitHub repository datasets to Markdown/JSON with incremental
(diff) runs driven by stored export state.
"""

from __future__ import annotations

from pathlib import Path
from typing import Optional

import typer
from dotenv import load_dotenv
from rich.console import Console
from rich.panel import Panel
from rich.traceback import install as install_rich_traceback

from ghexport import __app_name__, __version__

# Load environment variables from .env (if present), e.g. GITHUB_TOKEN
load_dotenv()

install_rich_traceback(show_locals=False, width=120)

console = Console()
err_console = Console(stderr=True)

app = typer.Typer(
    name=__app_name__,
    help="Export GitHub repository data to Markdown/JSON, incrementally",
    rich_markup_mode="rich",
    no_args_is_help=True,
    pretty_exceptions_show_locals=False,
)


def version_callback(value: bool) -> None:
    """Print version and exit."""
    if value:
        console.print(f"[bold cyan]{__app_name__}[/bold cyan] version [green]{__version__}[/green]")
        raise typer.Exit()


@app.callback()
def main(
    version: Optional[bool] = typer.Option(
        None,
        "--version",
        "-v",
        help="Show version and exit",
        callback=version_callback,
        is_eager=True,
    ),
) -> None:
    """ghexport - GitHub repository exporter."""
    pass


# =============================================================================
# Import and register subcommand modules
# =============================================================================

from .commands import export, state  # noqa: E402

app.add_typer(export.app, name="export", help="Run exports")
app.add_typer(state.app, name="state", help="Inspect and reset export state")


# =============================================================================
# Init Command
# =============================================================================


@app.command()
def init(
    path: Path = typer.Option(
        Path("configs/app.yaml"),
        "--config",
        "-c",
        help="Where to write the configuration file",
    ),
    force: bool = typer.Option(
        False,
        "--force",
        "-f",
        help="Overwrite existing configuration",
    ),
) -> None:
    """Create a default configuration file."""
    if path.exists() and not force:
        err_console.print(f"[yellow]Configuration already exists:[/yellow] {path}")
        err_console.print("[dim]Use --force to overwrite[/dim]")
        raise typer.Exit(1)

    _create_default_app_config(path)

    console.print()
    console.print(Panel.fit(
        "[bold green]OK - ghexport initialized[/bold green]\n\n"
        "Created:\n"
        f"  - [cyan]{path}[/cyan] - Application configuration\n\n"
        "Next steps:\n"
        "  1. Put a token in [yellow].env[/yellow] as GITHUB_TOKEN (optional)\n"
        "  2. Export: [yellow]ghexport export run -r owner/name -t contributors[/yellow]\n"
        "  3. Later, only changes: [yellow]ghexport export run -r owner/name -t contributors --diff[/yellow]",
        title="[bold]Initialization Complete[/bold]",
        border_style="green",
    ))


def _create_default_app_config(path: Path) -> None:
    """Write default app.yaml configuration."""
    default_config = """\
# ghexport configuration

# Base directory for exported files
output_path: github-export

# markdown | json | both
default_format: markdown

# Export requests in flight at once
concurrency: 2

github:
  api_url: https://api.github.com
  token: ${GITHUB_TOKEN:-}
  timeout_seconds: 30
  max_retries: 3
  per_page: 100
  max_pages: 50

diff:
  enabled: true
  state_file: ~/.ghexport/state/exports.json

logging:
  level: INFO
  file: logs/ghexport.log
  json_format: true
  rich_console: true
"""
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(default_config, encoding="utf-8")


# =============================================================================
# Validate Command
# =============================================================================


@app.command()
def validate(
    path: Path = typer.Option(
        Path("configs/app.yaml"),
        "--config",
        "-c",
        help="Configuration file to check",
    ),
) -> None:
    """Check a configuration file without running anything."""
    from ghexport.core.config import validate_app_config_file

    errors = validate_app_config_file(path)
    if errors:
        err_console.print(f"[red]Invalid configuration:[/red] {path}")
        for error in errors:
            err_console.print(f"  - {error}")
        raise typer.Exit(1)

    console.print(f"[green]OK[/green] {path} is valid")


# =============================================================================
# Entry Point
# =============================================================================


def run() -> None:
    """Run the CLI application."""
    app()


if __name__ == "__main__":
    run()
