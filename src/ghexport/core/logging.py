"""
Logging for export runs.

Console output goes through Rich with a ``[owner/name:type]`` prefix, file
output is one JSON object per line. Orchestrator records carry the request
key and phase as ``extra`` fields so both sinks can show them.
"""

from __future__ import annotations

import logging
import sys
from datetime import datetime, timezone
from pathlib import Path
from typing import TYPE_CHECKING, Any

import orjson

if TYPE_CHECKING:
    from rich.console import Console


ROOT_LOGGER = "ghexport"

# Record attributes copied into JSON lines when present
CONTEXT_FIELDS = ("repository", "export_type", "phase", "since", "count")

LEVEL_STYLES = {
    logging.DEBUG: "dim",
    logging.WARNING: "yellow",
    logging.ERROR: "red",
    logging.CRITICAL: "bold red",
}

PLAIN_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"


class JSONFormatter(logging.Formatter):
    """One JSON object per record, with the export context flattened in."""

    def format(self, record: logging.LogRecord) -> str:
        entry: dict[str, Any] = {
            "timestamp": datetime.now(timezone.utc).isoformat().replace("+00:00", "Z"),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        entry.update(
            (field, getattr(record, field)) for field in CONTEXT_FIELDS if hasattr(record, field)
        )
        if record.exc_info:
            entry["exception"] = self.formatException(record.exc_info)

        return orjson.dumps(entry, default=str).decode("utf-8")


def request_label(record: logging.LogRecord) -> str | None:
    """``owner/name:type`` for records logged on behalf of a request."""
    repository = getattr(record, "repository", None)
    if not repository:
        return None
    export_type = getattr(record, "export_type", None)
    return f"{repository}:{export_type}" if export_type else repository


class RichConsoleHandler(logging.Handler):
    def __init__(self, console: "Console | None" = None, level: int = logging.INFO):
        super().__init__(level)
        if console is None:
            from rich.console import Console
            console = Console(stderr=True)
        self.console = console

    def emit(self, record: logging.LogRecord) -> None:
        try:
            text = self.format(record)
            style = LEVEL_STYLES.get(record.levelno)
            if style:
                text = f"[{style}]{text}[/{style}]"
            label = request_label(record)
            if label:
                text = f"[cyan]\\[{label}][/cyan] {text}"

            self.console.print(text, highlight=False)
            if record.exc_info:
                self.console.print_exception()
        except Exception:
            self.handleError(record)


def setup_logging(
    level: str = "INFO",
    log_file: Path | str | None = None,
    json_format: bool = True,
    rich_console: bool = True,
) -> logging.Logger:
    """Install console and optional file handlers on the ``ghexport`` logger.

    Handlers from a previous call are replaced. The file handler always
    records DEBUG and above; the console follows ``level``.
    """
    numeric_level = getattr(logging, level.upper())
    logger = logging.getLogger(ROOT_LOGGER)
    logger.setLevel(numeric_level)
    logger.handlers.clear()

    if rich_console:
        console_handler: logging.Handler = RichConsoleHandler()
        console_handler.setFormatter(logging.Formatter("%(message)s"))
    else:
        console_handler = logging.StreamHandler(sys.stderr)
        console_handler.setFormatter(logging.Formatter(PLAIN_FORMAT))
    console_handler.setLevel(numeric_level)
    logger.addHandler(console_handler)

    if log_file:
        log_path = Path(log_file)
        log_path.parent.mkdir(parents=True, exist_ok=True)
        file_handler = logging.FileHandler(log_path, encoding="utf-8")
        file_handler.setLevel(logging.DEBUG)
        file_handler.setFormatter(
            JSONFormatter() if json_format else logging.Formatter(PLAIN_FORMAT, datefmt="%Y-%m-%d %H:%M:%S")
        )
        logger.addHandler(file_handler)

    return logger


class ContextualLogger(logging.LoggerAdapter):
    """Adapter that stamps every record with one request's repository and type.

    Per-call ``extra`` (phase, count, since) is merged on top.
    """

    def __init__(
        self,
        logger: logging.Logger,
        repository: str | None = None,
        export_type: str | None = None,
    ):
        context = {"repository": repository, "export_type": export_type}
        super().__init__(logger, {k: v for k, v in context.items() if v})

    def process(self, msg: str, kwargs: dict[str, Any]) -> tuple[str, dict[str, Any]]:
        kwargs["extra"] = {**self.extra, **kwargs.get("extra", {})}
        return msg, kwargs


def get_contextual_logger(
    name: str,
    repository: str | None = None,
    export_type: str | None = None,
) -> ContextualLogger:
    """Child of the ``ghexport`` logger bound to one export request."""
    return ContextualLogger(
        logging.getLogger(f"{ROOT_LOGGER}.{name}"),
        repository=repository,
        export_type=export_type,
    )
