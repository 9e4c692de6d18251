"""
Output paths, filename sanitization and atomic file writes.

Every artifact lands at ``<base>/<owner>/<name>/<export_type>/<filename>``.
"""

from __future__ import annotations

import os
import re
import tempfile
from datetime import datetime, timezone
from pathlib import Path

_INVALID_CHARS = re.compile(r'[<>:"/\\|?*\x00-\x1f]')
_WHITESPACE = re.compile(r"\s+")
_DASH_RUNS = re.compile(r"-+")

MAX_FILENAME_LENGTH = 255


def split_repository(repository: str) -> tuple[str, str]:
    """Split ``owner/name`` into its parts.

    Raises:
        ValueError: If the identifier is not exactly ``owner/name``
    """
    parts = [p.strip() for p in repository.strip().split("/")]
    if len(parts) != 2 or not all(parts):
        raise ValueError(f"Repository must be 'owner/name', got: {repository!r}")
    # Each part becomes a directory below the output base once sanitized
    if any(sanitize_filename(p) in ("", ".", "..") for p in parts):
        raise ValueError(f"Repository owner and name must be usable as directory names, got: {repository!r}")
    return parts[0], parts[1]


def sanitize_filename(filename: str) -> str:
    """Replace characters that are unsafe in filenames with dashes."""
    cleaned = _INVALID_CHARS.sub("-", filename)
    cleaned = _WHITESPACE.sub("-", cleaned)
    cleaned = _DASH_RUNS.sub("-", cleaned)
    return cleaned.strip("-")[:MAX_FILENAME_LENGTH]


def generate_filename(prefix: str, identifier: str | int, extension: str) -> str:
    """Build ``<prefix>-<identifier>.<extension>`` with a sanitized stem."""
    stem = sanitize_filename(f"{prefix}-{identifier}")
    return f"{stem}.{extension.lstrip('.')}"


def build_output_path(base_path: Path | str, repository: str, export_type: str) -> Path:
    """Directory that holds all artifacts of one (repository, export type)."""
    owner, name = split_repository(repository)
    return (
        Path(base_path)
        / sanitize_filename(owner)
        / sanitize_filename(name)
        / sanitize_filename(export_type)
    )


def format_timestamp(value: datetime) -> str:
    """ISO-8601 UTC with a trailing Z, second precision."""
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc).strftime("%Y-%m-%dT%H:%M:%SZ")


def since_identifier(since: datetime | None) -> str:
    """Filename identifier for a full or incremental export."""
    if since is None:
        return "full"
    if since.tzinfo is not None:
        since = since.astimezone(timezone.utc)
    return f"since-{since.strftime('%Y%m%dT%H%M%SZ')}"


def write_text_atomic(path: Path | str, content: str) -> Path:
    """Write text so readers never observe a half-written file.

    Content goes to a temporary file next to the target which then
    replaces the target in one rename.
    """
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)

    fd, tmp_name = tempfile.mkstemp(dir=path.parent, prefix=f".{path.name}.", suffix=".tmp")
    try:
        with os.fdopen(fd, "w", encoding="utf-8", newline="\n") as f:
            f.write(content)
            f.flush()
            os.fsync(f.fileno())
        os.replace(tmp_name, path)
    except BaseException:
        if os.path.exists(tmp_name):
            os.unlink(tmp_name)
        raise

    return path
