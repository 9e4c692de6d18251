"""
Durable export state for incremental runs.

The state file records, per (repository, export type), when the last
successful export happened and what it produced. It is loaded once per
run and written back as a whole, never partially.
"""

from __future__ import annotations

import re
from datetime import datetime, timezone
from pathlib import Path
from typing import Any

import orjson
from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator
from pydantic.alias_generators import to_camel

from ghexport.core.config.models import ExportFormat, ExportType
from ghexport.core.output import split_repository, write_text_atomic

STATE_VERSION = "1.0.0"

_VERSION_PART = re.compile(r"\d+")


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _parse_version(version: str) -> tuple[int, ...]:
    """Numeric prefix of each dotted part; "2.0.0-beta" compares as (2, 0, 0).

    Raises:
        ValueError: If a part has no leading digits
    """
    numbers = []
    for part in version.strip().split("."):
        match = _VERSION_PART.match(part)
        if match is None:
            raise ValueError(f"not a version: {version!r}")
        numbers.append(int(match.group()))
    return tuple(numbers)


# =============================================================================
# Errors
# =============================================================================


class StateError(Exception):
    """Base exception for state file problems. Always fatal for a run."""

    def __init__(self, message: str, path: Path | None = None, cause: Exception | None = None):
        super().__init__(message)
        self.path = path
        self.cause = cause


class StateReadError(StateError):
    """State file exists but could not be read."""
    pass


class CorruptStateError(StateError):
    """State file is not valid JSON or does not match the schema."""
    pass


class VersionMismatchError(StateError):
    """State file was written by a newer format version."""

    def __init__(self, message: str, path: Path | None = None, found: str | None = None):
        super().__init__(message, path)
        self.found = found
        self.supported = STATE_VERSION


class StateWriteError(StateError):
    """State file could not be written."""
    pass


# =============================================================================
# Models
# =============================================================================


class _StateModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class ExportState(_StateModel):
    """Last successful export of one dataset of one repository."""

    repository: str
    type: ExportType
    format: ExportFormat
    output_path: str
    last_export_at: datetime
    last_count: int = Field(ge=0)

    @field_validator("repository")
    @classmethod
    def owner_and_name(cls, v: str) -> str:
        owner, name = split_repository(v)
        return f"{owner}/{name}"

    @field_validator("last_export_at")
    @classmethod
    def aware_utc(cls, v: datetime) -> datetime:
        if v.tzinfo is None:
            return v.replace(tzinfo=timezone.utc)
        return v.astimezone(timezone.utc)

    @property
    def key(self) -> tuple[str, ExportType]:
        return (self.repository, self.type)


class StateStore(_StateModel):
    """All export states plus format metadata.

    Mutated in memory during a run; ``save`` persists the whole document.
    """

    version: str = STATE_VERSION
    exports: list[ExportState] = Field(default_factory=list)
    updated_at: datetime = Field(default_factory=_utcnow)

    @field_validator("exports")
    @classmethod
    def one_record_per_key(cls, v: list[ExportState]) -> list[ExportState]:
        seen: set[tuple[str, ExportType]] = set()
        for state in v:
            if state.key in seen:
                raise ValueError(
                    f"duplicate export state for {state.repository} ({state.type.value})"
                )
            seen.add(state.key)
        return v

    # -------------------------------------------------------------------------
    # Lookup and mutation
    # -------------------------------------------------------------------------

    def get(self, repository: str, export_type: ExportType) -> ExportState | None:
        """Return the state for a key, or None."""
        for state in self.exports:
            if state.repository == repository and state.type == export_type:
                return state
        return None

    def upsert(self, state: ExportState) -> None:
        """Replace the record with the same key, or append a new one."""
        for index, existing in enumerate(self.exports):
            if existing.key == state.key:
                self.exports[index] = state
                break
        else:
            self.exports.append(state)
        self.updated_at = _utcnow()

    def remove(self, repository: str, export_type: ExportType) -> bool:
        """Drop the record for a key. Returns True if one was removed."""
        remaining = [
            s for s in self.exports
            if not (s.repository == repository and s.type == export_type)
        ]
        if len(remaining) == len(self.exports):
            return False
        self.exports = remaining
        self.updated_at = _utcnow()
        return True

    def for_repository(self, repository: str) -> list[ExportState]:
        """All records for one repository, in store order."""
        return [s for s in self.exports if s.repository == repository]

    def clear(self) -> None:
        self.exports = []
        self.updated_at = _utcnow()

    # -------------------------------------------------------------------------
    # Persistence
    # -------------------------------------------------------------------------

    @classmethod
    def load(cls, path: Path | str) -> "StateStore":
        """Load a state file.

        A missing file yields an empty store with the current version.

        Raises:
            StateReadError: File exists but cannot be read
            CorruptStateError: File is not valid JSON or fails validation
            VersionMismatchError: File version is newer than STATE_VERSION
        """
        path = Path(path)
        if not path.exists():
            return cls()

        try:
            raw = path.read_bytes()
        except OSError as e:
            raise StateReadError(f"Cannot read state file {path}: {e}", path=path, cause=e) from e

        try:
            data: Any = orjson.loads(raw)
        except orjson.JSONDecodeError as e:
            raise CorruptStateError(f"State file {path} is not valid JSON", path=path, cause=e) from e

        if not isinstance(data, dict):
            raise CorruptStateError(f"State file {path} must contain a JSON object", path=path)

        version = data.get("version")
        if not isinstance(version, str):
            raise CorruptStateError(f"State file {path} has no version string", path=path)

        try:
            found = _parse_version(version)
        except ValueError as e:
            raise CorruptStateError(
                f"State file {path} has an unreadable version: {version!r}", path=path, cause=e
            ) from e

        if found > _parse_version(STATE_VERSION):
            raise VersionMismatchError(
                f"State file {path} has version {version}, "
                f"this ghexport understands up to {STATE_VERSION}",
                path=path,
                found=version,
            )

        try:
            return cls.model_validate(data)
        except ValidationError as e:
            raise CorruptStateError(
                f"State file {path} does not match the expected schema", path=path, cause=e
            ) from e

    def to_json(self) -> str:
        payload = self.model_dump(mode="json", by_alias=True)
        return orjson.dumps(payload, option=orjson.OPT_INDENT_2).decode("utf-8") + "\n"

    def save(self, path: Path | str) -> Path:
        """Write the whole store, replacing the target file atomically.

        Raises:
            StateWriteError: If the file cannot be written
        """
        path = Path(path)
        try:
            return write_text_atomic(path, self.to_json())
        except OSError as e:
            raise StateWriteError(f"Cannot write state file {path}: {e}", path=path, cause=e) from e
