"""
Diff planning - decide full vs. incremental per export request.

Pure functions of their inputs: no I/O, no clock.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Iterable

from ghexport.core.config.models import ExportFormat, ExportType
from ghexport.core.output import split_repository
from ghexport.core.state.store import StateStore


@dataclass(frozen=True)
class ExportRequest:
    """One (repository, export type, format) the caller wants exported."""

    repository: str
    export_type: ExportType
    format: ExportFormat = ExportFormat.MARKDOWN

    def __post_init__(self) -> None:
        owner, name = split_repository(self.repository)
        object.__setattr__(self, "repository", f"{owner}/{name}")
        object.__setattr__(self, "export_type", ExportType(self.export_type))
        object.__setattr__(self, "format", ExportFormat(self.format))

    @property
    def label(self) -> str:
        return f"{self.repository}:{self.export_type.value}"


@dataclass(frozen=True)
class DiffModeOptions:
    """Per-run incremental export switches.

    ``force_full_export`` beats everything; an explicit ``since`` beats
    stored state.
    """

    enabled: bool = False
    since: datetime | None = None
    force_full_export: bool = False

    def __post_init__(self) -> None:
        if self.since is not None and self.since.tzinfo is None:
            object.__setattr__(self, "since", self.since.replace(tzinfo=timezone.utc))


@dataclass(frozen=True)
class PlannedRequest:
    """An export request with its resolved lower bound."""

    request: ExportRequest
    index: int
    since: datetime | None = field(default=None)

    @property
    def is_incremental(self) -> bool:
        return self.since is not None


def resolve_since(
    request: ExportRequest,
    store: StateStore,
    options: DiffModeOptions,
) -> datetime | None:
    """Lower bound for one request, or None for a full export."""
    if not options.enabled or options.force_full_export:
        return None

    if options.since is not None:
        return options.since

    previous = store.get(request.repository, request.export_type)
    if previous is None:
        return None
    return previous.last_export_at


def plan_requests(
    requests: Iterable[ExportRequest],
    store: StateStore,
    options: DiffModeOptions,
) -> list[PlannedRequest]:
    """Annotate each request with its lower bound, preserving order."""
    return [
        PlannedRequest(request=request, index=index, since=resolve_since(request, store, options))
        for index, request in enumerate(requests)
    ]
