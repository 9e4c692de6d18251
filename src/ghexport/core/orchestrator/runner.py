"""
Export orchestrator.

Coordinates the full export workflow: load state → plan → fetch → export →
record state → save state.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from pathlib import Path
from typing import Any, Callable, Iterable

from ghexport.core.config.models import AppConfig
from ghexport.core.exporters import ExportArtifact, ExportDestination, ExporterFactory
from ghexport.core.logging import get_contextual_logger
from ghexport.core.output import build_output_path, format_timestamp
from ghexport.core.sources.base import DataSource
from ghexport.core.state.store import ExportState, StateStore

from .planner import DiffModeOptions, ExportRequest, PlannedRequest, plan_requests

logger = logging.getLogger(__name__)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class ProgressPhase(str, Enum):
    """Phases reported for each request, in this order."""

    FETCHING = "fetching"
    WRITING = "writing"
    COMPLETE = "export-complete"
    ERROR = "export-error"


@dataclass
class ExportOperationResult:
    """Outcome of one (repository, export type) request."""

    request: ExportRequest
    success: bool = False
    item_count: int = 0
    output_paths: list[Path] = field(default_factory=list)
    error: str | None = None
    since: datetime | None = None
    cancelled: bool = False

    started_at: datetime | None = None
    finished_at: datetime | None = None

    @property
    def duration_seconds(self) -> float | None:
        """Get request duration in seconds."""
        if self.started_at and self.finished_at:
            return (self.finished_at - self.started_at).total_seconds()
        return None

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary."""
        return {
            "repository": self.request.repository,
            "export_type": self.request.export_type.value,
            "format": self.request.format.value,
            "success": self.success,
            "item_count": self.item_count,
            "output_paths": [str(p) for p in self.output_paths],
            "error": self.error,
            "since": self.since.isoformat() if self.since else None,
            "cancelled": self.cancelled,
            "duration_seconds": self.duration_seconds,
        }


@dataclass(frozen=True)
class ProgressEvent:
    """Progress notification for one request."""

    request: ExportRequest
    phase: ProgressPhase
    result: ExportOperationResult | None = None


ProgressSink = Callable[[ProgressEvent], None]


@dataclass
class OrchestrationResult:
    """Aggregate over every request of a run, in request order."""

    results: list[ExportOperationResult]
    state: StateStore

    @property
    def total_requested(self) -> int:
        return len(self.results)

    @property
    def succeeded(self) -> int:
        return sum(1 for r in self.results if r.success)

    @property
    def failed(self) -> int:
        return sum(1 for r in self.results if not r.success and not r.cancelled)

    @property
    def cancelled(self) -> int:
        return sum(1 for r in self.results if r.cancelled)

    @property
    def success(self) -> bool:
        """True when every request succeeded."""
        return self.succeeded == self.total_requested

    def exported_files(self) -> list[Path]:
        """Paths of all artifacts written by successful requests."""
        return [path for r in self.results if r.success for path in r.output_paths]

    def summary_message(self) -> str:
        """Human-readable one-line summary."""
        if self.total_requested == 0:
            return "Nothing to export"

        if self.success:
            items = sum(r.item_count for r in self.results)
            return f"Exported {self.succeeded} dataset(s), {items} item(s) in total"

        parts = [f"{self.succeeded}/{self.total_requested} export(s) succeeded"]
        if self.failed:
            errors = ", ".join(
                f"{r.request.label}: {r.error}"
                for r in self.results
                if not r.success and not r.cancelled
            )
            parts.append(f"failed: {errors}")
        if self.cancelled:
            parts.append(f"{self.cancelled} cancelled")
        return "; ".join(parts)

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary."""
        return {
            "total_requested": self.total_requested,
            "succeeded": self.succeeded,
            "failed": self.failed,
            "cancelled": self.cancelled,
            "results": [r.to_dict() for r in self.results],
        }


class ExportOrchestrator:
    """Runs a batch of export requests against a data source.

    Coordinates:
    - State loading and a single end-of-run save
    - Diff planning
    - Bounded concurrent execution with per-request failure isolation
    - Exporter resolution and artifact writing
    - Progress events
    """

    def __init__(
        self,
        data_source: DataSource,
        state_path: Path | str,
        *,
        output_path: Path | str = Path("github-export"),
        factory: ExporterFactory | None = None,
        concurrency: int = 2,
        progress: ProgressSink | None = None,
        clock: Callable[[], datetime] | None = None,
    ) -> None:
        """Initialize the orchestrator.

        Args:
            data_source: Where records come from
            state_path: State file to load from and save to
            output_path: Base directory for artifacts
            factory: Exporter registry (default: Markdown + JSON)
            concurrency: Maximum requests in flight at once
            progress: Receives a ProgressEvent at each phase boundary
            clock: Returns the current aware datetime (for tests)
        """
        if concurrency < 1:
            raise ValueError("concurrency must be at least 1")

        self.data_source = data_source
        self.state_path = Path(state_path)
        self.output_path = Path(output_path)
        self.factory = factory or ExporterFactory.default()
        self.concurrency = concurrency
        self.progress = progress
        self._clock = clock or _utcnow

    async def run(
        self,
        requests: Iterable[ExportRequest],
        options: DiffModeOptions | None = None,
        *,
        store: StateStore | None = None,
        cancel_event: asyncio.Event | None = None,
    ) -> OrchestrationResult:
        """Execute all requests and persist the resulting state.

        Args:
            requests: Requests to export
            options: Diff mode switches (default: full export)
            store: Already loaded state (skips loading from state_path)
            cancel_event: When set, requests not yet started are skipped

        Returns:
            OrchestrationResult with one result per request, in request order

        Raises:
            StateError: If the state file cannot be loaded or saved
        """
        options = options or DiffModeOptions()

        if store is None:
            store = StateStore.load(self.state_path)

        planned = plan_requests(requests, store, options)
        incremental = sum(1 for p in planned if p.is_incremental)
        logger.info(
            "Planned %d export(s): %d incremental, %d full (concurrency=%d)",
            len(planned),
            incremental,
            len(planned) - incremental,
            self.concurrency,
        )

        semaphore = asyncio.Semaphore(self.concurrency)
        state_lock = asyncio.Lock()

        # gather returns results in submission order, whatever the completion order
        results = await asyncio.gather(*(
            self._execute(p, store, semaphore, state_lock, cancel_event)
            for p in planned
        ))

        store.save(self.state_path)
        logger.debug("Saved export state to %s", self.state_path)

        outcome = OrchestrationResult(results=list(results), state=store.model_copy(deep=True))
        logger.info(outcome.summary_message())
        return outcome

    async def _execute(
        self,
        planned: PlannedRequest,
        store: StateStore,
        semaphore: asyncio.Semaphore,
        state_lock: asyncio.Lock,
        cancel_event: asyncio.Event | None,
    ) -> ExportOperationResult:
        """Run one request. Never raises for request-level failures."""
        request = planned.request
        log = get_contextual_logger(
            "orchestrator",
            repository=request.repository,
            export_type=request.export_type.value,
        )

        async with semaphore:
            if cancel_event is not None and cancel_event.is_set():
                log.info("Skipped: run cancelled")
                return ExportOperationResult(
                    request=request,
                    since=planned.since,
                    cancelled=True,
                    error="cancelled before start",
                )

            result = ExportOperationResult(
                request=request,
                since=planned.since,
                started_at=self._clock(),
            )
            directory = build_output_path(
                self.output_path, request.repository, request.export_type.value
            )

            try:
                self._emit(ProgressEvent(request, ProgressPhase.FETCHING))
                exporters = [
                    self.factory.resolve(request.export_type, fmt)
                    for fmt in request.format.expand()
                ]
                records = await self.data_source.fetch(
                    request.repository, request.export_type, planned.since
                )

                self._emit(ProgressEvent(request, ProgressPhase.WRITING))
                destination = ExportDestination(
                    directory=directory,
                    repository=request.repository,
                    export_type=request.export_type,
                    since=planned.since,
                )
                artifacts: list[ExportArtifact] = [
                    exporter.export(records, destination) for exporter in exporters
                ]
            except Exception as e:
                result.error = str(e) or type(e).__name__
                result.finished_at = self._clock()
                log.warning(
                    "Export failed: %s",
                    result.error,
                    exc_info=log.isEnabledFor(logging.DEBUG),
                    extra={"phase": ProgressPhase.ERROR.value},
                )
                self._emit(ProgressEvent(request, ProgressPhase.ERROR, result))
                return result

            result.success = True
            result.item_count = len(records)
            result.output_paths = [a.path for a in artifacts]
            result.finished_at = self._clock()

            # Start time, not finish time: the next window overlaps this fetch
            new_state = ExportState(
                repository=request.repository,
                type=request.export_type,
                format=request.format,
                output_path=str(directory),
                last_export_at=result.started_at,
                last_count=result.item_count,
            )
            async with state_lock:
                store.upsert(new_state)

            log.info(
                "Exported %d item(s)%s",
                result.item_count,
                " (incremental)" if planned.is_incremental else "",
                extra={
                    "phase": ProgressPhase.COMPLETE.value,
                    "count": result.item_count,
                    "since": format_timestamp(planned.since) if planned.since else None,
                },
            )
            self._emit(ProgressEvent(request, ProgressPhase.COMPLETE, result))
            return result

    def _emit(self, event: ProgressEvent) -> None:
        if self.progress is None:
            return
        try:
            self.progress(event)
        except Exception:
            logger.exception(
                "Progress sink failed on %s for %s", event.phase.value, event.request.label
            )


async def run_export(
    requests: Iterable[ExportRequest],
    options: DiffModeOptions | None = None,
    *,
    config: AppConfig | None = None,
    data_source: DataSource | None = None,
    factory: ExporterFactory | None = None,
    progress: ProgressSink | None = None,
    concurrency: int | None = None,
    cancel_event: asyncio.Event | None = None,
) -> OrchestrationResult:
    """Convenience function to run an export with application configuration.

    Args:
        requests: Requests to export
        options: Diff mode switches
        config: Application configuration (default: configs/app.yaml)
        data_source: Data source override (default: GitHub from config)
        factory: Exporter registry (default: Markdown + JSON)
        progress: Progress sink
        concurrency: Override for config.concurrency
        cancel_event: Cooperative cancellation flag

    Returns:
        OrchestrationResult for the run
    """
    from ghexport.core.config.loader import load_app_config
    from ghexport.core.sources.github import GitHubDataSource

    config = config or load_app_config()
    source = data_source or GitHubDataSource.from_config(config.github)

    orchestrator = ExportOrchestrator(
        source,
        config.diff.resolved_state_file,
        output_path=config.output_path,
        factory=factory,
        concurrency=concurrency or config.concurrency,
        progress=progress,
    )

    try:
        return await orchestrator.run(requests, options, cancel_event=cancel_event)
    finally:
        if data_source is None:
            await source.close()
