"""Orchestrator - diff planning, bounded execution, state bookkeeping."""

from .planner import DiffModeOptions, ExportRequest, PlannedRequest, plan_requests, resolve_since
from .runner import (
    ExportOperationResult,
    ExportOrchestrator,
    OrchestrationResult,
    ProgressEvent,
    ProgressPhase,
    ProgressSink,
    run_export,
)

__all__ = [
    "DiffModeOptions",
    "ExportRequest",
    "PlannedRequest",
    "plan_requests",
    "resolve_since",
    "ExportOperationResult",
    "ExportOrchestrator",
    "OrchestrationResult",
    "ProgressEvent",
    "ProgressPhase",
    "ProgressSink",
    "run_export",
]
