"""Export state - durable record of past exports for incremental runs."""

from .store import (
    STATE_VERSION,
    CorruptStateError,
    ExportState,
    StateError,
    StateReadError,
    StateStore,
    StateWriteError,
    VersionMismatchError,
)

__all__ = [
    "STATE_VERSION",
    "ExportState",
    "StateStore",
    # Errors
    "StateError",
    "StateReadError",
    "CorruptStateError",
    "VersionMismatchError",
    "StateWriteError",
]
