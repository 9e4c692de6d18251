"""CLI command modules."""

from . import export, state

__all__ = [
    "export",
    "state",
]
