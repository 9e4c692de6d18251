"""
Exporter base classes and data structures.

Defines the interface for all output format strategies.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path
from typing import Any, Sequence

from ghexport.core.config.models import ExportFormat, ExportType
from ghexport.core.output import generate_filename, since_identifier, write_text_atomic


class UnsupportedFormatError(Exception):
    """No exporter is registered for an (export type, format) pair."""

    def __init__(self, export_type: ExportType, format: ExportFormat):
        super().__init__(
            f"No exporter registered for {export_type.value} as {format.value}"
        )
        self.export_type = export_type
        self.format = format


@dataclass(frozen=True)
class ExportDestination:
    """Where and for what an exporter writes its artifact."""

    directory: Path
    repository: str
    export_type: ExportType
    since: datetime | None = None

    @property
    def identifier(self) -> str:
        return since_identifier(self.since)

    @property
    def is_incremental(self) -> bool:
        return self.since is not None


@dataclass(frozen=True)
class ExportArtifact:
    """One written output file."""

    path: Path
    count: int
    format: ExportFormat


class Exporter(ABC):
    """Abstract base class for output format strategies.

    Subclasses only render; ``export`` takes care of naming and writing.
    """

    @property
    @abstractmethod
    def format(self) -> ExportFormat:
        """Single format this exporter produces."""
        pass

    @property
    @abstractmethod
    def extension(self) -> str:
        """File extension without the dot."""
        pass

    @abstractmethod
    def render(self, records: Sequence[dict[str, Any]], destination: ExportDestination) -> str:
        """Render records to file content.

        Must be deterministic for identical inputs.
        """
        pass

    def filename(self, destination: ExportDestination) -> str:
        return generate_filename(destination.export_type.value, destination.identifier, self.extension)

    def export(
        self,
        records: Sequence[dict[str, Any]],
        destination: ExportDestination,
    ) -> ExportArtifact:
        """Render records and write them below the destination directory.

        Returns:
            ExportArtifact with the written path and item count

        Raises:
            OSError: If the file cannot be written
        """
        content = self.render(records, destination)
        path = write_text_atomic(destination.directory / self.filename(destination), content)
        return ExportArtifact(path=path, count=len(records), format=self.format)
