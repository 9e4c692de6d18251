"""
Exporter registry.

Maps (export type, single format) pairs to exporter classes. Requests for
``both`` are split into single formats by the orchestrator before they
reach the factory.
"""

from __future__ import annotations

from ghexport.core.config.models import ExportFormat, ExportType

from .base import Exporter, UnsupportedFormatError
from .json_export import JsonExporter
from .markdown import MarkdownExporter


class ExporterFactory:
    """Resolve exporters for (export type, format) pairs."""

    def __init__(self) -> None:
        self._registry: dict[tuple[ExportType, ExportFormat], type[Exporter]] = {}

    @classmethod
    def default(cls) -> "ExporterFactory":
        """Factory with Markdown and JSON registered for every export type."""
        factory = cls()
        for export_type in ExportType:
            factory.register(export_type, ExportFormat.MARKDOWN, MarkdownExporter)
            factory.register(export_type, ExportFormat.JSON, JsonExporter)
        return factory

    def register(
        self,
        export_type: ExportType,
        format: ExportFormat,
        exporter_cls: type[Exporter],
    ) -> None:
        """Register an exporter class, replacing any previous registration.

        Raises:
            ValueError: If ``format`` is ``both``
        """
        if format is ExportFormat.BOTH:
            raise ValueError("Register single formats; 'both' is expanded by the orchestrator")
        self._registry[(export_type, format)] = exporter_cls

    def resolve(self, export_type: ExportType, format: ExportFormat) -> Exporter:
        """Create the exporter for a pair.

        Raises:
            UnsupportedFormatError: If nothing is registered for the pair
        """
        exporter_cls = self._registry.get((export_type, format))
        if exporter_cls is None:
            raise UnsupportedFormatError(export_type, format)
        return exporter_cls()

    def supports(self, export_type: ExportType, format: ExportFormat) -> bool:
        return all((export_type, f) in self._registry for f in format.expand())
