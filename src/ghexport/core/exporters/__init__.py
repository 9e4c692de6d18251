"""Exporters - render records to Markdown or JSON artifacts."""

from .base import ExportArtifact, ExportDestination, Exporter, UnsupportedFormatError
from .factory import ExporterFactory
from .json_export import JsonExporter
from .markdown import MarkdownExporter

__all__ = [
    "Exporter",
    "ExportArtifact",
    "ExportDestination",
    "ExporterFactory",
    "JsonExporter",
    "MarkdownExporter",
    "UnsupportedFormatError",
]
