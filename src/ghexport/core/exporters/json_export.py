"""JSON document exporter."""

from __future__ import annotations

from typing import Any, Sequence

import orjson

from ghexport.core.config.models import ExportFormat
from ghexport.core.output import format_timestamp

from .base import ExportDestination, Exporter


class JsonExporter(Exporter):
    """Render records as one indented JSON document with a small header."""

    @property
    def format(self) -> ExportFormat:
        return ExportFormat.JSON

    @property
    def extension(self) -> str:
        return "json"

    def render(self, records: Sequence[dict[str, Any]], destination: ExportDestination) -> str:
        document = {
            "repository": destination.repository,
            "exportType": destination.export_type.value,
            "since": format_timestamp(destination.since) if destination.since else None,
            "count": len(records),
            "items": list(records),
        }
        return orjson.dumps(document, option=orjson.OPT_INDENT_2, default=str).decode("utf-8") + "\n"
