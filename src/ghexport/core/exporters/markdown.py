"""Markdown table exporter."""

from __future__ import annotations

from typing import Any, Sequence

from ghexport.core.config.models import ExportFormat, ExportType
from ghexport.core.output import format_timestamp

from .base import ExportDestination, Exporter

# Columns shown per export type: (record key, header)
COLUMNS: dict[ExportType, list[tuple[str, str]]] = {
    ExportType.CONTRIBUTORS: [
        ("login", "Login"),
        ("contributions", "Contributions"),
        ("html_url", "Profile"),
    ],
    ExportType.COMMITS: [
        ("sha", "SHA"),
        ("author", "Author"),
        ("date", "Date"),
        ("message", "Message"),
    ],
    ExportType.ISSUES: [
        ("number", "#"),
        ("title", "Title"),
        ("state", "State"),
        ("author", "Author"),
        ("labels", "Labels"),
        ("updated_at", "Updated"),
    ],
    ExportType.PRS: [
        ("number", "#"),
        ("title", "Title"),
        ("state", "State"),
        ("author", "Author"),
        ("updated_at", "Updated"),
        ("merged_at", "Merged"),
    ],
    ExportType.RELEASES: [
        ("tag_name", "Tag"),
        ("name", "Name"),
        ("author", "Author"),
        ("published_at", "Published"),
    ],
    ExportType.BRANCHES: [
        ("name", "Branch"),
        ("protected", "Protected"),
        ("sha", "Head"),
    ],
}

TITLES: dict[ExportType, str] = {
    ExportType.CONTRIBUTORS: "Contributors",
    ExportType.COMMITS: "Commits",
    ExportType.ISSUES: "Issues",
    ExportType.PRS: "Pull Requests",
    ExportType.RELEASES: "Releases",
    ExportType.BRANCHES: "Branches",
}


def format_cell(value: Any) -> str:
    """Render one value as a single-line table cell."""
    if value is None:
        return ""
    if isinstance(value, bool):
        return "yes" if value else "no"
    if isinstance(value, (list, tuple)):
        value = ", ".join(str(v) for v in value if v is not None)
    text = str(value)
    text = " ".join(text.split())
    return text.replace("|", "\\|")


class MarkdownExporter(Exporter):
    """Render records as a Markdown document with one table."""

    @property
    def format(self) -> ExportFormat:
        return ExportFormat.MARKDOWN

    @property
    def extension(self) -> str:
        return "md"

    def render(self, records: Sequence[dict[str, Any]], destination: ExportDestination) -> str:
        export_type = destination.export_type
        columns = COLUMNS[export_type]

        if destination.is_incremental:
            mode = f"incremental since {format_timestamp(destination.since)}"
        else:
            mode = "full"

        lines = [
            f"# {TITLES[export_type]}: {destination.repository}",
            "",
            f"- **Repository:** {destination.repository}",
            f"- **Export type:** {export_type.value}",
            f"- **Mode:** {mode}",
            f"- **Items:** {len(records)}",
            "",
        ]

        if not records:
            lines.append("_No items._")
            return "\n".join(lines) + "\n"

        lines.append("| " + " | ".join(header for _, header in columns) + " |")
        lines.append("| " + " | ".join("---" for _ in columns) + " |")
        for record in records:
            cells = [format_cell(record.get(key)) for key, _ in columns]
            lines.append("| " + " | ".join(cells) + " |")

        return "\n".join(lines) + "\n"
