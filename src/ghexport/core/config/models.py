"""
Pydantic configuration models for ghexport.

These models provide type-safe configuration with validation for:
- Application settings
- GitHub data source settings
- Diff (incremental export) defaults
- Logging
"""

from __future__ import annotations

from enum import Enum
from pathlib import Path

from pydantic import BaseModel, Field, field_validator


# =============================================================================
# Enums
# =============================================================================


class ExportType(str, Enum):
    """Datasets that can be exported for a repository."""

    CONTRIBUTORS = "contributors"
    COMMITS = "commits"
    ISSUES = "issues"
    PRS = "prs"
    RELEASES = "releases"
    BRANCHES = "branches"


class ExportFormat(str, Enum):
    """Requested output format(s) for an export."""

    MARKDOWN = "markdown"
    JSON = "json"
    BOTH = "both"

    def expand(self) -> list["ExportFormat"]:
        """Single formats this selection stands for."""
        if self is ExportFormat.BOTH:
            return [ExportFormat.MARKDOWN, ExportFormat.JSON]
        return [self]


# =============================================================================
# GitHub Data Source Configuration
# =============================================================================


class GitHubConfig(BaseModel):
    """GitHub REST API settings."""

    api_url: str = Field(
        default="https://api.github.com",
        description="Base URL of the GitHub REST API",
    )
    token: str | None = Field(
        default=None,
        description="API token sent as a bearer header (supports ${GITHUB_TOKEN})",
    )
    timeout_seconds: float = Field(
        default=30.0,
        ge=1.0,
        le=300.0,
        description="Request timeout in seconds",
    )
    max_retries: int = Field(
        default=3,
        ge=1,
        le=10,
        description="Maximum attempts for transient failures",
    )
    per_page: int = Field(
        default=100,
        ge=1,
        le=100,
        description="Items requested per page",
    )
    max_pages: int = Field(
        default=50,
        ge=1,
        le=1000,
        description="Maximum pages fetched per export",
    )

    @field_validator("token")
    @classmethod
    def blank_token_is_none(cls, v: str | None) -> str | None:
        """Treat an empty expanded ${VAR} as no token."""
        if v is not None and not v.strip():
            return None
        return v


# =============================================================================
# Diff Configuration
# =============================================================================


class DiffConfig(BaseModel):
    """Defaults for incremental exports."""

    enabled: bool = Field(
        default=True,
        description="Use stored state to export only changes since the last run",
    )
    state_file: Path = Field(
        default=Path("~/.ghexport/state/exports.json"),
        description="Location of the export state file",
    )

    @property
    def resolved_state_file(self) -> Path:
        return self.state_file.expanduser()


# =============================================================================
# Logging Configuration
# =============================================================================


class LoggingConfig(BaseModel):
    """Logging settings."""

    level: str = Field(
        default="INFO",
        description="Log level (DEBUG, INFO, WARNING, ERROR)",
    )
    file: Path | None = Field(
        default=None,
        description="Log file path",
    )
    json_format: bool = Field(
        default=True,
        description="Use JSON format for file logs",
    )
    rich_console: bool = Field(
        default=True,
        description="Use Rich for console output",
    )

    @field_validator("level")
    @classmethod
    def known_level(cls, v: str) -> str:
        level = v.upper()
        if level not in {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}:
            raise ValueError(f"unknown log level: {v}")
        return level


# =============================================================================
# Application Configuration
# =============================================================================


class AppConfig(BaseModel):
    """Root application configuration.

    This is the main configuration object loaded from app.yaml.
    """

    output_path: Path = Field(
        default=Path("github-export"),
        description="Base directory for exported files",
    )
    default_format: ExportFormat = Field(
        default=ExportFormat.MARKDOWN,
        description="Format used when a request does not name one",
    )
    concurrency: int = Field(
        default=2,
        ge=1,
        le=16,
        description="Maximum export requests in flight at once",
    )

    github: GitHubConfig = Field(default_factory=GitHubConfig)
    diff: DiffConfig = Field(default_factory=DiffConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)

