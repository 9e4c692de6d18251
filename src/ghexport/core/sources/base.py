"""
Data source base classes.

Defines the interface contract for anything that can supply repository
records to the exporter.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from datetime import datetime
from typing import Any

from ghexport.core.config.models import ExportType

Record = dict[str, Any]


class DataSource(ABC):
    """Abstract base class for repository data sources."""

    @property
    @abstractmethod
    def name(self) -> str:
        """Data source identifier."""
        pass

    @abstractmethod
    async def fetch(
        self,
        repository: str,
        export_type: ExportType,
        since: datetime | None = None,
    ) -> list[Record]:
        """Fetch the records of one dataset of one repository.

        Args:
            repository: Repository identifier (owner/name)
            export_type: Dataset to fetch
            since: Only return items created/updated at or after this time

        Returns:
            Ordered list of flat record dictionaries

        Raises:
            DataSourceError: On transport, HTTP or decoding failure
        """
        pass

    async def close(self) -> None:
        """Clean up data source resources."""
        pass

    async def __aenter__(self) -> "DataSource":
        return self

    async def __aexit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        await self.close()


class DataSourceError(Exception):
    """Base exception for data source errors."""

    def __init__(
        self,
        message: str,
        repository: str | None = None,
        status_code: int | None = None,
        cause: Exception | None = None,
    ):
        super().__init__(message)
        self.repository = repository
        self.status_code = status_code
        self.cause = cause


class RepositoryNotFoundError(DataSourceError):
    """Repository does not exist or is not visible."""
    pass


class TransientSourceError(DataSourceError):
    """Server-side or transport failure that may succeed on retry."""
    pass
