"""Data sources that supply repository records."""

from .base import (
    DataSource,
    DataSourceError,
    Record,
    RepositoryNotFoundError,
    TransientSourceError,
)
from .github import GitHubDataSource

__all__ = [
    # Base classes
    "DataSource",
    "Record",
    # Errors
    "DataSourceError",
    "RepositoryNotFoundError",
    "TransientSourceError",
    # GitHub
    "GitHubDataSource",
]
