"""Shared fixtures for ghexport tests."""

from __future__ import annotations

import asyncio
from datetime import datetime, timezone
from pathlib import Path

import pytest

from ghexport.core.config import ExportType
from ghexport.core.sources import DataSource, Record


class FakeDataSource(DataSource):
    """In-memory data source keyed by (repository, export type).

    Keys listed in ``failures`` raise instead of returning records; every
    call is recorded in ``calls``.
    """

    def __init__(
        self,
        records: dict[tuple[str, ExportType], list[Record]] | None = None,
        failures: dict[tuple[str, ExportType], Exception] | None = None,
        delays: dict[tuple[str, ExportType], float] | None = None,
    ) -> None:
        self.records = records or {}
        self.failures = failures or {}
        self.delays = delays or {}
        self.calls: list[tuple[str, ExportType, datetime | None]] = []
        self.in_flight = 0
        self.max_in_flight = 0
        self.closed = False

    @property
    def name(self) -> str:
        return "fake"

    async def fetch(
        self,
        repository: str,
        export_type: ExportType,
        since: datetime | None = None,
    ) -> list[Record]:
        key = (repository, export_type)
        self.calls.append((repository, export_type, since))
        self.in_flight += 1
        self.max_in_flight = max(self.max_in_flight, self.in_flight)
        try:
            await asyncio.sleep(self.delays.get(key, 0))
            if key in self.failures:
                raise self.failures[key]
            return list(self.records.get(key, []))
        finally:
            self.in_flight -= 1

    async def close(self) -> None:
        self.closed = True


def contributors(count: int) -> list[Record]:
    return [
        {"login": f"user{i}", "contributions": 10 - i, "html_url": f"https://github.com/user{i}"}
        for i in range(count)
    ]


@pytest.fixture
def fake_source() -> FakeDataSource:
    return FakeDataSource()


@pytest.fixture
def state_path(tmp_path: Path) -> Path:
    return tmp_path / "state" / "exports.json"


@pytest.fixture
def output_path(tmp_path: Path) -> Path:
    return tmp_path / "export"


@pytest.fixture
def fixed_now() -> datetime:
    return datetime(2024, 6, 1, 12, 0, 0, tzinfo=timezone.utc)

