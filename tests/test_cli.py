"""Tests for the command-line interface."""

from __future__ import annotations

from datetime import datetime, timezone
from pathlib import Path

import orjson
import pytest
from typer.testing import CliRunner

from conftest import FakeDataSource, contributors
from ghexport.cli.commands import export as export_commands
from ghexport.cli.main import app
from ghexport.core.config import ExportFormat, ExportType
from ghexport.core.exporters import ExporterFactory, JsonExporter
from ghexport.core.sources import RepositoryNotFoundError
from ghexport.core.state import ExportState, StateStore

runner = CliRunner()


@pytest.fixture
def workspace(tmp_path: Path) -> dict[str, Path]:
    return {
        "config": tmp_path / "missing.yaml",
        "state": tmp_path / "state.json",
        "output": tmp_path / "out",
    }


@pytest.fixture
def source(monkeypatch: pytest.MonkeyPatch) -> FakeDataSource:
    fake = FakeDataSource(
        records={("o/r", ExportType.CONTRIBUTORS): contributors(5)},
        failures={("o/gone", ExportType.CONTRIBUTORS): RepositoryNotFoundError("Repository not found: o/gone")},
    )
    monkeypatch.setattr(export_commands, "_build_data_source", lambda config: fake)
    return fake


def export_args(workspace: dict[str, Path], *extra: str) -> list[str]:
    return [
        "export", "run",
        "--config", str(workspace["config"]),
        "--state-file", str(workspace["state"]),
        "--output", str(workspace["output"]),
        *extra,
    ]


def seed(workspace: dict[str, Path], *keys: tuple[str, ExportType]) -> None:
    store = StateStore()
    for repository, export_type in keys:
        store.upsert(ExportState(
            repository=repository,
            type=export_type,
            format=ExportFormat.MARKDOWN,
            output_path="out",
            last_export_at=datetime(2024, 1, 1, tzinfo=timezone.utc),
            last_count=2,
        ))
    store.save(workspace["state"])


class TestExportRun:
    """Tests for `ghexport export run`."""

    def test_success(self, workspace: dict[str, Path], source: FakeDataSource) -> None:
        """Test a successful run writes files and state and exits 0."""
        result = runner.invoke(app, export_args(workspace, "-r", "o/r", "-t", "contributors", "-f", "json"))

        assert result.exit_code == 0, result.output
        written = workspace["output"] / "o" / "r" / "contributors" / "contributors-full.json"
        assert orjson.loads(written.read_bytes())["count"] == 5

        state = StateStore.load(workspace["state"]).get("o/r", ExportType.CONTRIBUTORS)
        assert state is not None
        assert state.last_count == 5
        assert source.closed

    def test_partial_failure_exit_code(self, workspace: dict[str, Path], source: FakeDataSource) -> None:
        """Test a failed request makes the run exit with 2."""
        result = runner.invoke(app, export_args(workspace, "-r", "o/r", "-r", "o/gone"))

        assert result.exit_code == 2
        assert StateStore.load(workspace["state"]).get("o/r", ExportType.CONTRIBUTORS) is not None
        assert StateStore.load(workspace["state"]).get("o/gone", ExportType.CONTRIBUTORS) is None

    def test_diff_uses_state(self, workspace: dict[str, Path], source: FakeDataSource) -> None:
        """Test --diff passes the stored timestamp to the data source."""
        seed(workspace, ("o/r", ExportType.CONTRIBUTORS))

        result = runner.invoke(app, export_args(workspace, "-r", "o/r", "--diff"))

        assert result.exit_code == 0, result.output
        assert source.calls == [("o/r", ExportType.CONTRIBUTORS, datetime(2024, 1, 1, tzinfo=timezone.utc))]

    def test_full_ignores_state(self, workspace: dict[str, Path], source: FakeDataSource) -> None:
        """Test --full forces a full export."""
        seed(workspace, ("o/r", ExportType.CONTRIBUTORS))

        result = runner.invoke(app, export_args(workspace, "-r", "o/r", "--diff", "--full"))

        assert result.exit_code == 0, result.output
        assert source.calls == [("o/r", ExportType.CONTRIBUTORS, None)]

    def test_since(self, workspace: dict[str, Path], source: FakeDataSource) -> None:
        """Test --since is parsed and used as the cutoff."""
        result = runner.invoke(app, export_args(workspace, "-r", "o/r", "--no-diff", "--since", "2024-02-03"))

        assert result.exit_code == 0, result.output
        since = source.calls[0][2]
        assert since is not None
        assert (since.year, since.month, since.day) == (2024, 2, 3)
        assert since.utcoffset().total_seconds() == 0

    def test_unsupported_format_exits_before_fetch(
        self, workspace: dict[str, Path], source: FakeDataSource, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        """Test a format with no registered exporter exits 1 without fetching."""
        factory = ExporterFactory()
        factory.register(ExportType.CONTRIBUTORS, ExportFormat.JSON, JsonExporter)
        monkeypatch.setattr(export_commands, "_build_factory", lambda: factory)

        result = runner.invoke(app, export_args(workspace, "-r", "o/r", "-f", "markdown"))

        assert result.exit_code == 1
        assert source.calls == []
        assert not workspace["state"].exists()

    def test_supported_format_uses_factory(
        self, workspace: dict[str, Path], source: FakeDataSource, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        """Test the checked factory is the one that writes the artifacts."""
        factory = ExporterFactory()
        factory.register(ExportType.CONTRIBUTORS, ExportFormat.JSON, JsonExporter)
        monkeypatch.setattr(export_commands, "_build_factory", lambda: factory)

        result = runner.invoke(app, export_args(workspace, "-r", "o/r", "-f", "json"))

        assert result.exit_code == 0, result.output
        directory = workspace["output"] / "o" / "r" / "contributors"
        assert [p.name for p in directory.iterdir()] == ["contributors-full.json"]

    def test_invalid_repository(self, workspace: dict[str, Path], source: FakeDataSource) -> None:
        """Test a malformed repository exits 1 before fetching."""
        result = runner.invoke(app, export_args(workspace, "-r", "not-a-repo"))

        assert result.exit_code == 1
        assert source.calls == []

    def test_corrupt_state(self, workspace: dict[str, Path], source: FakeDataSource) -> None:
        """Test an unreadable state file exits 1."""
        workspace["state"].write_text("{", encoding="utf-8")

        result = runner.invoke(app, export_args(workspace, "-r", "o/r"))

        assert result.exit_code == 1
        assert source.calls == []


class TestStateCommands:
    """Tests for `ghexport state ...`."""

    def test_show(self, workspace: dict[str, Path]) -> None:
        """Test recorded exports are listed."""
        seed(workspace, ("first/repo", ExportType.ISSUES), ("x/y", ExportType.PRS))

        result = runner.invoke(app, ["state", "show", "--state-file", str(workspace["state"]), "-r", "x/y"])

        assert result.exit_code == 0, result.output
        assert "x/y" in result.output
        assert "first/repo" not in result.output

    def test_show_normalizes_repo(self, workspace: dict[str, Path]) -> None:
        """Test the --repo filter is trimmed like stored identifiers."""
        seed(workspace, ("first/repo", ExportType.ISSUES), ("x/y", ExportType.PRS))

        result = runner.invoke(app, ["state", "show", "--state-file", str(workspace["state"]), "-r", " x / y "])

        assert result.exit_code == 0, result.output
        assert "x/y" in result.output
        assert "No exports recorded" not in result.output

    def test_show_invalid_repo(self, workspace: dict[str, Path]) -> None:
        """Test a malformed --repo filter exits 1."""
        seed(workspace, ("o/r", ExportType.ISSUES))

        result = runner.invoke(app, ["state", "show", "--state-file", str(workspace["state"]), "-r", "nope"])

        assert result.exit_code == 1

    def test_show_json(self, workspace: dict[str, Path]) -> None:
        """Test --json prints the raw document."""
        seed(workspace, ("o/r", ExportType.ISSUES))

        result = runner.invoke(app, ["state", "show", "--json", "--state-file", str(workspace["state"])])

        assert result.exit_code == 0, result.output
        assert orjson.loads(result.output)["exports"][0]["lastCount"] == 2

    def test_show_empty(self, workspace: dict[str, Path]) -> None:
        """Test a missing state file is reported as empty."""
        result = runner.invoke(app, ["state", "show", "--state-file", str(workspace["state"])])

        assert result.exit_code == 0
        assert "No exports recorded" in result.output

    def test_delete(self, workspace: dict[str, Path]) -> None:
        """Test one key is removed and the rest kept."""
        seed(workspace, ("o/r", ExportType.ISSUES), ("o/r", ExportType.PRS))

        result = runner.invoke(app, ["state", "delete", "o/r", "issues", "--state-file", str(workspace["state"])])

        assert result.exit_code == 0, result.output
        store = StateStore.load(workspace["state"])
        assert [s.type for s in store.exports] == [ExportType.PRS]

    def test_delete_normalizes_repo(self, workspace: dict[str, Path]) -> None:
        """Test surrounding whitespace does not hide a recorded key."""
        seed(workspace, ("o/r", ExportType.ISSUES))

        result = runner.invoke(app, ["state", "delete", " o/r ", "issues", "--state-file", str(workspace["state"])])

        assert result.exit_code == 0, result.output
        assert StateStore.load(workspace["state"]).exports == []

    def test_delete_invalid_repo(self, workspace: dict[str, Path]) -> None:
        """Test a malformed repository exits 1 and keeps the state."""
        seed(workspace, ("o/r", ExportType.ISSUES))

        result = runner.invoke(app, ["state", "delete", "../o/r", "issues", "--state-file", str(workspace["state"])])

        assert result.exit_code == 1
        assert len(StateStore.load(workspace["state"]).exports) == 1

    def test_delete_unknown(self, workspace: dict[str, Path]) -> None:
        """Test deleting a key that was never exported exits 1."""
        seed(workspace, ("o/r", ExportType.ISSUES))

        result = runner.invoke(app, ["state", "delete", "o/r", "commits", "--state-file", str(workspace["state"])])

        assert result.exit_code == 1

    def test_clear(self, workspace: dict[str, Path]) -> None:
        """Test clear with --yes empties the store."""
        seed(workspace, ("o/r", ExportType.ISSUES), ("x/y", ExportType.PRS))

        result = runner.invoke(app, ["state", "clear", "--yes", "--state-file", str(workspace["state"])])

        assert result.exit_code == 0, result.output
        assert StateStore.load(workspace["state"]).exports == []

    def test_clear_declined(self, workspace: dict[str, Path]) -> None:
        """Test answering no to the prompt keeps the state."""
        seed(workspace, ("o/r", ExportType.ISSUES))

        result = runner.invoke(app, ["state", "clear", "--state-file", str(workspace["state"])], input="n\n")

        assert result.exit_code == 1
        assert len(StateStore.load(workspace["state"]).exports) == 1


class TestInitAndValidate:
    """Tests for `ghexport init` and `ghexport validate`."""

    def test_init_then_validate(self, tmp_path: Path) -> None:
        """Test the generated configuration is valid."""
        path = tmp_path / "configs" / "app.yaml"

        result = runner.invoke(app, ["init", "--config", str(path)])
        assert result.exit_code == 0, result.output
        assert path.exists()

        result = runner.invoke(app, ["validate", "--config", str(path)])
        assert result.exit_code == 0, result.output

    def test_init_refuses_overwrite(self, tmp_path: Path) -> None:
        """Test an existing file is kept unless --force is given."""
        path = tmp_path / "app.yaml"
        path.write_text("concurrency: 3\n", encoding="utf-8")

        assert runner.invoke(app, ["init", "--config", str(path)]).exit_code == 1
        assert path.read_text(encoding="utf-8") == "concurrency: 3\n"

        assert runner.invoke(app, ["init", "--config", str(path), "--force"]).exit_code == 0
        assert "github:" in path.read_text(encoding="utf-8")

    def test_validate_reports_errors(self, tmp_path: Path) -> None:
        """Test an invalid file exits 1."""
        path = tmp_path / "app.yaml"
        path.write_text("concurrency: 99\n", encoding="utf-8")

        result = runner.invoke(app, ["validate", "--config", str(path)])

        assert result.exit_code == 1

    def test_version(self) -> None:
        """Test --version prints the version."""
        result = runner.invoke(app, ["--version"])

        assert result.exit_code == 0
        assert "0.1.0" in result.output
