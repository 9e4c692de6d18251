"""Tests for configuration loading."""

from __future__ import annotations

from pathlib import Path

import pytest

from ghexport.core.config import (
    ConfigError,
    ExportFormat,
    load_app_config,
    validate_app_config_file,
)


def write_config(tmp_path: Path, content: str) -> Path:
    path = tmp_path / "app.yaml"
    path.write_text(content, encoding="utf-8")
    return path


class TestLoadAppConfig:
    """Tests for load_app_config."""

    def test_missing_file_gives_defaults(self, tmp_path: Path) -> None:
        """Test a missing file yields the default configuration."""
        config = load_app_config(tmp_path / "nope.yaml")

        assert config.concurrency == 2
        assert config.default_format is ExportFormat.MARKDOWN
        assert config.diff.enabled is True
        assert config.github.token is None
        assert config.diff.resolved_state_file == Path.home() / ".ghexport" / "state" / "exports.json"

    def test_values_and_env_expansion(self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        """Test ${VAR} and ${VAR:-default} are expanded."""
        monkeypatch.setenv("GHX_TOKEN", "secret")
        monkeypatch.delenv("GHX_MISSING", raising=False)
        path = write_config(tmp_path, """
output_path: out
default_format: both
concurrency: 4
github:
  token: ${GHX_TOKEN}
  api_url: ${GHX_MISSING:-https://ghe.example.com/api/v3}
logging:
  level: debug
""")

        config = load_app_config(path)

        assert config.output_path == Path("out")
        assert config.default_format is ExportFormat.BOTH
        assert config.concurrency == 4
        assert config.github.token == "secret"
        assert config.github.api_url == "https://ghe.example.com/api/v3"
        assert config.logging.level == "DEBUG"

    def test_empty_token_is_none(self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        """Test an unset token variable means no token."""
        monkeypatch.delenv("GHX_MISSING", raising=False)
        path = write_config(tmp_path, "github:\n  token: ${GHX_MISSING:-}\n")

        assert load_app_config(path).github.token is None

    def test_empty_file_gives_defaults(self, tmp_path: Path) -> None:
        """Test an empty YAML document is accepted."""
        assert load_app_config(write_config(tmp_path, "")).concurrency == 2

    def test_invalid_yaml(self, tmp_path: Path) -> None:
        """Test broken YAML raises ConfigError with details."""
        path = write_config(tmp_path, "github: [unclosed\n")

        with pytest.raises(ConfigError) as exc_info:
            load_app_config(path)

        assert exc_info.value.path == path
        assert exc_info.value.details

    def test_validation_error(self, tmp_path: Path) -> None:
        """Test out-of-range values raise ConfigError."""
        path = write_config(tmp_path, "concurrency: 0\n")

        with pytest.raises(ConfigError):
            load_app_config(path)

    def test_top_level_must_be_mapping(self, tmp_path: Path) -> None:
        """Test a YAML list at the top level is rejected."""
        with pytest.raises(ConfigError):
            load_app_config(write_config(tmp_path, "- a\n- b\n"))


class TestValidateAppConfigFile:
    """Tests for validate_app_config_file."""

    def test_valid(self, tmp_path: Path) -> None:
        """Test a valid file reports no errors."""
        assert validate_app_config_file(write_config(tmp_path, "concurrency: 3\n")) == []

    def test_reports_locations(self, tmp_path: Path) -> None:
        """Test errors name the offending field."""
        path = write_config(tmp_path, "github:\n  per_page: 500\nlogging:\n  level: loud\n")

        errors = validate_app_config_file(path)

        assert any(e.startswith("github.per_page:") for e in errors)
        assert any(e.startswith("logging.level:") for e in errors)

    def test_missing_file(self, tmp_path: Path) -> None:
        """Test a missing file is reported."""
        assert validate_app_config_file(tmp_path / "nope.yaml") == [f"File not found: {tmp_path / 'nope.yaml'}"]
