"""Tests for the pillbox CLI."""

from __future__ import annotations

from pathlib import Path
from unittest.mock import patch

import pytest
from click.testing import CliRunner

from pillbox.cli import cli

pytestmark = pytest.mark.unit


@pytest.fixture
def runner():
    return CliRunner()


@pytest.fixture(autouse=True)
def _no_logging_setup():
    with patch("pillbox.cli.configure_logging"):
        yield


class TestGroup:
    def test_help_lists_commands(self, runner):
        result = runner.invoke(cli, ["--help"])
        assert result.exit_code == 0
        for name in ("serve", "check-config", "validate", "format-time"):
            assert name in result.output

    def test_version(self, runner):
        result = runner.invoke(cli, ["--version"])
        assert result.exit_code == 0
        assert "0.1.0" in result.output


class TestServe:
    @patch("uvicorn.run")
    def test_defaults(self, mock_uvicorn_run, runner):
        result = runner.invoke(cli, ["serve"])
        assert result.exit_code == 0
        assert "Starting pillbox API on 0.0.0.0:8200" in result.output
        _, kwargs = mock_uvicorn_run.call_args
        assert kwargs == {"host": "0.0.0.0", "port": 8200, "log_config": None}

    @patch("uvicorn.run")
    def test_port_from_config(self, mock_uvicorn_run, runner, tmp_path: Path):
        (tmp_path / "pillbox.toml").write_text('[pillbox]\nname = "p"\nport = 8300\n')
        result = runner.invoke(cli, ["serve", "--config", str(tmp_path), "--host", "127.0.0.1"])
        assert result.exit_code == 0
        assert "Starting pillbox API on 127.0.0.1:8300" in result.output

    @patch("uvicorn.run")
    def test_port_flag_overrides_config(self, mock_uvicorn_run, runner, tmp_path: Path):
        (tmp_path / "pillbox.toml").write_text('[pillbox]\nname = "p"\nport = 8300\n')
        result = runner.invoke(cli, ["serve", "--config", str(tmp_path), "--port", "9999"])
        assert result.exit_code == 0
        assert mock_uvicorn_run.call_args.kwargs["port"] == 9999

    @patch("uvicorn.run")
    def test_bad_config(self, mock_uvicorn_run, runner, tmp_path: Path):
        result = runner.invoke(cli, ["serve", "--config", str(tmp_path)])
        assert result.exit_code == 1
        assert "Config file not found" in result.output
        mock_uvicorn_run.assert_not_called()


class TestCheckConfig:
    def test_valid(self, runner, tmp_path: Path):
        (tmp_path / "pillbox.toml").write_text('[pillbox]\nname = "meds"\n')
        result = runner.invoke(cli, ["check-config", "--config", str(tmp_path)])
        assert result.exit_code == 0
        assert "meds" in result.output
        assert "8200" in result.output

    def test_invalid(self, runner, tmp_path: Path):
        (tmp_path / "pillbox.toml").write_text("[schedule]\n")
        result = runner.invoke(cli, ["check-config", "--config", str(tmp_path)])
        assert result.exit_code == 1
        assert "Missing [pillbox] section" in result.output


class TestValidate:
    def test_ok(self, runner):
        result = runner.invoke(
            cli, ["validate", "--start-date", "2024-01-01", "--end-date", "2024-01-30"]
        )
        assert result.exit_code == 0
        assert "OK" in result.output

    def test_reports_every_problem(self, runner):
        result = runner.invoke(
            cli, ["validate", "--date", "2024-02-30", "--start-date", "2024/01/01"]
        )
        assert result.exit_code == 1
        assert "date:" in result.output
        assert "start_date:" in result.output

    def test_range_too_large(self, runner):
        result = runner.invoke(
            cli, ["validate", "--start-date", "2024-01-01", "--end-date", "2024-02-15"]
        )
        assert result.exit_code == 1
        assert "cannot exceed 30 days" in result.output


class TestFormatTime:
    def test_24h(self, runner):
        result = runner.invoke(cli, ["format-time", "510"])
        assert result.exit_code == 0
        assert result.output.strip() == "08:30"

    def test_12h(self, runner):
        result = runner.invoke(cli, ["format-time", "0", "--style", "12h"])
        assert result.output.strip() == "12:00 AM"

    def test_out_of_range(self, runner):
        result = runner.invoke(cli, ["format-time", "1440"])
        assert result.exit_code == 2
        assert "out of range" in result.output

    def test_unknown_style(self, runner):
        result = runner.invoke(cli, ["format-time", "510", "--style", "36h"])
        assert result.exit_code == 2
