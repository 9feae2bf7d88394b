"""
Tests for the txcache CLI.
"""

from __future__ import annotations

from collections.abc import Hashable
from typing import Any

import pytest
from typer.testing import CliRunner

from txcache import __version__
from txcache.cache import InMemoryCache
from txcache.cli import main as cli_main
from txcache.cli.main import app

runner = CliRunner()


class BrokenStore(InMemoryCache):
    """Store whose reads fail with a non-txcache error."""

    def get(self, key: Hashable) -> Any | None:
        raise RuntimeError("store offline")


class TestCli:
    """Tests for CLI commands."""

    def test_version(self) -> None:
        """Test that version prints the package version."""
        result = runner.invoke(app, ["version"])
        assert result.exit_code == 0
        assert __version__ in result.output

    def test_config(self, mock_env_vars: dict[str, str]) -> None:
        """Test that config lists the settings."""
        result = runner.invoke(app, ["config"])
        assert result.exit_code == 0
        assert "CACHE_LOCK_TIMEOUT_MS" in result.output

    def test_config_invalid(self) -> None:
        """Test that invalid settings exit with an error."""
        result = runner.invoke(app, ["config"], env={"CACHE_LOCK_TIMEOUT_MS": "-1"})
        assert result.exit_code == 1

    def test_stampede(self) -> None:
        """Test that the stampede run completes without lock errors."""
        result = runner.invoke(
            app,
            ["stampede", "--threads", "4", "--fetch-ms", "5"],
            env={"LOG_LEVEL": "WARNING"},
        )
        assert result.exit_code == 0
        assert "fetches" in result.output

    def test_stampede_rejects_negative_fetch_ms(self) -> None:
        """Test that a negative fetch cost is a usage error."""
        result = runner.invoke(app, ["stampede", "--threads", "2", "--fetch-ms", "-5"])
        assert result.exit_code == 2

    def test_stampede_reports_failed_readers(self, monkeypatch: pytest.MonkeyPatch) -> None:
        """Test that readers dying on any exception fail the run."""
        monkeypatch.setattr(
            cli_main, "build_cache_stack", lambda *args, **kwargs: BrokenStore("broken")
        )
        result = runner.invoke(
            app,
            ["stampede", "--threads", "3", "--fetch-ms", "0"],
            env={"LOG_LEVEL": "WARNING"},
        )
        assert result.exit_code == 1
        assert "RuntimeError: store offline" in result.output
