"""Tests for the contesthub CLI."""

import asyncio
import json
import time

import pytest
from click.testing import CliRunner

from contesthub.cli import main
from contesthub.config.settings import get_settings
from contesthub.history.store import SnapshotStore


@pytest.fixture
def runner():
    return CliRunner()


@pytest.fixture
def history_dir(tmp_path, monkeypatch):
    """Point HISTORY_DIR at a temp directory for commands that write snapshots."""
    path = tmp_path / "history"
    monkeypatch.setenv("HISTORY_DIR", str(path))
    get_settings.cache_clear()
    return path


class TestFetchCommand:
    def test_fetch_mock_json(self, runner):
        result = runner.invoke(main, ["fetch", "--mock", "--json"])

        assert result.exit_code == 0, result.output
        contests = json.loads(result.stdout)
        assert len(contests) == 21
        starts = [c["startTime"] for c in contests]
        assert starts == sorted(starts)

    def test_fetch_mock_table(self, runner):
        result = runner.invoke(main, ["fetch", "--mock", "--source", "codeforces"])

        assert result.exit_code == 0, result.output
        assert "Aggregation stage: fallback" in result.output
        assert "codeforces: 3 records" in result.output
        assert "leetcode" not in result.output


class TestSourcesCommand:
    def test_lists_every_source(self, runner):
        result = runner.invoke(main, ["sources"])

        assert result.exit_code == 0
        assert "clist: primary, missing credentials" in result.output
        assert "codeforces: enabled" in result.output
        assert "kontests: enabled" in result.output

    def test_respects_enabled_sources(self, runner, monkeypatch):
        monkeypatch.setenv("ENABLED_SOURCES", "codeforces")
        get_settings.cache_clear()

        result = runner.invoke(main, ["sources"])

        assert "codeforces: enabled" in result.output
        assert "leetcode: disabled" in result.output


class TestHealthCommand:
    def test_mock_sources_healthy(self, runner):
        result = runner.invoke(main, ["health", "--mock"])

        assert result.exit_code == 0
        assert "All sources healthy!" in result.output
        assert "clist" not in result.output


class TestHistoryCommands:
    def test_snapshot(self, runner, history_dir):
        result = runner.invoke(main, ["snapshot", "--mock"])

        assert result.exit_code == 0, result.output
        assert "with 21 contests" in result.output
        assert len(list((history_dir / "snapshots").glob("snapshot_*.json"))) == 1

    def test_cleanup_nothing_to_remove(self, runner, history_dir):
        result = runner.invoke(main, ["cleanup"])

        assert result.exit_code == 0
        assert "Removed 0 snapshots older than 30 days" in result.output

    def test_cleanup_removes_old_snapshots(self, runner, history_dir):
        old = SnapshotStore(history_dir, clock=lambda: time.time() - 40 * 86400)
        asyncio.run(old.save_snapshot([]))

        result = runner.invoke(main, ["cleanup", "--days", "7"])

        assert result.exit_code == 0
        assert "Removed 1 snapshots older than 7 days" in result.output
