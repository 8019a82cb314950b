"""
Smoke Tests for CLI Commands.

These tests verify that CLI commands run without errors and produce output.
They don't validate correctness deeply - just that commands work.

Each test points RECALL_DATABASE_URL at a fresh SQLite file.

Usage:
    pytest tests/smoke/test_cli_commands.py -v
    pytest tests/smoke/test_cli_commands.py -v -m smoke
"""

import os
import subprocess
import sys
from pathlib import Path

import pytest

# Mark all tests in this module as smoke tests
pytestmark = pytest.mark.smoke

# Project root
PROJECT_ROOT = Path(__file__).parent.parent.parent


@pytest.fixture
def cli(tmp_path):
    """
    Return a runner for `python -m recall.cli` against a temp database.

    The runner returns (exit_code, stdout, stderr).
    """
    def run(command: str, timeout: int = 30) -> tuple[int, str, str]:
        env = {
            **os.environ,
            "PYTHONPATH": str(PROJECT_ROOT),
            "RECALL_DATABASE_URL": f"sqlite:///{tmp_path / 'recall.db'}",
            "RECALL_DEFAULT_USER": "smoke-user",
            "COLUMNS": "200",
        }
        result = subprocess.run(
            [sys.executable, "-m", "recall.cli", *command.split()],
            cwd=tmp_path,
            env=env,
            capture_output=True,
            text=True,
            timeout=timeout,
        )
        return result.returncode, result.stdout, result.stderr

    return run


def _item_ids(add_output: str) -> list[str]:
    return [line.split()[-1] for line in add_output.splitlines() if line.strip()]


class TestCLIHelp:
    """Test that help commands work."""

    def test_main_help(self, cli):
        """Main help should list the commands."""
        code, stdout, stderr = cli("--help")

        assert code == 0, f"Help failed: {stderr}"
        assert "Commands" in stdout
        for command in ("add", "queue", "grade", "stats", "reset-today"):
            assert command in stdout

    @pytest.mark.parametrize("command", ["add", "queue", "grade", "stats", "reset-today"])
    def test_command_help(self, cli, command):
        code, _, stderr = cli(f"{command} --help")

        assert code == 0, f"{command} help failed: {stderr}"


class TestCLIFlow:
    """Add, queue, grade and reset through the CLI."""

    def test_empty_queue(self, cli):
        code, stdout, stderr = cli("queue")

        assert code == 0, f"Queue failed: {stderr}"
        assert "Nothing to review" in stdout

    def test_add_prints_both_directions(self, cli):
        code, stdout, stderr = cli("add card-1 --category verbs")

        assert code == 0, f"Add failed: {stderr}"
        assert "front_to_back" in stdout
        assert "back_to_front" in stdout

    def test_add_then_queue(self, cli):
        cli("add card-1")

        code, stdout, stderr = cli("queue")

        assert code == 0, f"Queue failed: {stderr}"
        assert "card-1" in stdout
        assert "NEW" in stdout

    def test_grade_item(self, cli):
        _, added, _ = cli("add card-1")
        item_id = _item_ids(added)[0]

        code, stdout, stderr = cli(f"grade {item_id} good --duration-ms 1200")

        assert code == 0, f"Grade failed: {stderr}"
        assert "LEARNING" in stdout
        assert "next review" in stdout

    def test_bad_grade_fails(self, cli):
        _, added, _ = cli("add card-1")
        item_id = _item_ids(added)[0]

        code, stdout, _ = cli(f"grade {item_id} 1")

        assert code == 1
        assert "InvalidGrade" in stdout

    def test_unknown_item_fails(self, cli):
        code, stdout, _ = cli("grade missing-item good")

        assert code == 1
        assert "ItemNotFound" in stdout

    def test_stats_and_reset(self, cli):
        _, added, _ = cli("add card-1")
        cli(f"grade {_item_ids(added)[0]} easy")

        code, stdout, stderr = cli("stats")
        assert code == 0, f"Stats failed: {stderr}"
        assert "Review Statistics" in stdout
        assert "New cards introduced today: 1" in stdout

        code, stdout, stderr = cli("reset-today --yes")
        assert code == 0, f"Reset failed: {stderr}"
        assert "1 history entries deleted" in stdout

        _, stdout, _ = cli("stats")
        assert "New cards introduced today: 0" in stdout


class TestCLIConfiguration:
    """Test startup configuration errors."""

    def test_invalid_learning_steps(self, cli, monkeypatch):
        monkeypatch.setenv("RECALL_LEARNING_STEPS", "0")

        code, stdout, _ = cli("queue")

        assert code == 2
        assert "Configuration error" in stdout

    def test_invalid_setting_value(self, cli, monkeypatch):
        monkeypatch.setenv("RECALL_NEW_CARDS_PER_DAY", "-1")

        code, stdout, stderr = cli("queue")

        assert code == 2
        assert "Configuration error" in stdout
        assert "Traceback" not in stderr
