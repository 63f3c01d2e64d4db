"""
Smoke tests for the knockout CLI.

Tests basic functionality:
- App runs without errors
- init seeds the catalog and a starter routine
- A session can be started, logged, extended and finished
- Routines can be created and reordered
- Errors exit with code 1
"""

import logging
import re

import pytest
from typer.testing import CliRunner

from knockout.cli import views
from knockout.cli.main import app


runner = CliRunner()


@pytest.fixture
def cli_env(tmp_path):
    """Environment pointing the CLI at a throwaway database and home."""
    return {
        "HOME": str(tmp_path),
        "KNOCKOUT_DB_PATH": str(tmp_path / "knockout.db"),
        "KNOCKOUT_USER_ID": "tester",
        "KNOCKOUT_LOG_FORMAT": "text",
    }


@pytest.fixture(autouse=True)
def wide_console(monkeypatch):
    """Keep table cells on one line, and leave the root logger clean afterwards."""
    monkeypatch.setattr(views.console, "width", 200)
    yield
    root = logging.getLogger()
    for handler in root.handlers[:]:
        root.removeHandler(handler)


def _run(env, *args):
    return runner.invoke(app, list(args), env=env)


class TestCLISmoke:
    """Basic smoke tests for CLI commands."""

    def test_app_help(self):
        result = runner.invoke(app, ["--help"])
        assert result.exit_code == 0
        assert "start" in result.output
        assert "routine-move" in result.output

    def test_init_copies_starter_routine(self, cli_env, tmp_path):
        result = _run(cli_env, "init", "--equipment", "body_weight")

        assert result.exit_code == 0
        assert "Body Weight Basics" in result.output
        assert (tmp_path / "knockout.db").exists()

        again = _run(cli_env, "init")
        assert again.exit_code == 0
        assert "Already onboarded" in again.output

    def test_exercise_listing_and_favorites(self, cli_env):
        _run(cli_env, "init")

        result = _run(cli_env, "exercises", "--equipment", "dumbbell")
        assert result.exit_code == 0
        assert "goblet_squat" in result.output
        assert "kb_swing" not in result.output

        assert _run(cli_env, "favorite", "pull_up").exit_code == 0
        favorites = _run(cli_env, "exercises", "--favorites")
        assert "pull_up" in favorites.output
        assert "push_up" not in favorites.output

        added = _run(cli_env, "exercise-add", "Ring Row", "-m", "back", "-e", "body_weight")
        assert added.exit_code == 0
        assert "Ring Row" in _run(cli_env, "exercises", "--search", "ring").output

    def test_bad_filter_exits_with_error(self, cli_env):
        _run(cli_env, "init")
        result = _run(cli_env, "exercises", "--muscle", "neck")
        assert result.exit_code == 1
        assert "Error" in result.output

    def test_session_flow(self, cli_env):
        _run(cli_env, "init", "-e", "body_weight")

        started = _run(cli_env, "start", "push_up")
        assert started.exit_code == 0
        assert "Push-Up" in started.output
        assert "0/3 sets done" in started.output

        conflict = _run(cli_env, "start", "pull_up")
        assert conflict.exit_code == 0
        assert "already in progress" in conflict.output
        assert "Push-Up" in conflict.output
        assert "Error" not in conflict.output

        assert _run(cli_env, "log-set", "1", "12").exit_code == 0
        logged = _run(cli_env, "log-set", "2", "10", "--weight", "5")
        assert logged.exit_code == 0
        assert "2/3 sets done" in logged.output

        assert _run(cli_env, "log-set", "9", "5").exit_code == 1

        extra = _run(cli_env, "add-set", "8")
        assert extra.exit_code == 0
        assert "3/4 sets done" in extra.output

        finished = _run(cli_env, "finish")
        assert finished.exit_code == 0
        assert "3/4 sets logged" in finished.output

        history = _run(cli_env, "history")
        assert history.exit_code == 0
        assert "Push-Up" in history.output

        restarted = _run(cli_env, "start", "push_up", "--sets", "3")
        assert restarted.exit_code == 0
        assert "Prefilled 2 set(s)" in restarted.output

        assert _run(cli_env, "discard", "--force").exit_code == 0
        assert "No session in progress" in _run(cli_env, "active").output
        assert _run(cli_env, "finish").exit_code == 1

    def test_clearing_a_set(self, cli_env):
        _run(cli_env, "init")
        _run(cli_env, "start", "pull_up", "--sets", "2")
        _run(cli_env, "log-set", "1", "6")

        cleared = _run(cli_env, "log-set", "1", "0")

        assert cleared.exit_code == 0
        assert "0/2 sets done" in cleared.output

    def test_log_set_without_session(self, cli_env):
        _run(cli_env, "init")
        result = _run(cli_env, "log-set", "1", "10")
        assert result.exit_code == 1
        assert "No session in progress" in result.output

    def test_bad_weight_is_reported(self, cli_env):
        _run(cli_env, "init")
        _run(cli_env, "start", "db_row")
        result = _run(cli_env, "log-set", "1", "8", "--weight", "heavy")
        assert result.exit_code == 1
        assert "Invalid weight" in result.output

    def test_routine_editing(self, cli_env):
        _run(cli_env, "init")

        created = _run(cli_env, "routine-create", "Mine")
        assert created.exit_code == 0
        routine_id = re.search(r"id ([0-9a-f]{32})", created.output).group(1)

        assert _run(cli_env, "routine-add", routine_id, "push_up").exit_code == 0
        assert _run(cli_env, "routine-add", routine_id, "dip", "--sets", "4").exit_code == 0

        moved = _run(cli_env, "routine-move", routine_id, "2", "up")
        assert moved.exit_code == 0
        assert moved.output.index("dip") < moved.output.index("push_up")

        noop = _run(cli_env, "routine-move", routine_id, "1", "up")
        assert noop.exit_code == 0

        bad = _run(cli_env, "routine-move", routine_id, "1", "left")
        assert bad.exit_code == 1

        assert "nothing changed" in _run(cli_env, "routine-sets", "whatever", "25").output
        assert _run(cli_env, "routine-sets", "missing", "5").exit_code == 1

        listed = _run(cli_env, "routines")
        assert "Mine" in listed.output and "Body Weight Basics" in listed.output

        assert _run(cli_env, "routine-delete", routine_id, "--force").exit_code == 0
        assert "Mine" not in _run(cli_env, "routines").output

    def test_activate_unknown_routine(self, cli_env):
        _run(cli_env, "init")
        result = _run(cli_env, "routine-activate", "does-not-exist")
        assert result.exit_code == 1
        assert "Routine not found" in result.output

    def test_start_uses_active_routine_planned_sets(self, cli_env):
        _run(cli_env, "init", "-e", "body_weight")
        # Body Weight Basics plans 4 sets of bodyweight squats
        result = _run(cli_env, "start", "bodyweight_squat")
        assert result.exit_code == 0
        assert "0/4 sets done" in result.output
