"""Tests for the CLI commands via CliRunner."""

from __future__ import annotations

import json
from datetime import UTC, datetime

import pytest
from typer.testing import CliRunner

from runsafe import __version__
from runsafe.cli import app

# NO_COLOR=1 prevents Rich from injecting ANSI codes inside option names,
# which breaks substring matching in CI (headless, no TTY).
# COLUMNS=200 prevents wrapping that could split a flag across lines.
runner = CliRunner(env={"NO_COLOR": "1", "COLUMNS": "200"})

_EPIC = "Summary\nSwap greeting\n\nFile Edits\napp.py\nreplace\nhello\nwith\nhi\n"


@pytest.fixture
def workspace(tmp_path, monkeypatch):
    ws = tmp_path / "ws"
    home = tmp_path / "home"
    ws.mkdir()
    home.mkdir()
    monkeypatch.chdir(ws)
    monkeypatch.setenv("HOME", str(home))
    monkeypatch.delenv("RUNSAFE_DIR", raising=False)
    # Keep the breaker's memory probe out of the way of the test process size
    (ws / ".runsafe.toml").write_text("[safety]\nmemory_ceiling_mb = 100000\n")
    (ws / "app.py").write_text("print('hello')\n")
    (ws / "epic.md").write_text(_EPIC)
    return ws


def _trip(ws) -> None:
    state = ws / ".runsafe"
    state.mkdir(exist_ok=True)
    (state / "telemetry.json").write_text(json.dumps({
        "consecutiveFailures": 3,
        "lastRun": datetime.now(UTC).isoformat(),
        "cooldown": True,
        "reason": "Too many consecutive apply failures",
    }))


class TestTopLevel:
    def test_version(self):
        result = runner.invoke(app, ["--version"])
        assert result.exit_code == 0
        assert __version__ in result.output

    def test_help_lists_commands(self):
        result = runner.invoke(app, ["--help"])
        assert result.exit_code == 0
        for command in ("apply", "validate", "doctor", "history", "chains"):
            assert command in result.output

    def test_apply_help(self):
        result = runner.invoke(app, ["apply", "--help"])
        assert result.exit_code == 0
        for flag in ("--dry-run", "--diff", "--atomic", "--summary", "--silent", "--json"):
            assert flag in result.output


class TestApplyCommand:
    def test_apply(self, workspace):
        result = runner.invoke(app, ["apply", "epic.md"])
        assert result.exit_code == 0, result.output
        assert "Your changes were safely planted." in result.output
        assert (workspace / "app.py").read_text() == "print('hi')\n"

    def test_dry_run(self, workspace):
        result = runner.invoke(app, ["apply", "epic.md", "--dry-run"])
        assert result.exit_code == 0
        assert "Dry run complete" in result.output
        assert (workspace / "app.py").read_text() == "print('hello')\n"

    def test_missing_epic_exits_nonzero(self, workspace):
        result = runner.invoke(app, ["apply", "missing.md"])
        assert result.exit_code == 1
        assert "E002" in result.output
        assert "Try running with --dry-run to debug" in result.output

    def test_unsupported_kind(self, workspace):
        (workspace / "weird.md").write_text(
            "Summary\ns\n\nFile Edits\napp.py\nrewrite\nhello\nwith\nhi\n"
        )
        assert runner.invoke(app, ["apply", "weird.md"]).exit_code == 1
        assert runner.invoke(app, ["apply", "weird.md", "--dry-run"]).exit_code == 0

    def test_json_output(self, workspace):
        result = runner.invoke(app, ["apply", "epic.md", "--json"])
        assert result.exit_code == 0
        payload = json.loads(result.stdout)
        assert payload["command"] == "applyEpic"
        assert payload["success"] is True
        assert payload["perEditStatus"][0]["status"] == "applied"
        assert payload["summary"] == "Swap greeting"

    def test_cooldown_exits_zero(self, workspace):
        _trip(workspace)
        result = runner.invoke(app, ["apply", "epic.md"])
        assert result.exit_code == 0
        assert "Cooldown Active" in result.output
        assert (workspace / "app.py").read_text() == "print('hello')\n"

    def test_state_written_under_workspace(self, workspace):
        runner.invoke(app, ["apply", "epic.md"])
        assert (workspace / ".runsafe" / "telemetry.json").exists()
        assert (workspace / ".runsafe" / "paste.log.json").exists()
        assert (workspace / ".runsafe" / "runtime.jsonl").exists()

    def test_bad_config(self, workspace):
        (workspace / ".runsafe.toml").write_text("[safety\n")
        result = runner.invoke(app, ["apply", "epic.md"])
        assert result.exit_code == 1
        assert "Error loading config" in result.output


class TestValidateCommand:
    def test_valid(self, workspace):
        (workspace / "epic.json").write_text('{"summary": "s", "edits": []}')
        result = runner.invoke(app, ["validate", "epic.json"])
        assert result.exit_code == 0
        assert "Validation passed" in result.output

    def test_invalid_json(self, workspace):
        (workspace / "epic.json").write_text("{nope")
        result = runner.invoke(app, ["validate", "epic.json"])
        assert result.exit_code == 1
        assert "Invalid JSON format" in result.output

    def test_council(self, workspace):
        (workspace / "epic.json").write_text('{"summary": "s", "edits": []}')
        result = runner.invoke(app, ["validate", "epic.json", "--council", "--deterministic"])
        assert result.exit_code == 0
        assert "Council approved this epic." in result.output


class TestDoctorCommand:
    def test_no_runs(self, workspace):
        result = runner.invoke(app, ["doctor"])
        assert result.exit_code == 0
        assert "No recent runs found." in result.output
        assert "Safety state reset." in result.output

    def test_non_utf8_runtime_log(self, workspace):
        state = workspace / ".runsafe"
        state.mkdir()
        (state / "runtime.jsonl").write_bytes(b"\xff\xfe{garbage\n")

        result = runner.invoke(app, ["doctor"])
        assert result.exit_code == 0
        assert "No recent runs found." in result.output
        assert "Safety state reset." in result.output

    def test_resets_cooldown(self, workspace):
        _trip(workspace)
        runner.invoke(app, ["apply", "epic.md"])

        result = runner.invoke(app, ["doctor"])
        assert result.exit_code == 0
        assert "applyEpic" in result.output
        state = json.loads((workspace / ".runsafe" / "telemetry.json").read_text())
        assert state["cooldown"] is False
        assert state["consecutiveFailures"] == 0

        applied = runner.invoke(app, ["apply", "epic.md"])
        assert applied.exit_code == 0
        assert (workspace / "app.py").read_text() == "print('hi')\n"


class TestHistoryCommand:
    def test_empty(self, workspace):
        result = runner.invoke(app, ["history"])
        assert result.exit_code == 0
        assert "No history found." in result.output

    def test_lists_applies(self, workspace):
        runner.invoke(app, ["apply", "epic.md"])
        result = runner.invoke(app, ["history"])
        assert result.exit_code == 0
        assert "epic.md" in result.output
        assert "History (1 of 1)" in result.output


class TestChainsCommand:
    def test_missing_chain_file(self, workspace):
        result = runner.invoke(app, ["chains"])
        assert result.exit_code == 1
        assert "No chain file found" in result.output

    def test_runs_chain(self, workspace):
        (workspace / "runsafe.chain.yml").write_text("chain:\n  - file: epic.md\n")
        result = runner.invoke(app, ["chains"])
        assert result.exit_code == 0
        assert "Chain completed successfully." in result.output
        assert (workspace / "app.py").read_text() == "print('hi')\n"
