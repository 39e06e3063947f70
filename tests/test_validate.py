"""Tests for epic validation and the council gate."""

from __future__ import annotations

import io
import json

import pytest
from rich.console import Console

from runsafe.apply.workspace import Workspace
from runsafe.council.reviewers import StaticReviewer
from runsafe.council.voting import ReviewCouncil
from runsafe.display import Reporter
from runsafe.errors import ErrorCode
from runsafe.safety.logs import StateLogs
from runsafe.safety.store import SafetyStateStore
from runsafe.schemas.council import Vote
from runsafe.schemas.result import ValidateOptions
from runsafe.validate import COMMAND_NAME, ValidationRunner, validate_schema

_VALID = {"summary": "Rename things", "edits": []}


@pytest.fixture
def state_path(tmp_path):
    return tmp_path / ".runsafe"


@pytest.fixture
def logs(state_path):
    return StateLogs(state_path)


@pytest.fixture
def store(state_path, logs):
    return SafetyStateStore(state_path, logs=logs, memory_probe=lambda: 0)


@pytest.fixture
def output():
    return io.StringIO()


def _runner(tmp_path, store, logs, output, council=None) -> ValidationRunner:
    reporter = Reporter(Console(file=output, width=200, no_color=True))
    return ValidationRunner(store, logs, Workspace(tmp_path), reporter, council)


def _write(tmp_path, content) -> str:
    text = content if isinstance(content, str) else json.dumps(content)
    (tmp_path / "epic.json").write_text(text)
    return "epic.json"


class TestValidateSchema:
    def test_valid(self):
        assert validate_schema(_VALID).valid is True

    def test_not_an_object(self):
        result = validate_schema([1, 2])
        assert result.valid is False
        assert result.errors == ["Epic must be an object"]

    def test_missing_summary(self):
        assert validate_schema({"edits": []}).errors == ["Missing summary"]

    def test_missing_edits(self):
        assert validate_schema({"summary": "s"}).errors == ["Missing edits"]

    def test_edits_must_be_list(self):
        assert validate_schema({"summary": "s", "edits": "x"}).valid is False


class TestValidationRunner:
    @pytest.mark.asyncio
    async def test_valid_epic(self, tmp_path, store, logs, output):
        result = await _runner(tmp_path, store, logs, output).run(_write(tmp_path, _VALID))

        assert result.success is True
        assert result.command == COMMAND_NAME
        assert result.summary == "Rename things"
        assert "Validation passed. You're good to go!" in output.getvalue()
        assert (await store.state()).consecutive_failures == 0

    @pytest.mark.asyncio
    async def test_missing_file(self, tmp_path, store, logs, output):
        result = await _runner(tmp_path, store, logs, output).run("absent.json")

        assert result.error_code == ErrorCode.FILE_READ_FAIL
        assert result.errors[-1].message == "Epic file not found"
        assert "Try running with --dry-run to debug" in output.getvalue()
        assert (await store.state()).consecutive_failures == 1

    @pytest.mark.asyncio
    async def test_invalid_json(self, tmp_path, store, logs, output):
        result = await _runner(tmp_path, store, logs, output).run(_write(tmp_path, "{oops"))
        assert result.error_code == ErrorCode.INVALID_EPIC
        assert result.errors[-1].message == "Invalid JSON format"

    @pytest.mark.asyncio
    async def test_schema_failure_lists_details(self, tmp_path, store, logs, output):
        result = await _runner(tmp_path, store, logs, output).run(
            _write(tmp_path, {"summary": "s"}),
        )
        assert result.error_code == ErrorCode.INVALID_EPIC
        assert result.errors[-1].message == "Epic schema validation failed"
        assert "Missing edits" in output.getvalue()

    @pytest.mark.asyncio
    async def test_council_approves(self, tmp_path, store, logs, output):
        council = ReviewCouncil([StaticReviewer("A"), StaticReviewer("B")])
        result = await _runner(tmp_path, store, logs, output, council).run(
            _write(tmp_path, _VALID), ValidateOptions(council=True),
        )
        assert result.success is True
        assert "Council approved this epic." in output.getvalue()

    @pytest.mark.asyncio
    async def test_council_rejects(self, tmp_path, store, logs, output):
        council = ReviewCouncil([
            StaticReviewer("A", Vote.REJECTED, note="Edits exceed summary"),
            StaticReviewer("B", Vote.ABSTAIN),
        ])
        result = await _runner(tmp_path, store, logs, output, council).run(
            _write(tmp_path, _VALID), ValidateOptions(council=True),
        )

        assert result.success is False
        assert result.error_code == ErrorCode.VALIDATION_REJECTED
        text = output.getvalue()
        assert "A: Edits exceed summary" in text
        assert "Council rejected this epic." in text
        assert "--dry-run" not in text

    @pytest.mark.asyncio
    async def test_council_not_consulted_without_flag(self, tmp_path, store, logs, output):
        council = ReviewCouncil([StaticReviewer("A", Vote.REJECTED)])
        result = await _runner(tmp_path, store, logs, output, council).run(
            _write(tmp_path, _VALID),
        )
        assert result.success is True

    @pytest.mark.asyncio
    async def test_cooldown_blocks_validation(self, tmp_path, store, logs, output):
        for _ in range(3):
            await store.record_failure()

        result = await _runner(tmp_path, store, logs, output).run(_write(tmp_path, _VALID))

        assert result.cooldown is True
        assert result.error_code == ErrorCode.COOLDOWN_ACTIVE
        assert "Cooldown Active" in output.getvalue()

    @pytest.mark.asyncio
    async def test_audit_records_error(self, tmp_path, store, logs, output):
        await _runner(tmp_path, store, logs, output).run("absent.json")

        runs = await logs.recent_runs()
        assert [r.command_name for r in runs] == [COMMAND_NAME, COMMAND_NAME]
        assert runs[0].args["epicFilePath"] == "absent.json"
        assert runs[1].error == "Epic file not found"
