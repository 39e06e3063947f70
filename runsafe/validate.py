"""Epic validation: JSON schema check plus the optional review council.

The validation path reads a JSON epic (``{"summary": str, "edits": [...]}``),
checks its structure, and, when asked, puts it before the council.
It is gated by the same cooldown breaker as apply.
"""

from __future__ import annotations

import json
import logging
import time
from pathlib import Path
from typing import Any

from pydantic import BaseModel, Field

from runsafe.apply.workspace import Workspace
from runsafe.council.reviewers import build_reviewers
from runsafe.council.voting import ReviewCouncil
from runsafe.config import CouncilConfig
from runsafe.display import Reporter
from runsafe.errors import DRY_RUN_HINT, ErrorCode
from runsafe.safety.logs import StateLogs
from runsafe.safety.store import SafetyStateStore
from runsafe.schemas.result import CommandResult, ErrorDetail, ValidateOptions
from runsafe.schemas.safety import AuditEntry, InvocationEvent

logger = logging.getLogger(__name__)

COMMAND_NAME = "validateEpic"


class SchemaResult(BaseModel):
    """Outcome of the structural epic check."""

    valid: bool
    errors: list[str] = Field(default_factory=list)


def validate_schema(epic: Any) -> SchemaResult:
    """Check that ``epic`` is an object with a string summary and an edit list."""
    if not isinstance(epic, dict):
        return SchemaResult(valid=False, errors=["Epic must be an object"])
    if not isinstance(epic.get("summary"), str):
        return SchemaResult(valid=False, errors=["Missing summary"])
    if not isinstance(epic.get("edits"), list):
        return SchemaResult(valid=False, errors=["Missing edits"])
    return SchemaResult(valid=True)


class ValidationRunner:
    """Runs the validate command for one epic file."""

    def __init__(
        self,
        store: SafetyStateStore,
        logs: StateLogs,
        workspace: Workspace,
        reporter: Reporter,
        council: ReviewCouncil | None = None,
    ) -> None:
        self._store = store
        self._logs = logs
        self._workspace = workspace
        self._reporter = reporter
        self._council = council

    async def run(self, epic_file: str, options: ValidateOptions | None = None) -> CommandResult:
        """Validate an epic file.

        Returns:
            CommandResult; ``success`` is False on cooldown, read failure,
            invalid JSON, schema failure, or council rejection.
        """
        options = options or ValidateOptions()
        result = CommandResult(command=COMMAND_NAME)
        args = {"epicFilePath": epic_file, "options": options.model_dump()}

        cooldown_reason = await self._store.cooldown_reason()
        await self._logs.append_audit(AuditEntry(
            command_name=COMMAND_NAME, args=args, cooldown_reason=cooldown_reason,
        ))
        await self._logs.append_event(InvocationEvent(
            command=COMMAND_NAME,
            timestamp=int(time.time() * 1000),
            flags=options.flags(),
        ))

        try:
            if await self._store.is_in_cooldown():
                result.cooldown = True
                result.cooldown_reason = cooldown_reason
                result.fail("Cooldown active", ErrorCode.COOLDOWN_ACTIVE)
                self._reporter.cooldown_warning(cooldown_reason)
                return result
            await self._validate(epic_file, options, result)
        finally:
            last = result.errors[-1] if result.errors else None
            await self._logs.append_audit(AuditEntry(
                command_name=COMMAND_NAME,
                args=args,
                cooldown_reason=cooldown_reason,
                error=last.message if last else None,
                error_code=last.code if last else None,
            ))
            self._reporter.finish(result)
        return result

    async def _validate(
        self, epic_file: str, options: ValidateOptions, result: CommandResult,
    ) -> None:
        path = Path(epic_file)
        if not path.is_absolute():
            path = self._workspace.root / path

        try:
            raw = await self._workspace.read_text(path)
        except (OSError, UnicodeDecodeError) as e:
            logger.debug("Could not read %s: %s", path, e)
            await self._fail(result, "Epic file not found", ErrorCode.FILE_READ_FAIL)
            return

        try:
            epic = json.loads(raw)
        except json.JSONDecodeError:
            await self._fail(result, "Invalid JSON format", ErrorCode.INVALID_EPIC)
            return

        if isinstance(epic, dict) and isinstance(epic.get("summary"), str):
            result.summary = epic["summary"]

        schema = validate_schema(epic)
        if not schema.valid:
            for detail in schema.errors:
                self._reporter.error(f"  - {detail}")
            await self._fail(result, "Epic schema validation failed", ErrorCode.INVALID_EPIC)
            return

        self._reporter.success("Validation passed. You're good to go!")
        await self._store.record_success()

        if not options.council:
            return

        council = self._council or ReviewCouncil(
            build_reviewers(CouncilConfig()), deterministic=options.deterministic,
        )
        verdict = await council.review(raw)
        if not verdict.approved:
            for name, note in zip(verdict.reviewers, verdict.notes):
                if note:
                    self._reporter.info(f"{name}: {note}")
            await self._fail(
                result, "Council rejected this epic.", ErrorCode.VALIDATION_REJECTED,
            )
            return
        self._reporter.info("Council approved this epic.")

    async def _fail(self, result: CommandResult, message: str, code: ErrorCode) -> None:
        result.fail(message, code)
        self._reporter.error(f"[{code}] {message}")
        if code != ErrorCode.VALIDATION_REJECTED:
            self._reporter.error(DRY_RUN_HINT)
        await self._store.record_failure(ErrorDetail(message=message, code=code))
