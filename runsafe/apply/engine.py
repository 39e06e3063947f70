"""Apply engine: drives an epic against the workspace.

Coordinates the cooldown gate, epic parsing, workspace guardrails,
per-file edit accumulation, commit or preview, atomic rollback, and
outcome recording. File and state I/O is awaited strictly in sequence;
writes happen one path at a time in first-seen order.
"""

from __future__ import annotations

import logging
import time
from pathlib import Path

from runsafe.apply.diff import preview_diff, unified_diff
from runsafe.apply.parser import parse_epic
from runsafe.apply.patcher import apply_edit, edit_applies
from runsafe.apply.workspace import Workspace, is_binary
from runsafe.config import ApplySettings
from runsafe.display import Reporter
from runsafe.errors import (
    DRY_RUN_HINT,
    DocumentReadFailure,
    ErrorCode,
    GuardrailViolation,
    InvalidDocument,
    RunSafeError,
    UnsupportedEditKind,
    WriteFailure,
)
from runsafe.safety.logs import StateLogs
from runsafe.safety.store import SafetyStateStore
from runsafe.schemas.epic import (
    EditDescription,
    EditOutcome,
    EditStatus,
    FileChangeState,
)
from runsafe.schemas.result import ApplyOptions, CommandResult, ErrorDetail
from runsafe.schemas.safety import AuditEntry, HistoryEntry, InvocationEvent

logger = logging.getLogger(__name__)

COMMAND_NAME = "applyEpic"


class ApplyEngine:
    """Applies one epic document per ``run`` call.

    Modes:
    - preview (``dry_run``): compute buffers, never write, never touch
      the failure counter
    - commit (default): write each touched file in order; a failed
      write stops further writes and leaves earlier ones in place
    - atomic: as commit, but any failure restores every file whose write
      was attempted in this run, including the one that failed, from its
      pre-run snapshot
    """

    def __init__(
        self,
        store: SafetyStateStore,
        logs: StateLogs,
        workspace: Workspace,
        reporter: Reporter,
        config: ApplySettings | None = None,
    ) -> None:
        self._store = store
        self._logs = logs
        self._workspace = workspace
        self._reporter = reporter
        self._config = config or ApplySettings()

    async def run(self, epic_file: str, options: ApplyOptions | None = None) -> CommandResult:
        """Execute the full apply flow.

        Flow:
        1. Audit + invocation event, cooldown gate
        2. Read and parse the epic
        3. Guardrails and per-file edit application
        4. Preview, or commit (with rollback when atomic)
        5. Record outcome, post-run audit

        Returns:
            CommandResult describing the run.

        Raises:
            UnsupportedEditKind: After it has been recorded and reported.
        """
        options = options or ApplyOptions()
        result = CommandResult(command=COMMAND_NAME, dry_run=options.dry_run)
        args = {"file": epic_file, "options": options.model_dump()}

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
            await self._apply(epic_file, options, result)
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

    # ── Flow steps ───────────────────────────────────────────────

    async def _apply(self, epic_file: str, options: ApplyOptions, result: CommandResult) -> None:
        try:
            epic = await self._read_epic(epic_file)
        except RunSafeError as e:
            await self._fail(result, e, options)
            return

        result.summary = epic.summary
        self._reporter.info(f"Summary:\n{epic.summary}")

        changes: dict[str, FileChangeState] = {}
        touched: list[str] = []
        try:
            await self._stage_edits(epic, options, changes, result)
            result.files = [self._workspace.relative(p) for p in changes]

            if options.dry_run:
                self._reporter.dry_run_notice()
                return

            await self._commit(changes, options, touched)
        except UnsupportedEditKind as e:
            await self._fail(result, e, options)
            raise
        except WriteFailure as e:
            await self._fail(result, e, options)
            if options.atomic:
                await self._rollback(changes, touched, result)
            return

        bytes_changed = sum(state.bytes_changed for state in changes.values())
        self._reporter.success("Your changes were safely planted.")
        await self._logs.append_history(HistoryEntry(
            file=epic_file,
            summary=epic.summary,
            bytes_changed=bytes_changed,
            atomic=options.atomic,
        ))
        await self._store.record_success()
        logger.info(
            "Applied %d edit(s) across %d file(s), %d bytes changed",
            len(epic.edits), len(changes), bytes_changed,
        )

    async def _read_epic(self, epic_file: str) -> EditDescription:
        path = Path(epic_file)
        if not path.is_absolute():
            path = self._workspace.root / path
        try:
            text = await self._workspace.read_text(path)
        except UnicodeDecodeError as e:
            raise InvalidDocument(f"Epic is not valid UTF-8: {e}") from e
        except OSError as e:
            raise DocumentReadFailure(str(e)) from e
        if not text.strip():
            raise InvalidDocument("Invalid epic")
        return parse_epic(text)

    async def _stage_edits(
        self,
        epic: EditDescription,
        options: ApplyOptions,
        changes: dict[str, FileChangeState],
        result: CommandResult,
    ) -> None:
        """Apply every edit to its file's accumulating buffer.

        Each distinct path is read once; later edits against the same
        path match against the output of earlier ones.
        """
        for edit in epic.edits:
            path = self._workspace.resolve(edit.file_path)
            key = str(path)

            state = changes.get(key)
            if state is None:
                state = await self._load(path, edit.file_path)
                changes[key] = state

            before = state.working_content
            state.working_content = apply_edit(before, edit)
            status = EditStatus.APPLIED if edit_applies(before, edit) else EditStatus.SKIPPED
            result.per_edit_status.append(
                EditOutcome(file_path=edit.file_path, kind=edit.kind, status=status)
            )
            logger.debug("%s %s -> %s", edit.kind, edit.file_path, status)

            if options.dry_run:
                self._reporter.info(f"{edit.file_path} -> {edit.kind}")
                self._reporter.diff(
                    preview_diff(state.original_content, state.working_content),
                    edit.file_path,
                )

    async def _load(self, path: Path, file_path: str) -> FileChangeState:
        try:
            data = await self._workspace.read_bytes(path)
        except OSError as e:
            raise WriteFailure(f"Cannot read {file_path}: {e}") from e
        if is_binary(data):
            raise GuardrailViolation(f"Binary file {file_path} not allowed")
        try:
            text = data.decode("utf-8")
        except UnicodeDecodeError:
            raise GuardrailViolation(f"File {file_path} is not valid UTF-8") from None
        return FileChangeState(
            absolute_path=str(path), original_content=text, working_content=text,
        )

    async def _commit(
        self,
        changes: dict[str, FileChangeState],
        options: ApplyOptions,
        touched: list[str],
    ) -> None:
        """Write each file in first-seen order.

        A path is added to ``touched`` before its write starts, so a write
        that fails part-way is restored along with the completed ones.
        """
        for key, state in changes.items():
            rel = self._workspace.relative(key)
            if options.diff:
                self._reporter.diff(
                    unified_diff(
                        state.original_content, state.working_content, rel,
                        max_lines=self._config.diff_max_lines,
                    ),
                    rel,
                )
            touched.append(key)
            try:
                await self._workspace.write_text(Path(key), state.working_content)
            except OSError as e:
                raise WriteFailure(f"Failed to write {rel}: {e}") from e

    async def _rollback(
        self,
        changes: dict[str, FileChangeState],
        touched: list[str],
        result: CommandResult,
    ) -> None:
        """Restore every touched file to its pre-run content.

        Best-effort: a failed restore is reported and the rest continue.
        """
        for key in touched:
            try:
                await self._workspace.write_text(Path(key), changes[key].original_content)
            except OSError as e:
                logger.warning("Rollback of %s failed: %s", key, e)
                self._reporter.error(
                    f"Rollback of {self._workspace.relative(key)} failed: {e}"
                )
        result.rolled_back = True
        self._reporter.error("Rolled back changes due to failure")
        logger.info("Rolled back %d file(s)", len(touched))

    async def _fail(self, result: CommandResult, error: RunSafeError, options: ApplyOptions) -> None:
        """Report a terminal failure and record it unless previewing."""
        result.fail(error.message, error.code)
        self._reporter.error(f"[{error.code}] {error.message}")
        if not options.dry_run:
            self._reporter.error(DRY_RUN_HINT)
            await self._store.record_failure(ErrorDetail(message=error.message, code=error.code))
        logger.info("Apply failed [%s]: %s", error.code, error.message)
