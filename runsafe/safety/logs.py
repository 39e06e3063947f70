"""Append-only logs kept in the state directory.

- ``paste.log.json``: application history (a JSON array).
- ``runtime.jsonl``: audit log, one entry before and one after each command.
- ``telemetry.jsonl``: invocation events.

Writes are best-effort: an I/O error is logged and never fails the
command that produced the record. Files are read-modify-written without
locks, so concurrent invocations against one workspace can race.
"""

from __future__ import annotations

import asyncio
import json
import logging
from pathlib import Path

from pydantic import ValidationError

from runsafe.schemas.safety import AuditEntry, HistoryEntry, InvocationEvent

logger = logging.getLogger(__name__)

HISTORY_FILE = "paste.log.json"
AUDIT_FILE = "runtime.jsonl"
EVENTS_FILE = "telemetry.jsonl"


class StateLogs:
    """Reader/writer for the history, audit, and event logs."""

    def __init__(self, state_dir: Path) -> None:
        self._dir = Path(state_dir)

    @property
    def history_path(self) -> Path:
        return self._dir / HISTORY_FILE

    @property
    def audit_path(self) -> Path:
        return self._dir / AUDIT_FILE

    @property
    def events_path(self) -> Path:
        return self._dir / EVENTS_FILE

    # ── History ──────────────────────────────────────────────────

    def _load_history_raw(self) -> list | None:
        try:
            data = json.loads(self.history_path.read_text(encoding="utf-8"))
        except FileNotFoundError:
            return []
        except (OSError, UnicodeDecodeError, json.JSONDecodeError) as e:
            logger.warning("Unreadable history log %s: %s", self.history_path, e)
            return None
        return data if isinstance(data, list) else None

    def _read_history(self) -> list[HistoryEntry]:
        entries: list[HistoryEntry] = []
        for item in self._load_history_raw() or []:
            try:
                entries.append(HistoryEntry.model_validate(item))
            except ValidationError:
                logger.debug("Skipping malformed history entry: %r", item)
        return entries

    def _append_history(self, entry: HistoryEntry) -> None:
        raw = self._load_history_raw()
        if raw is None:
            logger.warning("Malformed %s, recreating", HISTORY_FILE)
            raw = []
        raw.append(entry.model_dump(by_alias=True))
        try:
            self._dir.mkdir(parents=True, exist_ok=True)
            self.history_path.write_text(json.dumps(raw, indent=2), encoding="utf-8")
        except OSError as e:
            logger.warning("Could not write history log: %s", e)
            return
        logger.info("Logged apply of %s to %s", entry.file, HISTORY_FILE)

    async def read_history(self) -> list[HistoryEntry]:
        """All readable history entries, oldest first."""
        loop = asyncio.get_running_loop()
        return await loop.run_in_executor(None, self._read_history)

    async def history_length(self) -> int:
        loop = asyncio.get_running_loop()
        raw = await loop.run_in_executor(None, self._load_history_raw)
        return len(raw or [])

    async def append_history(self, entry: HistoryEntry) -> None:
        loop = asyncio.get_running_loop()
        await loop.run_in_executor(None, self._append_history, entry)

    # ── Line-delimited logs ──────────────────────────────────────

    def _append_line(self, path: Path, payload: dict) -> None:
        try:
            self._dir.mkdir(parents=True, exist_ok=True)
            with open(path, "a", encoding="utf-8") as f:
                f.write(json.dumps(payload) + "\n")
        except OSError as e:
            logger.warning("Could not append to %s: %s", path, e)

    def _read_audit(self) -> list[AuditEntry]:
        try:
            data = self.audit_path.read_text(encoding="utf-8")
        except FileNotFoundError:
            return []
        except (OSError, UnicodeDecodeError) as e:
            logger.warning("Unreadable audit log %s: %s", self.audit_path, e)
            return []
        entries: list[AuditEntry] = []
        for line in data.splitlines():
            if not line.strip():
                continue
            try:
                entries.append(AuditEntry.model_validate_json(line))
            except ValidationError:
                logger.debug("Skipping malformed audit line: %r", line)
        return entries

    async def append_audit(self, entry: AuditEntry) -> None:
        loop = asyncio.get_running_loop()
        await loop.run_in_executor(
            None, self._append_line, self.audit_path,
            entry.model_dump(mode="json", by_alias=True),
        )

    async def recent_runs(self, limit: int = 10) -> list[AuditEntry]:
        """The last ``limit`` audit entries, oldest first."""
        loop = asyncio.get_running_loop()
        entries = await loop.run_in_executor(None, self._read_audit)
        return entries[-limit:] if limit > 0 else entries

    async def append_event(self, event: InvocationEvent) -> None:
        loop = asyncio.get_running_loop()
        await loop.run_in_executor(
            None, self._append_line, self.events_path, event.model_dump(mode="json"),
        )
