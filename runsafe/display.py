"""Presentation layer for RunSafe commands.

All terminal output of the apply and validate commands goes through a
``Reporter``. The output mode decides what reaches the console:

- ``normal``: everything
- ``silent``: errors only
- ``summary``: only the final summary table
- ``json``: only the final structured result

A failure while rendering never propagates into the command; the
message is written to stderr instead.
"""

from __future__ import annotations

import json
import logging
import sys
from enum import StrEnum

from rich.console import Console
from rich.panel import Panel
from rich.table import Table
from rich.text import Text

from runsafe.schemas.epic import EditStatus
from runsafe.schemas.result import CommandResult

logger = logging.getLogger(__name__)


def render_diff(diff: str) -> Text:
    """Colorize diff text for a Rich console."""
    text = Text()
    for line in diff.splitlines():
        if line.startswith("+"):
            text.append(f"{line}\n", style="green")
        elif line.startswith("-"):
            text.append(f"{line}\n", style="red")
        elif line.startswith("@@"):
            text.append(f"{line}\n", style="cyan")
        else:
            text.append(f"{line}\n")
    return text


class OutputMode(StrEnum):
    NORMAL = "normal"
    SILENT = "silent"
    SUMMARY = "summary"
    JSON = "json"


class Reporter:
    """Routes command output to a Rich console according to the output mode."""

    def __init__(self, console: Console | None = None, mode: OutputMode = OutputMode.NORMAL) -> None:
        self._console = console or Console()
        self._mode = mode

    @classmethod
    def for_flags(
        cls,
        console: Console | None = None,
        *,
        json_output: bool = False,
        summary: bool = False,
        silent: bool = False,
    ) -> Reporter:
        """Pick the mode from CLI flags; JSON wins over summary over silent."""
        if json_output:
            mode = OutputMode.JSON
        elif summary:
            mode = OutputMode.SUMMARY
        elif silent:
            mode = OutputMode.SILENT
        else:
            mode = OutputMode.NORMAL
        return cls(console, mode)

    @property
    def mode(self) -> OutputMode:
        return self._mode

    @property
    def verbose(self) -> bool:
        return self._mode == OutputMode.NORMAL

    # ── Fallback ─────────────────────────────────────────────────

    def _emit(self, renderable, fallback: str) -> None:
        try:
            self._console.print(renderable)
        except Exception as e:
            logger.debug("Console output failed: %s", e)
            sys.stderr.write(f"{fallback}\n")

    # ── Message calls ────────────────────────────────────────────

    def info(self, message: str) -> None:
        if self.verbose:
            self._emit(Text(message, style="cyan"), message)

    def success(self, message: str) -> None:
        if self.verbose:
            self._emit(Text(message, style="bold green"), message)

    def warn(self, message: str) -> None:
        if self.verbose:
            self._emit(Text(message, style="yellow"), message)

    def error(self, message: str) -> None:
        if self._mode in (OutputMode.NORMAL, OutputMode.SILENT):
            self._emit(Text(message, style="red"), message)

    def dry_run_notice(self) -> None:
        if self.verbose:
            message = "Dry run complete. No files were modified."
            self._emit(Text(message, style="bold yellow"), message)

    def cooldown_warning(self, reason: str | None = None) -> None:
        if not self.verbose:
            return
        body = "RunSafe is in a safety cooldown. Mutating commands are paused."
        if reason:
            body += f"\nReason: {reason}"
        self._emit(
            Panel(body, title="[bold cyan]Cooldown Active[/bold cyan]", border_style="cyan"),
            f"Cooldown Active: {body}",
        )

    def diff(self, diff: str, title: str = "") -> None:
        if self.verbose and diff:
            renderable = Panel(
                render_diff(diff),
                title=f"[bold yellow]DIFF[/bold yellow] {title}",
                border_style="yellow",
            )
            self._emit(renderable, diff)

    # ── Final result ─────────────────────────────────────────────

    def summary(self, result: CommandResult) -> None:
        """Compact outcome table, one row per edit."""
        table = Table(title=f"{result.command} summary")
        table.add_column("File", style="cyan")
        table.add_column("Edit")
        table.add_column("Status")
        for outcome in result.per_edit_status:
            style = "green" if outcome.status == EditStatus.APPLIED else "dim"
            table.add_row(outcome.file_path, outcome.kind, Text(outcome.status, style=style))

        status = Text("SUCCESS", style="bold green") if result.success else Text(
            "FAILED", style="bold red",
        )
        lines = [f"Result: {status.plain}"]
        if result.cooldown:
            reason = result.cooldown_reason
            lines.append(f"Cooldown active: {reason}" if reason else "Cooldown active")
        for err in result.errors:
            lines.append(f"Error [{err.code}]: {err.message}")

        fallback = "\n".join(lines)
        try:
            if result.per_edit_status:
                self._console.print(table)
            self._console.print(status)
            for line in lines[1:]:
                self._console.print(line, markup=False)
        except Exception as e:
            logger.debug("Summary output failed: %s", e)
            sys.stderr.write(f"{fallback}\n")

    def json_result(self, result: CommandResult) -> None:
        """Machine-readable result document."""
        payload = {
            "command": result.command,
            "success": result.success,
            "perEditStatus": [
                o.model_dump(mode="json", by_alias=True) for o in result.per_edit_status
            ],
            "errors": [e.model_dump(mode="json") for e in result.errors],
            "cooldown": result.cooldown,
            "cooldownReason": result.cooldown_reason,
            "summary": result.summary,
        }
        text = json.dumps(payload)
        try:
            self._console.print_json(text)
        except Exception as e:
            logger.debug("JSON output failed: %s", e)
            sys.stderr.write(f"{text}\n")

    def finish(self, result: CommandResult) -> None:
        """Emit the final result in the form the output mode asks for."""
        if self._mode == OutputMode.SUMMARY:
            self.summary(result)
        elif self._mode == OutputMode.JSON:
            self.json_result(result)
