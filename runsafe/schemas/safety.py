"""Safety schemas: the persisted breaker state and the append-only log records.

Field names on disk are camelCase, shared with other tooling that reads
the state directory, so each model declares aliases and is dumped with
``by_alias=True``.
"""

from __future__ import annotations

from datetime import UTC, datetime
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator


def utc_now_iso() -> str:
    """Current UTC time as an ISO-8601 string."""
    return datetime.now(UTC).isoformat()


class SafetyState(BaseModel):
    """Failure counter and cooldown flag of the circuit breaker."""

    model_config = ConfigDict(populate_by_name=True)

    consecutive_failures: int = Field(
        default=0, ge=0, alias="consecutiveFailures",
        description="Failures recorded since the last success or reset",
    )
    last_run: str = Field(
        default_factory=utc_now_iso, alias="lastRun",
        description="ISO timestamp of the last recorded outcome",
    )
    cooldown: bool = Field(default=False, description="Whether the breaker is tripped")
    reason: str | None = Field(
        default=None, description="Trip reason captured when the breaker tripped",
    )

    @field_validator("last_run")
    @classmethod
    def _check_last_run(cls, value: str) -> str:
        datetime.fromisoformat(value.replace("Z", "+00:00"))
        return value

    def last_run_at(self) -> datetime:
        """Parse ``last_run``; naive timestamps are taken as UTC."""
        parsed = datetime.fromisoformat(self.last_run.replace("Z", "+00:00"))
        if parsed.tzinfo is None:
            parsed = parsed.replace(tzinfo=UTC)
        return parsed


class AuditEntry(BaseModel):
    """One line of the runtime audit log."""

    model_config = ConfigDict(populate_by_name=True)

    timestamp: str = Field(default_factory=utc_now_iso)
    command_name: str = Field(alias="commandName")
    args: dict[str, Any] = Field(default_factory=dict)
    cooldown_reason: str | None = Field(default=None, alias="cooldownReason")
    error: str | None = None
    error_code: str | None = Field(default=None, alias="errorCode")


class HistoryEntry(BaseModel):
    """One committed application, appended to the history log."""

    model_config = ConfigDict(populate_by_name=True)

    timestamp: str = Field(default_factory=utc_now_iso)
    file: str = Field(description="Epic document the edits came from")
    summary: str = Field(default="")
    bytes_changed: int = Field(default=0, alias="bytesChanged")
    atomic: bool = Field(default=False)


class InvocationEvent(BaseModel):
    """One line of the invocation event log."""

    command: str
    timestamp: int = Field(description="Epoch milliseconds")
    flags: list[str] = Field(default_factory=list)
