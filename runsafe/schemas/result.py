"""Command option and result schemas.

``CommandResult`` is the structured surface the apply and validate
commands hand to the presentation layer and to ``--json`` consumers.
"""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field

from runsafe.errors import ErrorCode
from runsafe.schemas.epic import EditOutcome


class ApplyOptions(BaseModel):
    """CLI flags container for the apply command."""

    dry_run: bool = Field(default=False, description="Compute edits but never write")
    diff: bool = Field(default=False, description="Print a unified diff before each write")
    atomic: bool = Field(default=False, description="Roll back every write if one fails")
    summary: bool = Field(default=False, description="Only print the final summary")
    silent: bool = Field(default=False, description="Suppress informational output")
    json_output: bool = Field(default=False, description="Emit a JSON result document")

    def flags(self) -> list[str]:
        """Names of the flags that are switched on."""
        return [name for name, value in self.model_dump().items() if value]


class ValidateOptions(BaseModel):
    """CLI flags container for the validate command."""

    council: bool = Field(default=False, description="Run the review council after schema checks")
    deterministic: bool = Field(default=False, description="Consult reviewers in sorted order")
    summary: bool = Field(default=False)
    silent: bool = Field(default=False)
    json_output: bool = Field(default=False)

    def flags(self) -> list[str]:
        return [name for name, value in self.model_dump().items() if value]


class ErrorDetail(BaseModel):
    """A reported failure with its machine-readable code."""

    message: str
    code: ErrorCode


class CommandResult(BaseModel):
    """Outcome of one apply or validate invocation."""

    model_config = ConfigDict(populate_by_name=True)

    command: str = Field(description="applyEpic or validateEpic")
    success: bool = Field(default=True)
    per_edit_status: list[EditOutcome] = Field(
        default_factory=list, alias="perEditStatus",
    )
    errors: list[ErrorDetail] = Field(default_factory=list)
    cooldown: bool = Field(default=False)
    cooldown_reason: str | None = Field(default=None, alias="cooldownReason")
    summary: str = Field(default="", description="Epic summary text")
    files: list[str] = Field(
        default_factory=list, description="Touched paths relative to the workspace",
    )
    rolled_back: bool = Field(default=False, alias="rolledBack")
    dry_run: bool = Field(default=False, alias="dryRun")

    def fail(self, message: str, code: ErrorCode) -> None:
        """Mark the result failed and record the error."""
        self.success = False
        self.errors.append(ErrorDetail(message=message, code=code))

    @property
    def error_code(self) -> ErrorCode | None:
        return self.errors[-1].code if self.errors else None
