"""Error codes and exception types for RunSafe.

Every terminal failure carries a machine-readable ErrorCode so the
presentation layer, the audit log, and automation consumers can tell
an unsupported edit apart from an ordinary write failure.
"""

from __future__ import annotations

from enum import StrEnum


class ErrorCode(StrEnum):
    """Machine-readable failure codes surfaced in results and logs."""

    INVALID_EPIC = "E001"
    FILE_READ_FAIL = "E002"
    WRITE_FAIL = "E003"
    UNSUPPORTED_EDIT = "E004"
    COOLDOWN_ACTIVE = "E005"
    VALIDATION_REJECTED = "E006"


DRY_RUN_HINT = "Try running with --dry-run to debug"


class RunSafeError(Exception):
    """Base class for failures that terminate a command run."""

    code: ErrorCode = ErrorCode.WRITE_FAIL

    def __init__(self, message: str, code: ErrorCode | None = None) -> None:
        super().__init__(message)
        self.message = message
        if code is not None:
            self.code = code


class DocumentReadFailure(RunSafeError):
    """The epic document could not be read."""

    code = ErrorCode.FILE_READ_FAIL


class InvalidDocument(RunSafeError):
    """The epic document is malformed or fails the schema check."""

    code = ErrorCode.INVALID_EPIC


class UnsupportedEditKind(RunSafeError):
    """An edit names a kind the applier does not know.

    This is a contract error rather than an operational one: the apply
    engine records it like any other failure and then re-raises it.
    """

    code = ErrorCode.UNSUPPORTED_EDIT

    def __init__(self, kind: str) -> None:
        super().__init__(f"Unsupported edit type {kind}")
        self.kind = kind


class WriteFailure(RunSafeError):
    """Writing a target file failed."""

    code = ErrorCode.WRITE_FAIL


class GuardrailViolation(WriteFailure):
    """An edit targets a path the workspace guardrails refuse."""
