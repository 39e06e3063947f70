"""RunSafe schema definitions.

All Pydantic v2 models used by the apply engine, the safety store,
and the review council.
"""

from runsafe.schemas.council import (
    CouncilVerdict,
    Decision,
    ReviewerVote,
    Vote,
)
from runsafe.schemas.epic import (
    Edit,
    EditDescription,
    EditKind,
    EditOutcome,
    EditStatus,
    FileChangeState,
)
from runsafe.schemas.result import (
    ApplyOptions,
    CommandResult,
    ErrorDetail,
    ValidateOptions,
)
from runsafe.schemas.safety import (
    AuditEntry,
    HistoryEntry,
    InvocationEvent,
    SafetyState,
)

__all__ = [
    "ApplyOptions",
    "AuditEntry",
    "CommandResult",
    "CouncilVerdict",
    "Decision",
    "Edit",
    "EditDescription",
    "EditKind",
    "EditOutcome",
    "EditStatus",
    "ErrorDetail",
    "FileChangeState",
    "HistoryEntry",
    "InvocationEvent",
    "ReviewerVote",
    "SafetyState",
    "ValidateOptions",
    "Vote",
]
