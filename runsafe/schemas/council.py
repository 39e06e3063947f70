"""Council schemas: reviewer votes and the aggregated verdict."""

from __future__ import annotations

from enum import StrEnum

from pydantic import BaseModel, Field


class Vote(StrEnum):
    """A single reviewer's vote."""

    APPROVED = "approved"
    REJECTED = "rejected"
    ABSTAIN = "abstain"


class Decision(StrEnum):
    """Outcome of a council review."""

    APPROVED = "approved"
    REJECTED = "rejected"


class ReviewerVote(BaseModel):
    """What one reviewer returned."""

    vote: Vote | None = Field(default=None, description="None means no vote was cast")
    note: str = Field(default="", description="Free-text rationale")


class CouncilVerdict(BaseModel):
    """Aggregated council decision. Computed per review, never persisted."""

    decision: Decision = Field(description="approved or rejected")
    votes: list[Vote | None] = Field(
        default_factory=list, description="Votes in consultation order",
    )
    notes: list[str] = Field(default_factory=list, description="Notes in consultation order")
    reviewers: list[str] = Field(
        default_factory=list, description="Reviewer names in consultation order",
    )

    @property
    def approved(self) -> bool:
        return self.decision == Decision.APPROVED
