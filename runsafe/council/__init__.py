"""Review council for epic validation.

Combines independent reviewer votes into one approve/reject decision.
"""

from runsafe.council.reviewers import (
    LiteLLMReviewer,
    Reviewer,
    StaticReviewer,
    build_reviewers,
    parse_vote,
)
from runsafe.council.voting import MALFORMED_NOTE, ReviewCouncil, tally_votes

__all__ = [
    "MALFORMED_NOTE",
    "LiteLLMReviewer",
    "ReviewCouncil",
    "Reviewer",
    "StaticReviewer",
    "build_reviewers",
    "parse_vote",
    "tally_votes",
]
