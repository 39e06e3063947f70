"""Review council: vote collection and aggregation.

Reviewers are consulted concurrently; their answers are put back in
consultation order before tallying, so deterministic mode (reviewers
sorted by name) gives reproducible verdicts.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Sequence

from runsafe.council.reviewers import Reviewer
from runsafe.schemas.council import CouncilVerdict, Decision, ReviewerVote, Vote

logger = logging.getLogger(__name__)

MALFORMED_NOTE = "Malformed epic input"


def tally_votes(votes: Sequence[Vote | None]) -> Decision:
    """Strict majority of approvals over rejections wins.

    Abstentions count toward neither side; ties reject.
    """
    approvals = sum(1 for v in votes if v == Vote.APPROVED)
    rejections = sum(1 for v in votes if v == Vote.REJECTED)
    return Decision.APPROVED if approvals > rejections else Decision.REJECTED


class ReviewCouncil:
    """Consensus gate over a fixed set of reviewers."""

    def __init__(self, reviewers: Sequence[Reviewer], deterministic: bool = False) -> None:
        self._reviewers = list(reviewers)
        self._deterministic = deterministic

    def _ordered(self) -> list[Reviewer]:
        if self._deterministic:
            return sorted(self._reviewers, key=lambda r: r.name)
        return list(self._reviewers)

    async def _consult(self, reviewer: Reviewer, content: str) -> ReviewerVote:
        try:
            return await reviewer.review(content)
        except Exception as e:
            logger.warning("Reviewer %s failed: %s", reviewer.name, e)
            return ReviewerVote(vote=None, note=f"Review failed: {e}")

    async def review(self, content: str) -> CouncilVerdict:
        """Collect votes on ``content`` and aggregate them.

        Empty or whitespace-only content is rejected without consulting
        anyone.
        """
        if not content or not content.strip():
            return CouncilVerdict(
                decision=Decision.REJECTED, votes=[], notes=[MALFORMED_NOTE],
            )

        reviewers = self._ordered()
        results = await asyncio.gather(
            *(self._consult(r, content) for r in reviewers)
        )

        votes = [r.vote for r in results]
        verdict = CouncilVerdict(
            decision=tally_votes(votes),
            votes=votes,
            notes=[r.note for r in results],
            reviewers=[r.name for r in reviewers],
        )
        logger.info(
            "Council %s (%s)", verdict.decision,
            ", ".join(f"{n}={v}" for n, v in zip(verdict.reviewers, votes)),
        )
        return verdict
