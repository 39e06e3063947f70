"""Council reviewers.

A reviewer reads an epic and returns a vote plus a note. The council
only talks to reviewers through the ``Reviewer`` interface; a static
reviewer stands in when no model is configured, and ``LiteLLMReviewer``
asks a model through LiteLLM's unified API.
"""

from __future__ import annotations

import logging
import re
from abc import ABC, abstractmethod

import litellm

from runsafe.config import CouncilConfig
from runsafe.schemas.council import ReviewerVote, Vote

# Suppress LiteLLM's "Give Feedback / Get Help" and "Provider List" banners
litellm.suppress_debug_info = True

logger = logging.getLogger(__name__)

_VOTE_RE = re.compile(
    r"\*?\*?VOTE:\s*(APPROVED|REJECTED|ABSTAIN)\*?\*?",
    re.IGNORECASE,
)

_REVIEW_SYSTEM_PROMPT = """\
You are {name}, one member of a review council deciding whether an
automated edit epic is safe to apply to a codebase. Read the epic and
judge whether its edits are coherent, scoped to what the summary
claims, and free of destructive or suspicious changes.

End your answer with exactly one line:
VOTE: APPROVED | REJECTED | ABSTAIN
"""


class Reviewer(ABC):
    """One independently identified council member."""

    def __init__(self, name: str) -> None:
        self._name = name

    @property
    def name(self) -> str:
        return self._name

    @abstractmethod
    async def review(self, content: str) -> ReviewerVote:
        """Review epic content and return a vote."""


class StaticReviewer(Reviewer):
    """Reviewer that always casts the same vote."""

    def __init__(
        self, name: str, vote: Vote | None = Vote.APPROVED, note: str = "",
    ) -> None:
        super().__init__(name)
        self._vote = vote
        self._note = note

    async def review(self, content: str) -> ReviewerVote:
        return ReviewerVote(vote=self._vote, note=self._note)


def parse_vote(content: str) -> Vote | None:
    """Extract ``VOTE: <value>`` from model output; None when absent."""
    match = _VOTE_RE.search(content)
    if not match:
        return None
    return Vote(match.group(1).lower())


class LiteLLMReviewer(Reviewer):
    """Reviewer backed by a LiteLLM-routed model."""

    def __init__(self, name: str, model: str, timeout: int = 60) -> None:
        super().__init__(name)
        self._model = model
        self._timeout = timeout

    async def review(self, content: str) -> ReviewerVote:
        """Ask the model for a vote.

        Raises:
            RuntimeError: If the model call fails.
        """
        try:
            response = await litellm.acompletion(
                model=self._model,
                messages=[
                    {"role": "system", "content": _REVIEW_SYSTEM_PROMPT.format(name=self.name)},
                    {"role": "user", "content": content},
                ],
                timeout=float(self._timeout),
            )
        except litellm.AuthenticationError:
            raise RuntimeError(
                f"Authentication failed for {self._model}"
            ) from None
        except (
            litellm.BadRequestError,
            litellm.RateLimitError,
            litellm.ServiceUnavailableError,
            litellm.APIConnectionError,
        ) as e:
            raise RuntimeError(f"Review call to {self._model} failed: {e}") from e

        text = ""
        if response.choices:
            message = response.choices[0].message
            text = (message.content or "") if message else ""

        vote = parse_vote(text)
        if vote is None:
            logger.warning("Reviewer %s returned no vote; counting as abstain", self.name)
        return ReviewerVote(vote=vote, note=text.strip())


def build_reviewers(config: CouncilConfig) -> list[Reviewer]:
    """Instantiate the configured council members."""
    if config.model:
        return [
            LiteLLMReviewer(name, config.model, timeout=config.timeout)
            for name in config.reviewers
        ]
    return [StaticReviewer(name) for name in config.reviewers]
