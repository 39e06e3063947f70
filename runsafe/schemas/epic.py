"""Epic schemas: parsed edit descriptions and per-file working state.

An epic is a markdown-ish document holding a summary and an ordered
list of substring edits. These models are rebuilt on every invocation
and never persisted.
"""

from __future__ import annotations

from enum import StrEnum

from pydantic import BaseModel, ConfigDict, Field


class EditKind(StrEnum):
    """Recognized edit operations."""

    REPLACE = "replace"
    INSERT_BEFORE = "insert-before"
    INSERT_AFTER = "insert-after"
    DELETE = "delete"


class EditStatus(StrEnum):
    """Whether an edit changed its target buffer."""

    APPLIED = "applied"
    SKIPPED = "skipped"


class Edit(BaseModel):
    """One substring edit against one file.

    ``kind`` holds the raw token from the document so that an
    unrecognized kind survives parsing and is rejected by the applier.
    """

    file_path: str = Field(description="Target path relative to the workspace root")
    kind: str = Field(description="Edit operation token, normally an EditKind value")
    target: list[str] = Field(default_factory=list, description="Lines of the target block")
    replacement: list[str] | None = Field(
        default=None, description="Lines of the replacement block (None for delete)"
    )


class EditDescription(BaseModel):
    """A parsed epic: free-text summary plus ordered edits."""

    summary: str = Field(default="", description="Summary section text")
    edits: list[Edit] = Field(default_factory=list, description="Edits in document order")


class FileChangeState(BaseModel):
    """Accumulated effect of every edit against one path in a run."""

    absolute_path: str = Field(description="Resolved absolute path on disk")
    original_content: str = Field(description="Content read before any edit")
    working_content: str = Field(description="Content after the edits seen so far")

    @property
    def changed(self) -> bool:
        return self.original_content != self.working_content

    @property
    def bytes_changed(self) -> int:
        """Absolute UTF-8 size difference between working and original content."""
        return abs(
            len(self.working_content.encode("utf-8"))
            - len(self.original_content.encode("utf-8"))
        )


class EditOutcome(BaseModel):
    """Per-edit status reported back to callers."""

    model_config = ConfigDict(populate_by_name=True)

    file_path: str = Field(alias="filePath", description="Path as written in the epic")
    kind: str = Field(description="Edit operation token")
    status: EditStatus = Field(description="applied or skipped")
