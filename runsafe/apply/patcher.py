"""Substring edit applier.

Every operation acts on the first occurrence of the joined target
block. A missing target is a silent no-op, not an error; use
``edit_applies`` to tell the two outcomes apart.
"""

from __future__ import annotations

from runsafe.errors import UnsupportedEditKind
from runsafe.schemas.epic import Edit, EditKind


def _join(lines: list[str] | None) -> str:
    return "\n".join(lines or [])


def edit_applies(content: str, edit: Edit) -> bool:
    """Whether the edit's target block occurs in ``content``."""
    target = _join(edit.target)
    return bool(target) and target in content


def apply_edit(content: str, edit: Edit) -> str:
    """Apply one edit to an in-memory buffer.

    Args:
        content: Current buffer.
        edit: The edit to apply.

    Returns:
        The updated buffer, or ``content`` unchanged when the target
        block is absent.

    Raises:
        UnsupportedEditKind: If ``edit.kind`` is not a recognized EditKind.
    """
    try:
        kind = EditKind(edit.kind)
    except ValueError:
        raise UnsupportedEditKind(edit.kind) from None

    target = _join(edit.target)
    replacement = _join(edit.replacement)

    if kind == EditKind.REPLACE:
        new = replacement
    elif kind == EditKind.INSERT_BEFORE:
        new = f"{replacement}\n{target}"
    elif kind == EditKind.INSERT_AFTER:
        new = f"{target}\n{replacement}"
    else:
        new = ""

    if not target:
        return content
    return content.replace(target, new, 1)
