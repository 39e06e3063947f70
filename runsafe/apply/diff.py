"""Diff rendering for apply previews and ``--diff`` output."""

from __future__ import annotations

import difflib

TRUNCATION_MARKER = "...diff truncated..."


def unified_diff(before: str, after: str, filepath: str, max_lines: int = 50) -> str:
    """Unified diff between two buffers, truncated to ``max_lines`` lines.

    Returns an empty string when the buffers are identical.
    """
    if before == after:
        return ""

    lines = [
        line.rstrip("\n")
        for line in difflib.unified_diff(
            before.splitlines(keepends=True),
            after.splitlines(keepends=True),
            fromfile=f"before/{filepath}",
            tofile=f"after/{filepath}",
        )
    ]
    if len(lines) > max_lines:
        lines = lines[:max_lines] + [TRUNCATION_MARKER]
    return "\n".join(lines)


def preview_diff(before: str, after: str) -> str:
    """Positional line comparison used by dry-run previews.

    Lines are compared index by index: a differing line shows as a
    ``-``/``+`` pair, surplus lines on either side as a lone ``-`` or ``+``.
    """
    old_lines = before.splitlines()
    new_lines = after.splitlines()
    out: list[str] = []
    for i, line in enumerate(old_lines):
        if i >= len(new_lines):
            out.append(f"- {line}")
        elif new_lines[i] != line:
            out.append(f"- {line}")
            out.append(f"+ {new_lines[i]}")
        else:
            out.append(f"  {line}")
    for line in new_lines[len(old_lines):]:
        out.append(f"+ {line}")
    return "\n".join(out)
