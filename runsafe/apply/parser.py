"""Epic document parser.

Turns a loosely formatted edit description into an EditDescription.
The parser is best-effort: missing or garbled records are skipped and
an unknown edit kind ends the edit list, but nothing raises. Callers
that need strictness run the schema validator separately.

Document layout::

    ## Summary
    Free text.

    File Edits
    path/to/file.py
    replace
    old line
    with
    new line
"""

from __future__ import annotations

import logging
import re

from runsafe.schemas.epic import Edit, EditDescription, EditKind

logger = logging.getLogger(__name__)

_SUMMARY_RE = re.compile(
    r"Summary\n(.*?)(?:\n#+\s*|\nFile Edits|\Z)",
    re.IGNORECASE | re.DOTALL,
)

_EDITS_MARKER = "File Edits"
_WITH_MARKER = "with"

# Labels that copy/paste from chat UIs leaves behind
_STRAY_LABELS = frozenset({"yaml", "Copy", "Edit"})

_KNOWN_KINDS = frozenset(kind.value for kind in EditKind)


def _split_sections(text: str) -> tuple[str, str]:
    match = _SUMMARY_RE.search(text)
    summary = match.group(1).strip() if match else ""

    index = text.find(_EDITS_MARKER)
    edits_section = text[index + len(_EDITS_MARKER):].strip() if index != -1 else ""
    return summary, edits_section


def parse_epic(text: str) -> EditDescription:
    """Parse an epic document.

    Args:
        text: Raw document text.

    Returns:
        EditDescription with the summary and every edit record that
        could be read. A record with an unrecognized kind is kept (the
        applier rejects it) but ends parsing of the edit list.
    """
    summary, section = _split_sections(text.replace("\r\n", "\n"))
    lines = section.split("\n") if section else []
    edits: list[Edit] = []

    i = 0
    while i < len(lines):
        file_path = lines[i].strip()
        if not file_path or file_path in _STRAY_LABELS:
            i += 1
            continue
        i += 1

        kind = lines[i].strip() if i < len(lines) else ""
        if not kind:
            break
        i += 1

        target: list[str] = []
        while i < len(lines) and lines[i].strip() not in (_WITH_MARKER, ""):
            target.append(lines[i])
            i += 1

        replacement: list[str] | None = None
        if kind != EditKind.DELETE:
            while i < len(lines) and lines[i].strip() != _WITH_MARKER:
                i += 1
            if i < len(lines):
                i += 1
            replacement = []
            while i < len(lines) and lines[i].strip() != "":
                replacement.append(lines[i])
                i += 1

        while i < len(lines) and lines[i].strip() == "":
            i += 1

        edit = Edit(file_path=file_path, kind=kind, target=target, replacement=replacement)

        if kind not in _KNOWN_KINDS:
            logger.warning("Unknown edit kind %r for %s; ignoring the rest", kind, file_path)
            edits.append(edit)
            break

        if not target:
            logger.debug("Skipping edit for %s with empty target", file_path)
            continue

        edits.append(edit)

    return EditDescription(summary=summary, edits=edits)
