"""Apply mode: parse epics and apply their edits to the workspace.

Substring edits are accumulated per file in memory, then written in
order, optionally as one all-or-nothing transaction with rollback.
"""

from runsafe.apply.engine import ApplyEngine
from runsafe.apply.parser import parse_epic
from runsafe.apply.patcher import apply_edit, edit_applies
from runsafe.apply.workspace import Workspace, is_binary

__all__ = [
    "ApplyEngine",
    "Workspace",
    "apply_edit",
    "edit_applies",
    "is_binary",
    "parse_epic",
]
