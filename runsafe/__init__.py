"""RunSafe: guarded application of machine-authored edit epics."""

__version__ = "0.1.0"

from runsafe.apply import ApplyEngine, Workspace, apply_edit, parse_epic
from runsafe.council import ReviewCouncil
from runsafe.safety import SafetyStateStore, StateLogs

__all__ = [
    "ApplyEngine",
    "ReviewCouncil",
    "SafetyStateStore",
    "StateLogs",
    "Workspace",
    "apply_edit",
    "parse_epic",
]
