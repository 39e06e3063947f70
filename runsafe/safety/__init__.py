"""Safety state: cooldown circuit breaker and append-only run logs."""

from runsafe.safety.logs import StateLogs
from runsafe.safety.store import SafetyStateStore

__all__ = ["SafetyStateStore", "StateLogs"]
