"""Safety state store: the persisted cooldown circuit breaker.

The breaker trips when consecutive failures reach a threshold, when
the process's resident memory passes a high-water mark, or when the
application history grows past a ceiling. A tripped breaker blocks
every mutating command until it is reset by a successful diagnostic
pass or clears itself after an idle window.

State lives in ``telemetry.json`` under the state directory. Each store
instance caches the document after its first read and rewrites it on
every record call; there is no process-wide cache.
"""

from __future__ import annotations

import asyncio
import json
import logging
from collections.abc import Callable
from datetime import UTC, datetime, timedelta
from pathlib import Path

import psutil
from pydantic import ValidationError

from runsafe.config import SafetyConfig
from runsafe.safety.logs import StateLogs
from runsafe.schemas.result import ErrorDetail
from runsafe.schemas.safety import SafetyState

logger = logging.getLogger(__name__)

STATE_FILE = "telemetry.json"

REASON_FAILURES = "Too many consecutive apply failures"
REASON_MEMORY = "High memory usage"


def process_rss() -> int:
    """Resident set size of the current process in bytes."""
    return psutil.Process().memory_info().rss


def _utc_now() -> datetime:
    return datetime.now(UTC)


class SafetyStateStore:
    """Explicit handle on the breaker state for one workspace."""

    def __init__(
        self,
        state_dir: Path,
        config: SafetyConfig | None = None,
        *,
        logs: StateLogs | None = None,
        memory_probe: Callable[[], int] = process_rss,
        clock: Callable[[], datetime] = _utc_now,
    ) -> None:
        self._dir = Path(state_dir)
        self._config = config or SafetyConfig()
        self._logs = logs or StateLogs(self._dir)
        self._memory_probe = memory_probe
        self._clock = clock
        self._state: SafetyState | None = None

    @property
    def path(self) -> Path:
        return self._dir / STATE_FILE

    # ── Persistence ──────────────────────────────────────────────

    def _load(self) -> SafetyState:
        try:
            return SafetyState.model_validate(
                json.loads(self.path.read_text(encoding="utf-8"))
            )
        except FileNotFoundError:
            pass
        except (OSError, json.JSONDecodeError, ValidationError) as e:
            logger.warning("Ignoring unreadable safety state %s: %s", self.path, e)
        return SafetyState(last_run=self._clock().isoformat())

    def _save(self, state: SafetyState) -> None:
        try:
            self._dir.mkdir(parents=True, exist_ok=True)
            self.path.write_text(
                state.model_dump_json(by_alias=True, indent=2), encoding="utf-8",
            )
        except OSError as e:
            logger.warning("Could not persist safety state: %s", e)

    async def state(self) -> SafetyState:
        """Current state, read from disk on first use."""
        if self._state is None:
            loop = asyncio.get_running_loop()
            self._state = await loop.run_in_executor(None, self._load)
        return self._state

    async def _write(self, state: SafetyState) -> None:
        self._state = state
        loop = asyncio.get_running_loop()
        await loop.run_in_executor(None, self._save, state)

    # ── Trip conditions ──────────────────────────────────────────

    async def _trip_reason(self, state: SafetyState) -> str | None:
        if state.consecutive_failures >= self._config.max_failures:
            return REASON_FAILURES
        if self._memory_probe() > self._config.memory_ceiling_mb * 1024 * 1024:
            return REASON_MEMORY
        ceiling = self._config.history_ceiling
        if await self._logs.history_length() > ceiling:
            return f"History log exceeds {ceiling} entries"
        return None

    async def _evaluate(self, state: SafetyState) -> None:
        reason = await self._trip_reason(state)
        if reason and not state.cooldown:
            logger.warning("Safety cooldown tripped: %s", reason)
            state.cooldown = True
            state.reason = reason

    # ── Public operations ────────────────────────────────────────

    async def record_success(self) -> None:
        state = (await self.state()).model_copy()
        state.consecutive_failures = 0
        state.last_run = self._clock().isoformat()
        await self._evaluate(state)
        await self._write(state)

    async def record_failure(self, error: ErrorDetail | None = None) -> None:
        state = (await self.state()).model_copy()
        state.consecutive_failures += 1
        state.last_run = self._clock().isoformat()
        if error is not None:
            logger.info(
                "Recorded failure %d [%s] %s",
                state.consecutive_failures, error.code, error.message,
            )
        await self._evaluate(state)
        await self._write(state)

    async def reset(self) -> None:
        """Clear the failure counter and the cooldown flag unconditionally."""
        state = (await self.state()).model_copy()
        state.consecutive_failures = 0
        state.cooldown = False
        state.reason = None
        state.last_run = self._clock().isoformat()
        await self._write(state)

    async def is_in_cooldown(self) -> bool:
        """Whether mutating commands must short-circuit.

        A tripped breaker whose last recorded run is older than the idle
        window resets itself and reports no cooldown.
        """
        state = await self.state()
        if not state.cooldown:
            return False
        idle = self._clock() - state.last_run_at()
        if idle > timedelta(seconds=self._config.idle_window_seconds):
            logger.info("Cooldown expired after %s idle, resetting", idle)
            await self.reset()
            return False
        return True

    async def cooldown_reason(self) -> str | None:
        """Human-readable reason for the cooldown.

        Prefers the reason captured when the breaker tripped and falls
        back to re-inspecting the current conditions.
        """
        state = await self.state()
        if state.cooldown and state.reason:
            return state.reason
        return await self._trip_reason(state)
