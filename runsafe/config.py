"""TOML configuration loader and state-directory resolution.

Configuration is read from ``~/.runsafe.toml`` and then from
``.runsafe.toml`` in the workspace; workspace values override home
values section by section. Missing files fall back to defaults.
"""

from __future__ import annotations

import logging
import os
import tomllib
from pathlib import Path

from pydantic import BaseModel, Field, ValidationError

logger = logging.getLogger(__name__)

CONFIG_FILENAME = ".runsafe.toml"
STATE_DIR_ENV = "RUNSAFE_DIR"
STATE_DIRNAME = ".runsafe"


class SafetyConfig(BaseModel):
    """Circuit-breaker thresholds."""

    max_failures: int = Field(default=3, ge=1, description="Consecutive failures that trip cooldown")
    memory_ceiling_mb: int = Field(default=600, ge=1, description="Resident memory high-water mark")
    history_ceiling: int = Field(default=100, ge=1, description="History entries that trip cooldown")
    idle_window_seconds: int = Field(
        default=600, ge=0, description="Idle time after which a tripped breaker self-clears",
    )


class ApplySettings(BaseModel):
    """Apply engine guardrails and output limits."""

    protected_dirs: list[str] = Field(
        default_factory=lambda: ["node_modules", ".git"],
        description="Directory names edits may never touch",
    )
    diff_max_lines: int = Field(default=50, ge=1, description="Unified diff truncation limit")


class CouncilConfig(BaseModel):
    """Review council membership."""

    reviewers: list[str] = Field(
        default_factory=lambda: ["Claude", "Gemini", "GPT-4", "Custom"],
    )
    deterministic: bool = Field(default=False, description="Consult reviewers in sorted order")
    model: str = Field(
        default="", description="LiteLLM model ID; empty means static reviewers",
    )
    timeout: int = Field(default=60, ge=1, description="Per-reviewer timeout in seconds")


class RunSafeConfig(BaseModel):
    """Top-level configuration."""

    safety: SafetyConfig = Field(default_factory=SafetyConfig)
    apply: ApplySettings = Field(default_factory=ApplySettings)
    council: CouncilConfig = Field(default_factory=CouncilConfig)


def _read_toml(path: Path) -> dict:
    if not path.is_file():
        return {}
    try:
        with open(path, "rb") as f:
            return tomllib.load(f)
    except tomllib.TOMLDecodeError as e:
        raise ValueError(f"Malformed config file {path}: {e}") from e


def load_config(
    workspace: Path | None = None,
    home: Path | None = None,
) -> RunSafeConfig:
    """Load and merge home and workspace configuration.

    Args:
        workspace: Workspace root. Defaults to the current directory.
        home: Home directory. Defaults to ``Path.home()``.

    Returns:
        RunSafeConfig with file values layered over defaults.

    Raises:
        ValueError: If a config file is not valid TOML or holds invalid values.
    """
    workspace = workspace or Path.cwd()
    home = home or Path.home()

    merged: dict[str, dict] = {}
    for path in (home / CONFIG_FILENAME, workspace / CONFIG_FILENAME):
        raw = _read_toml(path)
        if raw:
            logger.debug("Loaded config from %s", path)
        for section, values in raw.items():
            if isinstance(values, dict):
                merged.setdefault(section, {}).update(values)

    try:
        return RunSafeConfig(**merged)
    except ValidationError as e:
        raise ValueError(f"Invalid configuration: {e}") from e


def state_dir(workspace: Path | None = None) -> Path:
    """Directory holding the safety state and the logs.

    ``$RUNSAFE_DIR`` wins; otherwise ``<workspace>/.runsafe``.
    """
    override = os.environ.get(STATE_DIR_ENV)
    if override:
        return Path(override).expanduser()
    return (workspace or Path.cwd()) / STATE_DIRNAME
