"""Chain runner: applies a sequence of epics listed in a YAML file.

Chain file format (``runsafe.chain.yml`` in the workspace)::

    chain:
      - file: epics/01-rename.md
      - file: epics/02-cleanup.md
        atomic: true
      - file: epics/03-try.md
        dryRun: true
"""

from __future__ import annotations

import logging
from pathlib import Path

import yaml
from pydantic import BaseModel, ConfigDict, Field, ValidationError

from runsafe.apply.engine import ApplyEngine
from runsafe.display import Reporter
from runsafe.errors import RunSafeError
from runsafe.schemas.result import ApplyOptions

logger = logging.getLogger(__name__)

CHAIN_FILENAME = "runsafe.chain.yml"


class ChainItem(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    file: str
    dry_run: bool = Field(default=False, alias="dryRun")
    atomic: bool = False


class ChainFile(BaseModel):
    chain: list[ChainItem]


def load_chain(text: str) -> ChainFile | None:
    """Parse chain YAML; None when it is malformed."""
    try:
        data = yaml.safe_load(text)
        return ChainFile.model_validate(data)
    except (yaml.YAMLError, ValidationError) as e:
        logger.debug("Malformed chain file: %s", e)
        return None


async def run_chain(
    engine: ApplyEngine,
    root: Path,
    reporter: Reporter,
    chain_path: Path | None = None,
) -> bool:
    """Apply every epic in the chain file, stopping at the first failure.

    Returns:
        True if every epic in the chain applied successfully.
    """
    chain_path = chain_path or root / CHAIN_FILENAME
    try:
        text = chain_path.read_text(encoding="utf-8")
    except OSError:
        reporter.warn(f"No chain file found. Expected: ./{CHAIN_FILENAME}")
        return False

    parsed = load_chain(text)
    if parsed is None:
        reporter.error("Malformed chain file.")
        return False

    for item in parsed.chain:
        if not (root / item.file).exists():
            reporter.error(f"Chain file missing: {item.file}")
            return False

    reporter.info(
        "Executing epic chain: [" + " → ".join(i.file for i in parsed.chain) + "]"
    )

    for item in parsed.chain:
        options = ApplyOptions(dry_run=item.dry_run, atomic=item.atomic)
        try:
            result = await engine.run(item.file, options)
        except RunSafeError as e:
            logger.info("Chain aborted at %s: %s", item.file, e)
            result = None
        if result is None or not result.success:
            reporter.error(f"Chain failed at {item.file}")
            return False

    reporter.success("Chain completed successfully.")
    return True
