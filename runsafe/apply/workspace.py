"""Workspace file access and guardrails.

All file reads and writes of an apply run go through ``Workspace`` so
they are awaited one at a time and can be substituted in tests. The
blocking calls run in the default executor.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Iterable
from pathlib import Path

from runsafe.errors import GuardrailViolation

logger = logging.getLogger(__name__)


def is_binary(data: bytes) -> bool:
    """A buffer with a zero byte anywhere is treated as binary."""
    return b"\x00" in data


class Workspace:
    """A workspace root with path guardrails and awaited file I/O."""

    def __init__(
        self,
        root: Path | str,
        protected_dirs: Iterable[str] = ("node_modules", ".git"),
    ) -> None:
        self._root = Path(root).resolve()
        self._protected = frozenset(protected_dirs)

    @property
    def root(self) -> Path:
        return self._root

    def resolve(self, file_path: str) -> Path:
        """Resolve an epic path against the root and enforce guardrails.

        Raises:
            GuardrailViolation: If the path escapes the root or falls
                under a protected directory.
        """
        resolved = (self._root / file_path).resolve()
        if not resolved.is_relative_to(self._root):
            raise GuardrailViolation(f"Path {file_path} is outside workspace")

        relative = resolved.relative_to(self._root)
        if any(part in self._protected for part in relative.parts[:-1]):
            raise GuardrailViolation(
                f"Modification of protected path {file_path} not allowed"
            )
        return resolved

    def relative(self, path: Path | str) -> str:
        """Path relative to the root, for display."""
        try:
            return str(Path(path).relative_to(self._root))
        except ValueError:
            return str(path)

    async def read_bytes(self, path: Path) -> bytes:
        loop = asyncio.get_running_loop()
        return await loop.run_in_executor(None, path.read_bytes)

    async def read_text(self, path: Path) -> str:
        loop = asyncio.get_running_loop()
        return await loop.run_in_executor(
            None, lambda: path.read_text(encoding="utf-8"),
        )

    async def write_text(self, path: Path, content: str) -> None:
        logger.debug("Writing %s (%d chars)", path, len(content))
        loop = asyncio.get_running_loop()
        await loop.run_in_executor(
            None, lambda: path.write_text(content, encoding="utf-8"),
        )
