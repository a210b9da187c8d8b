"""Resolve a plan's context patterns into file contents for prompt grounding."""

from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import Sequence

from .workspace import Workspace, is_glob_pattern

LOGGER = logging.getLogger(__name__)

__all__ = ["ContextGatherer"]


class ContextGatherer:
    """Read literal paths and glob matches into a relative-path -> text mapping."""

    def __init__(self, workspace: Workspace) -> None:
        self._workspace = workspace

    async def gather(self, patterns: Sequence[str]) -> dict[str, str]:
        """Return file contents for every readable file named by ``patterns``.

        Patterns are processed in order; when two patterns yield the same file
        the later read wins. Unreadable files are skipped with a warning.
        """
        context: dict[str, str] = {}
        for raw_pattern in patterns:
            pattern = str(raw_pattern).strip()
            if not pattern:
                continue
            if is_glob_pattern(pattern):
                await self._gather_glob(pattern, context)
            else:
                await self._gather_literal(pattern, context)
        LOGGER.info("Gathered %d context file(s) from %d pattern(s)", len(context), len(patterns))
        return context

    async def _gather_glob(self, pattern: str, context: dict[str, str]) -> None:
        try:
            matches = await self._workspace.list_files(pattern)
        except Exception as error:
            LOGGER.warning("Failed to resolve context pattern %s: %s", pattern, error)
            return
        for match in matches:
            await self._read_into(Path(match), context, label=str(match))

    async def _gather_literal(self, pattern: str, context: dict[str, str]) -> None:
        candidate = Path(pattern)
        if not candidate.is_absolute():
            candidate = self._workspace.root / candidate
        await self._read_into(candidate, context, label=pattern)

    async def _read_into(self, path: Path, context: dict[str, str], *, label: str) -> None:
        try:
            content = await self._workspace.read_file(path)
        except Exception as error:
            LOGGER.warning("Failed to read context file %s: %s", label, error)
            return
        context[self._relative_key(path)] = content

    def _relative_key(self, path: Path) -> str:
        absolute = path if path.is_absolute() else self._workspace.root / path
        relative = os.path.relpath(absolute, self._workspace.root)
        return Path(relative).as_posix()
