"""Workspace file access used for context gathering and operation application."""

from __future__ import annotations

import asyncio
from pathlib import Path
from typing import Protocol, runtime_checkable

__all__ = ["LocalWorkspace", "Workspace", "is_glob_pattern"]

_GLOB_CHARS = ("*", "?", "[")


def is_glob_pattern(pattern: str) -> bool:
    """Return True when ``pattern`` contains a glob wildcard."""
    return any(char in pattern for char in _GLOB_CHARS)


@runtime_checkable
class Workspace(Protocol):
    """File-system collaborator rooted at a single workspace directory."""

    @property
    def root(self) -> Path: ...

    async def list_files(self, pattern: str) -> list[Path]: ...

    async def read_file(self, path: Path) -> str: ...

    async def write_file(self, path: Path, content: str) -> None: ...


class LocalWorkspace:
    """Workspace backed by the local file system."""

    _EXCLUDED_DIRS = {".git", ".hg", ".svn", "__pycache__", "node_modules", ".venv", "venv"}

    def __init__(self, root: Path | str) -> None:
        self._root = Path(root).resolve()

    @property
    def root(self) -> Path:
        return self._root

    async def list_files(self, pattern: str) -> list[Path]:
        return await asyncio.to_thread(self._list_files_sync, pattern)

    async def read_file(self, path: Path) -> str:
        return await asyncio.to_thread(self._resolve(path).read_text, encoding="utf-8")

    async def write_file(self, path: Path, content: str) -> None:
        await asyncio.to_thread(self._write_file_sync, self._resolve(path), content)

    def _list_files_sync(self, pattern: str) -> list[Path]:
        cleaned = pattern.strip().replace("\\", "/")
        while cleaned.startswith("./"):
            cleaned = cleaned[2:]
        if Path(cleaned).is_absolute():
            try:
                cleaned = Path(cleaned).relative_to(self._root).as_posix()
            except ValueError:
                return []
        matches = []
        for candidate in sorted(self._root.glob(cleaned)):
            if not candidate.is_file():
                continue
            relative = candidate.relative_to(self._root)
            if any(part in self._EXCLUDED_DIRS for part in relative.parts[:-1]):
                continue
            matches.append(candidate)
        return matches

    @staticmethod
    def _write_file_sync(path: Path, content: str) -> None:
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(content, encoding="utf-8")

    def _resolve(self, path: Path | str) -> Path:
        candidate = Path(path)
        if not candidate.is_absolute():
            candidate = self._root / candidate
        return candidate
