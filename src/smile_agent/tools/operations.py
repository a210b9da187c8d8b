"""Turn backend responses into file operations applied to the workspace."""

from __future__ import annotations

import logging
import re
import uuid
from dataclasses import dataclass, field
from pathlib import Path, PurePosixPath
from typing import Protocol, runtime_checkable

from ..workspace import Workspace

LOGGER = logging.getLogger(__name__)

__all__ = [
    "FencedBlockOperationHandler",
    "FileArtifact",
    "OperationHandler",
    "OperationOutcome",
    "parse_file_artifacts",
]


@dataclass(slots=True)
class OperationOutcome:
    """Result of applying the file operations embedded in a response."""

    operation_ids: list[str] = field(default_factory=list)
    file_paths: list[str] = field(default_factory=list)
    success: bool = True


@runtime_checkable
class OperationHandler(Protocol):
    """Collaborator that parses a response and performs its file operations."""

    async def apply(self, response_text: str) -> OperationOutcome: ...


@dataclass(slots=True)
class FileArtifact:
    """Complete file payload found in a fenced block."""

    path: str
    content: str


_FENCE_RE = re.compile(r"```[^\n`]*\n(?P<body>.*?)```", re.DOTALL)
_PATH_PREFIX_RE = re.compile(r"^(?://|#|--|;|<!--)?\s*(?:file(?:name)?\s*:\s*)?", re.IGNORECASE)
_PATH_SUFFIX_RE = re.compile(r"\s*(?:-->)?\s*$")
_PATH_RE = re.compile(r"^[\w.\-/\\]+\.[A-Za-z0-9]+$|^[\w.\-/\\]*/[\w.\-]+$")


def parse_file_artifacts(response_text: str) -> list[FileArtifact]:
    """Return every fenced block whose first line names a file path."""
    artifacts: list[FileArtifact] = []
    for match in _FENCE_RE.finditer(response_text or ""):
        body = match.group("body")
        first_line, _, rest = body.partition("\n")
        path = _normalise_path_line(first_line)
        if path is None:
            continue
        artifacts.append(FileArtifact(path=path, content=rest))
    return artifacts


def _normalise_path_line(line: str) -> str | None:
    candidate = _PATH_PREFIX_RE.sub("", line.strip(), count=1)
    candidate = _PATH_SUFFIX_RE.sub("", candidate).strip().strip("`\"'")
    if not candidate or " " in candidate:
        return None
    if not _PATH_RE.match(candidate):
        return None
    candidate = candidate.replace("\\", "/")
    while candidate.startswith("./"):
        candidate = candidate[2:]
    return candidate or None


class FencedBlockOperationHandler:
    """Write fenced ``path``-headed code blocks into the workspace."""

    def __init__(self, workspace: Workspace) -> None:
        self._workspace = workspace

    async def apply(self, response_text: str) -> OperationOutcome:
        outcome = OperationOutcome()
        for artifact in parse_file_artifacts(response_text):
            target = self._resolve_target(artifact.path)
            if target is None:
                LOGGER.warning("Skipping file outside the workspace: %s", artifact.path)
                outcome.success = False
                continue
            try:
                await self._workspace.write_file(target, artifact.content)
            except OSError as error:
                LOGGER.warning("Failed to write %s: %s", artifact.path, error)
                outcome.success = False
                continue
            relative = target.relative_to(self._workspace.root.resolve()).as_posix()
            outcome.operation_ids.append(f"op-{uuid.uuid4().hex[:12]}")
            outcome.file_paths.append(relative)
            LOGGER.info("Wrote %s", relative)
        return outcome

    def _resolve_target(self, raw: str) -> Path | None:
        posix = PurePosixPath(raw)
        if ".." in posix.parts:
            return None
        root = self._workspace.root
        candidate = Path(raw)
        if not candidate.is_absolute():
            candidate = root / candidate
        try:
            resolved = candidate.resolve()
            resolved.relative_to(root.resolve())
        except (OSError, ValueError):
            return None
        return resolved
