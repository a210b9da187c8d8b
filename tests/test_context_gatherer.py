from __future__ import annotations

import logging

import pytest

from fakes import MemoryWorkspace
from smile_agent.context import ContextGatherer
from smile_agent.workspace import LocalWorkspace, Workspace, is_glob_pattern


@pytest.mark.parametrize(
    ("pattern", "expected"),
    [("src/*.py", True), ("file?.txt", True), ("[ab].md", True), ("src/app.py", False), ("README", False)],
)
def test_is_glob_pattern(pattern: str, expected: bool) -> None:
    assert is_glob_pattern(pattern) is expected


def test_workspaces_satisfy_protocol(tmp_path) -> None:
    assert isinstance(LocalWorkspace(tmp_path), Workspace)
    assert isinstance(MemoryWorkspace(), Workspace)


@pytest.mark.asyncio
async def test_literal_and_glob_patterns(memory_workspace) -> None:
    context = await ContextGatherer(memory_workspace).gather(["README.md", "src/*.py"])

    assert context == {
        "README.md": "# Demo\n",
        "src/app.py": "def main() -> None:\n    pass\n",
        "src/util.py": "VALUE = 1\n",
    }


@pytest.mark.asyncio
async def test_empty_patterns_return_empty_context(memory_workspace) -> None:
    assert await ContextGatherer(memory_workspace).gather([]) == {}
    assert await ContextGatherer(memory_workspace).gather(["", "   "]) == {}
    assert memory_workspace.reads == []


@pytest.mark.asyncio
async def test_unreadable_and_missing_files_are_skipped(caplog) -> None:
    workspace = MemoryWorkspace({"a.txt": "A", "secret.txt": "S"}, unreadable=["secret.txt"])

    with caplog.at_level(logging.WARNING, logger="smile_agent.context"):
        context = await ContextGatherer(workspace).gather(["secret.txt", "missing.txt", "*.txt"])

    assert context == {"a.txt": "A"}
    assert "secret.txt" in caplog.text
    assert "missing.txt" in caplog.text


@pytest.mark.asyncio
async def test_later_pattern_wins_for_duplicate_files() -> None:
    class ChangingWorkspace(MemoryWorkspace):
        async def read_file(self, path):
            content = await super().read_file(path)
            return f"{content}#{len(self.reads)}"

    workspace = ChangingWorkspace({"src/app.py": "x"})

    context = await ContextGatherer(workspace).gather(["src/app.py", "src/*.py"])

    assert context == {"src/app.py": "x#2"}
    assert workspace.reads == ["src/app.py", "src/app.py"]


@pytest.mark.asyncio
async def test_local_workspace_gathering(tmp_path) -> None:
    (tmp_path / "pkg").mkdir()
    (tmp_path / "pkg" / "a.py").write_text("A = 1\n", encoding="utf-8")
    (tmp_path / "pkg" / "b.py").write_text("B = 2\n", encoding="utf-8")
    (tmp_path / "pkg" / "notes.txt").write_text("ignore\n", encoding="utf-8")
    (tmp_path / "node_modules").mkdir()
    (tmp_path / "node_modules" / "dep.py").write_text("skip\n", encoding="utf-8")
    (tmp_path / "top.md").write_text("# Top\n", encoding="utf-8")

    workspace = LocalWorkspace(tmp_path)
    context = await ContextGatherer(workspace).gather(
        ["**/*.py", str(tmp_path / "top.md"), "./pkg/notes.txt"]
    )

    assert context == {
        "pkg/a.py": "A = 1\n",
        "pkg/b.py": "B = 2\n",
        "top.md": "# Top\n",
        "pkg/notes.txt": "ignore\n",
    }


@pytest.mark.asyncio
async def test_local_workspace_round_trip(tmp_path) -> None:
    workspace = LocalWorkspace(tmp_path)

    await workspace.write_file(tmp_path / "nested" / "dir" / "file.txt", "hello")

    assert (tmp_path / "nested" / "dir" / "file.txt").read_text(encoding="utf-8") == "hello"
    assert await workspace.read_file("nested/dir/file.txt") == "hello"
    assert await workspace.list_files("nested/**/*.txt") == [tmp_path.resolve() / "nested" / "dir" / "file.txt"]
    assert await workspace.list_files("/elsewhere/*.txt") == []
