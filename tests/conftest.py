from __future__ import annotations

import sys
from pathlib import Path

import pytest

ROOT = Path(__file__).resolve().parents[1]
SRC = ROOT / "src"
TESTS = ROOT / "tests"

for entry in (SRC, TESTS):
    if str(entry) not in sys.path:
        sys.path.insert(0, str(entry))

from fakes import MemoryWorkspace  # noqa: E402
from smile_agent.planning.schema import Plan, PlanTask, TaskPriority  # noqa: E402


@pytest.fixture()
def memory_workspace() -> MemoryWorkspace:
    """Workspace seeded with a couple of source files."""
    return MemoryWorkspace(
        {
            "src/app.py": "def main() -> None:\n    pass\n",
            "src/util.py": "VALUE = 1\n",
            "README.md": "# Demo\n",
        }
    )


@pytest.fixture()
def make_plan():
    """Factory building a PENDING plan from ``(id, priority, deps)`` tuples."""

    def _make(*specs: tuple[str, str, list[str]], context: list[str] | None = None) -> Plan:
        tasks = [
            PlanTask(
                id=task_id,
                description=f"Do {task_id}",
                priority=TaskPriority.parse(priority),
                dependencies=list(deps),
            )
            for task_id, priority, deps in specs
        ]
        return Plan(
            id="plan-test",
            main_goal="Test goal",
            original_request="Please do the thing",
            tasks=tasks,
            context_patterns=list(context or []),
        )

    return _make
