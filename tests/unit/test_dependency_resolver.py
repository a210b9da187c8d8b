from __future__ import annotations

import logging

from smile_agent.planning.resolver import resolve_execution_order
from smile_agent.planning.schema import PlanTask, TaskPriority


def _task(task_id: str, priority: str = "MEDIUM", deps: list[str] | None = None) -> PlanTask:
    return PlanTask(id=task_id, priority=TaskPriority.parse(priority), dependencies=deps or [])


def _ids(tasks) -> list[str]:
    return [task.id for task in tasks]


def test_acyclic_order_places_dependencies_first() -> None:
    tasks = [
        _task("deploy", deps=["test", "build"]),
        _task("test", deps=["build"]),
        _task("build"),
        _task("docs"),
    ]

    order = _ids(resolve_execution_order(tasks))

    assert sorted(order) == sorted(_ids(tasks))
    for task in tasks:
        for dep in task.dependencies:
            assert order.index(dep) < order.index(task.id)


def test_independent_tasks_keep_synthesis_order() -> None:
    tasks = [_task("c"), _task("a"), _task("b")]

    assert _ids(resolve_execution_order(tasks)) == ["c", "a", "b"]


def test_same_pass_picks_up_newly_resolved_dependencies() -> None:
    tasks = [_task("first"), _task("second", deps=["first"]), _task("third", deps=["second"])]

    assert _ids(resolve_execution_order(tasks)) == ["first", "second", "third"]


def test_two_task_cycle_breaks_on_priority() -> None:
    tasks = [_task("a", "LOW", ["b"]), _task("b", "HIGH", ["a"])]

    order = _ids(resolve_execution_order(tasks))

    assert order == ["b", "a"]


def test_cycle_tie_break_uses_original_order() -> None:
    tasks = [_task("a", "MEDIUM", ["b"]), _task("b", "MEDIUM", ["a"])]

    assert _ids(resolve_execution_order(tasks)) == ["a", "b"]


def test_unknown_priority_ranks_with_medium() -> None:
    tasks = [
        _task("low", "LOW", ["unknown"]),
        _task("unknown", "urgent-ish", ["low"]),
    ]

    order = _ids(resolve_execution_order(tasks))

    assert order == ["unknown", "low"]


def test_missing_dependency_is_forced_once_and_terminates(caplog) -> None:
    tasks = [_task("orphan", "LOW", ["ghost"]), _task("free"), _task("child", "HIGH", ["orphan"])]

    with caplog.at_level(logging.WARNING, logger="smile_agent.planning.resolver"):
        order = _ids(resolve_execution_order(tasks))

    assert order == ["free", "child", "orphan"]
    assert "forcing child" in caplog.text


def test_larger_cycle_yields_every_task_exactly_once() -> None:
    tasks = [
        _task("a", "LOW", ["c"]),
        _task("b", "MEDIUM", ["a"]),
        _task("c", "LOW", ["b"]),
        _task("d", "HIGH", ["d"]),
        _task("e", deps=["a"]),
    ]

    order = _ids(resolve_execution_order(tasks))

    assert len(order) == len(tasks)
    assert set(order) == {"a", "b", "c", "d", "e"}
    # The self-dependent HIGH task is forced first; then the MEDIUM member of the cycle.
    assert order[0] == "d"
    assert order[1] == "b"
    assert order.index("a") < order.index("e")


def test_input_is_not_mutated() -> None:
    tasks = [_task("b", deps=["a"]), _task("a")]
    snapshot = [task.model_copy(deep=True) for task in tasks]

    resolve_execution_order(tasks)

    assert _ids(tasks) == ["b", "a"]
    assert tasks == snapshot


def test_empty_input() -> None:
    assert resolve_execution_order([]) == []
