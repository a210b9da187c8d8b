"""Dependency-aware ordering of plan tasks."""

from __future__ import annotations

import logging
from typing import Sequence

from .schema import PlanTask

LOGGER = logging.getLogger(__name__)

__all__ = ["resolve_execution_order"]


def resolve_execution_order(tasks: Sequence[PlanTask]) -> list[PlanTask]:
    """Return ``tasks`` ordered so that dependencies precede their dependants.

    Each pass moves every pending task whose dependencies are already
    resolved. When a full pass makes no progress (a cycle, or a dependency on
    an id that is not in ``tasks``) the highest-priority remaining task is
    moved on its own, ties broken by original position, and scanning resumes.
    Every task appears exactly once in the result.
    """
    resolved: list[PlanTask] = []
    resolved_ids: set[str] = set()
    pending = list(tasks)

    while pending:
        still_pending: list[PlanTask] = []
        for task in pending:
            if all(dep in resolved_ids for dep in task.dependencies):
                resolved.append(task)
                resolved_ids.add(task.id)
            else:
                still_pending.append(task)

        if len(still_pending) == len(pending):
            forced = min(still_pending, key=lambda item: item.priority.rank)
            LOGGER.warning(
                "Circular or unresolved dependencies among %s; forcing %s (%s) next",
                ", ".join(item.id for item in still_pending),
                forced.id,
                forced.priority.value,
            )
            still_pending.remove(forced)
            resolved.append(forced)
            resolved_ids.add(forced.id)

        pending = still_pending

    return resolved
