"""Render the human-readable summary of an executed plan."""

from __future__ import annotations

from decimal import ROUND_HALF_UP, Decimal

from .schema import Plan, PlanStatus, TaskStatus

__all__ = ["render_plan_summary", "success_rate"]


def success_rate(completed: int, total: int) -> int:
    """Return ``completed / total`` as a whole percentage, rounding halves up."""
    if total <= 0:
        return 0
    ratio = Decimal(completed) * 100 / Decimal(total)
    return int(ratio.quantize(Decimal(1), rounding=ROUND_HALF_UP))


def render_plan_summary(plan: Plan) -> str:
    total = len(plan.tasks)
    completed = sum(1 for task in plan.tasks if task.status == TaskStatus.COMPLETED)
    failed = [task for task in plan.tasks if task.status == TaskStatus.FAILED]

    outcome = "completed successfully" if plan.status == PlanStatus.COMPLETED else "partially completed"
    lines = [
        f"Plan execution {outcome}.",
        f"{completed}/{total} tasks completed ({success_rate(completed, total)}% success rate).",
    ]

    modified_files = [path for result in plan.results.values() for path in result.artifacts]
    if modified_files:
        lines.append("")
        lines.append("Modified files:")
        lines.extend(f"- {path}" for path in modified_files)

    if failed:
        lines.append("")
        lines.append("Failed tasks:")
        for task in failed:
            result = plan.results.get(task.id)
            message = result.message if result is not None and result.message else "Unknown error"
            lines.append(f"- {task.description}: {message}")

    return "\n".join(lines) + "\n"
