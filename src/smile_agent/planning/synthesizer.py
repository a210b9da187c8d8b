"""Plan synthesis: turn a raw request into a validated, normalised plan."""

from __future__ import annotations

import logging
import uuid
from typing import Any, Mapping, Sequence

from ..errors import PlanValidationError
from ..models.llm_client import CompletionClient, CompletionOptions
from ..prompts import render_planning_prompt
from .parser import extract_plan_payload
from .schema import Plan, PlanStatus, PlanTask, TaskKind, TaskPriority, TaskStatus, utc_now

LOGGER = logging.getLogger(__name__)

__all__ = ["PlanSynthesizer", "generate_plan_id", "validate_plan_payload"]

DEFAULT_PLANNING_TEMPERATURE = 0.2


class PlanSynthesizer:
    """Request a plan from the backend and validate it into a :class:`Plan`."""

    def __init__(
        self,
        client: CompletionClient,
        *,
        temperature: float = DEFAULT_PLANNING_TEMPERATURE,
        max_tokens: int | None = None,
    ) -> None:
        self._client = client
        self._options = CompletionOptions(temperature=temperature, max_tokens=max_tokens)

    async def synthesize(self, request: str) -> Plan:
        """Return a PENDING plan for ``request``.

        Raises :class:`PlanParseError` when the response holds no structured
        block and :class:`PlanValidationError` when the block is incomplete.
        Backend errors propagate unchanged.
        """
        response = await self._client.complete(render_planning_prompt(request), self._options)
        payload = extract_plan_payload(response)
        plan = validate_plan_payload(payload, request)
        LOGGER.info("Created plan %s with %d task(s): %s", plan.id, len(plan.tasks), plan.main_goal)
        return plan


def generate_plan_id() -> str:
    millis = int(utc_now().timestamp() * 1000)
    return f"plan-{millis}-{uuid.uuid4().hex[:6]}"


def validate_plan_payload(payload: Mapping[str, Any], original_request: str) -> Plan:
    """Validate a decoded plan object and normalise it into a :class:`Plan`."""
    if not isinstance(payload, Mapping):
        raise PlanValidationError("Invalid task plan structure: expected a JSON object.")

    main_goal = payload.get("mainGoal")
    if not isinstance(main_goal, str) or not main_goal.strip():
        raise PlanValidationError("Invalid task plan structure: 'mainGoal' is missing or empty.")

    raw_tasks = payload.get("taskBreakdown")
    if not isinstance(raw_tasks, list) or not raw_tasks:
        raise PlanValidationError("Invalid task plan structure: 'taskBreakdown' must be a non-empty list.")

    tasks = [_normalise_task(entry, index) for index, entry in enumerate(raw_tasks)]
    _check_task_ids(tasks)

    return Plan(
        id=generate_plan_id(),
        main_goal=main_goal.strip(),
        original_request=original_request,
        tasks=tasks,
        context_patterns=_string_list(payload.get("contextRequired"), field_name="contextRequired"),
        risks=_string_list(payload.get("risksAndConsiderations"), field_name="risksAndConsiderations"),
        created_at=utc_now(),
        status=PlanStatus.PENDING,
    )


def _normalise_task(entry: Any, index: int) -> PlanTask:
    if not isinstance(entry, Mapping):
        raise PlanValidationError(f"Invalid task plan structure: task #{index + 1} is not an object.")

    raw_id = entry.get("id")
    task_id = str(raw_id).strip() if raw_id not in (None, "") else ""
    if not task_id:
        task_id = f"task-{index + 1}"

    raw_kind = entry.get("type", entry.get("kind"))
    raw_kind_text = str(raw_kind).strip() if raw_kind is not None else ""
    complexity = entry.get("estimatedComplexity")

    return PlanTask(
        id=task_id,
        kind=TaskKind.parse(raw_kind_text),
        raw_kind=raw_kind_text,
        description=str(entry.get("description") or "").strip(),
        priority=TaskPriority.parse(entry.get("priority")),
        dependencies=_dependency_ids(entry.get("dependencies"), task_id=task_id),
        estimated_complexity=str(complexity).strip() if complexity not in (None, "") else None,
        status=TaskStatus.PENDING,
        started_at=None,
        ended_at=None,
    )


def _dependency_ids(value: Any, *, task_id: str) -> list[str]:
    if value is None:
        return []
    if isinstance(value, (str, int)):
        value = [value]
    if not isinstance(value, Sequence):
        raise PlanValidationError(f"Invalid dependencies for task '{task_id}': expected a list of ids.")
    ids: list[str] = []
    for item in value:
        if item is None:
            continue
        text = str(item).strip()
        if text and text not in ids:
            ids.append(text)
    return ids


def _check_task_ids(tasks: Sequence[PlanTask]) -> None:
    seen: set[str] = set()
    for task in tasks:
        if task.id in seen:
            raise PlanValidationError(f"Invalid task plan structure: duplicate task id '{task.id}'.")
        seen.add(task.id)

    for task in tasks:
        unknown = [dep for dep in task.dependencies if dep not in seen]
        if unknown:
            raise PlanValidationError(
                f"Task '{task.id}' depends on unknown task id(s): {', '.join(unknown)}",
                details={"task_id": task.id, "unknown_dependencies": unknown},
            )


def _string_list(value: Any, *, field_name: str) -> list[str]:
    if value is None:
        return []
    if isinstance(value, str):
        value = [value]
    if not isinstance(value, Sequence):
        raise PlanValidationError(f"Invalid task plan structure: '{field_name}' must be a list.")
    return [str(item).strip() for item in value if item is not None and str(item).strip()]
