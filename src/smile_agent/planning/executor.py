"""Plan execution: the per-task state machine and the task executor it drives."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Mapping

from ..context import ContextGatherer
from ..models.llm_client import CompletionClient, CompletionOptions
from ..prompts import render_task_prompt
from ..tools.operations import OperationHandler
from .recovery import RecoveryHandler
from .resolver import resolve_execution_order
from .schema import Plan, PlanStatus, PlanTask, TaskPriority, TaskResult, TaskStatus, utc_now
from .summary import render_plan_summary

LOGGER = logging.getLogger(__name__)

__all__ = [
    "DEPENDENCIES_NOT_MET",
    "RECOVERED_MESSAGE",
    "TASK_COMPLETED_MESSAGE",
    "ExecutionSettings",
    "PlanExecutor",
    "TaskExecutor",
]

DEPENDENCIES_NOT_MET = "Dependencies not met"
TASK_COMPLETED_MESSAGE = "Task completed successfully"
RECOVERED_MESSAGE = "Recovered after failure"


@dataclass(slots=True, frozen=True)
class ExecutionSettings:
    """Sampling settings for task execution and recovery calls."""

    task_temperature: float = 0.4
    recovery_temperature: float = 0.2
    max_tokens: int = 2048


class TaskExecutor:
    """Execute one task by prompting the backend and applying its file operations."""

    def __init__(
        self,
        client: CompletionClient,
        operations: OperationHandler,
        *,
        temperature: float = 0.4,
        max_tokens: int | None = 2048,
    ) -> None:
        self._client = client
        self._operations = operations
        self._options = CompletionOptions(temperature=temperature, max_tokens=max_tokens)

    async def execute(self, task: PlanTask, plan: Plan, context: Mapping[str, str]) -> TaskResult:
        """Return a successful result unless the backend or operation handler raises."""
        LOGGER.info("Executing task %s: %s", task.id, task.description)
        dependency_results = {dep: plan.results.get(dep) for dep in task.dependencies}
        prompt = render_task_prompt(task, plan, dependency_results, context)
        response = await self._client.complete(prompt, self._options)

        outcome = await self._operations.apply(response)
        if not outcome.success:
            LOGGER.warning("File operations processing failed for task %s", task.id)

        return TaskResult(
            success=True,
            message=TASK_COMPLETED_MESSAGE,
            artifacts=list(outcome.file_paths),
            operation_ids=list(outcome.operation_ids),
            output=response,
        )


class PlanExecutor:
    """Drive every task of a plan through PENDING -> IN_PROGRESS -> COMPLETED | FAILED.

    Tasks run strictly one after another in dependency order. Context is
    gathered once per call to :meth:`execute` and handed to each task.
    """

    def __init__(
        self,
        gatherer: ContextGatherer,
        task_executor: TaskExecutor,
        recovery: RecoveryHandler,
    ) -> None:
        self._gatherer = gatherer
        self._task_executor = task_executor
        self._recovery = recovery

    @classmethod
    def build(
        cls,
        client: CompletionClient,
        operations: OperationHandler,
        gatherer: ContextGatherer,
        settings: ExecutionSettings | None = None,
    ) -> "PlanExecutor":
        settings = settings or ExecutionSettings()
        return cls(
            gatherer,
            TaskExecutor(
                client,
                operations,
                temperature=settings.task_temperature,
                max_tokens=settings.max_tokens,
            ),
            RecoveryHandler(
                client,
                operations,
                temperature=settings.recovery_temperature,
                max_tokens=settings.max_tokens,
            ),
        )

    # ------------------------------------------------------------------ public
    async def execute(self, plan: Plan) -> str:
        """Run ``plan`` to a terminal status and return its summary."""
        plan.status = PlanStatus.IN_PROGRESS
        context = await self._gatherer.gather(plan.context_patterns)
        ordered = resolve_execution_order(plan.tasks)

        for task in ordered:
            if task.status == TaskStatus.COMPLETED:
                continue

            if not self._dependencies_met(task, plan):
                LOGGER.warning("Task %s skipped: %s", task.id, DEPENDENCIES_NOT_MET)
                task.status = TaskStatus.FAILED
                plan.results[task.id] = TaskResult(success=False, message=DEPENDENCIES_NOT_MET)
                continue

            task.status = TaskStatus.IN_PROGRESS
            task.started_at = utc_now()
            try:
                await self._run_task(task, plan, context)
            finally:
                task.ended_at = utc_now()

        plan.status = PlanStatus.COMPLETED if plan.all_tasks_completed() else PlanStatus.PARTIALLY_COMPLETED
        LOGGER.info("Plan %s finished with status %s", plan.id, plan.status.value)
        return render_plan_summary(plan)

    # ----------------------------------------------------------------- helpers
    async def _run_task(self, task: PlanTask, plan: Plan, context: Mapping[str, str]) -> None:
        try:
            result = await self._task_executor.execute(task, plan, context)
        except Exception as error:
            LOGGER.error("Error executing task %s: %s", task.id, error)
            task.status = TaskStatus.FAILED
            plan.results[task.id] = TaskResult(success=False, message=f"Error: {error}")
            if task.priority == TaskPriority.HIGH:
                await self._attempt_recovery(task, error, plan)
            return

        task.status = TaskStatus.COMPLETED if result.success else TaskStatus.FAILED
        plan.results[task.id] = result
        LOGGER.info("Task %s %s", task.id, task.status.value)

    async def _attempt_recovery(self, task: PlanTask, error: Exception, plan: Plan) -> None:
        try:
            outcome = await self._recovery.recover(task, error, plan)
        except Exception as recovery_error:
            LOGGER.warning("Recovery of task %s raised: %s", task.id, recovery_error, exc_info=True)
            return
        if not outcome.recovered:
            return

        task.status = TaskStatus.COMPLETED
        plan.results[task.id] = TaskResult(
            success=True,
            message=RECOVERED_MESSAGE,
            artifacts=outcome.artifacts,
            operation_ids=outcome.operation_ids,
            output=outcome.output,
        )

    @staticmethod
    def _dependencies_met(task: PlanTask, plan: Plan) -> bool:
        for dep_id in task.dependencies:
            dependency = plan.get_task(dep_id)
            if dependency is None or dependency.status != TaskStatus.COMPLETED:
                return False
        return True
