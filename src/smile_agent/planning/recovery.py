"""Single-attempt recovery for failed high-priority tasks."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field

from ..models.llm_client import CompletionClient, CompletionOptions
from ..prompts import render_recovery_prompt
from ..tools.operations import OperationHandler
from .schema import Plan, PlanTask

LOGGER = logging.getLogger(__name__)

__all__ = ["RecoveryHandler", "RecoveryOutcome"]


@dataclass(slots=True)
class RecoveryOutcome:
    """What a recovery attempt produced."""

    recovered: bool
    operation_ids: list[str] = field(default_factory=list)
    artifacts: list[str] = field(default_factory=list)
    output: str | None = None


class RecoveryHandler:
    """Re-prompt the backend once with the captured error and apply its operations."""

    def __init__(
        self,
        client: CompletionClient,
        operations: OperationHandler,
        *,
        temperature: float = 0.2,
        max_tokens: int | None = 2048,
    ) -> None:
        self._client = client
        self._operations = operations
        self._options = CompletionOptions(temperature=temperature, max_tokens=max_tokens)

    async def recover(self, task: PlanTask, error: BaseException | str, plan: Plan) -> RecoveryOutcome:
        """Attempt recovery; success requires at least one applied operation."""
        LOGGER.info("Attempting to recover failed task %s", task.id)
        prompt = render_recovery_prompt(task, str(error), plan)
        response = await self._client.complete(prompt, self._options)
        outcome = await self._operations.apply(response)
        if not outcome.success:
            LOGGER.warning("File operations processing failed for recovery of task %s", task.id)

        recovered = len(outcome.operation_ids) > 0
        LOGGER.info(
            "Recovery of task %s %s (%d operation(s))",
            task.id,
            "succeeded" if recovered else "produced no operations",
            len(outcome.operation_ids),
        )
        return RecoveryOutcome(
            recovered=recovered,
            operation_ids=list(outcome.operation_ids),
            artifacts=list(outcome.file_paths),
            output=response,
        )
