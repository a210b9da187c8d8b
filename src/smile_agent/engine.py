"""Agent engine: the single entry point that turns a request into a summary."""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Callable

from .context import ContextGatherer
from .errors import PlanSynthesisError
from .models.llm_client import CompletionClient
from .planning.executor import ExecutionSettings, PlanExecutor
from .planning.schema import Plan, PlanStatus
from .planning.synthesizer import PlanSynthesizer
from .tools.operations import OperationHandler
from .tools.run_logs import write_run_log
from .workspace import Workspace

LOGGER = logging.getLogger(__name__)

__all__ = [
    "BUSY_MESSAGE",
    "CANCELLED_MESSAGE",
    "AgentEngine",
    "EngineRun",
]

BUSY_MESSAGE = "Another task is already being executed. Please wait until it completes."
CANCELLED_MESSAGE = "Request cancelled before execution started."


@dataclass(slots=True)
class EngineRun:
    """Structured outcome of one :meth:`AgentEngine.run` call."""

    success: bool
    message: str
    plan: Plan | None = None
    log_path: Path | None = None


class AgentEngine:
    """Plan, execute and summarise one request at a time.

    Construct one engine per workspace and share it among callers. A request
    that arrives while another run is in flight is answered immediately with
    :data:`BUSY_MESSAGE`; nothing is queued.
    """

    def __init__(
        self,
        client: CompletionClient,
        workspace: Workspace,
        operations: OperationHandler,
        *,
        settings: ExecutionSettings | None = None,
        planning_temperature: float = 0.2,
        should_cancel: Callable[[], bool] | None = None,
        logs_root: Path | None = None,
    ) -> None:
        self._synthesizer = PlanSynthesizer(client, temperature=planning_temperature)
        self._executor = PlanExecutor.build(
            client,
            operations,
            ContextGatherer(workspace),
            settings or ExecutionSettings(),
        )
        self._should_cancel = should_cancel
        self._logs_root = logs_root
        self._running = False

    @property
    def is_running(self) -> bool:
        return self._running

    async def process_request(self, request: str) -> str:
        """Return the execution summary or an explanatory message. Never raises."""
        outcome = await self.run(request)
        return outcome.message

    async def run(self, request: str) -> EngineRun:
        if self._running:
            LOGGER.info("Rejecting request while another run is in progress")
            return EngineRun(success=False, message=BUSY_MESSAGE)

        self._running = True
        try:
            outcome = await self._run_guarded(request)
        finally:
            self._running = False

        if self._logs_root is not None and outcome.plan is not None:
            outcome.log_path = await asyncio.to_thread(
                write_run_log,
                self._logs_root,
                request=request,
                plan=outcome.plan,
                summary=outcome.message,
                success=outcome.success,
            )
        return outcome

    async def _run_guarded(self, request: str) -> EngineRun:
        if self._should_cancel is not None:
            try:
                cancelled = self._should_cancel()
            except Exception as error:
                LOGGER.error("Cancellation check failed: %s", error, exc_info=True)
                return EngineRun(
                    success=False,
                    message=f"I encountered an error while processing your request: {error}",
                )
            if cancelled:
                LOGGER.info("Request cancelled by pre-flight check")
                return EngineRun(success=False, message=CANCELLED_MESSAGE)

        LOGGER.info("Agent processing request: %s", request)
        try:
            plan = await self._synthesizer.synthesize(request)
        except PlanSynthesisError as error:
            LOGGER.warning("Plan synthesis failed: %s", error)
            return EngineRun(success=False, message=f"I couldn't build a plan for your request: {error}")
        except Exception as error:
            LOGGER.error("Error in agent processing: %s", error, exc_info=True)
            return EngineRun(
                success=False,
                message=f"I encountered an error while processing your request: {error}",
            )

        try:
            summary = await self._executor.execute(plan)
        except Exception as error:
            LOGGER.error("Plan %s aborted: %s", plan.id, error, exc_info=True)
            plan.status = PlanStatus.FAILED
            return EngineRun(
                success=False,
                message=f"I encountered an error while processing your request: {error}",
                plan=plan,
            )

        return EngineRun(success=plan.status == PlanStatus.COMPLETED, message=summary, plan=plan)
