from __future__ import annotations

import asyncio
import threading

import pytest

from fakes import MemoryWorkspace, ScriptedClient, StaticOperationHandler, plan_response
from smile_agent import engine as engine_module
from smile_agent.engine import BUSY_MESSAGE, CANCELLED_MESSAGE, AgentEngine
from smile_agent.models.llm_client import LLMTransportError
from smile_agent.planning.schema import PlanStatus, TaskStatus
from smile_agent.tools.operations import OperationOutcome
from smile_agent.tools.run_logs import load_run_log

TWO_TASKS = [
    {"id": "A", "type": "FILE_CREATION", "description": "Create module", "priority": "HIGH", "dependencies": []},
    {"id": "B", "type": "CODE_MODIFICATION", "description": "Wire module", "priority": "MEDIUM", "dependencies": ["A"]},
]


def _engine(client, workspace=None, operations=None, **kwargs) -> AgentEngine:
    return AgentEngine(
        client,
        workspace or MemoryWorkspace({"src/app.py": "print('hi')\n"}),
        operations or StaticOperationHandler(),
        **kwargs,
    )


@pytest.mark.asyncio
async def test_request_is_planned_executed_and_summarised() -> None:
    client = ScriptedClient([plan_response(TWO_TASKS, context=["src/*.py"]), "created", "wired"])
    operations = StaticOperationHandler(
        outcomes=[
            OperationOutcome(operation_ids=["op-1"], file_paths=["src/module.py"]),
            OperationOutcome(operation_ids=["op-2"], file_paths=["src/app.py"]),
        ]
    )
    engine = _engine(client, operations=operations)

    outcome = await engine.run("Add a module and use it")

    assert outcome.success is True
    assert outcome.plan is not None
    assert outcome.plan.status == PlanStatus.COMPLETED
    assert [task.status for task in outcome.plan.tasks] == [TaskStatus.COMPLETED, TaskStatus.COMPLETED]
    assert outcome.message == (
        "Plan execution completed successfully.\n"
        "2/2 tasks completed (100% success rate).\n"
        "\n"
        "Modified files:\n"
        "- src/module.py\n"
        "- src/app.py\n"
    )
    assert client.calls[0].options.temperature == 0.2
    assert "Add a module and use it" in client.calls[0].prompt
    assert "### File: src/app.py" in client.calls[1].prompt
    assert outcome.log_path is None
    assert engine.is_running is False


@pytest.mark.asyncio
async def test_process_request_returns_the_message() -> None:
    client = ScriptedClient([plan_response(TWO_TASKS[:1]), "done"])

    message = await _engine(client).process_request("Create a module")

    assert message.startswith("Plan execution completed successfully.\n1/1 tasks completed (100% success rate).")


@pytest.mark.asyncio
async def test_concurrent_request_is_rejected_without_backend_calls() -> None:
    gate = asyncio.Event()
    client = ScriptedClient([plan_response(TWO_TASKS[:1]), "done"], gate=gate)
    engine = _engine(client)

    first = asyncio.create_task(engine.process_request("first"))
    await client.started.wait()
    assert engine.is_running is True

    busy = await engine.process_request("second")

    assert busy == BUSY_MESSAGE
    assert len(client.calls) == 1
    assert "first" in client.calls[0].prompt

    gate.set()
    result = await first
    assert result.startswith("Plan execution completed successfully.")
    assert engine.is_running is False


@pytest.mark.asyncio
async def test_cancelled_request_never_reaches_backend() -> None:
    client = ScriptedClient([plan_response(TWO_TASKS)])
    engine = _engine(client, should_cancel=lambda: True)

    outcome = await engine.run("anything")

    assert outcome.success is False
    assert outcome.message == CANCELLED_MESSAGE
    assert client.calls == []
    assert engine.is_running is False


@pytest.mark.asyncio
async def test_unparseable_plan_reports_synthesis_failure() -> None:
    client = ScriptedClient(["I think you should just edit the file."])

    outcome = await _engine(client).run("Refactor things")

    assert outcome.success is False
    assert outcome.plan is None
    assert outcome.message.startswith("I couldn't build a plan for your request: Failed to parse the task plan")
    assert len(client.calls) == 1


@pytest.mark.asyncio
async def test_invalid_plan_structure_reports_synthesis_failure() -> None:
    client = ScriptedClient(['```json\n{"mainGoal": "x", "taskBreakdown": []}\n```'])

    outcome = await _engine(client).run("Refactor things")

    assert outcome.message.startswith("I couldn't build a plan for your request: Invalid task plan structure")


@pytest.mark.asyncio
async def test_backend_error_during_planning_is_reported() -> None:
    client = ScriptedClient([LLMTransportError("connection refused")])
    engine = _engine(client)

    outcome = await engine.run("Refactor things")

    assert outcome.success is False
    assert outcome.message == "I encountered an error while processing your request: connection refused"
    assert engine.is_running is False


@pytest.mark.asyncio
async def test_engine_accepts_new_requests_after_a_failure() -> None:
    client = ScriptedClient([LLMTransportError("down"), plan_response(TWO_TASKS[:1]), "done"])
    engine = _engine(client)

    first = await engine.process_request("one")
    second = await engine.process_request("two")

    assert first.startswith("I encountered an error")
    assert second.startswith("Plan execution completed successfully.")


@pytest.mark.asyncio
async def test_partial_plan_is_not_a_success() -> None:
    client = ScriptedClient([plan_response(TWO_TASKS), LLMTransportError("timeout"), "no files here"])

    outcome = await _engine(client).run("Add a module")

    assert outcome.success is False
    assert outcome.plan.status == PlanStatus.PARTIALLY_COMPLETED
    assert "0/2 tasks completed (0% success rate)." in outcome.message
    assert "- Create module: Error: timeout" in outcome.message
    assert "- Wire module: Dependencies not met" in outcome.message


@pytest.mark.asyncio
async def test_execution_crash_marks_plan_failed() -> None:
    class BrokenGatherer:
        async def gather(self, patterns):
            raise RuntimeError("disk vanished")

    client = ScriptedClient([plan_response(TWO_TASKS)])
    engine = _engine(client)
    engine._executor._gatherer = BrokenGatherer()

    outcome = await engine.run("Add a module")

    assert outcome.success is False
    assert outcome.plan is not None
    assert outcome.plan.status == PlanStatus.FAILED
    assert outcome.message == "I encountered an error while processing your request: disk vanished"
    assert engine.is_running is False


@pytest.mark.asyncio
async def test_run_log_is_written_when_configured(tmp_path) -> None:
    client = ScriptedClient([plan_response(TWO_TASKS[:1]), "done"])
    engine = _engine(client, logs_root=tmp_path / "logs")

    outcome = await engine.run("Create a module")

    assert outcome.log_path is not None
    assert outcome.log_path.parent == tmp_path / "logs"
    entry = load_run_log(outcome.log_path)
    assert entry["request"] == "Create a module"
    assert entry["success"] is True
    assert entry["summary"] == outcome.message
    assert entry["plan"]["id"] == outcome.plan.id
    assert entry["plan"]["tasks"][0]["status"] == "COMPLETED"


@pytest.mark.asyncio
async def test_no_run_log_without_a_plan(tmp_path) -> None:
    client = ScriptedClient(["not a plan"])
    engine = _engine(client, logs_root=tmp_path / "logs")

    outcome = await engine.run("Create a module")

    assert outcome.log_path is None
    assert not (tmp_path / "logs").exists()


@pytest.mark.asyncio
async def test_failing_cancel_check_is_reported_not_raised() -> None:
    def broken_check() -> bool:
        raise RuntimeError("cancel hook broke")

    client = ScriptedClient([plan_response(TWO_TASKS)])
    engine = _engine(client, should_cancel=broken_check)

    message = await engine.process_request("anything")

    assert message == "I encountered an error while processing your request: cancel hook broke"
    assert client.calls == []
    assert engine.is_running is False


@pytest.mark.asyncio
async def test_run_log_is_written_off_the_event_loop_thread(tmp_path, monkeypatch) -> None:
    writer_threads: list[int] = []

    def recording_writer(logs_root, **kwargs):
        writer_threads.append(threading.get_ident())
        return logs_root / "run.json"

    monkeypatch.setattr(engine_module, "write_run_log", recording_writer)
    client = ScriptedClient([plan_response(TWO_TASKS[:1]), "done"])

    outcome = await _engine(client, logs_root=tmp_path).run("Create a module")

    assert outcome.log_path == tmp_path / "run.json"
    assert len(writer_threads) == 1
    assert writer_threads[0] != threading.get_ident()
