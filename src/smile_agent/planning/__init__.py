"""Plan synthesis, ordering and execution."""

from importlib import import_module
from typing import Any

_EXPORTS = {
    "PlanExecutor": "smile_agent.planning.executor",
    "PlanSynthesizer": "smile_agent.planning.synthesizer",
    "RecoveryHandler": "smile_agent.planning.recovery",
    "TaskExecutor": "smile_agent.planning.executor",
    "render_plan_summary": "smile_agent.planning.summary",
    "resolve_execution_order": "smile_agent.planning.resolver",
}

__all__ = sorted(_EXPORTS)


def __getattr__(name: str) -> Any:
    """Lazily import planning helpers so schema imports stay cheap."""
    if name in _EXPORTS:
        module = import_module(_EXPORTS[name])
        return getattr(module, name)
    raise AttributeError(f"module {__name__!r} has no attribute {name!r}")
