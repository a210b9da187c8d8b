"""Autonomous plan-and-execute core for the Smile AI coding assistant."""

from .engine import AgentEngine, EngineRun
from .errors import AgentError, PlanParseError, PlanSynthesisError, PlanValidationError

__all__ = [
    "AgentEngine",
    "AgentError",
    "EngineRun",
    "PlanParseError",
    "PlanSynthesisError",
    "PlanValidationError",
]

__version__ = "0.1.0"
