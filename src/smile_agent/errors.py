"""Exception hierarchy raised by the orchestration core."""

from __future__ import annotations

from typing import Any, Mapping


class AgentError(RuntimeError):
    """Base error for orchestration failures."""

    def __init__(self, message: str, *, details: Mapping[str, Any] | None = None) -> None:
        super().__init__(message)
        self.details: dict[str, Any] = dict(details or {})


class PlanSynthesisError(AgentError):
    """Raised when a request cannot be turned into a plan."""


class PlanParseError(PlanSynthesisError):
    """Raised when the backend response holds no decodable structured block."""


class PlanValidationError(PlanSynthesisError):
    """Raised when a decoded plan is missing required fields or is inconsistent."""


class ConfigError(AgentError):
    """Raised when the configuration file cannot be loaded or validated."""


__all__ = [
    "AgentError",
    "ConfigError",
    "PlanParseError",
    "PlanSynthesisError",
    "PlanValidationError",
]
