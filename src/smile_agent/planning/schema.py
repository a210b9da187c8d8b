"""Typed records describing plans, tasks and their execution results."""

from __future__ import annotations

from datetime import datetime, timezone
from enum import Enum
from typing import Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field


def utc_now() -> datetime:
    """Return a timezone-aware UTC timestamp."""
    return datetime.now(timezone.utc)


class RecordModel(BaseModel):
    """Base Pydantic model with strict field handling."""

    model_config = ConfigDict(extra="forbid", frozen=False, validate_assignment=True)


class PlanStatus(str, Enum):
    """Lifecycle states for a plan."""

    PENDING = "PENDING"
    IN_PROGRESS = "IN_PROGRESS"
    COMPLETED = "COMPLETED"
    PARTIALLY_COMPLETED = "PARTIALLY_COMPLETED"
    FAILED = "FAILED"


class TaskStatus(str, Enum):
    """Lifecycle states for a task."""

    PENDING = "PENDING"
    IN_PROGRESS = "IN_PROGRESS"
    COMPLETED = "COMPLETED"
    FAILED = "FAILED"


class TaskKind(str, Enum):
    """Recognised task kinds. ``UNKNOWN`` covers anything else the planner emits."""

    CODE_MODIFICATION = "CODE_MODIFICATION"
    FILE_CREATION = "FILE_CREATION"
    CODE_ANALYSIS = "CODE_ANALYSIS"
    REFACTORING = "REFACTORING"
    UNKNOWN = "UNKNOWN"

    @classmethod
    def parse(cls, value: object) -> "TaskKind":
        text = _enum_token(value)
        try:
            return cls(text)
        except ValueError:
            return cls.UNKNOWN


class TaskPriority(str, Enum):
    """Task priority. ``UNKNOWN`` orders like ``MEDIUM`` but is never recovered."""

    HIGH = "HIGH"
    MEDIUM = "MEDIUM"
    LOW = "LOW"
    UNKNOWN = "UNKNOWN"

    @classmethod
    def parse(cls, value: object) -> "TaskPriority":
        text = _enum_token(value)
        try:
            return cls(text)
        except ValueError:
            return cls.UNKNOWN

    @property
    def rank(self) -> int:
        """Sort key used when breaking dependency deadlocks (lower runs first)."""
        return _PRIORITY_RANK[self]


_PRIORITY_RANK = {
    TaskPriority.HIGH: 0,
    TaskPriority.MEDIUM: 1,
    TaskPriority.UNKNOWN: 1,
    TaskPriority.LOW: 2,
}


def _enum_token(value: object) -> str:
    if value is None:
        return ""
    return str(value).strip().upper().replace("-", "_").replace(" ", "_")


class TaskResult(RecordModel):
    """Outcome of executing or recovering a single task."""

    success: bool
    message: str
    artifacts: List[str] = Field(default_factory=list)
    operation_ids: List[str] = Field(default_factory=list)
    output: Optional[str] = None


class PlanTask(RecordModel):
    """Single unit of plan work."""

    id: str
    kind: TaskKind = TaskKind.UNKNOWN
    raw_kind: str = ""
    description: str = ""
    priority: TaskPriority = TaskPriority.MEDIUM
    dependencies: List[str] = Field(default_factory=list)
    estimated_complexity: Optional[str] = None
    status: TaskStatus = TaskStatus.PENDING
    started_at: Optional[datetime] = None
    ended_at: Optional[datetime] = None

    @property
    def kind_label(self) -> str:
        """Return the planner's own wording for the task kind when available."""
        return self.raw_kind or self.kind.value


class Plan(RecordModel):
    """Structured decomposition of one user request into tasks."""

    id: str
    main_goal: str
    original_request: str
    tasks: List[PlanTask] = Field(default_factory=list)
    context_patterns: List[str] = Field(default_factory=list)
    risks: List[str] = Field(default_factory=list)
    created_at: datetime = Field(default_factory=utc_now)
    status: PlanStatus = PlanStatus.PENDING
    results: Dict[str, TaskResult] = Field(default_factory=dict)

    def get_task(self, task_id: str) -> PlanTask | None:
        """Return the task with ``task_id`` or ``None`` when absent."""
        for task in self.tasks:
            if task.id == task_id:
                return task
        return None

    def all_tasks_completed(self) -> bool:
        return all(task.status == TaskStatus.COMPLETED for task in self.tasks)


__all__ = [
    "Plan",
    "PlanStatus",
    "PlanTask",
    "RecordModel",
    "TaskKind",
    "TaskPriority",
    "TaskResult",
    "TaskStatus",
    "utc_now",
]
