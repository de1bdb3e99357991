# src/agent_dispatch/tasks/task_models.py

from __future__ import annotations

from dataclasses import dataclass
from enum import StrEnum


class TaskStatus(StrEnum):
    """Task lifecycle status. A task is pending iff it has not been assigned."""

    PENDING = "pending"
    IN_PROGRESS = "in-progress"
    COMPLETED = "completed"
    FAILED = "failed"

    @property
    def is_terminal(self) -> bool:
        return self in (TaskStatus.COMPLETED, TaskStatus.FAILED)


class TaskPriority(StrEnum):
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"

    @classmethod
    def parse(cls, raw: str | None) -> TaskPriority | str:
        """Known priorities become enum members; anything else is kept as given."""
        if raw is None:
            return cls.MEDIUM
        text = str(raw).strip().lower()
        try:
            return cls(text)
        except ValueError:
            return str(raw)


# Lower rank is assigned first. Unknown priorities queue after LOW.
PRIORITY_RANK: dict[str, int] = {
    TaskPriority.HIGH: 0,
    TaskPriority.MEDIUM: 1,
    TaskPriority.LOW: 2,
}
UNKNOWN_PRIORITY_RANK = 3


def priority_rank(priority: str) -> int:
    return PRIORITY_RANK.get(priority, UNKNOWN_PRIORITY_RANK)


class WorkerStatus(StrEnum):
    IDLE = "idle"
    WORKING = "working"


@dataclass(slots=True, frozen=True)
class BranchInfo:
    previous_branch: str | None
    branch_name: str


@dataclass(slots=True, frozen=True)
class CommitSummary:
    changes: int = 0
    insertions: int = 0
    deletions: int = 0
    commit: str | None = None

    @property
    def is_empty(self) -> bool:
        return self.changes == 0


@dataclass(slots=True, frozen=True)
class TaskResult:
    """What a worker hands back to the scheduler. Workers never raise instead."""

    success: bool
    branch_name: str | None = None
    message: str | None = None
    error: str | None = None
    output: str | None = None
    commit: CommitSummary | None = None


@dataclass(slots=True)
class Task:
    id: str
    description: str
    priority: TaskPriority | str
    status: TaskStatus
    created_at: float

    completed_at: float | None = None
    assigned_to: str | None = None
    result: TaskResult | None = None
    error: str | None = None


@dataclass(slots=True, frozen=True)
class AgentUpdate:
    """Payload of agent:updated."""

    id: str
    status: WorkerStatus
    current_task_id: str | None


@dataclass(slots=True, frozen=True)
class AgentStatusView:
    """One row of get_agent_status(): current_task is resolved at call time."""

    id: str
    status: WorkerStatus
    current_task: Task | None
