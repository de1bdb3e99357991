# src/agent_dispatch/tasks/task_scheduler.py

"""
Task scheduler.

Owns the task and worker registries and pairs pending tasks with idle workers:
- pending tasks by priority rank (high, medium, low), FIFO within a rank,
- idle workers in registration order,
- each pairing starts the worker on the event loop without waiting for it,
- every completion or failure frees the worker and runs another assignment pass,
  so a queue longer than the pool drains on its own.

All mutations happen in synchronous sections on one event loop; there are no locks.
Other components only see state through the EventSink notifications and the
snapshot getters.
"""

from __future__ import annotations

import asyncio
import logging
import time
import uuid
from collections.abc import Callable
from dataclasses import dataclass, replace

from ..agents.worker import Worker
from ..core.errors import ValidationError
from ..core.ports import EventSink
from .task_models import (
    PRIORITY_RANK,
    AgentStatusView,
    AgentUpdate,
    Task,
    TaskPriority,
    TaskResult,
    TaskStatus,
    WorkerStatus,
    priority_rank,
)

logger = logging.getLogger(__name__)

WorkerFactory = Callable[[str], Worker]


@dataclass(slots=True)
class AgentSlot:
    """Scheduler-side bookkeeping for one pool worker."""

    id: str
    agent: Worker
    status: WorkerStatus = WorkerStatus.IDLE
    current_task_id: str | None = None


class TaskScheduler:
    def __init__(
        self,
        events: EventSink,
        worker_factory: WorkerFactory,
        *,
        pool_size: int = 3,
        strict_validation: bool = False,
    ) -> None:
        self._events = events
        self._strict = strict_validation
        # dicts keep insertion order: creation order for tasks, registration order for agents
        self._tasks: dict[str, Task] = {}
        self._agents: dict[str, AgentSlot] = {}
        self._running: set[asyncio.Task[None]] = set()

        self._initialize_agents(worker_factory, pool_size)

    def _initialize_agents(self, worker_factory: WorkerFactory, count: int) -> None:
        for i in range(count):
            agent_id = f"agent-{i + 1}"
            self._agents[agent_id] = AgentSlot(id=agent_id, agent=worker_factory(agent_id))
        logger.info("Initialized %d agents", count)

    @property
    def pool_size(self) -> int:
        return len(self._agents)

    # ---- public API ----

    def create_task(self, description: str, priority: str = TaskPriority.MEDIUM) -> str:
        """
        Store a new pending task and immediately try to assign it.

        Must be called from a running event loop; assignment starts worker coroutines.
        """
        parsed = TaskPriority.parse(priority)
        if self._strict:
            if not str(description or "").strip():
                raise ValidationError("Task description must not be empty")
            if parsed not in PRIORITY_RANK:
                raise ValidationError(f"Unknown task priority: {priority!r}")
        elif parsed not in PRIORITY_RANK:
            logger.warning("Unknown priority %r; task will queue after low priority", priority)

        task = Task(
            id=str(uuid.uuid4()),
            description=description,
            priority=parsed,
            status=TaskStatus.PENDING,
            created_at=time.time(),
        )
        self._tasks[task.id] = task

        self._events.task_created(replace(task))
        self.assign_pending_tasks()
        return task.id

    def assign_pending_tasks(self) -> int:
        """Pair pending tasks with idle agents until one list runs out. Returns pairings made."""
        # Fails before any state changes when called outside an event loop.
        loop = asyncio.get_running_loop()

        # sorted() is stable: equal ranks keep creation order
        pending = sorted(
            (t for t in self._tasks.values() if t.status is TaskStatus.PENDING),
            key=lambda t: priority_rank(t.priority),
        )
        idle = [slot for slot in self._agents.values() if slot.status is WorkerStatus.IDLE]

        assigned = 0
        while pending and idle:
            task = pending.pop(0)
            slot = idle.pop(0)

            task.status = TaskStatus.IN_PROGRESS
            task.assigned_to = slot.id
            slot.status = WorkerStatus.WORKING
            slot.current_task_id = task.id

            self._events.task_updated(replace(task))
            self._events.agent_updated(
                AgentUpdate(id=slot.id, status=slot.status, current_task_id=task.id)
            )
            logger.info("Task %s -> %s", task.id, slot.id)

            self._launch(loop, slot, replace(task))
            assigned += 1
        return assigned

    def on_task_completion(self, task_id: str, result: TaskResult) -> None:
        task = self._finish(task_id, TaskStatus.COMPLETED)
        if task is None:
            return
        task.result = result
        self._release(task)

    def on_task_failure(
        self,
        task_id: str,
        error: BaseException | str,
        *,
        result: TaskResult | None = None,
    ) -> None:
        task = self._finish(task_id, TaskStatus.FAILED)
        if task is None:
            return
        task.error = str(error)
        task.result = result
        self._release(task)

    def get_tasks(self) -> list[Task]:
        return [replace(t) for t in self._tasks.values()]

    def get_task(self, task_id: str) -> Task | None:
        task = self._tasks.get(task_id)
        return replace(task) if task is not None else None

    def get_agent_status(self) -> list[AgentStatusView]:
        out: list[AgentStatusView] = []
        for slot in self._agents.values():
            current = self._tasks.get(slot.current_task_id) if slot.current_task_id else None
            out.append(
                AgentStatusView(
                    id=slot.id,
                    status=slot.status,
                    current_task=replace(current) if current is not None else None,
                )
            )
        return out

    def get_agent(self, agent_id: str) -> Worker | None:
        slot = self._agents.get(agent_id)
        return slot.agent if slot is not None else None

    def running_count(self) -> int:
        return sum(1 for t in self._tasks.values() if t.status is TaskStatus.IN_PROGRESS)

    async def wait_idle(self) -> None:
        """Wait until no task is executing, including tasks started by cascading passes."""
        while self._running:
            await asyncio.gather(*list(self._running), return_exceptions=True)

    def shutdown(self) -> int:
        """Kill every live agent process. Returns how many were killed."""
        killed = 0
        for slot in self._agents.values():
            if slot.agent.process_supervisor.terminate():
                killed += 1
        if killed:
            logger.info("Killed %d running agent processes", killed)
        return killed

    # ---- internals ----

    def _launch(self, loop: asyncio.AbstractEventLoop, slot: AgentSlot, task: Task) -> None:
        runner = loop.create_task(
            self._execute(slot.agent, task), name=f"{slot.id}:{task.id}"
        )
        self._running.add(runner)
        runner.add_done_callback(self._running.discard)

    async def _execute(self, agent: Worker, task: Task) -> None:
        try:
            result = await agent.execute_task(task)
        except Exception as exc:
            # Worker.execute_task converts failures itself; this only guards contract breaks.
            logger.exception("Agent %s raised while running task %s", agent.id, task.id)
            self.on_task_failure(task.id, exc)
            return

        if result.success:
            self.on_task_completion(task.id, result)
        else:
            self.on_task_failure(task.id, result.error or "Task failed", result=result)

    def _finish(self, task_id: str, status: TaskStatus) -> Task | None:
        task = self._tasks.get(task_id)
        if task is None:
            logger.warning("Result for unknown task %s ignored", task_id)
            return None
        if task.status is not TaskStatus.IN_PROGRESS:
            logger.warning("Task %s is %s, ignoring %s", task_id, task.status, status)
            return None
        task.status = status
        task.completed_at = time.time()
        return task

    def _release(self, task: Task) -> None:
        slot = self._agents.get(task.assigned_to or "")
        if slot is not None and slot.current_task_id == task.id:
            slot.status = WorkerStatus.IDLE
            slot.current_task_id = None
            self._events.agent_updated(
                AgentUpdate(id=slot.id, status=slot.status, current_task_id=None)
            )

        self._events.task_updated(replace(task))
        logger.info("Task %s -> %s", task.id, task.status)

        self.assign_pending_tasks()
