# src/agent_dispatch/agents/worker.py

from __future__ import annotations

import logging

from ..core.events import ProgressUpdate
from ..core.ports import EventSink, VersionControl
from ..tasks.task_models import Task, TaskResult
from .supervisor import ProcessSupervisor

logger = logging.getLogger(__name__)


def branch_name_for(task_id: str, prefix: str = "task-") -> str:
    return f"{prefix}{task_id[:8]}"


class Worker:
    """
    One pool slot: runs a single task end to end.

    Pipeline: branch -> agent session -> commit. Any failure short-circuits the rest
    and comes back as TaskResult(success=False); execute_task() never raises.
    """

    def __init__(
        self,
        agent_id: str,
        *,
        vcs: VersionControl,
        events: EventSink,
        process_supervisor: ProcessSupervisor,
        branch_prefix: str = "task-",
    ) -> None:
        self.id = agent_id
        self.process_supervisor = process_supervisor
        self._vcs = vcs
        self._events = events
        self._branch_prefix = branch_prefix

    async def execute_task(self, task: Task) -> TaskResult:
        try:
            self._progress(task.id, f"Agent {self.id} starting task: {task.description}")

            branch_name = branch_name_for(task.id, self._branch_prefix)
            await self._vcs.create_branch(branch_name)
            self._progress(task.id, f"Created branch: {branch_name}")

            output = await self._run_agent(task)

            commit = await self._vcs.commit_changes(f"Implement task: {task.description}")
            if commit.is_empty:
                self._progress(task.id, f"No changes to commit on branch: {branch_name}")
            else:
                self._progress(task.id, f"Committed changes to branch: {branch_name}")

            return TaskResult(
                success=True,
                branch_name=branch_name,
                message=f"Task completed successfully on branch {branch_name}",
                output=output,
                commit=commit,
            )
        except Exception as exc:
            logger.debug("Agent %s failed task %s", self.id, task.id, exc_info=True)
            self._progress(task.id, f"Task error: {exc}", level="error")
            return TaskResult(success=False, error=str(exc))

    async def _run_agent(self, task: Task) -> str:
        self._progress(task.id, f"Sending task to agent: {task.description}")
        try:
            output = await self.process_supervisor.execute_task(task.description, task_id=task.id)
        except Exception as exc:
            self._progress(task.id, f"Error from agent: {exc}", level="error")
            raise
        self._progress(task.id, "Received response from agent")
        return output

    def _progress(self, task_id: str, message: str, level: str = "info") -> None:
        self._events.agent_progress(
            ProgressUpdate(agent_id=self.id, task_id=task_id, message=message, level=level)
        )
