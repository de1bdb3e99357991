# src/agent_dispatch/core/ports.py

"""
Ports (interfaces) used by the core.

The scheduler, workers and supervisors depend on Protocols instead of concrete
implementations. This keeps git, subprocess plumbing and the dashboard transport
swappable, and lets tests drive the core with fakes (canned output chunks,
recorded writes, recorded events).
"""

from __future__ import annotations

from collections.abc import AsyncIterator, Sequence
from pathlib import Path
from typing import TYPE_CHECKING, Protocol

if TYPE_CHECKING:
    from ..tasks.task_models import AgentUpdate, BranchInfo, CommitSummary, Task
    from .events import ProgressUpdate


class EventSink(Protocol):
    """
    Fan-out-only notification port (the dashboard side).

    Nothing reads state back through it; implementations must not raise into the caller.
    """

    def task_created(self, task: Task) -> None: ...
    def task_updated(self, task: Task) -> None: ...
    def agent_updated(self, update: AgentUpdate) -> None: ...
    def agent_progress(self, progress: ProgressUpdate) -> None: ...


class VersionControl(Protocol):
    """The two version-control calls a worker needs."""

    async def create_branch(self, name: str) -> BranchInfo: ...
    async def commit_changes(self, message: str) -> CommitSummary: ...


class AgentProcess(Protocol):
    """
    A running external program with its three standard streams as pipes.

    write() returns False when the transport did not accept the data for immediate
    delivery; the caller decides whether to retry. It raises WriteError when stdin is gone.
    """

    @property
    def returncode(self) -> int | None: ...

    def write(self, text: str) -> bool: ...
    def is_writable(self) -> bool: ...
    def stdout_chunks(self) -> AsyncIterator[str]: ...
    def stderr_chunks(self) -> AsyncIterator[str]: ...
    async def wait(self) -> int: ...
    def kill(self) -> None: ...


class ProcessLauncher(Protocol):
    async def spawn(self, argv: Sequence[str], *, cwd: Path | None = None) -> AgentProcess: ...
