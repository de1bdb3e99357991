# tests/conftest.py

from __future__ import annotations

from pathlib import Path
from types import SimpleNamespace

import pytest

from agent_dispatch.agents.supervisor import ProcessSupervisor
from agent_dispatch.agents.worker import Worker
from agent_dispatch.core.events import BroadcastEventSink
from agent_dispatch.core.state import AppState
from agent_dispatch.tasks.task_scheduler import TaskScheduler

from .fakes import FakeLauncher, FakeVersionControl, RecordingEventSink


@pytest.fixture()
def settings(tmp_path: Path) -> SimpleNamespace:
    """
    Minimal settings object compatible with the supervisor, worker and commands.

    We intentionally use a SimpleNamespace rather than importing real config,
    to keep unit tests isolated from the environment. Delays are shortened so
    timing tests stay fast; the rescan timer is off unless a test enables it.
    """
    return SimpleNamespace(
        app_name="agent-dispatch-test",
        data_dir=tmp_path / "data",
        repo_path=tmp_path,
        worker_count=3,
        branch_prefix="task-",
        strict_validation=False,
        agent_command="claude",
        agent_args=["ask"],
        wrapper_script=None,
        wrapper_interpreter="node",
        bootstrap_phrase="Enter your programming task or question:",
        confirm_step_delay=0.05,
        confirm_rescan_interval=0.0,
        write_retry_delay=0.02,
        task_timeout=0.0,
    )


@pytest.fixture()
def sink() -> RecordingEventSink:
    return RecordingEventSink()


@pytest.fixture()
def vcs() -> FakeVersionControl:
    return FakeVersionControl()


@pytest.fixture()
def launcher() -> FakeLauncher:
    return FakeLauncher()


@pytest.fixture()
def make_scheduler(settings, sink, vcs, launcher):
    """Factory: TaskScheduler over real Workers/Supervisors driven by fake processes."""

    def _make(pool_size: int = 3, strict_validation: bool = False) -> TaskScheduler:
        def make_worker(agent_id: str) -> Worker:
            supervisor = ProcessSupervisor(agent_id, settings, launcher=launcher, events=sink)
            return Worker(agent_id, vcs=vcs, events=sink, process_supervisor=supervisor)

        return TaskScheduler(
            sink, make_worker, pool_size=pool_size, strict_validation=strict_validation
        )

    return _make


@pytest.fixture()
def state(settings, vcs, launcher) -> AppState:
    """AppState wired with a broadcast sink and deterministic fakes."""
    events = BroadcastEventSink()

    def make_worker(agent_id: str) -> Worker:
        supervisor = ProcessSupervisor(agent_id, settings, launcher=launcher, events=events)
        return Worker(agent_id, vcs=vcs, events=events, process_supervisor=supervisor)

    scheduler = TaskScheduler(events, make_worker, pool_size=settings.worker_count)
    return AppState(settings=settings, events=events, scheduler=scheduler, git=vcs)
