# src/agent_dispatch/cli/bootstrap.py

"""
Composition root.

Builds one AppState: broadcast event sink, git collaborator, and a TaskScheduler
whose pool workers each own a ProcessSupervisor over the shared process launcher.
The data dir (log files) is created here.
"""

from __future__ import annotations

import logging

from ..agents.process import SubprocessLauncher
from ..agents.supervisor import ProcessSupervisor
from ..agents.worker import Worker
from ..config import get_settings
from ..core.events import BroadcastEventSink
from ..core.ports import ProcessLauncher
from ..core.state import AppState
from ..tasks.task_scheduler import TaskScheduler
from ..vcs.git_tool import GitTool

logger = logging.getLogger(__name__)


def _ensure_data_dir(settings) -> None:
    settings.data_dir.mkdir(parents=True, exist_ok=True)


def create_initial_state(*, settings=None, launcher: ProcessLauncher | None = None) -> AppState:
    """Wire the pool. `settings` defaults to get_settings(); `launcher` to real subprocesses."""
    if settings is None:
        settings = get_settings()

    _ensure_data_dir(settings)

    events = BroadcastEventSink()
    git = GitTool(settings.repo_path)
    process_launcher = launcher or SubprocessLauncher()

    def make_worker(agent_id: str) -> Worker:
        supervisor = ProcessSupervisor(
            agent_id,
            settings,
            launcher=process_launcher,
            events=events,
        )
        return Worker(
            agent_id,
            vcs=git,
            events=events,
            process_supervisor=supervisor,
            branch_prefix=settings.branch_prefix,
        )

    scheduler = TaskScheduler(
        events,
        make_worker,
        pool_size=settings.worker_count,
        strict_validation=settings.strict_validation,
    )
    logger.info(
        "Agent pool ready: %d workers on %s", scheduler.pool_size, settings.repo_path
    )
    return AppState(settings=settings, events=events, scheduler=scheduler, git=git)
