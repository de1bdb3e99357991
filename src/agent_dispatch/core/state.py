# src/agent_dispatch/core/state.py

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

from .events import BroadcastEventSink

if TYPE_CHECKING:
    from ..tasks.task_scheduler import TaskScheduler
    from ..vcs.git_tool import GitTool


@dataclass
class AppState:
    """Everything a connector needs, wired once in the composition root."""

    settings: Any
    events: BroadcastEventSink
    scheduler: TaskScheduler
    git: GitTool
