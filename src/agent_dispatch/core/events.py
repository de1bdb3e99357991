# src/agent_dispatch/core/events.py

"""
Event names, the progress record and the broadcast event sink.

The dashboard (or the console connector) subscribes to BroadcastEventSink; the core
only ever calls the EventSink port methods.
"""

from __future__ import annotations

import logging
import time
from collections.abc import Callable
from dataclasses import dataclass, field
from typing import Any

from ..tasks.task_models import AgentUpdate, Task

logger = logging.getLogger(__name__)

TASK_CREATED = "task:created"
TASK_UPDATED = "task:updated"
AGENT_UPDATED = "agent:updated"
AGENT_PROGRESS = "agent:progress"

Subscriber = Callable[[str, Any], None]

_LEVELS = {
    "info": logging.INFO,
    "warn": logging.WARNING,
    "error": logging.ERROR,
}


@dataclass(slots=True, frozen=True)
class ProgressUpdate:
    agent_id: str
    task_id: str
    message: str
    level: str = "info"
    timestamp: float = field(default_factory=time.time)


class BroadcastEventSink:
    """
    EventSink that logs every event and fans it out to subscribers.

    A failing subscriber is logged and skipped; it never reaches the scheduler.
    """

    def __init__(self) -> None:
        self._subscribers: list[Subscriber] = []

    def subscribe(self, callback: Subscriber) -> Callable[[], None]:
        """Register a callback(event_name, payload). Returns an unsubscribe function."""
        self._subscribers.append(callback)

        def _unsubscribe() -> None:
            if callback in self._subscribers:
                self._subscribers.remove(callback)

        return _unsubscribe

    def task_created(self, task: Task) -> None:
        logger.info("Task %s created (priority=%s)", task.id, task.priority)
        self._publish(TASK_CREATED, task)

    def task_updated(self, task: Task) -> None:
        logger.debug("Task %s -> %s (agent=%s)", task.id, task.status, task.assigned_to)
        self._publish(TASK_UPDATED, task)

    def agent_updated(self, update: AgentUpdate) -> None:
        logger.debug("Agent %s -> %s (task=%s)", update.id, update.status, update.current_task_id)
        self._publish(AGENT_UPDATED, update)

    def agent_progress(self, progress: ProgressUpdate) -> None:
        level = _LEVELS.get(progress.level, logging.INFO)
        logger.log(level, "[Agent %s] %s", progress.agent_id, progress.message)
        self._publish(AGENT_PROGRESS, progress)

    def _publish(self, event: str, payload: Any) -> None:
        for callback in list(self._subscribers):
            try:
                callback(event, payload)
            except Exception:
                logger.exception("Event subscriber failed on %s", event)
