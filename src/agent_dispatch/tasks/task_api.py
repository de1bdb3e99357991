# src/agent_dispatch/tasks/task_api.py

from __future__ import annotations

import logging

from ..core.events import ProgressUpdate
from ..core.state import AppState

logger = logging.getLogger(__name__)

USER_TASK_ID = "user"


def submit_task(state: AppState, description: str, priority: str = "medium") -> str:
    """Convenience helper for connectors: create a task on the app's scheduler."""
    task_id = state.scheduler.create_task(description.strip(), priority)
    logger.info("Submitted task %s (priority=%s)", task_id, priority)
    return task_id


def relay_user_message(state: AppState, agent_id: str, message: str) -> bool:
    """
    Deliver a live user message to an agent's running program.

    The message is echoed as progress first so it shows up in the activity log even
    when delivery fails. Returns True only if the line reached the agent's stdin.
    """
    events = state.events
    events.agent_progress(
        ProgressUpdate(agent_id=agent_id, task_id=USER_TASK_ID, message=f"User: {message}")
    )

    agent = state.scheduler.get_agent(agent_id)
    if agent is None:
        events.agent_progress(
            ProgressUpdate(
                agent_id=agent_id, task_id=USER_TASK_ID, message="Agent not found", level="error"
            )
        )
        return False

    supervisor = agent.process_supervisor
    if not supervisor.is_active:
        logger.warning("Agent %s not ready to receive messages (no agent process)", agent_id)
        events.agent_progress(
            ProgressUpdate(
                agent_id=agent_id,
                task_id=USER_TASK_ID,
                message="Agent not ready to receive messages. Try starting a new task first.",
                level="warn",
            )
        )
        return False

    return supervisor.send_input(message)
