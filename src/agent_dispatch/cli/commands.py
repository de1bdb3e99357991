# src/agent_dispatch/cli/commands.py

from __future__ import annotations

import logging
import time
from collections.abc import Callable
from dataclasses import dataclass

from ..core.errors import ValidationError
from ..core.state import AppState
from ..tasks.task_api import relay_user_message, submit_task
from ..tasks.task_models import TaskPriority

CommandEmitter = Callable[[str], None]
CommandHandler = Callable[[AppState, list[str], CommandEmitter | None], str]

logger = logging.getLogger(__name__)

_PRIORITIES = {p.value for p in TaskPriority}


@dataclass(slots=True, frozen=True)
class Command:
    name: str
    handler: CommandHandler
    summary: str
    usage: str = ""


class CommandRegistry:
    """Slash commands for the console: one Command per name, aliases point at the same entry."""

    def __init__(self) -> None:
        self._commands: dict[str, Command] = {}
        self._lookup: dict[str, Command] = {}

    def register(
        self,
        name: str,
        handler: CommandHandler,
        summary: str,
        *,
        usage: str = "",
        aliases: tuple[str, ...] = (),
    ) -> Command:
        command = Command(name=name.lower(), handler=handler, summary=summary, usage=usage)
        self._commands[command.name] = command
        for key in (command.name, *(a.lower() for a in aliases)):
            self._lookup[key] = command
        return command

    def get(self, name: str) -> Command | None:
        return self._lookup.get(name.lower())

    def handle(
        self,
        state: AppState,
        line: str,
        emit: CommandEmitter | None = None,
    ) -> str | None:
        """Run "/name args..." and return its reply. Plain text is not a command: None."""
        if not line.startswith("/"):
            return None

        name, *args = line[1:].split() or [""]
        if not name:
            return "Empty command. Try /help."

        command = self.get(name)
        if command is None:
            return f"Unknown command: /{name.lower()}. Try /help."
        logger.debug("Command /%s %s", command.name, args)
        return command.handler(state, args, emit)

    def build_help(self) -> str:
        rows = [f"  /{c.usage or c.name} - {c.summary}" for c in self._commands.values()]
        return "\n".join(["Available commands:", *rows, "  /exit - Stop the pool and quit."])


registry = CommandRegistry()


def _age(ts: float | None) -> str:
    if ts is None:
        return "-"
    return f"{max(0.0, time.time() - ts):.0f}s ago"


def cmd_help(state: AppState, args: list[str], emit: CommandEmitter | None = None) -> str:
    return registry.build_help()


def cmd_task(state: AppState, args: list[str], emit: CommandEmitter | None = None) -> str:
    """
    /task <description>                -> medium priority
    /task high|medium|low <description>
    """
    if not args:
        return "Usage: /task [high|medium|low] <description>"

    priority = TaskPriority.MEDIUM.value
    if args[0].lower() in _PRIORITIES and len(args) > 1:
        priority = args[0].lower()
        args = args[1:]

    try:
        task_id = submit_task(state, " ".join(args), priority)
    except ValidationError as e:
        return f"Task rejected: {e}"

    task = state.scheduler.get_task(task_id)
    where = f"assigned to {task.assigned_to}" if task and task.assigned_to else "queued"
    return f"Task {task_id} created ({priority}), {where}."


def cmd_tasks(state: AppState, args: list[str], emit: CommandEmitter | None = None) -> str:
    tasks = state.scheduler.get_tasks()
    if not tasks:
        return "No tasks yet."
    lines = ["Tasks:"]
    for t in tasks:
        agent = t.assigned_to or "-"
        line = f"  {t.id[:8]} [{t.status}] ({t.priority}) agent={agent} created {_age(t.created_at)}: {t.description}"
        if t.error:
            line += f"\n      error: {t.error.strip()[:200]}"
        elif t.result and t.result.branch_name:
            line += f"\n      branch: {t.result.branch_name}"
        lines.append(line)
    return "\n".join(lines)


def cmd_agents(state: AppState, args: list[str], emit: CommandEmitter | None = None) -> str:
    lines = ["Agents:"]
    for view in state.scheduler.get_agent_status():
        current = view.current_task.description if view.current_task else "-"
        lines.append(f"  {view.id}: {view.status} (task: {current})")
    return "\n".join(lines)


def cmd_say(state: AppState, args: list[str], emit: CommandEmitter | None = None) -> str:
    """/say <agent-id> <message> -> type a line into that agent's running program."""
    if len(args) < 2:
        return "Usage: /say <agent-id> <message>"
    agent_id, message = args[0], " ".join(args[1:])
    if relay_user_message(state, agent_id, message):
        return f"Sent to {agent_id}."
    return f"Could not deliver message to {agent_id}."


def cmd_status(state: AppState, args: list[str], emit: CommandEmitter | None = None) -> str:
    s = state.settings
    running = state.scheduler.running_count()
    timeout = f"{s.task_timeout:g}s" if s.task_timeout > 0 else "none"
    return "\n".join(
        [
            "Status:",
            f"  Repository: {s.repo_path}",
            f"  Agents: {state.scheduler.pool_size} ({running} busy)",
            f"  Agent command: {s.agent_command} {' '.join(s.agent_args)}",
            f"  Wrapper script: {s.wrapper_script or '-'}",
            f"  Task timeout: {timeout}",
        ]
    )


registry.register("help", cmd_help, "Show available commands.", aliases=("h", "?"))
registry.register(
    "task", cmd_task, "Create a task.", usage="task [high|medium|low] <description>"
)
registry.register("tasks", cmd_tasks, "List tasks and their status.")
registry.register("agents", cmd_agents, "Show agent pool status.")
registry.register(
    "say", cmd_say, "Type a line into a running agent.", usage="say <agent-id> <message>"
)
registry.register("status", cmd_status, "Show repository and pool settings.")
