# src/agent_dispatch/connectors/console_connector.py

from __future__ import annotations

import asyncio
import logging
import threading
from datetime import datetime
from typing import Any

from ..cli.commands import registry as command_registry
from ..core.events import AGENT_PROGRESS, AGENT_UPDATED, TASK_UPDATED, ProgressUpdate
from ..core.state import AppState
from ..tasks.task_models import AgentUpdate, Task

logger = logging.getLogger(__name__)


def _ts_local() -> str:
    return datetime.now().astimezone().strftime("%Y-%m-%d %H:%M:%S")


def _print_ts(text: str) -> None:
    print(f"[{_ts_local()}] {text}", flush=True)


def _format_event(event: str, payload: Any) -> str | None:
    """One console line per interesting event; raw agent output stays in the log file."""
    if event == TASK_UPDATED and isinstance(payload, Task):
        if payload.status.is_terminal:
            detail = payload.error or (payload.result.message if payload.result else "")
            return f"[TASK] {payload.id[:8]} {payload.status}: {detail}".rstrip()
        return f"[TASK] {payload.id[:8]} {payload.status} on {payload.assigned_to}"
    if event == AGENT_UPDATED and isinstance(payload, AgentUpdate):
        return f"[AGENT] {payload.id} is {payload.status}"
    if event == AGENT_PROGRESS and isinstance(payload, ProgressUpdate):
        if payload.message.startswith("Agent output:"):
            return None
        return f"[{payload.agent_id}] {payload.message}"
    return None


def _start_stdin_reader(loop: asyncio.AbstractEventLoop) -> asyncio.Queue[str | None]:
    """
    Read stdin lines on a daemon thread and hand them to the loop.

    input() blocks and cannot be cancelled; a daemon thread does not hold up exit.
    None marks EOF / Ctrl+C.
    """
    queue: asyncio.Queue[str | None] = asyncio.Queue()

    def _reader() -> None:
        while True:
            try:
                line: str | None = input(">>> ")
            except (EOFError, KeyboardInterrupt):
                line = None
            try:
                loop.call_soon_threadsafe(queue.put_nowait, line)
            except RuntimeError:
                return  # loop already closed
            if line is None:
                return

    threading.Thread(target=_reader, name="console-stdin", daemon=True).start()
    return queue


async def run_console_loop(state: AppState) -> None:
    logger.info("Console connector started (%d agents).", state.scheduler.pool_size)
    _print_ts("[CONSOLE] Type /task <description> to dispatch work. Use /help for commands. Use /exit to quit.\n")

    def on_event(event: str, payload: Any) -> None:
        line = _format_event(event, payload)
        if line:
            _print_ts(line)

    lines = _start_stdin_reader(asyncio.get_running_loop())
    unsubscribe = state.events.subscribe(on_event)
    try:
        while True:
            raw = await lines.get()
            if raw is None:
                logger.info("Console EOF received, exiting.")
                break

            user_input = raw.strip()
            if not user_input:
                continue

            if user_input.lower() in ("/exit", "/quit"):
                logger.info("Console exit command received.")
                break

            try:
                response = command_registry.handle(state, user_input, emit=_print_ts)
            except Exception:
                logger.exception("Command handler crashed.")
                response = "Internal error while handling a command."

            if response is None:
                response = "Not a command. Use /task <description> or /help."
            _print_ts(response)
    finally:
        unsubscribe()

    logger.info("Console connector finished.")
