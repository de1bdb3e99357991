# src/agent_dispatch/agents/supervisor.py

"""
Process supervisor.

Owns one agent-program session at a time:
- spawns the program (wrapped via an interpreter script, or directly),
- feeds it the task description,
- scans its output for yes/no and permission prompts and answers them blindly,
- rescans the whole output periodically for prompts split across chunks,
- retries a rejected stdin write once,
- resolves with the full output on exit code 0, raises otherwise.
"""

from __future__ import annotations

import asyncio
import logging
import shlex
from collections.abc import Coroutine, Sequence
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from ..core.errors import ProcessExitError, ProcessTimeoutError, SpawnError, WriteError
from ..core.events import ProgressUpdate
from ..core.ports import AgentProcess, EventSink, ProcessLauncher
from .prompt_rules import LINE_END, ConfirmationRule, default_confirmation_rules, first_match

logger = logging.getLogger(__name__)

_LOG_LEVELS = {"info": logging.INFO, "warn": logging.WARNING, "error": logging.ERROR}


@dataclass(slots=True)
class ProcessSession:
    """State of one running agent program. Never shared between tasks."""

    process: AgentProcess
    task_id: str
    description: str
    output: str = ""
    errors: str = ""
    bootstrap_sent: bool = False
    rescan_task: asyncio.Task[None] | None = None
    pending: set[asyncio.Task[Any]] = field(default_factory=set)

    @property
    def confirmation_pending(self) -> bool:
        return bool(self.pending)


class ProcessSupervisor:
    def __init__(
        self,
        agent_id: str,
        settings,
        *,
        launcher: ProcessLauncher,
        events: EventSink | None = None,
        rules: Sequence[ConfirmationRule] | None = None,
    ) -> None:
        self.agent_id = agent_id
        self._launcher = launcher
        self._events = events

        self._agent_command: str = settings.agent_command
        self._agent_args: list[str] = list(settings.agent_args)
        self._interpreter: str = settings.wrapper_interpreter
        self._bootstrap_phrase: str = settings.bootstrap_phrase
        self._rescan_interval: float = settings.confirm_rescan_interval
        self._retry_delay: float = settings.write_retry_delay
        self._timeout: float = settings.task_timeout
        self._cwd: Path | None = getattr(settings, "repo_path", None)
        self._rules: tuple[ConfirmationRule, ...] = tuple(
            rules if rules is not None else default_confirmation_rules(settings.confirm_step_delay)
        )

        # Spawn mode is fixed for the lifetime of the supervisor.
        script = settings.wrapper_script
        self._wrapper_script: Path | None = Path(script).resolve() if script else None
        self.wrapped = self._wrapper_script is not None and self._wrapper_script.is_file()
        if script and not self.wrapped:
            self._progress(
                "",
                f"Wrapper script not found at {self._wrapper_script}. "
                f"Using '{self._agent_command}' directly.",
                "warn",
            )

        self._session: ProcessSession | None = None

    @property
    def is_active(self) -> bool:
        return self._session is not None

    def build_command(self) -> list[str]:
        if self.wrapped:
            return [self._interpreter, str(self._wrapper_script)]
        return [self._agent_command, *self._agent_args]

    async def execute_task(self, description: str, *, task_id: str = "") -> str:
        """Run one agent session for `description` and return everything it printed."""
        if self._session is not None:
            raise RuntimeError(f"Agent {self.agent_id} already has an active process")

        argv = self.build_command()
        self._progress(task_id, f"Starting agent with command: {shlex.join(argv)}")
        try:
            process = await self._launcher.spawn(argv, cwd=self._cwd)
        except SpawnError as exc:
            self._progress(task_id, str(exc), "error")
            raise

        session = ProcessSession(process=process, task_id=task_id, description=description)
        self._session = session
        readers = [
            asyncio.create_task(self._pump_stdout(session)),
            asyncio.create_task(self._pump_stderr(session)),
        ]

        if not self.wrapped:
            self._progress(task_id, "Sending task directly to agent")
            self._send(session, description + LINE_END)

        if self._rescan_interval > 0:
            session.rescan_task = asyncio.create_task(self._rescan_loop(session))

        try:
            exit_code = await self._wait_for_exit(session)
        finally:
            await self._close_session(session, readers)

        if exit_code == 0:
            self._progress(task_id, "Agent process completed successfully")
            return session.output

        error = ProcessExitError(exit_code, session.errors)
        self._progress(task_id, str(error), "error")
        raise error

    def send_input(self, line: str) -> bool:
        """Inject one line into the live session. False (and no write) if there is none."""
        session = self._session
        if session is None:
            self._progress("", "No active agent process to send input to", "error")
            return False

        process = session.process
        if process.returncode is not None:
            self._progress(session.task_id, "Agent process has exited, cannot send input", "error")
            return False
        if not process.is_writable():
            self._progress(session.task_id, "Agent process stdin is not writable", "error")
            return False

        self._progress(session.task_id, f"Sending input to agent: {line}")
        self._send(session, line + LINE_END)
        return True

    def terminate(self) -> bool:
        """Kill the live agent process, if any. execute_task() then fails with its exit code."""
        session = self._session
        if session is None or session.process.returncode is not None:
            return False
        logger.info("Killing agent process of %s", self.agent_id)
        session.process.kill()
        return True

    # ---- session internals ----

    async def _wait_for_exit(self, session: ProcessSession) -> int:
        if self._timeout <= 0:
            return await session.process.wait()
        try:
            return await asyncio.wait_for(session.process.wait(), timeout=self._timeout)
        except TimeoutError:
            session.process.kill()
            await session.process.wait()
            error = ProcessTimeoutError(self._timeout)
            self._progress(session.task_id, str(error), "error")
            raise error from None

    async def _close_session(
        self, session: ProcessSession, readers: list[asyncio.Task[None]]
    ) -> None:
        if session.process.returncode is None:
            session.process.kill()
        # Drain what the process wrote before exiting; output handlers may still fire here.
        await asyncio.gather(*readers, return_exceptions=True)

        if session.rescan_task is not None:
            session.rescan_task.cancel()
        for pending in list(session.pending):
            pending.cancel()
        if self._session is session:
            self._session = None

    async def _pump_stdout(self, session: ProcessSession) -> None:
        async for chunk in session.process.stdout_chunks():
            self._on_output(session, chunk)

    async def _pump_stderr(self, session: ProcessSession) -> None:
        async for chunk in session.process.stderr_chunks():
            session.errors += chunk
            self._progress(session.task_id, f"Agent error: {chunk.strip()}", "error")

    def _on_output(self, session: ProcessSession, chunk: str) -> None:
        session.output += chunk
        logger.debug("[%s] output: %r", self.agent_id, chunk)
        self._progress(session.task_id, f"Agent output: {chunk.strip()}")

        if (
            self.wrapped
            and not session.bootstrap_sent
            and self._bootstrap_phrase in session.output
        ):
            session.bootstrap_sent = True
            self._progress(session.task_id, "Sending task to agent")
            self._send(session, session.description + LINE_END)

        rule = first_match(self._rules, chunk)
        if rule is not None:
            self._progress(session.task_id, f"Auto-confirming agent prompt ({rule.name})")
            self._fire(session, rule)

    async def _rescan_loop(self, session: ProcessSession) -> None:
        while True:
            await asyncio.sleep(self._rescan_interval)
            rule = first_match(self._rules, session.output, rescan_only=True)
            if rule is not None:
                self._progress(
                    session.task_id,
                    f"Detected pending confirmation dialog ({rule.name}), answering again",
                )
                self._fire(session, rule)

    def _fire(self, session: ProcessSession, rule: ConfirmationRule) -> None:
        self._spawn_pending(session, self._play_responses(session, rule))

    async def _play_responses(self, session: ProcessSession, rule: ConfirmationRule) -> None:
        elapsed = 0.0
        for step in rule.responses:
            if step.offset > elapsed:
                await asyncio.sleep(step.offset - elapsed)
                elapsed = step.offset
            self._send(session, step.payload)

    def _send(self, session: ProcessSession, payload: str) -> bool:
        if self._try_write(session, payload):
            return True
        logger.warning("Write to agent %s not accepted, retrying once: %r", self.agent_id, payload)
        self._progress(
            session.task_id,
            "Write to agent process was not immediately successful, will retry",
            "warn",
        )
        self._spawn_pending(session, self._retry_write(session, payload))
        return False

    async def _retry_write(self, session: ProcessSession, payload: str) -> None:
        await asyncio.sleep(self._retry_delay)
        if not self._try_write(session, payload):
            logger.warning("Retry of write to agent %s failed, dropping %r", self.agent_id, payload)
            self._progress(session.task_id, "Write to agent process failed after retry", "warn")

    def _try_write(self, session: ProcessSession, payload: str) -> bool:
        try:
            return session.process.write(payload)
        except WriteError as exc:
            logger.warning("%s", exc)
            return False

    def _spawn_pending(self, session: ProcessSession, coro: Coroutine[Any, Any, None]) -> None:
        task = asyncio.create_task(coro)
        session.pending.add(task)
        task.add_done_callback(session.pending.discard)

    def _progress(self, task_id: str, message: str, level: str = "info") -> None:
        if self._events is None:
            logger.log(_LOG_LEVELS.get(level, logging.INFO), "[%s] %s", self.agent_id, message)
            return
        self._events.agent_progress(
            ProgressUpdate(agent_id=self.agent_id, task_id=task_id, message=message, level=level)
        )
