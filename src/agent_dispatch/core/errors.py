# src/agent_dispatch/core/errors.py

from __future__ import annotations


class AgentDispatchError(RuntimeError):
    """Base class for every error raised by agent_dispatch."""


class SpawnError(AgentDispatchError):
    """The external agent program could not be started."""


class ProcessExitError(AgentDispatchError):
    """The agent program exited with a non-zero code."""

    def __init__(self, exit_code: int | None, stderr: str) -> None:
        super().__init__(f"Agent process exited with code {exit_code}: {stderr}")
        self.exit_code = exit_code
        self.stderr = stderr


class ProcessTimeoutError(AgentDispatchError):
    """The agent program ran past the configured task timeout and was killed."""

    def __init__(self, timeout_seconds: float) -> None:
        super().__init__(f"Agent process killed after {timeout_seconds:g}s timeout")
        self.timeout_seconds = timeout_seconds


class WriteError(AgentDispatchError):
    """Writing to the agent's stdin failed (pipe closed or broken)."""


class CollaboratorError(AgentDispatchError):
    """A version-control call failed."""

    def __init__(self, message: str, *, command: list[str] | None = None) -> None:
        super().__init__(message)
        self.command = command or []


class ValidationError(AgentDispatchError):
    """Task input rejected by strict validation."""
