# src/agent_dispatch/agents/process.py

"""asyncio subprocess adapter behind the ProcessLauncher / AgentProcess ports."""

from __future__ import annotations

import asyncio
import codecs
import contextlib
import logging
from collections.abc import AsyncIterator, Sequence
from pathlib import Path

from ..core.errors import SpawnError, WriteError

logger = logging.getLogger(__name__)

READ_CHUNK_BYTES = 4096


class SubprocessAgentProcess:
    """AgentProcess over asyncio.subprocess.Process with all three streams piped."""

    def __init__(self, proc: asyncio.subprocess.Process, *, encoding: str = "utf-8") -> None:
        self._proc = proc
        self._encoding = encoding

    @property
    def pid(self) -> int:
        return self._proc.pid

    @property
    def returncode(self) -> int | None:
        return self._proc.returncode

    def is_writable(self) -> bool:
        stdin = self._proc.stdin
        return stdin is not None and not stdin.is_closing() and self._proc.returncode is None

    def write(self, text: str) -> bool:
        """
        Hand `text` to the stdin transport.

        Returns False without writing while the transport buffer is above its high-water
        mark, so a retry later does not duplicate data.
        """
        stdin = self._proc.stdin
        if stdin is None or not self.is_writable():
            raise WriteError(f"stdin of pid {self._proc.pid} is closed")

        transport = stdin.transport
        _low, high = transport.get_write_buffer_limits()
        if transport.get_write_buffer_size() >= high:
            return False

        try:
            stdin.write(text.encode(self._encoding))
        except (BrokenPipeError, ConnectionResetError) as exc:
            raise WriteError(f"stdin of pid {self._proc.pid} is broken: {exc}") from exc
        return True

    def stdout_chunks(self) -> AsyncIterator[str]:
        return self._chunks(self._proc.stdout)

    def stderr_chunks(self) -> AsyncIterator[str]:
        return self._chunks(self._proc.stderr)

    async def _chunks(self, stream: asyncio.StreamReader | None) -> AsyncIterator[str]:
        if stream is None:
            return
        # Multi-byte characters can straddle reads.
        decoder = codecs.getincrementaldecoder(self._encoding)(errors="replace")
        while True:
            data = await stream.read(READ_CHUNK_BYTES)
            if not data:
                tail = decoder.decode(b"", final=True)
                if tail:
                    yield tail
                return
            text = decoder.decode(data)
            if text:
                yield text

    async def wait(self) -> int:
        return await self._proc.wait()

    def kill(self) -> None:
        with contextlib.suppress(ProcessLookupError):
            self._proc.kill()


class SubprocessLauncher:
    """ProcessLauncher that starts real OS processes."""

    def __init__(self, *, encoding: str = "utf-8") -> None:
        self._encoding = encoding

    async def spawn(self, argv: Sequence[str], *, cwd: Path | None = None) -> SubprocessAgentProcess:
        if not argv:
            raise SpawnError("Empty agent command")
        try:
            proc = await asyncio.create_subprocess_exec(
                *argv,
                stdin=asyncio.subprocess.PIPE,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
                cwd=str(cwd) if cwd is not None else None,
            )
        except OSError as exc:
            raise SpawnError(f"Failed to start agent process {argv[0]!r}: {exc}") from exc

        logger.debug("Spawned pid=%s: %s", proc.pid, " ".join(argv))
        return SubprocessAgentProcess(proc, encoding=self._encoding)
