# src/agent_dispatch/vcs/git_tool.py

"""
Git collaborator.

Runs the git CLI through asyncio subprocesses. All workers share one working tree,
so every operation holds a lock for the whole git command sequence it needs.
"""

from __future__ import annotations

import asyncio
import logging
import re
from pathlib import Path

from ..core.errors import CollaboratorError
from ..tasks.task_models import BranchInfo, CommitSummary

logger = logging.getLogger(__name__)

_SHORTSTAT_RE = re.compile(
    r"(?P<files>\d+) files? changed"
    r"(?:, (?P<ins>\d+) insertions?\(\+\))?"
    r"(?:, (?P<dels>\d+) deletions?\(-\))?"
)


def parse_shortstat(text: str) -> CommitSummary:
    """Parse `git diff --shortstat` output ('' means nothing changed)."""
    m = _SHORTSTAT_RE.search(text)
    if not m:
        return CommitSummary()
    return CommitSummary(
        changes=int(m.group("files")),
        insertions=int(m.group("ins") or 0),
        deletions=int(m.group("dels") or 0),
    )


class GitTool:
    """VersionControl implementation for a local repository."""

    def __init__(self, repo_path: str | Path, *, git_binary: str = "git") -> None:
        self.repo_path = Path(repo_path)
        self._git = git_binary
        self._lock = asyncio.Lock()

    async def create_branch(self, name: str) -> BranchInfo:
        """Check out `name`, creating it from the current HEAD if it does not exist yet."""
        async with self._lock:
            previous = await self._current_branch()
            if await self._branch_exists(name):
                await self._run("checkout", name)
            else:
                await self._run("checkout", "-b", name)
        logger.info("Checked out branch %s (was %s)", name, previous)
        return BranchInfo(previous_branch=previous, branch_name=name)

    async def commit_changes(self, message: str) -> CommitSummary:
        """Stage everything and commit. A clean tree is not an error: nothing is committed."""
        async with self._lock:
            await self._run("add", "-A")
            staged = await self._run("diff", "--cached", "--shortstat")
            summary = parse_shortstat(staged)
            if summary.is_empty:
                logger.info("Nothing to commit")
                return summary
            await self._run("commit", "-m", message)
            sha = (await self._run("rev-parse", "HEAD")).strip()
        logger.info("Committed %s (%d files changed)", sha[:8], summary.changes)
        return CommitSummary(
            changes=summary.changes,
            insertions=summary.insertions,
            deletions=summary.deletions,
            commit=sha,
        )

    # ---- internals (callers hold the lock) ----

    async def _current_branch(self) -> str | None:
        # symbolic-ref also works before the first commit; non-zero means detached HEAD.
        code, out, _err = await self._exec("symbolic-ref", "--short", "-q", "HEAD")
        if code != 0:
            return None
        return out.strip() or None

    async def _branch_exists(self, name: str) -> bool:
        code, _out, _err = await self._exec("rev-parse", "--verify", "--quiet", f"refs/heads/{name}")
        return code == 0

    async def _run(self, *args: str) -> str:
        code, out, err = await self._exec(*args)
        if code != 0:
            cmd = [self._git, *args]
            raise CollaboratorError(
                f"git {' '.join(args)} failed with code {code}: {err.strip() or out.strip()}",
                command=cmd,
            )
        return out

    async def _exec(self, *args: str) -> tuple[int, str, str]:
        cmd = [self._git, *args]
        logger.debug("Running %s in %s", cmd, self.repo_path)
        try:
            proc = await asyncio.create_subprocess_exec(
                *cmd,
                cwd=str(self.repo_path),
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
            )
        except OSError as exc:
            raise CollaboratorError(f"Failed to run git: {exc}", command=cmd) from exc
        stdout, stderr = await proc.communicate()
        return (
            proc.returncode if proc.returncode is not None else -1,
            stdout.decode("utf-8", errors="replace"),
            stderr.decode("utf-8", errors="replace"),
        )
