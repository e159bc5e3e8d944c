"""
Git command-line backend.

Drives the ``git`` executable in the vault directory through asyncio
subprocesses. This is the only backend that can see merge conflicts,
so the coordinator's conflict checks are active only with it.
"""

from __future__ import annotations

import asyncio
import logging
import os
import shutil
from typing import Optional

from pydantic import BaseModel

from ..errors import BackendError
from ..models import BranchInfo, CoordinatorState, Readiness, RepositoryStatus
from .base import GitBackend

logger = logging.getLogger("vaultsync.backends.cli")

# Unmerged XY codes from ``git status --porcelain``.
CONFLICT_CODES = frozenset({"DD", "AU", "UD", "UA", "DU", "AA", "UU"})


class GitResult(BaseModel):
    """Outcome of one git invocation."""

    args: list[str]
    exit_code: int
    stdout: str
    stderr: str

    @property
    def success(self) -> bool:
        return self.exit_code == 0

    def lines(self) -> list[str]:
        return [line for line in self.stdout.splitlines() if line.strip()]


def parse_porcelain(output: str) -> RepositoryStatus:
    """Parse ``git status --porcelain -z`` output.

    Renamed and copied entries carry their source path as an extra
    NUL-separated field, which is skipped.
    """
    changed: list[str] = []
    conflicted: list[str] = []
    fields = output.split("\0")
    i = 0
    while i < len(fields):
        entry = fields[i]
        i += 1
        if len(entry) < 4:
            continue
        code, path = entry[:2], entry[3:]
        if "R" in code or "C" in code:
            i += 1
        changed.append(path)
        if code in CONFLICT_CODES:
            conflicted.append(path)
    return RepositoryStatus(changed=changed, conflicted=conflicted)


class CliGitBackend(GitBackend):
    """Backend that shells out to ``git``."""

    supports_conflict_detection = True

    @property
    def name(self) -> str:
        return "git-cli"

    async def _git(self, *args: str, check: bool = True) -> GitResult:
        """Run ``git <args>`` in the vault.

        Raises:
            BackendError: Non-zero exit with ``check`` set, or git missing.
        """
        command = ["git", *args]
        env = os.environ.copy()
        env["GIT_TERMINAL_PROMPT"] = "0"
        logger.debug("Running %s", " ".join(command))
        try:
            process = await asyncio.create_subprocess_exec(
                *command,
                cwd=str(self.settings.vault),
                env=env,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
            )
            stdout_bytes, stderr_bytes = await process.communicate()
        except OSError as exc:
            raise BackendError(f"Cannot run git: {exc}", command) from exc

        result = GitResult(
            args=command,
            exit_code=process.returncode if process.returncode is not None else -1,
            stdout=stdout_bytes.decode("utf-8", errors="replace"),
            stderr=stderr_bytes.decode("utf-8", errors="replace"),
        )
        if check and not result.success:
            stderr = result.stderr.strip() or result.stdout.strip()
            raise BackendError(f"git {' '.join(args)} failed: {stderr}", command, stderr)
        return result

    async def check_requirements(self) -> Readiness:
        if shutil.which("git") is None:
            return Readiness.MISSING_GIT
        if not self.settings.vault.is_dir():
            return Readiness.MISSING_REPO
        result = await self._git("rev-parse", "--is-inside-work-tree", check=False)
        if not result.success or result.stdout.strip() != "true":
            return Readiness.MISSING_REPO
        return Readiness.VALID

    async def status(self) -> RepositoryStatus:
        result = await self._git("status", "--porcelain", "-z", "--untracked-files=all")
        return parse_porcelain(result.stdout)

    async def _rev(self, ref: str = "HEAD") -> Optional[str]:
        result = await self._git("rev-parse", "--verify", "--quiet", ref, check=False)
        return result.stdout.strip() if result.success else None

    async def pull(self) -> int:
        """Pull with a merge.

        Returns the number of files the fetched commits touch. A merge
        stopped by conflicts still counts the incoming files; a pull
        refused because an earlier merge is unfinished counts zero. The
        conflicts themselves are left to ``status``.
        """
        before = await self._rev()
        unfinished = await self._rev("MERGE_HEAD") is not None
        result = await self._git("pull", "--no-rebase", "--no-edit", check=False)
        if not result.success:
            current = await self.status()
            if not current.conflicted:
                stderr = result.stderr.strip() or result.stdout.strip()
                raise BackendError(f"git pull failed: {stderr}", result.args, stderr)
            logger.warning("Pull stopped with %d conflicted file(s)", len(current.conflicted))
            if unfinished or await self._rev("MERGE_HEAD") is None:
                return 0
            incoming = await self._git("diff", "--name-only", "HEAD...MERGE_HEAD")
            return len(incoming.lines())

        after = await self._rev()
        if after is None or before == after:
            return 0
        if before is None:
            listing = await self._git("ls-tree", "-r", "--name-only", after)
            return len(listing.lines())
        diff = await self._git("diff", "--name-only", before, after)
        return len(diff.lines())

    async def push(self) -> int:
        diff = await self._git("diff", "--name-only", "@{u}", "HEAD", check=False)
        files = len(diff.lines()) if diff.success else 0
        await self._git("push")
        return files

    async def commit_all(self, message: Optional[str] = None) -> int:
        self.report_state(CoordinatorState.ADDING)
        await self._git("add", "-A")
        staged = (await self._git("diff", "--cached", "--name-only")).lines()
        if not staged:
            return 0

        self.report_state(CoordinatorState.COMMITTING)
        await self._git("commit", "-m", self.format_message(staged, message))
        return len(staged)

    async def branch_info(self) -> BranchInfo:
        current = await self._git("symbolic-ref", "--short", "HEAD", check=False)
        upstream = await self._git(
            "rev-parse", "--abbrev-ref", "--symbolic-full-name", "@{u}", check=False
        )
        return BranchInfo(
            current=current.stdout.strip() if current.success else "HEAD",
            remote=(upstream.stdout.strip() or None) if upstream.success else None,
        )

    async def can_push(self) -> bool:
        result = await self._git("rev-list", "--count", "@{u}..HEAD", check=False)
        if not result.success:
            return False
        try:
            return int(result.stdout.strip() or "0") > 0
        except ValueError:
            return False
