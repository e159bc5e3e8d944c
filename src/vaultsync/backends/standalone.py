"""
Standalone backend — git in-process through dulwich.

For machines without a git executable. Dulwich calls are blocking, so
each one runs in a worker thread; the coordinator still sees a plain
coroutine. Dulwich leaves no conflict markers in the index during a
pull (it refuses non-fast-forward merges instead), so this backend
does not take part in conflict detection.
"""

from __future__ import annotations

import asyncio
import io
import logging
import os
from pathlib import Path
from typing import Any, Callable, Optional, TypeVar

from dulwich import porcelain
from dulwich.diff_tree import tree_changes
from dulwich.errors import NotGitRepository
from dulwich.repo import Repo

from ..errors import BackendError
from ..models import BranchInfo, CoordinatorState, Readiness, RepositoryStatus
from .base import GitBackend

logger = logging.getLogger("vaultsync.backends.standalone")

T = TypeVar("T")


def _text(value: Any) -> str:
    return value.decode("utf-8", errors="replace") if isinstance(value, bytes) else str(value)


def _changed_between(repo: Repo, old: Optional[bytes], new: bytes) -> int:
    """Number of paths that differ between two commits."""
    new_tree = repo[new].tree
    old_tree = repo[old].tree if old is not None else None
    return sum(1 for change in tree_changes(repo.object_store, old_tree, new_tree))


class StandaloneGitBackend(GitBackend):
    """Backend built on dulwich porcelain."""

    supports_conflict_detection = False

    @property
    def name(self) -> str:
        return "standalone"

    @property
    def path(self) -> Path:
        return self.settings.vault

    async def _run(self, operation: str, fn: Callable[[], T]) -> T:
        """Run a blocking dulwich call in a thread.

        Raises:
            BackendError: Any failure inside dulwich.
        """
        try:
            return await asyncio.to_thread(fn)
        except BackendError:
            raise
        except Exception as exc:
            raise BackendError(f"{operation} failed: {exc}") from exc

    def _open(self) -> Repo:
        return Repo(str(self.path))

    def _credentials(self) -> dict[str, str]:
        options = self.settings.standalone
        creds: dict[str, str] = {}
        if options.username:
            creds["username"] = options.username
        if options.password_env_var:
            password = os.environ.get(options.password_env_var, "")
            if password:
                creds["password"] = password
        return creds

    async def check_requirements(self) -> Readiness:
        if not self.path.is_dir():
            return Readiness.MISSING_REPO
        try:
            self._open().close()
        except NotGitRepository:
            return Readiness.MISSING_REPO
        if self.settings.standalone.author is None:
            return Readiness.WRONG_SETTINGS
        return Readiness.VALID

    def _status(self) -> RepositoryStatus:
        with self._open() as repo:
            result = porcelain.status(repo, untracked_files="all")
        changed: list[str] = []
        for kind in ("add", "modify", "delete"):
            changed.extend(_text(p) for p in result.staged.get(kind, []))
        changed.extend(_text(p) for p in result.unstaged)
        changed.extend(_text(p) for p in result.untracked)
        return RepositoryStatus(changed=list(dict.fromkeys(changed)), conflicted=[])

    async def status(self) -> RepositoryStatus:
        return await self._run("status", self._status)

    def _commit_all(self, message: Optional[str]) -> int:
        changed = self._status().changed
        if not changed:
            return 0
        with self._open() as repo:
            present = [p for p in changed if (self.path / p).exists()]
            removed = [p for p in changed if not (self.path / p).exists()]
            if present:
                porcelain.add(repo, paths=[str(self.path / p) for p in present])
            if removed:
                index = repo.open_index()
                for p in removed:
                    key = p.encode("utf-8")
                    if key in index:
                        del index[key]
                index.write()

            author = self.settings.standalone.author.encode("utf-8")
            porcelain.commit(
                repo,
                message=self.format_message(changed, message).encode("utf-8"),
                author=author,
                committer=author,
            )
        return len(changed)

    async def commit_all(self, message: Optional[str] = None) -> int:
        self.report_state(CoordinatorState.COMMITTING)
        return await self._run("commit", lambda: self._commit_all(message))

    def _upstream(self, repo: Repo) -> tuple[bytes, Optional[bytes], Optional[bytes]]:
        """Return (branch, remote, merge ref) for the active branch."""
        branch = porcelain.active_branch(repo)
        config = repo.get_config()
        try:
            remote = config.get((b"branch", branch), b"remote")
            merge = config.get((b"branch", branch), b"merge")
        except KeyError:
            return branch, None, None
        return branch, remote, merge

    def _branch_info(self) -> BranchInfo:
        with self._open() as repo:
            branch, remote, merge = self._upstream(repo)
        remote_branch = None
        if remote and merge:
            remote_branch = f"{_text(remote)}/{_text(merge).removeprefix('refs/heads/')}"
        return BranchInfo(current=_text(branch), remote=remote_branch)

    async def branch_info(self) -> BranchInfo:
        return await self._run("branch info", self._branch_info)

    def _tracking_ref(self, remote: bytes, merge: bytes) -> bytes:
        return b"refs/remotes/" + remote + b"/" + merge.removeprefix(b"refs/heads/")

    def _pull(self) -> int:
        with self._open() as repo:
            _, remote, merge = self._upstream(repo)
            if remote is None or merge is None:
                raise BackendError("No upstream branch is set")
            before = repo.refs[b"HEAD"] if b"HEAD" in repo.refs else None
            porcelain.pull(
                repo,
                remote_location=_text(remote),
                refspecs=[merge],
                outstream=io.BytesIO(),
                errstream=io.BytesIO(),
                **self._credentials(),
            )
            after = repo.refs[b"HEAD"] if b"HEAD" in repo.refs else None
            if after is None or after == before:
                return 0
            return _changed_between(repo, before, after)

    async def pull(self) -> int:
        return await self._run("pull", self._pull)

    def _ahead(self, repo: Repo) -> tuple[Optional[bytes], Optional[bytes], Optional[bytes]]:
        """Return (local sha, tracking sha, tracking ref) for the active branch."""
        branch, remote, merge = self._upstream(repo)
        local_ref = b"refs/heads/" + branch
        local = repo.refs[local_ref] if local_ref in repo.refs else None
        if remote is None or merge is None:
            return local, None, None
        tracking_ref = self._tracking_ref(remote, merge)
        tracking = repo.refs[tracking_ref] if tracking_ref in repo.refs else None
        return local, tracking, tracking_ref

    def _can_push(self) -> bool:
        with self._open() as repo:
            local, tracking, tracking_ref = self._ahead(repo)
            if local is None or tracking_ref is None:
                return False
            if tracking is None:
                return True
            exclude = [tracking] if tracking in repo.object_store else []
            return any(True for _ in repo.get_walker(include=[local], exclude=exclude))

    async def can_push(self) -> bool:
        return await self._run("push check", self._can_push)

    def _push(self) -> int:
        with self._open() as repo:
            branch, remote, merge = self._upstream(repo)
            if remote is None or merge is None:
                raise BackendError("No upstream branch is set")
            local, tracking, tracking_ref = self._ahead(repo)
            if local is None:
                return 0
            known = tracking if tracking is not None and tracking in repo.object_store else None
            files = _changed_between(repo, known, local)
            porcelain.push(
                repo,
                remote_location=_text(remote),
                refspecs=[b"refs/heads/" + branch + b":" + merge],
                outstream=io.BytesIO(),
                errstream=io.BytesIO(),
                **self._credentials(),
            )
            repo.refs[tracking_ref] = local
        return files

    async def push(self) -> int:
        self.report_state(CoordinatorState.PUSHING)
        return await self._run("push", self._push)
