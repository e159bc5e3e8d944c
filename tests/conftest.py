"""Shared test fixtures for vaultsync."""

from __future__ import annotations

from typing import Iterable, Optional

import pytest

from vaultsync.backends.base import GitBackend
from vaultsync.coordinator import SyncCoordinator
from vaultsync.display import Notifier
from vaultsync.files import VaultFiles, display_name
from vaultsync.models import BranchInfo, Readiness, RepositoryStatus, SyncSettings
from vaultsync.scheduler import ManualScheduler


class FakeBackend(GitBackend):
    """Scriptable backend that records every call."""

    supports_conflict_detection = True

    def __init__(self, settings: SyncSettings):
        super().__init__(settings)
        self.calls: list[str] = []
        self.readiness = Readiness.VALID
        self.changed: list[str] = []
        self.conflicted: list[str] = []
        self.conflicted_after_pull: Optional[list[str]] = None
        self.pull_count = 0
        self.push_count = 1
        self.remote: Optional[str] = "origin/main"
        self.ahead = True
        self.fail_on: set[str] = set()
        self.commit_messages: list[Optional[str]] = []
        self.hooks: dict[str, object] = {}

    @property
    def name(self) -> str:
        return "fake"

    async def _call(self, op: str) -> None:
        self.calls.append(op)
        hook = self.hooks.get(op)
        if hook is not None:
            await hook()
        if op in self.fail_on:
            from vaultsync.errors import BackendError

            raise BackendError(f"{op} exploded")

    async def check_requirements(self) -> Readiness:
        await self._call("check_requirements")
        return self.readiness

    async def status(self) -> RepositoryStatus:
        await self._call("status")
        return RepositoryStatus(changed=list(self.changed), conflicted=list(self.conflicted))

    async def pull(self) -> int:
        await self._call("pull")
        if self.conflicted_after_pull is not None:
            self.conflicted = list(self.conflicted_after_pull)
        return self.pull_count

    async def push(self) -> int:
        await self._call("push")
        return self.push_count

    async def commit_all(self, message: Optional[str] = None) -> int:
        await self._call("commit_all")
        self.commit_messages.append(message)
        committed = len(self.changed)
        self.changed = []
        self.conflicted = []
        return committed

    async def branch_info(self) -> BranchInfo:
        await self._call("branch_info")
        return BranchInfo(current="main", remote=self.remote)

    async def can_push(self) -> bool:
        await self._call("can_push")
        return self.ahead


class RecordingNotifier(Notifier):
    """Collects shown messages as (kind, text, timeout) tuples."""

    def __init__(self) -> None:
        self.events: list[tuple[str, str, int]] = []

    def show_message(self, text: str, timeout_ms: int) -> None:
        self.events.append(("message", text, timeout_ms))

    def show_error(self, text: str, timeout_ms: int) -> None:
        self.events.append(("error", text, timeout_ms))

    @property
    def messages(self) -> list[str]:
        return [text for kind, text, _ in self.events if kind == "message"]

    @property
    def errors(self) -> list[str]:
        return [text for kind, text, _ in self.events if kind == "error"]


class MemoryVaultFiles(VaultFiles):
    """In-memory vault: a dict of path -> text plus open views."""

    def __init__(self, files: Optional[dict[str, str]] = None):
        self.files: dict[str, str] = dict(files or {})
        self.views: list[str] = []
        self.opened: list[str] = []

    def read(self, path: str) -> str:
        if path not in self.files:
            raise FileNotFoundError(path)
        return self.files[path]

    def write(self, path: str, text: str) -> None:
        self.files[path] = text

    def delete(self, path: str) -> None:
        if path not in self.files:
            raise FileNotFoundError(path)
        del self.files[path]
        name = display_name(path)
        if name in self.views:
            self.views.remove(name)

    def link_text(self, path: str) -> Optional[str]:
        if path not in self.files:
            return None
        return path[:-3] if path.endswith(".md") else path

    def open_views(self) -> Iterable[str]:
        return list(self.views)

    def open(self, path: str) -> None:
        self.opened.append(path)
        self.views.append(display_name(path))


@pytest.fixture
def settings(tmp_path) -> SyncSettings:
    return SyncSettings(vault_path=tmp_path)


@pytest.fixture
def scheduler() -> ManualScheduler:
    return ManualScheduler()


@pytest.fixture
def notifier() -> RecordingNotifier:
    return RecordingNotifier()


@pytest.fixture
def files() -> MemoryVaultFiles:
    return MemoryVaultFiles()


@pytest.fixture
def make_coordinator(settings, scheduler, notifier, files):
    """Build a coordinator around a FakeBackend.

    Returns a factory so tests can tweak settings first; the backend the
    coordinator creates is exposed as ``coordinator.fake``.
    """

    def factory(
        conflict_detection: bool = True,
        setup=None,
        **overrides,
    ) -> SyncCoordinator:
        active = settings.model_copy(update=overrides)
        backend = FakeBackend(active)
        backend.supports_conflict_detection = conflict_detection
        if setup is not None:
            setup(backend)
        coordinator = SyncCoordinator(
            active,
            files=files,
            scheduler=scheduler,
            notifier=notifier,
            backend_factory=lambda s: backend,
        )
        coordinator.fake = backend
        return coordinator

    return factory
