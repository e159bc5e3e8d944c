"""
Sync coordinator — serialized pull and backup workflows over a git backend.

Every trigger (timer, command, startup) goes through ``enqueue``; the
queue guarantees one workflow at a time, so the workflows below can
assume exclusive use of the backend between their awaits.

    request_pull()          -> pull, report, conflict check
    request_backup()        -> [clear report] commit -> pull -> re-check -> push
    request_auto_backup()   -> same, but refuses to commit over conflicts
"""

from __future__ import annotations

import asyncio
import logging
from typing import Awaitable, Callable, Optional

from .backends import GitBackend, create_backend
from .conflicts import ConflictReporter
from .display import (
    DEFAULT_ERROR_TIMEOUT_MS,
    DEFAULT_MESSAGE_TIMEOUT_MS,
    Notifier,
    NullNotifier,
)
from .errors import BackendError
from .files import VaultFiles
from .models import CoordinatorState, Readiness, RepositoryStatus, SyncSettings
from .scheduler import Scheduler, Timer
from .state import SyncStatus
from .taskqueue import TaskQueue

logger = logging.getLogger("vaultsync.coordinator")

BackendFactory = Callable[[SyncSettings], GitBackend]

READINESS_ERRORS = {
    Readiness.MISSING_GIT: "Cannot run git command",
    Readiness.MISSING_REPO: "Valid git repository not found",
    Readiness.WRONG_SETTINGS: "Not all of the required standalone mode settings are set",
}

NO_UPSTREAM_TIMEOUT_MS = 10 * 1000


class SyncCoordinator:
    """Owns the backend, the task queue and the coordinator state.

    Args:
        settings: Sync settings (read-only here).
        files: Vault file access for the conflict report.
        scheduler: Clock and timer source for periodic triggers.
        notifier: Where user-visible messages go.
        backend_factory: Builds the backend at initialization.
    """

    def __init__(
        self,
        settings: SyncSettings,
        files: VaultFiles,
        scheduler: Scheduler,
        notifier: Optional[Notifier] = None,
        backend_factory: BackendFactory = create_backend,
    ):
        self.settings = settings
        self.files = files
        self.scheduler = scheduler
        self.notifier = notifier or NullNotifier()
        self.backend_factory = backend_factory

        self.queue = TaskQueue()
        self.status = SyncStatus(clock=scheduler.now)
        self.reporter = ConflictReporter(files, self.status)
        self.backend: Optional[GitBackend] = None
        self.ready = False
        self._backup_timer: Optional[Timer] = None
        self._pull_timer: Optional[Timer] = None

    @property
    def state(self) -> Optional[CoordinatorState]:
        return self.status.state

    # ------------------------------------------------------------------
    # Display
    # ------------------------------------------------------------------

    def display_message(self, text: str, timeout_ms: int = DEFAULT_MESSAGE_TIMEOUT_MS) -> None:
        """Informational message; popups honour ``disable_popups``."""
        logger.info("%s", text)
        self.status.show_message(text, timeout_ms)
        if not self.settings.disable_popups:
            self.notifier.show_message(text, timeout_ms)

    def display_error(self, text: str, timeout_ms: int = DEFAULT_ERROR_TIMEOUT_MS) -> None:
        """Error message; always shown."""
        logger.error("%s", text)
        self.status.show_message(text, timeout_ms)
        self.notifier.show_error(text, timeout_ms)

    # ------------------------------------------------------------------
    # Initialization and triggers
    # ------------------------------------------------------------------

    async def initialize(self) -> Readiness:
        """Select a backend and check that it can run.

        On success the coordinator becomes ready, periodic timers are
        armed and, if configured, a pull is queued. ``wrong-settings``
        leaves the coordinator not ready.
        """
        self.backend = self.backend_factory(self.settings)
        self.backend.on_state = self.status.set
        result = await self.backend.check_requirements()

        if result != Readiness.VALID:
            self.ready = False
            self.display_error(READINESS_ERRORS.get(result, f"Unexpected readiness result: {result}"))
            return result

        self.ready = True
        self.status.set(CoordinatorState.IDLE)
        logger.info("Coordinator ready with %s backend", self.backend.name)

        if self.settings.pull_on_start:
            self.request_pull()
        if self.settings.auto_backup_interval > 0:
            self.enable_auto_backup()
        if self.settings.auto_pull_interval > 0:
            self.enable_auto_pull()
        return result

    async def _ensure_ready(self) -> bool:
        if not self.ready:
            await self.initialize()
        return self.ready

    def enqueue(self, workflow: Callable[[], Awaitable[None]]) -> None:
        """Queue *workflow*; a stuck in-progress state is reset if it fails."""

        async def run() -> None:
            try:
                await workflow()
            finally:
                if self.state is not None and self.state.is_busy:
                    self.status.set(CoordinatorState.IDLE)

        self.queue.enqueue(run)

    def request_pull(self) -> None:
        self.enqueue(self.pull_changes)

    def request_backup(self, message: Optional[str] = None) -> None:
        """Queue a user-initiated backup, optionally with a commit message."""
        self.enqueue(lambda: self.create_backup(False, message))

    def request_auto_backup(self) -> None:
        self.enqueue(lambda: self.create_backup(True))

    async def wait_idle(self) -> None:
        """Wait until every queued workflow has finished."""
        await self.queue.join()

    async def shutdown(self) -> None:
        """Disarm timers and let queued work finish."""
        self.disable_auto_backup()
        self.disable_auto_pull()
        await self.queue.join()

    # ------------------------------------------------------------------
    # Timers
    # ------------------------------------------------------------------

    def enable_auto_backup(self) -> None:
        self.disable_auto_backup()
        minutes = self.settings.auto_backup_interval
        self._backup_timer = self.scheduler.call_every(minutes * 60, self.request_auto_backup)
        logger.info("Automatic backup every %d minute(s)", minutes)

    def enable_auto_pull(self) -> None:
        self.disable_auto_pull()
        minutes = self.settings.auto_pull_interval
        self._pull_timer = self.scheduler.call_every(minutes * 60, self.request_pull)
        logger.info("Automatic pull every %d minute(s)", minutes)

    def disable_auto_backup(self) -> bool:
        """Stop automatic backups. Returns True if a timer was running."""
        if self._backup_timer is None:
            return False
        self._backup_timer.cancel()
        self._backup_timer = None
        return True

    def disable_auto_pull(self) -> bool:
        """Stop automatic pulls. Returns True if a timer was running."""
        if self._pull_timer is None:
            return False
        self._pull_timer.cancel()
        self._pull_timer = None
        return True

    # ------------------------------------------------------------------
    # Backend calls with state tracking
    # ------------------------------------------------------------------

    async def _status(self) -> RepositoryStatus:
        self.status.set(CoordinatorState.CHECKING)
        return await self.backend.status()

    async def _pull(self) -> int:
        self.status.set(CoordinatorState.PULLING)
        return await self.backend.pull()

    async def list_changed_files(self) -> list[str]:
        """Paths with uncommitted changes, or an empty list when not ready.

        The query waits its turn in the queue and leaves the coordinator
        state untouched. Do not await it from inside a queued workflow.
        """
        result: asyncio.Future[list[str]] = asyncio.get_running_loop().create_future()

        async def query() -> None:
            try:
                if not await self._ensure_ready():
                    result.set_result([])
                    return
                result.set_result((await self.backend.status()).changed)
            except Exception as exc:
                result.set_exception(exc)

        self.queue.enqueue(query)
        return await result

    # ------------------------------------------------------------------
    # Workflows
    # ------------------------------------------------------------------

    async def pull_changes(self) -> None:
        """Pull workflow. Conflicts are reported but no report file is written."""
        if not await self._ensure_ready():
            return

        try:
            updated = await self._pull()
            if updated > 0:
                self.display_message(f"Pulled new changes. {updated} files updated")
            else:
                self.display_message("Everything is up to date")

            if self.backend.supports_conflict_detection:
                conflicted = (await self._status()).conflicted
                if conflicted:
                    self.display_error(f"You have {len(conflicted)} conflict files")
                    self.status.set(CoordinatorState.CONFLICTED)
                    return
        except BackendError as exc:
            self.display_error(str(exc))
        self.status.set(CoordinatorState.IDLE)

    async def create_backup(self, from_auto_backup: bool, commit_message: Optional[str] = None) -> None:
        """Backup workflow: commit everything, then pull and push if allowed.

        Args:
            from_auto_backup: True when a timer triggered the backup. Such
                backups never commit over unresolved conflicts.
            commit_message: Overrides the configured message template.
        """
        if not await self._ensure_ready():
            return

        if not from_auto_backup:
            self.reporter.clear()

        try:
            if await self._commit_phase(from_auto_backup, commit_message):
                await self._push_phase()
        except BackendError as exc:
            self.display_error(str(exc))
            self.status.set(CoordinatorState.IDLE)

    async def _commit_phase(self, from_auto_backup: bool, commit_message: Optional[str]) -> bool:
        """Commit pending changes. Returns False when the workflow must stop."""
        if self.backend.supports_conflict_detection:
            conflicted = (await self._status()).conflicted
            if from_auto_backup and conflicted:
                self.display_error(
                    f"Did not commit, because you have {len(conflicted)} conflict files. "
                    "Please resolve them and commit per command."
                )
                self.reporter.report(conflicted)
                return False

        changed = (await self._status()).changed
        if changed:
            self.status.set(CoordinatorState.COMMITTING)
            committed = await self.backend.commit_all(commit_message)
            self.display_message(f"Committed {committed} files")
        else:
            self.display_message("No changes to commit")
        self.status.set(CoordinatorState.IDLE)
        return True

    async def _push_phase(self) -> None:
        if self.settings.disable_push:
            return

        if not (await self.backend.branch_info()).remote:
            self.display_error(
                "Did not push. No upstream branch is set! See README for instructions",
                NO_UPSTREAM_TIMEOUT_MS,
            )
            return

        if not await self.backend.can_push():
            self.display_message("No changes to push")
            return

        if self.settings.pull_before_push:
            pulled = await self._pull()
            if pulled > 0:
                self.display_message(f"Pulled {pulled} files from remote")

        if self.backend.supports_conflict_detection:
            conflicted = (await self._status()).conflicted
            if conflicted:
                self.display_error(f"Cannot push. You have {len(conflicted)} conflict files")
                self.reporter.report(conflicted)
                return

        self.status.set(CoordinatorState.PUSHING)
        pushed = await self.backend.push()
        self.display_message(f"Pushed {pushed} files to remote")
        self.status.set(CoordinatorState.IDLE)
