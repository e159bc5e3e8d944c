"""
Backend abstraction — what the coordinator needs from a git driver.

Each driver answers fresh on every call; nothing is cached between
workflow steps because the repository can change underneath us.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from datetime import datetime
from typing import Callable, Optional, Sequence

from ..models import BranchInfo, CoordinatorState, Readiness, RepositoryStatus, SyncSettings

StateCallback = Callable[[CoordinatorState], None]


class GitBackend(ABC):
    """Abstract version-control driver.

    Args:
        settings: Active sync settings.
    """

    #: True when ``status().conflicted`` is meaningful for this driver.
    supports_conflict_detection: bool = False

    def __init__(self, settings: SyncSettings):
        self.settings = settings
        self.on_state: Optional[StateCallback] = None

    @property
    @abstractmethod
    def name(self) -> str:
        """Human-readable backend name."""

    @abstractmethod
    async def check_requirements(self) -> Readiness:
        """Check that the tool, repository and settings are usable."""

    @abstractmethod
    async def status(self) -> RepositoryStatus:
        """Changed and conflicted paths in the working tree."""

    @abstractmethod
    async def pull(self) -> int:
        """Pull from upstream. Returns the number of files updated."""

    @abstractmethod
    async def push(self) -> int:
        """Push to upstream. Returns the number of files pushed."""

    @abstractmethod
    async def commit_all(self, message: Optional[str] = None) -> int:
        """Stage and commit every change. Returns the number of files committed."""

    @abstractmethod
    async def branch_info(self) -> BranchInfo:
        """Current branch and its upstream."""

    @abstractmethod
    async def can_push(self) -> bool:
        """True when local commits are ahead of upstream."""

    def report_state(self, state: CoordinatorState) -> None:
        """Forward a backend-specific transient state to the coordinator."""
        if self.on_state is not None:
            self.on_state(state)

    def format_message(self, changed: Sequence[str], message: Optional[str] = None) -> str:
        """Build the commit message for *changed* files.

        An explicit *message* wins over the configured template. The
        template understands ``{{date}}`` and ``{{numFiles}}``.
        """
        text = message or self.settings.commit_message
        text = text.replace("{{date}}", datetime.now().strftime(self.settings.commit_date_format))
        text = text.replace("{{numFiles}}", str(len(changed)))
        if self.settings.list_changed_files_in_message_body and changed:
            text = text + "\n\n" + "\n".join(changed)
        return text
