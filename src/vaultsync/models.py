"""
Pydantic models for repository snapshots, coordinator state and settings.

Everything here is plain data: the coordinator owns the live values,
backends produce fresh snapshots on every query.
"""

from __future__ import annotations

from enum import Enum
from pathlib import Path
from typing import Optional

from pydantic import BaseModel, Field, field_validator


class Readiness(str, Enum):
    """Outcome of a backend environment check."""

    VALID = "valid"
    MISSING_GIT = "missing-git"
    MISSING_REPO = "missing-repo"
    WRONG_SETTINGS = "wrong-settings"


class CoordinatorState(str, Enum):
    """What the coordinator is doing right now.

    ``CHECKING`` and ``ADDING`` are transient states a backend may
    report in the middle of a call.
    """

    IDLE = "idle"
    CHECKING = "checking"
    PULLING = "pulling"
    ADDING = "adding"
    COMMITTING = "committing"
    PUSHING = "pushing"
    CONFLICTED = "conflicted"

    @property
    def is_busy(self) -> bool:
        """True for in-progress states that must return to idle."""
        return self not in (CoordinatorState.IDLE, CoordinatorState.CONFLICTED)


class RepositoryStatus(BaseModel):
    """Working-tree snapshot returned by a backend status query."""

    changed: list[str] = Field(default_factory=list)
    conflicted: list[str] = Field(default_factory=list)


class BranchInfo(BaseModel):
    """Current branch and its upstream, if one is configured."""

    current: str
    remote: Optional[str] = None


class StandaloneSettings(BaseModel):
    """Settings used only by the in-process (dulwich) backend."""

    author_name: Optional[str] = None
    author_email: Optional[str] = None
    remote_name: str = "origin"
    username: Optional[str] = None
    password_env_var: Optional[str] = None

    @property
    def author(self) -> Optional[str]:
        """Author identity in ``Name <email>`` form, or None if incomplete."""
        if not self.author_name or not self.author_email:
            return None
        return f"{self.author_name} <{self.author_email}>"


class SyncSettings(BaseModel):
    """Complete vaultsync configuration.

    Intervals are in minutes; 0 disables the timer.
    """

    vault_path: Path = Path(".")
    commit_message: str = "vault backup: {{date}}"
    commit_date_format: str = "%Y-%m-%d %H:%M:%S"
    list_changed_files_in_message_body: bool = False
    auto_backup_interval: int = 0
    auto_pull_interval: int = 0
    pull_on_start: bool = False
    disable_push: bool = False
    pull_before_push: bool = True
    disable_popups: bool = False
    standalone_mode: bool = False
    standalone: StandaloneSettings = Field(default_factory=StandaloneSettings)

    @field_validator("auto_backup_interval", "auto_pull_interval")
    @classmethod
    def _non_negative(cls, value: int) -> int:
        if value < 0:
            raise ValueError("interval must be 0 (disabled) or a positive number of minutes")
        return value

    @property
    def vault(self) -> Path:
        """Expanded vault directory."""
        return self.vault_path.expanduser()
