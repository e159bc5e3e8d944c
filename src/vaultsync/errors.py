"""Exception types shared across vaultsync."""

from __future__ import annotations

from typing import Optional, Sequence


class VaultSyncError(Exception):
    """Base class for recoverable vaultsync errors."""


class ConfigError(VaultSyncError):
    """Raised when settings cannot be parsed or validated."""


class BackendError(VaultSyncError):
    """Raised when a version-control operation fails.

    Args:
        message: Human-readable failure description.
        command: The git invocation that failed, if any.
        stderr: Captured error output from the backend.
    """

    def __init__(
        self,
        message: str,
        command: Optional[Sequence[str]] = None,
        stderr: str = "",
    ):
        super().__init__(message)
        self.command = list(command) if command else []
        self.stderr = stderr
