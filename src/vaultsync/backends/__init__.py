"""
Git backends the coordinator can drive.

CliGitBackend: the ``git`` executable, with conflict detection.
StandaloneGitBackend: in-process dulwich, for machines without git.
"""

from __future__ import annotations

from ..models import SyncSettings
from .base import GitBackend
from .cli import CliGitBackend
from .standalone import StandaloneGitBackend


def create_backend(settings: SyncSettings) -> GitBackend:
    """Pick the backend for *settings*.

    Args:
        settings: Active sync settings.

    Returns:
        GitBackend: Standalone driver when ``standalone_mode`` is on,
        otherwise the git command-line driver.
    """
    if settings.standalone_mode:
        return StandaloneGitBackend(settings)
    return CliGitBackend(settings)


__all__ = ["GitBackend", "CliGitBackend", "StandaloneGitBackend", "create_backend"]
