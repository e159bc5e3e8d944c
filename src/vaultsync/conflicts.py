"""
Conflict report, a markdown note listing every conflicted path.

Written to a fixed location in the vault, overwritten on each detection
and deleted before the next manual backup.
"""

from __future__ import annotations

import logging
from typing import Sequence

from .files import VaultFiles
from .models import CoordinatorState
from .state import SyncStatus

logger = logging.getLogger("vaultsync.conflicts")

CONFLICT_REPORT = "conflict-files-vaultsync.md"
REPORT_HEADING = "# Conflict files"
REPORT_INSTRUCTIONS = (
    "Please resolve them and commit per command "
    "(This file will be deleted before the commit)."
)


class ConflictReporter:
    """Writes the conflict report and makes sure the user sees it once.

    Args:
        files: Vault file access.
        status: Coordinator status, moved to ``conflicted`` on report.
        report_path: Vault-relative location of the report.
    """

    def __init__(
        self,
        files: VaultFiles,
        status: SyncStatus,
        report_path: str = CONFLICT_REPORT,
    ):
        self.files = files
        self.status = status
        self.report_path = report_path

    def render(self, conflicted: Sequence[str]) -> str:
        lines = [REPORT_HEADING, REPORT_INSTRUCTIONS]
        for path in conflicted:
            link = self.files.link_text(path)
            if link is not None:
                lines.append(f"- [[{link}]]")
            else:
                lines.append(f"- Not a file: {path}")
        return "\n".join(lines)

    def report(self, conflicted: Sequence[str]) -> None:
        """Record a conflict, write the report and open it if not yet shown."""
        self.status.set(CoordinatorState.CONFLICTED)
        self.files.write(self.report_path, self.render(conflicted))
        logger.warning("Conflict report written for %d path(s)", len(conflicted))

        if not self.is_open():
            self.files.open(self.report_path)

    def is_open(self) -> bool:
        """True when some open view already shows the report."""
        return any(
            view and self.report_path.startswith(view)
            for view in self.files.open_views()
        )

    def clear(self) -> None:
        """Delete a stale report. A missing report is not an error."""
        try:
            self.files.delete(self.report_path)
            logger.info("Removed stale conflict report")
        except FileNotFoundError:
            pass
