"""
Vault file access used by the coordinator.

Only the conflict report touches files directly; everything else goes
through git. ``LocalVaultFiles`` works on a directory on disk and keeps
track of which documents it has opened for the user.
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from pathlib import Path, PurePosixPath
from typing import Callable, Iterable, Optional

logger = logging.getLogger("vaultsync.files")

Opener = Callable[[Path], None]


class VaultFiles(ABC):
    """File-tree operations, addressed by vault-relative posix paths."""

    @abstractmethod
    def read(self, path: str) -> str:
        """Return the text of *path*. Raises FileNotFoundError if absent."""

    @abstractmethod
    def write(self, path: str, text: str) -> None:
        """Create or overwrite *path*."""

    @abstractmethod
    def delete(self, path: str) -> None:
        """Remove *path* and close any view showing it.

        Raises FileNotFoundError if absent.
        """

    @abstractmethod
    def link_text(self, path: str) -> Optional[str]:
        """Wiki-link target for *path*, or None when it is not a file."""

    @abstractmethod
    def open_views(self) -> Iterable[str]:
        """Display names of the documents currently open."""

    @abstractmethod
    def open(self, path: str) -> None:
        """Open *path* for the user."""


def display_name(path: str) -> str:
    """Name a view shows for *path*: the file name without ``.md``."""
    name = PurePosixPath(path).name
    return name[:-3] if name.endswith(".md") else name


class LocalVaultFiles(VaultFiles):
    """Vault files on the local filesystem.

    Args:
        root: Vault directory.
        opener: Called with the absolute path when a document is opened
            (e.g. ``click.launch``). When None, opening only records the view.
    """

    def __init__(self, root: Path, opener: Optional[Opener] = None):
        self.root = Path(root).expanduser()
        self._opener = opener
        self._views: list[str] = []

    def _resolve(self, path: str) -> Path:
        resolved = (self.root / path).resolve()
        if not resolved.is_relative_to(self.root.resolve()):
            raise ValueError(f"Path escapes the vault: {path}")
        return resolved

    def read(self, path: str) -> str:
        return self._resolve(path).read_text(encoding="utf-8")

    def write(self, path: str, text: str) -> None:
        target = self._resolve(path)
        target.parent.mkdir(parents=True, exist_ok=True)
        target.write_text(text, encoding="utf-8")

    def delete(self, path: str) -> None:
        self._resolve(path).unlink()
        self.close(path)

    def link_text(self, path: str) -> Optional[str]:
        if not self._resolve(path).is_file():
            return None
        return path[:-3] if path.endswith(".md") else path

    def open_views(self) -> Iterable[str]:
        return list(self._views)

    def close(self, path: str) -> None:
        """Forget that *path* is open."""
        name = display_name(path)
        if name in self._views:
            self._views.remove(name)

    def open(self, path: str) -> None:
        self._views.append(display_name(path))
        if self._opener is not None:
            self._opener(self._resolve(path))
        else:
            logger.info("Report available at %s", self._resolve(path))
