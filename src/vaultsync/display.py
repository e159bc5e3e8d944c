"""
Display sinks for user-facing sync messages.

The coordinator decides *whether* a message is shown (popup suppression
applies to informational messages only); a ``Notifier`` decides *how*.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Optional

from rich.console import Console

DEFAULT_MESSAGE_TIMEOUT_MS = 4 * 1000
DEFAULT_ERROR_TIMEOUT_MS = 0


class Notifier(ABC):
    """Observer interface for user-visible messages."""

    @abstractmethod
    def show_message(self, text: str, timeout_ms: int) -> None:
        """Show an informational message. Must not block."""

    @abstractmethod
    def show_error(self, text: str, timeout_ms: int) -> None:
        """Show an error. Must not block."""


class ConsoleNotifier(Notifier):
    """Render messages on a Rich console."""

    def __init__(self, console: Optional[Console] = None):
        self.console = console or Console()

    def show_message(self, text: str, timeout_ms: int) -> None:
        self.console.print(f"  [green]{text}[/]", highlight=False)

    def show_error(self, text: str, timeout_ms: int) -> None:
        self.console.print(f"  [bold red]{text}[/]", highlight=False)


class NullNotifier(Notifier):
    """Discard everything; logging still records the messages."""

    def show_message(self, text: str, timeout_ms: int) -> None:
        pass

    def show_error(self, text: str, timeout_ms: int) -> None:
        pass
