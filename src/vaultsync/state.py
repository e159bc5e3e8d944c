"""
Coordinator status — the single live ``CoordinatorState`` plus the
status-line text observers render from it.
"""

from __future__ import annotations

import logging
from typing import Callable, Optional

from .models import CoordinatorState

logger = logging.getLogger("vaultsync.state")

StateListener = Callable[[CoordinatorState], None]

STATE_TEXT = {
    CoordinatorState.IDLE: "ready",
    CoordinatorState.CHECKING: "checking repository status...",
    CoordinatorState.PULLING: "pulling changes...",
    CoordinatorState.ADDING: "adding files...",
    CoordinatorState.COMMITTING: "committing changes...",
    CoordinatorState.PUSHING: "pushing changes...",
    CoordinatorState.CONFLICTED: "you have conflict files...",
}


class SyncStatus:
    """Holds the coordinator state and the transient status-line message.

    Only the coordinator (and the backend it drives) calls ``set``;
    everyone else reads ``state`` or subscribes with ``add_listener``.

    Args:
        clock: Zero-argument callable returning seconds.
        prefix: Label shown at the start of the status line.
    """

    def __init__(self, clock: Callable[[], float], prefix: str = "vaultsync"):
        self._clock = clock
        self._prefix = prefix
        self._state: Optional[CoordinatorState] = None
        self._listeners: list[StateListener] = []
        self._message: Optional[str] = None
        self._message_until: Optional[float] = None
        self.last_update: Optional[float] = None

    @property
    def state(self) -> Optional[CoordinatorState]:
        """Current state, or None before the first successful initialization."""
        return self._state

    def set(self, state: CoordinatorState) -> None:
        """Transition to *state* and notify listeners."""
        if state == self._state:
            return
        previous, self._state = self._state, state
        logger.debug("State %s -> %s", previous.value if previous else None, state.value)
        if previous is not None and previous.is_busy and state == CoordinatorState.IDLE:
            self.last_update = self._clock()
        for listener in list(self._listeners):
            try:
                listener(state)
            except Exception:
                logger.exception("State listener failed")

    def add_listener(self, listener: StateListener) -> None:
        self._listeners.append(listener)

    def remove_listener(self, listener: StateListener) -> None:
        if listener in self._listeners:
            self._listeners.remove(listener)

    def show_message(self, text: str, timeout_ms: int) -> None:
        """Show *text* on the status line.

        A timeout of 0 keeps the message until the next one replaces it.
        """
        self._message = text.lower()
        self._message_until = (
            self._clock() + timeout_ms / 1000 if timeout_ms > 0 else None
        )

    def render(self) -> str:
        """One-line description for a status bar."""
        if self._message is not None:
            if self._message_until is None or self._clock() < self._message_until:
                return f"{self._prefix}: {self._message}"
            self._message = None
            self._message_until = None
        if self._state is None:
            return f"{self._prefix}: not ready"
        text = STATE_TEXT[self._state]
        if self._state == CoordinatorState.IDLE and self.last_update is not None:
            minutes = int((self._clock() - self.last_update) // 60)
            text = f"last update {minutes} minute(s) ago"
        return f"{self._prefix}: {text}"
