"""
Single-flight task queue.

Every sync operation, whether a timer fired it or the user asked for it,
goes through ``TaskQueue.enqueue``. Producers run strictly one at a time
in submission order, so two workflows never interleave their git calls.
"""

from __future__ import annotations

import asyncio
import logging
from collections import deque
from typing import Awaitable, Callable, Optional

logger = logging.getLogger("vaultsync.taskqueue")

Producer = Callable[[], Awaitable[None]]


class TaskQueue:
    """FIFO runner that executes at most one producer at a time.

    A producer that raises is logged and dropped; the queue moves on
    to the next one and the error never reaches whoever enqueued it.
    """

    def __init__(self) -> None:
        self._pending: deque[Producer] = deque()
        self._running = False
        self._runner: Optional[asyncio.Task] = None
        self._idle = asyncio.Event()
        self._idle.set()
        self.completed: int = 0
        self.failed: int = 0

    @property
    def running(self) -> bool:
        """True while a producer is executing."""
        return self._running

    @property
    def pending(self) -> int:
        """Number of producers waiting behind the running one."""
        return len(self._pending)

    def enqueue(self, producer: Producer) -> None:
        """Append *producer* and start draining if the queue is idle.

        Must be called from within a running event loop.
        """
        self._pending.append(producer)
        self._idle.clear()
        if not self._running:
            self._running = True
            self._runner = asyncio.get_running_loop().create_task(self._drain())

    async def join(self) -> None:
        """Wait until every queued producer has finished."""
        await self._idle.wait()

    async def _drain(self) -> None:
        try:
            while self._pending:
                producer = self._pending.popleft()
                try:
                    await producer()
                    self.completed += 1
                except Exception:
                    self.failed += 1
                    logger.exception("Queued sync task failed")
        finally:
            self._running = False
            self._runner = None
            self._idle.set()
