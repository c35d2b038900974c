from __future__ import annotations

import asyncio
import logging
from enum import Enum
from typing import Callable, Generic, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")


def _running_loop() -> asyncio.AbstractEventLoop | None:
    try:
        return asyncio.get_running_loop()
    except RuntimeError:
        return None


class EmitterState(str, Enum):
    IDLE = "idle"        # no timer armed
    PENDING = "pending"  # one timer armed, one snapshot buffered


class ThrottledEmitter(Generic[T]):
    """
    Coalesces snapshots so the consumer sees at most one push per `delay_s`
    window, always the latest one once the window elapses.

    Exactly one timer handle is owned at a time. Timers go on the explicit
    `loop`, else the running one; with neither, pushes are held for `flush`.
    """

    def __init__(
        self,
        on_emit: Callable[[T], None],
        delay_s: float = 0.15,
        loop: asyncio.AbstractEventLoop | None = None,
    ) -> None:
        self._on_emit = on_emit
        self._delay_s = delay_s
        self._loop = loop
        self._state = EmitterState.IDLE
        self._timer: asyncio.TimerHandle | None = None
        self._pending: T | None = None
        self._closed = False
        self.emit_count = 0

    @property
    def state(self) -> EmitterState:
        return self._state

    @property
    def closed(self) -> bool:
        return self._closed

    def schedule_push(self, snapshot: T) -> None:
        if self._closed:
            return
        self._pending = snapshot
        if self._state is EmitterState.PENDING:
            return

        loop = self._loop or _running_loop()
        if loop is None:
            # Nothing to arm a timer on; the snapshot waits for flush() or
            # the next push made from inside a loop.
            logger.debug("No running event loop; holding snapshot until flush")
            return
        self._timer = loop.call_later(self._delay_s, self._fire)
        self._state = EmitterState.PENDING

    def flush(self, snapshot: T) -> None:
        """Cancel any armed timer and emit `snapshot` right now."""
        if self._closed:
            return
        self._cancel_timer()
        self._emit(snapshot)

    def close(self) -> None:
        """Tear down; nothing is emitted after this."""
        self._cancel_timer()
        self._closed = True

    def _fire(self) -> None:
        snapshot = self._pending
        self._timer = None
        self._pending = None
        self._state = EmitterState.IDLE
        if self._closed or snapshot is None:
            return
        self._emit(snapshot)

    def _cancel_timer(self) -> None:
        if self._timer is not None:
            self._timer.cancel()
        self._timer = None
        self._pending = None
        self._state = EmitterState.IDLE

    def _emit(self, snapshot: T) -> None:
        self.emit_count += 1
        self._on_emit(snapshot)
