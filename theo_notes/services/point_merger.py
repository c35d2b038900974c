from __future__ import annotations

import asyncio
import logging
from typing import Callable, Sequence

from theo_notes.services.stream_parser import PointCandidate
from theo_notes.services.throttle import ThrottledEmitter

logger = logging.getLogger(__name__)

Snapshot = tuple[PointCandidate, ...]


def point_key(point: PointCandidate, index: int) -> str:
    """
    Render key only (not used for merging): cards already on screen keep
    their key when a sibling further down changes.
    """
    return f"{point.category}-{point.content[:40]}-{index}"


def format_timestamp(seconds: int) -> str:
    mins, secs = divmod(int(seconds), 60)
    return f"{mins}:{secs:02d}"


class PointMerger:
    """
    High-watermark over the per-chunk candidate lists.

    A list at least as long as the current best replaces it wholesale (growth,
    or the last point's text filling in). A shorter list is dropped entirely:
    a retry/backtrack fragment and a genuine correction of an earlier point
    look the same from here, and the visible list must never shrink.
    Identity is positional.
    """

    def __init__(
        self,
        on_snapshot: Callable[[Snapshot], None],
        throttle_s: float = 0.15,
        emitter: ThrottledEmitter[Snapshot] | None = None,
        loop: asyncio.AbstractEventLoop | None = None,
    ) -> None:
        self._best: Snapshot = ()
        self._emitter = emitter or ThrottledEmitter(on_snapshot, delay_s=throttle_s, loop=loop)
        self._final: Snapshot | None = None

    @property
    def current_best(self) -> Snapshot:
        return self._best

    @property
    def emitter(self) -> ThrottledEmitter[Snapshot]:
        return self._emitter

    def update(self, candidates: Sequence[PointCandidate]) -> bool:
        """Returns True when the visible set changed and a push was scheduled."""
        if self._final is not None:
            return False
        if len(candidates) < len(self._best):
            logger.debug("Ignoring shorter candidate list (%d < %d)", len(candidates), len(self._best))
            return False

        snapshot: Snapshot = tuple(candidates)
        if snapshot == self._best:
            return False
        self._best = snapshot
        self._emitter.schedule_push(snapshot)
        return True

    def finalize(self) -> Snapshot:
        """Unthrottled, authoritative last emission (once)."""
        if self._final is None:
            self._final = self._best
            self._emitter.flush(self._final)
            self._emitter.close()
        return self._final

    def cancel(self) -> None:
        self._emitter.close()
