from __future__ import annotations

import asyncio
import codecs
import logging
from typing import AsyncIterable, AsyncIterator, Callable

from theo_notes.core.config import settings
from theo_notes.services.point_merger import PointMerger, Snapshot
from theo_notes.services.stream_parser import StreamAccumulator

logger = logging.getLogger(__name__)

NO_INSIGHTS_MESSAGE = "No insights were extracted from this video. Please try again."


class NoInsightsExtracted(RuntimeError):
    def __init__(self, message: str = NO_INSIGHTS_MESSAGE) -> None:
        super().__init__(message)


class ExtractionSession:
    """
    One streaming extraction: chunks in, throttled point snapshots out.

    Built per request and dropped afterwards; the raw buffer and the visible
    point set belong to this object only.

      session = ExtractionSession(on_snapshot=ui_push)
      points = await session.consume(model_stream, abort=stop_event)
    """

    def __init__(
        self,
        on_snapshot: Callable[[Snapshot], None],
        *,
        throttle_ms: int | None = None,
        loop: asyncio.AbstractEventLoop | None = None,
    ) -> None:
        delay_ms = settings.snapshot_throttle_ms if throttle_ms is None else throttle_ms
        self._decoder = codecs.getincrementaldecoder("utf-8")(errors="replace")
        self._accumulator = StreamAccumulator()
        self._merger = PointMerger(on_snapshot, throttle_s=delay_ms / 1000.0, loop=loop)
        self._final: Snapshot | None = None
        self._cancelled = False

    @property
    def accumulator(self) -> StreamAccumulator:
        return self._accumulator

    @property
    def merger(self) -> PointMerger:
        return self._merger

    @property
    def points(self) -> Snapshot:
        if self._final is not None:
            return self._final
        return self._merger.current_best

    @property
    def finalized(self) -> bool:
        return self._final is not None

    def feed(self, chunk: str | bytes) -> None:
        if self._cancelled or self._final is not None:
            return
        text = self._decoder.decode(chunk) if isinstance(chunk, (bytes, bytearray)) else chunk
        if not text:
            return
        self._merger.update(self._accumulator.feed(text))

    def finalize(self) -> Snapshot:
        """
        Flush the decoder, run one last extraction and emit the final state.
        Raises NoInsightsExtracted when the session ends with zero points.
        """
        if self._final is None:
            tail = self._decoder.decode(b"", final=True)
            if tail and not self._cancelled:
                self._accumulator.feed(tail)
            self._merger.update(self._accumulator.finalize())
            self._final = self._merger.finalize()
            logger.info(
                "Extraction finalized: %d points from %d chars",
                len(self._final),
                len(self._accumulator.buffer),
            )

        if not self._final:
            raise NoInsightsExtracted()
        return self._final

    def cancel(self) -> None:
        """Teardown: stop the throttle timer, emit nothing further."""
        self._cancelled = True
        self._merger.cancel()

    async def consume(
        self,
        chunks: AsyncIterable[str | bytes],
        abort: asyncio.Event | None = None,
    ) -> Snapshot:
        """
        Drain `chunks` and finalize.

        - abort set: stop awaiting upstream (even mid-read), close it, finalize
          with the partial buffer
        - upstream error: finalize what we have, then re-raise the upstream error
        - task cancelled: teardown without a final emission
        """
        iterator = chunks.__aiter__()
        abort_wait = asyncio.ensure_future(abort.wait()) if abort is not None else None
        next_chunk: asyncio.Future | None = None
        try:
            while True:
                if abort is not None and abort.is_set():
                    logger.info("Extraction aborted after %d chars", len(self._accumulator.buffer))
                    await _aclose(iterator)
                    break

                if abort_wait is None:
                    try:
                        chunk = await iterator.__anext__()
                    except StopAsyncIteration:
                        break
                else:
                    next_chunk = asyncio.ensure_future(iterator.__anext__())
                    await asyncio.wait({next_chunk, abort_wait}, return_when=asyncio.FIRST_COMPLETED)
                    if not next_chunk.done():
                        next_chunk.cancel()
                        await asyncio.wait({next_chunk})
                        next_chunk = None
                        continue
                    pending, next_chunk = next_chunk, None
                    try:
                        chunk = pending.result()
                    except StopAsyncIteration:
                        break
                self.feed(chunk)
        except asyncio.CancelledError:
            self.cancel()
            raise
        except Exception:
            logger.exception("Upstream stream failed after %d chars", len(self._accumulator.buffer))
            try:
                self.finalize()
            except NoInsightsExtracted:
                pass
            raise
        finally:
            for fut in (next_chunk, abort_wait):
                if fut is not None and not fut.done():
                    fut.cancel()

        return self.finalize()


async def _aclose(iterator: AsyncIterator) -> None:
    aclose = getattr(iterator, "aclose", None)
    if aclose is None:
        return
    try:
        await aclose()
    except Exception:
        logger.warning("Upstream stream did not close cleanly", exc_info=True)
