from __future__ import annotations

import asyncio
import json
import logging
from contextlib import suppress
from typing import Any, AsyncIterator

from fastapi import APIRouter, Depends, Header, HTTPException
from fastapi.concurrency import run_in_threadpool
from fastapi.responses import StreamingResponse
from pydantic import BaseModel

from theo_notes.api.videos import VideoInfo, resolve_video_info
from theo_notes.core.config import settings
from theo_notes.db.session import SessionLocal
from theo_notes.services.extraction import ExtractionSession, NoInsightsExtracted
from theo_notes.services.llm.gemini_client import GeminiClient
from theo_notes.services.llm.prompts import POINTS_RESPONSE_SCHEMA, blog_prompt, points_prompt
from theo_notes.services.point_merger import Snapshot, format_timestamp, point_key
from theo_notes.services.videos import create_video_with_points
from theo_notes.services.youtube import build_video_url

logger = logging.getLogger(__name__)

router = APIRouter(tags=["stream"])


class StreamRequest(BaseModel):
    url: str


def get_gemini_client(x_gemini_api_key: str | None = Header(default=None)) -> GeminiClient:
    """BYOK: header key first, then GEMINI_API_KEY."""
    api_key = (x_gemini_api_key or "").strip() or settings.gemini_api_key
    if not api_key:
        raise HTTPException(
            status_code=400,
            detail="API key is required. Add your Gemini API key in the API Key settings.",
        )
    return GeminiClient(api_key=api_key)


def snapshot_payload(points: Snapshot) -> list[dict[str, Any]]:
    out: list[dict[str, Any]] = []
    for i, p in enumerate(points):
        d = p.to_dict()
        d["key"] = point_key(p, i)
        d["timestamp_label"] = format_timestamp(p.timestamp) if p.timestamp is not None else None
        out.append(d)
    return out


async def _safe_text(chunks: AsyncIterator[str], label: str) -> AsyncIterator[str]:
    # A client disconnect or provider hiccup just ends the body.
    try:
        async for chunk in chunks:
            yield chunk
    except Exception:
        logger.exception("[%s] upstream stream interrupted", label)


def _persist(info: VideoInfo, points: Snapshot) -> int:
    db = SessionLocal()
    try:
        v = create_video_with_points(
            db,
            youtube_url=info.url,
            youtube_id=info.youtube_id,
            title=info.title,
            thumbnail_url=info.thumbnail_url,
            points=points,
        )
        return v.id
    finally:
        db.close()


@router.post("/stream")
async def stream_points_raw(req: StreamRequest, client: GeminiClient = Depends(get_gemini_client)):
    """Raw JSON text as the model produces it; the caller parses incrementally."""
    info = await run_in_threadpool(resolve_video_info, req.url)
    logger.info("[stream] Gemini request for video %s", info.youtube_id)

    chunks = client.stream_text(
        build_video_url(info.youtube_id),
        points_prompt(info.title),
        response_schema=POINTS_RESPONSE_SCHEMA,
    )
    return StreamingResponse(_safe_text(chunks, "stream"), media_type="text/plain; charset=utf-8")


@router.post("/stream/extract")
async def stream_points_extract(req: StreamRequest, client: GeminiClient = Depends(get_gemini_client)):
    """
    Server-side extraction session. NDJSON events:
      {"type": "points", "points": [...]}   throttled snapshots, final one unthrottled
      {"type": "saved", "video_id": N}      after persistence
      {"type": "error", "error": "..."}     zero points or upstream failure
    """
    info = await run_in_threadpool(resolve_video_info, req.url)
    logger.info("[stream/extract] Gemini request for video %s", info.youtube_id)

    queue: asyncio.Queue[dict[str, Any] | None] = asyncio.Queue()

    def on_snapshot(points: Snapshot) -> None:
        queue.put_nowait({"type": "points", "points": snapshot_payload(points)})

    session = ExtractionSession(on_snapshot)

    async def produce() -> None:
        try:
            chunks = client.stream_text(
                build_video_url(info.youtube_id),
                points_prompt(info.title),
                response_schema=POINTS_RESPONSE_SCHEMA,
            )
            points = await session.consume(chunks)
            video_id = await run_in_threadpool(_persist, info, points)
            queue.put_nowait({"type": "saved", "video_id": video_id})
        except NoInsightsExtracted as e:
            queue.put_nowait({"type": "error", "error": str(e)})
        except Exception as e:
            queue.put_nowait(
                {
                    "type": "error",
                    "error": str(e) or "Something went wrong",
                    "partial_points": len(session.points),
                }
            )
        finally:
            queue.put_nowait(None)

    async def events() -> AsyncIterator[str]:
        task = asyncio.create_task(produce())
        try:
            while True:
                item = await queue.get()
                if item is None:
                    break
                yield json.dumps(item, ensure_ascii=False) + "\n"
        finally:
            if not task.done():
                task.cancel()
                with suppress(asyncio.CancelledError):
                    await task

    return StreamingResponse(events(), media_type="application/x-ndjson")


@router.post("/stream-blog")
async def stream_blog(req: StreamRequest, client: GeminiClient = Depends(get_gemini_client)):
    info = await run_in_threadpool(resolve_video_info, req.url)
    logger.info("[stream-blog] Gemini request for video %s", info.youtube_id)

    chunks = client.stream_text(build_video_url(info.youtube_id), blog_prompt(info.title))
    return StreamingResponse(_safe_text(chunks, "stream-blog"), media_type="text/markdown; charset=utf-8")


@router.post("/validate-key")
async def validate_key(x_gemini_api_key: str | None = Header(default=None)):
    api_key = (x_gemini_api_key or "").strip()
    if not api_key:
        raise HTTPException(status_code=400, detail="API key is required")
    return await GeminiClient(api_key=api_key).validate_api_key()
