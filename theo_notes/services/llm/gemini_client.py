from __future__ import annotations

import json
import logging
from typing import Any, AsyncIterator

import httpx

from theo_notes.core.config import settings

logger = logging.getLogger(__name__)


class GeminiError(RuntimeError):
    def __init__(self, message: str, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code


def _event_text(event: dict[str, Any]) -> str:
    # {"candidates":[{"content":{"parts":[{"text":"..."}]}}], ...}
    out: list[str] = []
    for cand in event.get("candidates") or []:
        parts = ((cand or {}).get("content") or {}).get("parts") or []
        for p in parts:
            t = (p or {}).get("text")
            if isinstance(t, str):
                out.append(t)
    return "".join(out)


def _sse_line_text(line: str) -> str:
    """Text delta carried by one `data: {...}` line of an alt=sse response."""
    line = (line or "").strip()
    if not line.startswith("data:"):
        return ""
    data = line[len("data:"):].strip()
    if not data or data == "[DONE]":
        return ""
    try:
        event = json.loads(data)
    except ValueError:
        logger.warning("Skipping malformed SSE event: %r", data[:200])
        return ""
    return _event_text(event) if isinstance(event, dict) else ""


class GeminiClient:
    """
    Minimal Gemini REST client.

    The model reads the YouTube URL itself (fileData part), so no transcript
    is fetched here. `stream_text` is the opaque text source the extraction
    session consumes.
    """

    def __init__(
        self,
        api_key: str,
        model: str | None = None,
        base_url: str | None = None,
        timeout_s: float | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        if not api_key:
            raise ValueError("Gemini API key is missing")
        self.api_key = api_key
        self.model = model or settings.gemini_model
        self.base_url = (base_url or settings.gemini_base_url).rstrip("/")
        self.timeout_s = timeout_s if timeout_s is not None else settings.gemini_timeout_sec
        self._transport = transport

    def _client(self) -> httpx.AsyncClient:
        timeout = httpx.Timeout(self.timeout_s, connect=10.0)
        return httpx.AsyncClient(
            timeout=timeout,
            transport=self._transport,
            headers={"x-goog-api-key": self.api_key},
        )

    def build_payload(
        self,
        video_url: str,
        prompt: str,
        response_schema: dict[str, Any] | None = None,
    ) -> dict[str, Any]:
        payload: dict[str, Any] = {
            "contents": [
                {
                    "role": "user",
                    "parts": [
                        {"fileData": {"fileUri": video_url, "mimeType": "video/mp4"}},
                        {"text": prompt},
                    ],
                }
            ],
        }
        if response_schema:
            payload["generationConfig"] = {
                "responseMimeType": "application/json",
                "responseSchema": response_schema,
            }
        return payload

    async def stream_text(
        self,
        video_url: str,
        prompt: str,
        response_schema: dict[str, Any] | None = None,
    ) -> AsyncIterator[str]:
        url = f"{self.base_url}/v1beta/models/{self.model}:streamGenerateContent"
        payload = self.build_payload(video_url, prompt, response_schema)

        # No retries: on 429 a retry only burns more quota.
        async with self._client() as client:
            async with client.stream("POST", url, params={"alt": "sse"}, json=payload) as r:
                if r.status_code >= 400:
                    body = (await r.aread()).decode("utf-8", errors="replace")
                    raise GeminiError(
                        f"Gemini returned status {r.status_code}: {body[:300]}",
                        status_code=r.status_code,
                    )
                async for line in r.aiter_lines():
                    text = _sse_line_text(line)
                    if text:
                        yield text

    async def validate_api_key(self) -> dict[str, Any]:
        """Cheap models.list call. Never raises; returns {"valid": bool, "error"?: str}."""
        url = f"{self.base_url}/v1beta/models"
        try:
            async with self._client() as client:
                r = await client.get(url)
        except httpx.HTTPError:
            return {
                "valid": False,
                "error": "Network error while validating API key. Please check your connection.",
            }

        if r.status_code in (400, 401, 403):
            return {"valid": False, "error": "Invalid API key. Please check your key and try again."}
        if r.status_code == 429:
            return {"valid": False, "error": "Rate limit reached. Please wait a moment and try again."}
        if r.status_code >= 300:
            return {"valid": False, "error": f"API returned status {r.status_code}. Please try again."}
        return {"valid": True}
