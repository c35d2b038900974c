from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from enum import Enum
from typing import Any

from theo_notes.services.json_repair import repair

logger = logging.getLogger(__name__)


class Category(str, Enum):
    ACTION = "action"
    REMEMBER = "remember"
    INSIGHT = "insight"


@dataclass(frozen=True)
class PointCandidate:
    content: str
    category: str
    timestamp: int | None = None

    def to_dict(self) -> dict[str, Any]:
        d: dict[str, Any] = {"content": self.content, "category": self.category}
        if self.timestamp is not None:
            d["timestamp"] = self.timestamp
        return d


def _coerce_timestamp(value: Any) -> int | None:
    # bool is an int subclass; "timestamp": true is not a time
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return None
    if value != value or value < 0 or value == float("inf"):
        return None
    return int(value)


def to_candidate(item: Any) -> PointCandidate | None:
    """
    Well-formed = non-empty `content` string + `category` string.
    Extra fields are ignored; a malformed timestamp is dropped, not fatal.
    """
    if not isinstance(item, dict):
        return None
    content = item.get("content")
    category = item.get("category")
    if not isinstance(content, str) or not content:
        return None
    if not isinstance(category, str):
        return None
    return PointCandidate(content=content, category=category, timestamp=_coerce_timestamp(item.get("timestamp")))


def _points_from(payload: Any) -> list[PointCandidate] | None:
    if not isinstance(payload, dict):
        return None
    items = payload.get("points")
    if not isinstance(items, list):
        return None
    out: list[PointCandidate] = []
    for it in items:
        c = to_candidate(it)
        if c is not None:
            out.append(c)
    return out


def _parse_points(text: str) -> list[PointCandidate] | None:
    """None = no parse (direct nor repaired) produced a `points` array."""
    try:
        return _points_from(json.loads(text))
    except ValueError:
        pass

    repaired = repair(text)
    if repaired is None:
        return None
    try:
        return _points_from(json.loads(repaired))
    except ValueError:
        logger.debug("Buffer not parseable yet (%d chars)", len(text))
        return None


def extract_points(text: str) -> list[PointCandidate]:
    """
    Direct parse, then repaired parse, then []. Never raises on bad JSON:
    a half-written document is the normal state mid-stream.
    """
    return _parse_points(text) or []


class AccumulatorState(str, Enum):
    ACCUMULATING = "accumulating"
    FINALIZED = "finalized"


class StreamAccumulator:
    """
    Owns the raw text buffer of one extraction session.

    Every `feed()` re-parses the whole buffer; at tens of KB that is cheaper
    than keeping an incremental tokenizer in sync with the repair rules.
    """

    def __init__(self) -> None:
        self._buffer = ""
        self._state = AccumulatorState.ACCUMULATING
        self._last: list[PointCandidate] = []
        self._final: list[PointCandidate] | None = None

    @property
    def buffer(self) -> str:
        return self._buffer

    @property
    def state(self) -> AccumulatorState:
        return self._state

    @property
    def last_candidates(self) -> list[PointCandidate]:
        return list(self._last)

    def feed(self, chunk: str) -> list[PointCandidate]:
        if self._state is AccumulatorState.FINALIZED:
            logger.warning("feed() after finalize(); ignoring %d chars", len(chunk or ""))
            return []
        if not chunk:
            return []

        self._buffer += chunk
        found = _parse_points(self._buffer)
        if found is None:
            return []
        self._last = found
        return list(found)

    def finalize(self) -> list[PointCandidate]:
        if self._final is not None:
            return list(self._final)

        self._state = AccumulatorState.FINALIZED
        found = _parse_points(self._buffer) if self._buffer.strip() else None
        if found is not None and len(found) > len(self._last):
            self._last = found
        self._final = list(self._last)
        return list(self._final)
