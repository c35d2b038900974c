import json

import httpx
import pytest
from fastapi.testclient import TestClient

from theo_notes.api import stream as stream_mod
from theo_notes.api import videos as videos_mod
from theo_notes.api.stream import get_gemini_client
from theo_notes.core.config import Settings
from theo_notes.main import app
from theo_notes.services.llm.gemini_client import GeminiClient

client = TestClient(app)

URL = "https://www.youtube.com/watch?v=dQw4w9WgXcQ"
DOC = json.dumps(
    {
        "points": [
            {"content": "Ship the boring stack", "category": "action", "timestamp": 12},
            {"content": "Latency is a feature", "category": "insight", "timestamp": 95},
            {"content": "Read the changelog", "category": "remember"},
        ]
    }
)


class FakeGemini:
    def __init__(self, chunks):
        self.chunks = chunks
        self.calls = []

    async def stream_text(self, video_url, prompt, response_schema=None):
        self.calls.append({"video_url": video_url, "prompt": prompt, "schema": response_schema})
        for c in self.chunks:
            yield c


@pytest.fixture(autouse=True)
def _theo_video(monkeypatch):
    monkeypatch.setattr(
        videos_mod,
        "fetch_video_metadata",
        lambda video_id: {"title": "Boring tech wins", "author_name": "Theo", "author_url": "https://www.youtube.com/@t3dotgg"},
    )
    yield
    app.dependency_overrides.clear()


def _use(fake):
    app.dependency_overrides[get_gemini_client] = lambda: fake
    return fake


def _events(r):
    return [json.loads(line) for line in r.text.splitlines() if line.strip()]


def test_extract_streams_snapshots_then_saves():
    fake = _use(FakeGemini([DOC[i : i + 17] for i in range(0, len(DOC), 17)]))

    r = client.post("/stream/extract", json={"url": URL})
    assert r.status_code == 200
    assert r.headers["content-type"].startswith("application/x-ndjson")

    events = _events(r)
    assert events[-1]["type"] == "saved"
    snapshots = [e["points"] for e in events if e["type"] == "points"]
    assert snapshots
    assert [len(s) for s in snapshots] == sorted(len(s) for s in snapshots)

    final = snapshots[-1]
    assert [p["content"] for p in final] == [
        "Ship the boring stack",
        "Latency is a feature",
        "Read the changelog",
    ]
    assert final[0]["key"] == "action-Ship the boring stack-0"
    assert final[1]["timestamp_label"] == "1:35"
    assert "timestamp" not in final[2]

    assert fake.calls[0]["video_url"] == URL
    assert fake.calls[0]["schema"] is not None

    saved = client.get(f"/videos/{events[-1]['video_id']}").json()
    assert saved["video"]["title"] == "Boring tech wins"
    assert [p["category"] for p in saved["points"]] == ["action", "insight", "remember"]


def test_extract_reports_no_insights():
    _use(FakeGemini(["Sorry, ", "I cannot help with that."]))

    events = _events(client.post("/stream/extract", json={"url": URL}))
    assert events[-1]["type"] == "error"
    assert "No insights" in events[-1]["error"]
    assert all(e["type"] != "saved" for e in events)


def test_extract_upstream_failure_reports_partial_points():
    class Failing(FakeGemini):
        async def stream_text(self, video_url, prompt, response_schema=None):
            yield '{"points":[{"content":"Kept","category":"action"},'
            raise ConnectionError("connection reset")

    _use(Failing([]))

    events = _events(client.post("/stream/extract", json={"url": URL}))
    assert events[-1] == {"type": "error", "error": "connection reset", "partial_points": 1}
    assert events[-2]["type"] == "points"
    assert [p["content"] for p in events[-2]["points"]] == ["Kept"]


def test_raw_stream_passes_text_through():
    _use(FakeGemini(['{"points":[', '{"content":"A","category":"action"}', "]}"]))

    r = client.post("/stream", json={"url": URL})
    assert r.status_code == 200
    assert r.text == '{"points":[{"content":"A","category":"action"}]}'


def test_blog_stream():
    fake = _use(FakeGemini(["# Boring tech wins\n\n", "Use what works."]))

    r = client.post("/stream-blog", json={"url": URL})
    assert r.status_code == 200
    assert r.headers["content-type"].startswith("text/markdown")
    assert r.text == "# Boring tech wins\n\nUse what works."
    assert fake.calls[0]["schema"] is None


def test_stream_rejects_invalid_url():
    _use(FakeGemini([DOC]))
    r = client.post("/stream/extract", json={"url": "https://vimeo.com/1"})
    assert r.status_code == 400
    assert r.json()["detail"] == "Invalid YouTube URL"


def test_missing_api_key(monkeypatch):
    monkeypatch.setattr(stream_mod, "settings", Settings(gemini_api_key=None))

    r = client.post("/stream/extract", json={"url": URL})
    assert r.status_code == 400
    assert "API key is required" in r.json()["detail"]


def test_validate_key(monkeypatch):
    assert client.post("/validate-key").status_code == 400

    transport = httpx.MockTransport(lambda request: httpx.Response(401, json={}))
    monkeypatch.setattr(
        stream_mod,
        "GeminiClient",
        lambda api_key: GeminiClient(api_key, base_url="https://gemini.test", transport=transport),
    )

    r = client.post("/validate-key", headers={"x-gemini-api-key": "bad"})
    assert r.status_code == 200
    assert r.json()["valid"] is False
    assert "Invalid API key" in r.json()["error"]
