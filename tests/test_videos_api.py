from fastapi.testclient import TestClient

from theo_notes.main import app

client = TestClient(app)

THEO = {"title": "The queue you already have", "author_name": "Theo", "author_url": "https://www.youtube.com/@t3dotgg"}


def _save(points=None, title="Saved video"):
    r = client.post(
        "/videos/save",
        json={
            "url": "https://www.youtube.com/watch?v=dQw4w9WgXcQ",
            "video_id": "dQw4w9WgXcQ",
            "title": title,
            "thumbnail_url": "https://img.youtube.com/vi/dQw4w9WgXcQ/maxresdefault.jpg",
            "points": points
            if points is not None
            else [
                {"content": "Use Postgres as a queue", "category": "action", "timestamp": 61},
                {"content": "SKIP LOCKED exists", "category": "remember"},
            ],
        },
    )
    assert r.status_code == 200
    return r.json()["video"]["id"]


def test_validate_video(monkeypatch):
    from theo_notes.api import videos as videos_mod

    monkeypatch.setattr(videos_mod, "fetch_video_metadata", lambda video_id: THEO)

    r = client.post("/videos/validate", json={"url": "https://youtu.be/dQw4w9WgXcQ"})
    assert r.status_code == 200
    info = r.json()["video_info"]
    assert info["youtube_id"] == "dQw4w9WgXcQ"
    assert info["title"] == THEO["title"]
    assert info["thumbnail_url"].endswith("/dQw4w9WgXcQ/maxresdefault.jpg")


def test_validate_video_errors(monkeypatch):
    from theo_notes.api import videos as videos_mod

    assert client.post("/videos/validate", json={"url": ""}).status_code == 400
    assert client.post("/videos/validate", json={"url": "https://vimeo.com/1"}).status_code == 400

    monkeypatch.setattr(
        videos_mod,
        "fetch_video_metadata",
        lambda video_id: {"title": "x", "author_name": "Other", "author_url": "https://www.youtube.com/@other"},
    )
    r = client.post("/videos/validate", json={"url": "dQw4w9WgXcQ"})
    assert r.status_code == 400
    assert "t3dotgg" in r.json()["detail"]

    def offline(video_id):
        raise RuntimeError("Could not connect to YouTube.")

    monkeypatch.setattr(videos_mod, "fetch_video_metadata", offline)
    r = client.post("/videos/validate", json={"url": "dQw4w9WgXcQ"})
    assert r.status_code == 500
    assert "Could not connect" in r.json()["detail"]


def test_save_and_get_video():
    vid = _save()

    r = client.get(f"/videos/{vid}")
    assert r.status_code == 200
    body = r.json()
    assert body["video"]["youtube_id"] == "dQw4w9WgXcQ"
    pts = body["points"]
    assert [p["content"] for p in pts] == ["Use Postgres as a queue", "SKIP LOCKED exists"]
    assert [p["position"] for p in pts] == [0, 1]
    assert pts[0]["timestamp_label"] == "1:01"
    assert pts[1]["timestamp"] is None
    assert pts[0]["is_completed"] is False


def test_save_rejects_bad_points():
    r = client.post(
        "/videos/save",
        json={
            "url": "u",
            "video_id": "dQw4w9WgXcQ",
            "title": "t",
            "points": [{"content": "x", "category": "not-a-category"}],
        },
    )
    assert r.status_code == 422

    r = client.post("/videos/save", json={"url": " ", "video_id": "dQw4w9WgXcQ", "title": "t"})
    assert r.status_code == 400


def test_get_missing_video_404():
    assert client.get("/videos/99999999").status_code == 404
    assert client.delete("/videos/99999999").status_code == 404
    assert client.get("/videos/99999999/notes").status_code == 404


def test_list_and_search():
    _save(title="Searchable needle title")
    r = client.get("/videos", params={"q": "needle"})
    assert r.status_code == 200
    body = r.json()
    assert body["ok"] is True
    assert body["total"] >= 1
    assert all("needle" in v["title"] for v in body["videos"])

    r = client.get("/videos", params={"limit": 1})
    assert len(r.json()["videos"]) == 1


def test_points_lifecycle():
    vid = _save(points=[{"content": "First", "category": "insight"}])

    r = client.post(f"/videos/{vid}/points", json={"points": [{"content": "Second", "category": "action", "timestamp": 5}]})
    assert r.status_code == 200
    added = r.json()["points"]
    assert added[0]["position"] == 1

    assert client.post(f"/videos/{vid}/points", json={"points": []}).status_code == 400

    point_id = added[0]["id"]
    r = client.patch(f"/videos/{vid}/points/{point_id}", json={"is_completed": True})
    assert r.status_code == 200
    assert r.json()["point"]["is_completed"] is True

    assert client.patch(f"/videos/{vid}/points/99999999", json={"is_completed": True}).status_code == 404

    r = client.delete(f"/videos/{vid}/points")
    assert r.json()["deleted"] == 2
    assert client.get(f"/videos/{vid}").json()["points"] == []


def test_blog_and_notes():
    vid = _save()

    assert client.put(f"/videos/{vid}/blog", json={"blog_content": "## Intro\n\nHello"}).status_code == 200
    assert client.get(f"/videos/{vid}").json()["video"]["blog_content"] == "## Intro\n\nHello"
    assert client.put(f"/videos/{vid}/blog", json={"blog_content": ""}).status_code == 422
    assert client.delete(f"/videos/{vid}/blog").status_code == 200
    assert client.get(f"/videos/{vid}").json()["video"]["blog_content"] is None

    assert client.get(f"/videos/{vid}/notes").json()["user_notes"] is None
    assert client.put(f"/videos/{vid}/notes", json={"user_notes": "<p>remember this</p>"}).status_code == 200
    assert client.get(f"/videos/{vid}/notes").json()["user_notes"] == "<p>remember this</p>"


def test_delete_video_removes_points():
    vid = _save()
    assert client.delete(f"/videos/{vid}").status_code == 200
    assert client.get(f"/videos/{vid}").status_code == 404
