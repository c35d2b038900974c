from fastapi.testclient import TestClient
from theo_notes.main import app


def test_health_ok():
    client = TestClient(app)
    r = client.get("/health")
    assert r.status_code == 200
    body = r.json()
    assert body["ok"] is True
    assert body["service"] == "api"
    assert body["db_ok"] is True
    assert isinstance(body["version"], str)
