from fastapi.testclient import TestClient
from app.main import app


def test_health_ok():
    client = TestClient(app)
    r = client.get("/health")
    assert r.status_code == 200
    body = r.json()
    assert body["ok"] is True
    assert body["service"] == "api"
    assert isinstance(body["version"], str)
    assert body["tasks"] == 0


def test_health_counts_tasks(api):
    api.state.task_store.create()
    api.state.task_store.create()

    r = TestClient(api).get("/health")
    assert r.status_code == 200
    assert r.json()["tasks"] == 2
