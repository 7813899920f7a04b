import json

import pytest
from fastapi.testclient import TestClient

from tangent.trail import engine
from tangent.trail.models import BranchStep, OpenStep
from tangent.web import create_app


@pytest.fixture
def client():
    app = create_app(":memory:")
    with TestClient(app) as c:
        yield c


def _trail_document(*steps):
    trail = engine.create_trail("cartography")
    for step in steps:
        trail = engine.append_step(trail, step)
    return trail, json.loads(engine.export_to_text(trail))


def test_health(client):
    response = client.get("/api/health")

    assert response.status_code == 200
    assert response.json() == {"ok": True}


def test_save_and_fetch_trail(client):
    trail, document = _trail_document(
        OpenStep(url="https://arxiv.org/abs/1", title="Paper", domain="arxiv.org")
    )

    response = client.post("/api/trail", json={"trail": document})

    assert response.status_code == 201
    body = response.json()
    assert body["ok"] is True
    assert body["trail"]["id"] == trail.id
    assert body["trail"]["score"] == 14

    fetched = client.get(f"/api/trail/{trail.id}")

    assert fetched.status_code == 200
    data = fetched.json()
    assert data["query"] == "cartography"
    assert "createdAt" in data
    assert data["steps"][0]["domain"] == "arxiv.org"
    assert engine.import_from_dict(data).steps == trail.steps


def test_save_ignores_client_score(client):
    trail, document = _trail_document()
    document["score"] = 500

    response = client.post("/api/trail", json={"trail": document})

    assert response.json()["trail"]["score"] == 0


def test_save_malformed_trail_returns_bad_request(client):
    response = client.post("/api/trail", json={"trail": {"id": "x", "query": "q"}})

    assert response.status_code == 400
    assert "steps" in response.json()["detail"]


def test_append_step(client):
    trail, document = _trail_document()
    client.post("/api/trail", json={"trail": document})

    response = client.post(
        "/api/trail/append",
        json={"trailId": trail.id, "step": {"type": "branch", "query": "portolan charts"}},
    )

    assert response.status_code == 200
    steps = response.json()["trail"]["steps"]
    assert len(steps) == 1
    assert steps[0]["type"] == "branch"
    assert steps[0]["query"] == "portolan charts"


def test_append_to_unknown_trail_returns_not_found(client):
    response = client.post(
        "/api/trail/append",
        json={"trailId": "missing", "step": {"type": "note", "text": "n"}},
    )

    assert response.status_code == 404


def test_append_invalid_step_is_rejected(client):
    response = client.post(
        "/api/trail/append",
        json={"trailId": "x", "step": {"type": "teleport"}},
    )

    assert response.status_code == 422


def test_get_unknown_trail_returns_not_found(client):
    response = client.get("/api/trail/missing")

    assert response.status_code == 404
    assert response.json()["detail"] == "Trail not found"


def test_get_trail_score(client):
    trail, document = _trail_document(
        OpenStep(url="https://reddit.com/1", title="A", domain="reddit.com"),
        OpenStep(url="https://reddit.com/2", title="B", domain="reddit.com"),
        BranchStep(query="b"),
    )
    client.post("/api/trail", json={"trail": document})

    response = client.get(f"/api/trail/{trail.id}/score")

    assert response.status_code == 200
    body = response.json()
    assert body["trail_id"] == trail.id
    assert body["score"] == 11
    assert body["outbound_clicks"] == 2
    assert body["unique_domains"] == ["reddit.com"]
    assert body["depth"] == 1
    assert [c["label"] for c in body["components"]][-1] == "Same domain penalty"
