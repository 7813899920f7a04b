from fastapi import FastAPI
from fastapi.testclient import TestClient

from tangent.search.mock import MockSearchProvider, MockTangentGenerator
from tangent.web.api import search


class _FakeProvider:
    name = "fake"

    def __init__(self):
        self.last_query = None
        self.last_params = None

    async def search(self, query, params):
        self.last_query = query
        self.last_params = params
        return []


class _BrokenProvider:
    name = "broken"

    async def search(self, query, params):  # noqa: ARG002
        raise RuntimeError("upstream timeout")


class _BrokenGenerator:
    async def generate(self, context):  # noqa: ARG002
        raise RuntimeError("upstream timeout")


def _build_client(provider, generator=None):
    app = FastAPI()
    search.init_search(provider, generator or MockTangentGenerator(seed=3))
    app.include_router(search.router, prefix="/api")
    return TestClient(app)


def test_search_returns_cards():
    client = _build_client(MockSearchProvider())

    response = client.post(
        "/api/search",
        json={"query": "intelligence", "params": {"k": 2, "buckets": ["encyclopedia", "news"]}},
    )

    assert response.status_code == 200
    cards = response.json()["cards"]
    assert [c["domain"] for c in cards] == ["wikipedia.org", "techcrunch.com"]


def test_search_forwards_params():
    provider = _FakeProvider()
    client = _build_client(provider)

    client.post(
        "/api/search",
        json={"query": "maps", "params": {"lambda": 0.2, "sigma": 0.8, "contrarian": True}},
    )

    assert provider.last_query == "maps"
    assert provider.last_params.lambda_ == 0.2
    assert provider.last_params.sigma == 0.8
    assert provider.last_params.contrarian is True
    assert provider.last_params.k == 8


def test_search_failure_returns_server_error():
    client = _build_client(_BrokenProvider())

    response = client.post("/api/search", json={"query": "maps"})

    assert response.status_code == 500
    assert response.json()["detail"] == "Search failed"


def test_tangents_returns_queries():
    client = _build_client(MockSearchProvider())

    response = client.post("/api/tangents", json={"title": "Paper"})

    assert response.status_code == 200
    assert len(response.json()["queries"]) == 3


def test_tangents_failure_returns_server_error():
    client = _build_client(MockSearchProvider(), _BrokenGenerator())

    response = client.post("/api/tangents", json={})

    assert response.status_code == 500
