"""Tests for the public search HTTP API."""

import pytest
from conftest import FakeClock, FakeIndexStore, StubEmbeddingClient, make_row, make_service
from fastapi.testclient import TestClient

from portal_search.backend.server import create_app
from portal_search.search.config import SearchSettings
from portal_search.search.embedding_cache import EmbeddingCache
from portal_search.search.rate_limiter import SlidingWindowRateLimiter

SEARCH_URL = "/api/public/search"

EMPTY_RESULTS = {"posts": [], "documents": [], "pages": [], "events": []}


def build_client(store: FakeIndexStore, **service_kwargs) -> TestClient:
    embedding_client = StubEmbeddingClient(EmbeddingCache(clock=FakeClock()))
    service = make_service(store, embedding_client, **service_kwargs)
    return TestClient(create_app(service=service, settings=SearchSettings(_env_file=None)))


@pytest.fixture
def store() -> FakeIndexStore:
    return FakeIndexStore(rows=[make_row("post", i) for i in range(7)] + [make_row("event", i) for i in range(2)])


def test_search_returns_grouped_envelope(store, published):
    store.rows = [make_row("document", 1, score=0.8, published_at=published)]
    client = build_client(store)

    response = client.get(SEARCH_URL, params={"q": " odluka "})

    assert response.status_code == 200
    body = response.json()
    assert body["query"] == "odluka"
    assert body["totalCount"] == 1
    assert body["results"]["documents"] == [
        {
            "id": "document-1",
            "title": "Document 1",
            "url": "/documents/1",
            "category": None,
            "date": "2024-05-17",
            "highlights": "<mark>document</mark> 1",
            "sourceType": "document",
            "score": 0.8,
        }
    ]


def test_search_caps_posts_per_type(store):
    client = build_client(store)

    body = client.get(SEARCH_URL, params={"q": "park"}).json()

    assert len(body["results"]["posts"]) == 5
    assert len(body["results"]["events"]) == 2
    assert body["totalCount"] == 7


@pytest.mark.parametrize("params, echoed", [({}, ""), ({"q": ""}, ""), ({"q": " a "}, "a")])
def test_short_or_missing_query_returns_empty_success(store, params, echoed):
    client = build_client(store)

    response = client.get(SEARCH_URL, params=params)

    assert response.status_code == 200
    assert response.json() == {"results": EMPTY_RESULTS, "totalCount": 0, "query": echoed}
    assert store.requests == []


def test_store_failure_returns_generic_error(store):
    store.error = RuntimeError("relation search_index does not exist")
    client = build_client(store)

    response = client.get(SEARCH_URL, params={"q": "park"})

    assert response.status_code == 500
    assert response.json() == {
        "results": EMPTY_RESULTS,
        "totalCount": 0,
        "query": "park",
        "error": "Search failed",
    }


def test_rate_limit_returns_429_with_retry_after(store):
    client = build_client(store, rate_limiter=SlidingWindowRateLimiter(clock=FakeClock()), rate_limit=2)
    headers = {"X-Forwarded-For": "203.0.113.9, 10.0.0.1"}

    assert client.get(SEARCH_URL, params={"q": "park"}, headers=headers).status_code == 200
    assert client.get(SEARCH_URL, params={"q": "park"}, headers=headers).status_code == 200
    response = client.get(SEARCH_URL, params={"q": "park"}, headers=headers)

    assert response.status_code == 429
    assert response.json() == {
        "success": False,
        "error": {"code": "RATE_LIMIT", "message": "Too many requests. Please try again later."},
    }
    assert int(response.headers["Retry-After"]) == 60

    # A different forwarded client still gets through
    other = client.get(SEARCH_URL, params={"q": "park"}, headers={"X-Forwarded-For": "198.51.100.4"})
    assert other.status_code == 200


def test_overlong_query_is_rejected(store):
    client = build_client(store)
    response = client.get(SEARCH_URL, params={"q": "x" * 501})
    assert response.status_code == 422


def test_search_health_reports_degraded_without_embeddings(store):
    embedding_client = StubEmbeddingClient(EmbeddingCache())
    embedding_client.healthy = False
    service = make_service(store, embedding_client)
    client = TestClient(create_app(service=service, settings=SearchSettings(_env_file=None)))

    body = client.get(f"{SEARCH_URL}/health").json()

    assert body["status"] == "degraded"
    assert body["store"] == "ok"
    assert body["embeddings"] == "down"


def test_search_health_reports_down_without_store(store):
    store.healthy = False
    client = build_client(store)

    assert client.get(f"{SEARCH_URL}/health").json()["status"] == "down"


def test_liveness():
    client = build_client(FakeIndexStore())
    assert client.get("/health").json()["status"] == "ok"


def test_uninitialized_service_returns_503():
    app = create_app(service=None, settings=SearchSettings(_env_file=None))
    # Without entering the lifespan no service is attached
    client = TestClient(app)
    assert client.get(SEARCH_URL, params={"q": "park"}).status_code == 503
