"""Shared fixtures and fakes for the search tests."""

import asyncio
from datetime import datetime, timezone
from typing import List, Optional, Sequence

import pytest

from portal_search.schema.search import SearchResultRow
from portal_search.search.embedding_cache import EmbeddingCache, Vector
from portal_search.search.embedding_client import EmbeddingClient
from portal_search.search.index_store import HybridSearchRequest
from portal_search.search.rate_limiter import SlidingWindowRateLimiter
from portal_search.search.search_service import SearchService


class FakeClock:
    """Manually advanced monotonic clock."""

    def __init__(self, start: float = 1000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class FakeIndexStore:
    """In-memory stand-in for the index store that records every request."""

    def __init__(self, rows: Optional[List[SearchResultRow]] = None, error: Optional[Exception] = None):
        self.rows = rows or []
        self.error = error
        self.requests: List[HybridSearchRequest] = []
        self.healthy = True
        self.closed = False

    async def hybrid_search(self, request: HybridSearchRequest) -> List[SearchResultRow]:
        self.requests.append(request)
        if self.error is not None:
            raise self.error
        return list(self.rows)

    async def health_check(self) -> bool:
        return self.healthy

    async def close(self) -> None:
        self.closed = True


class StubEmbeddingClient(EmbeddingClient):
    """Embedding client whose provider call is scripted instead of going over HTTP."""

    def __init__(
        self,
        cache: EmbeddingCache,
        vector: Sequence[float] = (0.1, 0.2, 0.3),
        delay: float = 0.0,
        error: Optional[Exception] = None,
        timeout_seconds: float = 2.0,
        enabled: bool = True,
    ):
        super().__init__(
            cache, base_url="http://embeddings.test", timeout_seconds=timeout_seconds, enabled=enabled
        )
        self.vector = tuple(vector)
        self.delay = delay
        self.error = error
        self.calls: List[str] = []
        self.healthy = True

    async def _request_embedding(self, text: str) -> Vector:
        self.calls.append(text)
        if self.delay:
            await asyncio.sleep(self.delay)
        if self.error is not None:
            raise self.error
        return self.vector

    async def health_check(self) -> bool:
        return self.healthy


def make_row(source_type: str, index: int = 0, score: float = 0.5, published_at: Optional[datetime] = None):
    return SearchResultRow(
        source_id=f"{source_type}-{index}",
        title=f"{source_type.title()} {index}",
        url=f"/{source_type}s/{index}",
        category=None,
        published_at=published_at,
        headline=f"<mark>{source_type}</mark> {index}",
        source_type=source_type,
        combined_score=score,
    )


def make_service(
    store: FakeIndexStore,
    embedding_client: EmbeddingClient,
    rate_limiter: Optional[SlidingWindowRateLimiter] = None,
    **kwargs,
) -> SearchService:
    return SearchService(
        store=store,
        embedding_client=embedding_client,
        rate_limiter=rate_limiter or SlidingWindowRateLimiter(),
        **kwargs,
    )


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def cache(clock: FakeClock) -> EmbeddingCache:
    return EmbeddingCache(clock=clock)


@pytest.fixture
def store() -> FakeIndexStore:
    return FakeIndexStore()


@pytest.fixture
def embedding_client(cache: EmbeddingCache) -> StubEmbeddingClient:
    return StubEmbeddingClient(cache)


@pytest.fixture
def published() -> datetime:
    return datetime(2024, 5, 17, 22, 30, tzinfo=timezone.utc)
