"""
Main search service implementing keyword + fuzzy + semantic hybrid search.
"""

import time
from dataclasses import dataclass
from typing import Optional, Union

from ..schema.search import FallbackWeights, GroupedResults, ScoreWeights, SearchErrorResponse, SearchResponse
from ..utils.logging import get_logger, log_search_event
from .config import SearchSettings
from .embedding_cache import EmbeddingCache
from .embedding_client import EmbeddingClient, EmbeddingHit, EmbeddingUnavailable
from .executor import MAX_TOTAL_RESULTS, HybridQueryExecutor
from .grouping import MAX_RESULTS_PER_TYPE, group_results, total_count
from .index_store import IndexStore, PostgresIndexStore
from .query import MIN_QUERY_LENGTH, is_searchable, normalize_query
from .rate_limiter import RateLimitDecision, SlidingWindowRateLimiter

logger = get_logger(__name__)

SEARCH_RATE_LIMIT = 30
SEARCH_RATE_WINDOW_SECONDS = 60.0


@dataclass(frozen=True)
class SearchCompleted:
    response: SearchResponse


@dataclass(frozen=True)
class SearchRateLimited:
    decision: RateLimitDecision


@dataclass(frozen=True)
class SearchFailed:
    response: SearchErrorResponse


SearchOutcome = Union[SearchCompleted, SearchRateLimited, SearchFailed]


def empty_response(query: str) -> SearchResponse:
    return SearchResponse(results=GroupedResults(), total_count=0, query=query)


class SearchService:
    """
    Hybrid search service.

    Collaborators are injected so every instance (and every test) owns its
    cache and limiter state.
    """

    def __init__(
        self,
        store: IndexStore,
        embedding_client: EmbeddingClient,
        rate_limiter: SlidingWindowRateLimiter,
        weights: Optional[ScoreWeights] = None,
        fallback_weights: Optional[FallbackWeights] = None,
        min_query_length: int = MIN_QUERY_LENGTH,
        max_results_per_type: int = MAX_RESULTS_PER_TYPE,
        max_total_results: int = MAX_TOTAL_RESULTS,
        rate_limit: int = SEARCH_RATE_LIMIT,
        rate_window_seconds: float = SEARCH_RATE_WINDOW_SECONDS,
    ):
        self.store = store
        self.embedding_client = embedding_client
        self.rate_limiter = rate_limiter
        self.executor = HybridQueryExecutor(store, fallback_weights)
        self.weights = weights or ScoreWeights()
        self.min_query_length = min_query_length
        self.max_results_per_type = max_results_per_type
        self.max_total_results = max_total_results
        self.rate_limit = rate_limit
        self.rate_window_seconds = rate_window_seconds

    @classmethod
    def from_settings(cls, settings: SearchSettings) -> "SearchService":
        """Build a service with a Postgres store and an HTTP embedding client."""
        cache = EmbeddingCache(
            max_entries=settings.embedding_cache_max_entries,
            ttl_seconds=settings.embedding_cache_ttl_seconds,
        )
        embedding_client = EmbeddingClient(
            cache=cache,
            base_url=settings.embedding_base_url,
            model=settings.embedding_model,
            timeout_seconds=settings.embedding_timeout_seconds,
            enabled=settings.enable_semantic_search,
        )
        store = PostgresIndexStore.from_url(
            settings.database_url,
            pool_size=settings.database_pool_size,
            command_timeout=settings.database_command_timeout_seconds,
        )
        return cls(
            store=store,
            embedding_client=embedding_client,
            rate_limiter=SlidingWindowRateLimiter(),
            weights=settings.weights,
            fallback_weights=settings.fallback_weights,
            min_query_length=settings.min_query_length,
            max_results_per_type=settings.max_results_per_type,
            max_total_results=settings.max_total_results,
            rate_limit=settings.rate_limit_requests,
            rate_window_seconds=settings.rate_limit_window_seconds,
        )

    async def search(self, raw_query: Optional[str], client_key: str) -> SearchOutcome:
        """
        Perform a hybrid search for one request.

        Args:
            raw_query: Query string as received
            client_key: Client identifier used for rate limiting

        Returns:
            SearchCompleted, SearchRateLimited or SearchFailed; never raises
        """
        decision = self.rate_limiter.allow(client_key, self.rate_limit, self.rate_window_seconds)
        if not decision.allowed:
            logger.warning("search_rate_limited", client_key=client_key, retry_after=decision.retry_after)
            return SearchRateLimited(decision)

        normalized = normalize_query(raw_query)
        if not is_searchable(normalized, self.min_query_length):
            return SearchCompleted(empty_response(normalized.display_query))

        started = time.monotonic()
        try:
            embedding = await self.embedding_client.resolve_embedding(normalized.display_query)
            vector = embedding.vector if isinstance(embedding, EmbeddingHit) else None

            rows = await self.executor.execute(
                normalized.display_query,
                normalized.prefix_expression,
                vector,
                self.weights,
                self.max_total_results,
            )
            grouped = group_results(rows, self.max_results_per_type)
        except Exception as e:
            log_search_event(
                logger,
                "search_failed",
                normalized.display_query,
                client_key=client_key,
                error_type=type(e).__name__,
                exc_info=True,
            )
            return SearchFailed(SearchErrorResponse(query=normalized.display_query))

        count = total_count(grouped)
        log_search_event(
            logger,
            "search_completed",
            normalized.display_query,
            semantic=vector is not None,
            degraded=isinstance(embedding, EmbeddingUnavailable),
            rows=len(rows),
            total_count=count,
            elapsed_ms=round((time.monotonic() - started) * 1000, 1),
        )
        return SearchCompleted(SearchResponse(results=grouped, total_count=count, query=normalized.display_query))

    async def health_check(self) -> dict:
        """Check store and embedding provider health."""
        store_healthy = await self.store.health_check()
        embeddings_healthy = await self.embedding_client.health_check()
        return {"store": store_healthy, "embeddings": embeddings_healthy}

    async def close(self) -> None:
        """Close the search service and clean up resources."""
        await self.embedding_client.close()
        await self.store.close()
