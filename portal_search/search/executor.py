"""
Hybrid query execution against the index store.
"""

from typing import List, Optional, Sequence

from ..schema.search import FallbackWeights, ScoreWeights, SearchResultRow
from ..utils.logging import get_logger
from .exceptions import IndexStoreException
from .index_store import HybridSearchRequest, IndexStore

logger = get_logger(__name__)

MAX_TOTAL_RESULTS = 20


def serialize_vector(vector: Sequence[float]) -> str:
    """Render a vector in pgvector's text form, e.g. ``[0.1,0.2]``."""
    return "[" + ",".join(repr(float(value)) for value in vector) + "]"


class HybridQueryExecutor:
    """Issues exactly one hybrid query per search. Rows keep the store's ordering."""

    def __init__(self, store: IndexStore, fallback_weights: Optional[FallbackWeights] = None):
        self.store = store
        self.fallback_weights = fallback_weights or FallbackWeights()

    async def execute(
        self,
        display_query: str,
        prefix_expression: str,
        vector: Optional[Sequence[float]],
        weights: ScoreWeights,
        max_results: int = MAX_TOTAL_RESULTS,
    ) -> List[SearchResultRow]:
        """
        Run the hybrid query.

        Raises:
            IndexStoreException: If the store call fails
        """
        request = HybridSearchRequest(
            query=display_query,
            prefix_expression=prefix_expression,
            weights=weights,
            max_results=max_results,
            vector_literal=serialize_vector(vector) if vector else None,
            fallback_weights=self.fallback_weights,
        )

        try:
            rows = await self.store.hybrid_search(request)
        except IndexStoreException:
            raise
        except Exception as e:
            raise IndexStoreException(f"Hybrid search failed: {e}", query=display_query) from e

        logger.debug("hybrid_search_executed", query=display_query, semantic=request.has_vector, rows=len(rows))
        return list(rows)
