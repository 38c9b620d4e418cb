"""
Index store boundary for hybrid search.

The store owns scoring: it computes the keyword, fuzzy and semantic signals,
fuses them with the supplied weights and returns rows ordered by
``combined_score`` descending.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Protocol

from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncEngine, create_async_engine

from ..schema.search import FallbackWeights, ScoreWeights, SearchResultRow
from ..utils.logging import get_logger

logger = get_logger(__name__)


@dataclass(frozen=True)
class HybridSearchRequest:
    """Everything the store needs for one hybrid query."""

    query: str
    prefix_expression: str
    weights: ScoreWeights
    max_results: int
    vector_literal: Optional[str] = None
    fallback_weights: FallbackWeights = field(default_factory=FallbackWeights)

    @property
    def has_vector(self) -> bool:
        return bool(self.vector_literal)


class IndexStore(Protocol):
    async def hybrid_search(self, request: HybridSearchRequest) -> List[SearchResultRow]: ...

    async def health_check(self) -> bool: ...

    async def close(self) -> None: ...


_KEYWORD_SCORE_SQL = """
            CASE
                WHEN :prefix_query = '' THEN 0
                WHEN search_vector @@ to_tsquery('simple', :prefix_query)
                THEN ts_rank(search_vector, to_tsquery('simple', :prefix_query))
                ELSE 0
            END AS keyword_score,
            GREATEST(
                similarity(title, :query),
                similarity(LEFT(content_text, 1000), :query)
            ) AS fuzzy_score,"""

_SELECT_ROWS_SQL = """
        SELECT
            source_type,
            source_id,
            title,
            url,
            category,
            published_at,
            ts_headline(
                'simple',
                content_text,
                to_tsquery('simple', :prefix_query),
                'MaxWords=25, MinWords=15, StartSel=<mark>, StopSel=</mark>'
            ) AS headline,
            keyword_score,
            fuzzy_score,
            semantic_score,"""

HYBRID_SEARCH_SQL = f"""
    WITH scores AS (
        SELECT
            source_type,
            source_id,
            title,
            url,
            category,
            published_at,
            content_text,{_KEYWORD_SCORE_SQL}
            CASE
                WHEN embedding IS NOT NULL
                THEN 1 - (embedding <=> CAST(:vector AS vector))
                ELSE 0
            END AS semantic_score
        FROM search_index
    ){_SELECT_ROWS_SQL}
            (keyword_score * :keyword_weight
             + fuzzy_score * :fuzzy_weight
             + semantic_score * :semantic_weight) AS combined_score
    FROM scores
    WHERE keyword_score > 0 OR fuzzy_score > 0.2 OR semantic_score > 0.5
    ORDER BY combined_score DESC
    LIMIT :max_results
"""

KEYWORD_FUZZY_SEARCH_SQL = f"""
    WITH scores AS (
        SELECT
            source_type,
            source_id,
            title,
            url,
            category,
            published_at,
            content_text,{_KEYWORD_SCORE_SQL}
            0::float AS semantic_score
        FROM search_index
    ){_SELECT_ROWS_SQL}
            (keyword_score * :keyword_weight + fuzzy_score * :fuzzy_weight) AS combined_score
    FROM scores
    WHERE keyword_score > 0 OR fuzzy_score > 0.2
    ORDER BY combined_score DESC
    LIMIT :max_results
"""


def build_query_params(request: HybridSearchRequest) -> Dict[str, Any]:
    """Bind parameters for the statement matching the request."""
    params: Dict[str, Any] = {
        "query": request.query,
        "prefix_query": request.prefix_expression,
        "max_results": request.max_results,
    }
    if request.has_vector:
        params.update(
            vector=request.vector_literal,
            keyword_weight=request.weights.keyword,
            fuzzy_weight=request.weights.fuzzy,
            semantic_weight=request.weights.semantic,
        )
    else:
        params.update(
            keyword_weight=request.fallback_weights.keyword,
            fuzzy_weight=request.fallback_weights.fuzzy,
        )
    return params


class PostgresIndexStore:
    """
    Hybrid search over the ``search_index`` table.

    Requires the ``pg_trgm`` and ``vector`` extensions. The table is
    populated by the CMS indexer, never by this service.
    """

    def __init__(self, engine: AsyncEngine):
        self.engine = engine

    @classmethod
    def from_url(cls, database_url: str, pool_size: int = 5, command_timeout: float = 10.0) -> "PostgresIndexStore":
        engine = create_async_engine(
            database_url,
            echo=False,
            pool_pre_ping=True,
            pool_size=pool_size,
            connect_args={"command_timeout": command_timeout},
        )
        return cls(engine)

    async def hybrid_search(self, request: HybridSearchRequest) -> List[SearchResultRow]:
        statement = text(HYBRID_SEARCH_SQL if request.has_vector else KEYWORD_FUZZY_SEARCH_SQL)
        params = build_query_params(request)

        async with self.engine.connect() as conn:
            result = await conn.execute(statement, params)
            rows = result.mappings().all()

        return [
            SearchResultRow(
                source_id=str(row["source_id"]),
                title=row["title"],
                url=row["url"],
                category=row["category"],
                published_at=row["published_at"],
                headline=row["headline"] or "",
                source_type=row["source_type"],
                combined_score=float(row["combined_score"]),
                keyword_score=float(row["keyword_score"] or 0),
                fuzzy_score=float(row["fuzzy_score"] or 0),
                semantic_score=float(row["semantic_score"] or 0),
            )
            for row in rows
        ]

    async def health_check(self) -> bool:
        """Check if the database is reachable."""
        try:
            async with self.engine.connect() as conn:
                await conn.execute(text("SELECT 1"))
            return True
        except Exception as e:
            logger.error("index_store_health_check_failed", error=str(e))
            return False

    async def close(self) -> None:
        await self.engine.dispose()
