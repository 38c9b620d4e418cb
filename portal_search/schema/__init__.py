from .common import ErrorDetail, ErrorResponse, HealthStatus
from .search import (
    FallbackWeights,
    GroupedResults,
    ScoreWeights,
    SearchErrorResponse,
    SearchResponse,
    SearchResultItem,
    SearchResultRow,
    SourceType,
)

__all__ = [
    # common
    "ErrorDetail",
    "ErrorResponse",
    "HealthStatus",
    # search
    "SourceType",
    "ScoreWeights",
    "FallbackWeights",
    "SearchResultRow",
    "SearchResultItem",
    "GroupedResults",
    "SearchResponse",
    "SearchErrorResponse",
]
