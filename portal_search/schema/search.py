from __future__ import annotations

from datetime import datetime
from typing import List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field

SourceType = Literal["post", "document", "page", "event"]


class ScoreWeights(BaseModel):
    """Per-signal weights the store applies when fusing scores."""

    model_config = ConfigDict(frozen=True)

    keyword: float = 0.4
    fuzzy: float = 0.2
    semantic: float = 0.4


class FallbackWeights(BaseModel):
    """Weights used by the store when no query vector is supplied."""

    model_config = ConfigDict(frozen=True)

    keyword: float = 0.6
    fuzzy: float = 0.4


class SearchResultRow(BaseModel):
    """One matched entity as returned by the index store."""

    model_config = ConfigDict(frozen=True)

    source_id: str
    title: str
    url: str
    category: Optional[str] = None
    published_at: Optional[datetime] = None
    headline: str = ""
    # Kept as a plain string so unknown types from the store do not fail validation.
    source_type: str
    combined_score: float
    keyword_score: float = 0.0
    fuzzy_score: float = 0.0
    semantic_score: float = 0.0


class SearchResultItem(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    id: str
    title: str
    url: str
    category: Optional[str] = None
    date: Optional[str] = None
    highlights: str = ""
    source_type: SourceType = Field(alias="sourceType")
    score: float


class GroupedResults(BaseModel):
    posts: List[SearchResultItem] = Field(default_factory=list)
    documents: List[SearchResultItem] = Field(default_factory=list)
    pages: List[SearchResultItem] = Field(default_factory=list)
    events: List[SearchResultItem] = Field(default_factory=list)


class SearchResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    results: GroupedResults = Field(default_factory=GroupedResults)
    total_count: int = Field(0, alias="totalCount")
    query: str = ""


class SearchErrorResponse(SearchResponse):
    error: str = "Search failed"
