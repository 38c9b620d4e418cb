"""
Query normalization for hybrid search.
"""

import re
from dataclasses import dataclass
from typing import Optional

MIN_QUERY_LENGTH = 2
MIN_TOKEN_LENGTH = 2

# Characters with meaning in the to_tsquery syntax
_TSQUERY_SPECIAL_CHARS = re.compile(r"[&|!():*<>]")


@dataclass(frozen=True)
class NormalizedQuery:
    display_query: str
    prefix_expression: str


def build_prefix_expression(query: str) -> str:
    """
    Build a prefix-match token expression for keyword search.

    ``"Bukovec Park!"`` becomes ``"bukovec:* & park:*"``. Returns an empty
    string when no token of at least two characters survives.
    """
    cleaned = _TSQUERY_SPECIAL_CHARS.sub(" ", query.lower())
    tokens = [token for token in cleaned.split() if len(token) >= MIN_TOKEN_LENGTH]
    return " & ".join(f"{token}:*" for token in tokens)


def normalize_query(raw: Optional[str]) -> NormalizedQuery:
    """Turn a raw free-text query into its display and prefix forms."""
    display_query = (raw or "").strip()
    return NormalizedQuery(display_query=display_query, prefix_expression=build_prefix_expression(display_query))


def is_searchable(query: NormalizedQuery, min_length: int = MIN_QUERY_LENGTH) -> bool:
    """Queries below the minimum length never reach the store or the embedding provider."""
    return len(query.display_query) >= min_length
