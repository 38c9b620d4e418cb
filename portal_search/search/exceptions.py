"""
Custom exceptions for the search service.
"""


from typing import Optional


class SearchException(Exception):
    """Base exception for all search-related errors."""

    pass


class IndexStoreException(SearchException):
    """The index store failed to answer a hybrid query."""

    def __init__(self, message: str, query: Optional[str] = None):
        super().__init__(message)
        self.query = query


class EmbeddingProviderException(SearchException):
    """Embedding provider errors. Never escapes the embedding client."""

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.status_code = status_code
