"""
Embedding client for semantic query enrichment.

Talks to an Ollama-compatible embedding provider. Every failure degrades to
an ``EmbeddingUnavailable`` result; nothing here raises into the caller.
"""

import asyncio
import enum
import math
import time
from dataclasses import dataclass
from typing import Any, List, Optional, Union

import aiohttp

from ..utils.logging import get_logger
from .embedding_cache import EmbeddingCache, Vector
from .exceptions import EmbeddingProviderException

logger = get_logger(__name__)

EMBEDDING_TIMEOUT_SECONDS = 2.0
DEFAULT_EMBEDDING_MODEL = "nomic-embed-text"


class UnavailableReason(str, enum.Enum):
    TIMEOUT = "timeout"
    HTTP_STATUS = "http_status"
    MALFORMED_PAYLOAD = "malformed_payload"
    NETWORK_ERROR = "network_error"
    UNEXPECTED_ERROR = "unexpected_error"


@dataclass(frozen=True)
class EmbeddingHit:
    vector: Vector
    from_cache: bool = False


@dataclass(frozen=True)
class EmbeddingMiss:
    """No embedding was requested (semantic search disabled or nothing to embed)."""


@dataclass(frozen=True)
class EmbeddingUnavailable:
    reason: UnavailableReason
    detail: str = ""


EmbeddingResult = Union[EmbeddingHit, EmbeddingMiss, EmbeddingUnavailable]


def parse_embedding(payload: Any) -> Vector:
    """
    Extract the embedding vector from a provider response body.

    Raises:
        EmbeddingProviderException: If the payload is not a non-empty list of finite numbers
    """
    if not isinstance(payload, dict):
        raise EmbeddingProviderException(f"Unexpected response type: {type(payload).__name__}")

    embedding = payload.get("embedding")
    if not isinstance(embedding, list) or not embedding:
        raise EmbeddingProviderException("Response has no embedding")

    vector: List[float] = []
    for value in embedding:
        if isinstance(value, bool) or not isinstance(value, (int, float)):
            raise EmbeddingProviderException("Embedding contains non-numeric values")
        try:
            number = float(value)
        except OverflowError:
            number = math.inf
        if not math.isfinite(number):
            raise EmbeddingProviderException("Embedding contains non-finite values")
        vector.append(number)
    return tuple(vector)


class EmbeddingClient:
    """
    Resolves query embeddings through the cache and the external provider.

    A cache miss triggers exactly one provider call, bounded by
    ``timeout_seconds``. The in-flight request is cancelled at the deadline so
    the outbound connection is released.
    """

    def __init__(
        self,
        cache: EmbeddingCache,
        base_url: Optional[str],
        model: str = DEFAULT_EMBEDDING_MODEL,
        timeout_seconds: float = EMBEDDING_TIMEOUT_SECONDS,
        enabled: bool = True,
    ):
        self.cache = cache
        self.base_url = (base_url or "").rstrip("/")
        self.model = model
        self.timeout_seconds = timeout_seconds
        self.enabled = enabled and bool(self.base_url)
        self.session: Optional[aiohttp.ClientSession] = None

    async def _get_session(self) -> aiohttp.ClientSession:
        """Get or create HTTP session."""
        if self.session is None or self.session.closed:
            timeout = aiohttp.ClientTimeout(total=self.timeout_seconds)
            self.session = aiohttp.ClientSession(timeout=timeout)
        return self.session

    async def close(self) -> None:
        """Close the HTTP session."""
        if self.session and not self.session.closed:
            await self.session.close()

    async def resolve_embedding(self, display_query: str) -> EmbeddingResult:
        """
        Resolve an embedding for the query.

        Args:
            display_query: Trimmed user query

        Returns:
            EmbeddingHit on cache hit or successful fetch, EmbeddingMiss when
            semantic search is off, EmbeddingUnavailable on any failure
        """
        if not self.enabled or not display_query:
            return EmbeddingMiss()

        cached = self.cache.get(display_query)
        if cached is not None:
            return EmbeddingHit(vector=cached, from_cache=True)

        started = time.monotonic()
        try:
            vector = await asyncio.wait_for(self._request_embedding(display_query), timeout=self.timeout_seconds)
        except asyncio.TimeoutError:
            logger.warning(
                "embedding_timeout",
                query=display_query,
                timeout_seconds=self.timeout_seconds,
            )
            return EmbeddingUnavailable(UnavailableReason.TIMEOUT, f"no response within {self.timeout_seconds}s")
        except EmbeddingProviderException as e:
            reason = UnavailableReason.HTTP_STATUS if e.status_code is not None else UnavailableReason.MALFORMED_PAYLOAD
            logger.warning("embedding_unavailable", query=display_query, reason=reason.value, error=str(e))
            return EmbeddingUnavailable(reason, str(e))
        except aiohttp.ClientError as e:
            logger.warning("embedding_unavailable", query=display_query, reason="network_error", error=str(e))
            return EmbeddingUnavailable(UnavailableReason.NETWORK_ERROR, str(e))
        except Exception as e:
            logger.error("embedding_failed", query=display_query, error=str(e), exc_info=True)
            return EmbeddingUnavailable(UnavailableReason.UNEXPECTED_ERROR, str(e))

        self.cache.set(display_query, vector)
        logger.debug(
            "embedding_fetched",
            query=display_query,
            dimension=len(vector),
            elapsed_ms=round((time.monotonic() - started) * 1000, 1),
        )
        return EmbeddingHit(vector=vector, from_cache=False)

    async def _request_embedding(self, text: str) -> Vector:
        """Issue the provider call. Raises on any non-success outcome."""
        session = await self._get_session()
        url = f"{self.base_url}/api/embeddings"

        async with session.post(url, json={"model": self.model, "prompt": text}) as response:
            if response.status < 200 or response.status >= 300:
                error_text = await response.text()
                raise EmbeddingProviderException(
                    f"Embedding provider returned {response.status}: {error_text[:200]}",
                    status_code=response.status,
                )
            try:
                payload = await response.json(content_type=None)
            except ValueError as e:
                raise EmbeddingProviderException(f"Invalid JSON from embedding provider: {e}")

        return parse_embedding(payload)

    async def health_check(self) -> bool:
        """Check if the embedding provider is reachable."""
        if not self.enabled:
            return False
        try:
            session = await self._get_session()
            async with session.get(f"{self.base_url}/api/tags") as response:
                return response.status == 200
        except (aiohttp.ClientError, asyncio.TimeoutError) as e:
            logger.warning("embedding_health_check_failed", error=str(e))
            return False
