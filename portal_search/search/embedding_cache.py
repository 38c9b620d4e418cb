"""
Bounded in-memory cache for query embeddings.
"""

import threading
import time
from collections import OrderedDict
from dataclasses import dataclass
from typing import Callable, Optional, Sequence, Tuple

EMBEDDING_CACHE_MAX_ENTRIES = 200
EMBEDDING_CACHE_TTL_SECONDS = 10 * 60

Vector = Tuple[float, ...]


@dataclass(frozen=True)
class CacheEntry:
    vector: Vector
    expires_at: float


class EmbeddingCache:
    """
    Insertion-ordered (FIFO) cache with refresh-on-write.

    Writing an existing key moves it to the back of the queue; reading does
    not. When an insert pushes the size over ``max_entries`` the oldest
    inserted entry is evicted. This is not an LRU cache: a frequently read
    query can still be evicted, which only costs one extra embedding call.

    Keys are lower-cased so "Bukovec" and "bukovec" share a slot.
    """

    def __init__(
        self,
        max_entries: int = EMBEDDING_CACHE_MAX_ENTRIES,
        ttl_seconds: float = EMBEDDING_CACHE_TTL_SECONDS,
        clock: Callable[[], float] = time.monotonic,
    ):
        if max_entries < 1:
            raise ValueError("max_entries must be at least 1")
        self.max_entries = max_entries
        self.ttl_seconds = ttl_seconds
        self._clock = clock
        self._lock = threading.Lock()
        self._entries: "OrderedDict[str, CacheEntry]" = OrderedDict()

    @staticmethod
    def normalize_key(key: str) -> str:
        return key.lower()

    def get(self, key: str) -> Optional[Vector]:
        """Return the cached vector, or None if absent or expired. Expired entries are removed."""
        cache_key = self.normalize_key(key)
        with self._lock:
            entry = self._entries.get(cache_key)
            if entry is None:
                return None
            if self._clock() >= entry.expires_at:
                del self._entries[cache_key]
                return None
            return entry.vector

    def set(self, key: str, vector: Sequence[float]) -> None:
        cache_key = self.normalize_key(key)
        entry = CacheEntry(vector=tuple(vector), expires_at=self._clock() + self.ttl_seconds)
        with self._lock:
            self._entries.pop(cache_key, None)
            self._entries[cache_key] = entry
            while len(self._entries) > self.max_entries:
                self._entries.popitem(last=False)

    def purge_expired(self) -> int:
        """Remove every expired entry and return how many were dropped."""
        with self._lock:
            now = self._clock()
            expired = [key for key, entry in self._entries.items() if now >= entry.expires_at]
            for key in expired:
                del self._entries[key]
        return len(expired)

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()

    def __contains__(self, key: object) -> bool:
        # Presence check only; does not apply expiry.
        if not isinstance(key, str):
            return False
        with self._lock:
            return self.normalize_key(key) in self._entries

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)
