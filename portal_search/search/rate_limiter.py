"""
In-process sliding window rate limiter.

Provides per-client admission control for the public search endpoint. State
lives in this process only; every instance keeps its own counters.
"""

import math
import threading
import time
from collections import deque
from dataclasses import dataclass
from typing import Callable, Deque, Dict

from ..utils.logging import get_logger

logger = get_logger(__name__)

RATE_LIMIT_CODE = "RATE_LIMIT"


@dataclass(frozen=True)
class RateLimitDecision:
    """Outcome of a single admission check."""

    allowed: bool
    reset_at: float
    remaining: int
    checked_at: float
    code: str = RATE_LIMIT_CODE

    @property
    def retry_after(self) -> int:
        """Whole seconds until the window frees a slot (at least 1)."""
        return max(1, math.ceil(self.reset_at - self.checked_at))


class SlidingWindowRateLimiter:
    """
    Sliding window rate limiter keyed by client.

    Keeps a log of admission timestamps per key. A request is admitted when
    fewer than ``limit`` admissions happened during the last ``window_seconds``.
    All mutations happen under a single lock; the critical section is O(limit)
    at worst and never awaits.
    """

    def __init__(self, clock: Callable[[], float] = time.monotonic):
        self._clock = clock
        self._lock = threading.Lock()
        self._logs: Dict[str, Deque[float]] = {}
        self._next_sweep_at = float("-inf")

    def allow(self, client_key: str, limit: int, window_seconds: float) -> RateLimitDecision:
        """
        Check and record a request for ``client_key``.

        Args:
            client_key: Client identifier (usually the remote IP address)
            limit: Maximum admissions per window
            window_seconds: Length of the rolling window

        Returns:
            RateLimitDecision describing whether the request was admitted
        """
        with self._lock:
            now = self._clock()
            self._evict_idle(now, window_seconds)
            log = self._logs.setdefault(client_key, deque())
            self._prune(log, now, window_seconds)

            if len(log) < limit:
                log.append(now)
                reset_at = log[0] + window_seconds
                return RateLimitDecision(
                    allowed=True, reset_at=reset_at, remaining=limit - len(log), checked_at=now
                )

            reset_at = log[0] + window_seconds

        logger.debug("rate_limited", client_key=client_key, limit=limit, reset_in=reset_at - now)
        return RateLimitDecision(allowed=False, reset_at=reset_at, remaining=0, checked_at=now)

    def reset(self, client_key: str) -> None:
        """Forget all recorded admissions for a client."""
        with self._lock:
            self._logs.pop(client_key, None)

    def purge(self, window_seconds: float) -> int:
        """
        Drop clients with no admissions inside the window.

        Returns:
            Number of client keys removed
        """
        with self._lock:
            return self._drop_idle(self._clock(), window_seconds)

    def _evict_idle(self, now: float, window_seconds: float) -> None:
        # At most one full sweep per window
        if now < self._next_sweep_at:
            return
        self._next_sweep_at = now + window_seconds
        removed = self._drop_idle(now, window_seconds)
        if removed:
            logger.debug("rate_limiter_swept", removed=removed, tracked=len(self._logs))

    def _drop_idle(self, now: float, window_seconds: float) -> int:
        stale = []
        for key, log in self._logs.items():
            self._prune(log, now, window_seconds)
            if not log:
                stale.append(key)
        for key in stale:
            del self._logs[key]
        return len(stale)

    def __len__(self) -> int:
        with self._lock:
            return len(self._logs)

    @staticmethod
    def _prune(log: Deque[float], now: float, window_seconds: float) -> None:
        while log and log[0] <= now - window_seconds:
            log.popleft()
