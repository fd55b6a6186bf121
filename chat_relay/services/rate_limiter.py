"""
Rate limiting for the chat endpoint.

Sliding-window log kept in process memory: for every client address we keep
the timestamps of its admitted requests within the last window. Protects the
OpenAI bill against a runaway or abusive widget.
"""

import time
from collections import deque
from threading import Lock
from typing import Callable, Deque, Dict, NamedTuple


class RateLimitResult(NamedTuple):
    """Result of a rate limit check."""

    allowed: bool
    remaining: int
    reset_after: float  # seconds until the oldest counted request leaves the window
    limit: int

    def headers(self) -> Dict[str, str]:
        """RateLimit-* response headers (plus Retry-After when denied)."""
        reset = str(max(0, int(self.reset_after + 0.999)))
        headers = {
            "RateLimit-Limit": str(self.limit),
            "RateLimit-Remaining": str(self.remaining),
            "RateLimit-Reset": reset,
        }
        if not self.allowed:
            headers["Retry-After"] = reset
        return headers


class SlidingWindowRateLimiter:
    """
    At most ``limit`` requests per ``window_seconds`` per key.

    Denied requests are not recorded, so a client hammering the endpoint
    regains access as soon as its earlier admitted requests age out.
    """

    def __init__(
        self,
        limit: int,
        window_seconds: float,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.limit = limit
        self.window_seconds = window_seconds
        self._clock = clock
        self._hits: Dict[str, Deque[float]] = {}
        self._lock = Lock()

    def check(self, key: str) -> RateLimitResult:
        """Count one request for ``key`` if it fits in the window."""
        now = self._clock()
        window_start = now - self.window_seconds

        with self._lock:
            hits = self._hits.setdefault(key, deque())
            while hits and hits[0] <= window_start:
                hits.popleft()

            allowed = len(hits) < self.limit
            if allowed:
                hits.append(now)

            remaining = max(0, self.limit - len(hits))
            reset_after = (hits[0] + self.window_seconds - now) if hits else self.window_seconds

            self._prune(window_start)

        return RateLimitResult(
            allowed=allowed,
            remaining=remaining,
            reset_after=reset_after,
            limit=self.limit,
        )

    def reset(self) -> None:
        with self._lock:
            self._hits.clear()

    def _prune(self, window_start: float) -> None:
        # Caller holds the lock. Drop clients whose newest hit is outside the window.
        stale = [key for key, hits in self._hits.items() if not hits or hits[-1] <= window_start]
        for key in stale:
            del self._hits[key]
