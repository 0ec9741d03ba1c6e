"""
Fixed-window rate limiting keyed by client address.

RateLimiter owns its state, so each app (and each test) gets its own
instance. The map is bounded: expired windows are swept once per window, and
when the map is still full the oldest entry is evicted.
"""

import logging
import math
import threading
import time
from dataclasses import dataclass
from typing import Callable, Optional

from fastapi import Request, Response
from fastapi.responses import JSONResponse
from starlette.middleware.base import BaseHTTPMiddleware

logger = logging.getLogger(__name__)


@dataclass
class _Window:
    count: int
    reset_at: float


class RateLimiter:
    """
    Allow at most ``max_requests`` per ``window_seconds`` for each key.

    Args:
        max_requests: Requests allowed per window
        window_seconds: Window length
        max_entries: Upper bound on tracked keys
        clock: Monotonic time source, injectable for tests
    """

    def __init__(
        self,
        max_requests: int = 100,
        window_seconds: float = 60.0,
        max_entries: int = 10000,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.max_requests = max_requests
        self.window_seconds = window_seconds
        self.max_entries = max_entries
        self._clock = clock
        self._entries: dict[str, _Window] = {}
        self._lock = threading.Lock()
        self._last_sweep = clock()

    def __len__(self) -> int:
        return len(self._entries)

    def hit(self, key: str) -> tuple[bool, Optional[int]]:
        """
        Count one request for ``key``.

        Returns: (allowed, retry_after_seconds or None)
        """
        now = self._clock()
        with self._lock:
            if now - self._last_sweep >= self.window_seconds:
                self._sweep(now)

            window = self._entries.get(key)
            if window is None or now >= window.reset_at:
                self._entries.pop(key, None)
                if len(self._entries) >= self.max_entries:
                    self._sweep(now)
                    if len(self._entries) >= self.max_entries:
                        oldest = next(iter(self._entries))
                        del self._entries[oldest]
                self._entries[key] = _Window(count=1, reset_at=now + self.window_seconds)
                return True, None

            window.count += 1
            if window.count > self.max_requests:
                retry_after = max(1, math.ceil(window.reset_at - now))
                return False, retry_after
            return True, None

    def sweep(self) -> int:
        """Drop expired windows. Returns how many were removed."""
        with self._lock:
            return self._sweep(self._clock())

    def reset(self) -> None:
        with self._lock:
            self._entries.clear()
            self._last_sweep = self._clock()

    def _sweep(self, now: float) -> int:
        expired = [key for key, window in self._entries.items() if now >= window.reset_at]
        for key in expired:
            del self._entries[key]
        self._last_sweep = now
        if expired:
            logger.debug(f"Rate limiter swept {len(expired)} expired entries")
        return len(expired)


class RateLimitMiddleware(BaseHTTPMiddleware):
    """
    Reject requests over the limit with 429 and a Retry-After header.
    Paths starting with any of ``exempt_prefixes`` are never counted.
    """

    def __init__(self, app, limiter: RateLimiter, exempt_prefixes: tuple[str, ...] = ()):
        super().__init__(app)
        self.limiter = limiter
        self.exempt_prefixes = exempt_prefixes

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        if request.url.path.startswith(self.exempt_prefixes):
            return await call_next(request)

        client_ip = request.client.host if request.client else "unknown"
        allowed, retry_after = self.limiter.hit(client_ip)
        if not allowed:
            logger.warning(f"Rate limit exceeded for {client_ip}")
            return JSONResponse(
                status_code=429,
                content={
                    "success": False,
                    "error": "Too many requests",
                    "message": "Rate limit exceeded. Please try again later.",
                },
                headers={"Retry-After": str(retry_after)},
            )

        return await call_next(request)
