import logging
import threading
import time
import weakref
from collections import deque

from fastapi import HTTPException, Request, status

from .config import settings

logger = logging.getLogger(__name__)

_limiters: "weakref.WeakSet[RateLimiter]" = weakref.WeakSet()


class RateLimiter:
    """Sliding-window request counter per client ip, usable as a FastAPI dependency."""

    def __init__(self, max_requests: int, window_seconds: float, scope: str, message: str):
        self.max_requests = max_requests
        self.window_seconds = window_seconds
        self.scope = scope
        self.message = message
        self._buckets: dict[str, deque] = {}
        self._last_sweep: float | None = None
        self._lock = threading.Lock()
        _limiters.add(self)

    def hit(self, key: str, now: float | None = None) -> bool:
        """Record a request for ``key``. False when the window is already full."""
        now = time.monotonic() if now is None else now
        cutoff = now - self.window_seconds
        with self._lock:
            self._sweep(now, cutoff)
            bucket = self._buckets.setdefault(key, deque())
            while bucket and bucket[0] <= cutoff:
                bucket.popleft()
            if len(bucket) >= self.max_requests:
                return False
            bucket.append(now)
            return True

    def _sweep(self, now: float, cutoff: float) -> None:
        # at most once per window; drops clients with no hits left in it
        if self._last_sweep is not None and now - self._last_sweep < self.window_seconds:
            return
        self._last_sweep = now
        for key in [k for k, b in self._buckets.items() if not b or b[-1] <= cutoff]:
            del self._buckets[key]

    def tracked_clients(self) -> int:
        with self._lock:
            return len(self._buckets)

    def reset(self) -> None:
        with self._lock:
            self._buckets.clear()
            self._last_sweep = None

    def __call__(self, request: Request) -> None:
        client_ip = request.client.host if request.client else "unknown"
        if not self.hit(client_ip):
            logger.warning("rate limit %s exceeded by %s (%d per %ds)", self.scope, client_ip, self.max_requests, self.window_seconds)
            raise HTTPException(
                status_code=status.HTTP_429_TOO_MANY_REQUESTS,
                detail=self.message,
                headers={"Retry-After": str(int(self.window_seconds))},
            )


def reset_all() -> None:
    for limiter in _limiters:
        limiter.reset()


api_limiter = RateLimiter(
    settings.RATE_LIMIT_MAX,
    settings.RATE_LIMIT_WINDOW_MIN * 60,
    scope="api",
    message="Too many requests from this IP, please try again later.",
)
login_limiter = RateLimiter(
    settings.LOGIN_RATE_LIMIT_MAX,
    15 * 60,
    scope="login",
    message="Too many login attempts. Please try again in 15 minutes.",
)
register_limiter = RateLimiter(
    settings.REGISTER_RATE_LIMIT_MAX,
    60 * 60,
    scope="register",
    message="Too many registration attempts. Please try again after an hour.",
)
