# result_portal/core/rate_limit.py
import threading
import time
from collections import deque
from typing import Deque, Dict, Tuple

from fastapi import HTTPException, Request, status

from result_portal.core.config import CONFIG
from result_portal.core.logger import get_logger

logger = get_logger("rate_limit")


class SlidingWindowLimiter:
    """
    In-process request counter per client key.
    Keeps the timestamps of hits inside the window. A hit over `limit`
    is refused and not recorded.
    """

    def __init__(self, limit: int, window_seconds: float, clock=time.monotonic):
        self.limit = limit
        self.window_seconds = window_seconds
        self._clock = clock
        self._lock = threading.Lock()
        self._hits: Dict[str, Deque[float]] = {}
        self._last_sweep = clock()

    def hit(self, key: str) -> Tuple[bool, Dict]:
        """
        Register one request for `key` and check against the limit.
        Returns (ok, usage_dict).
        """
        now = self._clock()
        with self._lock:
            if now - self._last_sweep >= self.window_seconds:
                self._sweep(now)

            hits = self._hits.get(key) or deque()
            self._prune(hits, now)

            ok = len(hits) < self.limit
            if ok:
                hits.append(now)

            if hits:
                self._hits[key] = hits
            else:
                self._hits.pop(key, None)

            usage = {
                "key": key,
                "count": len(hits),
                "limit": self.limit,
                "remaining": max(0, self.limit - len(hits)),
            }

        return ok, usage

    def _prune(self, hits: Deque[float], now: float) -> None:
        while hits and now - hits[0] >= self.window_seconds:
            hits.popleft()

    def _sweep(self, now: float) -> None:
        # Drop clients whose whole window has expired; caller holds the lock.
        for key in list(self._hits):
            hits = self._hits[key]
            self._prune(hits, now)
            if not hits:
                del self._hits[key]
        self._last_sweep = now

    def tracked_keys(self) -> int:
        with self._lock:
            return len(self._hits)

    def reset(self) -> None:
        with self._lock:
            self._hits.clear()
            self._last_sweep = self._clock()


general_limiter = SlidingWindowLimiter(
    CONFIG.RATE_LIMIT_MAX_REQUESTS, CONFIG.RATE_LIMIT_WINDOW_SECONDS
)
auth_limiter = SlidingWindowLimiter(
    CONFIG.AUTH_RATE_LIMIT_MAX_REQUESTS, CONFIG.RATE_LIMIT_WINDOW_SECONDS
)


def client_key(request: Request) -> str:
    return request.client.host if request.client else "unknown"


def login_rate_limit(request: Request) -> None:
    ok, usage = auth_limiter.hit(client_key(request))
    if not ok:
        logger.warning("Login rate limit hit for %s", usage["key"])
        raise HTTPException(
            status_code=status.HTTP_429_TOO_MANY_REQUESTS,
            detail="Too many login attempts. Please try again after 15 minutes.",
        )
