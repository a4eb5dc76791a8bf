"""
Rate Limiting
=====================================
In-memory fixed-window limiter keyed by client IP, exposed as FastAPI
dependencies for the login and refresh endpoints.

Features:
- Independent windows per endpoint
- Thread-safe counters
- 429 with Retry-After when the window is exhausted
- Expired windows are swept on every hit and the number of tracked keys is
  capped (oldest window evicted first)
- reset() hook so tests start from an empty state
"""

import threading
import time
import logging
from collections import OrderedDict
from dataclasses import dataclass
from typing import Callable
from fastapi import HTTPException, Request, status
from app.core.config import LOGIN_RATE_LIMIT, REFRESH_RATE_LIMIT

logger = logging.getLogger(__name__)

@dataclass
class Window:
    started_at: float
    count: int

class RateLimiter:
    def __init__(
        self,
        name: str,
        max_attempts: int,
        window_seconds: int,
        message: str,
        *,
        max_keys: int = 10_000,
        clock: Callable[[], float] = time.monotonic,
    ):
        if max_attempts <= 0 or window_seconds <= 0 or max_keys <= 0:
            raise ValueError("max_attempts, window_seconds and max_keys must be > 0")
        self.name = name
        self.max_attempts = max_attempts
        self.window_seconds = window_seconds
        self.message = message
        self.max_keys = max_keys
        self._clock = clock
        # Ordered by window start, oldest first
        self._windows: "OrderedDict[str, Window]" = OrderedDict()
        self._lock = threading.Lock()

    def tracked_keys(self) -> int:
        with self._lock:
            return len(self._windows)

    def _sweep(self, now: float) -> None:
        while self._windows:
            key, window = next(iter(self._windows.items()))
            if now - window.started_at < self.window_seconds:
                break
            del self._windows[key]

    def hit(self, key: str) -> tuple[bool, int]:
        """Count one attempt for ``key``; returns (allowed, retry_after_seconds)."""
        with self._lock:
            now = self._clock()
            self._sweep(now)

            window = self._windows.get(key)
            if window is None:
                if len(self._windows) >= self.max_keys:
                    self._windows.popitem(last=False)
                window = Window(started_at=now, count=0)
                self._windows[key] = window

            if window.count >= self.max_attempts:
                retry_after = int(self.window_seconds - (now - window.started_at)) + 1
                return False, retry_after

            window.count += 1
            return True, 0

    def reset(self) -> None:
        with self._lock:
            self._windows.clear()

    def __call__(self, request: Request) -> None:
        key = request.client.host if request.client else "unknown"
        allowed, retry_after = self.hit(key)
        if not allowed:
            logger.warning(f"Rate limit '{self.name}' exceeded for {key}")
            raise HTTPException(
                status_code=status.HTTP_429_TOO_MANY_REQUESTS,
                detail=self.message,
                headers={"Retry-After": str(retry_after)},
            )

login_limiter = RateLimiter(
    "login", *LOGIN_RATE_LIMIT,
    message="Too many login attempts, please try again after 15 minutes",
)
refresh_limiter = RateLimiter(
    "refresh", *REFRESH_RATE_LIMIT,
    message="Too many refresh requests, please try again after 15 minutes",
)

def reset_rate_limiters() -> None:
    login_limiter.reset()
    refresh_limiter.reset()
