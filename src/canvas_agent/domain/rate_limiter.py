"""Sliding-window rate limiter keyed by provider.

Each provider keeps the monotonic timestamps of its admitted requests.
Timestamps older than the window are pruned on every access, so a window
never holds more than ``max_requests`` entries.
"""

from __future__ import annotations

import threading
import time
from collections import deque

import logfire

from .circuit_breaker import Clock
from .errors import RateLimitExceeded


class _Window:
    __slots__ = ("lock", "stamps")

    def __init__(self) -> None:
        self.lock = threading.Lock()
        self.stamps: deque[float] = deque()


class RateLimiter:
    """Admit at most ``max_requests`` per provider in any ``window_s`` seconds."""

    def __init__(self, max_requests: int = 60, window_s: float = 60.0, *, clock: Clock = time.monotonic):
        if max_requests < 1:
            raise ValueError("max_requests must be at least 1")
        self.max_requests = max_requests
        self.window_s = window_s
        self._clock = clock
        self._windows: dict[str, _Window] = {}
        self._registry_lock = threading.Lock()

    def _window(self, provider: str) -> _Window:
        window = self._windows.get(provider)
        if window is None:
            with self._registry_lock:
                window = self._windows.setdefault(provider, _Window())
        return window

    def _prune(self, window: _Window, now: float) -> None:
        cutoff = now - self.window_s
        while window.stamps and window.stamps[0] <= cutoff:
            window.stamps.popleft()

    def check(self, provider: str) -> bool:
        """Record a request and return True, or return False if the window is full."""
        window = self._window(provider)
        with window.lock:
            now = self._clock()
            self._prune(window, now)
            if len(window.stamps) >= self.max_requests:
                return False
            window.stamps.append(now)
            return True

    def acquire(self, provider: str) -> None:
        """Like ``check`` but raises RateLimitExceeded on rejection."""
        if not self.check(provider):
            retry_after = self.retry_after(provider)
            logfire.warn("Rate limit exceeded", provider=provider, retry_after_s=round(retry_after, 2))
            raise RateLimitExceeded(provider, retry_after)

    def count(self, provider: str) -> int:
        """Requests currently inside the window."""
        window = self._window(provider)
        with window.lock:
            self._prune(window, self._clock())
            return len(window.stamps)

    def retry_after(self, provider: str) -> float:
        """Seconds until the oldest request leaves a full window (0 if not full)."""
        window = self._window(provider)
        with window.lock:
            now = self._clock()
            self._prune(window, now)
            if len(window.stamps) < self.max_requests:
                return 0.0
            return max(0.0, window.stamps[0] + self.window_s - now)

    def reset(self, provider: str) -> None:
        window = self._window(provider)
        with window.lock:
            window.stamps.clear()


__all__ = ["RateLimiter"]
