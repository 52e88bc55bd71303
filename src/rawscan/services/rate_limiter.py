"""Sliding-window admission control for provider calls."""

import threading
import time
from collections import deque
from collections.abc import Callable
from dataclasses import dataclass, field

from rawscan.config import RateLimit


@dataclass
class SlidingWindowRateLimiter:
    """One sliding window of admission timestamps per provider key.

    A denial is final for the attempt: callers skip the provider instead of
    waiting for capacity.
    """

    default_limit: RateLimit = field(default_factory=RateLimit)
    overrides: dict[str, RateLimit] = field(default_factory=dict)
    clock: Callable[[], float] = time.monotonic
    _windows: dict[str, deque[float]] = field(default_factory=dict, init=False)
    _lock: threading.Lock = field(default_factory=threading.Lock, init=False)

    def limit_for(self, key: str) -> RateLimit:
        """Return the quota that applies to a provider key."""
        return self.overrides.get(key, self.default_limit)

    def try_acquire(self, key: str) -> bool:
        """Record an admission for ``key`` if its window has room."""
        limit = self.limit_for(key)
        now = self.clock()
        with self._lock:
            window = self._windows.setdefault(key, deque())
            _prune(window, now - limit.window_seconds)
            if len(window) >= limit.max_requests:
                return False
            window.append(now)
            return True

    def usage(self) -> dict[str, int]:
        """Return the number of admissions currently inside each window."""
        now = self.clock()
        with self._lock:
            for key, window in self._windows.items():
                _prune(window, now - self.limit_for(key).window_seconds)
            return {key: len(window) for key, window in self._windows.items()}


def _prune(window: deque[float], cutoff: float) -> None:
    while window and window[0] <= cutoff:
        window.popleft()
