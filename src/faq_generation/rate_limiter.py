"""Per-client request budget.

The app is handed a limiter instance (see ``main.create_app``); storage
belongs to that instance, so tests and multi-app processes never share
counters.
"""

from __future__ import annotations

import threading
import time
from dataclasses import dataclass
from typing import Callable, Dict, Optional, Protocol


class RateLimiter(Protocol):
    """Rate limiter contract: ``check`` consumes one unit and reports whether it was allowed."""

    def check(self, key: str) -> bool:
        ...


@dataclass
class _Window:
    reset_at: float
    count: int


class InMemoryRateLimiter:
    """Fixed-window counter per key (default: hourly).

    Expired windows are swept at most once per window length, so keys that
    never return do not accumulate.
    """

    def __init__(
        self,
        limit: int,
        window_seconds: float = 3600.0,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.limit = limit
        self.window_seconds = window_seconds
        self._clock = clock
        self._windows: Dict[str, _Window] = {}
        self._lock = threading.Lock()
        self._next_sweep_at = clock() + window_seconds

    def _sweep(self, now: float) -> None:
        expired = [key for key, window in self._windows.items() if now > window.reset_at]
        for key in expired:
            del self._windows[key]
        self._next_sweep_at = now + self.window_seconds

    def check(self, key: str) -> bool:
        now = self._clock()
        with self._lock:
            if now >= self._next_sweep_at:
                self._sweep(now)
            window = self._windows.get(key)
            if window is None or now > window.reset_at:
                window = _Window(reset_at=now + self.window_seconds, count=0)
                self._windows[key] = window
            window.count += 1
            return window.count <= self.limit


class UnlimitedRateLimiter:
    """Allows every request. Useful for local runs and tests."""

    def check(self, key: str) -> bool:
        return True


def client_key(forwarded_for: Optional[str], peer_host: Optional[str]) -> str:
    """First X-Forwarded-For entry, else the socket peer, else ``unknown``."""
    first = (forwarded_for or "").split(",")[0].strip()
    return first or peer_host or "unknown"
