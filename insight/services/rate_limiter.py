"""
RateLimiter - Per-caller fixed-window limiter for the remote-inference path.

Windows live in process memory only; each process enforces its own limits.
"""

import time
from dataclasses import dataclass
from typing import Any, Callable

from loguru import logger


@dataclass
class RateLimitWindow:
    """Calls counted for one caller inside the current window."""

    count: int
    reset_at: float


class RateLimiter:
    """
    Fixed-window rate limiter keyed by caller id.

    Usage:
        limiter = RateLimiter(window=60.0, max_calls=2)

        if not limiter.allow(caller_id):
            return fallback()
    """

    def __init__(
        self,
        name: str = "default",
        window: float = 60.0,
        max_calls: int = 2,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.name = name
        self.window = window
        self.max_calls = max_calls
        self._clock = clock
        self._windows: dict[str, RateLimitWindow] = {}
        self._denied = 0

    def allow(self, caller_id: str) -> bool:
        """Count a call for ``caller_id`` and report whether it is within the limit."""
        now = self._clock()
        current = self._windows.get(caller_id)

        if current is None or now > current.reset_at:
            self._windows[caller_id] = RateLimitWindow(
                count=1, reset_at=now + self.window
            )
            return True

        if current.count >= self.max_calls:
            self._denied += 1
            return False

        current.count += 1
        return True

    def sweep(self) -> int:
        """Delete expired windows. Returns the number removed."""
        now = self._clock()
        expired = [
            caller_id
            for caller_id, window in self._windows.items()
            if now > window.reset_at
        ]
        for caller_id in expired:
            del self._windows[caller_id]

        if expired:
            logger.debug(
                f"[RateLimiter:{self.name}] swept {len(expired)} expired windows"
            )
        return len(expired)

    def __len__(self) -> int:
        return len(self._windows)

    def get_stats(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "window_seconds": self.window,
            "max_calls": self.max_calls,
            "tracked_callers": len(self._windows),
            "denied": self._denied,
        }
