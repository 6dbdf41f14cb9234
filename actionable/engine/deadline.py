"""
Deadline shared by every step of one action.

A timeout of 0 means "no deadline": remaining() returns None and expired()
never becomes true.
"""

from __future__ import annotations

import time
from typing import Callable

from ..core.settings import settings


class TimeoutSettings:
    """Default timeouts with fallback to a parent (page -> process settings)."""

    def __init__(self, parent: "TimeoutSettings | None" = None) -> None:
        self.parent = parent
        self.default_timeout: float | None = None
        self.default_navigation_timeout: float | None = None

    def timeout(self, timeout: float | None = None) -> float:
        if timeout is not None:
            return timeout
        if self.default_timeout is not None:
            return self.default_timeout
        if self.parent is not None:
            return self.parent.timeout()
        return settings.default_timeout_ms

    def navigation_timeout(self, timeout: float | None = None) -> float:
        if timeout is not None:
            return timeout
        if self.default_navigation_timeout is not None:
            return self.default_navigation_timeout
        if self.default_timeout is not None:
            return self.default_timeout
        if self.parent is not None:
            return self.parent.navigation_timeout()
        if settings.navigation_timeout_ms is not None:
            return settings.navigation_timeout_ms
        return settings.default_timeout_ms


class Deadline:
    def __init__(self, timeout_ms: float, *, clock: Callable[[], float] = time.monotonic) -> None:
        if timeout_ms < 0:
            raise ValueError(f"timeout must be >= 0, got {timeout_ms}")
        self.timeout_ms = timeout_ms
        self._clock = clock
        self._started = clock()
        self._expires_at = None if timeout_ms == 0 else self._started + timeout_ms / 1000

    @classmethod
    def from_options(
        cls, timeout_ms: float | None, timeouts: TimeoutSettings | None = None
    ) -> "Deadline":
        return cls((timeouts or TimeoutSettings()).timeout(timeout_ms))

    @property
    def unbounded(self) -> bool:
        return self._expires_at is None

    def elapsed_ms(self) -> float:
        return (self._clock() - self._started) * 1000

    def remaining(self) -> float | None:
        """Seconds left, or None when there is no deadline."""
        if self._expires_at is None:
            return None
        return max(0.0, self._expires_at - self._clock())

    def remaining_ms(self) -> float | None:
        left = self.remaining()
        return None if left is None else left * 1000

    def expired(self) -> bool:
        return self._expires_at is not None and self._clock() >= self._expires_at

    def clamp(self, seconds: float) -> float:
        """Shorten a sleep so it never overshoots the deadline."""
        left = self.remaining()
        return seconds if left is None else min(seconds, left)

    def __repr__(self) -> str:
        return f"Deadline(timeout_ms={self.timeout_ms}, remaining={self.remaining()})"
