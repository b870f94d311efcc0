"""In-memory fixed-window rate limiting keyed by client identity."""

from __future__ import annotations

import logging
import math
import time
from collections.abc import Callable
from dataclasses import dataclass
from threading import Lock

from portfolio_contact.core.models import RateLimitDecision

LOGGER = logging.getLogger(__name__)

DEFAULT_MAX_REQUESTS = 5
DEFAULT_WINDOW_SECONDS = 60 * 60  # 1 hour
_CLEANUP_INTERVAL = 100


@dataclass(slots=True)
class _Window:
    started_at: float
    count: int


class RateLimiter:
    """Count submissions per identity over fixed windows.

    Each identity gets its own window starting at its first admitted call.
    Once ``window_seconds`` have elapsed since that start, the next call opens
    a fresh window and the count starts over. All reads and updates happen
    under a single lock, so concurrent calls for the same identity cannot both
    take the last free slot.

    Example:
        >>> limiter = RateLimiter(max_requests=2, window_seconds=60)
        >>> limiter.admit("203.0.113.7"), limiter.admit("203.0.113.7")
        (True, True)
        >>> limiter.admit("203.0.113.7")
        False
    """

    def __init__(
        self,
        max_requests: int = DEFAULT_MAX_REQUESTS,
        window_seconds: float = DEFAULT_WINDOW_SECONDS,
        *,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        if max_requests < 1:
            raise ValueError("max_requests must be at least 1")
        if window_seconds <= 0:
            raise ValueError("window_seconds must be positive")
        self._max_requests = max_requests
        self._window_seconds = window_seconds
        self._clock = clock
        self._windows: dict[str, _Window] = {}
        self._lock = Lock()
        self._checks_since_cleanup = 0

    @property
    def max_requests(self) -> int:
        return self._max_requests

    @property
    def window_seconds(self) -> float:
        return self._window_seconds

    def admit(self, identity: str) -> bool:
        """Return ``True`` and consume a slot when ``identity`` is under budget."""
        return self.check(identity).allowed

    def check(self, identity: str) -> RateLimitDecision:
        """Admit or reject ``identity`` and report the remaining budget."""
        with self._lock:
            now = self._clock()
            self._checks_since_cleanup += 1
            if self._checks_since_cleanup >= _CLEANUP_INTERVAL:
                self._evict_expired(now)

            window = self._windows.get(identity)
            if window is None or now - window.started_at >= self._window_seconds:
                window = _Window(started_at=now, count=0)
                self._windows[identity] = window

            reset_after = max(0.0, window.started_at + self._window_seconds - now)
            if window.count >= self._max_requests:
                LOGGER.debug("Rate limit reached for %s", identity)
                return RateLimitDecision(
                    allowed=False,
                    limit=self._max_requests,
                    remaining=0,
                    reset_after=reset_after,
                )

            window.count += 1
            return RateLimitDecision(
                allowed=True,
                limit=self._max_requests,
                remaining=self._max_requests - window.count,
                reset_after=reset_after,
            )

    def cleanup_expired(self) -> int:
        """Drop windows that have run out and return how many were removed."""
        with self._lock:
            return self._evict_expired(self._clock())

    def reset(self, identity: str | None = None) -> None:
        """Forget the window for ``identity``, or for every identity."""
        with self._lock:
            if identity is None:
                self._windows.clear()
            else:
                self._windows.pop(identity, None)

    def size(self) -> int:
        """Return the number of identities currently tracked."""
        with self._lock:
            return len(self._windows)

    def _evict_expired(self, now: float) -> int:
        self._checks_since_cleanup = 0
        expired = [
            key
            for key, window in self._windows.items()
            if now - window.started_at >= self._window_seconds
        ]
        for key in expired:
            del self._windows[key]
        if expired:
            LOGGER.debug("Evicted %d expired rate-limit windows", len(expired))
        return len(expired)


def reset_header_value(decision: RateLimitDecision) -> str:
    """Seconds until the window resets, rounded up for the ``RateLimit-Reset`` header."""
    return str(math.ceil(decision.reset_after))


__all__ = ["RateLimiter", "reset_header_value"]
