"""Cached mail reachability check backing the ``/health`` endpoint."""

from __future__ import annotations

import asyncio
import logging
import time
from collections.abc import Callable

from portfolio_contact.contact import MailDispatcher

LOGGER = logging.getLogger(__name__)


class MailReachabilityCheck:
    """Check the mail transport and reuse the answer for ``ttl_seconds``."""

    def __init__(
        self,
        dispatcher: MailDispatcher,
        *,
        enabled: bool = True,
        ttl_seconds: float = 60.0,
        timeout_seconds: float = 10.0,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._dispatcher = dispatcher
        self._enabled = enabled
        self._ttl_seconds = ttl_seconds
        self._timeout_seconds = timeout_seconds
        self._clock = clock
        self._lock = asyncio.Lock()
        self._cached: bool | None = None
        self._checked_at: float | None = None

    @property
    def configured(self) -> bool:
        return self._dispatcher.transport.configured

    async def reachable(self) -> bool | None:
        """Return transport reachability, or ``None`` when not checked."""
        if not self._enabled or not self.configured:
            return None
        async with self._lock:
            now = self._clock()
            if (
                self._checked_at is not None
                and now - self._checked_at < self._ttl_seconds
            ):
                return self._cached
            self._cached = await self._dispatcher.verify(self._timeout_seconds)
            self._checked_at = self._clock()
            LOGGER.debug("Mail transport reachable: %s", self._cached)
            return self._cached


__all__ = ["MailReachabilityCheck"]
