# src/bosschat/ratelimit.py
"""
Fixed-window request counter keyed by client address.

State lives in a plain dict owned by the limiter instance. All access happens
on the event loop thread, so no locking is needed.
"""

import logging
import time
from dataclasses import dataclass
from typing import Callable, Dict

logger = logging.getLogger(__name__)


@dataclass
class RateLimitEntry:
    """Counter for one client within its current window."""
    count: int
    reset_at: float


class RateLimiter:
    """
    Admit at most `max_requests` per `window_seconds` for each client key.

    Example:
        limiter = RateLimiter(max_requests=20, window_seconds=60)
        if not limiter.admit(request.client.host):
            ...  # respond 429
    """

    def __init__(
        self,
        max_requests: int = 20,
        window_seconds: float = 60.0,
        clock: Callable[[], float] = time.monotonic,
    ):
        if max_requests < 1:
            raise ValueError("max_requests must be at least 1")
        if window_seconds <= 0:
            raise ValueError("window_seconds must be positive")
        self.max_requests = max_requests
        self.window_seconds = window_seconds
        self._clock = clock
        self._entries: Dict[str, RateLimitEntry] = {}

    def admit(self, client_key: str) -> bool:
        """
        Count one request for `client_key` and decide whether to serve it.

        A rejected request still counts against the window.

        Returns:
            True if the request is within the cap, False if it must be rejected.
        """
        now = self._clock()
        entry = self._entries.get(client_key)
        if entry is None or now >= entry.reset_at:
            entry = RateLimitEntry(count=0, reset_at=now + self.window_seconds)
            self._entries[client_key] = entry

        entry.count += 1
        if entry.count > self.max_requests:
            if entry.count == self.max_requests + 1:
                logger.warning(f"Rate limit exceeded for client {client_key} ({self.max_requests}/{self.window_seconds:.0f}s)")
            return False
        return True

    def prune(self) -> int:
        """Drop entries whose window has ended. Returns the number removed."""
        now = self._clock()
        expired = [key for key, entry in self._entries.items() if now >= entry.reset_at]
        for key in expired:
            del self._entries[key]
        return len(expired)

    def reset(self) -> None:
        self._entries.clear()

    def __len__(self) -> int:
        return len(self._entries)
