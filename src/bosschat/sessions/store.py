# src/bosschat/sessions/store.py
"""
Time-expiring session store.

Sessions are keyed by a client-generated token and hold the full turn history
for as long as the session lives; only the request builder windows it.
Expiry is driven by `sweep()`, which the background sweep loop calls on a
fixed interval. An optional `max_sessions` cap evicts the least recently
active session so the map stays bounded between sweeps.

Concurrent requests that share one session id are not serialized: their
appends interleave in whatever order the event loop runs them.
"""

import logging
import time
from collections import OrderedDict
from typing import Callable, List, Optional

from ..models import Session, Turn

logger = logging.getLogger(__name__)

DEFAULT_TTL_SECONDS = 30 * 60.0
DEFAULT_HISTORY_WINDOW = 40


class SessionStore:
    """
    Owns every live `Session` in the process.

    Example:
        store = SessionStore(ttl_seconds=1800)
        session = store.get_or_create("tab-123")
        store.append(session, Turn(role="user", content="hello"))
        history = store.window(session)
    """

    def __init__(
        self,
        ttl_seconds: float = DEFAULT_TTL_SECONDS,
        history_window: int = DEFAULT_HISTORY_WINDOW,
        max_sessions: int = 0,
        clock: Callable[[], float] = time.monotonic,
    ):
        """
        Args:
            ttl_seconds: Idle time after which `sweep()` removes a session.
            history_window: Number of most recent turns returned by `window()`.
            max_sessions: LRU cap on live sessions; 0 disables the cap.
            clock: Monotonic time source, injectable for tests.
        """
        self.ttl_seconds = ttl_seconds
        self.history_window = history_window
        self.max_sessions = max_sessions
        self._clock = clock
        # ordered by last activity, least recent first
        self._sessions: "OrderedDict[str, Session]" = OrderedDict()

    def get(self, session_id: str) -> Optional[Session]:
        """Return the live session without touching or creating it."""
        return self._sessions.get(session_id)

    def get_or_create(self, session_id: str) -> Session:
        """Return the session for `session_id`, creating it on first use, and mark it active."""
        session = self._sessions.get(session_id)
        if session is None:
            session = Session(session_id=session_id, last_active=self._clock())
            self._sessions[session_id] = session
            logger.debug(f"Created session {session_id} ({len(self._sessions)} live)")
            self._evict_overflow()
        else:
            self._touch(session)
        return session

    def append(self, session: Session, turn: Turn) -> None:
        """Append `turn` to the session history and mark the session active."""
        session.turns.append(turn)
        # a session evicted while its request was streaming is re-registered
        if session.session_id not in self._sessions:
            self._sessions[session.session_id] = session
            self._evict_overflow()
        self._touch(session)

    def window(self, session: Session) -> List[Turn]:
        """The turns sent upstream: the last `history_window` of the session."""
        return session.recent(self.history_window)

    def sweep(self) -> int:
        """
        Remove every session idle for longer than the TTL.

        Returns:
            Number of sessions removed.
        """
        cutoff = self._clock() - self.ttl_seconds
        expired = [sid for sid, s in self._sessions.items() if s.last_active < cutoff]
        for sid in expired:
            del self._sessions[sid]
        if expired:
            logger.info(f"Swept {len(expired)} idle session(s); {len(self._sessions)} live")
        return len(expired)

    def clear(self) -> None:
        self._sessions.clear()

    def __contains__(self, session_id: object) -> bool:
        return session_id in self._sessions

    def __len__(self) -> int:
        return len(self._sessions)

    def _touch(self, session: Session) -> None:
        session.last_active = self._clock()
        self._sessions.move_to_end(session.session_id)

    def _evict_overflow(self) -> None:
        if not self.max_sessions:
            return
        while len(self._sessions) > self.max_sessions:
            evicted_id, _ = self._sessions.popitem(last=False)
            logger.info(f"Evicted least recently active session {evicted_id} (cap {self.max_sessions})")
