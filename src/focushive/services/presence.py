"""Presence tracking of live transport sessions.

Maps Socket.IO session ids to the authenticated users behind them. A
user may hold several sessions at once (multiple tabs or devices).

The tracker is an explicit object handed to the lifecycle manager. The
abstract interface allows swapping the in-memory table for a shared
store if the service is ever scaled horizontally.
"""

import logging
import threading
from abc import ABC, abstractmethod

from focushive.models import PresenceSession

log = logging.getLogger(__name__)


class PresenceTracker(ABC):
    """Interface for session presence tracking."""

    @abstractmethod
    def register(self, session_id: str, user_id: str, display_name: str) -> None:
        """Record a newly connected session."""

    @abstractmethod
    def unregister(self, session_id: str) -> str | None:
        """Forget a session.

        Returns
        -------
        str | None
            The user id that owned the session, or None if unknown
        """

    @abstractmethod
    def get(self, session_id: str) -> PresenceSession | None:
        """Look up a live session."""

    @abstractmethod
    def sessions_for(self, user_id: str) -> set[str]:
        """All live session ids of a user."""

    @abstractmethod
    def count(self) -> int:
        """Number of live sessions."""

    def is_connected(self, session_id: str | None) -> bool:
        return session_id is not None and self.get(session_id) is not None


class InMemoryPresenceTracker(PresenceTracker):
    """Thread-safe, process-lifetime presence table."""

    def __init__(self):
        self._lock = threading.Lock()
        self._sessions: dict[str, PresenceSession] = {}
        self._by_user: dict[str, set[str]] = {}

    def register(self, session_id: str, user_id: str, display_name: str) -> None:
        session = PresenceSession(
            sessionId=session_id, userId=user_id, displayName=display_name
        )
        with self._lock:
            previous = self._sessions.get(session_id)
            if previous is not None and previous.userId != user_id:
                self._discard_user_session(previous.userId, session_id)
            self._sessions[session_id] = session
            self._by_user.setdefault(user_id, set()).add(session_id)
        log.debug(f"Registered session {session_id} for user {user_id}")

    def unregister(self, session_id: str) -> str | None:
        with self._lock:
            session = self._sessions.pop(session_id, None)
            if session is None:
                return None
            self._discard_user_session(session.userId, session_id)
        log.debug(f"Unregistered session {session_id} of user {session.userId}")
        return session.userId

    def _discard_user_session(self, user_id: str, session_id: str) -> None:
        sessions = self._by_user.get(user_id)
        if sessions is None:
            return
        sessions.discard(session_id)
        if not sessions:
            del self._by_user[user_id]

    def get(self, session_id: str) -> PresenceSession | None:
        with self._lock:
            return self._sessions.get(session_id)

    def sessions_for(self, user_id: str) -> set[str]:
        with self._lock:
            return set(self._by_user.get(user_id, ()))

    def count(self) -> int:
        with self._lock:
            return len(self._sessions)
