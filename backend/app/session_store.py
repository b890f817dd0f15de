"""
In-memory questionnaire session store.

Sessions live for the process lifetime, or until they have been idle for
longer than the TTL. Turns for one session are serialized with a
per-session asyncio.Lock.
"""
import asyncio
import logging
from datetime import datetime, timedelta, timezone
from typing import Dict, Optional

from engine.planner import DialogueSession

logger = logging.getLogger(__name__)


class InMemorySessionStore:
    """
    Args:
        ttl_minutes: Idle minutes before a session expires. 0 disables expiry.
    """

    def __init__(self, ttl_minutes: int = 45):
        self.ttl = timedelta(minutes=ttl_minutes) if ttl_minutes > 0 else None
        self._sessions: Dict[str, DialogueSession] = {}
        self._locks: Dict[str, asyncio.Lock] = {}

    def _expired(self, session: DialogueSession, now: datetime) -> bool:
        return self.ttl is not None and now - session.updated_at > self.ttl

    def _evict(self, session_id: str) -> None:
        self._sessions.pop(session_id, None)
        # A held lock belongs to a turn in flight; it is dropped on a later eviction
        lock = self._locks.get(session_id)
        if lock is not None and not lock.locked():
            del self._locks[session_id]

    def purge_expired(self) -> int:
        """Drop idle sessions; returns how many were removed."""
        now = datetime.now(timezone.utc)
        expired = [sid for sid, s in self._sessions.items() if self._expired(s, now)]
        for session_id in expired:
            self._evict(session_id)
        if expired:
            logger.info(f"Purged {len(expired)} expired questionnaire sessions")
        return len(expired)

    def create(self, session: DialogueSession) -> DialogueSession:
        self.purge_expired()
        self._sessions[session.id] = session
        return session

    def get(self, session_id: str) -> Optional[DialogueSession]:
        session = self._sessions.get(session_id)
        if session is None:
            return None
        if self._expired(session, datetime.now(timezone.utc)):
            logger.info(f"Session {session_id} expired after {self.ttl}")
            self._evict(session_id)
            return None
        return session

    def save(self, session: DialogueSession) -> DialogueSession:
        self._sessions[session.id] = session
        return session

    def lock(self, session_id: str) -> asyncio.Lock:
        """The lock serializing turns for one session."""
        if session_id not in self._locks:
            self._locks[session_id] = asyncio.Lock()
        return self._locks[session_id]

    def __len__(self) -> int:
        return len(self._sessions)
