"""
Session Management.

Provides per-viewer state tracking across requests.
This enables:
- Remembering which view and anchor date a viewer is looking at
- Holding the open dialog and its form between calls
- Resetting transient state without losing navigation
"""

from dataclasses import dataclass, field
from typing import Any, Callable, Dict, Optional
from datetime import datetime, timezone
import logging

logger = logging.getLogger(__name__)


@dataclass
class SessionContext:
    """
    Base session context that tracks viewer state.

    Each use case should extend this with use-case-specific fields.
    The session context is:
    - Scoped to a single session id
    - Passed by reference to whoever mutates it
    """
    # Identity
    session_id: str = ""

    # Timestamps
    created_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    updated_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    def _touch(self):
        """Update the timestamp."""
        self.updated_at = datetime.now(timezone.utc)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for serialization."""
        return {
            "session_id": self.session_id,
            "created_at": self.created_at.isoformat(),
            "updated_at": self.updated_at.isoformat(),
        }


class SessionManager:
    """
    Manages session contexts keyed by session id.

    This is a simple in-memory manager; sessions live as long as the process.
    """

    def __init__(self, factory: Callable[[], SessionContext] = SessionContext):
        """
        Initialize the session manager.

        Args:
            factory: Callable building a fresh context (a SessionContext subclass works)
        """
        self._sessions: Dict[str, SessionContext] = {}
        self._factory = factory

    def get_or_create(self, session_id: str) -> SessionContext:
        """
        Get an existing session or create a new one.

        Args:
            session_id: The session ID to get/create

        Returns:
            The session context for this id
        """
        if session_id not in self._sessions:
            session = self._factory()
            session.session_id = session_id
            self._sessions[session_id] = session
            logger.debug(f"Created new session {session_id}")
        return self._sessions[session_id]

    def get(self, session_id: str) -> Optional[SessionContext]:
        """Get an existing session, or None."""
        return self._sessions.get(session_id)

    def clear(self, session_id: str):
        """
        Clear a session.

        Args:
            session_id: The session ID to clear
        """
        if session_id in self._sessions:
            del self._sessions[session_id]
            logger.debug(f"Cleared session {session_id}")

    def __len__(self) -> int:
        return len(self._sessions)
