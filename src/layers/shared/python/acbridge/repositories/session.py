"""Visitor session repository.

Stands in for the host session: one item per browser session id, holding
the attribution captured on the landing page.
"""

import structlog

from acbridge.models.attribution import SESSION_MAX_AGE, AttributionState
from acbridge.models.session import VisitorSession
from acbridge.repositories.base import BaseRepository

logger = structlog.get_logger()


class SessionRepository(BaseRepository[VisitorSession]):
    """Repository for VisitorSession records."""

    def __init__(self, table_name: str | None = None):
        super().__init__(VisitorSession, table_name)

    def get_session(self, session_id: str | None) -> VisitorSession | None:
        """Get a session by id.

        Args:
            session_id: Session id from the acbridge_sid cookie.

        Returns:
            VisitorSession or None if unknown.
        """
        if not session_id:
            return None
        return self.get(f"SESSION#{session_id}", "ATTRIBUTION")

    def get_attribution(self, session_id: str | None) -> AttributionState | None:
        """Get the stored attribution for a session, without expiry checks."""
        session = self.get_session(session_id)
        return session.attribution if session else None

    def store_attribution(self, session_id: str, state: AttributionState) -> VisitorSession:
        """Store attribution for a session, replacing any previous value.

        Args:
            session_id: Session id.
            state: Captured tags and timestamp.

        Returns:
            The saved session.
        """
        session = VisitorSession(
            session_id=session_id,
            attribution=state,
            ttl=state.timestamp + SESSION_MAX_AGE,
        )
        self.put(session)
        logger.debug(
            "Attribution stored in session",
            session_id=session_id,
            tags=state.tags,
        )
        return session

    def clear(self, session_id: str | None) -> bool:
        """Remove stored attribution for a session.

        Returns:
            True if something was deleted.
        """
        if not session_id:
            return False
        return self.delete(f"SESSION#{session_id}", "ATTRIBUTION")
