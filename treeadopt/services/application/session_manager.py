"""
Application service: signed-in sessions.

A session is created on sign-in, handed to request handlers explicitly, and
invalidated on sign-out or expiry.
"""
import logging
import secrets
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from typing import Dict, List, Optional

from treeadopt.config import settings
from treeadopt.domain.exceptions import SessionError
from treeadopt.domain.models import TreeListing, UserIdentity


logger = logging.getLogger(__name__)


@dataclass
class Session:
    """State belonging to one signed-in user."""

    token: str
    user: UserIdentity
    created_at: datetime
    expires_at: datetime
    selected_tree: Optional[TreeListing] = None
    chat_histories: Dict[str, List[Dict[str, str]]] = field(default_factory=dict)

    @property
    def user_id(self) -> str:
        return self.user.user_id

    def is_expired(self, now: Optional[datetime] = None) -> bool:
        return (now or datetime.now(timezone.utc)) >= self.expires_at


class SessionManager:
    """In-process registry of active sessions keyed by token."""

    def __init__(self, ttl_minutes: int = settings.session_ttl_minutes):
        self.ttl = timedelta(minutes=ttl_minutes)
        self._sessions: Dict[str, Session] = {}

    def sign_in(self, identity: UserIdentity) -> Session:
        now = datetime.now(timezone.utc)
        self.purge_expired(now)
        session = Session(
            token=secrets.token_urlsafe(32),
            user=identity,
            created_at=now,
            expires_at=now + self.ttl,
        )
        self._sessions[session.token] = session
        logger.info(f"Session started for user {identity.user_id}")
        return session

    def purge_expired(self, now: Optional[datetime] = None) -> int:
        """Drop expired sessions and return how many were removed."""
        expired = [token for token, s in self._sessions.items() if s.is_expired(now)]
        for token in expired:
            del self._sessions[token]
        return len(expired)

    def get(self, token: Optional[str]) -> Session:
        """
        Look up an active session.

        Raises:
            SessionError: If the token is missing, unknown or expired
        """
        if not token:
            raise SessionError("User not authenticated")
        session = self._sessions.get(token)
        if session is None:
            raise SessionError("User not authenticated")
        if session.is_expired():
            self._sessions.pop(token, None)
            raise SessionError("Session expired")
        return session

    def sign_out(self, token: str) -> bool:
        session = self._sessions.pop(token, None)
        if session is not None:
            logger.info(f"Session ended for user {session.user_id}")
        return session is not None


_session_manager: Optional[SessionManager] = None


def get_session_manager() -> SessionManager:
    global _session_manager
    if _session_manager is None:
        _session_manager = SessionManager()
    return _session_manager
