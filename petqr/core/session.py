# petqr/core/session.py
import logging
import threading
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Dict, Optional

from petqr.utils.datetime_utils import DateTimeUtils


class AuthEventType(Enum):
    SIGNED_IN = "SIGNED_IN"
    SIGNED_OUT = "SIGNED_OUT"
    PROFILE_UPDATED = "PROFILE_UPDATED"


@dataclass
class AuthEvent:
    """One entry of the auth collaborator's session-change stream."""
    type: AuthEventType
    user_id: str
    email: Optional[str] = None
    is_admin: bool = False


@dataclass
class SessionState:
    user_id: str
    email: Optional[str] = None
    is_admin: bool = False
    signed_in: bool = False
    updated_at: datetime = field(default_factory=DateTimeUtils.now)

    def to_dict(self) -> dict:
        return {
            "user_id": self.user_id,
            "email": self.email,
            "is_admin": self.is_admin,
            "signed_in": self.signed_in,
            "updated_at": DateTimeUtils.to_iso_string(self.updated_at),
        }


class SessionStore:
    """
    Session state owned by the application shell.

    `handle_auth_event` is the only writer; it is registered once on the
    AuthService event stream in create_app. Handlers read sessions through
    `current_app.services['sessions']`.
    """

    def __init__(self):
        self._sessions: Dict[str, SessionState] = {}
        self._lock = threading.Lock()

    def handle_auth_event(self, event: AuthEvent) -> None:
        with self._lock:
            if event.type == AuthEventType.SIGNED_OUT:
                self._sessions.pop(event.user_id, None)
                logging.info(f"Session cleared for user {event.user_id}")
                return

            current = self._sessions.get(event.user_id)
            if event.type == AuthEventType.PROFILE_UPDATED and current is None:
                # user has no live session; nothing to refresh
                return

            self._sessions[event.user_id] = SessionState(
                user_id=event.user_id,
                email=event.email if event.email is not None else (current.email if current else None),
                is_admin=event.is_admin,
                signed_in=True,
            )
            logging.info(f"Session {event.type.value} for user {event.user_id} (admin={event.is_admin})")

    def get(self, user_id: str) -> Optional[SessionState]:
        with self._lock:
            return self._sessions.get(user_id)
