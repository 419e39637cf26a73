from __future__ import annotations

import logging
import secrets
from datetime import datetime
from typing import Callable, Optional

from ..core.constants import DEFAULT_SESSION_LIFETIME, DEFAULT_SESSION_REGENERATE_INTERVAL
from ..core.exceptions import AuthenticationError
from ..users.model import User
from .model import SessionRecord
from .repository import SessionRepository

logger = logging.getLogger(__name__)


def new_session_id() -> str:
    return secrets.token_hex(32)


class SessionManager:
    """Creates, validates, rotates and destroys server-side sessions.

    A session expires once it has been idle for more than ``lifetime``
    seconds. Its identifier is replaced after ``regenerate_interval`` seconds
    so a leaked cookie value stops working quickly.
    """

    def __init__(
        self,
        sessions: SessionRepository,
        *,
        lifetime: int = DEFAULT_SESSION_LIFETIME,
        regenerate_interval: int = DEFAULT_SESSION_REGENERATE_INTERVAL,
        token_factory: Optional[Callable[[], str]] = None,
    ):
        self._sessions = sessions
        self._lifetime = int(lifetime)
        self._regenerate_interval = int(regenerate_interval)
        self._token_factory = token_factory or new_session_id

    @property
    def lifetime(self) -> int:
        return self._lifetime

    def start(self, user: User, *, ip: Optional[str], now: datetime) -> SessionRecord:
        record = SessionRecord(
            session_id=self._token_factory(),
            user_id=user.user_id,
            email=user.email,
            role=user.role,
            login_time=now,
            last_activity=now,
            last_regeneration=now,
            last_ip=ip,
        )
        self._sessions.create(record)
        return record

    def is_expired(self, record: SessionRecord, now: datetime) -> bool:
        return record.idle_seconds(now) > self._lifetime

    def resolve(
        self,
        session_id: Optional[str],
        *,
        now: datetime,
        missing_code: str = "AUTH_REQUIRED",
        missing_message: str = "Authentication required. Please login.",
    ) -> SessionRecord:
        """Return the live session for ``session_id`` or raise 401.

        An expired session is deleted before ``SESSION_EXPIRED`` is raised.
        """
        record = self._sessions.get(session_id) if session_id else None
        if record is None:
            raise AuthenticationError(missing_message, missing_code)

        if self.is_expired(record, now):
            self._sessions.delete(record.session_id)
            raise AuthenticationError("Session expired. Please login again.", "SESSION_EXPIRED")
        return record

    def refresh(self, record: SessionRecord, *, ip: Optional[str], now: datetime) -> SessionRecord:
        """Touch ``last_activity`` and rotate the identifier when it is due."""
        if (now - record.last_regeneration).total_seconds() > self._regenerate_interval:
            new_id = self._token_factory()
            if self._sessions.rotate(record.session_id, new_id, regenerated_at=now):
                logger.debug("Rotated session for user %s", record.user_id)
                record = record.with_changes(session_id=new_id, last_regeneration=now)

        self._sessions.touch(record.session_id, last_activity=now, last_ip=ip)
        return record.with_changes(last_activity=now, last_request=now, last_ip=ip)

    def destroy(self, session_id: Optional[str]) -> None:
        if session_id:
            self._sessions.delete(session_id)
