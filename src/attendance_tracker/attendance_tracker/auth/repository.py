from __future__ import annotations

from datetime import datetime
from typing import Optional, Protocol

from .model import SessionRecord


class SessionRepository(Protocol):
    def get(self, session_id: str) -> Optional[SessionRecord]:
        raise NotImplementedError

    def create(self, record: SessionRecord) -> None:
        raise NotImplementedError

    def touch(self, session_id: str, *, last_activity: datetime, last_ip: Optional[str]) -> None:
        """Record an authenticated request at ``last_activity``."""
        raise NotImplementedError

    def rotate(self, old_session_id: str, new_session_id: str, *, regenerated_at: datetime) -> bool:
        raise NotImplementedError

    def delete(self, session_id: str) -> None:
        raise NotImplementedError
