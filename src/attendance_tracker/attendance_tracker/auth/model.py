from __future__ import annotations

from dataclasses import dataclass, replace
from datetime import datetime
from typing import Optional

from ..core.enums import Role


@dataclass(frozen=True)
class SessionRecord:
    """Server-side session bound to the ``SESSION_COOKIE_NAME`` cookie."""

    session_id: str
    user_id: int
    email: str
    role: Role
    login_time: datetime
    last_activity: datetime
    last_regeneration: datetime
    last_ip: Optional[str] = None
    # Set by authenticated requests only, never by login.
    last_request: Optional[datetime] = None

    def age_seconds(self, now: datetime) -> float:
        return (now - self.login_time).total_seconds()

    def idle_seconds(self, now: datetime) -> float:
        return (now - self.last_activity).total_seconds()

    def with_changes(self, **changes) -> "SessionRecord":
        return replace(self, **changes)
