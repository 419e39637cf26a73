from __future__ import annotations

from dataclasses import dataclass

from ..core.enums import Role
from ..users.model import User
from .model import SessionRecord


@dataclass(frozen=True)
class RequestContext:
    """The authenticated caller of one request, handed to views explicitly."""

    user: User
    session: SessionRecord
    client_ip: str

    @property
    def user_id(self) -> int:
        return self.user.user_id

    @property
    def role(self) -> Role:
        return self.user.role

    @property
    def is_admin(self) -> bool:
        return self.user.role == Role.ADMIN

    def actor(self) -> dict:
        return {"id": self.user.user_id, "name": self.user.name}
