from __future__ import annotations

from typing import Mapping, Optional, Protocol, Sequence

from ..core.enums import Role
from .model import User, UserListRow, UserQuery


class UserRepository(Protocol):
    def get_by_id(self, user_id: int) -> Optional[User]:
        raise NotImplementedError

    def get_by_email(self, email: str) -> Optional[User]:
        raise NotImplementedError

    def email_exists(self, email: str, *, exclude_id: Optional[int] = None) -> bool:
        raise NotImplementedError

    def create_user(
        self,
        *,
        name: str,
        email: str,
        password_hash: str,
        role: Role,
        department_id: Optional[int],
    ) -> int:
        raise NotImplementedError

    def update_user(self, user_id: int, changes: Mapping[str, object]) -> None:
        """Apply column changes (name, email, role, department_id, password)."""
        raise NotImplementedError

    def delete_user_cascade(self, user_id: int) -> bool:
        """Delete sessions, activity logs, attendance and the user in one transaction."""
        raise NotImplementedError

    def list_users(self, query: UserQuery, *, limit: int, offset: int) -> Sequence[UserListRow]:
        raise NotImplementedError

    def count_users(self, query: UserQuery) -> int:
        raise NotImplementedError

    def summarize_users(self) -> dict:
        """total_users, admin_count, employee_count, with_department, departments_used."""
        raise NotImplementedError
