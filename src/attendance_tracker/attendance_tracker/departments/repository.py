from __future__ import annotations

from typing import Optional, Protocol, Sequence

from .model import Department


class DepartmentRepository(Protocol):
    def get_by_id(self, department_id: int) -> Optional[Department]:
        raise NotImplementedError

    def name_exists(self, name: str, *, exclude_id: Optional[int] = None) -> bool:
        raise NotImplementedError

    def create(self, name: str) -> int:
        raise NotImplementedError

    def rename(self, department_id: int, name: str) -> None:
        raise NotImplementedError

    def delete(self, department_id: int) -> bool:
        raise NotImplementedError

    def count_users(self, department_id: int) -> int:
        raise NotImplementedError

    def list_departments(
        self, *, search: Optional[str], include_count: bool, limit: int, offset: int
    ) -> Sequence[Department]:
        raise NotImplementedError

    def count_departments(self, *, search: Optional[str]) -> int:
        raise NotImplementedError

    def summarize(self) -> dict:
        """total_departments, departments_with_employees."""
        raise NotImplementedError
