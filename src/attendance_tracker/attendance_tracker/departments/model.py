from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Optional

from ..common.datetime_utils import format_datetime


@dataclass(frozen=True)
class Department:
    department_id: int
    name: str
    created_at: Optional[datetime] = None
    employee_count: Optional[int] = None

    def to_dict(self) -> dict:
        return {
            "id": self.department_id,
            "name": self.name,
            "employee_count": self.employee_count,
            "created_at": format_datetime(self.created_at),
        }
