from __future__ import annotations

from typing import Protocol


class ActivityRepository(Protocol):
    def add(self, *, user_id: int, action: str) -> int:
        raise NotImplementedError
