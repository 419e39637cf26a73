from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Optional


@dataclass(frozen=True)
class ActivityLog:
    """Append-only audit record."""

    log_id: int
    user_id: int
    action: str
    created_at: Optional[datetime] = None
