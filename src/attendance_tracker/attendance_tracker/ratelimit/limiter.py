from __future__ import annotations

import hashlib
import logging
import time
from typing import Callable, Optional

from ..core.constants import RATE_LIMITS
from ..core.exceptions import RateLimitExceeded
from .store import RateLimitStore

logger = logging.getLogger(__name__)


def hashed_key(prefix: str, *parts: object) -> str:
    """``<prefix>_<md5 of parts>``; keeps emails and IPs out of the table."""
    digest = hashlib.md5("".join(str(p) for p in parts).encode("utf-8")).hexdigest()
    return f"{prefix}_{digest}"


class RateLimiter:
    def __init__(self, store: RateLimitStore, *, clock: Optional[Callable[[], float]] = None):
        self._store = store
        self._clock = clock or time.time

    def allow(self, key: str, limit: int, window: int) -> bool:
        count = self._store.hit(key=key, window=int(window), now=int(self._clock()))
        return count <= int(limit)

    def check(self, key: str, limit: int, window: int, *, message: str = "Too many requests. Please try again later.") -> None:
        if not self.allow(key, limit, window):
            logger.warning("Rate limit exceeded for %s", key)
            raise RateLimitExceeded(message)

    def check_operation(self, operation: str, key: str, *, message: Optional[str] = None) -> None:
        """Apply the configured (limit, window) for ``operation``."""
        limit, window = RATE_LIMITS[operation]
        if message:
            self.check(key, limit, window, message=message)
        else:
            self.check(key, limit, window)
