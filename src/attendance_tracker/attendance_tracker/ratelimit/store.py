from __future__ import annotations

import threading
from typing import Dict, Protocol, Tuple

from ..database.connection import DatabaseConnection
from ..database.mysql_base import db_cursor, fetchone


class RateLimitStore(Protocol):
    def hit(self, *, key: str, window: int, now: int) -> int:
        """Count one operation for ``key`` and return the count in the current window."""
        raise NotImplementedError


class MySQLRateLimitStore(RateLimitStore):
    """Fixed-window counters in the ``rate_limits`` table.

    The upsert either starts a fresh window or increments the live one in a
    single statement, so concurrent requests cannot lose updates.
    """

    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    def hit(self, *, key: str, window: int, now: int) -> int:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                INSERT INTO rate_limits (rate_key, hit_count, reset_at)
                VALUES (%s, 1, %s)
                ON DUPLICATE KEY UPDATE
                    hit_count = IF(reset_at < %s, 1, hit_count + 1),
                    reset_at = IF(reset_at < %s, VALUES(reset_at), reset_at)
                """,
                (key, int(now) + int(window), int(now), int(now)),
            )
            cur.execute("SELECT hit_count FROM rate_limits WHERE rate_key=%s", (key,))
            row = fetchone(cur)
            return int(row["hit_count"]) if row else 1


class InMemoryRateLimitStore(RateLimitStore):
    """Process-local counters; used by tests and single-process setups."""

    def __init__(self):
        self._lock = threading.Lock()
        self._buckets: Dict[str, Tuple[int, int]] = {}

    def hit(self, *, key: str, window: int, now: int) -> int:
        with self._lock:
            count, reset_at = self._buckets.get(key, (0, 0))
            if reset_at < now:
                count, reset_at = 0, now + window
            count += 1
            self._buckets[key] = (count, reset_at)
            return count
