from __future__ import annotations

from datetime import date, datetime
from typing import Optional

from ..core.exceptions import ValidationError


def parse_iso_date(value: str) -> date:
    """Parse YYYY-MM-DD string into date."""
    return datetime.strptime(value, "%Y-%m-%d").date()


def parse_optional_date(value: Optional[str], field_name: str) -> Optional[date]:
    if value is None or not str(value).strip():
        return None
    try:
        return parse_iso_date(str(value).strip()[:10])
    except ValueError:
        raise ValidationError(f"Invalid {field_name}. Use YYYY-MM-DD.", "INVALID_DATE")


def now_local() -> datetime:
    """Current local time.

    Note: Wrapped so tests can patch/mocked easier.
    """
    return datetime.now().replace(microsecond=0)


def elapsed_hours(start: Optional[datetime], end: Optional[datetime]) -> Optional[float]:
    """Hours between two timestamps, rounded to 2 decimals."""
    if start is None or end is None:
        return None
    return round((end - start).total_seconds() / 3600, 2)


def format_datetime(value: Optional[datetime]) -> Optional[str]:
    return value.strftime("%Y-%m-%d %H:%M:%S") if value else None


def format_time(value: Optional[datetime]) -> Optional[str]:
    return value.strftime("%H:%M:%S") if value else None


def format_date(value: Optional[date]) -> Optional[str]:
    return value.strftime("%Y-%m-%d") if value else None
