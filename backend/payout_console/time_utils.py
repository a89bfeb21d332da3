from __future__ import annotations

import re
from datetime import date, datetime, timezone, tzinfo
from typing import Optional
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

_YEAR_MONTH_RE = re.compile(r"^(\d{4})-(\d{2})$")


def utcnow() -> datetime:
    """Server-side 'now' in UTC (naive, canonical)."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


def parse_iso_datetime(value: Optional[str]) -> Optional[datetime]:
    """
    Parse an ISO-8601 datetime string and normalize to UTC-naive datetime.

    - None / "" -> None
    - "YYYY-MM-DDTHH:MM" (naive) is interpreted as UTC
    - "...Z" or "...+/-HH:MM" is converted to UTC and tzinfo is stripped
    """
    if value is None:
        return None
    s = value.strip()
    if not s:
        return None

    if s.endswith("Z"):
        s = s[:-1] + "+00:00"

    dt = datetime.fromisoformat(s)

    if dt.tzinfo is None:
        return dt
    return dt.astimezone(timezone.utc).replace(tzinfo=None)


def parse_iso_date(value: Optional[str]) -> Optional[date]:
    """Parse "YYYY-MM-DD"; None / "" -> None. Raises ValueError on bad input."""
    if value is None:
        return None
    if not isinstance(value, str):
        raise ValueError(f"Invalid date {value!r}, expected YYYY-MM-DD")
    if not value.strip():
        return None
    return date.fromisoformat(value.strip())


def parse_year_month(value: Optional[str]) -> Optional[tuple[int, int]]:
    """Parse "YYYY-MM" into (year, month); None / "" -> None."""
    if value is None:
        return None
    if not isinstance(value, str):
        raise ValueError(f"Invalid month {value!r}, expected YYYY-MM")
    if not value.strip():
        return None
    match = _YEAR_MONTH_RE.match(value.strip())
    if not match:
        raise ValueError(f"Invalid month {value!r}, expected YYYY-MM")
    year, month = int(match.group(1)), int(match.group(2))
    if not 1 <= month <= 12:
        raise ValueError(f"Invalid month {value!r}, expected YYYY-MM")
    return year, month


def to_utc_z(dt: Optional[datetime]) -> Optional[str]:
    """
    Serializes datetime to ISO-8601 with trailing 'Z'.
    If dt is naive, it is treated as UTC.
    """
    if dt is None:
        return None
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    dt_utc = dt.astimezone(timezone.utc).replace(microsecond=0)
    return dt_utc.isoformat().replace("+00:00", "Z")


def resolve_timezone(name: Optional[str]) -> Optional[tzinfo]:
    """
    Reporting zone for calendar-day matching.

    Empty name -> None, meaning the host's own zone rules. astimezone(None)
    applies them per instant, so a January and a July sale each get the
    offset in force when they happened.
    """
    if not name:
        return None
    if name.upper() in ("UTC", "Z"):
        return timezone.utc
    try:
        return ZoneInfo(name)
    except (ZoneInfoNotFoundError, ValueError) as exc:
        raise ValueError(f"Unknown timezone {name!r}") from exc


def to_local(dt: datetime, tz: Optional[tzinfo]) -> datetime:
    """Convert a stored UTC-naive datetime into `tz` (None: host zone)."""
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(tz)


def local_date(dt: datetime, tz: Optional[tzinfo]) -> date:
    return to_local(dt, tz).date()


def report_tz() -> Optional[tzinfo]:
    """Reporting zone of the running app (REPORT_TIMEZONE)."""
    from flask import current_app
    return resolve_timezone(current_app.config.get("REPORT_TIMEZONE"))
