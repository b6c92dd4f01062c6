from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime, time, timedelta, timezone
from typing import Any, Mapping, Optional

# Asia/Manila has no daylight saving; a fixed offset is exact.
DEFAULT_BUSINESS_UTC_OFFSET_MINUTES = 480

_EPOCH = datetime(1970, 1, 1)


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

    # Accept trailing Z
    if s.endswith("Z"):
        s = s[:-1] + "+00:00"

    dt = datetime.fromisoformat(s)
    return _to_utc_naive(dt)


def _to_utc_naive(dt: datetime) -> datetime:
    if dt.tzinfo is None:
        # interpret naive as UTC
        return dt
    return dt.astimezone(timezone.utc).replace(tzinfo=None)


def to_point_in_time(value: Any) -> Optional[datetime]:
    """
    Normalize any timestamp representation a device or the dashboard may send
    into the canonical UTC-naive datetime.

    Accepted:
    - datetime (aware, or naive interpreted as UTC)
    - ISO-8601 string
    - epoch milliseconds (int / float)
    - {"seconds": ..., "nanoseconds": ...} mapping (document-store timestamp)
    """
    if value is None:
        return None
    if isinstance(value, datetime):
        return _to_utc_naive(value)
    if isinstance(value, str):
        dt = parse_iso_datetime(value)
        if dt is None:
            raise ValueError("timestamp string is empty")
        return dt
    if isinstance(value, bool):
        raise ValueError("timestamp must not be a boolean")
    if isinstance(value, (int, float)):
        return _EPOCH + timedelta(milliseconds=value)
    if isinstance(value, Mapping) and "seconds" in value:
        seconds = value["seconds"]
        nanos = value.get("nanoseconds", 0) or 0
        return _EPOCH + timedelta(seconds=seconds, microseconds=nanos // 1000)
    raise ValueError(f"Unsupported timestamp value: {value!r}")


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


def business_tz(utc_offset_minutes: int = DEFAULT_BUSINESS_UTC_OFFSET_MINUTES) -> timezone:
    return timezone(timedelta(minutes=utc_offset_minutes))


def business_date_for(
    instant: datetime,
    utc_offset_minutes: int = DEFAULT_BUSINESS_UTC_OFFSET_MINUTES,
) -> date:
    """Calendar date of `instant` in the business timezone."""
    utc = _to_utc_naive(instant).replace(tzinfo=timezone.utc)
    return utc.astimezone(business_tz(utc_offset_minutes)).date()


def format_date_id(value: date) -> str:
    return value.strftime("%Y-%m-%d")


def parse_date_id(value: str) -> date:
    """Parse a YYYY-MM-DD date id; raises ValueError on anything else."""
    return datetime.strptime(value.strip(), "%Y-%m-%d").date()


@dataclass(frozen=True)
class DayWindow:
    """
    One business day as an inclusive UTC-naive range.

    start is business midnight, end is the last representable instant
    (23:59:59.999999) of the same business date.
    """
    business_date: date
    start: datetime
    end: datetime

    @property
    def date_id(self) -> str:
        return format_date_id(self.business_date)

    def contains(self, instant: datetime) -> bool:
        return self.start <= _to_utc_naive(instant) <= self.end


def business_day_window(
    business_date: date,
    utc_offset_minutes: int = DEFAULT_BUSINESS_UTC_OFFSET_MINUTES,
) -> DayWindow:
    tz = business_tz(utc_offset_minutes)
    start_local = datetime.combine(business_date, time.min, tzinfo=tz)
    end_local = datetime.combine(business_date, time.max, tzinfo=tz)
    return DayWindow(
        business_date=business_date,
        start=_to_utc_naive(start_local),
        end=_to_utc_naive(end_local),
    )
