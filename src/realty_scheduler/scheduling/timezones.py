"""Viewer time zone helpers.

Appointments travel as UTC instants. Calendar days and form times are always
interpreted in the viewer's zone (America/Cancun by default, UTC-5 all year).
Durations are added on the UTC timeline so windows keep their real length
across DST changes in zones that observe them.
"""

from datetime import date, datetime, time, timedelta, timezone
from typing import Union
from zoneinfo import ZoneInfo

DEFAULT_TIMEZONE = "America/Cancun"


def get_zone(name: Union[str, ZoneInfo, None] = None) -> ZoneInfo:
    """Resolve a zone name, falling back to the default."""
    if isinstance(name, ZoneInfo):
        return name
    return ZoneInfo(name or DEFAULT_TIMEZONE)


def parse_time(value: str) -> time:
    """Parse an HH:MM form value."""
    parts = value.strip().split(":")
    if len(parts) != 2 or not all(p.isdigit() for p in parts):
        raise ValueError(f"Invalid time: {value!r}, expected HH:MM")
    return time(int(parts[0]), int(parts[1]))


def combine_local(day: date, start: Union[str, time], tz=None) -> datetime:
    """Combine a calendar day and a wall-clock time into an aware instant."""
    if isinstance(start, str):
        start = parse_time(start)
    return datetime.combine(day, start, tzinfo=get_zone(tz))


def ensure_aware(instant: datetime) -> datetime:
    """Treat naive server timestamps as UTC."""
    if instant.tzinfo is None:
        return instant.replace(tzinfo=timezone.utc)
    return instant


def to_local(instant: datetime, tz=None) -> datetime:
    return ensure_aware(instant).astimezone(get_zone(tz))


def local_day(instant: datetime, tz=None) -> date:
    """Truncate an instant to the viewer's calendar day."""
    return to_local(instant, tz).date()


def to_utc_iso(instant: datetime) -> str:
    """ISO-8601 in UTC with a Z suffix, as the server expects."""
    utc = ensure_aware(instant).astimezone(timezone.utc)
    return utc.strftime("%Y-%m-%dT%H:%M:%S.") + f"{utc.microsecond // 1000:03d}Z"


def add_minutes(instant: datetime, minutes: int) -> datetime:
    """Shift by elapsed minutes, keeping the instant's zone."""
    aware = ensure_aware(instant)
    return (aware.astimezone(timezone.utc) + timedelta(minutes=minutes)).astimezone(aware.tzinfo)


def minutes_between(start: datetime, end: datetime) -> int:
    """Elapsed whole minutes from start to end."""
    elapsed = ensure_aware(end).astimezone(timezone.utc) - ensure_aware(start).astimezone(timezone.utc)
    return int(elapsed.total_seconds() // 60)


def as_utc(instant: datetime) -> datetime:
    return ensure_aware(instant).astimezone(timezone.utc)
