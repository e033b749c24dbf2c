"""Working-hours status for a member's local wall-clock time.

Everything here is a pure function of its arguments: the caller passes the
current instant on every tick, nothing is cached between calls.
"""

from __future__ import annotations

import enum
import re
from datetime import datetime, time, timezone as dt_timezone
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

DEFAULT_START_HOUR = 9
DEFAULT_END_HOUR = 17  # inclusive: 17:59 local still counts as working

_HHMM = re.compile(r"^(\d{1,2}):(\d{2})$")


class WorkingStatus(str, enum.Enum):
    UNKNOWN = "unknown"
    WORKING = "working"
    OUTSIDE = "outside"


def resolve_zone(name: str | None) -> ZoneInfo:
    """Return the ZoneInfo for an IANA id, raising ValueError if it is not one."""
    if not name or not name.strip():
        raise ValueError("timezone is required")
    try:
        return ZoneInfo(name.strip())
    except (ZoneInfoNotFoundError, ValueError) as exc:
        raise ValueError(f"unknown timezone: {name!r}") from exc


def is_valid_zone(name: str | None) -> bool:
    try:
        resolve_zone(name)
    except ValueError:
        return False
    return True


def parse_hhmm(value: str | None) -> time | None:
    """Parse a local ``HH:mm`` string; None when absent or malformed."""
    if value is None:
        return None
    match = _HHMM.match(value.strip())
    if not match:
        return None
    hour, minute = int(match.group(1)), int(match.group(2))
    if hour > 23 or minute > 59:
        return None
    return time(hour, minute)


def local_time(tz_name: str, now_utc: datetime) -> datetime:
    """Convert an instant to wall-clock time in ``tz_name``.

    Naive datetimes are taken to be UTC.
    """
    if now_utc.tzinfo is None:
        now_utc = now_utc.replace(tzinfo=dt_timezone.utc)
    return now_utc.astimezone(resolve_zone(tz_name))


def format_utc_offset(moment: datetime) -> str:
    offset = moment.utcoffset()
    if offset is None:
        return "+00:00"
    total_minutes = int(offset.total_seconds() // 60)
    sign = "+" if total_minutes >= 0 else "-"
    hours, minutes = divmod(abs(total_minutes), 60)
    return f"{sign}{hours:02d}:{minutes:02d}"


def working_status(
    tz_name: str,
    work_start: str | None,
    work_end: str | None,
    now_utc: datetime,
) -> WorkingStatus:
    """Classify ``now_utc`` against a member's working window.

    Without a window the default policy applies (local hour 9 through 17).
    A window whose end is not after its start wraps past midnight, e.g.
    22:00-06:00. A half-configured or unparsable window is UNKNOWN.
    """
    try:
        now_local = local_time(tz_name, now_utc)
    except ValueError:
        return WorkingStatus.UNKNOWN

    if work_start is None and work_end is None:
        if DEFAULT_START_HOUR <= now_local.hour <= DEFAULT_END_HOUR:
            return WorkingStatus.WORKING
        return WorkingStatus.OUTSIDE

    start = parse_hhmm(work_start)
    end = parse_hhmm(work_end)
    if start is None or end is None:
        return WorkingStatus.UNKNOWN

    current = now_local.time().replace(tzinfo=None)
    if end <= start:
        working = current >= start or current <= end
    else:
        working = start <= current <= end
    return WorkingStatus.WORKING if working else WorkingStatus.OUTSIDE
