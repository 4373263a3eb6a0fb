"""Timezone helpers shared by the calculator, engine and scheduler."""

from datetime import date, datetime, time, timedelta, tzinfo
from typing import Optional, Union

import pytz


TimezoneLike = Union[str, tzinfo, None]


def resolve_timezone(timezone: TimezoneLike, fallback: Optional[tzinfo] = None) -> tzinfo:
    """
    Turn an IANA name or tzinfo into a tzinfo.

    Args:
        timezone: IANA timezone string, tzinfo, or None
        fallback: tzinfo used when timezone is None (UTC if also None)

    Raises:
        pytz.UnknownTimeZoneError: If the name is not a known timezone
    """
    if timezone is None:
        timezone = fallback
    if timezone is None:
        return pytz.utc
    if isinstance(timezone, str):
        return pytz.timezone(timezone)
    return timezone


def localize(tz: tzinfo, naive: datetime) -> datetime:
    """Attach tz to a naive local datetime (pytz zones need localize())."""
    if hasattr(tz, 'localize'):
        return tz.localize(naive)
    return naive.replace(tzinfo=tz)


def at_local_time(day: date, hour: int, minute: int, tz: tzinfo) -> datetime:
    """Instant of hour:minute on a local calendar day."""
    return localize(tz, datetime.combine(day, time(hour, minute)))


def start_of_next_day(now: datetime, timezone: TimezoneLike = None) -> datetime:
    """Local midnight following now (now must be timezone-aware)."""
    tz = resolve_timezone(timezone, now.tzinfo)
    tomorrow = now.astimezone(tz).date() + timedelta(days=1)
    return at_local_time(tomorrow, 0, 0, tz)
