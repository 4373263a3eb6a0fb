"""Human-readable rendering of decisions and sun times."""

from datetime import datetime, timedelta
from typing import Optional, Tuple

from shadeshift.models import AlwaysDark, AlwaysLight, NormalDay, ScheduleDecision, SolarDay, Transition
from shadeshift.timeutil import TimezoneLike, resolve_timezone


WAITING_FOR_LOCATION = "Waiting for location"


def format_remaining_time(until: datetime, now: datetime) -> str:
    """Time left until a transition, rounded up to whole minutes ('2h 5m' or '5m')."""
    seconds = max(0, int((until - now).total_seconds()))
    total_minutes = (seconds + 59) // 60
    hours, minutes = divmod(total_minutes, 60)

    if hours > 0:
        return f"{hours}h {minutes}m"
    return f"{minutes}m"


def format_time(instant: datetime, timezone: TimezoneLike = None) -> str:
    tz = resolve_timezone(timezone, instant.tzinfo)
    return instant.astimezone(tz).strftime('%H:%M')


def describe_decision(
    decision: Optional[ScheduleDecision],
    now: datetime,
    timezone: TimezoneLike = None
) -> str:
    """One-line summary of what happens next."""
    if decision is None:
        return WAITING_FOR_LOCATION

    if isinstance(decision, Transition):
        remaining = format_remaining_time(decision.next_transition, now)
        next_mode = "Dark" if decision.next_is_dark else "Light"
        return f"Next: {format_time(decision.next_transition, timezone)} ({remaining}) -> {next_mode} mode"

    return decision.reason


def describe_solar_day(day: SolarDay, timezone: TimezoneLike = None) -> Tuple[str, str]:
    """(sunrise, sunset) display strings for a day."""
    if isinstance(day, NormalDay) and not day.is_degenerate:
        return format_time(day.sunrise, timezone), format_time(day.sunset, timezone)
    if isinstance(day, AlwaysLight):
        return "Always light", "Always light"
    if isinstance(day, (AlwaysDark, NormalDay)):
        return "No sunrise", "No sunset"
    raise TypeError(f"Unknown solar day: {day!r}")


def next_countdown_update(now: datetime, next_transition: Optional[datetime]) -> datetime:
    """
    When a minute-resolution countdown needs redrawing.

    The next whole minute, or the transition itself if that comes first.
    Transitions that are not in the future are ignored.
    """
    next_minute = now.replace(second=0, microsecond=0) + timedelta(minutes=1)
    if next_transition is not None and now < next_transition < next_minute:
        return next_transition
    return next_minute
