"""Light/dark decisions from solar days or a custom daily schedule."""

import logging
from datetime import datetime, timedelta
from typing import NamedTuple, Optional

from shadeshift.models import (
    ALWAYS_DARK,
    AlwaysDark,
    AlwaysLight,
    DailyTime,
    Fixed,
    NormalDay,
    ScheduleDecision,
    SolarDay,
    Transition,
)
from shadeshift.timeutil import TimezoneLike, at_local_time, resolve_timezone, start_of_next_day


logger = logging.getLogger(__name__)

POLAR_NIGHT_REASON = "Polar night: staying in Dark mode."
MIDNIGHT_SUN_REASON = "Midnight sun: staying in Light mode."
IDENTICAL_TIMES_REASON = "Custom Light and Dark times cannot be identical."
INVALID_CUSTOM_REASON = "Custom schedule is invalid."

# Replacement step for transition instants that are not in the future
MINIMUM_STEP = timedelta(minutes=1)


def evaluate_solar(
    now: datetime,
    today: SolarDay,
    tomorrow: SolarDay,
    timezone: TimezoneLike = None
) -> ScheduleDecision:
    """
    Decide the current mode and next transition from today's and tomorrow's sun.

    Args:
        now: Current instant (timezone-aware)
        today: Classification of now's local calendar day
        tomorrow: Classification of the following day
        timezone: Zone defining "start of tomorrow" (defaults to now.tzinfo)

    Returns:
        Transition whose next_transition is strictly after now, or Fixed
    """
    today = _sanitize(today)
    tomorrow = _sanitize(tomorrow)

    if isinstance(today, NormalDay):
        if now < today.sunrise:
            return _transition(now, True, today.sunrise, False)
        if now < today.sunset:
            return _transition(now, False, today.sunset, True)
        # After sunset the rest of today is dark, same as a polar night day
        return _after_dark_day(now, tomorrow, timezone)

    if isinstance(today, AlwaysDark):
        return _after_dark_day(now, tomorrow, timezone)

    if isinstance(today, AlwaysLight):
        return _after_light_day(now, tomorrow, timezone)

    raise TypeError(f"Unknown solar day: {today!r}")


def _after_dark_day(now: datetime, tomorrow: SolarDay, timezone: TimezoneLike) -> ScheduleDecision:
    if isinstance(tomorrow, AlwaysDark):
        return Fixed(is_dark=True, reason=POLAR_NIGHT_REASON)
    if isinstance(tomorrow, AlwaysLight):
        return _transition(now, True, start_of_next_day(now, timezone), False)
    if isinstance(tomorrow, NormalDay):
        return _transition(now, True, tomorrow.sunrise, False)
    raise TypeError(f"Unknown solar day: {tomorrow!r}")


def _after_light_day(now: datetime, tomorrow: SolarDay, timezone: TimezoneLike) -> ScheduleDecision:
    if isinstance(tomorrow, AlwaysLight):
        return Fixed(is_dark=False, reason=MIDNIGHT_SUN_REASON)
    if isinstance(tomorrow, AlwaysDark):
        return _transition(now, False, start_of_next_day(now, timezone), True)
    if isinstance(tomorrow, NormalDay):
        return _transition(now, False, tomorrow.sunset, True)
    raise TypeError(f"Unknown solar day: {tomorrow!r}")


def _sanitize(day: SolarDay) -> SolarDay:
    if isinstance(day, NormalDay) and day.is_degenerate:
        logger.debug(f"Treating degenerate day (sunrise {day.sunrise} >= sunset {day.sunset}) as dark")
        return ALWAYS_DARK
    return day


def _transition(now: datetime, current_is_dark: bool, instant: datetime, next_is_dark: bool) -> Transition:
    """Build a Transition, pushing non-future instants to now + 1 minute."""
    if instant <= now:
        logger.debug(f"Transition at {instant} is not after {now}, using {now + MINIMUM_STEP}")
        instant = now + MINIMUM_STEP
    return Transition(
        current_is_dark=current_is_dark,
        next_transition=instant,
        next_is_dark=next_is_dark,
    )


class _CustomEvent(NamedTuple):
    instant: datetime
    is_dark: bool
    precedence: int


def evaluate_custom(
    now: datetime,
    light_time: Optional[DailyTime],
    dark_time: Optional[DailyTime],
    timezone: TimezoneLike = None
) -> ScheduleDecision:
    """
    Decide the current mode and next transition from two daily clock times.

    Light and dark events are materialized on yesterday, today and tomorrow so
    there is always one past and one future event, overnight windows included.
    At identical instants the dark event wins.

    Args:
        now: Current instant (timezone-aware)
        light_time: Daily time to switch to light
        dark_time: Daily time to switch to dark
        timezone: Zone the clock times are in (defaults to now.tzinfo)
    """
    if not _is_usable(light_time) or not _is_usable(dark_time):
        return Fixed(is_dark=False, reason=INVALID_CUSTOM_REASON)

    if light_time == dark_time:
        return Fixed(is_dark=False, reason=IDENTICAL_TIMES_REASON)

    tz = resolve_timezone(timezone, now.tzinfo)
    today = now.astimezone(tz).date()

    events = []
    for offset in (-1, 0, 1):
        day = today + timedelta(days=offset)
        events.append(_CustomEvent(at_local_time(day, light_time.hour, light_time.minute, tz), False, 0))
        events.append(_CustomEvent(at_local_time(day, dark_time.hour, dark_time.minute, tz), True, 1))

    past = [event for event in events if event.instant <= now]
    upcoming = [event for event in events if event.instant > now]
    if not past or not upcoming:
        return Fixed(is_dark=False, reason=INVALID_CUSTOM_REASON)

    current = max(past, key=lambda event: (event.instant, event.precedence))
    following = min(upcoming, key=lambda event: (event.instant, -event.precedence))

    return Transition(
        current_is_dark=current.is_dark,
        next_transition=following.instant,
        next_is_dark=following.is_dark,
    )


def _is_usable(value: Optional[DailyTime]) -> bool:
    return isinstance(value, DailyTime) and value.is_valid
