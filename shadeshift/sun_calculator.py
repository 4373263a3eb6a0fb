"""Sunrise/sunset calculation and polar day/night classification."""

import logging
import math
from datetime import date, datetime, timedelta, tzinfo
from typing import NamedTuple, Optional, Union

from astral import LocationInfo
from astral.sun import elevation, noon, sunrise, sunset
import pytz

from shadeshift.models import (
    ALWAYS_DARK,
    ALWAYS_LIGHT,
    Coordinate,
    NormalDay,
    SolarDay,
    WeeklySolarDay,
)
from shadeshift.timeutil import TimezoneLike, resolve_timezone


logger = logging.getLogger(__name__)

# Official sunrise/sunset: sun centre 50 arcminutes below the horizon
ZENITH = 90.833


class _EventEstimate(NamedTuple):
    utc_hour: Optional[float]
    cos_h: float


def local_date(when: Union[date, datetime], tz: tzinfo) -> date:
    """Calendar date of when in tz (naive datetimes are taken as already local)."""
    if isinstance(when, datetime):
        if when.tzinfo is None:
            return when.date()
        return when.astimezone(tz).date()
    return when


def solar_day(
    day: Union[date, datetime],
    coordinate: Coordinate,
    timezone: TimezoneLike = None
) -> SolarDay:
    """
    Classify a calendar day and compute its sunrise/sunset.

    Uses the almanac approximation (zenith 90.833) once for a 6:00 local
    sunrise estimate and once for an 18:00 local sunset estimate.

    Args:
        day: Date (or datetime, converted to timezone) to calculate for
        coordinate: Observer position
        timezone: IANA timezone string or tzinfo defining the calendar day

    Returns:
        NormalDay with UTC instants, ALWAYS_DARK or ALWAYS_LIGHT. Never raises.
    """
    try:
        tz = resolve_timezone(timezone)
        the_date = local_date(day, tz)
        day_of_year = the_date.timetuple().tm_yday

        rise = _estimate_event(day_of_year, coordinate, is_sunrise=True)
        fall = _estimate_event(day_of_year, coordinate, is_sunrise=False)

        if rise.utc_hour is not None and fall.utc_hour is not None:
            result = NormalDay(
                sunrise=_anchor_to_local_date(the_date, rise.utc_hour, tz),
                sunset=_anchor_to_local_date(the_date, fall.utc_hour, tz),
            )
            if not result.is_degenerate:
                return result
            logger.debug(
                f"Degenerate sun times on {the_date}: sunrise {result.sunrise} "
                f"is not before sunset {result.sunset}"
            )

        return _classify(rise.cos_h, fall.cos_h)

    except (ValueError, OverflowError, pytz.UnknownTimeZoneError) as e:
        logger.warning(f"Sun calculation failed for {day}: {e}. Treating day as always dark.")
        return ALWAYS_DARK


def _estimate_event(day_of_year: int, coordinate: Coordinate, is_sunrise: bool) -> _EventEstimate:
    """Estimate one event's UTC hour, or None when the sun never crosses the horizon."""
    lng_hour = coordinate.longitude / 15
    local_hour = 6 if is_sunrise else 18
    t = day_of_year + ((local_hour - lng_hour) / 24)

    mean_anomaly = (0.9856 * t) - 3.289

    true_longitude = (
        mean_anomaly
        + (1.916 * math.sin(math.radians(mean_anomaly)))
        + (0.020 * math.sin(math.radians(2 * mean_anomaly)))
        + 282.634
    ) % 360

    # atan() can land in the wrong quadrant; move it into true longitude's
    right_ascension = math.degrees(math.atan(0.91764 * math.tan(math.radians(true_longitude)))) % 360
    l_quadrant = math.floor(true_longitude / 90) * 90
    ra_quadrant = math.floor(right_ascension / 90) * 90
    right_ascension = (right_ascension + (l_quadrant - ra_quadrant)) / 15

    sin_declination = 0.39782 * math.sin(math.radians(true_longitude))
    cos_declination = math.cos(math.asin(sin_declination))

    latitude = math.radians(coordinate.latitude)
    cos_h = (
        (math.cos(math.radians(ZENITH)) - (sin_declination * math.sin(latitude)))
        / (cos_declination * math.cos(latitude))
    )

    if cos_h > 1 or cos_h < -1:
        return _EventEstimate(None, cos_h)

    if is_sunrise:
        hour_angle = 360 - math.degrees(math.acos(cos_h))
    else:
        hour_angle = math.degrees(math.acos(cos_h))

    local_mean_time = (hour_angle / 15) + right_ascension - (0.06571 * t) - 6.622
    return _EventEstimate((local_mean_time - lng_hour) % 24, cos_h)


def _anchor_to_local_date(the_date: date, utc_hour: float, tz: tzinfo) -> datetime:
    """UTC instant at utc_hour whose local calendar date is the_date."""
    instant = datetime(the_date.year, the_date.month, the_date.day, tzinfo=pytz.utc)
    instant += timedelta(hours=utc_hour)
    drift = (the_date - instant.astimezone(tz).date()).days
    return instant + timedelta(days=drift)


def _classify(sunrise_cos_h: float, sunset_cos_h: float) -> SolarDay:
    """Polar classification from the hour-angle cosines; ambiguous means dark."""
    if sunrise_cos_h > 1 or sunset_cos_h > 1:
        return ALWAYS_DARK
    if sunrise_cos_h < -1 or sunset_cos_h < -1:
        return ALWAYS_LIGHT
    return ALWAYS_DARK


class SunCalculator:
    """Calculate sun times for a given location."""

    BACKENDS = ('builtin', 'astral')

    def __init__(self, coordinate: Coordinate, timezone: TimezoneLike, backend: str = 'builtin'):
        """
        Initialize sun calculator.

        Args:
            coordinate: Observer position
            timezone: IANA timezone string (e.g., 'US/Pacific') or tzinfo
            backend: 'builtin' almanac approximation or 'astral'
        """
        if backend not in self.BACKENDS:
            raise ValueError(f"Unknown solar backend: {backend}. Must be one of {self.BACKENDS}")

        self.coordinate = coordinate
        self.tz = resolve_timezone(timezone)
        self.backend = backend
        self.location = LocationInfo(
            latitude=coordinate.latitude,
            longitude=coordinate.longitude,
            timezone=str(self.tz)
        )

    def get_solar_day(self, when: Union[date, datetime, None] = None) -> SolarDay:
        """
        Get the solar classification for a day.

        Args:
            when: Date or datetime to calculate for (defaults to today)
        """
        if when is None:
            when = datetime.now(self.tz)

        if self.backend == 'astral':
            return self._astral_solar_day(local_date(when, self.tz))
        return solar_day(when, self.coordinate, self.tz)

    def get_solar_days(self, now: datetime) -> tuple[SolarDay, SolarDay]:
        """Today's and tomorrow's classification, relative to now's local date."""
        today = local_date(now, self.tz)
        return self.get_solar_day(today), self.get_solar_day(today + timedelta(days=1))

    def weekly_forecast(self, start: Union[date, datetime, None] = None, days: int = 7) -> list[WeeklySolarDay]:
        """
        Sunrise/sunset preview, one independent calculation per day.

        Args:
            start: First day (defaults to today)
            days: Number of days to include
        """
        if start is None:
            start = datetime.now(self.tz)

        first = local_date(start, self.tz)
        forecast = []
        for offset in range(days):
            day = first + timedelta(days=offset)
            forecast.append(WeeklySolarDay(date=day, solar_day=self.get_solar_day(day)))
        return forecast

    def _astral_solar_day(self, day: date) -> SolarDay:
        observer = self.location.observer
        try:
            return NormalDay(
                sunrise=sunrise(observer, date=day, tzinfo=self.tz),
                sunset=sunset(observer, date=day, tzinfo=self.tz),
            )
        except ValueError as e:
            # Polar regions where sun doesn't rise/set
            logger.debug(f"No sunrise/sunset on {day} (polar region?): {e}")
            return self._polar_fallback(day)

    def _polar_fallback(self, day: date) -> SolarDay:
        """Classify a day without sunrise/sunset by the sun's elevation at solar noon."""
        solar_noon = noon(self.location.observer, date=day, tzinfo=self.tz)
        noon_elevation = elevation(self.location.observer, solar_noon)
        if noon_elevation > 90 - ZENITH:
            return ALWAYS_LIGHT
        return ALWAYS_DARK
