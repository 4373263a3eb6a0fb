"""Value types shared by the solar calculator, decision engine and scheduler."""

from dataclasses import dataclass
from datetime import date, datetime
from enum import Enum
from typing import Optional, Union


class AppearancePreference(Enum):
    """What the user asked for."""

    AUTOMATIC = "automatic"
    FORCE_LIGHT = "light"
    FORCE_DARK = "dark"


class ScheduleMode(Enum):
    """Source of transitions while in automatic mode."""

    SUNRISE_SUNSET = "sunrise_sunset"
    CUSTOM_TIMES = "custom_times"


@dataclass(frozen=True)
class Coordinate:
    """Geographic position in decimal degrees."""

    latitude: float
    longitude: float

    def __post_init__(self):
        if not (-90 <= self.latitude <= 90):
            raise ValueError(f"Latitude must be between -90 and 90, got: {self.latitude}")
        if not (-180 <= self.longitude <= 180):
            raise ValueError(f"Longitude must be between -180 and 180, got: {self.longitude}")


@dataclass(frozen=True)
class Location:
    """A position fix and the IANA zone observed there (None when unknown)."""

    coordinate: Coordinate
    timezone: Optional[str] = None


@dataclass(frozen=True)
class NormalDay:
    """A day with both a sunrise and a sunset (timezone-aware instants)."""

    sunrise: datetime
    sunset: datetime

    @property
    def is_degenerate(self) -> bool:
        """Sunrise at or after sunset; callers must treat this as always dark."""
        return self.sunrise >= self.sunset


@dataclass(frozen=True)
class AlwaysDark:
    """The sun never crosses the twilight threshold into day (polar night)."""


@dataclass(frozen=True)
class AlwaysLight:
    """The sun never drops below the twilight threshold (midnight sun)."""


ALWAYS_DARK = AlwaysDark()
ALWAYS_LIGHT = AlwaysLight()

SolarDay = Union[NormalDay, AlwaysDark, AlwaysLight]


@dataclass(frozen=True)
class DailyTime:
    """A recurring time of day with no date component."""

    hour: int
    minute: int

    @classmethod
    def parse(cls, value: str) -> "DailyTime":
        """
        Parse an 'HH:MM' string.

        Raises:
            ValueError: If the string is not a valid 24-hour time
        """
        parts = str(value).strip().split(':')
        if len(parts) != 2 or not all(p.isdigit() for p in parts):
            raise ValueError(f"Invalid time '{value}', expected HH:MM")

        daily_time = cls(hour=int(parts[0]), minute=int(parts[1]))
        if not daily_time.is_valid:
            raise ValueError(f"Invalid time '{value}', expected HH:MM between 00:00 and 23:59")
        return daily_time

    @property
    def is_valid(self) -> bool:
        return 0 <= self.hour <= 23 and 0 <= self.minute <= 59

    def __str__(self) -> str:
        return f"{self.hour:02d}:{self.minute:02d}"


@dataclass(frozen=True)
class Transition:
    """Current mode plus the instant (strictly after 'now') when it flips."""

    current_is_dark: bool
    next_transition: datetime
    next_is_dark: bool

    @property
    def target_is_dark(self) -> bool:
        return self.current_is_dark


@dataclass(frozen=True)
class Fixed:
    """A mode with no scheduled transition, and why."""

    is_dark: bool
    reason: str

    @property
    def target_is_dark(self) -> bool:
        return self.is_dark


ScheduleDecision = Union[Transition, Fixed]


@dataclass(frozen=True)
class RefreshPlan:
    """When the host must wake next, and the backoff counter to carry forward."""

    next_wake: datetime
    stale_retry_count: int = 0


@dataclass(frozen=True)
class WeeklySolarDay:
    """One row of the sunrise/sunset preview."""

    date: date
    solar_day: SolarDay
