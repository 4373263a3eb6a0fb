"""Shared test helpers: datetime construction and in-memory collaborators."""

from datetime import datetime
from typing import Optional

import pytz

from shadeshift.location import LocationProvider
from shadeshift.models import Coordinate, Location
from shadeshift.theme_applier import ApplyError, ThemeApplier


SAN_FRANCISCO = Coordinate(latitude=37.7749, longitude=-122.4194)
TROMSO = Coordinate(latitude=69.6492, longitude=18.9553)
TOKYO = Coordinate(latitude=35.6762, longitude=139.6503)
LONDON = Coordinate(latitude=51.5074, longitude=-0.1278)


def make_date(year: int, month: int, day: int, hour: int = 0, minute: int = 0, tz="UTC") -> datetime:
    """Timezone-aware datetime from local wall-clock components."""
    zone = pytz.timezone(tz) if isinstance(tz, str) else tz
    return zone.localize(datetime(year, month, day, hour, minute))


def local_hm(instant: datetime, tz: str) -> float:
    """Local time of day as fractional hours, for tolerance checks."""
    local = instant.astimezone(pytz.timezone(tz))
    return local.hour + local.minute / 60 + local.second / 3600


class FakeApplier(ThemeApplier):
    """Records apply() calls instead of touching the desktop."""

    def __init__(self, dark: Optional[bool] = False, fail: bool = False):
        self.dark = dark
        self.fail = fail
        self.calls = []

    def apply(self, is_dark: bool) -> None:
        self.calls.append(is_dark)
        if self.fail:
            raise ApplyError("System Events refused the request")
        self.dark = is_dark

    def is_dark(self) -> Optional[bool]:
        return self.dark


class FakeLocationProvider(LocationProvider):
    """Returns a fixed fix (or None) and counts requests."""

    def __init__(self, coordinate: Optional[Coordinate], timezone: Optional[str] = None):
        self.location = Location(coordinate, timezone) if coordinate else None
        self.requests = 0

    def locate(self) -> Optional[Location]:
        self.requests += 1
        return self.location

    @property
    def is_available(self) -> bool:
        return self.location is not None
