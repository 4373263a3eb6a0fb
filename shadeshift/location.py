"""Sources of the observer coordinate."""

import json
import logging
import urllib.error
import urllib.request
from abc import ABC, abstractmethod
from typing import Optional, Tuple

import pytz

from shadeshift.models import Coordinate, Location


logger = logging.getLogger(__name__)

IP_GEOLOCATION_URL = "http://ip-api.com/json/?fields=status,lat,lon,timezone"


class LocationProvider(ABC):
    """Abstract base class for coordinate sources."""

    @abstractmethod
    def locate(self) -> Optional[Location]:
        """Request a fix; None when no fix is available."""
        pass

    @property
    @abstractmethod
    def is_available(self) -> bool:
        """Whether the most recent request delivered a fix."""
        pass


class StaticLocationProvider(LocationProvider):
    """Coordinates entered by hand in the configuration."""

    def __init__(self, coordinate: Optional[Coordinate], timezone: Optional[str] = None):
        self._coordinate = coordinate
        self._timezone = timezone

    def locate(self) -> Optional[Location]:
        if self._coordinate is None:
            return None
        return Location(self._coordinate, self._timezone)

    @property
    def is_available(self) -> bool:
        return self._coordinate is not None


def get_location_from_ip(timeout: int = 5) -> Tuple[float, float, str]:
    """Detect user's location via IP geolocation.

    Returns:
        Tuple of (latitude, longitude, timezone)

    Raises:
        Exception: If geolocation fails
    """
    with urllib.request.urlopen(IP_GEOLOCATION_URL, timeout=timeout) as response:
        data = json.loads(response.read().decode())
    if data.get('status', 'success') != 'success':
        raise ValueError(f"Geolocation lookup failed: {data}")
    return data['lat'], data['lon'], data['timezone']


class IPLocationProvider(LocationProvider):
    """Approximate location from the public IP address."""

    def __init__(self, timeout: int = 5):
        self.timeout = timeout
        self.last_error: Optional[str] = None

    def locate(self) -> Optional[Location]:
        try:
            lat, lon, timezone = get_location_from_ip(self.timeout)
            coordinate = Coordinate(latitude=lat, longitude=lon)
        except (urllib.error.URLError, OSError, ValueError, KeyError) as e:
            self.last_error = str(e)
            logger.warning(f"Could not detect location: {e}")
            return None

        if timezone not in pytz.all_timezones:
            logger.warning(f"Ignoring unknown detected timezone: {timezone}")
            timezone = None

        self.last_error = None
        logger.info(f"Detected location: {lat:.4f}, {lon:.4f} ({timezone or 'configured timezone'})")
        return Location(coordinate, timezone)

    @property
    def is_available(self) -> bool:
        return self.last_error is None
