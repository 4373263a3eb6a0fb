"""Configuration loading and validation."""

import logging
import os
import yaml
from pathlib import Path
from dataclasses import dataclass
from typing import Optional
import pytz

from shadeshift.location import get_location_from_ip
from shadeshift.models import AppearancePreference, Coordinate, DailyTime, ScheduleMode
from shadeshift.sun_calculator import SunCalculator
from shadeshift.theme_applier import APPLIERS

logger = logging.getLogger(__name__)


@dataclass
class Config:
    """Shadeshift configuration."""

    timezone: str
    latitude: Optional[float] = None
    longitude: Optional[float] = None
    automatic_location: bool = False
    appearance: AppearancePreference = AppearancePreference.AUTOMATIC
    schedule_mode: ScheduleMode = ScheduleMode.SUNRISE_SUNSET
    light_time: DailyTime = DailyTime(7, 0)
    dark_time: DailyTime = DailyTime(19, 0)
    solar_backend: str = "builtin"
    theme_applier: str = "gnome"
    check_interval_fallback: int = 300

    @classmethod
    def load(cls, config_path: Path) -> "Config":
        """
        Load and validate configuration from YAML file.

        Args:
            config_path: Path to configuration file

        Returns:
            Config instance

        Raises:
            ValueError: If configuration is invalid
            FileNotFoundError: If config file doesn't exist
        """
        if not config_path.exists():
            raise FileNotFoundError(f"Configuration file not found: {config_path}")

        with open(config_path) as f:
            data = yaml.safe_load(f)

        if not data:
            raise ValueError("Configuration file is empty")

        return cls.from_dict(data)

    @classmethod
    def from_dict(cls, data: dict) -> "Config":
        """Validate an already-parsed configuration mapping."""
        # Validate location data
        location = data.get('location') or {}
        automatic_location = bool(location.get('automatic', False))
        latitude = location.get('latitude')
        longitude = location.get('longitude')
        timezone = location.get('timezone')

        if timezone is None:
            raise ValueError("Missing required field: location.timezone")
        if timezone not in pytz.all_timezones:
            raise ValueError(
                f"Invalid timezone: {timezone}. "
                f"Must be a valid IANA timezone (e.g., 'US/Pacific', 'Europe/London')"
            )

        if not automatic_location:
            if latitude is None:
                raise ValueError("Missing required field: location.latitude")
            if longitude is None:
                raise ValueError("Missing required field: location.longitude")

        # Manual coordinates are optional with automatic location, but must be valid if given
        if (latitude is None) != (longitude is None):
            raise ValueError("location.latitude and location.longitude must be set together")
        if latitude is not None:
            if not isinstance(latitude, (int, float)) or not isinstance(longitude, (int, float)):
                raise ValueError(f"Coordinates must be numbers, got: {latitude}, {longitude}")
            Coordinate(latitude=latitude, longitude=longitude)

        appearance_value = data.get('appearance', 'automatic')
        try:
            appearance = AppearancePreference(appearance_value)
        except ValueError:
            raise ValueError(
                f"Invalid appearance: {appearance_value}. Must be 'automatic', 'light' or 'dark'"
            )

        # Validate schedule
        schedule = data.get('schedule') or {}
        mode_value = schedule.get('mode', 'sunrise_sunset')
        try:
            schedule_mode = ScheduleMode(mode_value)
        except ValueError:
            raise ValueError(
                f"Invalid schedule mode: {mode_value}. Must be 'sunrise_sunset' or 'custom_times'"
            )

        try:
            light_time = DailyTime.parse(schedule.get('light_time', '07:00'))
            dark_time = DailyTime.parse(schedule.get('dark_time', '19:00'))
        except ValueError as e:
            raise ValueError(f"Invalid schedule time: {e}")

        # Optional settings
        settings = data.get('settings') or {}

        solar_backend = settings.get('solar_backend', 'builtin')
        if solar_backend not in SunCalculator.BACKENDS:
            raise ValueError(
                f"Invalid solar backend: {solar_backend}. Must be one of {SunCalculator.BACKENDS}"
            )

        theme_applier = settings.get('theme_applier', 'gnome')
        if theme_applier not in APPLIERS:
            raise ValueError(
                f"Invalid theme applier: {theme_applier}. Must be one of {tuple(APPLIERS)}"
            )

        check_interval_fallback = settings.get('check_interval_fallback', 300)
        if check_interval_fallback < 60:
            raise ValueError(
                f"Fallback check interval must be at least 60 seconds, got: {check_interval_fallback}"
            )
        if check_interval_fallback > 86400:
            raise ValueError(
                f"Fallback check interval cannot exceed 86400 seconds (24 hours), got: {check_interval_fallback}"
            )

        return cls(
            timezone=timezone,
            latitude=latitude,
            longitude=longitude,
            automatic_location=automatic_location,
            appearance=appearance,
            schedule_mode=schedule_mode,
            light_time=light_time,
            dark_time=dark_time,
            solar_backend=solar_backend,
            theme_applier=theme_applier,
            check_interval_fallback=check_interval_fallback,
        )

    @property
    def manual_coordinate(self) -> Optional[Coordinate]:
        """Hand-entered coordinate, if configured."""
        if self.latitude is None or self.longitude is None:
            return None
        return Coordinate(latitude=self.latitude, longitude=self.longitude)

    @property
    def is_automatic(self) -> bool:
        """Whether the schedule decides the mode (rather than a forced mode)."""
        return self.appearance == AppearancePreference.AUTOMATIC

    @property
    def requires_location(self) -> bool:
        """Only automatic sunrise/sunset scheduling needs a coordinate."""
        return self.is_automatic and self.schedule_mode == ScheduleMode.SUNRISE_SUNSET


def get_default_config_path() -> Path:
    """Get the default configuration file path."""
    xdg_config_home = os.environ.get('XDG_CONFIG_HOME', os.path.expanduser('~/.config'))
    return Path(xdg_config_home) / 'shadeshift' / 'config.yaml'


def create_default_config(config_path: Path, detect_location: bool = True) -> None:
    """Create a default configuration template file.

    Args:
        config_path: Path where the config file should be created
        detect_location: Try IP geolocation to pre-fill the location
    """
    config_path.parent.mkdir(parents=True, exist_ok=True)

    lat, lon, tz = 37.7749, -122.4194, "US/Pacific"
    if detect_location:
        try:
            lat, lon, tz = get_location_from_ip()
            logger.info(f"Detected location: {lat}, {lon}, {tz}")
        except Exception as e:
            logger.warning(f"Could not detect location: {e}, using defaults")

    template = f"""# Shadeshift configuration

location:
  automatic: false          # Detect location from IP address (manual values are the fallback)
  latitude: {lat}
  longitude: {lon}
  timezone: "{tz}"

appearance: automatic       # automatic, light or dark

schedule:
  mode: sunrise_sunset      # sunrise_sunset or custom_times
  light_time: "07:00"       # Used by custom_times
  dark_time: "19:00"

settings:
  solar_backend: builtin        # builtin (almanac approximation) or astral
  theme_applier: gnome          # gnome (gsettings) or macos (osascript)
  check_interval_fallback: 300  # Longest sleep between checks (seconds)
"""

    config_path.write_text(template)
