"""One evaluation pass: locate, decide, apply, and plan the next wake."""

import logging
from dataclasses import dataclass
from datetime import datetime, tzinfo
from typing import Optional

from shadeshift.config import Config
from shadeshift.location import IPLocationProvider, LocationProvider, StaticLocationProvider
from shadeshift.models import (
    AppearancePreference,
    Fixed,
    Location,
    RefreshPlan,
    ScheduleDecision,
    ScheduleMode,
    WeeklySolarDay,
)
from shadeshift.refresh_scheduler import LOCATION_POLL_INTERVAL, plan_next_wake
from shadeshift.schedule_engine import evaluate_custom, evaluate_solar
from shadeshift.status import describe_decision
from shadeshift.sun_calculator import SunCalculator
from shadeshift.theme_applier import ApplyError, ThemeApplier, create_applier
from shadeshift.timeutil import resolve_timezone


logger = logging.getLogger(__name__)

FORCED_LIGHT_REASON = "Forced Light mode"
FORCED_DARK_REASON = "Forced Dark mode"


@dataclass
class SchedulerState:
    """The only state kept between wake-ups."""

    last_location: Optional[Location] = None
    last_location_poll: Optional[datetime] = None
    stale_retry_count: int = 0


@dataclass(frozen=True)
class RefreshResult:
    decision: Optional[ScheduleDecision]
    plan: Optional[RefreshPlan]
    applied: bool


class AppearanceController:
    """Runs the calculator -> engine -> scheduler pipeline and applies the result."""

    def __init__(
        self,
        config: Config,
        applier: ThemeApplier,
        location_provider: Optional[LocationProvider] = None,
        state: Optional[SchedulerState] = None
    ):
        """
        Initialize controller.

        Args:
            config: Loaded configuration
            applier: Capability that flips the desktop appearance
            location_provider: Coordinate source (derived from config if omitted)
            state: Bookkeeping carried over from a previous controller
        """
        self.config = config
        self.applier = applier
        self.location_provider = location_provider or self._default_location_provider(config)
        self.state = state or SchedulerState()
        self.tz = resolve_timezone(config.timezone)
        self.last_decision: Optional[ScheduleDecision] = None
        self.last_error: Optional[str] = None

    @classmethod
    def from_config(cls, config: Config, state: Optional[SchedulerState] = None) -> "AppearanceController":
        return cls(config, create_applier(config.theme_applier), state=state)

    @staticmethod
    def _default_location_provider(config: Config) -> LocationProvider:
        if config.automatic_location:
            return IPLocationProvider()
        return StaticLocationProvider(config.manual_coordinate, config.timezone)

    @property
    def polls_location(self) -> bool:
        """Whether the active schedule needs periodic location requests."""
        return self.config.requires_location and self.config.automatic_location

    def resolved_location(self) -> Optional[Location]:
        """
        The fix schedules are computed for.

        The detected location while automatic location is on and the last
        request succeeded. Manual coordinates (in the configured timezone)
        otherwise, and the last detected fix when there are none.
        """
        manual = self.config.manual_coordinate
        detected = self.state.last_location
        if self.config.automatic_location and detected is not None:
            if self.location_provider.is_available or manual is None:
                return detected
        if manual is not None:
            return Location(manual, self.config.timezone)
        return None

    def timezone_for(self, location: Optional[Location]) -> tzinfo:
        """Zone that defines the calendar day for sunrise/sunset at location."""
        if location is None or self.config.schedule_mode == ScheduleMode.CUSTOM_TIMES:
            return self.tz
        return resolve_timezone(location.timezone, self.tz)

    def sun_calculator(self, location: Location) -> SunCalculator:
        return SunCalculator(location.coordinate, self.timezone_for(location), backend=self.config.solar_backend)

    def evaluate(self, now: datetime, location: Optional[Location]) -> Optional[ScheduleDecision]:
        """
        Decide the target mode for now.

        Returns:
            Decision, or None when sunrise/sunset scheduling has no coordinate yet
        """
        if self.config.appearance == AppearancePreference.FORCE_LIGHT:
            return Fixed(is_dark=False, reason=FORCED_LIGHT_REASON)
        if self.config.appearance == AppearancePreference.FORCE_DARK:
            return Fixed(is_dark=True, reason=FORCED_DARK_REASON)

        if self.config.schedule_mode == ScheduleMode.CUSTOM_TIMES:
            return evaluate_custom(now, self.config.light_time, self.config.dark_time, self.tz)

        if location is None:
            return None

        today, tomorrow = self.sun_calculator(location).get_solar_days(now)
        return evaluate_solar(now, today, tomorrow, self.timezone_for(location))

    def refresh(self, now: datetime, force_location: bool = False) -> RefreshResult:
        """
        Recompute the decision, apply it and plan the next wake.

        Args:
            now: Current instant (timezone-aware)
            force_location: Request a new location fix even if one is recent
        """
        if self._should_poll_location(now, force_location):
            self.poll_location(now)

        location = self.resolved_location()
        tz = self.timezone_for(location)
        decision = self.evaluate(now, location)

        if decision != self.last_decision:
            logger.info(describe_decision(decision, now, tz))
        self.last_decision = decision

        applied = False
        if decision is not None:
            applied = self._apply(decision.target_is_dark)

        plan = plan_next_wake(
            now,
            decision,
            is_automatic_mode=self.config.is_automatic,
            requires_location=self.polls_location,
            last_location_poll=self.state.last_location_poll,
            stale_retry_count=self.state.stale_retry_count,
            timezone=tz,
        )
        self.state.stale_retry_count = plan.stale_retry_count if plan else 0

        if plan:
            logger.debug(f"Next wake: {plan.next_wake.astimezone(tz).strftime('%Y-%m-%d %H:%M:%S')}")
        else:
            logger.debug("No wake scheduled")

        return RefreshResult(decision=decision, plan=plan, applied=applied)

    def weekly_forecast(self, now: datetime, days: int = 7) -> list[WeeklySolarDay]:
        """Sunrise/sunset preview for the resolved location (empty without one)."""
        location = self.resolved_location()
        if location is None:
            return []
        return self.sun_calculator(location).weekly_forecast(now, days)

    def _should_poll_location(self, now: datetime, force: bool) -> bool:
        if not self.polls_location:
            return False
        if force or self.state.last_location_poll is None:
            return True
        return now - self.state.last_location_poll >= LOCATION_POLL_INTERVAL

    def poll_location(self, now: datetime) -> None:
        """Request a fix and record the poll time; failures keep the previous fix."""
        self.state.last_location_poll = now
        location = self.location_provider.locate()
        if location is not None:
            self.state.last_location = location
        elif self.config.manual_coordinate is not None:
            logger.info("Using manual coordinates (automatic location unavailable)")
        elif self.state.last_location is not None:
            logger.info("Keeping last detected location (automatic location unavailable)")
        else:
            logger.warning("Location unavailable. Add manual coordinates to the configuration.")

    def _apply(self, is_dark: bool) -> bool:
        """Apply the target mode if the desktop is not already in it."""
        if self.applier.is_dark() == is_dark:
            self.last_error = None
            return False

        try:
            self.applier.apply(is_dark)
        except ApplyError as e:
            self.last_error = str(e)
            logger.error(f"Failed to change appearance: {e}")
            return False

        self.last_error = None
        logger.info(f"Appearance changed to {'Dark' if is_dark else 'Light'} mode")
        return True
