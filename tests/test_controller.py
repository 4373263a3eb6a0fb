"""Tests for the evaluate/apply/plan pipeline."""

import logging
from datetime import timedelta

import pytest

from helpers import LONDON, SAN_FRANCISCO, TOKYO, TROMSO, FakeApplier, FakeLocationProvider, local_hm, make_date
from shadeshift.config import Config
from shadeshift.controller import AppearanceController, SchedulerState
from shadeshift.models import AppearancePreference, DailyTime, Fixed, Location, ScheduleMode, Transition
from shadeshift.schedule_engine import POLAR_NIGHT_REASON


def manual_config(coordinate=SAN_FRANCISCO, timezone="US/Pacific", **overrides):
    return Config(
        timezone=timezone,
        latitude=coordinate.latitude,
        longitude=coordinate.longitude,
        **overrides
    )


@pytest.fixture
def noon():
    return make_date(2026, 6, 21, 12, 0, tz="US/Pacific")


class TestSunriseSunset:
    def test_daytime_applies_light_and_wakes_at_sunset(self, applier, noon):
        controller = AppearanceController(manual_config(), applier)

        result = controller.refresh(noon)

        assert isinstance(result.decision, Transition)
        assert result.decision.current_is_dark is False
        assert result.applied is True
        assert applier.calls == [False]
        assert result.plan.next_wake == result.decision.next_transition
        assert result.plan.next_wake.astimezone(controller.tz).hour == 20

    def test_already_in_target_mode_is_not_reapplied(self, noon):
        applier = FakeApplier(dark=False)
        controller = AppearanceController(manual_config(), applier)

        result = controller.refresh(noon)

        assert result.applied is False
        assert applier.calls == []

    def test_polar_night_stays_dark_until_midnight(self, applier):
        now = make_date(2026, 12, 21, 12, 0, tz="Europe/Oslo")
        controller = AppearanceController(manual_config(TROMSO, "Europe/Oslo"), applier)

        result = controller.refresh(now)

        assert result.decision == Fixed(is_dark=True, reason=POLAR_NIGHT_REASON)
        assert applier.calls == []
        assert result.plan.next_wake == make_date(2026, 12, 22, 0, 0, tz="Europe/Oslo")

    def test_astral_backend(self, applier, noon):
        controller = AppearanceController(manual_config(solar_backend="astral"), applier)

        result = controller.refresh(noon)

        assert result.decision.current_is_dark is False
        assert result.decision.next_is_dark is True

    def test_decision_is_logged_once_while_unchanged(self, applier, noon, caplog):
        caplog.set_level(logging.INFO, logger="shadeshift.controller")
        controller = AppearanceController(manual_config(), applier)

        controller.refresh(noon)
        controller.refresh(noon + timedelta(minutes=10))

        announcements = [r for r in caplog.records if r.getMessage().startswith("Next:")]
        assert len(announcements) == 1


class TestForcedAndCustomModes:
    def test_forced_dark(self, noon):
        applier = FakeApplier(dark=False)
        controller = AppearanceController(
            manual_config(appearance=AppearancePreference.FORCE_DARK), applier
        )

        result = controller.refresh(noon)

        assert result.decision == Fixed(is_dark=True, reason="Forced Dark mode")
        assert applier.calls == [True]
        assert result.plan is None

    def test_forced_light(self, applier, noon):
        controller = AppearanceController(
            manual_config(appearance=AppearancePreference.FORCE_LIGHT), applier
        )

        result = controller.refresh(noon)

        assert result.decision == Fixed(is_dark=False, reason="Forced Light mode")
        assert applier.calls == [False]

    def test_custom_times(self, applier, noon):
        config = manual_config(
            schedule_mode=ScheduleMode.CUSTOM_TIMES,
            light_time=DailyTime(7, 0),
            dark_time=DailyTime(19, 0),
        )
        controller = AppearanceController(config, applier)

        result = controller.refresh(noon)

        assert result.decision == Transition(
            current_is_dark=False,
            next_transition=make_date(2026, 6, 21, 19, 0, tz="US/Pacific"),
            next_is_dark=True,
        )
        assert result.plan.next_wake == make_date(2026, 6, 21, 19, 0, tz="US/Pacific")

    def test_custom_times_need_no_location(self, applier, unavailable_provider, noon):
        config = Config(timezone="US/Pacific", automatic_location=True, schedule_mode=ScheduleMode.CUSTOM_TIMES)
        controller = AppearanceController(config, applier, unavailable_provider)

        result = controller.refresh(noon)

        assert unavailable_provider.requests == 0
        assert result.decision is not None


class TestAutomaticLocation:
    def test_polls_on_first_refresh_and_every_thirty_minutes(self, applier, san_francisco_provider, noon):
        config = Config(timezone="US/Pacific", automatic_location=True)
        controller = AppearanceController(config, applier, san_francisco_provider)

        first = controller.refresh(noon)
        controller.refresh(noon + timedelta(minutes=10))
        controller.refresh(noon + timedelta(minutes=30))

        assert first.plan.next_wake == noon + timedelta(minutes=30)
        assert san_francisco_provider.requests == 2
        assert controller.resolved_location().coordinate == SAN_FRANCISCO

    def test_force_location_polls_again(self, applier, san_francisco_provider, noon):
        config = Config(timezone="US/Pacific", automatic_location=True)
        controller = AppearanceController(config, applier, san_francisco_provider)

        controller.refresh(noon)
        controller.refresh(noon + timedelta(minutes=1), force_location=True)

        assert san_francisco_provider.requests == 2

    def test_waits_for_location_without_applying(self, applier, unavailable_provider, noon):
        config = Config(timezone="US/Pacific", automatic_location=True)
        controller = AppearanceController(config, applier, unavailable_provider)

        result = controller.refresh(noon)

        assert result.decision is None
        assert result.applied is False
        assert applier.calls == []
        assert result.plan.next_wake == noon + timedelta(minutes=30)

    def test_falls_back_to_manual_coordinate(self, applier, unavailable_provider, noon):
        config = manual_config(automatic_location=True)
        controller = AppearanceController(config, applier, unavailable_provider)

        result = controller.refresh(noon)

        assert isinstance(result.decision, Transition)
        assert controller.resolved_location().coordinate == SAN_FRANCISCO

    def test_detected_timezone_defines_the_solar_day(self, applier):
        # Configured for London, but the machine is in Tokyo at local noon
        config = manual_config(LONDON, "Europe/London", automatic_location=True)
        provider = FakeLocationProvider(TOKYO, "Asia/Tokyo")
        controller = AppearanceController(config, applier, provider)
        now = make_date(2026, 6, 21, 3, 0)

        result = controller.refresh(now)

        assert isinstance(result.decision, Transition)
        assert result.decision.current_is_dark is False
        assert result.decision.next_is_dark is True
        assert local_hm(result.decision.next_transition, "Asia/Tokyo") == pytest.approx(19.0, abs=10 / 60)
        assert applier.calls == [False]

    def test_detected_location_without_timezone_uses_configured_one(self, applier, noon):
        config = Config(timezone="US/Pacific", automatic_location=True)
        controller = AppearanceController(config, applier, FakeLocationProvider(SAN_FRANCISCO))

        result = controller.refresh(noon)

        assert controller.timezone_for(controller.resolved_location()) == controller.tz
        assert result.decision.current_is_dark is False

    def test_failed_poll_switches_back_to_manual_coordinate(self, applier):
        config = manual_config(LONDON, "Europe/London", automatic_location=True)
        provider = FakeLocationProvider(TOKYO, "Asia/Tokyo")
        controller = AppearanceController(config, applier, provider)
        now = make_date(2026, 6, 21, 3, 0)
        controller.refresh(now)

        provider.location = None
        controller.refresh(now + timedelta(minutes=30))

        assert controller.resolved_location() == Location(LONDON, "Europe/London")

    def test_failed_poll_keeps_last_fix_without_manual_coordinate(self, applier, noon):
        config = Config(timezone="US/Pacific", automatic_location=True)
        provider = FakeLocationProvider(TOKYO, "Asia/Tokyo")
        controller = AppearanceController(config, applier, provider)
        controller.refresh(noon)

        provider.location = None
        result = controller.refresh(noon + timedelta(minutes=30))

        assert controller.resolved_location() == Location(TOKYO, "Asia/Tokyo")
        assert result.decision is not None

    def test_state_survives_a_new_controller(self, applier, san_francisco_provider, noon):
        config = Config(timezone="US/Pacific", automatic_location=True)
        state = SchedulerState()
        AppearanceController(config, applier, san_francisco_provider, state=state).refresh(noon)

        reloaded = AppearanceController(config, applier, san_francisco_provider, state=state)
        result = reloaded.refresh(noon + timedelta(minutes=5))

        assert san_francisco_provider.requests == 1
        assert isinstance(result.decision, Transition)


class TestApplyFailures:
    def test_failure_is_recorded_and_cleared(self, noon):
        applier = FakeApplier(dark=True, fail=True)
        controller = AppearanceController(manual_config(), applier)

        result = controller.refresh(noon)

        assert result.applied is False
        assert controller.last_error == "System Events refused the request"
        assert result.plan is not None

        applier.fail = False
        result = controller.refresh(noon + timedelta(minutes=1))

        assert result.applied is True
        assert controller.last_error is None


class TestWeeklyForecast:
    def test_seven_days(self, applier, noon):
        controller = AppearanceController(manual_config(), applier)

        forecast = controller.weekly_forecast(noon)

        assert len(forecast) == 7
        assert forecast[0].date == noon.date()

    def test_empty_without_coordinate(self, applier, unavailable_provider, noon):
        config = Config(timezone="US/Pacific", automatic_location=True)
        controller = AppearanceController(config, applier, unavailable_provider)

        assert controller.weekly_forecast(noon) == []
