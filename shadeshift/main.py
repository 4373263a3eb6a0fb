"""Main entry point and daemon loop for Shadeshift."""

import argparse
import logging
import signal
import sys
import time
from datetime import datetime, tzinfo
from pathlib import Path
from typing import Optional

from shadeshift.config import Config, create_default_config, get_default_config_path
from shadeshift.controller import AppearanceController
from shadeshift.models import Location, RefreshPlan, Transition
from shadeshift.refresh_scheduler import plan_next_wake
from shadeshift.status import (
    describe_decision,
    describe_solar_day,
    format_remaining_time,
    next_countdown_update,
)
from shadeshift.theme_applier import ApplyError, create_applier


logger = logging.getLogger(__name__)


def setup_logging(verbose: bool = False):
    """Configure logging for stdout (systemd compatible)."""
    level = logging.DEBUG if verbose else logging.INFO
    logging.basicConfig(
        level=level,
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
        handlers=[logging.StreamHandler(sys.stdout)]
    )


def sleep_seconds_until(plan: Optional[RefreshPlan], now: datetime, fallback: int) -> float:
    """
    Seconds to sleep before the next evaluation.

    Args:
        plan: Planned wake, or None when nothing is scheduled
        now: Current instant
        fallback: Safety ceiling in seconds
    """
    if plan is None:
        return float(fallback)
    return max(0.0, min((plan.next_wake - now).total_seconds(), float(fallback)))


class WakeTimer:
    """The daemon's single pending wake; SIGHUP cuts it short."""

    # Longest stretch slept without checking for a reload request
    POLL_SECONDS = 1.0

    def __init__(self):
        self.reload_requested = False

    def handle_sighup(self, signum, frame):
        self.reload_requested = True

    def sleep(self, seconds: float):
        """Sleep for seconds, returning early once a reload is requested."""
        deadline = time.monotonic() + seconds
        while not self.reload_requested:
            remaining = deadline - time.monotonic()
            if remaining <= 0:
                return
            time.sleep(min(remaining, self.POLL_SECONDS))
        logger.debug("Wake cancelled by reload request")


def run_daemon(config: Config, config_path: Path, verbose: bool = False):
    """
    Run the appearance switching daemon.

    Args:
        config: Configuration object
        config_path: Where the configuration was loaded from (for reloads)
        verbose: Enable verbose logging
    """
    setup_logging(verbose)
    logger.info("Starting Shadeshift daemon...")

    controller = AppearanceController.from_config(config)
    timer = WakeTimer()
    signal.signal(signal.SIGHUP, timer.handle_sighup)

    force_location = True

    # Main daemon loop
    logger.info("Daemon loop started")
    while True:
        try:
            if timer.reload_requested:
                timer.reload_requested = False
                logger.info("Reloading configuration...")
                try:
                    config = Config.load(config_path)
                    controller = AppearanceController.from_config(config, state=controller.state)
                    force_location = True
                except (FileNotFoundError, ValueError) as e:
                    logger.error(f"Keeping previous configuration: {e}")

            now = datetime.now(controller.tz)
            result = controller.refresh(now, force_location=force_location)
            force_location = False

            sleep_seconds = sleep_seconds_until(result.plan, now, config.check_interval_fallback)
            logger.debug(f"Sleeping for {int(sleep_seconds)}s")
            timer.sleep(sleep_seconds)

        except KeyboardInterrupt:
            logger.info("Received interrupt signal, shutting down...")
            break
        except Exception as e:
            logger.error(f"Error in daemon loop: {e}", exc_info=True)
            timer.sleep(config.check_interval_fallback)


def run_once(config: Config, mode: str = None):
    """
    Apply the appearance once and exit.

    Args:
        config: Configuration object
        mode: 'light' or 'dark' to force, or None to follow the schedule
    """
    setup_logging(verbose=True)

    if mode:
        applier = create_applier(config.theme_applier)
        try:
            applier.apply(mode == 'dark')
        except ApplyError as e:
            logger.error(f"Failed to set appearance: {e}")
            sys.exit(1)
        logger.info(f"Appearance set to {mode} mode")
        return

    controller = AppearanceController.from_config(config)
    now = datetime.now(controller.tz)
    result = controller.refresh(now, force_location=True)

    if result.decision is None:
        logger.error("No location available. Add manual coordinates to the configuration.")
        sys.exit(1)
    if controller.last_error:
        sys.exit(1)
    logger.info("Appearance is up to date")


def run_status(config: Config, watch: bool = False):
    """
    Show the current decision and next transition (for testing).

    Args:
        config: Configuration object
        watch: Keep printing the countdown until interrupted
    """
    controller = AppearanceController.from_config(config)
    now = datetime.now(controller.tz)
    if controller.polls_location:
        controller.poll_location(now)
    location = controller.resolved_location()
    tz = controller.timezone_for(location)
    now = now.astimezone(tz)
    decision = controller.evaluate(now, location)

    print(f"\nCurrent time: {now.strftime('%Y-%m-%d %H:%M:%S %Z')}")
    if location:
        coordinate = location.coordinate
        print(f"Location: {coordinate.latitude:.4f}, {coordinate.longitude:.4f} ({tz})")
        today, _ = controller.sun_calculator(location).get_solar_days(now)
        sunrise_text, sunset_text = describe_solar_day(today, tz)
        print(f"\nSun times for today:")
        print(f"  Sunrise:     {sunrise_text}")
        print(f"  Sunset:      {sunset_text}")

    print(f"\nAppearance: {config.appearance.value} ({config.schedule_mode.value})")
    if decision is not None:
        print(f"Current mode: {'Dark' if decision.target_is_dark else 'Light'}")
    print(describe_decision(decision, now, tz))

    if isinstance(decision, Transition):
        print(f"\nNext transition: {decision.next_transition.astimezone(tz).strftime('%Y-%m-%d %H:%M:%S')}")
        print(f"Time until transition: {format_remaining_time(decision.next_transition, now)}")

    plan = plan_next_wake(
        now,
        decision,
        is_automatic_mode=config.is_automatic,
        requires_location=controller.polls_location,
        last_location_poll=controller.state.last_location_poll,
        timezone=tz,
    )
    if plan:
        print(f"Next check: {plan.next_wake.astimezone(tz).strftime('%Y-%m-%d %H:%M:%S')}\n")
    else:
        print("Next check: none scheduled\n")

    if watch:
        watch_countdown(controller, location, tz)


def watch_countdown(controller: AppearanceController, location: Optional[Location], tz: tzinfo):
    """Print the one-line status each time its minute countdown changes, until Ctrl+C."""
    try:
        while True:
            now = datetime.now(tz)
            decision = controller.evaluate(now, location)
            print(describe_decision(decision, now, tz), flush=True)

            transition = decision.next_transition if isinstance(decision, Transition) else None
            redraw_at = next_countdown_update(now, transition)
            time.sleep(max(0.0, (redraw_at - datetime.now(tz)).total_seconds()))
    except KeyboardInterrupt:
        print()


def run_week(config: Config):
    """Print the sunrise/sunset preview for the next seven days."""
    controller = AppearanceController.from_config(config)
    now = datetime.now(controller.tz)
    if controller.polls_location:
        controller.poll_location(now)
    forecast = controller.weekly_forecast(now)

    if not forecast:
        print("No location available. Add manual coordinates to the configuration.", file=sys.stderr)
        sys.exit(1)

    tz = controller.timezone_for(controller.resolved_location())
    print()
    for row in forecast:
        sunrise_text, sunset_text = describe_solar_day(row.solar_day, tz)
        print(f"  {row.date.strftime('%a %Y-%m-%d')}  {sunrise_text:>12}  {sunset_text:>12}")
    print()


def init_config():
    """Generate a configuration template."""
    config_path = get_default_config_path()

    if config_path.exists():
        response = input(f"Config file already exists at {config_path}. Overwrite? [y/N] ")
        if response.lower() != 'y':
            print("Aborted.")
            return

    create_default_config(config_path)
    print(f"Configuration template created at: {config_path}")
    print("\nPlease edit this file with your location and schedule.")


def cli():
    """Command-line interface entry point."""
    parser = argparse.ArgumentParser(
        description="Shadeshift - Sunrise/sunset based light and dark mode switcher"
    )
    parser.add_argument(
        '--config', '-c',
        type=Path,
        help='Path to configuration file (default: ~/.config/shadeshift/config.yaml)'
    )
    parser.add_argument(
        '--verbose', '-v',
        action='store_true',
        help='Enable verbose logging'
    )

    subparsers = parser.add_subparsers(dest='command', help='Commands')

    # Status command
    status_parser = subparsers.add_parser('status', help='Show current mode and next transition')
    status_parser.add_argument(
        '--watch', '-w',
        action='store_true',
        help='Keep updating the countdown until interrupted'
    )

    # Once command
    once_parser = subparsers.add_parser('once', help='Apply appearance once and exit')
    once_parser.add_argument(
        '--mode',
        choices=['light', 'dark'],
        help='Specific mode to set (default: follow schedule)'
    )

    # Week command
    subparsers.add_parser('week', help='Show sunrise and sunset for the next seven days')

    # Init command
    subparsers.add_parser('init', help='Generate configuration template')

    args = parser.parse_args()

    # Handle init command (doesn't need config)
    if args.command == 'init':
        init_config()
        return

    # Load configuration
    config_path = args.config or get_default_config_path()

    try:
        config = Config.load(config_path)
    except FileNotFoundError:
        print(f"Error: Configuration file not found: {config_path}", file=sys.stderr)
        print(f"Run 'shadeshift init' to create a template.", file=sys.stderr)
        sys.exit(1)
    except ValueError as e:
        print(f"Error: Invalid configuration: {e}", file=sys.stderr)
        sys.exit(1)

    # Execute command
    if args.command == 'status':
        run_status(config, watch=args.watch)
    elif args.command == 'once':
        run_once(config, mode=args.mode)
    elif args.command == 'week':
        run_week(config)
    else:
        # Default: run daemon
        run_daemon(config, config_path, verbose=args.verbose)


if __name__ == '__main__':
    cli()
