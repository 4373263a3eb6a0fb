"""Next wake-up planning, with bounded backoff for stale transitions."""

import logging
from datetime import datetime, timedelta
from typing import Optional

from shadeshift.models import RefreshPlan, ScheduleDecision, Transition
from shadeshift.timeutil import TimezoneLike, start_of_next_day


logger = logging.getLogger(__name__)

LOCATION_POLL_INTERVAL = timedelta(minutes=30)
MAX_STALE_BACKOFF = timedelta(seconds=60)
MAX_STALE_RETRY_COUNT = 6


def stale_backoff(retry_count: int) -> timedelta:
    """Delay before retrying a stale transition: 2**n seconds, capped at 60s."""
    return min(MAX_STALE_BACKOFF, timedelta(seconds=2 ** max(0, retry_count)))


def plan_next_wake(
    now: datetime,
    decision: Optional[ScheduleDecision],
    is_automatic_mode: bool,
    requires_location: bool,
    last_location_poll: Optional[datetime],
    stale_retry_count: int = 0,
    timezone: TimezoneLike = None
) -> Optional[RefreshPlan]:
    """
    Pick the earliest future instant at which the host must recompute.

    Candidates are the decision's transition (or a backoff retry when that
    transition has already passed), the next local midnight in automatic mode,
    and the 30 minute location re-poll.

    Args:
        now: Current instant (timezone-aware)
        decision: Latest decision, or None when none could be made
        is_automatic_mode: Whether the schedule (not a forced mode) is active
        requires_location: Whether the active schedule needs a coordinate
        last_location_poll: When location was last requested, if ever
        stale_retry_count: Host-owned counter from the previous plan
        timezone: Zone defining "next calendar day" (defaults to now.tzinfo)

    Returns:
        RefreshPlan with the updated retry counter, or None when nothing is due
    """
    candidates = []
    retry_count = 0

    if isinstance(decision, Transition):
        if decision.next_transition > now:
            candidates.append(decision.next_transition)
        else:
            delay = stale_backoff(stale_retry_count)
            retry_count = min(stale_retry_count + 1, MAX_STALE_RETRY_COUNT)
            logger.warning(
                f"Transition at {decision.next_transition} already passed, "
                f"retrying in {int(delay.total_seconds())}s (attempt {retry_count})"
            )
            candidates.append(now + delay)

    if is_automatic_mode:
        candidates.append(start_of_next_day(now, timezone))

    if requires_location and last_location_poll is not None:
        candidates.append(last_location_poll + LOCATION_POLL_INTERVAL)

    future = [candidate for candidate in candidates if candidate > now]
    if not future:
        return None

    return RefreshPlan(next_wake=min(future), stale_retry_count=retry_count)
