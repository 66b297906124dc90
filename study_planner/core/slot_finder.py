"""Slot finder — walks forward in 30-minute steps to the next free slot.

The search is confined to the working day (08:00–21:00 wall clock) and to a
caller-supplied search window, so it always terminates. Exhaustion is not an
error: ``find_next`` returns None and the caller decides what to do
(typically: carry on without the optional session).

No I/O: this module only transforms data.
"""

from __future__ import annotations

import logging
from datetime import datetime, time, timedelta
from enum import Enum
from typing import TYPE_CHECKING, Sequence

from study_planner.core.availability import is_free
from study_planner.core.intervals import TimeInterval

if TYPE_CHECKING:
    from study_planner.data.models import BlockedTimePreference, CalendarEvent

logger = logging.getLogger(__name__)

DAY_START_HOUR = 8
DAY_END_HOUR = 21
STEP_MINUTES = 30
DEFAULT_SEARCH_WINDOW = timedelta(days=5)


class PreferredTime(str, Enum):
    MORNING = "morning"
    AFTERNOON = "afternoon"
    EVENING = "evening"
    NIGHT = "night"


PREFERRED_HOURS: dict[PreferredTime, int] = {
    PreferredTime.MORNING: 9,
    PreferredTime.AFTERNOON: 13,
    PreferredTime.EVENING: 17,
    PreferredTime.NIGHT: 20,
}


def _at(moment: datetime, hour: int, day_offset: int = 0) -> datetime:
    """``moment``'s calendar day (plus ``day_offset``) at ``hour``:00."""
    day = moment.date() + timedelta(days=day_offset)
    return datetime.combine(day, time(hour), tzinfo=moment.tzinfo)


def _round_up_to_step(moment: datetime) -> datetime:
    if moment.second or moment.microsecond:
        moment = moment.replace(second=0, microsecond=0) + timedelta(minutes=1)
    remainder = moment.minute % STEP_MINUTES
    if remainder:
        moment += timedelta(minutes=STEP_MINUTES - remainder)
    return moment


def initial_cursor(start: datetime, preferred_time: PreferredTime | str | None) -> datetime:
    """Where the search begins: ``start``, or the preferred hour at/after it."""
    if preferred_time is None:
        return start
    hour = PREFERRED_HOURS[PreferredTime(preferred_time)]
    cursor = _at(start, hour)
    if cursor < start:
        cursor = _at(start, hour, day_offset=1)
    return cursor


def _normalize(cursor: datetime, duration_minutes: int) -> datetime:
    """Snap ``cursor`` onto the step grid inside the working day."""
    cursor = _round_up_to_step(cursor)
    day_open = _at(cursor, DAY_START_HOUR)
    if cursor < day_open:
        return day_open
    if cursor + timedelta(minutes=duration_minutes) > _at(cursor, DAY_END_HOUR):
        return _at(cursor, DAY_START_HOUR, day_offset=1)
    return cursor


def find_next(
    start: datetime,
    duration_minutes: int,
    existing_events: Sequence[CalendarEvent],
    blocked_times: Sequence[BlockedTimePreference],
    preferred_time: PreferredTime | str | None = None,
    search_window: timedelta = DEFAULT_SEARCH_WINDOW,
) -> datetime | None:
    """Find the first free start time for a session of ``duration_minutes``.

    Args:
        start: Earliest acceptable start.
        duration_minutes: Required session length.
        existing_events: Booked events the session must not overlap.
        blocked_times: Weekly windows the session must avoid.
        preferred_time: Optional "morning" / "afternoon" / "evening" / "night";
            moves the first candidate to 09:00 / 13:00 / 17:00 / 20:00.
        search_window: How far past ``start`` the search may go.

    Returns:
        The start of the first free candidate, or None when the window is
        exhausted.
    """
    if duration_minutes <= 0:
        raise ValueError(f"duration_minutes must be positive, got {duration_minutes}")

    working_minutes = (DAY_END_HOUR - DAY_START_HOUR) * 60
    if duration_minutes > working_minutes:
        logger.warning(
            "A %d-minute session cannot fit a %d-minute working day",
            duration_minutes, working_minutes,
        )
        return None

    limit = start + search_window
    step = timedelta(minutes=STEP_MINUTES)
    cursor = _normalize(initial_cursor(start, preferred_time), duration_minutes)

    while cursor < limit:
        candidate = TimeInterval.from_duration(cursor, duration_minutes)
        if is_free(candidate, existing_events, blocked_times):
            logger.info(
                "Free %d-min slot found at %s", duration_minutes, cursor.isoformat(),
            )
            return cursor
        cursor = _normalize(cursor + step, duration_minutes)

    logger.info(
        "No free %d-min slot between %s and %s",
        duration_minutes, start.isoformat(), limit.isoformat(),
    )
    return None
