"""Availability resolver — decides whether a candidate interval is free.

Two kinds of negative constraints are consulted:

- booked calendar events (absolute intervals), and
- weekly blocked times (wall-clock windows on a weekday), projected onto
  every calendar day the candidate touches.

Blocked-time priority is informational only; every matching window is a
hard constraint.

No I/O: this module only transforms data.
"""

from __future__ import annotations

import logging
from datetime import date, datetime, timedelta
from typing import TYPE_CHECKING, Iterable

from study_planner.core.intervals import TimeInterval, overlaps
from study_planner.core.recurrence import day_of_week

if TYPE_CHECKING:
    from study_planner.data.models import BlockedTimePreference, CalendarEvent

logger = logging.getLogger(__name__)


def _days_touched(candidate: TimeInterval) -> list[date]:
    """Calendar days covered by ``candidate`` (its end instant is excluded)."""
    first = candidate.start.date()
    last = (candidate.end - timedelta(microseconds=1)).date()
    days = []
    d = first
    while d <= last:
        days.append(d)
        d += timedelta(days=1)
    return days


def blocked_interval_on(
    blocked: BlockedTimePreference, day: date, tzinfo=None
) -> TimeInterval:
    """Project a weekly blocked window onto a concrete date."""
    return TimeInterval(
        datetime.combine(day, blocked.start_time, tzinfo=tzinfo),
        datetime.combine(day, blocked.end_time, tzinfo=tzinfo),
    )


def find_conflicts(
    candidate: TimeInterval, existing_events: Iterable[CalendarEvent]
) -> list[CalendarEvent]:
    """Return the booked events whose interval overlaps ``candidate``."""
    return [ev for ev in existing_events if overlaps(candidate, ev.interval)]


def blocking_windows(
    candidate: TimeInterval, blocked_times: Iterable[BlockedTimePreference]
) -> list[BlockedTimePreference]:
    """Return the blocked windows that intersect ``candidate`` on a matching day."""
    days = _days_touched(candidate)
    hits = []
    for blocked in blocked_times:
        for day in days:
            if day_of_week(day) != blocked.day_of_week:
                continue
            window = blocked_interval_on(blocked, day, tzinfo=candidate.start.tzinfo)
            if overlaps(candidate, window):
                hits.append(blocked)
                break
    return hits


def is_free(
    candidate: TimeInterval,
    existing_events: Iterable[CalendarEvent],
    blocked_times: Iterable[BlockedTimePreference],
) -> bool:
    """True only if ``candidate`` clears every booked event and blocked window."""
    conflicts = find_conflicts(candidate, existing_events)
    if conflicts:
        logger.debug(
            "%s conflicts with %d event(s): %s",
            candidate.start.isoformat(), len(conflicts),
            ", ".join(ev.title for ev in conflicts),
        )
        return False

    blocks = blocking_windows(candidate, blocked_times)
    if blocks:
        logger.debug(
            "%s falls in blocked time: %s",
            candidate.start.isoformat(), ", ".join(b.title for b in blocks),
        )
        return False

    return True
