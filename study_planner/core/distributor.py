"""
StudyPlanner — Session Distributor.

Turns subjects (with confidence labels) and a weekly pool of slot templates
into dated study sessions. Less confident subjects get more sessions per
week; sessions are handed out round-robin over the slot pool, and every time
the pool wraps the assignment moves one week further out, so a slot is never
used twice in the same week.

The output is always sorted by start time. Downstream display and repeated
regenerations rely on that order.
"""

from __future__ import annotations

import logging
from datetime import datetime, time, timedelta
from typing import TYPE_CHECKING, Sequence

from study_planner.core.availability import is_free
from study_planner.core.intervals import TimeInterval, overlaps_any
from study_planner.core.recurrence import WEEKDAY_NAMES, day_of_week
from study_planner.data.models import (
    ConfidenceLabel,
    GeneratedSession,
    StudySlotTemplate,
    SubjectPreference,
)

if TYPE_CHECKING:
    from study_planner.data.models import BlockedTimePreference, CalendarEvent

logger = logging.getLogger(__name__)

SESSIONS_PER_WEEK: dict[ConfidenceLabel, int] = {
    ConfidenceLabel.LOW: 5,
    ConfidenceLabel.MEDIUM: 3,
    ConfidenceLabel.HIGH: 1,
}

# How many extra weeks a clashing session may be pushed back before it is dropped.
MAX_DEFERRAL_WEEKS = 4


def sessions_per_week(confidence: ConfidenceLabel | str) -> int:
    return SESSIONS_PER_WEEK[ConfidenceLabel(confidence)]


def expected_session_count(subjects: Sequence[SubjectPreference]) -> int:
    """Sessions one distribution pass should produce for ``subjects``."""
    return sum(sessions_per_week(s.confidence) for s in subjects)


def default_study_slots() -> list[StudySlotTemplate]:
    """Weekday afternoons at 16:00 for 45 minutes, Monday to Friday."""
    return [
        StudySlotTemplate(day_of_week=day, preferred_start_hour=16, duration_minutes=45)
        for day in range(1, 6)
    ]


def format_clock(moment: datetime) -> str:
    """12-hour clock without a leading zero, e.g. "4:00 PM"."""
    hour = moment.hour % 12 or 12
    suffix = "AM" if moment.hour < 12 else "PM"
    return f"{hour}:{moment.minute:02d} {suffix}"


def next_slot_start(slot: StudySlotTemplate, now: datetime) -> datetime:
    """First start of ``slot`` at or after ``now``."""
    days_ahead = (slot.day_of_week - day_of_week(now)) % 7
    start = datetime.combine(
        now.date() + timedelta(days=days_ahead),
        time(slot.preferred_start_hour),
        tzinfo=now.tzinfo,
    )
    if start < now:
        start += timedelta(weeks=1)
    return start


def build_session(subject: str, interval: TimeInterval) -> GeneratedSession:
    day_label = WEEKDAY_NAMES[day_of_week(interval.start)]
    return GeneratedSession(
        subject=subject,
        interval=interval,
        day_label=day_label,
        formatted_start=f"{day_label}, {format_clock(interval.start)}",
        formatted_end=format_clock(interval.end),
    )


def _round_robin(
    subjects: Sequence[SubjectPreference], slots: Sequence[StudySlotTemplate]
) -> list[tuple[str, StudySlotTemplate, int]]:
    """Flatten subjects × quota into (subject, slot, week_offset) triples.

    One cursor walks the pool for all subjects; each wrap adds a week.
    """
    triples = []
    slot_index = 0
    week_offset = 0
    for pref in subjects:
        for _ in range(sessions_per_week(pref.confidence)):
            if slot_index >= len(slots):
                slot_index = 0
                week_offset += 1
            triples.append((pref.subject, slots[slot_index], week_offset))
            slot_index += 1
    return triples


def distribute(
    subjects: Sequence[SubjectPreference],
    slots: Sequence[StudySlotTemplate],
    weeks_ahead: int | None = None,
    now: datetime | None = None,
    existing_events: Sequence[CalendarEvent] = (),
    blocked_times: Sequence[BlockedTimePreference] = (),
) -> list[GeneratedSession]:
    """Assign dated study sessions to subjects over the weekly slot pool.

    Args:
        subjects: Subjects with their confidence label.
        slots: Weekly slot templates, in the order they should be used.
        weeks_ahead: Optional horizon; sessions landing in week
            ``weeks_ahead`` or later are dropped.
        now: Reference instant (defaults to the current local time).
        existing_events: Booked events a session must not overlap.
        blocked_times: Weekly windows a session must avoid.

    A session that clashes with a booked event, a blocked window or an
    earlier session of this pass is pushed back a week at a time (at most
    ``MAX_DEFERRAL_WEEKS``), and dropped if it still clashes. Compare the
    result length with ``expected_session_count`` to detect drops.

    Returns:
        Sessions sorted by start time. Empty when ``slots`` or ``subjects``
        is empty; the caller must treat that as "cannot generate plan".
    """
    if not slots:
        logger.warning("No study slots supplied, cannot distribute sessions")
        return []
    if not subjects:
        logger.warning("No subjects supplied, nothing to distribute")
        return []

    if now is None:
        now = datetime.now()

    placed: list[TimeInterval] = []
    sessions: list[GeneratedSession] = []
    for subject, slot, week_offset in _round_robin(subjects, slots):
        first = next_slot_start(slot, now)
        interval: TimeInterval | None = None
        for extra in range(MAX_DEFERRAL_WEEKS + 1):
            offset = week_offset + extra
            if weeks_ahead is not None and offset >= weeks_ahead:
                break
            start = first + timedelta(weeks=offset)
            candidate = TimeInterval.from_duration(start, slot.duration_minutes)
            if not overlaps_any(candidate, placed) and is_free(
                candidate, existing_events, blocked_times
            ):
                interval = candidate
                break

        if interval is None:
            logger.warning(
                "Could not place a %s session on %s %02d:00 (week +%d)",
                subject, WEEKDAY_NAMES[slot.day_of_week],
                slot.preferred_start_hour, week_offset,
            )
            continue

        placed.append(interval)
        sessions.append(build_session(subject, interval))

    sessions.sort(key=lambda s: s.interval.start)
    logger.info(
        "Distributed %d session(s) for %d subject(s) over %d slot(s)",
        len(sessions), len(subjects), len(slots),
    )
    return sessions
