"""
StudyPlanner — Plan Assembler.

Maps distributor output onto calendar-event drafts: titles, event kind,
pomodoro work/break split and the JSON description the calendar UI reads.
Also identifies which stored events belong to a previous plan, so that a
regeneration replaces the plan instead of stacking a second copy on top.

No I/O: this module only transforms data.
"""

from __future__ import annotations

import json
import logging
from datetime import timedelta
from typing import TYPE_CHECKING, Iterable, Sequence

from study_planner.core.intervals import TimeInterval
from study_planner.data.models import (
    CalendarEvent,
    CalendarEventDraft,
    EventKind,
    PomodoroBlock,
    PomodoroSettings,
)

if TYPE_CHECKING:
    from study_planner.data.models import GeneratedSession

logger = logging.getLogger(__name__)


def default_title(subject: str) -> str:
    return f"{subject} Study Session"


def pomodoro_blocks(
    interval: TimeInterval, settings: PomodoroSettings
) -> list[PomodoroBlock]:
    """Split ``interval`` into alternating work and break blocks.

    The last block is clipped to the session end, and a break with no work
    after it is dropped.
    """
    blocks: list[PomodoroBlock] = []
    work = timedelta(minutes=settings.work_minutes)
    rest = timedelta(minutes=settings.break_minutes)
    cursor = interval.start
    while cursor < interval.end:
        work_end = min(cursor + work, interval.end)
        blocks.append(PomodoroBlock(TimeInterval(cursor, work_end)))
        cursor = work_end
        if cursor >= interval.end:
            break
        break_end = min(cursor + rest, interval.end)
        if break_end >= interval.end:
            break
        blocks.append(PomodoroBlock(TimeInterval(cursor, break_end), is_break=True))
        cursor = break_end
    return blocks


def _describe(subject: str, pomodoro: PomodoroSettings | None) -> str:
    payload: dict = {"subject": subject, "isPomodoro": pomodoro is not None}
    if pomodoro is not None:
        payload["pomodoroWorkMinutes"] = pomodoro.work_minutes
        payload["pomodoroBreakMinutes"] = pomodoro.break_minutes
    return json.dumps(payload)


def assemble(
    sessions: Sequence[GeneratedSession],
    pomodoro: PomodoroSettings | None = None,
    title: str | None = None,
) -> list[CalendarEventDraft]:
    """Turn generated sessions into calendar-event drafts, preserving order.

    Args:
        sessions: Distributor output.
        pomodoro: When given, each draft carries its work/break split.
        title: Explicit title for every draft; defaults to
            "{subject} Study Session".
    """
    drafts = []
    for session in sessions:
        drafts.append(
            CalendarEventDraft(
                title=title or default_title(session.subject),
                subject=session.subject,
                topic=session.topic,
                interval=session.interval,
                kind=EventKind.STUDY_SESSION,
                description=_describe(session.subject, pomodoro),
                pomodoro_blocks=(
                    pomodoro_blocks(session.interval, pomodoro) if pomodoro else []
                ),
            )
        )
    logger.debug("Assembled %d draft(s)", len(drafts))
    return drafts


def to_calendar_events(
    drafts: Iterable[CalendarEventDraft], plan_id: str, user_id: str
) -> list[CalendarEvent]:
    """Bind drafts to a plan and user, ready for insertion."""
    return [
        CalendarEvent(
            title=d.title,
            interval=d.interval,
            kind=d.kind,
            subject=d.subject,
            topic=d.topic,
            description=d.description,
            plan_id=plan_id,
            user_id=user_id,
        )
        for d in drafts
    ]


def cleanup_previous(
    plan_id: str | None, events: Iterable[CalendarEvent]
) -> list[str]:
    """Ids of the stored events that belong to plan ``plan_id``.

    Returns an empty list when there is no previous plan, so running the
    cleanup twice (or on a fresh user) is a no-op.
    """
    if plan_id is None:
        return []
    ids = [ev.id for ev in events if ev.plan_id == plan_id and ev.id is not None]
    logger.info("Plan %s: %d event(s) marked for removal", plan_id, len(ids))
    return ids
