"""
StudyPlanner — Data Models.

Plain records exchanged between the scheduling engine, the orchestration
layer and storage. Records with an ordering invariant check it on
construction, so an inverted window never reaches the engine as an
always-free or always-blocked slot.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, time
from enum import Enum

from study_planner.core.intervals import TimeInterval
from study_planner.core.recurrence import RecurrenceRule


class ConfidenceLabel(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


class Priority(str, Enum):
    """How strongly a blocked time matters to the user (display only)."""

    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


class EventKind(str, Enum):
    STUDY_SESSION = "study_session"
    REVIEW_SESSION = "review_session"
    OTHER = "other"


def _check_day_of_week(day: int) -> None:
    if not 0 <= day <= 6:
        raise ValueError(f"day_of_week must be in 0..6 (Sunday=0), got {day}")


@dataclass
class CalendarEvent:
    """An entry in the user's study calendar.

    Created by the plan assembler (study sessions), by the review-session
    suggestion flow, or by the user directly. ``plan_id`` links generated
    sessions to the plan that produced them so a regeneration can remove
    them as a unit.
    """

    title: str
    interval: TimeInterval
    kind: EventKind = EventKind.OTHER
    id: str | None = None
    subject: str = ""
    topic: str = ""
    description: str = ""
    recurrence: RecurrenceRule | None = None
    source_session_id: str | None = None
    plan_id: str | None = None
    user_id: str | None = None


@dataclass
class BlockedTimePreference:
    """A recurring weekly window the user declared unavailable.

    Same-day windows only: ``start_time`` must be before ``end_time``.
    """

    title: str
    day_of_week: int        # 0..6, Sunday = 0
    start_time: time
    end_time: time
    priority: Priority = Priority.MEDIUM
    reason: str = ""
    id: str | None = None

    def __post_init__(self) -> None:
        _check_day_of_week(self.day_of_week)
        if self.start_time >= self.end_time:
            raise ValueError(
                f"Blocked time '{self.title}' must start before it ends: "
                f"{self.start_time:%H:%M} >= {self.end_time:%H:%M}"
            )
        self.priority = Priority(self.priority)


@dataclass
class StudySlotTemplate:
    """A recurring weekly window eligible to host one study session."""

    day_of_week: int          # 0..6, Sunday = 0
    preferred_start_hour: int
    duration_minutes: int
    subject: str | None = None

    def __post_init__(self) -> None:
        _check_day_of_week(self.day_of_week)
        if not 0 <= self.preferred_start_hour <= 23:
            raise ValueError(
                f"preferred_start_hour must be in 0..23, got {self.preferred_start_hour}"
            )
        if self.duration_minutes <= 0:
            raise ValueError(
                f"duration_minutes must be positive, got {self.duration_minutes}"
            )


@dataclass
class SubjectPreference:
    subject: str
    confidence: ConfidenceLabel

    def __post_init__(self) -> None:
        self.confidence = ConfidenceLabel(self.confidence)


@dataclass
class GeneratedSession:
    """One dated study session produced by the distributor, not yet persisted."""

    subject: str
    interval: TimeInterval
    day_label: str          # e.g. "Monday"
    formatted_start: str    # e.g. "Monday, 4:00 PM"
    formatted_end: str      # e.g. "4:45 PM"
    topic: str = ""


@dataclass
class PomodoroSettings:
    work_minutes: int = 25
    break_minutes: int = 5

    def __post_init__(self) -> None:
        if self.work_minutes <= 0 or self.break_minutes <= 0:
            raise ValueError(
                "Pomodoro work and break minutes must be positive, got "
                f"{self.work_minutes}/{self.break_minutes}"
            )


@dataclass
class PomodoroBlock:
    interval: TimeInterval
    is_break: bool = False


@dataclass
class CalendarEventDraft:
    """A session ready to hand to storage: titled, typed and annotated."""

    title: str
    subject: str
    interval: TimeInterval
    kind: EventKind = EventKind.STUDY_SESSION
    topic: str = ""
    description: str = ""
    pomodoro_blocks: list[PomodoroBlock] = field(default_factory=list)


@dataclass
class StudyPlan:
    """One generation pass, replaced as a unit on regeneration."""

    id: str
    user_id: str
    name: str
    start_date: date
    end_date: date
    is_active: bool = True
