"""
StudyPlanner — Plan Service.

UI-agnostic orchestration around the pure scheduling engine:
load calendar -> distribute -> assemble -> persist, and return structured
response objects a UI can render directly.

Regenerating a plan is a two-phase replace, run only after the new sessions
have been distributed (a plan that cannot be built leaves the old one alone):

1. cleanup — delete the events of the user's active plan, then the plan row;
2. insert — create a new plan row and insert its events.

Storage calls are not transactional across the two phases. A failure in
either phase is recovered by running the whole flow again: cleanup of an
already-removed plan is a no-op, and a failed insert removes whatever it
managed to write before reporting the error.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from enum import Enum
from typing import TYPE_CHECKING, Sequence
from zoneinfo import ZoneInfo

from study_planner.config import settings
from study_planner.core.distributor import (
    MAX_DEFERRAL_WEEKS,
    default_study_slots,
    distribute,
    expected_session_count,
)
from study_planner.core.intervals import TimeInterval, local_naive
from study_planner.core.plan_assembler import (
    assemble,
    cleanup_previous,
    to_calendar_events,
)
from study_planner.core.slot_finder import (
    DEFAULT_SEARCH_WINDOW,
    PreferredTime,
    find_next,
)
from study_planner.data.models import (
    CalendarEvent,
    EventKind,
    GeneratedSession,
    PomodoroSettings,
)
from study_planner.ports.calendar_port import CalendarError

if TYPE_CHECKING:
    from study_planner.data.models import (
        BlockedTimePreference,
        StudySlotTemplate,
        SubjectPreference,
    )
    from study_planner.ports.calendar_port import StudyCalendarPort

logger = logging.getLogger(__name__)

PLAN_NAME = "Personalized Study Plan"
PLAN_MIN_LENGTH = timedelta(days=30)


# ---------------------------------------------------------------------------
# Response types
# ---------------------------------------------------------------------------


class ResponseKind(Enum):
    SUCCESS = "success"
    ERROR = "error"
    NO_SLOT = "no_slot"


@dataclass
class ServiceResponse:
    kind: ResponseKind
    message: str


@dataclass
class PlanResponse(ServiceResponse):
    plan_id: str = ""
    sessions: list[GeneratedSession] = field(default_factory=list)
    event_ids: list[str] = field(default_factory=list)
    warning: str = ""


@dataclass
class ReviewSessionResponse(ServiceResponse):
    event: CalendarEvent | None = None


@dataclass
class NoSlotResponse(ServiceResponse):
    pass


@dataclass
class ErrorResponse(ServiceResponse):
    pass


def _error(message: str) -> ErrorResponse:
    return ErrorResponse(kind=ResponseKind.ERROR, message=message)


# ---------------------------------------------------------------------------
# Slot search state machine
# ---------------------------------------------------------------------------


class SearchState(Enum):
    IDLE = "idle"
    SEARCHING = "searching"
    FOUND = "found"
    EXHAUSTED = "exhausted"


class SlotSearch:
    """One slot-finder run with an explicit lifecycle.

    IDLE -> SEARCHING -> FOUND | EXHAUSTED. ``reset()`` returns to IDLE; a
    second ``run()`` without a reset is a programming error.
    """

    def __init__(self) -> None:
        self.state = SearchState.IDLE
        self.result: datetime | None = None

    def run(
        self,
        start: datetime,
        duration_minutes: int,
        existing_events: Sequence[CalendarEvent],
        blocked_times: Sequence[BlockedTimePreference],
        preferred_time: PreferredTime | str | None = None,
        search_window: timedelta = DEFAULT_SEARCH_WINDOW,
    ) -> datetime | None:
        if self.state is not SearchState.IDLE:
            raise RuntimeError(f"Cannot start a slot search in state {self.state.value}")

        self.state = SearchState.SEARCHING
        try:
            self.result = find_next(
                start, duration_minutes, existing_events, blocked_times,
                preferred_time=preferred_time, search_window=search_window,
            )
        except Exception:
            self.state = SearchState.IDLE
            raise

        self.state = SearchState.FOUND if self.result is not None else SearchState.EXHAUSTED
        return self.result

    def reset(self) -> None:
        self.state = SearchState.IDLE
        self.result = None


# ---------------------------------------------------------------------------
# Service
# ---------------------------------------------------------------------------


class PlanService:
    """Generates, replaces and supplements a user's study plan."""

    def __init__(
        self,
        calendar: StudyCalendarPort,
        pomodoro: PomodoroSettings | None = None,
        weeks_ahead: int | None = None,
        search_window: timedelta | None = None,
    ) -> None:
        self._calendar = calendar
        self._pomodoro = pomodoro or PomodoroSettings(
            work_minutes=settings.POMODORO_WORK_MINUTES,
            break_minutes=settings.POMODORO_BREAK_MINUTES,
        )
        if weeks_ahead is None:
            weeks_ahead = settings.PLAN_WEEKS_AHEAD
        if search_window is None:
            search_window = timedelta(days=settings.SEARCH_WINDOW_DAYS)
        self._weeks_ahead = weeks_ahead
        self._search_window = search_window
        self._zone = ZoneInfo(settings.TIMEZONE)

    def _local(self, moment: datetime | None) -> datetime:
        """Naive wall-clock time in settings.TIMEZONE, as stored by the calendar."""
        if moment is None:
            moment = datetime.now(self._zone)
        return local_naive(moment, self._zone)

    async def cleanup_previous_plan(self, user_id: str) -> int:
        """Phase 1: remove the active plan and its events. Returns events removed.

        Events go first, then the plan row, so an interrupted cleanup leaves
        at worst an empty plan row that the next run removes.

        Raises:
            CalendarError: if storage fails; nothing is half-inserted at
                this point, so the caller can simply retry.
        """
        plan = await self._calendar.get_active_plan(user_id)
        if plan is None:
            logger.debug("User %s has no active plan to clean up", user_id)
            return 0

        events = await self._calendar.list_plan_events(plan.id)
        ids = cleanup_previous(plan.id, events)
        if ids:
            await self._calendar.delete_events(ids)
        await self._calendar.delete_plan(plan.id)
        logger.info(
            "Previous plan %s of user %s removed (%d event(s))", plan.id, user_id, len(ids),
        )
        return len(ids)

    async def _rollback_plan(self, plan_id: str) -> None:
        """Best-effort removal of a half-written plan after a failed insert."""
        try:
            events = await self._calendar.list_plan_events(plan_id)
            ids = cleanup_previous(plan_id, events)
            if ids:
                await self._calendar.delete_events(ids)
            await self._calendar.delete_plan(plan_id)
        except CalendarError as exc:
            logger.error("Rollback of plan %s failed: %s", plan_id, exc)

    async def generate_plan(
        self,
        user_id: str,
        subjects: Sequence[SubjectPreference],
        slots: Sequence[StudySlotTemplate],
        now: datetime | None = None,
        use_default_slots: bool = False,
    ) -> PlanResponse | ErrorResponse:
        """Replace the user's study plan with a freshly generated one.

        Args:
            user_id: Owner of the calendar.
            subjects: Subjects with confidence labels.
            slots: Weekly slot templates. When empty, the plan is refused
                unless ``use_default_slots`` asks for the weekday-afternoon pool.
            now: Reference instant, naive wall-clock or aware (defaults to now
                in settings.TIMEZONE). Sessions come back as naive wall-clock
                time in settings.TIMEZONE.
            use_default_slots: Fall back to the default slot pool.

        Returns:
            PlanResponse on success (``warning`` set when fewer sessions were
            placed than the subjects' quotas imply), ErrorResponse otherwise.
        """
        if not subjects:
            return _error("Pick at least one subject before generating a study plan.")

        if not slots:
            if not use_default_slots:
                return _error(
                    "Set up your weekly study availability before generating a plan."
                )
            logger.info("User %s has no study slots; using the default pool", user_id)
            slots = default_study_slots()

        now = self._local(now)

        # Read the calendar the new plan must fit around. The active plan's
        # own sessions are about to be replaced, so they do not count as busy.
        horizon = now + timedelta(weeks=self._weeks_ahead + MAX_DEFERRAL_WEEKS + 1)
        try:
            previous = await self._calendar.get_active_plan(user_id)
            existing = await self._calendar.list_events(user_id, now, horizon)
            blocked = await self._calendar.list_blocked_times(user_id)
        except CalendarError as exc:
            logger.error("Plan generation for user %s failed to load calendar: %s", user_id, exc)
            return _error("Couldn't load your calendar. Please try again.")

        if previous is not None:
            existing = [ev for ev in existing if ev.plan_id != previous.id]

        sessions = distribute(
            subjects, slots,
            weeks_ahead=self._weeks_ahead, now=now,
            existing_events=existing, blocked_times=blocked,
        )
        if not sessions:
            logger.info("No sessions placed for user %s; previous plan kept", user_id)
            return _error(
                "None of your study slots are free in the coming weeks. "
                "Add more availability or remove some blocked times."
            )

        drafts = assemble(sessions, pomodoro=self._pomodoro)

        # Phase 1: cleanup, only once the new plan is known to be buildable.
        try:
            await self.cleanup_previous_plan(user_id)
        except CalendarError as exc:
            logger.error("Removing previous plan of user %s failed: %s", user_id, exc)
            return _error("Couldn't replace your previous study plan. Please try again.")

        # Phase 2: insert.
        start_date = now.date()
        last_day = sessions[-1].interval.end.date()
        end_date = max(start_date + PLAN_MIN_LENGTH, last_day)
        plan_id: str | None = None
        try:
            plan = await self._calendar.create_plan(user_id, PLAN_NAME, start_date, end_date)
            plan_id = plan.id
            event_ids = await self._calendar.insert_events(
                to_calendar_events(drafts, plan.id, user_id)
            )
        except CalendarError as exc:
            logger.error("Saving plan for user %s failed: %s", user_id, exc)
            if plan_id is not None:
                await self._rollback_plan(plan_id)
            return _error("Couldn't save your study plan. Nothing was kept, please try again.")

        warning = ""
        expected = expected_session_count(subjects)
        if len(sessions) < expected:
            warning = (
                f"Only {len(sessions)} of {expected} sessions fit into your schedule. "
                "Add more study slots to cover every subject."
            )
            logger.warning("User %s: %s", user_id, warning)

        logger.info(
            "Plan %s for user %s: %d session(s) saved", plan_id, user_id, len(event_ids),
        )
        return PlanResponse(
            kind=ResponseKind.SUCCESS,
            message=f"Your week has been planned! {len(sessions)} study sessions added.",
            plan_id=plan_id,
            sessions=sessions,
            event_ids=event_ids,
            warning=warning,
        )

    async def suggest_review_session(
        self,
        user_id: str,
        subject: str,
        start: datetime,
        duration_minutes: int = 45,
        preferred_time: PreferredTime | str | None = None,
        search_window: timedelta | None = None,
        topic: str = "",
        source_session_id: str | None = None,
    ) -> ReviewSessionResponse | NoSlotResponse | ErrorResponse:
        """Book a review session in the next free slot, if there is one.

        Exhaustion is not an error: the caller gets a NoSlotResponse and
        carries on without the review session.
        """
        window = self._search_window if search_window is None else search_window
        start = self._local(start)
        try:
            existing = await self._calendar.list_events(
                user_id, start, start + window + timedelta(days=1),
            )
            blocked = await self._calendar.list_blocked_times(user_id)
        except CalendarError as exc:
            logger.error("Review search for user %s failed to load calendar: %s", user_id, exc)
            return _error("Couldn't load your calendar. Please try again.")

        search = SlotSearch()
        found = search.run(
            start, duration_minutes, existing, blocked,
            preferred_time=preferred_time, search_window=window,
        )
        if search.state is SearchState.EXHAUSTED:
            return NoSlotResponse(
                kind=ResponseKind.NO_SLOT,
                message=(
                    f"No suitable slot found for a {subject} review session, "
                    "continuing without one."
                ),
            )

        event = CalendarEvent(
            title=f"{subject} Review Session",
            interval=TimeInterval.from_duration(found, duration_minutes),
            kind=EventKind.REVIEW_SESSION,
            subject=subject,
            topic=topic,
            source_session_id=source_session_id,
            user_id=user_id,
        )
        try:
            await self._calendar.insert_events([event])
        except CalendarError as exc:
            logger.error("Saving review session for user %s failed: %s", user_id, exc)
            return _error("Couldn't save the review session. Please try again.")

        return ReviewSessionResponse(
            kind=ResponseKind.SUCCESS,
            message=f"{subject} review session booked for {found:%A %H:%M}.",
            event=event,
        )
