"""Tests for study_planner.data.db — PlannerDB (SQLite storage)."""

import pytest
from datetime import date, datetime, time, timedelta
from zoneinfo import ZoneInfo

from study_planner.core.intervals import TimeInterval
from study_planner.core.recurrence import Daily, Monthly, RecurrenceRule, Weekly
from study_planner.data.db import PlannerDB
from study_planner.data.models import (
    BlockedTimePreference,
    CalendarEvent,
    ConfidenceLabel,
    EventKind,
    Priority,
    StudySlotTemplate,
    SubjectPreference,
)


def _event(start: datetime, minutes: int = 60, **kwargs) -> CalendarEvent:
    kwargs.setdefault("title", "Event")
    kwargs.setdefault("user_id", "u1")
    return CalendarEvent(interval=TimeInterval.from_duration(start, minutes), **kwargs)


class TestEvents:
    def test_insert_assigns_ids(self, planner_db, monday):
        ev = _event(monday.replace(hour=10))
        ids = planner_db.insert_events([ev])
        assert len(ids) == 1
        assert ev.id == ids[0]

    def test_round_trip_fields(self, planner_db, monday):
        ev = _event(
            monday.replace(hour=10), title="Maths Study Session", subject="Maths",
            topic="Algebra", kind=EventKind.STUDY_SESSION, plan_id="p1",
            description='{"isPomodoro": true}',
        )
        [event_id] = planner_db.insert_events([ev])
        loaded = planner_db.get_event(event_id)
        assert loaded == ev

    def test_list_events_in_range(self, planner_db, monday):
        planner_db.insert_events([
            _event(monday.replace(hour=10), title="inside"),
            _event(monday + timedelta(days=3), title="outside"),
            _event(monday.replace(hour=9), title="other user", user_id="u2"),
        ])
        events = planner_db.list_events("u1", monday, monday + timedelta(days=1))
        assert [e.title for e in events] == ["inside"]

    def test_list_events_touching_range_end_excluded(self, planner_db, monday):
        planner_db.insert_events([_event(monday + timedelta(days=1), title="tomorrow")])
        assert planner_db.list_events("u1", monday, monday + timedelta(days=1)) == []

    def test_recurring_event_expanded(self, planner_db, monday):
        ev = _event(
            monday.replace(hour=18), title="Swimming",
            recurrence=RecurrenceRule(Weekly(1, frozenset({1, 3}))),
        )
        planner_db.insert_events([ev])
        events = planner_db.list_events("u1", monday, monday + timedelta(weeks=2))
        assert [e.interval.start.day for e in events] == [19, 21, 26, 28]
        assert all(e.id == ev.id for e in events)

    def test_recurring_event_respects_end_date(self, planner_db, monday):
        rule = RecurrenceRule(Daily(), end_date=monday + timedelta(days=2, hours=23))
        planner_db.insert_events([_event(monday.replace(hour=7), recurrence=rule)])
        events = planner_db.list_events("u1", monday, monday + timedelta(weeks=1))
        assert len(events) == 3

    def test_long_running_series_reaches_window(self, planner_db, monday):
        rule = RecurrenceRule(Daily())
        start = monday.replace(hour=16) - timedelta(days=1500)
        planner_db.insert_events([_event(start, title="Feed the cat", recurrence=rule)])
        events = planner_db.list_events("u1", monday, monday + timedelta(days=1))
        assert [e.interval.start for e in events] == [monday.replace(hour=16)]

    def test_long_running_weekly_series(self, planner_db, monday):
        rule = RecurrenceRule(Weekly(1, frozenset({1, 3})))
        start = monday.replace(hour=18) - timedelta(weeks=600)
        planner_db.insert_events([_event(start, recurrence=rule)])
        events = planner_db.list_events("u1", monday, monday + timedelta(weeks=1))
        assert [e.interval.start.day for e in events] == [19, 21]

    def test_recurrence_round_trip(self, planner_db, monday):
        for rule in (
            RecurrenceRule(Daily(2)),
            RecurrenceRule(Weekly(1, frozenset({0, 6})), datetime(2027, 1, 1)),
            RecurrenceRule(Monthly(3)),
        ):
            ev = _event(monday.replace(hour=8), recurrence=rule)
            [event_id] = planner_db.insert_events([ev])
            assert planner_db.get_event(event_id).recurrence == rule

    def test_delete_events(self, planner_db, monday):
        ids = planner_db.insert_events([_event(monday), _event(monday + timedelta(hours=2))])
        assert planner_db.delete_events(ids[:1]) == 1
        assert planner_db.get_event(ids[0]) is None
        assert planner_db.get_event(ids[1]) is not None

    def test_delete_nothing(self, planner_db):
        assert planner_db.delete_events([]) == 0

    def test_delete_unknown_ids_ignored(self, planner_db):
        assert planner_db.delete_events(["missing"]) == 0


class TestPlans:
    def test_create_and_get_active(self, planner_db):
        plan = planner_db.create_plan("u1", start_date=date(2026, 10, 19))
        assert plan.end_date == date(2026, 11, 18)
        assert planner_db.get_active_plan("u1") == plan

    def test_no_active_plan(self, planner_db):
        assert planner_db.get_active_plan("nobody") is None

    def test_delete_plan(self, planner_db):
        plan = planner_db.create_plan("u1")
        assert planner_db.delete_plan(plan.id) is True
        assert planner_db.get_active_plan("u1") is None
        assert planner_db.delete_plan(plan.id) is False

    def test_list_plan_events(self, planner_db, monday):
        planner_db.insert_events([
            _event(monday.replace(hour=16), plan_id="p1"),
            _event(monday.replace(hour=17), plan_id="p2"),
        ])
        assert len(planner_db.list_plan_events("p1")) == 1


class TestBlockedTimes:
    def test_add_and_list(self, planner_db):
        planner_db.add_blocked_time("u1", BlockedTimePreference(
            title="Football", day_of_week=3, start_time=time(17), end_time=time(19, 30),
            priority=Priority.HIGH, reason="Team training",
        ))
        [blocked] = planner_db.list_blocked_times("u1")
        assert blocked.id is not None
        assert blocked.start_time == time(17)
        assert blocked.end_time == time(19, 30)
        assert blocked.priority is Priority.HIGH

    def test_delete(self, planner_db):
        blocked = planner_db.add_blocked_time("u1", BlockedTimePreference(
            title="Work", day_of_week=1, start_time=time(9), end_time=time(12),
        ))
        assert planner_db.delete_blocked_time(blocked.id) is True
        assert planner_db.list_blocked_times("u1") == []


class TestSlotsAndSubjects:
    def test_slots_keep_insertion_order(self, planner_db):
        planner_db.add_study_slot("u1", StudySlotTemplate(4, 17, 60))
        planner_db.add_study_slot("u1", StudySlotTemplate(1, 16, 45))
        slots = planner_db.list_study_slots("u1")
        assert [s.day_of_week for s in slots] == [4, 1]

    def test_clear_slots(self, planner_db):
        planner_db.add_study_slot("u1", StudySlotTemplate(1, 16, 45))
        planner_db.clear_study_slots("u1")
        assert planner_db.list_study_slots("u1") == []

    def test_subject_preferences_replace(self, planner_db):
        planner_db.set_subject_preferences("u1", [
            SubjectPreference("Maths", ConfidenceLabel.LOW),
            SubjectPreference("Art", ConfidenceLabel.HIGH),
        ])
        planner_db.set_subject_preferences("u1", [
            SubjectPreference("Science", ConfidenceLabel.MEDIUM),
        ])
        prefs = planner_db.list_subject_preferences("u1")
        assert prefs == [SubjectPreference("Science", ConfidenceLabel.MEDIUM)]


class TestTimeZones:
    def test_aware_times_stored_as_local_wall_clock(self, tmp_db_path, monday):
        db = PlannerDB(db_path=tmp_db_path, timezone="Europe/London")
        utc = ZoneInfo("UTC")
        [event_id] = db.insert_events([
            _event(datetime(2026, 10, 19, 15, tzinfo=utc), title="Call"),
        ])
        assert db.get_event(event_id).interval.start == monday.replace(hour=16)

    def test_aware_and_naive_windows_agree(self, tmp_db_path, monday):
        db = PlannerDB(db_path=tmp_db_path, timezone="Europe/London")
        db.insert_events([_event(monday.replace(hour=16))])
        london = ZoneInfo("Europe/London")
        aware = db.list_events(
            "u1", monday.replace(tzinfo=london), monday.replace(hour=23, tzinfo=london),
        )
        naive = db.list_events("u1", monday, monday.replace(hour=23))
        assert aware == naive
        assert len(naive) == 1
