"""Tests for study_planner.core.availability — events and blocked windows."""

import pytest
from datetime import datetime, time, timedelta

from study_planner.core.availability import (
    blocked_interval_on,
    blocking_windows,
    find_conflicts,
    is_free,
)
from study_planner.core.intervals import TimeInterval
from study_planner.data.models import BlockedTimePreference, CalendarEvent, Priority


def _at(day: datetime, hm: str) -> datetime:
    hour, minute = map(int, hm.split(":"))
    return day.replace(hour=hour, minute=minute)


def _event(day: datetime, start: str, end: str, title: str = "Busy") -> CalendarEvent:
    return CalendarEvent(title=title, interval=TimeInterval(_at(day, start), _at(day, end)))


def _blocked(dow: int, start: str, end: str, priority=Priority.MEDIUM) -> BlockedTimePreference:
    return BlockedTimePreference(
        title="Football",
        day_of_week=dow,
        start_time=time.fromisoformat(start),
        end_time=time.fromisoformat(end),
        priority=priority,
    )


class TestFindConflicts:
    def test_returns_overlapping_events(self, monday):
        events = [_event(monday, "10:00", "11:00", "A"), _event(monday, "12:00", "13:00", "B")]
        cand = TimeInterval(_at(monday, "10:30"), _at(monday, "12:30"))
        assert [e.title for e in find_conflicts(cand, events)] == ["A", "B"]

    def test_touching_event_is_not_a_conflict(self, monday):
        events = [_event(monday, "10:00", "11:00")]
        cand = TimeInterval(_at(monday, "11:00"), _at(monday, "11:45"))
        assert find_conflicts(cand, events) == []


class TestBlockingWindows:
    def test_matching_day_and_time(self, monday):
        cand = TimeInterval(_at(monday, "15:30"), _at(monday, "16:15"))
        assert len(blocking_windows(cand, [_blocked(1, "15:00", "16:30")])) == 1

    def test_other_weekday_ignored(self, monday):
        cand = TimeInterval(_at(monday, "15:30"), _at(monday, "16:15"))
        assert blocking_windows(cand, [_blocked(2, "15:00", "16:30")]) == []

    def test_touching_window_ignored(self, monday):
        cand = TimeInterval(_at(monday, "16:30"), _at(monday, "17:15"))
        assert blocking_windows(cand, [_blocked(1, "15:00", "16:30")]) == []

    def test_candidate_across_midnight_hits_next_day_block(self, monday):
        # Monday 23:30 -> Tuesday 00:30, block Tuesday 00:00-01:00
        cand = TimeInterval(_at(monday, "23:30"), _at(monday, "23:30") + timedelta(hours=1))
        assert len(blocking_windows(cand, [_blocked(2, "00:00", "01:00")])) == 1

    def test_projection_onto_date(self, monday):
        window = blocked_interval_on(_blocked(1, "15:00", "16:30"), monday.date())
        assert window.start == _at(monday, "15:00")
        assert window.end == _at(monday, "16:30")


class TestIsFree:
    def test_free_with_nothing_booked(self, monday):
        cand = TimeInterval(_at(monday, "10:00"), _at(monday, "11:00"))
        assert is_free(cand, [], []) is True

    def test_rejected_by_event(self, monday):
        cand = TimeInterval(_at(monday, "10:00"), _at(monday, "11:00"))
        assert is_free(cand, [_event(monday, "10:30", "12:00")], []) is False

    def test_rejected_by_blocked_time(self, monday):
        cand = TimeInterval(_at(monday, "10:00"), _at(monday, "11:00"))
        assert is_free(cand, [], [_blocked(1, "09:00", "10:30")]) is False

    @pytest.mark.parametrize("priority", list(Priority))
    def test_priority_never_relaxes_a_block(self, monday, priority):
        cand = TimeInterval(_at(monday, "10:00"), _at(monday, "11:00"))
        assert is_free(cand, [], [_blocked(1, "10:00", "11:00", priority)]) is False

    def test_same_time_next_week_is_blocked_too(self, monday):
        next_monday = monday + timedelta(weeks=1)
        cand = TimeInterval(_at(next_monday, "10:00"), _at(next_monday, "11:00"))
        assert is_free(cand, [], [_blocked(1, "10:00", "11:00")]) is False
