"""Tests for study_planner.adapters.sqlite_calendar — SQLiteCalendarAdapter."""

import sqlite3

import pytest
from datetime import date, time, timedelta
from unittest.mock import patch

from study_planner.core.intervals import TimeInterval
from study_planner.data.models import BlockedTimePreference, CalendarEvent
from study_planner.ports.calendar_port import CalendarError


class TestSQLiteCalendarAdapter:
    @pytest.mark.asyncio
    async def test_insert_and_list(self, sqlite_calendar, monday):
        ev = CalendarEvent(
            title="Maths Study Session",
            interval=TimeInterval.from_duration(monday.replace(hour=16), 45),
            user_id="u1",
        )
        ids = await sqlite_calendar.insert_events([ev])
        events = await sqlite_calendar.list_events("u1", monday, monday + timedelta(days=1))
        assert [e.id for e in events] == ids

    @pytest.mark.asyncio
    async def test_plan_lifecycle(self, sqlite_calendar, monday):
        plan = await sqlite_calendar.create_plan(
            "u1", "Personalized Study Plan", date(2026, 10, 19), date(2026, 11, 18),
        )
        assert (await sqlite_calendar.get_active_plan("u1")).id == plan.id
        await sqlite_calendar.insert_events([
            CalendarEvent(
                title="x", interval=TimeInterval.from_duration(monday, 30),
                user_id="u1", plan_id=plan.id,
            ),
        ])
        plan_events = await sqlite_calendar.list_plan_events(plan.id)
        await sqlite_calendar.delete_events([e.id for e in plan_events])
        await sqlite_calendar.delete_plan(plan.id)
        assert await sqlite_calendar.get_active_plan("u1") is None
        assert await sqlite_calendar.list_plan_events(plan.id) == []

    @pytest.mark.asyncio
    async def test_blocked_times(self, sqlite_calendar):
        sqlite_calendar.db.add_blocked_time("u1", BlockedTimePreference(
            title="Work", day_of_week=1, start_time=time(9), end_time=time(12),
        ))
        blocked = await sqlite_calendar.list_blocked_times("u1")
        assert [b.title for b in blocked] == ["Work"]

    @pytest.mark.asyncio
    async def test_sqlite_error_wrapped(self, sqlite_calendar, monday):
        with patch.object(
            sqlite_calendar.db, "list_events", side_effect=sqlite3.OperationalError("locked"),
        ):
            with pytest.raises(CalendarError, match="Failed to list events"):
                await sqlite_calendar.list_events("u1", monday, monday + timedelta(days=1))

    @pytest.mark.asyncio
    async def test_insert_error_wrapped(self, sqlite_calendar, monday):
        ev = CalendarEvent(
            title="dup", interval=TimeInterval.from_duration(monday, 30), id="same", user_id="u1",
        )
        await sqlite_calendar.insert_events([ev])
        with pytest.raises(CalendarError, match="Failed to insert events"):
            await sqlite_calendar.insert_events([ev])
