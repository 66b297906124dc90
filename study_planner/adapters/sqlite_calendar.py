"""SQLite adapter — implements StudyCalendarPort on top of PlannerDB.

All SQLite-specific failure handling lives here: every sqlite3 error is
logged and re-raised as CalendarError so the plan service only ever deals
with one exception type.
"""

from __future__ import annotations

import logging
import sqlite3
from datetime import date, datetime

from study_planner.data.db import PlannerDB
from study_planner.data.models import BlockedTimePreference, CalendarEvent, StudyPlan
from study_planner.ports.calendar_port import CalendarError

logger = logging.getLogger(__name__)


class SQLiteCalendarAdapter:
    """Local SQLite implementation of StudyCalendarPort."""

    def __init__(self, db_path: str | None = None) -> None:
        self._db_path = db_path
        self._db = PlannerDB(db_path=db_path)

    @property
    def db(self) -> PlannerDB:
        return self._db

    async def list_events(
        self, user_id: str, start: datetime, end: datetime
    ) -> list[CalendarEvent]:
        try:
            events = self._db.list_events(user_id, start, end)
        except sqlite3.Error as exc:
            logger.error("Failed to list events for user %s: %s", user_id, exc)
            raise CalendarError(f"Failed to list events: {exc}") from exc
        logger.info(
            "Found %d event(s) for user %s between %s and %s",
            len(events), user_id, start.isoformat(), end.isoformat(),
        )
        return events

    async def list_blocked_times(self, user_id: str) -> list[BlockedTimePreference]:
        try:
            return self._db.list_blocked_times(user_id)
        except sqlite3.Error as exc:
            logger.error("Failed to list blocked times for user %s: %s", user_id, exc)
            raise CalendarError(f"Failed to list blocked times: {exc}") from exc

    async def insert_events(self, events: list[CalendarEvent]) -> list[str]:
        try:
            return self._db.insert_events(events)
        except sqlite3.Error as exc:
            logger.error("Failed to insert %d event(s): %s", len(events), exc)
            raise CalendarError(f"Failed to insert events: {exc}") from exc

    async def delete_events(self, event_ids: list[str]) -> None:
        try:
            self._db.delete_events(event_ids)
        except sqlite3.Error as exc:
            logger.error("Failed to delete %d event(s): %s", len(event_ids), exc)
            raise CalendarError(f"Failed to delete events: {exc}") from exc

    async def get_active_plan(self, user_id: str) -> StudyPlan | None:
        try:
            return self._db.get_active_plan(user_id)
        except sqlite3.Error as exc:
            logger.error("Failed to load active plan for user %s: %s", user_id, exc)
            raise CalendarError(f"Failed to load active plan: {exc}") from exc

    async def create_plan(
        self,
        user_id: str,
        name: str,
        start_date: date,
        end_date: date,
    ) -> StudyPlan:
        try:
            return self._db.create_plan(user_id, name, start_date, end_date)
        except sqlite3.Error as exc:
            logger.error("Failed to create plan for user %s: %s", user_id, exc)
            raise CalendarError(f"Failed to create plan: {exc}") from exc

    async def delete_plan(self, plan_id: str) -> None:
        try:
            self._db.delete_plan(plan_id)
        except sqlite3.Error as exc:
            logger.error("Failed to delete plan %s: %s", plan_id, exc)
            raise CalendarError(f"Failed to delete plan: {exc}") from exc

    async def list_plan_events(self, plan_id: str) -> list[CalendarEvent]:
        try:
            return self._db.list_plan_events(plan_id)
        except sqlite3.Error as exc:
            logger.error("Failed to list events of plan %s: %s", plan_id, exc)
            raise CalendarError(f"Failed to list plan events: {exc}") from exc
