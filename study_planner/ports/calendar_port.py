"""Calendar port — abstract interface for study-calendar storage.

The orchestration layer depends on this protocol, never on a specific
backend. The scheduling engine does not use it at all.
"""

from __future__ import annotations

from datetime import date, datetime
from typing import Protocol

from study_planner.data.models import BlockedTimePreference, CalendarEvent, StudyPlan


class CalendarError(Exception):
    """Raised when any storage backend operation fails."""


class StudyCalendarPort(Protocol):
    """Abstract calendar storage used by the plan service."""

    async def list_events(
        self, user_id: str, start: datetime, end: datetime
    ) -> list[CalendarEvent]: ...

    async def list_blocked_times(
        self, user_id: str
    ) -> list[BlockedTimePreference]: ...

    async def insert_events(self, events: list[CalendarEvent]) -> list[str]: ...

    async def delete_events(self, event_ids: list[str]) -> None: ...

    async def get_active_plan(self, user_id: str) -> StudyPlan | None: ...

    async def create_plan(
        self,
        user_id: str,
        name: str,
        start_date: date,
        end_date: date,
    ) -> StudyPlan: ...

    async def delete_plan(self, plan_id: str) -> None: ...

    async def list_plan_events(self, plan_id: str) -> list[CalendarEvent]: ...
