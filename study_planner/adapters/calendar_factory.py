"""Calendar adapter factory — creates the right adapter based on config."""

from __future__ import annotations

from study_planner.config import settings
from study_planner.ports.calendar_port import StudyCalendarPort


def create_calendar_adapter(db_path: str | None = None) -> StudyCalendarPort:
    """Return the storage adapter matching the CALENDAR_PROVIDER setting.

    Args:
        db_path: Database location override (defaults to DATABASE_PATH).
    """
    provider = settings.CALENDAR_PROVIDER.lower()

    if provider == "sqlite":
        from study_planner.adapters.sqlite_calendar import SQLiteCalendarAdapter

        return SQLiteCalendarAdapter(db_path=db_path)

    raise ValueError(f"Unknown CALENDAR_PROVIDER: {provider!r}")
