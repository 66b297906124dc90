"""Shared test fixtures and configuration.

Sets up environment variables before any study_planner imports, and
provides common fixtures like a temp DB and a fixed reference week.
"""

import os

# Patch env vars BEFORE any study_planner imports
os.environ.setdefault("CALENDAR_PROVIDER", "sqlite")
os.environ.setdefault("DATABASE_PATH", "data/test_study_planner.db")
os.environ.setdefault("TIMEZONE", "Europe/London")
os.environ.setdefault("LOG_LEVEL", "DEBUG")

import pytest
from datetime import datetime


# 2026-10-19 is a Monday.
MONDAY = datetime(2026, 10, 19)


@pytest.fixture
def monday():
    """Monday 2026-10-19 at midnight (naive local time)."""
    return MONDAY


@pytest.fixture
def tmp_db_path(tmp_path):
    """Return a temporary SQLite DB path."""
    return str(tmp_path / "test_planner.db")


@pytest.fixture
def planner_db(tmp_db_path):
    """Return a PlannerDB instance backed by a temp file."""
    from study_planner.data.db import PlannerDB
    return PlannerDB(db_path=tmp_db_path)


@pytest.fixture
def sqlite_calendar(tmp_db_path):
    """Return a SQLiteCalendarAdapter backed by a temp file."""
    from study_planner.adapters.sqlite_calendar import SQLiteCalendarAdapter
    return SQLiteCalendarAdapter(db_path=tmp_db_path)
