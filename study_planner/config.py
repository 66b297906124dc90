"""
StudyPlanner — Centralized configuration.

Loads all settings from .env and validates them.
This module is the foundation for every other module in the project.
"""

from __future__ import annotations

import os
import sys
from pathlib import Path

from dotenv import load_dotenv
from pydantic import BaseModel, ValidationError, field_validator

# Load .env from project root (one level up from study_planner/config.py)
_ENV_PATH = Path(__file__).resolve().parent.parent / ".env"
load_dotenv(_ENV_PATH)


class Settings(BaseModel):
    """Application settings loaded from environment variables."""

    # Storage provider: only "sqlite" today
    CALENDAR_PROVIDER: str = "sqlite"
    DATABASE_PATH: str = "data/study_planner.db"

    # Zone used for "now" when generating plans
    TIMEZONE: str = "Europe/London"

    # Scheduling
    SEARCH_WINDOW_DAYS: int = 5
    PLAN_WEEKS_AHEAD: int = 6

    # Pomodoro split attached to generated sessions
    POMODORO_WORK_MINUTES: int = 25
    POMODORO_BREAK_MINUTES: int = 5

    LOG_LEVEL: str = "INFO"

    @field_validator(
        "SEARCH_WINDOW_DAYS",
        "PLAN_WEEKS_AHEAD",
        "POMODORO_WORK_MINUTES",
        "POMODORO_BREAK_MINUTES",
        mode="before",
    )
    @classmethod
    def parse_positive_int(cls, v: str | int) -> int:
        value = int(v)
        if value <= 0:
            raise ValueError(f"must be a positive integer, got {value}")
        return value

    @field_validator("LOG_LEVEL", mode="before")
    @classmethod
    def parse_log_level(cls, v: str) -> str:
        level = str(v).upper()
        if level not in {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}:
            raise ValueError(f"unknown log level {v!r}")
        return level


def _load_settings() -> Settings:
    """Load settings from environment, exiting on invalid values."""
    try:
        return Settings(
            CALENDAR_PROVIDER=os.getenv("CALENDAR_PROVIDER", "sqlite"),
            DATABASE_PATH=os.getenv("DATABASE_PATH", "data/study_planner.db"),
            TIMEZONE=os.getenv("TIMEZONE", "Europe/London"),
            SEARCH_WINDOW_DAYS=os.getenv("SEARCH_WINDOW_DAYS", "5"),
            PLAN_WEEKS_AHEAD=os.getenv("PLAN_WEEKS_AHEAD", "6"),
            POMODORO_WORK_MINUTES=os.getenv("POMODORO_WORK_MINUTES", "25"),
            POMODORO_BREAK_MINUTES=os.getenv("POMODORO_BREAK_MINUTES", "5"),
            LOG_LEVEL=os.getenv("LOG_LEVEL", "INFO"),
        )
    except (ValidationError, ValueError) as exc:
        print(f"ERROR: invalid configuration in .env:\n{exc}", file=sys.stderr)
        sys.exit(1)


# Singleton — imported by all other modules as:
#   from study_planner.config import settings
settings = _load_settings()
