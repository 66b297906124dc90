"""
StudyPlanner — Planner Database.

SQLite-backed storage for everything the scheduling engine reads or writes:
calendar events, study plans, weekly blocked times, weekly study slots and
subject preferences. The engine itself never touches this module; the
orchestration layer reaches it through the calendar port.
"""

from __future__ import annotations

import logging
import sqlite3
import uuid
from datetime import date, datetime, time, timedelta
from pathlib import Path
from typing import Iterable
from zoneinfo import ZoneInfo

from study_planner.core.intervals import TimeInterval, local_naive, overlaps
from study_planner.core.recurrence import (
    Daily,
    Monthly,
    RecurrenceRule,
    Weekly,
    iter_occurrences,
)
from study_planner.data.models import (
    BlockedTimePreference,
    CalendarEvent,
    ConfidenceLabel,
    EventKind,
    Priority,
    StudyPlan,
    StudySlotTemplate,
    SubjectPreference,
)

logger = logging.getLogger(__name__)

# Upper bound on occurrences expanded per recurring event, counted from the
# query window rather than from the series start.
MAX_EXPANDED_OCCURRENCES = 1000

_SCHEMA = """
CREATE TABLE IF NOT EXISTS study_plans (
    id          TEXT    PRIMARY KEY,
    user_id     TEXT    NOT NULL,
    name        TEXT    NOT NULL,
    start_date  TEXT    NOT NULL,
    end_date    TEXT    NOT NULL,
    is_active   INTEGER NOT NULL DEFAULT 1
);
CREATE TABLE IF NOT EXISTS calendar_events (
    id                   TEXT    PRIMARY KEY,
    user_id              TEXT,
    title                TEXT    NOT NULL,
    subject              TEXT    NOT NULL DEFAULT '',
    topic                TEXT    NOT NULL DEFAULT '',
    description          TEXT    NOT NULL DEFAULT '',
    kind                 TEXT    NOT NULL DEFAULT 'other',
    start_time           TEXT    NOT NULL,
    end_time             TEXT    NOT NULL,
    plan_id              TEXT,
    source_session_id    TEXT,
    recurrence_pattern   TEXT,
    recurrence_interval  INTEGER,
    recurrence_weekdays  TEXT,
    recurrence_end       TEXT
);
CREATE TABLE IF NOT EXISTS blocked_times (
    id           TEXT    PRIMARY KEY,
    user_id      TEXT    NOT NULL,
    title        TEXT    NOT NULL,
    day_of_week  INTEGER NOT NULL,
    start_time   TEXT    NOT NULL,
    end_time     TEXT    NOT NULL,
    priority     TEXT    NOT NULL DEFAULT 'medium',
    reason       TEXT    NOT NULL DEFAULT ''
);
CREATE TABLE IF NOT EXISTS study_slots (
    id                    INTEGER PRIMARY KEY AUTOINCREMENT,
    user_id               TEXT    NOT NULL,
    day_of_week           INTEGER NOT NULL,
    preferred_start_hour  INTEGER NOT NULL,
    duration_minutes      INTEGER NOT NULL DEFAULT 45,
    subject               TEXT
);
CREATE TABLE IF NOT EXISTS subject_preferences (
    user_id     TEXT    NOT NULL,
    subject     TEXT    NOT NULL,
    confidence  TEXT    NOT NULL,
    position    INTEGER NOT NULL DEFAULT 0,
    PRIMARY KEY (user_id, subject)
);
"""


def _new_id() -> str:
    return uuid.uuid4().hex


def _rule_to_columns(rule: RecurrenceRule | None, zone: ZoneInfo) -> tuple:
    if rule is None:
        return (None, None, None, None)
    weekdays = None
    if isinstance(rule.pattern, Weekly) and rule.pattern.weekdays:
        weekdays = ",".join(str(d) for d in sorted(rule.pattern.weekdays))
    end = local_naive(rule.end_date, zone).isoformat() if rule.end_date else None
    return (rule.kind, rule.pattern.interval, weekdays, end)


def _columns_to_rule(row: sqlite3.Row) -> RecurrenceRule | None:
    kind = row["recurrence_pattern"]
    if not kind:
        return None
    interval = row["recurrence_interval"] or 1
    if kind == "daily":
        pattern = Daily(interval)
    elif kind == "weekly":
        raw = row["recurrence_weekdays"] or ""
        pattern = Weekly(interval, frozenset(int(d) for d in raw.split(",") if d))
    elif kind == "monthly":
        pattern = Monthly(interval)
    else:
        raise ValueError(f"Unknown recurrence pattern in storage: {kind!r}")
    end = row["recurrence_end"]
    return RecurrenceRule(pattern, datetime.fromisoformat(end) if end else None)


class PlannerDB:
    """SQLite-backed storage for calendar events, plans and preferences.

    Event times are stored as naive wall-clock time in ``timezone``
    (settings.TIMEZONE by default). Aware datetimes passed in are converted
    on the way in, so everything read back is naive and mutually comparable.
    """

    def __init__(self, db_path: str | None = None, timezone: str | None = None) -> None:
        if db_path is None or timezone is None:
            from study_planner.config import settings
            db_path = db_path or settings.DATABASE_PATH
            timezone = timezone or settings.TIMEZONE

        self._db_path = db_path
        self._zone = ZoneInfo(timezone)
        Path(db_path).parent.mkdir(parents=True, exist_ok=True)
        self._init_db()

    def _connect(self) -> sqlite3.Connection:
        conn = sqlite3.connect(self._db_path)
        conn.row_factory = sqlite3.Row
        return conn

    def _init_db(self) -> None:
        """Create all tables if they don't exist."""
        with self._connect() as conn:
            conn.executescript(_SCHEMA)
        logger.debug("Planner tables initialized at %s", self._db_path)

    # ------------------------------------------------------------------
    # Calendar events
    # ------------------------------------------------------------------

    @staticmethod
    def _row_to_event(row: sqlite3.Row) -> CalendarEvent:
        return CalendarEvent(
            id=row["id"],
            user_id=row["user_id"],
            title=row["title"],
            subject=row["subject"],
            topic=row["topic"],
            description=row["description"],
            kind=EventKind(row["kind"]),
            interval=TimeInterval(
                datetime.fromisoformat(row["start_time"]),
                datetime.fromisoformat(row["end_time"]),
            ),
            plan_id=row["plan_id"],
            source_session_id=row["source_session_id"],
            recurrence=_columns_to_rule(row),
        )

    def insert_events(self, events: Iterable[CalendarEvent]) -> list[str]:
        """Insert events in one transaction; returns their ids in order.

        Events without an id get a fresh one (written back onto the event).
        """
        ids: list[str] = []
        rows = []
        for ev in events:
            if ev.id is None:
                ev.id = _new_id()
            ids.append(ev.id)
            rows.append((
                ev.id, ev.user_id, ev.title, ev.subject, ev.topic, ev.description,
                ev.kind.value,
                local_naive(ev.interval.start, self._zone).isoformat(),
                local_naive(ev.interval.end, self._zone).isoformat(),
                ev.plan_id, ev.source_session_id,
                *_rule_to_columns(ev.recurrence, self._zone),
            ))

        with self._connect() as conn:
            conn.executemany(
                """
                INSERT INTO calendar_events
                    (id, user_id, title, subject, topic, description, kind,
                     start_time, end_time, plan_id, source_session_id,
                     recurrence_pattern, recurrence_interval,
                     recurrence_weekdays, recurrence_end)
                VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
                """,
                rows,
            )
        logger.info("Inserted %d calendar event(s)", len(ids))
        return ids

    def delete_events(self, event_ids: Iterable[str]) -> int:
        """Delete events by id. Unknown ids are ignored. Returns rows removed."""
        ids = list(event_ids)
        if not ids:
            return 0
        placeholders = ",".join("?" for _ in ids)
        with self._connect() as conn:
            cursor = conn.execute(
                f"DELETE FROM calendar_events WHERE id IN ({placeholders})", ids
            )
            removed = cursor.rowcount
        logger.info("Deleted %d calendar event(s)", removed)
        return removed

    def get_event(self, event_id: str) -> CalendarEvent | None:
        with self._connect() as conn:
            row = conn.execute(
                "SELECT * FROM calendar_events WHERE id = ?", (event_id,)
            ).fetchone()
        if row is None:
            return None
        return self._row_to_event(row)

    def list_events(
        self, user_id: str, start: datetime, end: datetime
    ) -> list[CalendarEvent]:
        """Events overlapping ``[start, end)``, recurring ones expanded.

        Each occurrence of a recurring event is returned as its own
        CalendarEvent sharing the stored event's id. ``start`` and ``end`` may
        be naive (wall-clock in the store's time zone) or aware.
        """
        start = local_naive(start, self._zone)
        end = local_naive(end, self._zone)
        window = TimeInterval(start, end)
        with self._connect() as conn:
            rows = conn.execute(
                "SELECT * FROM calendar_events WHERE user_id = ? ORDER BY start_time",
                (user_id,),
            ).fetchall()

        events: list[CalendarEvent] = []
        for row in rows:
            ev = self._row_to_event(row)
            if ev.recurrence is None:
                if overlaps(ev.interval, window):
                    events.append(ev)
                continue
            occurrences = iter_occurrences(ev.interval, ev.recurrence, since=start)
            for n, occurrence in enumerate(occurrences):
                if occurrence.start >= end or n >= MAX_EXPANDED_OCCURRENCES:
                    break
                if overlaps(occurrence, window):
                    events.append(
                        CalendarEvent(
                            id=ev.id, user_id=ev.user_id, title=ev.title,
                            subject=ev.subject, topic=ev.topic,
                            description=ev.description, kind=ev.kind,
                            interval=occurrence, plan_id=ev.plan_id,
                            source_session_id=ev.source_session_id,
                            recurrence=ev.recurrence,
                        )
                    )

        events.sort(key=lambda e: e.interval.start)
        return events

    def list_plan_events(self, plan_id: str) -> list[CalendarEvent]:
        with self._connect() as conn:
            rows = conn.execute(
                "SELECT * FROM calendar_events WHERE plan_id = ? ORDER BY start_time",
                (plan_id,),
            ).fetchall()
        return [self._row_to_event(r) for r in rows]

    # ------------------------------------------------------------------
    # Study plans
    # ------------------------------------------------------------------

    @staticmethod
    def _row_to_plan(row: sqlite3.Row) -> StudyPlan:
        return StudyPlan(
            id=row["id"],
            user_id=row["user_id"],
            name=row["name"],
            start_date=date.fromisoformat(row["start_date"]),
            end_date=date.fromisoformat(row["end_date"]),
            is_active=bool(row["is_active"]),
        )

    def create_plan(
        self,
        user_id: str,
        name: str = "Personalized Study Plan",
        start_date: date | None = None,
        end_date: date | None = None,
    ) -> StudyPlan:
        """Create the user's active plan. ``end_date`` defaults to 30 days out."""
        if start_date is None:
            start_date = date.today()
        if end_date is None:
            end_date = start_date + timedelta(days=30)

        plan = StudyPlan(
            id=_new_id(), user_id=user_id, name=name,
            start_date=start_date, end_date=end_date, is_active=True,
        )
        with self._connect() as conn:
            conn.execute(
                """
                INSERT INTO study_plans (id, user_id, name, start_date, end_date, is_active)
                VALUES (?, ?, ?, ?, ?, 1)
                """,
                (plan.id, user_id, name, start_date.isoformat(), end_date.isoformat()),
            )
        logger.info("Study plan %s created for user %s", plan.id, user_id)
        return plan

    def get_active_plan(self, user_id: str) -> StudyPlan | None:
        with self._connect() as conn:
            row = conn.execute(
                "SELECT * FROM study_plans WHERE user_id = ? AND is_active = 1 "
                "ORDER BY start_date DESC LIMIT 1",
                (user_id,),
            ).fetchone()
        if row is None:
            return None
        return self._row_to_plan(row)

    def delete_plan(self, plan_id: str) -> bool:
        """Delete a plan row. Returns False if it did not exist."""
        with self._connect() as conn:
            cursor = conn.execute("DELETE FROM study_plans WHERE id = ?", (plan_id,))
            deleted = cursor.rowcount > 0
        if deleted:
            logger.info("Study plan %s deleted", plan_id)
        return deleted

    # ------------------------------------------------------------------
    # Blocked times
    # ------------------------------------------------------------------

    def add_blocked_time(
        self, user_id: str, blocked: BlockedTimePreference
    ) -> BlockedTimePreference:
        if blocked.id is None:
            blocked.id = _new_id()
        with self._connect() as conn:
            conn.execute(
                """
                INSERT INTO blocked_times
                    (id, user_id, title, day_of_week, start_time, end_time, priority, reason)
                VALUES (?, ?, ?, ?, ?, ?, ?, ?)
                """,
                (
                    blocked.id, user_id, blocked.title, blocked.day_of_week,
                    blocked.start_time.strftime("%H:%M"),
                    blocked.end_time.strftime("%H:%M"),
                    blocked.priority.value, blocked.reason,
                ),
            )
        logger.info(
            "Blocked time added for user %s: '%s' day %d %s-%s",
            user_id, blocked.title, blocked.day_of_week,
            blocked.start_time.strftime("%H:%M"), blocked.end_time.strftime("%H:%M"),
        )
        return blocked

    def list_blocked_times(self, user_id: str) -> list[BlockedTimePreference]:
        with self._connect() as conn:
            rows = conn.execute(
                "SELECT * FROM blocked_times WHERE user_id = ? "
                "ORDER BY day_of_week, start_time",
                (user_id,),
            ).fetchall()
        return [
            BlockedTimePreference(
                id=r["id"],
                title=r["title"],
                day_of_week=r["day_of_week"],
                start_time=time.fromisoformat(r["start_time"]),
                end_time=time.fromisoformat(r["end_time"]),
                priority=Priority(r["priority"]),
                reason=r["reason"],
            )
            for r in rows
        ]

    def delete_blocked_time(self, blocked_id: str) -> bool:
        with self._connect() as conn:
            cursor = conn.execute("DELETE FROM blocked_times WHERE id = ?", (blocked_id,))
        return cursor.rowcount > 0

    # ------------------------------------------------------------------
    # Study slots and subject preferences
    # ------------------------------------------------------------------

    def add_study_slot(self, user_id: str, slot: StudySlotTemplate) -> None:
        with self._connect() as conn:
            conn.execute(
                """
                INSERT INTO study_slots
                    (user_id, day_of_week, preferred_start_hour, duration_minutes, subject)
                VALUES (?, ?, ?, ?, ?)
                """,
                (
                    user_id, slot.day_of_week, slot.preferred_start_hour,
                    slot.duration_minutes, slot.subject,
                ),
            )

    def list_study_slots(self, user_id: str) -> list[StudySlotTemplate]:
        """Slots in the order they were added."""
        with self._connect() as conn:
            rows = conn.execute(
                "SELECT * FROM study_slots WHERE user_id = ? ORDER BY id", (user_id,)
            ).fetchall()
        return [
            StudySlotTemplate(
                day_of_week=r["day_of_week"],
                preferred_start_hour=r["preferred_start_hour"],
                duration_minutes=r["duration_minutes"],
                subject=r["subject"],
            )
            for r in rows
        ]

    def clear_study_slots(self, user_id: str) -> None:
        with self._connect() as conn:
            conn.execute("DELETE FROM study_slots WHERE user_id = ?", (user_id,))

    def set_subject_preferences(
        self, user_id: str, subjects: Iterable[SubjectPreference]
    ) -> None:
        """Replace the user's subject list, keeping the given order."""
        with self._connect() as conn:
            conn.execute("DELETE FROM subject_preferences WHERE user_id = ?", (user_id,))
            conn.executemany(
                """
                INSERT INTO subject_preferences (user_id, subject, confidence, position)
                VALUES (?, ?, ?, ?)
                """,
                [
                    (user_id, s.subject, s.confidence.value, i)
                    for i, s in enumerate(subjects)
                ],
            )

    def list_subject_preferences(self, user_id: str) -> list[SubjectPreference]:
        with self._connect() as conn:
            rows = conn.execute(
                "SELECT * FROM subject_preferences WHERE user_id = ? ORDER BY position",
                (user_id,),
            ).fetchall()
        return [
            SubjectPreference(r["subject"], ConfidenceLabel(r["confidence"]))
            for r in rows
        ]
