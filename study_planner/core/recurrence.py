"""Recurrence expansion — turns a template occurrence plus a rule into dates.

The rule's pattern is a tagged variant (Daily / Weekly / Monthly), each
carrying only the fields it needs. Expansion is always finite: it is bounded
by ``max_occurrences`` and by the rule's optional ``end_date``.

No I/O: this module only transforms data.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import date, datetime, timedelta
from itertools import islice
from typing import Iterator, Union

from dateutil.relativedelta import relativedelta

from study_planner.core.intervals import TimeInterval

logger = logging.getLogger(__name__)

WEEKDAY_NAMES = (
    "Sunday", "Monday", "Tuesday", "Wednesday", "Thursday", "Friday", "Saturday",
)


def day_of_week(moment: date) -> int:
    """Weekday index with Sunday = 0 … Saturday = 6."""
    return moment.isoweekday() % 7


def _check_interval(interval: int) -> None:
    if interval < 1:
        raise ValueError(f"Recurrence interval must be >= 1, got {interval}")


@dataclass(frozen=True)
class Daily:
    interval: int = 1

    def __post_init__(self) -> None:
        _check_interval(self.interval)


@dataclass(frozen=True)
class Weekly:
    """Repeat every ``interval`` weeks, optionally on several weekdays."""

    interval: int = 1
    weekdays: frozenset[int] = field(default_factory=frozenset)

    def __post_init__(self) -> None:
        _check_interval(self.interval)
        # Accept any iterable of ints from callers, store a frozenset.
        object.__setattr__(self, "weekdays", frozenset(self.weekdays))
        bad = [d for d in self.weekdays if not 0 <= d <= 6]
        if bad:
            raise ValueError(f"Weekdays must be in 0..6 (Sunday=0), got {sorted(bad)}")


@dataclass(frozen=True)
class Monthly:
    interval: int = 1

    def __post_init__(self) -> None:
        _check_interval(self.interval)


RecurrencePattern = Union[Daily, Weekly, Monthly]


@dataclass(frozen=True)
class RecurrenceRule:
    pattern: RecurrencePattern
    end_date: datetime | None = None

    @property
    def kind(self) -> str:
        return type(self.pattern).__name__.lower()


def _whole_steps(start: datetime, since: datetime | None, step: timedelta) -> int:
    """Number of whole ``step``s between ``start`` and ``since`` (never negative)."""
    if since is None or since <= start:
        return 0
    return (since - start) // step


def _iter_starts(
    start: datetime, pattern: RecurrencePattern, since: datetime | None = None
) -> Iterator[datetime]:
    """Yield occurrence starts in chronological order, without any bound.

    With ``since``, whole steps that start at or before it are skipped
    arithmetically; the first start yielded may still precede ``since``.
    """
    if isinstance(pattern, Daily):
        step = timedelta(days=pattern.interval)
        n = _whole_steps(start, since, step)
        while True:
            yield start + n * step
            n += 1

    elif isinstance(pattern, Weekly):
        step = timedelta(weeks=pattern.interval)
        if not pattern.weekdays:
            n = _whole_steps(start, since, step)
            while True:
                yield start + n * step
                n += 1

        # Cycles are anchored on the Sunday of the template's week.
        week_anchor = start - timedelta(days=day_of_week(start))
        days = sorted(pattern.weekdays)
        cycle = _whole_steps(week_anchor, since, step)
        while True:
            base = week_anchor + cycle * step
            for wd in days:
                candidate = base + timedelta(days=wd)
                if candidate >= start:
                    yield candidate
            cycle += 1

    elif isinstance(pattern, Monthly):
        n = 0
        if since is not None and since > start:
            months = (since.year - start.year) * 12 + since.month - start.month
            n = max(0, months // pattern.interval - 1)
        while True:
            # Always offset from the template so month-end clamping never drifts.
            yield start + relativedelta(months=n * pattern.interval)
            n += 1

    else:
        raise TypeError(f"Unknown recurrence pattern: {pattern!r}")


def iter_occurrences(
    template: TimeInterval, rule: RecurrenceRule, since: datetime | None = None
) -> Iterator[TimeInterval]:
    """Lazily yield occurrences of ``template`` until the rule's end date.

    Without an ``end_date`` the iterator is unbounded; callers must cap it.
    Occurrences that end at or before ``since`` may be skipped, so a query
    window far from the template costs no more than one near it.
    """
    duration = template.duration
    skip_to = since - duration if since is not None else None
    for occ_start in _iter_starts(template.start, rule.pattern, skip_to):
        if rule.end_date is not None and occ_start > rule.end_date:
            return
        yield TimeInterval(occ_start, occ_start + duration)


def expand(
    template: TimeInterval, rule: RecurrenceRule, max_occurrences: int
) -> list[TimeInterval]:
    """Expand ``template`` under ``rule`` into at most ``max_occurrences`` intervals.

    Occurrence 0 is the template itself, except for a Weekly rule with
    weekdays whose set does not include the template's weekday: such a rule
    only ever emits on its configured weekdays. No occurrence starts after
    ``rule.end_date``.
    """
    if max_occurrences <= 0:
        return []
    occurrences = list(islice(iter_occurrences(template, rule), max_occurrences))
    logger.debug(
        "Expanded %s rule from %s into %d occurrence(s)",
        rule.kind, template.start.isoformat(), len(occurrences),
    )
    return occurrences
