"""Half-open time intervals — pure value type shared by the whole engine.

An interval covers ``[start, end)``: two intervals that only touch at a
boundary (one ends at 11:00, the other starts at 11:00) do not overlap.

No I/O: this module only transforms data.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timedelta, tzinfo


@dataclass(frozen=True)
class TimeInterval:
    """A half-open ``[start, end)`` time range. ``start`` must precede ``end``."""

    start: datetime
    end: datetime

    def __post_init__(self) -> None:
        if self.start >= self.end:
            raise ValueError(
                f"Interval start must be before end: {self.start} >= {self.end}"
            )

    @classmethod
    def from_duration(cls, start: datetime, minutes: int) -> TimeInterval:
        return cls(start, start + timedelta(minutes=minutes))

    @property
    def duration(self) -> timedelta:
        return self.end - self.start

    @property
    def duration_minutes(self) -> int:
        return int(self.duration.total_seconds() // 60)

    def shifted(self, delta: timedelta) -> TimeInterval:
        """Return the same-length interval moved by ``delta``."""
        return TimeInterval(self.start + delta, self.end + delta)


def overlaps(a: TimeInterval, b: TimeInterval) -> bool:
    """True iff the two intervals share at least one instant."""
    return a.start < b.end and b.start < a.end


def contains(interval: TimeInterval, instant: datetime) -> bool:
    return interval.start <= instant < interval.end


def overlaps_any(candidate: TimeInterval, busy: list[TimeInterval]) -> bool:
    """Check if ``candidate`` overlaps with any busy interval."""
    for interval in busy:
        if overlaps(candidate, interval):
            return True
    return False


def local_naive(moment: datetime, zone: tzinfo) -> datetime:
    """Wall-clock time of ``moment`` in ``zone`` with the tzinfo dropped.

    Naive datetimes are taken to be wall-clock time in ``zone`` already and
    are returned unchanged.
    """
    if moment.tzinfo is None:
        return moment
    return moment.astimezone(zone).replace(tzinfo=None)
