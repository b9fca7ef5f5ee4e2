"""Time-range helpers — pure date/time logic.

Builds half-open [start, end) intervals from event timestamps and formats
countdowns for the "Up Next" list.

No I/O: this module only transforms data.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Any

logger = logging.getLogger(__name__)


class InvalidRange(ValueError):
    """Raised when an event's end does not come after its start."""


@dataclass(frozen=True)
class TimeRange:
    """Half-open interval [start, end)."""

    start: datetime
    end: datetime


def parse_timestamp(value: str | datetime) -> datetime:
    """Parse an ISO-8601 timestamp ("2024-01-01T10:00", with or without offset).

    A trailing "Z" is accepted as UTC. Raises ValueError on malformed input.
    """
    if isinstance(value, datetime):
        return value
    if not isinstance(value, str) or not value.strip():
        raise ValueError(f"Not a timestamp: {value!r}")
    raw = value.strip()
    if raw.endswith("Z"):
        raw = raw[:-1] + "+00:00"
    return datetime.fromisoformat(raw)


def _field(obj: Any, name: str) -> Any:
    if isinstance(obj, Mapping):
        return obj.get(name)
    return getattr(obj, name, None)


def to_range(event: Any) -> TimeRange:
    """Build a TimeRange from an event's start_time/end_time.

    Raises InvalidRange if either time is missing or malformed, or if
    end <= start.
    """
    raw_start = _field(event, "start_time")
    raw_end = _field(event, "end_time")
    try:
        start = parse_timestamp(raw_start)
        end = parse_timestamp(raw_end)
    except (ValueError, TypeError) as exc:
        raise InvalidRange(f"Unreadable time range {raw_start!r} - {raw_end!r}") from exc

    try:
        ordered = end > start
    except TypeError as exc:
        # Mixing naive and offset-aware timestamps
        raise InvalidRange(f"Incomparable timestamps {raw_start!r} - {raw_end!r}") from exc
    if not ordered:
        raise InvalidRange(f"End {raw_end!r} is not after start {raw_start!r}")
    return TimeRange(start=start, end=end)


def duration_minutes(time_range: TimeRange) -> float:
    """Length of the range in minutes."""
    return (time_range.end - time_range.start) / timedelta(minutes=1)


def overlaps(a: TimeRange, b: TimeRange) -> bool:
    """True if two half-open ranges share any instant."""
    return a.start < b.end and a.end > b.start


def format_countdown(target: datetime, now: datetime) -> str:
    """Human countdown to target: "Started", "N days", "N hrs" or "N mins".

    Days are only used past 24 whole hours, so exactly 24h reads "24 hrs".
    """
    diff = target - now
    if diff < timedelta(0):
        return "Started"
    hours = int(diff // timedelta(hours=1))
    if hours > 24:
        return f"{hours // 24} days"
    if hours > 0:
        return f"{hours} hrs"
    return f"{int(diff // timedelta(minutes=1))} mins"


def format_due_label(days_until_due: int) -> str:
    """Label for a bill's next due date."""
    if days_until_due == 0:
        return "Due today"
    if days_until_due == 1:
        return "Due tomorrow"
    return f"Due in {days_until_due} days"
