"""Next-occurrence computation for one-off and repeating events."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Literal

from .utils import parse_instant, to_iso, utcnow

logger = logging.getLogger("uvicorn.error")

Frequency = Literal["none", "daily", "weekly", "monthly"]

RECURRENCE_FREQUENCIES: tuple[Frequency, ...] = ("none", "daily", "weekly", "monthly")

# Safety ceiling on calendar steps; far beyond any real series.
MAX_ITERATIONS = 2000

_FIXED_STEPS = {
    "daily": timedelta(days=1),
    "weekly": timedelta(days=7),
}

# en-GB abbreviated month names.
_MONTH_ABBREVIATIONS = (
    "Jan",
    "Feb",
    "Mar",
    "Apr",
    "May",
    "Jun",
    "Jul",
    "Aug",
    "Sept",
    "Oct",
    "Nov",
    "Dec",
)


@dataclass(frozen=True)
class RecurrenceRule:
    frequency: Frequency
    end_date: str | None = None

    @property
    def repeats(self) -> bool:
        return self.frequency != "none"


@dataclass(frozen=True)
class Occurrence:
    date_time: str
    end_date_time: str


def add_month(value: datetime) -> datetime:
    """Advance one calendar month keeping the day of month.

    Days past the end of the target month overflow into the month after it
    (31 Jan -> 3 Mar in a common year) rather than being clamped.
    """
    year, month = divmod(value.month, 12)
    first_of_next = value.replace(year=value.year + year, month=month + 1, day=1)
    return first_of_next + timedelta(days=value.day - 1)


def _step(value: datetime, frequency: str) -> datetime:
    if frequency == "monthly":
        return add_month(value)
    return value + _FIXED_STEPS.get(frequency, timedelta(0))


def _occurrence(start: datetime, end: datetime) -> Occurrence:
    return Occurrence(date_time=to_iso(start), end_date_time=to_iso(end))


def compute_next_occurrence(
    start: str | datetime,
    end: str | datetime,
    rule: RecurrenceRule | None,
    reference: str | datetime | None = None,
    *,
    max_iterations: int = MAX_ITERATIONS,
) -> Occurrence | None:
    """Return the first occurrence starting on or after ``reference``.

    ``None`` means there is nothing left to attend: the one-off event has
    started, the series ran past its (inclusive) end date, the iteration
    ceiling was hit, or one of ``start``, ``end`` and ``reference`` could not
    be parsed. An unparseable reference is not treated as "the beginning of
    time"; a series never reports a stale occurrence as upcoming.
    """
    start_at = parse_instant(start)
    end_at = parse_instant(end)
    if start_at is None or end_at is None:
        return None
    reference_at = parse_instant(utcnow() if reference is None else reference)
    if reference_at is None:
        return None

    if rule is None or not rule.repeats:
        if start_at >= reference_at:
            return _occurrence(start_at, end_at)
        return None

    limit = parse_instant(rule.end_date)
    period = _FIXED_STEPS.get(rule.frequency)

    if period is not None and start_at < reference_at:
        # Fixed-length periods can be skipped in one jump.
        steps = -((start_at - reference_at) // period)
        start_at += period * steps
        end_at += period * steps
    else:
        iterations = 0
        while start_at < reference_at:
            if limit is not None and start_at > limit:
                return None
            iterations += 1
            if iterations > max_iterations:
                logger.warning(
                    "Recurrence gave up after %d %s steps from %s",
                    max_iterations,
                    rule.frequency,
                    start,
                )
                return None
            start_at = _step(start_at, rule.frequency)
            end_at = _step(end_at, rule.frequency)

    if limit is not None and start_at > limit:
        return None
    return _occurrence(start_at, end_at)


def format_recurrence_summary(rule: RecurrenceRule | None) -> str | None:
    """Describe a rule, e.g. ``"Repeats weekly until 30 Jun 2026"``."""
    if rule is None or not rule.repeats:
        return None
    label = f"Repeats {rule.frequency}"
    end = parse_instant(rule.end_date)
    if end is None:
        return label
    return f"{label} until {end.day} {_MONTH_ABBREVIATIONS[end.month - 1]} {end.year}"
