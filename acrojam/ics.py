"""iCalendar (.ics) helpers."""

from __future__ import annotations

from datetime import UTC, datetime

from .utils import parse_instant
from .views import EventSummary

_RRULE_FREQUENCIES = {"daily": "DAILY", "weekly": "WEEKLY", "monthly": "MONTHLY"}


def _format_utc(value: str | datetime) -> str:
    """Format an instant as an RFC5545 UTC timestamp."""

    parsed = parse_instant(value)
    if parsed is None:
        raise ValueError(f"Not a valid instant: {value!r}")
    return parsed.replace(microsecond=0).strftime("%Y%m%dT%H%M%SZ")


def _escape_text(value: str | None) -> str:
    """Escape text for ICS fields."""

    if not value:
        return ""
    normalized = value.replace("\r\n", "\n").replace("\r", "\n")
    return (
        normalized.replace("\\", "\\\\")
        .replace(";", r"\;")
        .replace(",", r"\,")
        .replace("\n", r"\n")
    )


def _location_text(event: EventSummary) -> str:
    location = event.location
    return ", ".join(part for part in (location.name, location.city, location.country) if part)


def _rrule(event: EventSummary) -> str | None:
    rule = event.recurrence
    if rule is None or rule.frequency not in _RRULE_FREQUENCIES:
        return None
    parts = [f"FREQ={_RRULE_FREQUENCIES[rule.frequency]}"]
    if rule.end_date and parse_instant(rule.end_date):
        parts.append(f"UNTIL={_format_utc(rule.end_date)}")
    return "RRULE:" + ";".join(parts)


def generate_ics(event: EventSummary, *, now: datetime | None = None) -> str:
    """Return ICS text for the next occurrence of an event.

    Past events fall back to their original instants. Repeating events carry an
    RRULE anchored on the occurrence being exported.
    """

    occurrence = event.next_occurrence
    start = occurrence.date_time if occurrence else event.date_time
    end = occurrence.end_date_time if occurrence else event.end_date_time

    lines = [
        "BEGIN:VCALENDAR",
        "VERSION:2.0",
        "PRODID:-//AcroJam//Events//EN",
        "CALSCALE:GREGORIAN",
        "METHOD:PUBLISH",
        "BEGIN:VEVENT",
        f"UID:{event.id}@acrojam",
        f"DTSTAMP:{_format_utc(now or datetime.now(UTC))}",
        f"DTSTART:{_format_utc(start)}",
        f"DTEND:{_format_utc(end)}",
    ]
    rrule = _rrule(event)
    if rrule and occurrence:
        lines.append(rrule)
    lines.extend(
        [
            f"SUMMARY:{_escape_text(event.title)}",
            f"DESCRIPTION:{_escape_text(event.description)}",
            f"LOCATION:{_escape_text(_location_text(event))}",
            "END:VEVENT",
            "END:VCALENDAR",
        ]
    )
    return "\r\n".join(lines) + "\r\n"
