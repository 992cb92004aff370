"""Utility helpers for AcroJam."""

from __future__ import annotations

from datetime import UTC, datetime
from typing import TYPE_CHECKING
from urllib.parse import quote
import re

from babel.numbers import UnknownCurrencyError, format_currency, validate_currency

if TYPE_CHECKING:
    from acrojam.views import EventSummary

ISO_FORMAT = "%Y-%m-%dT%H:%M:%SZ"
CURRENCY_LOCALE = "en_GB"

_whitespace = re.compile(r"\s+")

CITY_ALIASES = {
    "greater london": "London",
    "city of london": "London",
    "london (greater)": "London",
    "nyc": "New York",
    "new york city": "New York",
    "new york, ny": "New York",
    "sf": "San Francisco",
    "san fran": "San Francisco",
}

def utcnow() -> datetime:
    """Return a naive UTC datetime."""

    return datetime.now(UTC).replace(tzinfo=None)


def parse_instant(value: str | datetime | None) -> datetime | None:
    """Return a timezone-aware UTC datetime, or ``None`` when unparseable.

    Naive datetimes (and naive ISO strings) are taken to already be UTC.
    """

    if value is None:
        return None
    if isinstance(value, datetime):
        parsed = value
    else:
        raw = value.strip()
        if not raw:
            return None
        try:
            parsed = datetime.fromisoformat(raw)
        except ValueError:
            return None
    if parsed.tzinfo is None:
        return parsed.replace(tzinfo=UTC)
    return parsed.astimezone(UTC)


def to_iso(value: datetime) -> str:
    """Format an instant as a fixed-width UTC timestamp (``...T10:00:00Z``)."""

    aware = value.replace(tzinfo=UTC) if value.tzinfo is None else value.astimezone(UTC)
    return aware.strftime(ISO_FORMAT)


def to_naive_utc(value: str | datetime | None) -> datetime | None:
    """Normalise an instant to the naive UTC form stored in SQLite."""

    parsed = parse_instant(value)
    if parsed is None:
        return None
    return parsed.replace(tzinfo=None)


def format_cost(amount: float | int, currency: str | None) -> str:
    """Return a British-English currency string such as ``£10.00``.

    Falls back to the bare number without a currency and to ``"XYZ 5"`` for
    codes that are not ISO 4217 currencies.
    """

    if not currency:
        return _plain_number(amount)
    code = currency.strip().upper()
    try:
        validate_currency(code)
    except UnknownCurrencyError:
        return f"{currency} {_plain_number(amount)}"
    return format_currency(amount, code, locale=CURRENCY_LOCALE)


def _plain_number(amount: float | int) -> str:
    if isinstance(amount, float) and amount.is_integer():
        return str(int(amount))
    return str(amount)


def normalize_city_name(city: str | None) -> str | None:
    """Return the canonical spelling of a city, or ``None`` when blank."""

    if not city:
        return None
    trimmed = city.strip()
    if not trimmed:
        return None
    return CITY_ALIASES.get(trimmed.lower(), trimmed)


def build_external_map_links(
    latitude: float, longitude: float, what3names: str | None = None
) -> list[dict[str, str]]:
    """Return ``{"label", "url"}`` links to common map services."""

    coords = quote(f"{latitude},{longitude}", safe="")
    links = [
        {"label": "Google Maps", "url": f"https://maps.google.com/?q={coords}"},
        {"label": "Apple Maps", "url": f"https://maps.apple.com/?q={coords}"},
        {
            "label": "OpenStreetMap",
            "url": (
                f"https://www.openstreetmap.org/?mlat={latitude}&mlon={longitude}"
                f"#map=16/{latitude}/{longitude}"
            ),
        },
    ]
    if what3names and what3names.strip():
        normalized = _whitespace.sub(".", what3names.strip()).strip(".").lower()
        if normalized:
            links.append(
                {
                    "label": "What3Names",
                    "url": f"https://what3words.com/{quote(normalized, safe='')}",
                }
            )
    return links


def is_event_fresh(event: EventSummary, since: str | datetime | None) -> bool:
    """Return whether an event was added or changed after ``since``."""

    since_at = parse_instant(since)
    if since_at is None:
        return False
    added = parse_instant(event.date_added)
    updated = parse_instant(event.last_updated)
    return bool((added and added > since_at) or (updated and updated > since_at))
