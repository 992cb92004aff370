"""Country -> City -> Venue grouping of events for browsing."""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass

from .views import EventSummary


@dataclass(frozen=True)
class VenueGroup:
    venue: str
    latitude: float
    longitude: float
    events: list[EventSummary]
    event_count: int


@dataclass(frozen=True)
class CityGroup:
    city: str
    latitude: float
    longitude: float
    venues: list[VenueGroup]
    event_count: int


@dataclass(frozen=True)
class CountryGroup:
    country: str
    latitude: float
    longitude: float
    cities: list[CityGroup]
    event_count: int


LocationHierarchy = list[CountryGroup]


def _mean(values: list[float]) -> float:
    return sum(values) / len(values)


def build_location_hierarchy(events: Iterable[EventSummary]) -> LocationHierarchy:
    """Group events by country, city and venue, sorted by name at every level.

    Group coordinates are plain averages of their children, which is fine at
    city scale but drifts for countries spanning a wide area. Names sort by
    code point so the order is identical on every platform.
    """
    grouped: dict[str, dict[str, dict[str, list[EventSummary]]]] = {}
    for event in events:
        location = event.location
        cities = grouped.setdefault(location.country, {})
        venues = cities.setdefault(location.city, {})
        venues.setdefault(location.name, []).append(event)

    countries: list[CountryGroup] = []
    for country, cities in grouped.items():
        city_groups: list[CityGroup] = []
        for city, venues in cities.items():
            venue_groups = [
                VenueGroup(
                    venue=venue,
                    latitude=venue_events[0].location.latitude,
                    longitude=venue_events[0].location.longitude,
                    events=sorted(venue_events, key=lambda event: event.date_time),
                    event_count=len(venue_events),
                )
                for venue, venue_events in venues.items()
            ]
            venue_groups.sort(key=lambda group: group.venue)
            city_groups.append(
                CityGroup(
                    city=city,
                    latitude=_mean([v.latitude for v in venue_groups]),
                    longitude=_mean([v.longitude for v in venue_groups]),
                    venues=venue_groups,
                    event_count=sum(v.event_count for v in venue_groups),
                )
            )
        city_groups.sort(key=lambda group: group.city)
        countries.append(
            CountryGroup(
                country=country,
                latitude=_mean([c.latitude for c in city_groups]),
                longitude=_mean([c.longitude for c in city_groups]),
                cities=city_groups,
                event_count=sum(c.event_count for c in city_groups),
            )
        )
    countries.sort(key=lambda group: group.country)
    return countries
