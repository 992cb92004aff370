from __future__ import annotations

import pytest

from acrojam.hierarchy import build_location_hierarchy
from acrojam.roles import empty_role_counts
from acrojam.views import EventSummary, LocationView


def _event(
    event_id: str,
    venue: str,
    city: str,
    country: str,
    *,
    lat: float = 0.0,
    lng: float = 0.0,
    start: str = "2026-05-01T10:00:00Z",
) -> EventSummary:
    return EventSummary(
        id=event_id,
        title=f"Jam {event_id}",
        description="",
        date_time=start,
        end_date_time=start,
        status="approved",
        location=LocationView(
            id=f"{country}-{city}-{venue}",
            name=venue,
            city=city,
            country=country,
            latitude=lat,
            longitude=lng,
        ),
        attendee_count=0,
        role_counts=empty_role_counts(),
        teacher_count=0,
        date_added=start,
        last_updated=start,
        recurrence=None,
        next_occurrence=None,
        is_past=False,
    )


EVENTS = [
    _event("e1", "Beta Park", "London", "UK", lat=51.5, lng=-0.1),
    _event("e2", "Zulu Gym", "Manchester", "UK", lat=53.5, lng=-2.2),
    _event("e3", "Alpha Centre", "Paris", "France", lat=48.9, lng=2.3),
    _event("e4", "Alpha Park", "London", "UK", lat=51.5, lng=-0.3),
]


def test_hierarchy_groups_and_sorts_every_level():
    hierarchy = build_location_hierarchy(EVENTS)

    assert [c.country for c in hierarchy] == ["France", "UK"]
    uk = hierarchy[1]
    assert [c.city for c in uk.cities] == ["London", "Manchester"]
    london = uk.cities[0]
    assert [v.venue for v in london.venues] == ["Alpha Park", "Beta Park"]


def test_hierarchy_counts_add_up_at_every_level():
    hierarchy = build_location_hierarchy(EVENTS)

    assert sum(country.event_count for country in hierarchy) == len(EVENTS)
    for country in hierarchy:
        assert country.event_count == sum(city.event_count for city in country.cities)
        for city in country.cities:
            assert city.event_count == sum(venue.event_count for venue in city.venues)
            for venue in city.venues:
                assert venue.event_count == len(venue.events)


def test_group_coordinates_are_means_of_children():
    hierarchy = build_location_hierarchy(EVENTS)
    uk = hierarchy[1]
    london, manchester = uk.cities

    assert london.latitude == pytest.approx(51.5)
    assert london.longitude == pytest.approx(-0.2)
    assert manchester.latitude == pytest.approx(53.5)
    assert uk.latitude == pytest.approx((51.5 + 53.5) / 2)
    assert uk.longitude == pytest.approx((-0.2 + -2.2) / 2)


def test_venue_events_sorted_by_start_and_coordinates_from_first_event():
    events = [
        _event("late", "Hall", "Leeds", "UK", lat=53.8, lng=-1.5, start="2026-06-01T10:00:00Z"),
        _event("early", "Hall", "Leeds", "UK", lat=53.8, lng=-1.5, start="2026-05-01T10:00:00Z"),
    ]
    (country,) = build_location_hierarchy(events)
    (venue,) = country.cities[0].venues

    assert [e.id for e in venue.events] == ["early", "late"]
    assert (venue.latitude, venue.longitude) == (53.8, -1.5)


def test_same_venue_name_in_different_cities_stays_separate():
    events = [
        _event("a", "Central Park", "New York", "USA"),
        _event("b", "Central Park", "Boston", "USA"),
        _event("c", "Central Park", "London", "UK"),
    ]
    hierarchy = build_location_hierarchy(events)

    usa = next(c for c in hierarchy if c.country == "USA")
    assert [c.city for c in usa.cities] == ["Boston", "New York"]
    assert all(len(city.venues) == 1 for city in usa.cities)
    assert sum(c.event_count for c in hierarchy) == 3


def test_names_sort_by_code_point():
    events = [
        _event("1", "v", "x", "zambia"),
        _event("2", "v", "x", "Zimbabwe"),
        _event("3", "v", "x", "Åland"),
        _event("4", "v", "x", "Austria"),
    ]
    hierarchy = build_location_hierarchy(events)
    assert [c.country for c in hierarchy] == ["Austria", "Zimbabwe", "zambia", "Åland"]


def test_empty_input_gives_empty_hierarchy():
    assert build_location_hierarchy([]) == []
