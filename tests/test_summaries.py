from __future__ import annotations

from acrojam.recurrence import Occurrence, RecurrenceRule
from acrojam.summaries import build_event_detail, build_event_summary
from acrojam.views import AttendeeRow, CurrentRsvp, EventRecord, LocationView, SocialProfile

LOCATION = LocationView(
    id="loc-1",
    name="Regent's Park",
    city="London",
    country="UK",
    latitude=51.53,
    longitude=-0.15,
    what3names="filled.count.soap",
)


def _record(**overrides) -> EventRecord:
    values = dict(
        id="evt-1",
        title="Sunday Jam",
        description="Bring a mat",
        date_time="2026-01-04T14:00:00Z",
        end_date_time="2026-01-04T17:00:00Z",
        status="approved",
        location=LOCATION,
        date_added="2025-12-01T09:00:00Z",
        last_updated="2025-12-02T09:00:00Z",
        recurrence=RecurrenceRule("weekly", "2026-06-28T23:59:59Z"),
    )
    values.update(overrides)
    return EventRecord(**values)


ROWS = [
    AttendeeRow("u1", "Ada", "Base", True, is_teaching=True),
    AttendeeRow(
        "u2",
        "Bo",
        "Flyer",
        False,
        social=SocialProfile(instagram_url="https://instagram.com/bo", show_instagram=True),
    ),
    AttendeeRow("u3", "Cy", "Hybrid", True),
    AttendeeRow("u4", "Di", "Flyer", False),
]


def test_summary_counts_and_next_occurrence():
    summary = build_event_summary(_record(), ROWS, now="2026-02-10T09:00:00Z")

    assert summary.attendee_count == 4
    assert summary.role_counts == {"Base": 1, "Flyer": 2, "Hybrid": 1}
    assert summary.teacher_count == 1
    assert summary.next_occurrence == Occurrence(
        "2026-02-15T14:00:00Z", "2026-02-15T17:00:00Z"
    )
    assert summary.is_past is False
    assert summary.location is LOCATION


def test_summary_of_expired_event_is_past():
    summary = build_event_summary(_record(recurrence=None), [], now="2026-02-10T09:00:00Z")
    assert summary.next_occurrence is None
    assert summary.is_past is True
    assert summary.role_counts == {"Base": 0, "Flyer": 0, "Hybrid": 0}


def test_detail_for_member_includes_own_hidden_rsvp():
    detail = build_event_detail(_record(), ROWS, "u2", False, now="2026-02-10T09:00:00Z")

    assert [(a.user_id, a.hidden) for a in detail.visible_attendees] == [
        ("u1", False),
        ("u2", True),
        ("u3", False),
    ]
    assert detail.visible_attendees[1].social_links == {
        "instagram": "https://instagram.com/bo"
    }
    assert detail.current_user_rsvp == CurrentRsvp("Flyer", False, False)
    assert detail.attendee_count == 4
    assert detail.recurrence_summary == "Repeats weekly until 28 Jun 2026"


def test_detail_for_anonymous_viewer_lists_nobody_but_keeps_counts():
    detail = build_event_detail(_record(), ROWS, None, False, now="2026-02-10T09:00:00Z")
    assert detail.visible_attendees == []
    assert detail.current_user_rsvp is None
    assert detail.role_counts == {"Base": 1, "Flyer": 2, "Hybrid": 1}


def test_detail_for_admin_lists_everyone():
    detail = build_event_detail(_record(), ROWS, "admin", True, now="2026-02-10T09:00:00Z")
    assert len(detail.visible_attendees) == len(ROWS)


def test_detail_cost_labels_capacity_and_map_links():
    record = _record(cost_amount=10, concession_amount=7.5, max_attendees=3)
    detail = build_event_detail(
        record, ROWS, None, False, now="2026-02-10T09:00:00Z", default_currency="GBP"
    )

    assert detail.cost_label == "£10.00"
    assert detail.concession_label == "£7.50"
    assert detail.spots_left == 0
    assert [link["label"] for link in detail.map_links] == [
        "Google Maps",
        "Apple Maps",
        "OpenStreetMap",
        "What3Names",
    ]


def test_detail_without_cost_or_cap():
    detail = build_event_detail(_record(), [], None, False, now="2026-02-10T09:00:00Z")
    assert detail.cost_label is None
    assert detail.concession_label is None
    assert detail.spots_left is None
