from __future__ import annotations

from datetime import datetime, timedelta

import pytest

from acrojam import database
from acrojam.crud import (
    MissingLocationError,
    TeacherNotApprovedError,
    approve_event,
    approve_teacher,
    create_event,
    create_location,
    create_user,
    delete_rsvp,
    deny_teacher,
    event_record,
    get_event_detail,
    get_user_by_token,
    list_event_summaries,
    list_pending_events,
    list_pending_teacher_requests,
    location_hierarchy,
    public_profile,
    reject_event,
    request_teacher_status,
    search_locations,
    update_profile,
    upsert_rsvp,
)
from acrojam.models import Event, RSVP
from acrojam.status import InvalidStatusTransition
from acrojam.utils import parse_instant, to_iso

NOW = "2026-02-10T09:00:00Z"


@pytest.fixture()
def session():
    db = database.SessionLocal()
    try:
        yield db
    finally:
        db.close()


@pytest.fixture()
def admin(session):
    return create_user(session, name="Admin", email="admin@example.com", is_admin=True)


@pytest.fixture()
def member(session):
    return create_user(session, name="Member", email="Member@Example.com")


@pytest.fixture()
def park(session, admin):
    return create_location(
        session,
        name="Regent's Park",
        city="Greater London",
        country="UK",
        latitude=51.53,
        longitude=-0.15,
        created_by=admin,
    )


def _event(
    session,
    location,
    creator,
    *,
    title="Jam",
    start="2026-03-01T10:00:00Z",
    end=None,
    **kwargs,
):
    if end is None:
        end = to_iso(parse_instant(start) + timedelta(hours=2))
    return create_event(
        session,
        title=title,
        description="Bring water",
        start_time=start,
        end_time=end,
        location=location,
        created_by=creator,
        **kwargs,
    )


def test_create_user_issues_token_and_normalizes_email(session, member):
    assert member.email == "member@example.com"
    assert len(member.api_token) > 20
    assert get_user_by_token(session, member.api_token) is member
    assert get_user_by_token(session, None) is None
    assert get_user_by_token(session, "nope") is None


def test_create_location_normalizes_city(park):
    assert park.city == "London"


def test_search_locations_matches_name_city_or_country(session, park, admin):
    create_location(
        session,
        name="Climbing Works",
        city="Sheffield",
        country="UK",
        latitude=53.36,
        longitude=-1.5,
        created_by=admin,
    )
    assert [loc.name for loc in search_locations(session, "regent")] == ["Regent's Park"]
    assert [loc.name for loc in search_locations(session, "sheff")] == ["Climbing Works"]
    assert len(search_locations(session, "uk")) == 2


def test_member_events_start_pending_and_admin_events_approved(session, park, admin, member):
    pending = _event(session, park, member)
    approved = _event(session, park, admin)

    assert pending.status == "pending"
    assert approved.status == "approved"
    assert list_pending_events(session) == [pending]


def test_create_event_rejects_unknown_frequency(session, park, admin):
    with pytest.raises(ValueError):
        _event(session, park, admin, recurrence_frequency="yearly")


def test_create_event_stores_naive_utc_and_drops_end_for_one_offs(session, park, admin):
    event = _event(
        session,
        park,
        admin,
        start="2026-03-01T10:00:00+01:00",
        end="2026-03-01T12:00:00+01:00",
        recurrence_end_date="2026-06-01T00:00:00Z",
        cost_currency="gbp",
    )
    assert event.start_time == datetime(2026, 3, 1, 9, 0)
    assert event.recurrence_end_date is None
    assert event.cost_currency == "GBP"


def test_approve_and_reject_are_one_way(session, park, member):
    first = _event(session, park, member)
    second = _event(session, park, member)

    approve_event(session, first)
    reject_event(session, second)
    assert (first.status, second.status) == ("approved", "rejected")

    with pytest.raises(InvalidStatusTransition):
        reject_event(session, first)
    with pytest.raises(InvalidStatusTransition):
        approve_event(session, second)


def test_event_record_requires_a_location():
    event = Event(id="orphan", title="x", description="x", status="approved")
    with pytest.raises(MissingLocationError):
        event_record(event)


def test_list_event_summaries_only_lists_upcoming_approved_events(session, park, admin, member):
    later = _event(session, park, admin, title="Later", start="2026-04-01T10:00:00Z")
    weekly = _event(
        session,
        park,
        admin,
        title="Weekly",
        start="2026-01-01T18:00:00Z",
        recurrence_frequency="weekly",
        recurrence_end_date="2026-06-30T23:59:59Z",
    )
    past = _event(session, park, admin, title="Past", start="2025-01-01T10:00:00Z")
    _event(session, park, member, title="Pending")

    summaries = list_event_summaries(session, now=NOW)
    assert [s.title for s in summaries] == ["Weekly", "Later"]
    assert summaries[0].next_occurrence.date_time == "2026-02-12T18:00:00Z"
    assert summaries[1].id == later.id

    with_past = list_event_summaries(session, now=NOW, include_past=True)
    assert [s.id for s in with_past] == [weekly.id, later.id, past.id]
    assert with_past[-1].is_past is True


def test_location_hierarchy_counts_public_events(session, park, admin, member):
    _event(session, park, admin)
    _event(session, park, admin, start="2026-03-08T10:00:00Z")
    _event(session, park, member)

    (country,) = location_hierarchy(session, now=NOW)
    assert country.country == "UK"
    assert country.event_count == 2
    assert country.cities[0].venues[0].venue == "Regent's Park"


def test_get_event_detail_hides_unreviewed_events_from_members(session, park, member, admin):
    event = _event(session, park, member)

    assert get_event_detail(session, event.id, member.id, False, now=NOW) is None
    detail = get_event_detail(session, event.id, admin.id, True, now=NOW)
    assert detail is not None
    assert detail.status == "pending"
    assert get_event_detail(session, "missing", admin.id, True, now=NOW) is None


def test_upsert_rsvp_updates_in_place(session, park, admin, member):
    event = _event(session, park, admin)
    approve_teacher(session, member, approved_by=admin)

    upsert_rsvp(session, event=event, user=member, role="Base", show_name=True)
    upsert_rsvp(session, event=event, user=member, role="Flyer", show_name=False, is_teaching=True)

    rows = session.query(RSVP).filter_by(event_id=event.id).all()
    assert len(rows) == 1
    assert (rows[0].role, rows[0].show_name, rows[0].is_teaching) == ("Flyer", False, True)

    detail = get_event_detail(session, event.id, member.id, False, now=NOW)
    assert detail.role_counts == {"Base": 0, "Flyer": 1, "Hybrid": 0}
    assert detail.teacher_count == 1
    assert [(a.user_id, a.hidden) for a in detail.visible_attendees] == [(member.id, True)]
    assert detail.current_user_rsvp.role == "Flyer"


def test_upsert_rsvp_rejects_unknown_role(session, park, admin, member):
    event = _event(session, park, admin)
    with pytest.raises(ValueError):
        upsert_rsvp(session, event=event, user=member, role="Spotter", show_name=True)


def test_upsert_rsvp_refuses_teaching_without_approval(session, park, admin, member):
    event = _event(session, park, admin)

    with pytest.raises(TeacherNotApprovedError):
        upsert_rsvp(session, event=event, user=member, role="Base", show_name=True, is_teaching=True)

    assert session.query(RSVP).count() == 0
    rsvp = upsert_rsvp(session, event=event, user=member, role="Base", show_name=True)
    assert rsvp.is_teaching is False


def test_teacher_request_approval_flow(session, admin, member):
    other = create_user(session, name="Other", email="other@example.com")
    request_teacher_status(session, member)
    first_request = member.teacher_requested_at
    request_teacher_status(session, member)
    request_teacher_status(session, other)

    assert member.teacher_requested_at == first_request
    assert set(list_pending_teacher_requests(session)) == {member, other}

    approve_teacher(session, member, approved_by=admin)
    assert member.is_teacher_approved is True
    assert member.teacher_approved_by == admin.id
    assert list_pending_teacher_requests(session) == [other]

    with pytest.raises(ValueError):
        request_teacher_status(session, member)


def test_deny_teacher_clears_the_request(session, member):
    request_teacher_status(session, member)
    deny_teacher(session, member)

    assert member.teacher_requested_at is None
    assert member.is_teacher_approved is False
    assert list_pending_teacher_requests(session) == []


def test_delete_rsvp(session, park, admin, member):
    event = _event(session, park, admin)
    upsert_rsvp(session, event=event, user=member, role="Hybrid", show_name=True)

    assert delete_rsvp(session, event=event, user=member) is True
    assert delete_rsvp(session, event=event, user=member) is False
    assert session.query(RSVP).count() == 0
    summary = list_event_summaries(session, now=NOW)[0]
    assert summary.attendee_count == 0


def test_public_profile_only_exposes_published_links(session, member):
    update_profile(
        session,
        member,
        default_role="Flyer",
        default_show_name=True,
        facebook_url="https://facebook.com/member",
        instagram_url="https://instagram.com/member",
        website_url=None,
        youtube_url=None,
        show_facebook=False,
        show_instagram=True,
        show_website=True,
        show_youtube=False,
    )
    profile = public_profile(member)
    assert profile["name"] == "Member"
    assert profile["facebook_url"] is None
    assert profile["instagram_url"] == "https://instagram.com/member"
    assert profile["website_url"] is None


def test_update_profile_rejects_unknown_default_role(session, member):
    with pytest.raises(ValueError):
        update_profile(
            session,
            member,
            default_role="Spotter",
            default_show_name=None,
            facebook_url=None,
            instagram_url=None,
            website_url=None,
            youtube_url=None,
            show_facebook=False,
            show_instagram=False,
            show_website=False,
            show_youtube=False,
        )
