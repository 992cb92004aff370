"""CRUD helpers for users, locations, events and RSVPs.

This is the only module that knows how rows are stored; everything it hands
to the core goes through the narrow records in ``views``.
"""

from __future__ import annotations

import logging
import secrets
from datetime import datetime
from typing import Sequence

from sqlalchemy import or_, select
from sqlalchemy.orm import Session, selectinload

from .config import settings
from .hierarchy import LocationHierarchy, build_location_hierarchy
from .models import Event, Location, RSVP, User
from .recurrence import RECURRENCE_FREQUENCIES, RecurrenceRule
from .roles import ROLES
from .status import (
    PENDING,
    apply_status_action,
    initial_status,
    is_publicly_listed,
    public_events,
)
from .summaries import build_event_detail, build_event_summary
from .utils import normalize_city_name, to_iso, to_naive_utc, utcnow
from .views import (
    AttendeeRow,
    EventDetail,
    EventRecord,
    EventSummary,
    LocationView,
    SocialProfile,
)

logger = logging.getLogger("uvicorn.error")

LOCATION_SEARCH_LIMIT = 20


class MissingLocationError(LookupError):
    """Raised when an event row does not reference an existing location."""


class TeacherNotApprovedError(PermissionError):
    """Raised when a user who is not an approved teacher RSVPs as teaching."""


def _now() -> datetime:
    return utcnow()


# -------- users --------


def create_user(
    session: Session, *, name: str, email: str, is_admin: bool = False
) -> User:
    user = User(
        name=name,
        email=email.strip().lower(),
        api_token=secrets.token_urlsafe(32),
        is_admin=is_admin,
        created_at=_now(),
    )
    session.add(user)
    session.flush()
    return user


def get_user(session: Session, user_id: str) -> User | None:
    return session.get(User, user_id)


def get_user_by_token(session: Session, token: str | None) -> User | None:
    if not token:
        return None
    stmt = select(User).where(User.api_token == token)
    return session.scalars(stmt).first()


def update_profile(
    session: Session,
    user: User,
    *,
    default_role: str | None,
    default_show_name: bool | None,
    facebook_url: str | None,
    instagram_url: str | None,
    website_url: str | None,
    youtube_url: str | None,
    show_facebook: bool,
    show_instagram: bool,
    show_website: bool,
    show_youtube: bool,
) -> User:
    if default_role is not None and default_role not in ROLES:
        raise ValueError(f"Invalid role {default_role!r}")
    user.default_role = default_role
    user.default_show_name = default_show_name
    user.facebook_url = facebook_url
    user.instagram_url = instagram_url
    user.website_url = website_url
    user.youtube_url = youtube_url
    user.show_facebook = show_facebook
    user.show_instagram = show_instagram
    user.show_website = show_website
    user.show_youtube = show_youtube
    session.add(user)
    session.flush()
    return user


def request_teacher_status(session: Session, user: User) -> User:
    """Record a request for teacher status; repeat requests keep the first time."""
    if user.is_teacher_approved:
        raise ValueError("User is already an approved teacher")
    if user.teacher_requested_at is None:
        user.teacher_requested_at = _now()
        logger.info("Teacher status requested by user %s", user.id)
    session.add(user)
    session.flush()
    return user


def approve_teacher(session: Session, user: User, *, approved_by: User) -> User:
    user.is_teacher_approved = True
    user.teacher_approved_by = approved_by.id
    session.add(user)
    session.flush()
    logger.info("User %s approved as teacher by %s", user.id, approved_by.id)
    return user


def deny_teacher(session: Session, user: User) -> User:
    user.teacher_requested_at = None
    session.add(user)
    session.flush()
    logger.info("Teacher request denied for user %s", user.id)
    return user


def list_pending_teacher_requests(session: Session) -> Sequence[User]:
    stmt = (
        select(User)
        .where(User.teacher_requested_at.is_not(None))
        .where(User.is_teacher_approved.is_(False))
        .order_by(User.teacher_requested_at.asc())
    )
    return session.scalars(stmt).all()


def social_profile(user: User) -> SocialProfile:
    return SocialProfile(
        facebook_url=user.facebook_url,
        instagram_url=user.instagram_url,
        website_url=user.website_url,
        youtube_url=user.youtube_url,
        show_facebook=user.show_facebook,
        show_instagram=user.show_instagram,
        show_website=user.show_website,
        show_youtube=user.show_youtube,
    )


def public_profile(user: User) -> dict:
    """Name plus only the social links the user chose to publish."""
    social = social_profile(user)
    return {
        "id": user.id,
        "name": user.name,
        "facebook_url": social.facebook_url if social.show_facebook else None,
        "instagram_url": social.instagram_url if social.show_instagram else None,
        "website_url": social.website_url if social.show_website else None,
        "youtube_url": social.youtube_url if social.show_youtube else None,
    }


# -------- locations --------


def create_location(
    session: Session,
    *,
    name: str,
    city: str,
    country: str,
    latitude: float,
    longitude: float,
    what3names: str | None = None,
    how_to_find: str | None = None,
    created_by: User | None = None,
) -> Location:
    location = Location(
        name=name.strip(),
        city=normalize_city_name(city) or city,
        country=country.strip(),
        latitude=latitude,
        longitude=longitude,
        what3names=what3names,
        how_to_find=how_to_find,
        created_by=created_by.id if created_by else None,
        created_at=_now(),
    )
    session.add(location)
    session.flush()
    return location


def get_location(session: Session, location_id: str) -> Location | None:
    return session.get(Location, location_id)


def search_locations(session: Session, query: str) -> Sequence[Location]:
    pattern = f"%{query.strip()}%"
    stmt = (
        select(Location)
        .where(
            or_(
                Location.name.ilike(pattern),
                Location.city.ilike(pattern),
                Location.country.ilike(pattern),
            )
        )
        .order_by(Location.country, Location.city, Location.name)
        .limit(LOCATION_SEARCH_LIMIT)
    )
    return session.scalars(stmt).all()


def list_locations(session: Session) -> Sequence[Location]:
    stmt = select(Location).order_by(Location.country, Location.city, Location.name)
    return session.scalars(stmt).all()


def location_view(location: Location) -> LocationView:
    return LocationView(
        id=location.id,
        name=location.name,
        city=location.city,
        country=location.country,
        latitude=location.latitude,
        longitude=location.longitude,
        what3names=location.what3names,
        how_to_find=location.how_to_find,
    )


# -------- events --------


def create_event(
    session: Session,
    *,
    title: str,
    description: str,
    start_time: datetime | str,
    end_time: datetime | str,
    location: Location,
    created_by: User | None = None,
    recurrence_frequency: str = "none",
    recurrence_end_date: datetime | str | None = None,
    skill_level: str | None = None,
    prerequisites: str | None = None,
    cost_amount: float | None = None,
    concession_amount: float | None = None,
    cost_currency: str | None = None,
    max_attendees: int | None = None,
) -> Event:
    """Create an event; pending review unless an admin created it."""
    if recurrence_frequency not in RECURRENCE_FREQUENCIES:
        raise ValueError(f"Invalid recurrence frequency {recurrence_frequency!r}")
    created_by_admin = bool(created_by and created_by.is_admin)
    event = Event(
        title=title,
        description=description,
        start_time=to_naive_utc(start_time),
        end_time=to_naive_utc(end_time),
        recurrence_frequency=recurrence_frequency,
        recurrence_end_date=(
            to_naive_utc(recurrence_end_date) if recurrence_frequency != "none" else None
        ),
        status=initial_status(created_by_admin),
        location=location,
        created_by=created_by.id if created_by else None,
        skill_level=skill_level,
        prerequisites=prerequisites,
        cost_amount=cost_amount,
        concession_amount=concession_amount,
        cost_currency=cost_currency.upper() if cost_currency else None,
        max_attendees=max_attendees,
        date_added=_now(),
        last_updated=_now(),
    )
    session.add(event)
    session.flush()
    logger.info("Event %s created with status %s", event.id, event.status)
    return event


def get_event(session: Session, event_id: str) -> Event | None:
    return session.get(Event, event_id)


def _set_status(session: Session, event: Event, action: str) -> Event:
    event.status = apply_status_action(event.status, action)
    event.last_updated = _now()
    session.add(event)
    session.flush()
    logger.info("Event %s %s", event.id, event.status)
    return event


def approve_event(session: Session, event: Event) -> Event:
    return _set_status(session, event, "approve")


def reject_event(session: Session, event: Event) -> Event:
    return _set_status(session, event, "reject")


def list_pending_events(session: Session) -> Sequence[Event]:
    stmt = (
        select(Event)
        .where(Event.status == PENDING)
        .options(selectinload(Event.location))
        .order_by(Event.date_added.asc())
    )
    return session.scalars(stmt).all()


def event_record(event: Event) -> EventRecord:
    if event.location is None:
        raise MissingLocationError(f"Event {event.id} has no location")
    recurrence = None
    if event.recurrence_frequency and event.recurrence_frequency != "none":
        recurrence = RecurrenceRule(
            frequency=event.recurrence_frequency,
            end_date=(
                to_iso(event.recurrence_end_date) if event.recurrence_end_date else None
            ),
        )
    return EventRecord(
        id=event.id,
        title=event.title,
        description=event.description,
        date_time=to_iso(event.start_time),
        end_date_time=to_iso(event.end_time),
        status=event.status,
        location=location_view(event.location),
        date_added=to_iso(event.date_added),
        last_updated=to_iso(event.last_updated),
        recurrence=recurrence,
        skill_level=event.skill_level,
        prerequisites=event.prerequisites,
        cost_amount=event.cost_amount,
        concession_amount=event.concession_amount,
        cost_currency=event.cost_currency,
        max_attendees=event.max_attendees,
    )


def attendee_rows(event: Event) -> list[AttendeeRow]:
    rsvps = sorted(event.rsvps, key=lambda rsvp: (rsvp.created_at, rsvp.id))
    return [
        AttendeeRow(
            user_id=rsvp.user_id,
            user_name=rsvp.user.name,
            role=rsvp.role,
            show_name=rsvp.show_name,
            is_teaching=rsvp.is_teaching,
            social=social_profile(rsvp.user),
        )
        for rsvp in rsvps
    ]


def _summary_sort_key(summary: EventSummary) -> tuple[int, str, str]:
    upcoming = summary.next_occurrence
    if upcoming is None:
        return (1, summary.date_time, summary.id)
    return (0, upcoming.date_time, summary.id)


def list_event_summaries(
    session: Session,
    *,
    now: datetime | str | None = None,
    include_past: bool = False,
) -> list[EventSummary]:
    """Summaries of approved events, soonest next occurrence first."""
    stmt = select(Event).options(
        selectinload(Event.location),
        selectinload(Event.rsvps).selectinload(RSVP.user),
    )
    reference = now or utcnow()
    summaries = [
        build_event_summary(
            event_record(event),
            attendee_rows(event),
            now=reference,
            max_iterations=settings.recurrence_iteration_limit,
        )
        for event in public_events(session.scalars(stmt).all())
    ]
    if not include_past:
        summaries = [summary for summary in summaries if not summary.is_past]
    summaries.sort(key=_summary_sort_key)
    return summaries


def get_event_detail(
    session: Session,
    event_id: str,
    viewer_id: str | None,
    is_admin: bool,
    *,
    now: datetime | str | None = None,
) -> EventDetail | None:
    """Detail for one event, or ``None`` if it is missing or not public.

    Pending and rejected events stay reachable for admins reviewing them.
    """
    event = get_event(session, event_id)
    if event is None:
        return None
    if not is_publicly_listed(event.status) and not is_admin:
        return None
    return build_event_detail(
        event_record(event),
        attendee_rows(event),
        viewer_id,
        is_admin,
        now=now or utcnow(),
        max_iterations=settings.recurrence_iteration_limit,
        default_currency=settings.default_currency,
    )


def location_hierarchy(
    session: Session, *, now: datetime | str | None = None
) -> LocationHierarchy:
    return build_location_hierarchy(list_event_summaries(session, now=now))


# -------- RSVPs --------


def get_rsvp(session: Session, *, event: Event, user: User) -> RSVP | None:
    stmt = select(RSVP).where(RSVP.event_id == event.id, RSVP.user_id == user.id)
    return session.scalars(stmt).first()


def upsert_rsvp(
    session: Session,
    *,
    event: Event,
    user: User,
    role: str,
    show_name: bool,
    is_teaching: bool = False,
) -> RSVP:
    """Create the user's RSVP for an event, or update the one they have.

    Only approved teachers may mark themselves as teaching.
    """
    if role not in ROLES:
        raise ValueError(f"Invalid role {role!r}")
    if is_teaching and not user.is_teacher_approved:
        raise TeacherNotApprovedError("Only approved teachers can RSVP as teaching")
    rsvp = get_rsvp(session, event=event, user=user)
    if rsvp is None:
        rsvp = RSVP(event=event, user=user, created_at=_now())
        logger.info("RSVP created for event %s by user %s", event.id, user.id)
    else:
        logger.info("RSVP updated for event %s by user %s", event.id, user.id)
    rsvp.role = role
    rsvp.show_name = bool(show_name)
    rsvp.is_teaching = bool(is_teaching)
    rsvp.last_modified = _now()
    session.add(rsvp)
    session.flush()
    return rsvp


def delete_rsvp(session: Session, *, event: Event, user: User) -> bool:
    rsvp = get_rsvp(session, event=event, user=user)
    if rsvp is None:
        return False
    event.rsvps.remove(rsvp)
    session.delete(rsvp)
    session.flush()
    logger.info("RSVP deleted for event %s by user %s", event.id, user.id)
    return True
