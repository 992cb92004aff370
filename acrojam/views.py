"""Row records consumed by the core and the view models it produces.

The persistence adapter shapes whatever its queries return into these rows,
so nothing below depends on a join layout.
"""

from __future__ import annotations

from dataclasses import dataclass, field

from .recurrence import Occurrence, RecurrenceRule
from .roles import RoleCounts


@dataclass(frozen=True)
class SocialProfile:
    facebook_url: str | None = None
    instagram_url: str | None = None
    website_url: str | None = None
    youtube_url: str | None = None
    show_facebook: bool = False
    show_instagram: bool = False
    show_website: bool = False
    show_youtube: bool = False


@dataclass(frozen=True)
class AttendeeRow:
    user_id: str
    user_name: str
    role: str
    show_name: bool
    is_teaching: bool = False
    social: SocialProfile = field(default_factory=SocialProfile)


@dataclass(frozen=True)
class LocationView:
    id: str
    name: str
    city: str
    country: str
    latitude: float
    longitude: float
    what3names: str | None = None
    how_to_find: str | None = None


@dataclass(frozen=True)
class EventRecord:
    id: str
    title: str
    description: str
    date_time: str
    end_date_time: str
    status: str
    location: LocationView
    date_added: str
    last_updated: str
    recurrence: RecurrenceRule | None = None
    skill_level: str | None = None
    prerequisites: str | None = None
    cost_amount: float | None = None
    concession_amount: float | None = None
    cost_currency: str | None = None
    max_attendees: int | None = None


@dataclass(frozen=True)
class AttendeeView:
    user_id: str
    name: str
    role: str
    hidden: bool
    is_teaching: bool
    social_links: dict[str, str]


@dataclass(frozen=True)
class CurrentRsvp:
    role: str
    show_name: bool
    is_teaching: bool


@dataclass
class EventSummary:
    id: str
    title: str
    description: str
    date_time: str
    end_date_time: str
    status: str
    location: LocationView
    attendee_count: int
    role_counts: RoleCounts
    teacher_count: int
    date_added: str
    last_updated: str
    recurrence: RecurrenceRule | None
    next_occurrence: Occurrence | None
    is_past: bool
    skill_level: str | None = None
    prerequisites: str | None = None
    cost_amount: float | None = None
    concession_amount: float | None = None
    cost_currency: str | None = None
    max_attendees: int | None = None


@dataclass
class EventDetail(EventSummary):
    visible_attendees: list[AttendeeView] = field(default_factory=list)
    current_user_rsvp: CurrentRsvp | None = None
    recurrence_summary: str | None = None
    cost_label: str | None = None
    concession_label: str | None = None
    map_links: list[dict[str, str]] = field(default_factory=list)
    spots_left: int | None = None
