"""Assemble event summaries and details from plain rows."""

from __future__ import annotations

from collections.abc import Sequence
from datetime import datetime

from .recurrence import MAX_ITERATIONS, compute_next_occurrence, format_recurrence_summary
from .roles import aggregate_roles, count_teachers
from .utils import build_external_map_links, format_cost
from .views import AttendeeRow, CurrentRsvp, EventDetail, EventRecord, EventSummary
from .visibility import resolve_visible_attendees


def build_event_summary(
    event: EventRecord,
    rsvps: Sequence[AttendeeRow],
    *,
    now: str | datetime | None = None,
    max_iterations: int = MAX_ITERATIONS,
) -> EventSummary:
    next_occurrence = compute_next_occurrence(
        event.date_time,
        event.end_date_time,
        event.recurrence,
        now,
        max_iterations=max_iterations,
    )
    return EventSummary(
        id=event.id,
        title=event.title,
        description=event.description,
        date_time=event.date_time,
        end_date_time=event.end_date_time,
        status=event.status,
        location=event.location,
        attendee_count=len(rsvps),
        role_counts=aggregate_roles(rsvps),
        teacher_count=count_teachers(rsvps),
        date_added=event.date_added,
        last_updated=event.last_updated,
        recurrence=event.recurrence,
        next_occurrence=next_occurrence,
        is_past=next_occurrence is None,
        skill_level=event.skill_level,
        prerequisites=event.prerequisites,
        cost_amount=event.cost_amount,
        concession_amount=event.concession_amount,
        cost_currency=event.cost_currency,
        max_attendees=event.max_attendees,
    )


def build_event_detail(
    event: EventRecord,
    rsvps: Sequence[AttendeeRow],
    viewer_id: str | None,
    is_admin: bool,
    *,
    now: str | datetime | None = None,
    max_iterations: int = MAX_ITERATIONS,
    default_currency: str | None = None,
) -> EventDetail:
    """Summary plus the attendee list this viewer may see."""
    summary = build_event_summary(event, rsvps, now=now, max_iterations=max_iterations)
    own = next((row for row in rsvps if viewer_id and row.user_id == viewer_id), None)
    currency = event.cost_currency or default_currency
    spots_left = None
    if event.max_attendees is not None:
        spots_left = max(event.max_attendees - len(rsvps), 0)
    return EventDetail(
        **vars(summary),
        visible_attendees=resolve_visible_attendees(rsvps, viewer_id, is_admin),
        current_user_rsvp=(
            CurrentRsvp(role=own.role, show_name=own.show_name, is_teaching=own.is_teaching)
            if own
            else None
        ),
        recurrence_summary=format_recurrence_summary(event.recurrence),
        cost_label=(
            format_cost(event.cost_amount, currency)
            if event.cost_amount is not None
            else None
        ),
        concession_label=(
            format_cost(event.concession_amount, currency)
            if event.concession_amount is not None
            else None
        ),
        map_links=build_external_map_links(
            event.location.latitude,
            event.location.longitude,
            event.location.what3names,
        ),
        spots_left=spots_left,
    )
