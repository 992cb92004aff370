"""Development helpers for populating fake members, venues and jams."""

from __future__ import annotations

import random
from datetime import datetime, timedelta

from faker import Faker
from sqlalchemy.orm import Session

from .crud import create_event, create_location, create_user, upsert_rsvp
from .database import get_session
from .models import Event, Location, User
from .roles import ROLES
from .status import APPROVED, PENDING, REJECTED
from .storage import init_db
from .utils import utcnow

_venue_types = [
    "Park",
    "Community Hall",
    "Yoga Studio",
    "Climbing Gym",
    "Beach",
    "Dance School",
    "Sports Centre",
]
_event_types = [
    "Acro Jam",
    "Beginners Jam",
    "Washing Machines Workshop",
    "Standing Acro Session",
    "Therapeutic Flying",
    "Pops & Whips Clinic",
    "Sunday Jam",
]
_skill_levels = ["Beginner", "Intermediate", "Advanced", "All levels", None]
_currencies = ["GBP", "GBP", "EUR", "USD", None]
_statuses = [APPROVED, APPROVED, APPROVED, APPROVED, PENDING, REJECTED]


def seed_fake_data(
    *,
    user_count: int = 12,
    location_count: int = 6,
    max_events_per_location: int = 3,
    max_rsvps_per_event: int = 6,
    recurring_percentage: int = 30,
) -> dict[str, int]:
    """Populate the SQLite database with synthetic members, venues and events."""
    if user_count < 1:
        raise ValueError("user_count must be >= 1")
    if location_count < 0:
        raise ValueError("location_count must be >= 0")
    if max_events_per_location < 1:
        raise ValueError("max_events_per_location must be >= 1")
    if max_rsvps_per_event < 0:
        raise ValueError("max_rsvps_per_event must be >= 0")
    if not 0 <= recurring_percentage <= 100:
        raise ValueError("recurring_percentage must be between 0 and 100")

    init_db()
    fake = Faker()
    stats = {"users": 0, "locations": 0, "events": 0, "rsvps": 0}

    with get_session() as session:
        users = [_create_user(session, fake) for _ in range(user_count)]
        stats["users"] = len(users)
        for _ in range(location_count):
            location = _create_location(session, fake, creator=random.choice(users))
            stats["locations"] += 1
            for _ in range(random.randint(1, max_events_per_location)):
                rsvps = _create_event(
                    session,
                    fake,
                    location=location,
                    creator=random.choice(users),
                    members=users,
                    recurring_percentage=recurring_percentage,
                    max_rsvps=max_rsvps_per_event,
                )
                stats["events"] += 1
                stats["rsvps"] += rsvps

    return stats


def _create_user(session: Session, fake: Faker) -> User:
    user = create_user(session, name=fake.name_nonbinary(), email=fake.unique.email())
    user.default_role = random.choice(ROLES)
    user.default_show_name = random.random() < 0.7
    if random.random() < 0.25:
        user.teacher_requested_at = utcnow()
        user.is_teacher_approved = random.random() < 0.7
    if random.random() < 0.4:
        user.instagram_url = f"https://instagram.com/{fake.user_name()}"
        user.show_instagram = random.random() < 0.6
    if random.random() < 0.2:
        user.website_url = fake.url()
        user.show_website = True
    return user


def _create_location(session: Session, fake: Faker, *, creator: User) -> Location:
    latitude, longitude = fake.local_latlng(country_code="GB", coords_only=True)
    return create_location(
        session,
        name=f"{fake.last_name()} {random.choice(_venue_types)}",
        city=fake.city(),
        country="United Kingdom",
        latitude=float(latitude),
        longitude=float(longitude),
        what3names=".".join(fake.words(nb=3)) if random.random() < 0.5 else None,
        how_to_find=fake.sentence() if random.random() < 0.5 else None,
        created_by=creator,
    )


def _create_event(
    session: Session,
    fake: Faker,
    *,
    location: Location,
    creator: User,
    members: list[User],
    recurring_percentage: int,
    max_rsvps: int,
) -> int:
    start_time = _random_start_time()
    end_time = start_time + timedelta(hours=random.randint(1, 4))
    frequency = "none"
    recurrence_end = None
    if random.randint(1, 100) <= recurring_percentage:
        frequency = random.choice(("daily", "weekly", "weekly", "monthly"))
        recurrence_end = start_time + timedelta(days=random.randint(30, 180))
    cost = random.choice((None, 5.0, 8.0, 10.0, 12.5))
    event = create_event(
        session,
        title=f"{location.city} {random.choice(_event_types)}",
        description="\n\n".join(fake.paragraphs(nb=2)),
        start_time=start_time,
        end_time=end_time,
        location=location,
        created_by=creator,
        recurrence_frequency=frequency,
        recurrence_end_date=recurrence_end,
        skill_level=random.choice(_skill_levels),
        cost_amount=cost,
        concession_amount=cost / 2 if cost and random.random() < 0.5 else None,
        cost_currency=random.choice(_currencies) if cost else None,
        max_attendees=random.choice((None, None, 12, 20, 30)),
    )
    event.status = random.choice(_statuses)
    return _create_rsvps(session, event, members, max_rsvps)


def _random_start_time() -> datetime:
    now = utcnow().replace(second=0, microsecond=0)
    day_offset = random.randint(-14, 45)
    hour = random.randint(9, 19)
    return (now + timedelta(days=day_offset)).replace(hour=hour, minute=0)


def _create_rsvps(
    session: Session, event: Event, members: list[User], max_rsvps: int
) -> int:
    if max_rsvps <= 0:
        return 0
    attendees = random.sample(members, k=random.randint(0, min(max_rsvps, len(members))))
    for member in attendees:
        upsert_rsvp(
            session,
            event=event,
            user=member,
            role=member.default_role or random.choice(ROLES),
            show_name=(
                member.default_show_name
                if member.default_show_name is not None
                else random.random() < 0.7
            ),
            is_teaching=member.is_teacher_approved and random.random() < 0.5,
        )
    return len(attendees)
