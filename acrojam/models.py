"""SQLAlchemy models for AcroJam."""

from __future__ import annotations

import uuid
from datetime import datetime

from sqlalchemy import (
    Boolean,
    Column,
    DateTime,
    Float,
    ForeignKey,
    Integer,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import declarative_base, relationship

from .utils import utcnow

Base = declarative_base()


def _uuid() -> str:
    return str(uuid.uuid4())


def _now() -> datetime:
    return utcnow()


class User(Base):
    __tablename__ = "users"

    id = Column(String(36), primary_key=True, default=_uuid)
    name = Column(String(120), nullable=False)
    email = Column(String(255), nullable=False, unique=True)
    api_token = Column(String(128), nullable=False, unique=True)
    is_admin = Column(Boolean, default=False, nullable=False)
    is_teacher_approved = Column(Boolean, default=False, nullable=False)
    teacher_requested_at = Column(DateTime, nullable=True)
    teacher_approved_by = Column(String(36), nullable=True)
    default_role = Column(String(16), nullable=True)
    default_show_name = Column(Boolean, nullable=True)
    facebook_url = Column(String(512), nullable=True)
    instagram_url = Column(String(512), nullable=True)
    website_url = Column(String(512), nullable=True)
    youtube_url = Column(String(512), nullable=True)
    show_facebook = Column(Boolean, default=False, nullable=False)
    show_instagram = Column(Boolean, default=False, nullable=False)
    show_website = Column(Boolean, default=False, nullable=False)
    show_youtube = Column(Boolean, default=False, nullable=False)
    created_at = Column(DateTime, default=_now, nullable=False)

    rsvps = relationship("RSVP", back_populates="user", cascade="all, delete-orphan")


class Location(Base):
    __tablename__ = "locations"

    id = Column(String(36), primary_key=True, default=_uuid)
    name = Column(String(200), nullable=False)
    city = Column(String(120), nullable=False)
    country = Column(String(120), nullable=False)
    latitude = Column(Float, nullable=False)
    longitude = Column(Float, nullable=False)
    what3names = Column(String(100), nullable=True)
    how_to_find = Column(Text, nullable=True)
    created_by = Column(String(36), ForeignKey("users.id"), nullable=True)
    created_at = Column(DateTime, default=_now, nullable=False)

    events = relationship("Event", back_populates="location")


class Event(Base):
    __tablename__ = "events"

    id = Column(String(36), primary_key=True, default=_uuid)
    title = Column(String(200), nullable=False)
    description = Column(Text, nullable=False)
    start_time = Column(DateTime, nullable=False)
    end_time = Column(DateTime, nullable=False)
    recurrence_frequency = Column(String(16), nullable=False, default="none")
    recurrence_end_date = Column(DateTime, nullable=True)
    status = Column(String(16), nullable=False, default="pending", index=True)
    location_id = Column(String(36), ForeignKey("locations.id"), nullable=False)
    created_by = Column(String(36), ForeignKey("users.id"), nullable=True)
    skill_level = Column(String(32), nullable=True)
    prerequisites = Column(Text, nullable=True)
    cost_amount = Column(Float, nullable=True)
    concession_amount = Column(Float, nullable=True)
    cost_currency = Column(String(3), nullable=True)
    max_attendees = Column(Integer, nullable=True)
    date_added = Column(DateTime, default=_now, nullable=False)
    last_updated = Column(DateTime, default=_now, onupdate=_now, nullable=False)

    location = relationship("Location", back_populates="events")
    rsvps = relationship("RSVP", back_populates="event", cascade="all, delete-orphan")


class RSVP(Base):
    __tablename__ = "rsvps"
    __table_args__ = (UniqueConstraint("event_id", "user_id", name="uq_rsvps_event_user"),)

    id = Column(String(36), primary_key=True, default=_uuid)
    event_id = Column(String(36), ForeignKey("events.id"), nullable=False)
    user_id = Column(String(36), ForeignKey("users.id"), nullable=False)
    role = Column(String(16), nullable=False)
    show_name = Column(Boolean, default=False, nullable=False)
    is_teaching = Column(Boolean, default=False, nullable=False)
    created_at = Column(DateTime, default=_now, nullable=False)
    last_modified = Column(DateTime, default=_now, onupdate=_now, nullable=False)

    event = relationship("Event", back_populates="rsvps")
    user = relationship("User", back_populates="rsvps")
