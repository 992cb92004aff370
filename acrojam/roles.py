"""RSVP role tallies."""

from __future__ import annotations

import logging
from collections.abc import Iterable
from typing import Protocol, TypedDict

logger = logging.getLogger("uvicorn.error")

ROLES = ("Base", "Flyer", "Hybrid")


class RoleCounts(TypedDict):
    Base: int
    Flyer: int
    Hybrid: int


class _HasRole(Protocol):
    role: str


class _HasTeaching(Protocol):
    is_teaching: bool


def empty_role_counts() -> RoleCounts:
    return {"Base": 0, "Flyer": 0, "Hybrid": 0}


def aggregate_roles(rsvps: Iterable[_HasRole]) -> RoleCounts:
    """Count RSVPs per role.

    Every known role is present in the result, zero when unused. Rows whose
    role is not one of ``ROLES`` count towards nothing; they are logged so a
    renamed or corrupted role value does not vanish unnoticed.
    """
    counts = empty_role_counts()
    for rsvp in rsvps:
        role = rsvp.role
        if role in counts:
            counts[role] += 1
        else:
            logger.warning("Ignoring RSVP with unrecognized role %r", role)
    return counts


def count_teachers(rsvps: Iterable[_HasTeaching]) -> int:
    return sum(1 for rsvp in rsvps if rsvp.is_teaching)
