"""Moderation states for submitted events."""

from __future__ import annotations

from collections.abc import Iterable
from typing import Protocol, TypeVar

PENDING = "pending"
APPROVED = "approved"
REJECTED = "rejected"

EVENT_STATUSES = (PENDING, APPROVED, REJECTED)

STATUS_ACTIONS = {"approve": APPROVED, "reject": REJECTED}


class InvalidStatusTransition(ValueError):
    """Raised for an unknown action or an event that was already reviewed."""


class _HasStatus(Protocol):
    status: str


T = TypeVar("T", bound=_HasStatus)


def initial_status(created_by_admin: bool) -> str:
    return APPROVED if created_by_admin else PENDING


def apply_status_action(current: str, action: str) -> str:
    """Return the status after an admin ``approve``/``reject`` action.

    Only pending events can be reviewed; there is no way back to pending.
    """
    target = STATUS_ACTIONS.get(action)
    if target is None:
        raise InvalidStatusTransition(f"Unknown action {action!r}")
    if current not in EVENT_STATUSES:
        raise InvalidStatusTransition(f"Unknown status {current!r}")
    if current != PENDING:
        raise InvalidStatusTransition(f"Event is already {current}")
    return target


def is_publicly_listed(status: str) -> bool:
    return status == APPROVED


def public_events(events: Iterable[T]) -> list[T]:
    return [event for event in events if is_publicly_listed(event.status)]
