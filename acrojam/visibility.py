"""Which attendees a viewer may see, and how.

The rules form a small matrix: who is looking (admin, signed-in member,
anonymous) against each attendee's own ``show_name`` choice.

=========  ===================  ===================
viewer     show_name=True       show_name=False
=========  ===================  ===================
admin      shown                shown, hidden=True
self       shown                shown, hidden=True
member     shown                omitted
anonymous  omitted              omitted
=========  ===================  ===================
"""

from __future__ import annotations

import enum
from collections.abc import Iterable
from dataclasses import dataclass

from .views import AttendeeRow, AttendeeView, SocialProfile

SOCIAL_NETWORKS = ("facebook", "instagram", "website", "youtube")


class ViewerKind(enum.Enum):
    ADMIN = "admin"
    MEMBER = "member"
    ANONYMOUS = "anonymous"


@dataclass(frozen=True)
class Viewer:
    kind: ViewerKind
    user_id: str | None = None

    @classmethod
    def resolve(cls, viewer_id: str | None, is_admin: bool) -> Viewer:
        if is_admin:
            return cls(ViewerKind.ADMIN, viewer_id)
        if viewer_id is None:
            return cls(ViewerKind.ANONYMOUS)
        return cls(ViewerKind.MEMBER, viewer_id)

    def can_see(self, row: AttendeeRow) -> bool:
        if self.kind is ViewerKind.ADMIN:
            return True
        if self.kind is ViewerKind.MEMBER:
            return row.show_name or row.user_id == self.user_id
        return False


def project_social_links(social: SocialProfile) -> dict[str, str]:
    """Return the links the profile owner chose to publish, keyed by network."""
    links: dict[str, str] = {}
    for network in SOCIAL_NETWORKS:
        url = getattr(social, f"{network}_url")
        if url and getattr(social, f"show_{network}"):
            links[network] = url
    return links


def to_attendee_view(row: AttendeeRow) -> AttendeeView:
    return AttendeeView(
        user_id=row.user_id,
        name=row.user_name,
        role=row.role,
        hidden=not row.show_name,
        is_teaching=row.is_teaching,
        social_links=project_social_links(row.social),
    )


def resolve_visible_attendees(
    rows: Iterable[AttendeeRow], viewer_id: str | None, is_admin: bool
) -> list[AttendeeView]:
    """Return the attendees ``viewer_id`` is entitled to see, in input order.

    ``hidden`` marks attendees who opted out of public listing; admins and the
    attendee themself still get the name. Social links follow each attendee's
    own flags whoever is looking.
    """
    viewer = Viewer.resolve(viewer_id, is_admin)
    if viewer.kind is ViewerKind.ANONYMOUS:
        return []
    return [to_attendee_view(row) for row in rows if viewer.can_see(row)]
