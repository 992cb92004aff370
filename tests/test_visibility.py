from __future__ import annotations

import pytest

from acrojam.views import AttendeeRow, SocialProfile
from acrojam.visibility import (
    Viewer,
    ViewerKind,
    project_social_links,
    resolve_visible_attendees,
)


def _row(user_id: str, *, show_name: bool, role: str = "Base", **social) -> AttendeeRow:
    return AttendeeRow(
        user_id=user_id,
        user_name=f"Name {user_id}",
        role=role,
        show_name=show_name,
        social=SocialProfile(**social),
    )


ROWS = [
    _row("u1", show_name=True),
    _row("u2", show_name=False, role="Flyer"),
    _row("u3", show_name=False, role="Hybrid"),
]


def test_member_sees_public_attendees_and_their_own_hidden_entry():
    visible = resolve_visible_attendees(ROWS[:2], "u2", False)
    assert [(a.user_id, a.hidden) for a in visible] == [("u1", False), ("u2", True)]
    assert visible[1].name == "Name u2"


def test_member_does_not_see_other_hidden_attendees():
    visible = resolve_visible_attendees(ROWS, "u1", False)
    assert [a.user_id for a in visible] == ["u1"]


def test_admin_sees_everyone_with_hidden_flag():
    visible = resolve_visible_attendees(ROWS, "admin", True)
    assert len(visible) == len(ROWS)
    assert [a.hidden for a in visible] == [False, True, True]
    assert [a.name for a in visible] == ["Name u1", "Name u2", "Name u3"]


def test_admin_without_an_id_still_sees_everyone():
    assert len(resolve_visible_attendees(ROWS, None, True)) == len(ROWS)


@pytest.mark.parametrize("rows", [ROWS, [_row("u9", show_name=True)], []])
def test_anonymous_viewer_sees_nobody(rows):
    assert resolve_visible_attendees(rows, None, False) == []


@pytest.mark.parametrize("hidden_row", [r for r in ROWS if not r.show_name])
def test_hidden_attendee_sees_exactly_one_entry_for_themself(hidden_row):
    visible = resolve_visible_attendees(ROWS, hidden_row.user_id, False)
    own = [a for a in visible if a.user_id == hidden_row.user_id]
    assert len(own) == 1
    assert own[0].hidden is True


def test_social_links_follow_the_attendees_own_flags():
    row = _row(
        "u1",
        show_name=True,
        facebook_url="https://facebook.com/u1",
        show_facebook=True,
        instagram_url="https://instagram.com/u1",
        show_instagram=False,
        website_url=None,
        show_website=True,
        youtube_url="https://youtube.com/@u1",
        show_youtube=True,
    )
    expected = {
        "facebook": "https://facebook.com/u1",
        "youtube": "https://youtube.com/@u1",
    }
    assert project_social_links(row.social) == expected
    for viewer_id, is_admin in (("u1", False), ("u2", False), ("admin", True)):
        (view,) = resolve_visible_attendees([row], viewer_id, is_admin)
        assert view.social_links == expected


def test_attendee_view_carries_role_and_teaching_flag():
    row = AttendeeRow(
        user_id="t1", user_name="Teacher", role="Hybrid", show_name=True, is_teaching=True
    )
    (view,) = resolve_visible_attendees([row], "u5", False)
    assert view.role == "Hybrid"
    assert view.is_teaching is True
    assert view.social_links == {}


def test_viewer_resolution_is_exhaustive():
    assert Viewer.resolve("a", True).kind is ViewerKind.ADMIN
    assert Viewer.resolve(None, True).kind is ViewerKind.ADMIN
    assert Viewer.resolve("m", False) == Viewer(ViewerKind.MEMBER, "m")
    assert Viewer.resolve(None, False) == Viewer(ViewerKind.ANONYMOUS)
