"""
Tests for the Access Policy - role and ownership checks

Every capability is a pure function of the actor's role (and, for owned
registrations, the owning host id), so these tests need no stores.
"""

from datetime import datetime, timezone

import pytest

from regos.access.models import Role, User
from regos.access.policy import (
    can_approve_submission,
    can_change_role,
    can_create_registration,
    can_edit_official_content,
    can_manage_users,
    can_publish,
    can_use_category,
    require,
)
from regos.kernel.errors import Unauthorized
from regos.registration.models import Category

NOW = datetime(2025, 1, 15, 12, 0, 0, tzinfo=timezone.utc)


def make_user(user_id: str, role: Role) -> User:
    return User(id=user_id, email=f"{user_id}@regos.test", name=user_id, role=role, created_at=NOW)


class Owned:
    def __init__(self, host_id: str) -> None:
        self.host_id = host_id


ADMIN = make_user("admin", Role.ADMIN)
HOST = make_user("host", Role.HOST)
OTHER_HOST = make_user("rival", Role.HOST)
AGENT = make_user("agent", Role.AGENT)


@pytest.mark.parametrize(
    "user,expected",
    [(ADMIN, True), (HOST, True), (AGENT, False), (None, False)],
)
def test_can_create_registration(user, expected) -> None:
    assert can_create_registration(user) is expected


@pytest.mark.parametrize(
    "user,expected",
    [(ADMIN, True), (HOST, False), (AGENT, False), (None, False)],
)
def test_admin_only_capabilities(user, expected) -> None:
    assert can_manage_users(user) is expected
    assert can_edit_official_content(user) is expected


def test_submission_approval_requires_ownership_or_admin() -> None:
    """Only the owning host or an admin may review submissions"""
    registration = Owned(host_id="host")

    assert can_approve_submission(ADMIN, registration)
    assert can_approve_submission(HOST, registration)
    assert not can_approve_submission(OTHER_HOST, registration)
    assert not can_approve_submission(AGENT, registration)
    assert not can_approve_submission(None, registration)


def test_agent_cannot_approve_even_with_matching_id() -> None:
    """Ownership only counts for hosts"""
    demoted = make_user("host", Role.AGENT)

    assert not can_approve_submission(demoted, Owned(host_id="host"))


def test_can_publish_matches_submission_rule() -> None:
    registration = Owned(host_id="host")

    for user in (ADMIN, HOST, OTHER_HOST, AGENT, None):
        assert can_publish(user, registration) == can_approve_submission(user, registration)


def test_admin_only_category_is_hidden_from_non_admins() -> None:
    platform = Category(id="platform", name="Platform Information", admin_only=True)
    events = Category(id="events", name="Events")

    assert can_use_category(ADMIN, platform)
    assert not can_use_category(HOST, platform)
    assert not can_use_category(None, platform)
    assert can_use_category(None, events)
    assert can_use_category(AGENT, events)


def test_role_changes() -> None:
    """Admins assign any role; agents may only promote themselves to host"""
    assert can_change_role(ADMIN, AGENT, Role.ADMIN)
    assert can_change_role(ADMIN, HOST, Role.AGENT)
    assert can_change_role(AGENT, AGENT, Role.HOST)

    assert not can_change_role(AGENT, AGENT, Role.ADMIN)
    assert not can_change_role(HOST, AGENT, Role.HOST)
    assert not can_change_role(HOST, HOST, Role.ADMIN)
    assert not can_change_role(None, AGENT, Role.HOST)


def test_require_passes_when_allowed() -> None:
    require(True, "create registrations", HOST)


def test_require_raises_unauthorized() -> None:
    with pytest.raises(Unauthorized) as exc_info:
        require(False, "create registrations", AGENT)

    assert exc_info.value.action == "create registrations"
    assert exc_info.value.actor_id == "agent"


def test_require_anonymous_actor() -> None:
    with pytest.raises(Unauthorized) as exc_info:
        require(False, "review submissions", None)

    assert exc_info.value.actor_id is None
    assert "anonymous" in str(exc_info.value)
