"""
Tests for the User Directory - sign-up, lookup and role changes
"""

import pytest

from regos.access.models import Role
from regos.kernel.errors import InvalidState, Unauthorized, UserNotFound, ValidationError


def test_sign_up_defaults(users, test_time) -> None:
    """New accounts are unverified agents named after their email"""
    user = users.sign_up("Priya.Patel@Example.com")

    assert user.id.startswith("usr_")
    assert user.email == "priya.patel@example.com"
    assert user.name == "priya.patel"
    assert user.role == Role.AGENT
    assert user.verified is False
    assert user.created_at == test_time.now()


def test_sign_up_rejects_duplicate_email(users) -> None:
    users.sign_up("host@regos.test")

    with pytest.raises(ValidationError, match="already exists"):
        users.sign_up("HOST@regos.test")


@pytest.mark.parametrize("email", ["", "no-at-sign", "@regos.test", "host@"])
def test_sign_up_rejects_malformed_email(users, email) -> None:
    with pytest.raises(ValidationError):
        users.sign_up(email)


@pytest.mark.parametrize("role", [Role.ADMIN, Role.HOST])
def test_self_sign_up_cannot_pick_a_role(users, role) -> None:
    with pytest.raises(Unauthorized):
        users.sign_up("mallory@regos.test", role=role)

    assert users.find_by_email("mallory@regos.test") is None


def test_non_admin_cannot_assign_role_at_sign_up(users, host) -> None:
    with pytest.raises(Unauthorized):
        users.sign_up("friend@regos.test", role=Role.HOST, actor=host)

    assert users.find_by_email("friend@regos.test") is None


def test_admin_assigns_role_at_sign_up(users, admin) -> None:
    user = users.sign_up("colleague@regos.test", role=Role.ADMIN, actor=admin)

    assert user.role == Role.ADMIN


def test_bootstrap_admin_only_on_empty_directory(users) -> None:
    first = users.bootstrap_admin("Root@Regos.test")

    assert first.role == Role.ADMIN
    assert first.email == "root@regos.test"
    with pytest.raises(InvalidState):
        users.bootstrap_admin("second@regos.test")
    assert users.list_users() == [first]


def test_bootstrap_admin_refused_once_anyone_signed_up(users) -> None:
    users.sign_up("early@regos.test")

    with pytest.raises(InvalidState):
        users.bootstrap_admin("late@regos.test")
    assert users.list_users(Role.ADMIN) == []


def test_get_and_find(users, agent) -> None:
    assert users.get(agent.id) == agent
    assert users.find_by_email("AGENT@regos.test") == agent
    assert users.find_by_email("nobody@regos.test") is None


def test_get_unknown_user(users) -> None:
    with pytest.raises(UserNotFound) as exc_info:
        users.get("usr_missing")

    assert exc_info.value.entity_id == "usr_missing"


def test_list_users_by_role(users, admin, host, other_host, agent) -> None:
    assert [u.id for u in users.list_users()] == [admin.id, host.id, other_host.id, agent.id]
    assert [u.id for u in users.list_users(Role.HOST)] == [host.id, other_host.id]
    assert users.list_users(Role.ADMIN) == [admin]


def test_agent_becomes_host(users, agent) -> None:
    """The "become a host" self-upgrade"""
    updated = users.change_role(agent.id, Role.HOST, agent)

    assert updated.role == Role.HOST
    assert users.get(agent.id).role == Role.HOST


def test_agent_cannot_self_promote_to_admin(users, agent) -> None:
    with pytest.raises(Unauthorized):
        users.change_role(agent.id, Role.ADMIN, agent)

    assert users.get(agent.id).role == Role.AGENT


def test_admin_changes_any_role(users, admin, host) -> None:
    updated = users.change_role(host.id, Role.ADMIN, admin)

    assert updated.role == Role.ADMIN


def test_mark_verified_is_admin_only(users, admin, host, agent) -> None:
    with pytest.raises(Unauthorized):
        users.mark_verified(agent.id, host)
    assert users.get(agent.id).verified is False

    assert users.mark_verified(agent.id, admin).verified is True
    assert users.get(agent.id).verified is True
