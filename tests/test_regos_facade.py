"""
Tests for Regos Façade - Public API

These tests verify that the Regos façade wires the stores together and
resolves actors by id or email.
"""

import pytest

from regos.kernel.errors import Closed, InvalidState, Unauthorized, UserNotFound, ValidationError
from regos.kernel.ids import SequentialIdFactory
from regos.platform import Regos, parse_role
from regos.registration.models import RegistrationStatus
from regos.submission.models import SubmissionStatus


@pytest.fixture
def seeded(regos, registration_data):
    """Façade with an admin, a host and one active registration"""
    admin = regos.bootstrap_admin("admin@regos.test")
    host = regos.sign_up(
        "host@regos.test", name="Event Organizer Pro", role="host", actor_id=admin.id
    )
    registration = regos.create_registration(host.id, registration_data)
    regos.approve(registration.id, admin.id)
    return regos, admin, host, registration


def test_regos_init_creates_database(tmp_path, test_time):
    db_path = tmp_path / "test.db"

    regos = Regos(db_path, time_provider=test_time)
    try:
        assert db_path.exists()
        assert len(regos.list_categories()) == 8  # platform is admin-only
    finally:
        regos.close()


def test_regos_state_survives_restart(tmp_path, test_time, registration_data, valid_answers):
    db_path = tmp_path / "test.db"

    first = Regos(db_path, time_provider=test_time)
    first.bootstrap_admin("admin@regos.test")
    host = first.sign_up("host@regos.test", role="host", actor_id="admin@regos.test")
    registration = first.create_registration(host.id, registration_data)
    first.approve(registration.id, host.id)
    first.submit(registration.id, valid_answers)
    first.close()

    second = Regos(db_path, time_provider=test_time)
    try:
        reloaded = second.registrations.get(registration.id)
        assert reloaded.status == RegistrationStatus.ACTIVE
        assert reloaded.submission_count == 1
        assert second.actor("host@regos.test").id == host.id
        assert len(second.list_categories()) == 8  # seeded only once
    finally:
        second.close()


def test_actor_by_email_or_id(regos):
    user = regos.sign_up("Host@Regos.test")

    assert regos.actor(user.id) == user
    assert regos.actor("host@regos.test") == user
    with pytest.raises(UserNotFound):
        regos.actor("nobody@regos.test")


def test_parse_role_rejects_unknown():
    assert parse_role("host").value == "host"
    with pytest.raises(ValidationError, match="Unknown role 'owner'"):
        parse_role("owner")


def test_list_users_by_role(regos):
    regos.bootstrap_admin("admin@regos.test")
    regos.sign_up("agent@regos.test")

    assert [u.email for u in regos.list_users("agent")] == ["agent@regos.test"]
    assert len(regos.list_users()) == 2


def test_self_sign_up_as_admin_is_refused(regos, registration_data):
    admin = regos.bootstrap_admin("admin@regos.test")
    host = regos.sign_up("host@regos.test", role="host", actor_id=admin.id)
    registration = regos.create_registration(host.id, registration_data)

    with pytest.raises(Unauthorized):
        regos.sign_up("mallory@example.com", role="admin")
    mallory = regos.sign_up("mallory@example.com")

    assert mallory.role.value == "agent"
    with pytest.raises(Unauthorized):
        regos.approve(registration.id, mallory.id)
    assert regos.registrations.get(registration.id).status == RegistrationStatus.PENDING


def test_bootstrap_admin_needs_empty_directory(regos):
    regos.sign_up("early@regos.test")

    with pytest.raises(InvalidState):
        regos.bootstrap_admin("admin@regos.test")


def test_become_a_host(regos):
    agent = regos.sign_up("agent@regos.test")

    upgraded = regos.change_role(agent.id, "host", agent.id)

    assert upgraded.role.value == "host"


def test_view_counts_each_read(seeded):
    regos, _, _, registration = seeded

    first = regos.view(registration.id)
    second = regos.view(registration.id)

    assert first.view_count == 1
    assert second.view_count == 2
    assert regos.registrations.get(registration.id).view_count == 2


def test_list_categories_counts_active(seeded):
    regos, admin, _, _ = seeded

    counts = {c.id: c.count for c in regos.list_categories(admin.id)}

    assert counts["education"] == 1
    assert counts["events"] == 0
    assert "platform" in counts


def test_browse_defaults_to_active(seeded):
    regos, _, host, registration = seeded
    regos.create_registration(
        host.id,
        {
            "title": "Rust Meetup",
            "description": "Systems programming night",
            "category": "events",
            "form_schema": [{"id": "name", "label": "Name", "required": True}],
        },
    )

    assert [r.id for r in regos.browse()] == [registration.id]
    assert len(regos.browse(filters={"status": "pending"})) == 1


def test_submission_review_through_facade(seeded, valid_answers):
    regos, _, host, registration = seeded

    submission = regos.submit(registration.id, valid_answers)
    reviewed = regos.set_submission_status(
        submission.id, "scheduled", host.id, notes="Slot at 3pm"
    )

    assert reviewed.status == SubmissionStatus.SCHEDULED
    assert reviewed.notes == "Slot at 3pm"
    assert reviewed.history[-1].actor_id == host.id


def test_delete_submission_through_facade(seeded, valid_answers):
    regos, admin, _, registration = seeded
    submission = regos.submit(registration.id, valid_answers)

    regos.delete_submission(submission.id, admin.id)

    assert regos.registrations.get(registration.id).submission_count == 0
    assert regos.submissions.count() == 0


def test_delete_registration_through_facade(seeded, valid_answers):
    regos, _, host, registration = seeded
    regos.submit(registration.id, valid_answers)
    regos.submit(registration.id, valid_answers)
    intruder = regos.sign_up("agent@regos.test")

    with pytest.raises(Unauthorized):
        regos.delete_registration(registration.id, intruder.id)
    removed = regos.delete_registration(registration.id, host.id)

    assert removed == 2
    assert regos.submissions.count() == 0
    assert regos.stats()["registrations"] == 0


def test_paused_registration_refuses_submissions(seeded, valid_answers):
    regos, _, host, registration = seeded
    regos.pause(registration.id, host.id)

    with pytest.raises(Closed):
        regos.submit(registration.id, valid_answers)


def test_stats(seeded, valid_answers, test_time):
    regos, _, host, registration = seeded
    regos.submit(registration.id, valid_answers)
    regos.create_registration(
        host.id, {"title": "Half-finished form", "category": "events", "draft": True}
    )

    stats = regos.stats()

    assert stats["users"] == 2
    assert stats["registrations"] == 2
    assert stats["submissions"] == 1
    assert stats["registrations_by_status"]["active"] == 1
    assert stats["registrations_by_status"]["draft"] == 1
    assert stats["pending_approvals"] == 0

    test_time.advance_days(8)

    assert regos.stats()["registrations_by_status"]["expired"] == 1


def test_sequential_ids_make_runs_reproducible(test_time):
    regos = Regos(time_provider=test_time, id_factory=SequentialIdFactory())

    assert regos.sign_up("a@regos.test").id == "usr_1"
    assert regos.sign_up("b@regos.test").id == "usr_2"
