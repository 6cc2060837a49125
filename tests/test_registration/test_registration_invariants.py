"""
Tests for Registration Invariants - pure lifecycle rules

Fun fact: "lazy evaluation" was popularized by Peter Henderson and James
Morris in 1976 - lazy expiry is the same idea applied to a status field.
"""

from datetime import datetime, timedelta, timezone

import pytest

from regos.kernel.errors import InvalidState, InvalidTransition, ValidationError
from regos.kernel.platform_policy import PlatformPolicy
from regos.registration.invariants import (
    TRANSITIONS,
    compute_end_date,
    effective_status,
    form_schema_problems,
    matches_terms,
    publishing_problems,
    resolve,
    search_terms,
    sort_registrations,
    validate_transition,
)
from regos.registration.models import (
    FieldType,
    FormField,
    Registration,
    RegistrationStatus,
    SortKey,
)

S = RegistrationStatus
START = datetime(2025, 1, 15, 12, 0, 0, tzinfo=timezone.utc)


def make_registration(**overrides) -> Registration:
    values = {
        "id": "reg_1",
        "host_id": "usr_host",
        "host_name": "Event Organizer Pro",
        "title": "Python Workshop",
        "description": "Hands-on afternoon",
        "category": "education",
        "duration": "7days",
        "status": S.ACTIVE,
        "created_at": START,
        "start_date": START,
        "end_date": START + timedelta(days=7),
        "form_schema": [FormField(id="name", label="Full Name", required=True)],
    }
    values.update(overrides)
    return Registration(**values)


# Transition graph


@pytest.mark.parametrize(
    "current,target",
    [
        (S.DRAFT, S.PENDING),
        (S.PENDING, S.ACTIVE),
        (S.PENDING, S.REJECTED),
        (S.ACTIVE, S.PAUSED),
        (S.PAUSED, S.ACTIVE),
    ],
)
def test_allowed_transitions(current, target) -> None:
    validate_transition("reg_1", current, target)


@pytest.mark.parametrize(
    "current,target",
    [
        (S.DRAFT, S.ACTIVE),
        (S.PENDING, S.PAUSED),
        (S.ACTIVE, S.ACTIVE),
        (S.ACTIVE, S.PENDING),
        (S.PAUSED, S.REJECTED),
        (S.EXPIRED, S.ACTIVE),
        (S.REJECTED, S.PENDING),
    ],
)
def test_illegal_transitions(current, target) -> None:
    with pytest.raises(InvalidTransition) as exc_info:
        validate_transition("reg_1", current, target)

    assert isinstance(exc_info.value, InvalidState)
    assert exc_info.value.current == current.value
    assert exc_info.value.target == target.value


def test_terminal_states_have_no_exits() -> None:
    assert TRANSITIONS[S.EXPIRED] == frozenset()
    assert TRANSITIONS[S.REJECTED] == frozenset()


def test_expired_is_never_an_explicit_target() -> None:
    assert all(S.EXPIRED not in targets for targets in TRANSITIONS.values())


# Lazy expiry


def test_effective_status_before_and_after_end() -> None:
    registration = make_registration()
    end = registration.end_date

    assert effective_status(registration, end) == S.ACTIVE
    assert effective_status(registration, end + timedelta(seconds=1)) == S.EXPIRED


@pytest.mark.parametrize("status", [S.DRAFT, S.PENDING, S.REJECTED])
def test_only_active_and_paused_expire_lazily(status) -> None:
    registration = make_registration(status=status)
    later = registration.end_date + timedelta(days=30)

    assert effective_status(registration, later) == status


def test_paused_registration_expires() -> None:
    registration = make_registration(status=S.PAUSED)

    assert effective_status(registration, START + timedelta(days=8)) == S.EXPIRED


def test_resolve_does_not_touch_original() -> None:
    registration = make_registration()

    resolved = resolve(registration, START + timedelta(days=8))

    assert resolved.status == S.EXPIRED
    assert registration.status == S.ACTIVE
    assert resolve(registration, START) is registration


# End dates


def test_compute_end_date_seven_days() -> None:
    end = compute_end_date(START, "7days", PlatformPolicy())

    assert end == datetime(2025, 1, 22, 12, 0, 0, tzinfo=timezone.utc)


def test_compute_end_date_custom_policy() -> None:
    policy = PlatformPolicy(duration_days={"weekend": 2})

    assert compute_end_date(START, "weekend", policy) == START + timedelta(days=2)


def test_compute_end_date_unknown_duration() -> None:
    with pytest.raises(ValidationError, match="not offered"):
        compute_end_date(START, "1year", PlatformPolicy())


# Form schema


def test_valid_form_has_no_problems() -> None:
    fields = [
        FormField(id="name", label="Full Name", required=True),
        FormField(id="track", type=FieldType.SELECT, label="Track", options=["A", "B"]),
    ]

    assert form_schema_problems(fields, PlatformPolicy()) == []


def test_form_problems_are_all_reported() -> None:
    fields = [
        FormField(id="name", label="Full Name"),
        FormField(id="name", label=""),
        FormField(id="track", type=FieldType.SELECT, label="Track"),
    ]

    problems = form_schema_problems(fields, PlatformPolicy())

    assert len(problems) == 3
    assert any("more than once" in p for p in problems)
    assert any("needs a label" in p for p in problems)
    assert any("at least one option" in p for p in problems)


def test_empty_form_is_not_publishable() -> None:
    assert form_schema_problems([], PlatformPolicy()) == ["Form must contain at least one field"]


def test_form_field_limit() -> None:
    policy = PlatformPolicy(max_form_fields=2)
    fields = [FormField(id=f"f{i}", label=f"Question {i}") for i in range(3)]

    assert form_schema_problems(fields, policy) == ["Form may contain at most 2 fields"]


def test_publishing_requires_title_description_and_category() -> None:
    fields = [FormField(id="name", label="Full Name")]

    problems = publishing_problems("  ", "", "", fields, PlatformPolicy())

    assert problems == [
        "Title is required",
        "Description is required",
        "Category is required",
    ]


# Search helpers


def test_search_terms_split_and_lowercase() -> None:
    assert search_terms("  Python WORKSHOP ") == ["python", "workshop"]
    assert search_terms(None) == []
    assert search_terms("") == []


def test_matches_terms_requires_every_term() -> None:
    registration = make_registration()

    assert matches_terms(registration, ["python", "organizer"])
    assert matches_terms(registration, ["education"])
    assert not matches_terms(registration, ["python", "vehicle"])
    assert matches_terms(registration, [])


def test_sort_orders() -> None:
    first = make_registration(id="reg_1", view_count=5, submission_count=1,
                              end_date=START + timedelta(days=30))
    second = make_registration(id="reg_2", created_at=START + timedelta(hours=1),
                               view_count=50, submission_count=0,
                               end_date=START + timedelta(days=7))
    third = make_registration(id="reg_3", created_at=START + timedelta(hours=2),
                              view_count=5, submission_count=9,
                              end_date=START + timedelta(days=14))
    items = [first, second, third]

    def ids(sort: SortKey) -> list[str]:
        return [r.id for r in sort_registrations(items, sort)]

    assert ids(SortKey.NEWEST) == ["reg_3", "reg_2", "reg_1"]
    assert ids(SortKey.MOST_VIEWED) == ["reg_2", "reg_1", "reg_3"]  # ties keep input order
    assert ids(SortKey.MOST_SUBMISSIONS) == ["reg_3", "reg_1", "reg_2"]
    assert ids(SortKey.ENDING_SOON) == ["reg_2", "reg_3", "reg_1"]
