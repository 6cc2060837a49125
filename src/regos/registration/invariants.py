"""
Registration Invariants - lifecycle rules as pure functions

No I/O and no clock reads: callers pass "now" in. The store composes these
around its repository calls, and tests exercise them directly.
"""

from collections.abc import Iterable
from datetime import datetime, timedelta

from regos.kernel.errors import InvalidTransition, ValidationError
from regos.kernel.platform_policy import PlatformPolicy
from regos.registration.models import (
    FieldType,
    FormField,
    Registration,
    RegistrationStatus,
    SortKey,
)

S = RegistrationStatus

# Explicit edges only; ACTIVE/PAUSED → EXPIRED happens lazily at read time
TRANSITIONS: dict[RegistrationStatus, frozenset[RegistrationStatus]] = {
    S.DRAFT: frozenset({S.PENDING}),
    S.PENDING: frozenset({S.ACTIVE, S.REJECTED}),
    S.ACTIVE: frozenset({S.PAUSED}),
    S.PAUSED: frozenset({S.ACTIVE}),
    S.EXPIRED: frozenset(),
    S.REJECTED: frozenset(),
}

LAZILY_EXPIRING = frozenset({S.ACTIVE, S.PAUSED})


def effective_status(registration: Registration, now: datetime) -> RegistrationStatus:
    """
    Status as every read must present it

    An active or paused registration whose end date has passed reads as
    expired, whatever is stored.
    """
    if registration.status in LAZILY_EXPIRING and registration.is_expired(now):
        return S.EXPIRED
    return registration.status


def resolve(registration: Registration, now: datetime) -> Registration:
    """Copy of the registration with its effective status applied"""
    status = effective_status(registration, now)
    if status == registration.status:
        return registration
    return registration.model_copy(update={"status": status})


def validate_transition(
    registration_id: str,
    current: RegistrationStatus,
    target: RegistrationStatus,
) -> None:
    """
    Raises:
        InvalidTransition: If target is not reachable from current
    """
    if target not in TRANSITIONS[current]:
        raise InvalidTransition("registration", registration_id, current, target)


def compute_end_date(start: datetime, duration: str, policy: PlatformPolicy) -> datetime:
    """
    End of the publishing window

    Raises:
        ValidationError: If the duration plan is not offered
    """
    days = policy.days_for(duration)
    if days is None:
        offered = ", ".join(policy.duration_days)
        raise ValidationError(f"Duration '{duration}' is not offered (choose one of: {offered})")
    return start + timedelta(days=days)


def form_schema_problems(fields: list[FormField], policy: PlatformPolicy) -> list[str]:
    """
    Problems that keep a form from being published

    - at least one field
    - every label non-empty
    - unique field ids
    - select fields carry at least one option
    """
    problems: list[str] = []
    if not fields:
        problems.append("Form must contain at least one field")
    if len(fields) > policy.max_form_fields:
        problems.append(f"Form may contain at most {policy.max_form_fields} fields")

    seen: set[str] = set()
    for position, field in enumerate(fields, start=1):
        if not field.id.strip():
            problems.append(f"Field {position} has no id")
        elif field.id in seen:
            problems.append(f"Field id '{field.id}' is used more than once")
        seen.add(field.id)

        if not field.label.strip():
            problems.append(f"Field {position} ({field.id}) needs a label")
        if field.type == FieldType.SELECT and not [o for o in field.options if o.strip()]:
            problems.append(f"Select field {position} ({field.id}) needs at least one option")
    return problems


def publishing_problems(
    title: str,
    description: str,
    category: str,
    fields: list[FormField],
    policy: PlatformPolicy,
) -> list[str]:
    """Everything that keeps a registration from leaving draft"""
    problems: list[str] = []
    if not title.strip():
        problems.append("Title is required")
    if not description.strip():
        problems.append("Description is required")
    if not category.strip():
        problems.append("Category is required")
    return problems + form_schema_problems(fields, policy)


def validate_publishable(registration: Registration, policy: PlatformPolicy) -> None:
    """
    Raises:
        ValidationError: Listing every problem found
    """
    problems = publishing_problems(
        registration.title,
        registration.description,
        registration.category,
        registration.form_schema,
        policy,
    )
    if problems:
        raise ValidationError(problems)


# Search


def search_terms(query: str | None) -> list[str]:
    if not query:
        return []
    return query.lower().split()


def matches_terms(registration: Registration, terms: Iterable[str]) -> bool:
    """
    AND semantics: every term must appear (case-insensitive substring) in
    at least one of title, description, category, host name.
    """
    haystacks = [
        registration.title.lower(),
        registration.description.lower(),
        registration.category.lower(),
        registration.host_name.lower(),
    ]
    return all(any(term in text for text in haystacks) for term in terms)


def sort_registrations(
    registrations: list[Registration], sort: SortKey
) -> list[Registration]:
    """Stable ordering by the given key"""
    if sort == SortKey.MOST_VIEWED:
        return sorted(registrations, key=lambda r: r.view_count, reverse=True)
    if sort == SortKey.MOST_SUBMISSIONS:
        return sorted(registrations, key=lambda r: r.submission_count, reverse=True)
    if sort == SortKey.ENDING_SOON:
        return sorted(registrations, key=lambda r: r.end_date)
    return sorted(registrations, key=lambda r: r.created_at, reverse=True)
