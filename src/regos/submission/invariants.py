"""
Submission Invariants - answer validation and review transitions

Answers are checked against the form schema as it stands at submission
time. Later schema edits never re-validate stored submissions.
"""

import re
from typing import Any

from regos.kernel.errors import InvalidTransition, MissingRequiredFields
from regos.registration.models import FieldType, FormField, Registration
from regos.submission.models import SubmissionStatus

S = SubmissionStatus

REVIEW_STATUSES = frozenset({S.APPROVED, S.REJECTED, S.SCHEDULED})

EMAIL_PATTERN = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")


def is_blank(field: FormField, value: Any) -> bool:
    """
    Whether a value fails to answer the field

    An unticked checkbox does not answer a required checkbox.
    """
    if value is None:
        return True
    if field.type == FieldType.CHECKBOX and value is False:
        return True
    if isinstance(value, str):
        return not value.strip()
    if isinstance(value, (list, tuple, dict, set)):
        return len(value) == 0
    return False


def missing_required(registration: Registration, form_data: dict[str, Any]) -> list[FormField]:
    """Required fields left unanswered, in form order"""
    return [
        field
        for field in registration.form_schema
        if field.required and is_blank(field, form_data.get(field.id))
    ]


def validate_required_fields(registration: Registration, form_data: dict[str, Any]) -> None:
    """
    Raises:
        MissingRequiredFields: Naming every unanswered required field
    """
    missing = missing_required(registration, form_data)
    if missing:
        raise MissingRequiredFields(
            registration.id, [{"id": f.id, "label": f.label} for f in missing]
        )


def answer_problems(registration: Registration, form_data: dict[str, Any]) -> list[str]:
    """
    Format problems in answered fields

    - select answers must be one of the options
    - email answers must look like an address
    - number answers must parse as numbers
    """
    problems: list[str] = []
    for field in registration.form_schema:
        value = form_data.get(field.id)
        if is_blank(field, value):
            continue

        if field.type == FieldType.SELECT and value not in field.options:
            problems.append(f"'{value}' is not an option for '{field.label}'")
        elif field.type == FieldType.EMAIL and not EMAIL_PATTERN.match(str(value)):
            problems.append(f"'{field.label}' must be a valid email address")
        elif field.type == FieldType.NUMBER and not _is_number(value):
            problems.append(f"'{field.label}' must be a number")
    return problems


def _is_number(value: Any) -> bool:
    if isinstance(value, bool):
        return False
    if isinstance(value, (int, float)):
        return True
    try:
        float(str(value))
    except ValueError:
        return False
    return True


def validate_review_transition(
    submission_id: str, current: SubmissionStatus, target: SubmissionStatus
) -> None:
    """
    Review targets are approved, rejected and scheduled; pending can
    never be re-entered.

    Raises:
        InvalidTransition: If target is pending
    """
    if target not in REVIEW_STATUSES:
        raise InvalidTransition("submission", submission_id, current, target)
