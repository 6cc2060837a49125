"""
Custom exceptions for Regos

Every business-rule outcome has its own exception kind so callers can tell
"fix your input" apart from "you may not do that" and "this has ended".

Fun fact: HTTP 410 Gone exists precisely so a server can say "this used to
be here and has ended" instead of a plain 404 - that's what Closed and
Expired are for.
"""

from typing import Any


class RegosError(Exception):
    """Base exception for all Regos errors"""

    pass


class ValidationError(RegosError):
    """
    Raised when caller-supplied data fails a domain constraint

    Always recoverable by correcting the input; never retried automatically.
    """

    def __init__(self, problems: list[str] | str) -> None:
        if isinstance(problems, str):
            problems = [problems]
        self.problems = list(problems)
        super().__init__("; ".join(self.problems))

    @classmethod
    def from_pydantic(cls, exc: Any) -> "ValidationError":
        """Translate a pydantic ValidationError raised on caller input"""
        return cls(
            [
                f"{'.'.join(str(part) for part in err['loc']) or 'input'}: {err['msg']}"
                for err in exc.errors()
            ]
        )


class MissingRequiredFields(ValidationError):
    """Raised when a submission leaves required form fields empty"""

    def __init__(self, registration_id: str, fields: list[dict[str, str]]) -> None:
        self.registration_id = registration_id
        self.fields = fields
        super().__init__(
            [f"Field '{f['label']}' ({f['id']}) is required" for f in fields]
        )

    @property
    def field_ids(self) -> list[str]:
        return [f["id"] for f in self.fields]


class Unauthorized(RegosError):
    """Raised when the actor lacks the role or ownership for a mutation"""

    def __init__(self, action: str, actor_id: str | None) -> None:
        self.action = action
        self.actor_id = actor_id
        super().__init__(f"Actor {actor_id or 'anonymous'} is not allowed to {action}")


class NotFound(RegosError):
    """Base class for unknown-id errors"""

    kind = "record"

    def __init__(self, entity_id: str) -> None:
        self.entity_id = entity_id
        super().__init__(f"{self.kind.capitalize()} {entity_id} not found")


class RegistrationNotFound(NotFound):
    kind = "registration"


class SubmissionNotFound(NotFound):
    kind = "submission"


class UserNotFound(NotFound):
    kind = "user"


class CategoryNotFound(NotFound):
    kind = "category"


class InvalidState(RegosError):
    """
    Raised when the requested transition is illegal from the current state

    Callers should re-read current state before retrying with a different action.
    """

    pass


class InvalidTransition(InvalidState):
    """Raised when an entity cannot move from its current status to the target"""

    def __init__(self, entity: str, entity_id: str, current: Any, target: Any) -> None:
        self.entity = entity
        self.entity_id = entity_id
        self.current = _status_value(current)
        self.target = _status_value(target)
        super().__init__(
            f"{entity.capitalize()} {entity_id} cannot move from "
            f"{self.current} to {self.target}"
        )


class Closed(RegosError):
    """Raised when a registration no longer accepts submissions"""

    def __init__(self, registration_id: str, status: Any) -> None:
        self.registration_id = registration_id
        self.status = _status_value(status)
        super().__init__(
            f"Registration {registration_id} is {self.status} and not accepting submissions"
        )


class Expired(RegosError):
    """Raised when an action is attempted after a registration's end date"""

    def __init__(self, registration_id: str, end_date: Any) -> None:
        self.registration_id = registration_id
        self.end_date = end_date
        super().__init__(f"Registration {registration_id} ended at {end_date}")


class RepositoryError(RegosError):
    """Raised when the persistence backend fails for a non-transient reason"""

    pass


class DuplicateRecord(RepositoryError):
    """Raised when creating a record whose id already exists in its collection"""

    def __init__(self, collection: str, record_id: str) -> None:
        self.collection = collection
        self.record_id = record_id
        super().__init__(f"{collection} record {record_id} already exists")


def _status_value(status: Any) -> str:
    return getattr(status, "value", status)
