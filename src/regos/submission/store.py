"""
Submission Store - accepting answers and reviewing them

Every submission write moves the parent registration's submission_count in
the same atomic unit, under the lock shared with the registration store, so
no reader ever sees one without the other.
"""

from collections.abc import Sequence
from typing import Any

from regos.access.models import User
from regos.access.policy import can_approve_submission, require
from regos.kernel.errors import (
    Closed,
    MissingRequiredFields,
    RegistrationNotFound,
    SubmissionNotFound,
    ValidationError,
)
from regos.kernel.ids import DefaultIdFactory, IdFactory
from regos.kernel.logging import LogOperation, get_logger
from regos.kernel.metrics import (
    submission_status_changes_total,
    submissions_received_total,
    submissions_refused_total,
    track_operation,
)
from regos.kernel.platform_policy import PlatformPolicy
from regos.kernel.repository import Repository
from regos.kernel.time import TimeProvider
from regos.registration.models import RegistrationStatus
from regos.registration.store import RegistrationStore
from regos.submission.invariants import (
    answer_problems,
    validate_required_fields,
    validate_review_transition,
)
from regos.submission.models import StatusChange, Submission, SubmissionStatus

logger = get_logger(__name__)

SUBMISSIONS = "submissions"


def parse_status(value: SubmissionStatus | str) -> SubmissionStatus:
    try:
        return SubmissionStatus(value)
    except ValueError as e:
        raise ValidationError(f"Unknown submission status '{value}'") from e


class SubmissionStore:
    """Owns the submissions collection"""

    def __init__(
        self,
        repository: Repository,
        time_provider: TimeProvider,
        registrations: RegistrationStore,
        policy: PlatformPolicy | None = None,
        id_factory: IdFactory | None = None,
    ) -> None:
        self.repository = repository
        self.time_provider = time_provider
        self.registrations = registrations
        self.policy = policy or registrations.policy
        self.id_factory = id_factory or DefaultIdFactory()
        self.lock = registrations.lock
        registrations.register_dependent(SUBMISSIONS)

    def _load(self, submission_id: str) -> Submission:
        record = self.repository.get(SUBMISSIONS, submission_id)
        if record is None:
            raise SubmissionNotFound(submission_id)
        return Submission.model_validate(record)

    def _refuse(self, reason: str, error: Exception) -> Exception:
        submissions_refused_total.labels(reason=reason).inc()
        return error

    @track_operation("submission.submit")
    def submit(
        self,
        registration_id: str,
        form_data: dict[str, Any],
        files: Sequence[str] = (),
        user_id: str | None = None,
    ) -> Submission:
        """
        Record one respondent's answers

        Args:
            registration_id: Registration being answered
            form_data: Field id → value; optional fields may be absent
            files: File references, in upload order
            user_id: Respondent account, None when anonymous

        Returns:
            The new pending submission

        Raises:
            RegistrationNotFound: If registration_id is unknown
            Closed: If the registration is not active (including expired)
            MissingRequiredFields: Naming every unanswered required field
            ValidationError: If answers are malformed, too many files are
                attached or anonymous submissions are switched off
        """
        files = list(files)
        with self.lock:
            try:
                registration = self.registrations.get(registration_id)
            except RegistrationNotFound as e:
                raise self._refuse("not_found", e)

            if registration.status != RegistrationStatus.ACTIVE:
                raise self._refuse("closed", Closed(registration_id, registration.status))

            try:
                validate_required_fields(registration, form_data)
            except MissingRequiredFields as e:
                raise self._refuse("validation", e)

            problems = answer_problems(registration, form_data)
            if len(files) > self.policy.max_files_per_submission:
                problems.append(
                    f"At most {self.policy.max_files_per_submission} files may be attached"
                )
            if user_id is None and not self.policy.allow_anonymous_submissions:
                problems.append("Sign in to submit this registration")
            if problems:
                raise self._refuse("validation", ValidationError(problems))

            submission = Submission(
                id=self.id_factory.generate("sub"),
                registration_id=registration_id,
                user_id=user_id,
                form_data=dict(form_data),
                files=files,
                submitted_at=self.time_provider.now(),
            )

            with self.repository.atomic():
                self.repository.create(
                    SUBMISSIONS, submission.id, submission.model_dump(mode="json")
                )
                self.registrations.apply_submission_delta(registration_id, +1)

        submissions_received_total.labels(anonymous=str(user_id is None).lower()).inc()
        logger.info(
            "Submission received",
            submission_id=submission.id,
            registration_id=registration_id,
            user_id=user_id,
            files=len(files),
        )
        return submission

    @track_operation("submission.set_status")
    def set_status(
        self,
        submission_id: str,
        new_status: SubmissionStatus | str,
        actor: User,
        notes: str | None = None,
    ) -> Submission:
        """
        Classify a submission

        Args:
            submission_id: Submission to review
            new_status: approved, rejected or scheduled
            actor: Owning host or admin
            notes: Optional note shown with the status

        Raises:
            SubmissionNotFound: If submission_id is unknown
            Unauthorized: If actor neither owns the registration nor is admin
            InvalidTransition: If new_status is pending
        """
        new_status = parse_status(new_status)

        with self.lock, self.repository.atomic():
            submission = self._load(submission_id)
            registration = self.registrations.get(submission.registration_id)
            require(
                can_approve_submission(actor, registration),
                "review submissions",
                actor,
            )
            validate_review_transition(submission_id, submission.status, new_status)

            change = StatusChange(
                from_status=submission.status,
                to_status=new_status,
                actor_id=actor.id,
                changed_at=self.time_provider.now(),
                notes=notes,
            )
            updated = submission.model_copy(
                update={
                    "status": new_status,
                    "notes": notes if notes is not None else submission.notes,
                    "history": [*submission.history, change],
                }
            )
            self.repository.update(SUBMISSIONS, submission_id, updated.model_dump(mode="json"))

        submission_status_changes_total.labels(
            from_status=change.from_status.value, to_status=new_status.value
        ).inc()
        logger.info(
            "Submission status changed",
            submission_id=submission_id,
            from_status=change.from_status.value,
            to_status=new_status.value,
            actor_id=actor.id,
        )
        return updated

    @track_operation("submission.delete")
    def delete(self, submission_id: str, actor: User) -> None:
        """
        Remove a submission and decrement its registration's count

        Raises:
            SubmissionNotFound, Unauthorized
        """
        with LogOperation(logger, "delete_submission", submission_id=submission_id, actor_id=actor.id):
            with self.lock, self.repository.atomic():
                submission = self._load(submission_id)
                registration = self.registrations.get(submission.registration_id)
                require(
                    can_approve_submission(actor, registration),
                    "delete submissions",
                    actor,
                )
                self.repository.delete(SUBMISSIONS, submission_id)
                self.registrations.apply_submission_delta(submission.registration_id, -1)

    # Queries

    def get(self, submission_id: str) -> Submission:
        """
        Raises:
            SubmissionNotFound: If submission_id is unknown
        """
        with self.lock:
            return self._load(submission_id)

    def list_by_registration(
        self, registration_id: str, status: SubmissionStatus | None = None
    ) -> list[Submission]:
        """Submissions for one registration in arrival order"""
        equals: dict[str, Any] = {"registration_id": registration_id}
        if status is not None:
            equals["status"] = parse_status(status).value
        with self.lock:
            return [
                Submission.model_validate(record)
                for record in self.repository.find(SUBMISSIONS, **equals)
            ]

    def list_for_actor(
        self,
        actor: User,
        registration_id: str | None = None,
        status: SubmissionStatus | None = None,
    ) -> list[Submission]:
        """
        Host dashboard view

        Every submission to registrations the actor owns; admins see all.
        """
        with self.lock:
            if registration_id is not None:
                registrations = [self.registrations.get(registration_id)]
            else:
                registrations = self.registrations.list_all()

            results: list[Submission] = []
            for registration in registrations:
                if can_approve_submission(actor, registration):
                    results.extend(self.list_by_registration(registration.id, status))
            return results

    def count(self) -> int:
        with self.lock:
            return len(self.repository.find(SUBMISSIONS))
