"""
Registration Store - creation, lifecycle transitions and queries

The store is the only path to the registrations collection. Every public
operation runs under the store lock and inside one repository atomic unit,
so a failed call leaves nothing half-written and readers always see a
consistent snapshot.

Reads resolve lazy expiry: an active or paused registration past its end
date is returned as expired without anything being rewritten.
"""

import threading
from collections.abc import Callable
from typing import Any

from pydantic import ValidationError as PydanticValidationError

from regos.access.models import User
from regos.access.policy import (
    can_create_registration,
    can_edit_official_content,
    can_publish,
    can_use_category,
    require,
)
from regos.kernel.errors import (
    Expired,
    InvalidState,
    RegistrationNotFound,
    ValidationError,
)
from regos.kernel.ids import DefaultIdFactory, IdFactory
from regos.kernel.logging import LogOperation, get_logger
from regos.kernel.metrics import (
    registration_transitions_total,
    registration_views_total,
    registrations_created_total,
    registrations_deleted_total,
    track_operation,
)
from regos.kernel.platform_policy import PlatformPolicy
from regos.kernel.repository import Repository
from regos.kernel.time import TimeProvider
from regos.registration.categories import CategoryCatalog
from regos.registration.invariants import (
    compute_end_date,
    effective_status,
    form_schema_problems,
    matches_terms,
    publishing_problems,
    resolve,
    search_terms,
    sort_registrations,
    validate_publishable,
    validate_transition,
)
from regos.registration.models import (
    TERMINAL_STATUSES,
    Registration,
    RegistrationChanges,
    RegistrationData,
    RegistrationStatus,
    SearchFilters,
)

logger = get_logger(__name__)

REGISTRATIONS = "registrations"


class RegistrationStore:
    """
    Owns the registrations collection

    Guarded operations check the access policy before reading anything
    they would change; a denied call raises Unauthorized and mutates nothing.
    """

    def __init__(
        self,
        repository: Repository,
        time_provider: TimeProvider,
        categories: CategoryCatalog,
        policy: PlatformPolicy | None = None,
        id_factory: IdFactory | None = None,
        lock: "threading.RLock | None" = None,
    ) -> None:
        """
        Args:
            repository: Persistence backend
            time_provider: Clock (injectable for testing)
            categories: Catalog used to validate category references
            policy: Lifecycle parameters (defaults if None)
            id_factory: Id generator (UUIDv7-like if None)
            lock: Lock shared with the submission store
        """
        self.repository = repository
        self.time_provider = time_provider
        self.categories = categories
        self.policy = policy or PlatformPolicy()
        self.id_factory = id_factory or DefaultIdFactory()
        self.lock = lock or threading.RLock()
        self._dependents: list[str] = []

    def register_dependent(self, collection: str) -> None:
        """
        Name a collection whose records point at a registration through
        their registration_id; delete removes them with the registration.
        """
        if collection not in self._dependents:
            self._dependents.append(collection)

    # Internal helpers

    def _load(self, registration_id: str) -> Registration:
        record = self.repository.get(REGISTRATIONS, registration_id)
        if record is None:
            raise RegistrationNotFound(registration_id)
        return Registration.model_validate(record)

    def _save(self, registration: Registration) -> None:
        self.repository.update(
            REGISTRATIONS, registration.id, registration.model_dump(mode="json")
        )

    def _all(self, **equals: Any) -> list[Registration]:
        now = self.time_provider.now()
        return [
            resolve(Registration.model_validate(record), now)
            for record in self.repository.find(REGISTRATIONS, **equals)
        ]

    def _transition(
        self,
        registration_id: str,
        actor: User,
        target: RegistrationStatus,
        action: str,
        extra: Callable[[Registration], dict[str, Any]] | None = None,
        check: Callable[[Registration], None] | None = None,
    ) -> Registration:
        """Guard, check the edge, persist the new status"""
        with self.lock, self.repository.atomic():
            registration = self._load(registration_id)
            require(can_publish(actor, registration), action, actor)

            current = effective_status(registration, self.time_provider.now())
            validate_transition(registration_id, current, target)
            if check is not None:
                check(registration)

            update: dict[str, Any] = {"status": target}
            if extra is not None:
                update.update(extra(registration))
            updated = registration.model_copy(update=update)
            self._save(updated)

        registration_transitions_total.labels(
            from_status=current.value, to_status=target.value
        ).inc()
        logger.info(
            "Registration status changed",
            registration_id=registration_id,
            from_status=current.value,
            to_status=target.value,
            actor_id=actor.id,
        )
        return resolve(updated, self.time_provider.now())

    # Creation

    @track_operation("registration.create")
    def create(self, actor: User, data: RegistrationData | dict[str, Any]) -> Registration:
        """
        Create a registration owned by the actor

        Args:
            actor: Host or admin creating it
            data: Title, description, category, visibility, duration, form
                schema; draft=True stores an incomplete draft

        Returns:
            The new registration (pending, or draft when requested)

        Raises:
            Unauthorized: If the actor may not create registrations
            ValidationError: If data is incomplete, the category is unknown
                or admin-only, or the duration is not offered
        """
        require(can_create_registration(actor), "create registrations", actor)

        if not isinstance(data, RegistrationData):
            try:
                data = RegistrationData.model_validate(data)
            except PydanticValidationError as e:
                raise ValidationError.from_pydantic(e) from e

        with LogOperation(logger, "create_registration", actor_id=actor.id, draft=data.draft):
            problems = self._creation_problems(actor, data)
            if problems:
                raise ValidationError(problems)

            now = self.time_provider.now()
            duration = data.duration or self.policy.default_duration
            registration = Registration(
                id=self.id_factory.generate("reg"),
                host_id=actor.id,
                host_name=actor.name,
                title=data.title.strip(),
                description=data.description,
                category=data.category,
                visibility=data.visibility,
                duration=duration,
                status=RegistrationStatus.DRAFT if data.draft else RegistrationStatus.PENDING,
                created_at=now,
                start_date=now,
                end_date=compute_end_date(now, duration, self.policy),
                form_schema=data.form_schema,
            )

            with self.lock, self.repository.atomic():
                self.repository.create(
                    REGISTRATIONS, registration.id, registration.model_dump(mode="json")
                )

        registrations_created_total.labels(
            category=registration.category or "none",
            initial_status=registration.status.value,
        ).inc()
        return registration

    def _creation_problems(self, actor: User, data: RegistrationData) -> list[str]:
        duration = data.duration or self.policy.default_duration
        problems: list[str] = []
        if self.policy.days_for(duration) is None:
            problems.append(
                f"Duration '{duration}' is not offered "
                f"(choose one of: {', '.join(self.policy.duration_days)})"
            )

        if data.draft:
            if not data.title.strip():
                problems.append("Title is required")
        else:
            problems.extend(
                publishing_problems(
                    data.title, data.description, data.category, data.form_schema, self.policy
                )
            )

        return problems + self._category_problems(actor, data.category)

    def _category_problems(self, actor: User, category: str) -> list[str]:
        if not category:
            return []
        if not self.categories.exists(category):
            return [f"Category '{category}' does not exist"]
        if not can_use_category(actor, self.categories.get(category)):
            return [f"Category '{category}' is reserved for admins"]
        return []

    # Lifecycle transitions

    @track_operation("registration.submit_for_publishing")
    def submit_for_publishing(self, registration_id: str, actor: User) -> Registration:
        """
        DRAFT → PENDING

        Raises:
            RegistrationNotFound, Unauthorized, InvalidTransition,
            ValidationError: If the draft is not complete
        """
        return self._transition(
            registration_id,
            actor,
            RegistrationStatus.PENDING,
            "submit registrations for publishing",
            check=lambda r: validate_publishable(r, self.policy),
        )

    @track_operation("registration.approve")
    def approve(self, registration_id: str, actor: User) -> Registration:
        """
        PENDING → ACTIVE, on payment confirmation

        Marks the registration verified and stamps start_date if unset.
        """
        now = self.time_provider.now()
        return self._transition(
            registration_id,
            actor,
            RegistrationStatus.ACTIVE,
            "approve registrations",
            extra=lambda r: {"verified": True, "start_date": r.start_date or now},
        )

    @track_operation("registration.reject")
    def reject(self, registration_id: str, actor: User) -> Registration:
        """PENDING → REJECTED (terminal)"""
        return self._transition(
            registration_id, actor, RegistrationStatus.REJECTED, "reject registrations"
        )

    @track_operation("registration.pause")
    def pause(self, registration_id: str, actor: User) -> Registration:
        """ACTIVE → PAUSED"""
        return self._transition(
            registration_id, actor, RegistrationStatus.PAUSED, "pause registrations"
        )

    @track_operation("registration.resume")
    def resume(self, registration_id: str, actor: User) -> Registration:
        """
        PAUSED → ACTIVE

        A paused registration whose end date has passed cannot resume: its
        stored status is set to expired and Expired is raised.

        Raises:
            Expired: If the end date has passed
        """
        with self.lock:
            with self.repository.atomic():
                registration = self._load(registration_id)
                require(can_publish(actor, registration), "resume registrations", actor)
                expired = (
                    registration.status == RegistrationStatus.PAUSED
                    and registration.is_expired(self.time_provider.now())
                )
                if expired:
                    self._save(registration.model_copy(update={"status": RegistrationStatus.EXPIRED}))

            if expired:
                registration_transitions_total.labels(
                    from_status=RegistrationStatus.PAUSED.value,
                    to_status=RegistrationStatus.EXPIRED.value,
                ).inc()
                logger.info(
                    "Paused registration expired on resume",
                    registration_id=registration_id,
                    actor_id=actor.id,
                )
                raise Expired(registration_id, registration.end_date.isoformat())

            return self._transition(
                registration_id, actor, RegistrationStatus.ACTIVE, "resume registrations"
            )

    # Admin and host edits

    @track_operation("registration.update_details")
    def update_details(
        self,
        registration_id: str,
        actor: User,
        changes: RegistrationChanges | dict[str, Any],
    ) -> Registration:
        """
        Edit title, description, category, visibility or form schema

        Status, counters, dates and ownership are never editable here.
        Schema edits apply to future submissions only.

        Raises:
            InvalidState: If the registration is expired or rejected
            ValidationError: If a non-draft registration would become
                unpublishable
        """
        if not isinstance(changes, RegistrationChanges):
            try:
                changes = RegistrationChanges.model_validate(changes)
            except PydanticValidationError as e:
                raise ValidationError.from_pydantic(e) from e

        with self.lock, self.repository.atomic():
            registration = self._load(registration_id)
            require(can_publish(actor, registration), "edit registrations", actor)

            current = effective_status(registration, self.time_provider.now())
            if current in TERMINAL_STATUSES:
                raise InvalidState(
                    f"Registration {registration_id} is {current.value} and can no longer be edited"
                )

            category_problems = self._category_problems(actor, changes.category or "")
            if category_problems:
                raise ValidationError(category_problems)

            updated = registration.model_copy(update=changes.as_update())
            if updated.status != RegistrationStatus.DRAFT:
                problems = publishing_problems(
                    updated.title,
                    updated.description,
                    updated.category,
                    updated.form_schema,
                    self.policy,
                )
                if problems:
                    raise ValidationError(problems)
            elif not updated.title.strip():
                raise ValidationError("Title is required")
            elif len(updated.form_schema) > self.policy.max_form_fields:
                raise ValidationError(form_schema_problems(updated.form_schema, self.policy))

            self._save(updated)

        logger.info(
            "Registration details updated",
            registration_id=registration_id,
            fields=sorted(changes.as_update()),
            actor_id=actor.id,
        )
        return resolve(updated, self.time_provider.now())

    @track_operation("registration.set_featured")
    def set_featured(self, registration_id: str, actor: User, featured: bool = True) -> Registration:
        """Admin-only highlight flag"""
        with self.lock, self.repository.atomic():
            registration = self._load(registration_id)
            require(can_edit_official_content(actor), "feature registrations", actor)
            updated = registration.model_copy(update={"featured": featured})
            self._save(updated)

        logger.info(
            "Registration featured flag set",
            registration_id=registration_id,
            featured=featured,
            actor_id=actor.id,
        )
        return resolve(updated, self.time_provider.now())

    @track_operation("registration.delete")
    def delete(self, registration_id: str, actor: User) -> int:
        """
        Remove a registration together with everything that references it

        Args:
            registration_id: Registration to remove
            actor: Owning host or admin

        Returns:
            Number of dependent records (submissions) removed with it

        Raises:
            RegistrationNotFound: If registration_id is unknown
            Unauthorized: If actor neither owns the registration nor is admin
        """
        with self.lock, self.repository.atomic():
            registration = self._load(registration_id)
            require(can_publish(actor, registration), "delete registrations", actor)

            removed = 0
            for collection in self._dependents:
                for record in self.repository.find(collection, registration_id=registration_id):
                    self.repository.delete(collection, record["id"])
                    removed += 1
            self.repository.delete(REGISTRATIONS, registration_id)

        registrations_deleted_total.inc()
        logger.info(
            "Registration deleted",
            registration_id=registration_id,
            status=registration.status.value,
            dependents_removed=removed,
            actor_id=actor.id,
        )
        return removed

    # Counters

    def increment_view(self, registration_id: str) -> None:
        """
        Count one page view

        Unknown ids are ignored.
        """
        with self.lock, self.repository.atomic():
            record = self.repository.get(REGISTRATIONS, registration_id)
            if record is None:
                logger.debug("View for unknown registration ignored", registration_id=registration_id)
                return
            record["view_count"] = record.get("view_count", 0) + 1
            self.repository.update(REGISTRATIONS, registration_id, record)
        registration_views_total.inc()

    def apply_submission_delta(self, registration_id: str, delta: int) -> Registration:
        """
        Adjust submission_count

        Called by the submission store inside its own atomic unit, never
        on its own, so the count moves together with the submission.
        """
        with self.lock:
            registration = self._load(registration_id)
            count = registration.submission_count + delta
            if count < 0:
                raise InvalidState(
                    f"Registration {registration_id} submission count would become negative"
                )
            updated = registration.model_copy(update={"submission_count": count})
            self._save(updated)
            return resolve(updated, self.time_provider.now())

    # Queries

    def get(self, registration_id: str) -> Registration:
        """
        Raises:
            RegistrationNotFound: If registration_id is unknown
        """
        with self.lock:
            return resolve(self._load(registration_id), self.time_provider.now())

    def search(
        self,
        query: str | None = None,
        filters: SearchFilters | dict[str, Any] | None = None,
    ) -> list[Registration]:
        """
        Browse/search registrations

        Args:
            query: Space-separated terms; every term must match title,
                description, category or host name (case-insensitive)
            filters: Category, effective status (default active),
                visibility and sort key

        Returns:
            Matching registrations in the requested order
        """
        if filters is None:
            filters = SearchFilters()
        elif not isinstance(filters, SearchFilters):
            try:
                filters = SearchFilters.model_validate(filters)
            except PydanticValidationError as e:
                raise ValidationError.from_pydantic(e) from e

        status = filters.status or RegistrationStatus.ACTIVE
        terms = search_terms(query)

        with self.lock:
            results = [r for r in self._all() if r.status == status]

        if filters.category and filters.category != "all":
            results = [r for r in results if r.category == filters.category]
        if filters.visibility is not None:
            results = [r for r in results if r.visibility == filters.visibility]
        if terms:
            results = [r for r in results if matches_terms(r, terms)]

        return sort_registrations(results, filters.sort)

    def list_by_host(self, host_id: str) -> list[Registration]:
        """Every registration the host owns, any status, creation order"""
        with self.lock:
            return self._all(host_id=host_id)

    def list_featured(self) -> list[Registration]:
        with self.lock:
            return [
                r for r in self._all(featured=True)
                if r.status == RegistrationStatus.ACTIVE
            ]

    def list_pending(self) -> list[Registration]:
        """Approval queue: registrations awaiting payment confirmation"""
        with self.lock:
            return self._all(status=RegistrationStatus.PENDING.value)

    def list_all(self) -> list[Registration]:
        with self.lock:
            return self._all()

    def active_counts_by_category(self) -> dict[str, int]:
        counts: dict[str, int] = {}
        for registration in self.list_all():
            if registration.status == RegistrationStatus.ACTIVE:
                counts[registration.category] = counts.get(registration.category, 0) + 1
        return counts
