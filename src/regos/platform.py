"""
Regos - Main façade class

The primary interface to the registration core. It wires one repository,
clock and policy into the user directory, category catalog, registration
store and submission store, and exposes the operations by actor id.

Example:
    >>> from regos import Regos
    >>> regos = Regos("regos.db")
    >>> admin = regos.bootstrap_admin("admin@example.com")
    >>> host = regos.sign_up("host@example.com", role="host", actor_id=admin.id)
    >>> reg = regos.create_registration(host.id, {...})
    >>> regos.approve(reg.id, admin.id)
    >>> regos.submit(reg.id, {"f1": "Rahul"})
    >>> regos.stats()
"""

import threading
from pathlib import Path
from typing import Any

from regos.access.models import Role, User
from regos.access.users import UserDirectory
from regos.kernel.errors import ValidationError
from regos.kernel.ids import IdFactory
from regos.kernel.metrics import update_status_gauges
from regos.kernel.platform_policy import PlatformPolicy
from regos.kernel.repository import InMemoryRepository, Repository, SQLiteRepository
from regos.kernel.time import RealTimeProvider, TimeProvider
from regos.registration.categories import CategoryCatalog
from regos.registration.models import (
    Category,
    Registration,
    RegistrationChanges,
    RegistrationData,
    RegistrationStatus,
    SearchFilters,
)
from regos.registration.store import RegistrationStore
from regos.submission.models import Submission, SubmissionStatus
from regos.submission.store import SubmissionStore


def parse_role(value: Role | str) -> Role:
    try:
        return Role(value)
    except ValueError as e:
        choices = ", ".join(r.value for r in Role)
        raise ValidationError(f"Unknown role '{value}' (choose one of: {choices})") from e


class Regos:
    """
    Regos main façade

    Provides a unified API for:
    - Accounts and roles
    - Registration creation, publishing and browsing
    - Submissions and their review
    - Platform statistics
    """

    def __init__(
        self,
        sqlite_path: str | Path | None = None,
        policy: PlatformPolicy | None = None,
        time_provider: TimeProvider | None = None,
        id_factory: IdFactory | None = None,
    ) -> None:
        """
        Initialize Regos

        Args:
            sqlite_path: Path to SQLite database (in-memory storage if None)
            policy: Platform policy (uses defaults if None)
            time_provider: Time provider (uses real time if None)
            id_factory: Id generator (UUIDv7-like if None)
        """
        self.sqlite_path = Path(sqlite_path) if sqlite_path is not None else None
        self.policy = policy or PlatformPolicy()
        self.time_provider = time_provider or RealTimeProvider()

        self.repository: Repository
        if self.sqlite_path is None:
            self.repository = InMemoryRepository()
        else:
            self.repository = SQLiteRepository(self.sqlite_path)

        lock = threading.RLock()
        self.users = UserDirectory(self.repository, self.time_provider, id_factory)
        self.categories = CategoryCatalog(self.repository)
        self.registrations = RegistrationStore(
            self.repository,
            self.time_provider,
            self.categories,
            self.policy,
            id_factory,
            lock=lock,
        )
        self.submissions = SubmissionStore(
            self.repository,
            self.time_provider,
            self.registrations,
            self.policy,
            id_factory,
        )

    def close(self) -> None:
        if isinstance(self.repository, SQLiteRepository):
            self.repository.close()

    # Users

    def sign_up(
        self,
        email: str,
        name: str | None = None,
        phone: str | None = None,
        role: Role | str = Role.AGENT,
        actor_id: str | None = None,
    ) -> User:
        """Self-service sign-up, or an admin creating an account with a role"""
        actor = self.actor(actor_id) if actor_id else None
        return self.users.sign_up(
            email, name=name, phone=phone, role=parse_role(role), actor=actor
        )

    def bootstrap_admin(
        self, email: str, name: str | None = None, phone: str | None = None
    ) -> User:
        return self.users.bootstrap_admin(email, name=name, phone=phone)

    def actor(self, user_id: str) -> User:
        """Resolve an actor by id or email"""
        if "@" in user_id:
            user = self.users.find_by_email(user_id)
            if user is not None:
                return user
        return self.users.get(user_id)

    def change_role(self, user_id: str, new_role: Role | str, actor_id: str) -> User:
        return self.users.change_role(user_id, parse_role(new_role), self.actor(actor_id))

    def list_users(self, role: Role | str | None = None) -> list[User]:
        return self.users.list_users(parse_role(role) if role is not None else None)

    # Categories

    def list_categories(self, actor_id: str | None = None) -> list[Category]:
        """Categories offered to the actor, with live active counts"""
        actor = self.actor(actor_id) if actor_id else None
        return self.categories.list_categories(
            actor, counts=self.registrations.active_counts_by_category()
        )

    # Registrations

    def create_registration(
        self, actor_id: str, data: RegistrationData | dict[str, Any]
    ) -> Registration:
        return self.registrations.create(self.actor(actor_id), data)

    def submit_for_publishing(self, registration_id: str, actor_id: str) -> Registration:
        return self.registrations.submit_for_publishing(registration_id, self.actor(actor_id))

    def approve(self, registration_id: str, actor_id: str) -> Registration:
        return self.registrations.approve(registration_id, self.actor(actor_id))

    def reject(self, registration_id: str, actor_id: str) -> Registration:
        return self.registrations.reject(registration_id, self.actor(actor_id))

    def pause(self, registration_id: str, actor_id: str) -> Registration:
        return self.registrations.pause(registration_id, self.actor(actor_id))

    def resume(self, registration_id: str, actor_id: str) -> Registration:
        return self.registrations.resume(registration_id, self.actor(actor_id))

    def update_registration(
        self,
        registration_id: str,
        actor_id: str,
        changes: RegistrationChanges | dict[str, Any],
    ) -> Registration:
        return self.registrations.update_details(registration_id, self.actor(actor_id), changes)

    def delete_registration(self, registration_id: str, actor_id: str) -> int:
        """Delete a registration and its submissions; returns submissions removed"""
        return self.registrations.delete(registration_id, self.actor(actor_id))

    def view(self, registration_id: str) -> Registration:
        """Fetch a registration for display, counting the view"""
        registration = self.registrations.get(registration_id)
        self.registrations.increment_view(registration_id)
        return registration.model_copy(update={"view_count": registration.view_count + 1})

    def browse(
        self,
        query: str | None = None,
        filters: SearchFilters | dict[str, Any] | None = None,
    ) -> list[Registration]:
        return self.registrations.search(query, filters)

    # Submissions

    def submit(
        self,
        registration_id: str,
        form_data: dict[str, Any],
        files: list[str] | None = None,
        user_id: str | None = None,
    ) -> Submission:
        return self.submissions.submit(registration_id, form_data, files or (), user_id)

    def set_submission_status(
        self,
        submission_id: str,
        status: SubmissionStatus | str,
        actor_id: str,
        notes: str | None = None,
    ) -> Submission:
        return self.submissions.set_status(submission_id, status, self.actor(actor_id), notes)

    def delete_submission(self, submission_id: str, actor_id: str) -> None:
        self.submissions.delete(submission_id, self.actor(actor_id))

    # Statistics

    def stats(self) -> dict[str, Any]:
        """
        Platform totals

        Returns:
            Counts of users, registrations, submissions and registrations
            per effective status
        """
        with self.registrations.lock:
            registrations = self.registrations.list_all()
            by_status = {status.value: 0 for status in RegistrationStatus}
            for registration in registrations:
                by_status[registration.status.value] += 1

            stats = {
                "users": len(self.users.list_users()),
                "registrations": len(registrations),
                "submissions": self.submissions.count(),
                "registrations_by_status": by_status,
                "pending_approvals": by_status[RegistrationStatus.PENDING.value],
            }

        update_status_gauges(by_status)
        return stats
