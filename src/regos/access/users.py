"""
User Directory - sign-up, lookup and role changes

Self-service accounts are created with the agent role. Any other starting
role needs an admin actor, and upgrades go through `change_role`, guarded
by the access policy: admins may assign any role, an agent may promote
themselves to host. The very first admin is created by `bootstrap_admin`,
which only works while the directory is empty.
"""

import threading

from regos.access.models import Role, User
from regos.access.policy import can_change_role, can_manage_users, require
from regos.kernel.errors import InvalidState, UserNotFound, ValidationError
from regos.kernel.ids import DefaultIdFactory, IdFactory
from regos.kernel.logging import LogOperation, get_logger
from regos.kernel.repository import Repository
from regos.kernel.time import TimeProvider

logger = get_logger(__name__)

USERS = "users"


def normalize_email(email: str) -> str:
    """
    Lower-case and strip an email, rejecting obviously malformed ones

    Raises:
        ValidationError: If there is no local part or no domain
    """
    email = email.strip().lower()
    if "@" not in email or email.startswith("@") or email.endswith("@"):
        raise ValidationError(f"'{email}' is not a valid email address")
    return email


class UserDirectory:
    """Owns the users collection"""

    def __init__(
        self,
        repository: Repository,
        time_provider: TimeProvider,
        id_factory: IdFactory | None = None,
    ) -> None:
        self.repository = repository
        self.time_provider = time_provider
        self.id_factory = id_factory or DefaultIdFactory()
        self._lock = threading.RLock()

    def _create(self, email: str, name: str | None, phone: str | None, role: Role) -> User:
        if self.repository.find(USERS, email=email):
            raise ValidationError(f"An account for {email} already exists")

        user = User(
            id=self.id_factory.generate("usr"),
            email=email,
            name=name or email.split("@")[0],
            phone=phone,
            role=role,
            created_at=self.time_provider.now(),
        )
        self.repository.create(USERS, user.id, user.model_dump(mode="json"))
        return user

    def sign_up(
        self,
        email: str,
        name: str | None = None,
        phone: str | None = None,
        role: Role = Role.AGENT,
        actor: User | None = None,
    ) -> User:
        """
        Create an account

        Args:
            email: Login email, must be unique
            name: Display name (defaults to the email's local part)
            phone: Optional contact number
            role: Initial role; anything but agent needs an admin actor
            actor: Admin creating the account on someone's behalf

        Returns:
            The new user

        Raises:
            Unauthorized: If a non-agent role is requested without an admin actor
            ValidationError: If email is malformed or already registered
        """
        role = Role(role)
        if role != Role.AGENT:
            require(can_manage_users(actor), "assign roles at sign-up", actor)
        email = normalize_email(email)

        with self._lock, LogOperation(
            logger,
            "sign_up",
            role=role.value,
            actor_id=actor.id if actor is not None else None,
        ):
            return self._create(email, name, phone, role)

    def bootstrap_admin(
        self,
        email: str,
        name: str | None = None,
        phone: str | None = None,
    ) -> User:
        """
        Create the first admin of a fresh deployment

        Raises:
            InvalidState: If any account already exists
            ValidationError: If email is malformed
        """
        email = normalize_email(email)
        with self._lock, self.repository.atomic():
            if self.repository.find(USERS):
                raise InvalidState("Admin bootstrap is only possible before any account exists")
            with LogOperation(logger, "bootstrap_admin"):
                return self._create(email, name, phone, Role.ADMIN)

    def get(self, user_id: str) -> User:
        record = self.repository.get(USERS, user_id)
        if record is None:
            raise UserNotFound(user_id)
        return User.model_validate(record)

    def find_by_email(self, email: str) -> User | None:
        records = self.repository.find(USERS, email=email.strip().lower())
        return User.model_validate(records[0]) if records else None

    def list_users(self, role: Role | None = None) -> list[User]:
        filters = {"role": Role(role).value} if role is not None else {}
        return [User.model_validate(r) for r in self.repository.find(USERS, **filters)]

    def change_role(self, user_id: str, new_role: Role, actor: User) -> User:
        """
        Change a user's role

        Raises:
            UserNotFound: If user_id is unknown
            Unauthorized: If the actor may not make this change
        """
        new_role = Role(new_role)
        with self._lock:
            target = self.get(user_id)
            require(can_change_role(actor, target, new_role), "change user role", actor)

            with LogOperation(
                logger,
                "change_role",
                user_id=user_id,
                from_role=target.role.value,
                to_role=new_role.value,
                actor_id=actor.id,
            ):
                updated = target.model_copy(update={"role": new_role})
                self.repository.update(USERS, user_id, updated.model_dump(mode="json"))
                return updated

    def mark_verified(self, user_id: str, actor: User) -> User:
        """Admin-only account verification"""
        with self._lock:
            target = self.get(user_id)
            require(can_manage_users(actor), "verify users", actor)
            updated = target.model_copy(update={"verified": True})
            self.repository.update(USERS, user_id, updated.model_dump(mode="json"))
            logger.info("User verified", user_id=user_id, actor_id=actor.id)
            return updated
