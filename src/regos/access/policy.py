"""
Access Policy - every role decision in one place

Pure functions over a user's role (and, for owned entities, the owning
host id). Stores call these at the entry of every mutating operation and
use `require` to turn a denial into an Unauthorized error before anything
is touched.

Fun fact: role-based access control was formalized by Ferraiolo and Kuhn at
NIST in 1992 - three roles is about as small as RBAC gets!
"""

from typing import Protocol

from regos.access.models import Role, User
from regos.kernel.errors import Unauthorized
from regos.kernel.logging import get_logger
from regos.kernel.metrics import guard_denials_total

logger = get_logger(__name__)


class HostOwned(Protocol):
    """Anything that belongs to a host (registrations)"""

    host_id: str


class Restrictable(Protocol):
    """Anything that may be limited to admins (categories)"""

    admin_only: bool


def can_create_registration(user: User | None) -> bool:
    """Hosts and admins may publish registrations"""
    return user is not None and user.role in (Role.HOST, Role.ADMIN)


def can_manage_users(user: User | None) -> bool:
    return user is not None and user.role == Role.ADMIN


def can_edit_official_content(user: User | None) -> bool:
    """Featuring registrations and editing categories is admin work"""
    return user is not None and user.role == Role.ADMIN


def can_approve_submission(user: User | None, registration: HostOwned) -> bool:
    """Admins, or the host that owns the registration"""
    if user is None:
        return False
    if user.role == Role.ADMIN:
        return True
    return user.role == Role.HOST and user.id == registration.host_id


def can_publish(user: User | None, registration: HostOwned) -> bool:
    """Registration-level transitions follow the submission-approval rule"""
    return can_approve_submission(user, registration)


def can_use_category(user: User | None, category: Restrictable) -> bool:
    """Admin-only categories are never offered to non-admins"""
    if not category.admin_only:
        return True
    return user is not None and user.role == Role.ADMIN


def can_change_role(actor: User | None, target: User, new_role: Role) -> bool:
    """
    Admins may assign any role; anyone else may only upgrade themselves
    from agent to host (the "become a host" flow).
    """
    if actor is None:
        return False
    if actor.role == Role.ADMIN:
        return True
    return (
        actor.id == target.id
        and target.role == Role.AGENT
        and new_role == Role.HOST
    )


def require(allowed: bool, action: str, actor: User | None) -> None:
    """
    Raise Unauthorized when a capability check failed

    Args:
        allowed: Result of one of the can_* functions
        action: Short verb phrase used in the error and metrics
        actor: Acting user (None for anonymous callers)

    Raises:
        Unauthorized: If allowed is False
    """
    if allowed:
        return
    actor_id = actor.id if actor is not None else None
    guard_denials_total.labels(action=action).inc()
    logger.warning(
        "Guard denied action",
        action=action,
        actor_id=actor_id,
        role=actor.role.value if actor is not None else None,
    )
    raise Unauthorized(action, actor_id)
