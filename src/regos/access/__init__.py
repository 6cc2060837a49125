"""
Access - roles, accounts and the capability checks guarding every mutation
"""

from regos.access.models import Role, User
from regos.access.policy import (
    can_approve_submission,
    can_change_role,
    can_create_registration,
    can_edit_official_content,
    can_manage_users,
    can_publish,
    can_use_category,
    require,
)
from regos.access.users import UserDirectory

__all__ = [
    "Role",
    "User",
    "UserDirectory",
    "can_create_registration",
    "can_manage_users",
    "can_edit_official_content",
    "can_approve_submission",
    "can_publish",
    "can_use_category",
    "can_change_role",
    "require",
]
