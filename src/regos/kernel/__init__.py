"""
Kernel - Shared infrastructure for the registration core

Errors, time, ids, the repository seam, platform policy, and the
logging/metrics plumbing every module builds upon.
"""

from regos.kernel.errors import (
    Closed,
    Expired,
    InvalidState,
    InvalidTransition,
    MissingRequiredFields,
    NotFound,
    RegosError,
    Unauthorized,
    ValidationError,
)
from regos.kernel.ids import DefaultIdFactory, IdFactory, SequentialIdFactory, generate_id
from regos.kernel.platform_policy import PlatformPolicy
from regos.kernel.repository import InMemoryRepository, Repository, SQLiteRepository
from regos.kernel.time import RealTimeProvider, TestTimeProvider, TimeProvider

__all__ = [
    # IDs
    "IdFactory",
    "DefaultIdFactory",
    "SequentialIdFactory",
    "generate_id",
    # Time
    "TimeProvider",
    "RealTimeProvider",
    "TestTimeProvider",
    # Persistence & policy
    "Repository",
    "InMemoryRepository",
    "SQLiteRepository",
    "PlatformPolicy",
    # Errors
    "RegosError",
    "ValidationError",
    "MissingRequiredFields",
    "Unauthorized",
    "NotFound",
    "InvalidState",
    "InvalidTransition",
    "Closed",
    "Expired",
]
