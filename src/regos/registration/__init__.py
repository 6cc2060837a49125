"""
Registration module - host-authored forms and their publishing lifecycle

Lifecycle: draft → pending → active ⇄ paused, expiring lazily once the end
date passes, or rejected when payment confirmation is declined.
"""

from regos.registration.categories import DEFAULT_CATEGORIES, CategoryCatalog
from regos.registration.invariants import TRANSITIONS, effective_status
from regos.registration.models import (
    Category,
    FieldType,
    FormField,
    Registration,
    RegistrationChanges,
    RegistrationData,
    RegistrationStatus,
    SearchFilters,
    SortKey,
    Visibility,
)
from regos.registration.store import RegistrationStore

__all__ = [
    # Models
    "Category",
    "FieldType",
    "FormField",
    "Registration",
    "RegistrationChanges",
    "RegistrationData",
    "RegistrationStatus",
    "SearchFilters",
    "SortKey",
    "Visibility",
    # Lifecycle
    "TRANSITIONS",
    "effective_status",
    # Stores
    "CategoryCatalog",
    "DEFAULT_CATEGORIES",
    "RegistrationStore",
]
