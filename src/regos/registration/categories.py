"""
Category Catalog - the browsing categories hosts file registrations under

Seeded with the platform defaults on first use. The admin-only "platform"
category holds official content and is hidden from everyone else.
"""

import threading
from collections.abc import Mapping

from regos.access.models import User
from regos.access.policy import can_edit_official_content, can_use_category, require
from regos.kernel.errors import CategoryNotFound, ValidationError
from regos.kernel.logging import get_logger
from regos.kernel.repository import Repository
from regos.registration.models import Category

logger = get_logger(__name__)

CATEGORIES = "categories"

DEFAULT_CATEGORIES: list[Category] = [
    Category(id="events", name="Events", icon="Calendar",
             description="Conferences, workshops, and gatherings"),
    Category(id="appointments", name="Appointments", icon="Clock",
             description="Scheduled meetings and bookings"),
    Category(id="registrations", name="Registrations", icon="FileText",
             description="General form registrations"),
    Category(id="vehicles", name="Vehicle Registry", icon="Car",
             description="VIN and vehicle registrations"),
    Category(id="education", name="Education", icon="GraduationCap",
             description="Courses, exams, and admissions"),
    Category(id="government", name="Government", icon="Building2",
             description="Official government services"),
    Category(id="healthcare", name="Healthcare", icon="HeartPulse",
             description="Medical and health services"),
    Category(id="business", name="Business", icon="Briefcase",
             description="Business and corporate registrations"),
    Category(id="platform", name="Platform Information", icon="Info",
             description="Official platform content", admin_only=True),
]


class CategoryCatalog:
    """Owns the categories collection"""

    def __init__(self, repository: Repository, seed: bool = True) -> None:
        self.repository = repository
        self._lock = threading.RLock()
        if seed:
            self._seed_defaults()

    def _seed_defaults(self) -> None:
        with self._lock, self.repository.atomic():
            if self.repository.find(CATEGORIES):
                return
            for category in DEFAULT_CATEGORIES:
                self.repository.create(
                    CATEGORIES, category.id, category.model_dump(mode="json")
                )
            logger.info("Default categories seeded", count=len(DEFAULT_CATEGORIES))

    def get(self, category_id: str) -> Category:
        record = self.repository.get(CATEGORIES, category_id)
        if record is None:
            raise CategoryNotFound(category_id)
        return Category.model_validate(record)

    def exists(self, category_id: str) -> bool:
        return self.repository.get(CATEGORIES, category_id) is not None

    def list_categories(
        self,
        actor: User | None = None,
        counts: Mapping[str, int] | None = None,
    ) -> list[Category]:
        """
        Categories offered to the actor

        Args:
            actor: Viewing user; admin-only categories appear only for admins
            counts: Active registrations per category id, copied into count

        Returns:
            Categories in catalog order
        """
        counts = counts or {}
        categories = [Category.model_validate(r) for r in self.repository.find(CATEGORIES)]
        return [
            category.model_copy(update={"count": counts.get(category.id, 0)})
            for category in categories
            if can_use_category(actor, category)
        ]

    def add(self, actor: User, category: Category) -> Category:
        """
        Add a category (admin only)

        Raises:
            Unauthorized: If actor is not an admin
            ValidationError: If the id or name is empty, or the id is taken
        """
        require(can_edit_official_content(actor), "manage categories", actor)
        problems = []
        if not category.id.strip():
            problems.append("Category id is required")
        if not category.name.strip():
            problems.append("Category name is required")
        if problems:
            raise ValidationError(problems)

        with self._lock:
            if self.exists(category.id):
                raise ValidationError(f"Category '{category.id}' already exists")
            stored = category.model_copy(update={"count": 0})
            self.repository.create(CATEGORIES, stored.id, stored.model_dump(mode="json"))
            logger.info("Category added", category_id=stored.id, actor_id=actor.id)
            return stored
