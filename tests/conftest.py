"""
Pytest configuration and shared fixtures

Fun fact: The name "conftest" comes from pytest's configuration testing
framework. Files named conftest.py are automatically discovered and their
fixtures are available to all tests in the same directory and subdirectories!
"""

import tempfile
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Iterator

import pytest

from regos.access.models import Role, User
from regos.access.users import UserDirectory
from regos.kernel.ids import SequentialIdFactory
from regos.kernel.platform_policy import PlatformPolicy
from regos.kernel.repository import InMemoryRepository
from regos.kernel.time import TestTimeProvider
from regos.platform import Regos
from regos.registration.categories import CategoryCatalog
from regos.registration.models import Registration
from regos.registration.store import RegistrationStore
from regos.submission.store import SubmissionStore


@pytest.fixture
def temp_db() -> Iterator[Path]:
    """Provide a temporary database file that's cleaned up after test"""
    with tempfile.NamedTemporaryFile(suffix=".db", delete=False) as f:
        db_path = Path(f.name)

    yield db_path

    # Cleanup (WAL mode leaves -wal/-shm siblings behind)
    for path in (db_path, Path(f"{db_path}-wal"), Path(f"{db_path}-shm")):
        if path.exists():
            path.unlink()


@pytest.fixture
def test_time() -> TestTimeProvider:
    """
    Provide a controllable time provider for deterministic tests

    Default time: 2025-01-15 12:00:00 UTC (a Wednesday, so a 7-day plan
    ends on the following Wednesday at noon).
    """
    return TestTimeProvider(datetime(2025, 1, 15, 12, 0, 0, tzinfo=timezone.utc))


@pytest.fixture
def policy() -> PlatformPolicy:
    """Provide the default platform policy"""
    return PlatformPolicy()


@pytest.fixture
def repository() -> InMemoryRepository:
    """Provide a fresh in-memory repository for each test"""
    return InMemoryRepository()


@pytest.fixture
def id_factory() -> SequentialIdFactory:
    """Predictable ids: usr_1, reg_1, sub_1, ..."""
    return SequentialIdFactory()


# =============================================================================
# Store Fixtures
# =============================================================================


@pytest.fixture
def users(repository, test_time, id_factory) -> UserDirectory:
    return UserDirectory(repository, test_time, id_factory)


@pytest.fixture
def categories(repository) -> CategoryCatalog:
    """Catalog seeded with the default categories"""
    return CategoryCatalog(repository)


@pytest.fixture
def registrations(repository, test_time, categories, policy, id_factory) -> RegistrationStore:
    return RegistrationStore(repository, test_time, categories, policy, id_factory)


@pytest.fixture
def submissions(repository, test_time, registrations, policy, id_factory) -> SubmissionStore:
    """Submission store sharing the registration store's lock"""
    return SubmissionStore(repository, test_time, registrations, policy, id_factory)


@pytest.fixture
def regos(test_time) -> Regos:
    """In-memory façade with deterministic time and ids"""
    return Regos(time_provider=test_time, id_factory=SequentialIdFactory())


# =============================================================================
# Actors
# =============================================================================


@pytest.fixture
def admin(users: UserDirectory) -> User:
    """First account of the deployment"""
    return users.bootstrap_admin("admin@regos.test", name="Platform Admin")


@pytest.fixture
def host(users: UserDirectory, admin: User) -> User:
    return users.sign_up(
        "host@regos.test", name="Event Organizer Pro", role=Role.HOST, actor=admin
    )


@pytest.fixture
def other_host(users: UserDirectory, admin: User) -> User:
    return users.sign_up("rival@regos.test", name="Rival Host", role=Role.HOST, actor=admin)


@pytest.fixture
def agent(users: UserDirectory, admin: User) -> User:
    return users.sign_up("agent@regos.test", name="Rahul Sharma", phone="+91 98765 43210")


# =============================================================================
# Registration Fixtures
# =============================================================================


@pytest.fixture
def form_schema() -> list[dict[str, Any]]:
    """
    A workshop sign-up form

    Two required answers, one select with options, one optional note.
    """
    return [
        {"id": "name", "type": "text", "label": "Full Name", "required": True},
        {"id": "email", "type": "email", "label": "Email Address", "required": True},
        {
            "id": "track",
            "type": "select",
            "label": "Track",
            "options": ["Beginner", "Advanced"],
        },
        {"id": "notes", "type": "textarea", "label": "Anything else?"},
    ]


@pytest.fixture
def registration_data(form_schema) -> dict[str, Any]:
    return {
        "title": "Python Workshop",
        "description": "A hands-on afternoon of Python",
        "category": "education",
        "visibility": "public",
        "duration": "7days",
        "form_schema": form_schema,
    }


@pytest.fixture
def pending_registration(registrations, host, registration_data) -> Registration:
    return registrations.create(host, registration_data)


@pytest.fixture
def active_registration(registrations, admin, pending_registration) -> Registration:
    """A 7-day registration approved at 2025-01-15 12:00 UTC"""
    return registrations.approve(pending_registration.id, admin)


@pytest.fixture
def valid_answers() -> dict[str, Any]:
    return {"name": "Rahul Sharma", "email": "rahul@example.com", "track": "Beginner"}
