"""
Registration Domain Models

A registration is a host-authored form that respondents fill in while it
is active. Its stored status only changes through explicit transitions;
expiry is derived from the end date whenever it is read.
"""

from datetime import datetime
from enum import Enum
from typing import Any

from pydantic import BaseModel, Field

from regos.kernel.time import days_left


class RegistrationStatus(str, Enum):
    """
    Registration lifecycle states

    DRAFT → PENDING → ACTIVE ⇄ PAUSED, with EXPIRED derived from end_date
    and REJECTED when payment confirmation is declined. EXPIRED and
    REJECTED are terminal.
    """

    DRAFT = "draft"  # Incomplete, not yet submitted for publishing
    PENDING = "pending"  # Awaiting payment confirmation
    ACTIVE = "active"  # Open for submissions
    PAUSED = "paused"  # Temporarily closed by host or admin
    EXPIRED = "expired"  # End date passed
    REJECTED = "rejected"  # Payment confirmation declined


TERMINAL_STATUSES = frozenset({RegistrationStatus.EXPIRED, RegistrationStatus.REJECTED})


class Visibility(str, Enum):
    PUBLIC = "public"
    PRIVATE = "private"


class FieldType(str, Enum):
    TEXT = "text"
    EMAIL = "email"
    PHONE = "phone"
    TEXTAREA = "textarea"
    SELECT = "select"
    CHECKBOX = "checkbox"
    DATE = "date"
    FILE = "file"
    IMAGE = "image"
    URL = "url"
    NUMBER = "number"


class SortKey(str, Enum):
    NEWEST = "newest"  # created_at, latest first
    MOST_VIEWED = "most_viewed"
    MOST_SUBMISSIONS = "most_submissions"
    ENDING_SOON = "ending_soon"  # end_date, soonest first


class FormField(BaseModel):
    """
    One question in a registration's form

    Attributes:
        id: Identifier unique within the form, key of submitted form data
        type: Input kind
        label: Question text (must be non-empty before publishing)
        required: Whether submissions must answer it
        placeholder: Optional hint text
        options: Choices for select fields (non-empty for select)
    """

    id: str
    type: FieldType = FieldType.TEXT
    label: str = ""
    required: bool = False
    placeholder: str | None = None
    options: list[str] = Field(default_factory=list)


class Category(BaseModel):
    """
    Browsing category

    Attributes:
        id: Slug used as the registration's category reference
        name: Display name
        description: One-line description
        icon: Icon reference for clients
        admin_only: Only admins may file registrations here
        count: Active registrations in this category (filled at read time)
    """

    id: str
    name: str
    description: str = ""
    icon: str = "FileText"
    admin_only: bool = False
    count: int = 0


class Registration(BaseModel):
    """
    Host-authored form/event

    Attributes:
        id: Unique identifier
        host_id: Owning user
        host_name: Owner's display name at creation (searchable)
        title: Headline
        description: Body text
        category: Category id
        visibility: public or private
        duration: Publishing plan name (e.g. "7days")
        status: Stored lifecycle status (see effective_status for reads)
        created_at: Creation time
        start_date: Start of the publishing window
        end_date: start_date + duration days, immutable
        view_count: Page views counted
        submission_count: Live submissions referencing this registration
        featured: Admin-controlled highlight flag
        verified: Set once payment confirmation was approved
        form_schema: Ordered form fields
    """

    id: str
    host_id: str
    host_name: str = ""
    title: str
    description: str = ""
    category: str = ""
    visibility: Visibility = Visibility.PUBLIC
    duration: str
    status: RegistrationStatus = RegistrationStatus.PENDING
    created_at: datetime
    start_date: datetime | None = None
    end_date: datetime
    view_count: int = Field(default=0, ge=0)
    submission_count: int = Field(default=0, ge=0)
    featured: bool = False
    verified: bool = False
    form_schema: list[FormField] = Field(default_factory=list)

    model_config = {
        "json_schema_extra": {
            "examples": [
                {
                    "id": "reg_001",
                    "host_id": "usr_host001",
                    "host_name": "Event Organizer Pro",
                    "title": "Tech Innovation Summit 2026",
                    "description": "Join the biggest tech conference of the year!",
                    "category": "events",
                    "visibility": "public",
                    "duration": "30days",
                    "status": "active",
                    "created_at": "2026-01-15T09:00:00Z",
                    "start_date": "2026-01-15T09:00:00Z",
                    "end_date": "2026-02-14T09:00:00Z",
                    "view_count": 1250,
                    "submission_count": 342,
                    "featured": True,
                    "verified": True,
                    "form_schema": [
                        {"id": "f1", "type": "text", "label": "Full Name", "required": True},
                        {"id": "f2", "type": "email", "label": "Email Address", "required": True},
                    ],
                }
            ]
        }
    }

    def is_expired(self, now: datetime) -> bool:
        """True once end_date lies in the past"""
        return self.end_date < now

    def days_remaining(self, now: datetime) -> int:
        """Whole days left, rounded up, never negative"""
        return days_left(self.end_date, now)

    def field(self, field_id: str) -> FormField | None:
        return next((f for f in self.form_schema if f.id == field_id), None)


class RegistrationData(BaseModel):
    """
    Host input for creating a registration

    Setting draft=True stores an incomplete registration that only needs
    a title; it must pass submit_for_publishing before approval.
    """

    title: str
    description: str = ""
    category: str = ""
    visibility: Visibility = Visibility.PUBLIC
    duration: str | None = None
    form_schema: list[FormField] = Field(default_factory=list)
    draft: bool = False


class RegistrationChanges(BaseModel):
    """Editable details; None leaves the current value"""

    title: str | None = None
    description: str | None = None
    category: str | None = None
    visibility: Visibility | None = None
    form_schema: list[FormField] | None = None

    def as_update(self) -> dict[str, Any]:
        """Set values as model instances, ready for model_copy"""
        return {
            name: getattr(self, name)
            for name in type(self).model_fields
            if getattr(self, name) is not None
        }


class SearchFilters(BaseModel):
    """
    Browse/search filters

    Attributes:
        category: Category id, or "all"/None for every category
        status: Effective status to match (defaults to active)
        visibility: Optional visibility restriction
        sort: Ordering key
    """

    category: str | None = None
    status: RegistrationStatus | None = None
    visibility: Visibility | None = None
    sort: SortKey = SortKey.NEWEST
