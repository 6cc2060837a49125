"""
Submission Domain Models

A submission is one respondent's answers to a registration's form. It
starts pending and is classified by the registration's host or an admin;
every classification is kept in its history.
"""

from datetime import datetime
from enum import Enum
from typing import Any

from pydantic import BaseModel, Field


class SubmissionStatus(str, Enum):
    """
    Submission review states

    PENDING is only ever the initial state. Once left, the host may move
    freely between APPROVED, REJECTED and SCHEDULED.
    """

    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"
    SCHEDULED = "scheduled"


class StatusChange(BaseModel):
    """One entry in a submission's review history"""

    from_status: SubmissionStatus
    to_status: SubmissionStatus
    actor_id: str
    changed_at: datetime
    notes: str | None = None


class Submission(BaseModel):
    """
    One respondent's answer set

    Attributes:
        id: Unique identifier
        registration_id: Registration answered
        user_id: Respondent account (None for anonymous submissions)
        form_data: Form field id → submitted value
        files: Ordered file references (upload keys or URLs)
        status: Review status
        notes: Latest host-authored note
        submitted_at: Submission time, immutable
        history: Every status change, oldest first
    """

    id: str
    registration_id: str
    user_id: str | None = None
    form_data: dict[str, Any] = Field(default_factory=dict)
    files: list[str] = Field(default_factory=list)
    status: SubmissionStatus = SubmissionStatus.PENDING
    notes: str | None = None
    submitted_at: datetime
    history: list[StatusChange] = Field(default_factory=list)

    model_config = {
        "json_schema_extra": {
            "examples": [
                {
                    "id": "sub_001",
                    "registration_id": "reg_001",
                    "user_id": "usr_agent001",
                    "form_data": {"f1": "Rahul Sharma", "f2": "rahul@example.com"},
                    "files": [],
                    "status": "approved",
                    "notes": "See you there",
                    "submitted_at": "2026-01-20T10:30:00Z",
                    "history": [
                        {
                            "from_status": "pending",
                            "to_status": "approved",
                            "actor_id": "usr_host001",
                            "changed_at": "2026-01-21T08:00:00Z",
                            "notes": "See you there",
                        }
                    ],
                }
            ]
        }
    }

    def is_anonymous(self) -> bool:
        return self.user_id is None
