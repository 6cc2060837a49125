"""
Platform Policy - Tunable parameters of the registration lifecycle

One pydantic model holds every knob the stores consult (publishing
durations, form size limits, anonymous submissions), so deployments and
tests configure behaviour by constructing a policy rather than patching
module constants.
"""

import os

from pydantic import BaseModel, Field, field_validator


class PlatformPolicy(BaseModel):
    """
    Lifecycle parameters

    Defaults mirror the hosted platform's publishing plans.
    """

    policy_version: str = Field(
        default="1.0",
        description="Policy version for tracking changes over time",
    )

    duration_days: dict[str, int] = Field(
        default={
            "7days": 7,
            "14days": 14,
            "30days": 30,
            "90days": 90,
        },
        description="Publishing durations offered to hosts, keyed by plan name",
    )

    default_duration: str = Field(
        default="30days",
        description="Duration used when the host does not pick one",
    )

    max_form_fields: int = Field(
        default=50,
        ge=1,
        description="Maximum number of fields in one registration form",
    )

    max_files_per_submission: int = Field(
        default=10,
        ge=0,
        description="Maximum number of file references attached to a submission",
    )

    allow_anonymous_submissions: bool = Field(
        default=True,
        description="Whether respondents may submit without a user id",
    )

    @field_validator("duration_days")
    @classmethod
    def _positive_durations(cls, value: dict[str, int]) -> dict[str, int]:
        if not value:
            raise ValueError("at least one duration must be offered")
        for name, days in value.items():
            if days < 1:
                raise ValueError(f"duration {name} must be at least one day")
        return value

    def days_for(self, duration: str) -> int | None:
        """Days for a duration plan, None when the plan is not offered"""
        return self.duration_days.get(duration)


def default_db_path() -> str:
    """Database path for the CLI and health server (REGOS_DB, else .regos.db)"""
    return os.getenv("REGOS_DB", ".regos.db")


default_platform_policy = PlatformPolicy()
