"""
Access Models - who is acting

Every guarded operation takes a User as its actor. The role is the only
thing the access policy reads besides ownership.
"""

from datetime import datetime
from enum import Enum

from pydantic import BaseModel


class Role(str, Enum):
    """
    Platform roles

    AGENT is the default for every sign-up; HOST may publish registrations;
    ADMIN manages everything across hosts.
    """

    AGENT = "agent"
    HOST = "host"
    ADMIN = "admin"


class User(BaseModel):
    """
    Platform account

    Attributes:
        id: Opaque identifier
        email: Login email (unique within a directory)
        name: Display name, shown as host name on registrations
        phone: Optional contact number
        role: Exactly one of agent, host, admin
        verified: Whether an admin verified the account
        created_at: Sign-up time
    """

    id: str
    email: str
    name: str
    phone: str | None = None
    role: Role = Role.AGENT
    verified: bool = False
    created_at: datetime

    model_config = {
        "json_schema_extra": {
            "examples": [
                {
                    "id": "usr_host001",
                    "email": "host@example.com",
                    "name": "Event Organizer Pro",
                    "phone": "9876543211",
                    "role": "host",
                    "verified": True,
                    "created_at": "2024-06-15T10:30:00Z",
                }
            ]
        }
    }

    def is_admin(self) -> bool:
        return self.role == Role.ADMIN
