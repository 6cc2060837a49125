"""
Registration Lifecycle Example - a workshop from draft to review

This example demonstrates:
- Hosts drafting a registration and submitting it for publishing
- Admin approval after an out-of-band payment confirmation
- Anonymous and signed-in submissions with required-field validation
- Host review of submissions with an audit trail
- Lazy expiry once the publishing window has passed
"""

import tempfile
from datetime import datetime, timezone
from pathlib import Path

from regos import Regos
from regos.kernel.errors import Closed, ValidationError
from regos.kernel.time import TestTimeProvider


def example_workshop_lifecycle():
    print("\n=== Workshop Registration Lifecycle ===\n")

    clock = TestTimeProvider(datetime(2026, 3, 2, 9, 0, tzinfo=timezone.utc))

    with tempfile.TemporaryDirectory() as tmpdir:
        regos = Regos(Path(tmpdir) / "workshop.db", time_provider=clock)

        admin = regos.bootstrap_admin("admin@example.com", name="Platform Admin")
        host = regos.sign_up(
            "priya@example.com", name="Priya Nair", role="host", actor_id=admin.id
        )
        agent = regos.sign_up("rahul@example.com", name="Rahul Sharma")

        # Draft first: only the title is needed until publishing
        draft = regos.create_registration(
            host.id, {"title": "Intro to Python Workshop", "draft": True}
        )
        print(f"Draft saved: {draft.id} [{draft.status.value}]")

        regos.update_registration(
            draft.id,
            host.id,
            {
                "description": "Three hours of hands-on Python for beginners",
                "category": "education",
                "form_schema": [
                    {"id": "name", "type": "text", "label": "Full Name", "required": True},
                    {"id": "email", "type": "email", "label": "Email", "required": True},
                    {
                        "id": "level",
                        "type": "select",
                        "label": "Experience",
                        "options": ["None", "Some", "Plenty"],
                    },
                ],
            },
        )
        pending = regos.submit_for_publishing(draft.id, host.id)
        print(f"Submitted for publishing: {pending.status.value}")

        # Payment confirmed out of band
        active = regos.approve(draft.id, admin.id)
        print(f"Approved: {active.status.value}, ends {active.end_date:%Y-%m-%d}")

        try:
            regos.submit(active.id, {"name": "Anonymous Visitor"})
        except ValidationError as e:
            print(f"Refused: {e}")

        first = regos.submit(
            active.id,
            {"name": "Rahul Sharma", "email": "rahul@example.com", "level": "Some"},
            user_id=agent.id,
        )
        regos.submit(active.id, {"name": "Anita Rao", "email": "anita@example.com"})
        print(f"Submissions so far: {regos.registrations.get(active.id).submission_count}")

        reviewed = regos.set_submission_status(
            first.id, "scheduled", host.id, notes="Morning batch"
        )
        for change in reviewed.history:
            print(f"  {change.from_status.value} → {change.to_status.value} by {change.actor_id}")

        # Default plan is 30 days; one day later the form reads as expired
        clock.advance_past(active.end_date, seconds=86400)
        print(f"After the window: {regos.registrations.get(active.id).status.value}")
        try:
            regos.submit(active.id, {"name": "Late", "email": "late@example.com"})
        except Closed as e:
            print(f"Refused: {e}")

        print(f"\nPlatform stats: {regos.stats()}")
        regos.close()


if __name__ == "__main__":
    example_workshop_lifecycle()
