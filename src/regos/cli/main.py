"""
Regos CLI

Command-line interface for the Regos registration core.
Provides commands for accounts, categories, registrations, submissions
and platform statistics.

Usage:
    regos init --db regos.db --admin admin@example.com
    regos user signup --email host@example.com --role host --actor admin@example.com
    regos registration create --actor host@example.com --title "Workshop" ...
    regos registration approve --id <registration_id> --actor admin@example.com
    regos submission submit --registration <registration_id> --data '{"f1": "Rahul"}'
    regos stats
"""

import json
from collections.abc import Iterator
from contextlib import contextmanager
from pathlib import Path
from typing import Any, Optional

import typer
from typing_extensions import Annotated

from regos.access.users import normalize_email
from regos.kernel.errors import RegosError
from regos.kernel.logging import configure_logging
from regos.kernel.platform_policy import default_db_path
from regos.platform import Regos
from regos.registration.models import Category, Registration
from regos.submission.models import Submission

# Configure logging to stderr (avoids polluting stdout for JSON output)
configure_logging(json_output=False, log_level="WARNING")

app = typer.Typer(
    name="regos",
    help="Regos - Registration lifecycle platform",
    add_completion=False,
)

# Sub-apps
user_app = typer.Typer(help="Account management commands")
category_app = typer.Typer(help="Category catalog commands")
registration_app = typer.Typer(help="Registration lifecycle commands")
submission_app = typer.Typer(help="Submission and review commands")

app.add_typer(user_app, name="user")
app.add_typer(category_app, name="category")
app.add_typer(registration_app, name="registration")
app.add_typer(submission_app, name="submission")

DbOption = Annotated[Optional[Path], typer.Option("--db", help="Database path")]
JsonOption = Annotated[bool, typer.Option("--json", help="Output as JSON")]


def get_regos(db_path: Optional[Path] = None) -> Regos:
    """Get Regos instance"""
    db = db_path or Path(default_db_path())
    if not db.exists():
        typer.echo(f"Error: Database not found: {db}", err=True)
        typer.echo(f"Run 'regos init --db {db}' to initialize", err=True)
        raise typer.Exit(1)
    return Regos(db)


@contextmanager
def reported_errors() -> Iterator[None]:
    """Turn domain errors into a one-line message and exit code 1"""
    try:
        yield
    except RegosError as e:
        typer.echo(f"Error: {e}", err=True)
        raise typer.Exit(1)


def echo_json(payload: Any) -> None:
    typer.echo(json.dumps(payload, indent=2, default=str))


def echo_registration(registration: Registration) -> None:
    typer.echo(f"  Title: {registration.title}")
    typer.echo(f"  Status: {registration.status.value}")
    typer.echo(f"  Category: {registration.category or '-'}")
    typer.echo(f"  Ends: {registration.end_date.isoformat()}")
    typer.echo(f"  Submissions: {registration.submission_count}")


def echo_submission(submission: Submission) -> None:
    typer.echo(f"  Registration: {submission.registration_id}")
    typer.echo(f"  Status: {submission.status.value}")
    typer.echo(f"  Submitted: {submission.submitted_at.isoformat()}")
    if submission.notes:
        typer.echo(f"  Notes: {submission.notes}")


# Initialization and statistics


@app.command()
def init(
    db: Annotated[
        Optional[Path],
        typer.Option(help="Database path"),
    ] = None,
    admin: Annotated[
        Optional[str],
        typer.Option("--admin", help="Email of the first admin account"),
    ] = None,
) -> None:
    """Initialize a new Regos database, optionally with its first admin"""
    db = db or Path(default_db_path())
    if db.exists():
        typer.echo(f"Error: Database already exists: {db}", err=True)
        raise typer.Exit(1)

    if admin:
        with reported_errors():
            normalize_email(admin)

    # Creating the façade creates the schema and seeds categories
    regos = Regos(db)
    try:
        with reported_errors():
            first_admin = regos.bootstrap_admin(admin) if admin else None
    finally:
        regos.close()

    typer.echo(f"✓ Initialized Regos database: {db}")
    if first_admin is not None:
        typer.echo(f"✓ Created admin: {first_admin.id} ({first_admin.email})")


@app.command()
def stats(
    json_output: JsonOption = False,
    db: DbOption = None,
) -> None:
    """Show platform totals"""
    regos = get_regos(db)
    totals = regos.stats()

    if json_output:
        echo_json(totals)
        return

    typer.echo("Regos Statistics:")
    typer.echo(f"  Users: {totals['users']}")
    typer.echo(f"  Registrations: {totals['registrations']}")
    typer.echo(f"  Submissions: {totals['submissions']}")
    typer.echo(f"  Pending approvals: {totals['pending_approvals']}")
    for status, count in totals["registrations_by_status"].items():
        typer.echo(f"    {status}: {count}")


# User commands


@user_app.command("signup")
def user_signup(
    email: Annotated[str, typer.Option("--email", help="Login email")],
    name: Annotated[Optional[str], typer.Option("--name", help="Display name")] = None,
    phone: Annotated[Optional[str], typer.Option("--phone", help="Contact number")] = None,
    role: Annotated[str, typer.Option("--role", help="Role (agent, host, admin)")] = "agent",
    actor: Annotated[
        Optional[str],
        typer.Option("--actor", help="Admin ID or email, required for non-agent roles"),
    ] = None,
    db: DbOption = None,
) -> None:
    """Create an account"""
    regos = get_regos(db)

    with reported_errors():
        user = regos.sign_up(email, name=name, phone=phone, role=role, actor_id=actor)

    typer.echo(f"✓ Created user: {user.id}")
    typer.echo(f"  Name: {user.name}")
    typer.echo(f"  Role: {user.role.value}")


@user_app.command("list")
def user_list(
    role: Annotated[Optional[str], typer.Option("--role", help="Filter by role")] = None,
    json_output: JsonOption = False,
    db: DbOption = None,
) -> None:
    """List accounts"""
    regos = get_regos(db)

    with reported_errors():
        users = regos.list_users(role)

    if json_output:
        echo_json([u.model_dump(mode="json", exclude={"phone"}) for u in users])
        return

    if not users:
        typer.echo(f"No users{f' with role {role}' if role else ''}")
        return

    typer.echo(f"Users ({len(users)}):")
    for user in users:
        typer.echo(f"  {user.id}: {user.email} [{user.role.value}]")


@user_app.command("role")
def user_role(
    user_id: Annotated[str, typer.Option("--id", help="User ID or email")],
    role: Annotated[str, typer.Option("--role", help="New role (agent, host, admin)")],
    actor: Annotated[str, typer.Option("--actor", help="Acting user ID or email")],
    db: DbOption = None,
) -> None:
    """Change a user's role"""
    regos = get_regos(db)

    with reported_errors():
        user = regos.change_role(regos.actor(user_id).id, role, actor)

    typer.echo(f"✓ {user.email} is now {user.role.value}")


@user_app.command("verify")
def user_verify(
    user_id: Annotated[str, typer.Option("--id", help="User ID or email")],
    actor: Annotated[str, typer.Option("--actor", help="Acting admin ID or email")],
    db: DbOption = None,
) -> None:
    """Mark a user as verified (admin only)"""
    regos = get_regos(db)

    with reported_errors():
        user = regos.users.mark_verified(regos.actor(user_id).id, regos.actor(actor))

    typer.echo(f"✓ Verified user: {user.email}")


# Category commands


@category_app.command("list")
def category_list(
    actor: Annotated[
        Optional[str], typer.Option("--actor", help="Viewing user ID or email")
    ] = None,
    json_output: JsonOption = False,
    db: DbOption = None,
) -> None:
    """List categories with active registration counts"""
    regos = get_regos(db)

    with reported_errors():
        categories = regos.list_categories(actor)

    if json_output:
        echo_json([c.model_dump(mode="json") for c in categories])
        return

    typer.echo(f"Categories ({len(categories)}):")
    for category in categories:
        typer.echo(f"  {category.id}: {category.name} ({category.count} active)")


@category_app.command("add")
def category_add(
    category_id: Annotated[str, typer.Option("--id", help="Category ID")],
    name: Annotated[str, typer.Option("--name", help="Display name")],
    actor: Annotated[str, typer.Option("--actor", help="Acting admin ID or email")],
    description: Annotated[str, typer.Option("--description", help="Description")] = "",
    admin_only: Annotated[
        bool, typer.Option("--admin-only", help="Reserve for admin-authored content")
    ] = False,
    db: DbOption = None,
) -> None:
    """Add a category (admin only)"""
    regos = get_regos(db)

    with reported_errors():
        category = regos.categories.add(
            regos.actor(actor),
            Category(id=category_id, name=name, description=description, admin_only=admin_only),
        )

    typer.echo(f"✓ Added category: {category.id}")


# Registration commands


@registration_app.command("create")
def registration_create(
    actor: Annotated[str, typer.Option("--actor", help="Host ID or email")],
    title: Annotated[str, typer.Option("--title", help="Registration title")],
    description: Annotated[str, typer.Option("--description", help="Description")] = "",
    category: Annotated[str, typer.Option("--category", help="Category ID")] = "",
    visibility: Annotated[
        str, typer.Option("--visibility", help="Visibility (public, private)")
    ] = "public",
    duration: Annotated[
        Optional[str], typer.Option("--duration", help="Duration (7days, 14days, ...)")
    ] = None,
    fields: Annotated[
        str, typer.Option("--fields", help="Form schema (JSON array)")
    ] = "[]",
    draft: Annotated[bool, typer.Option("--draft", help="Save as draft")] = False,
    db: DbOption = None,
) -> None:
    """Create a registration"""
    regos = get_regos(db)

    try:
        form_schema = json.loads(fields)
    except json.JSONDecodeError as e:
        typer.echo(f"Error: --fields is not valid JSON: {e}", err=True)
        raise typer.Exit(1)

    with reported_errors():
        registration = regos.create_registration(
            actor,
            {
                "title": title,
                "description": description,
                "category": category,
                "visibility": visibility,
                "duration": duration,
                "form_schema": form_schema,
                "draft": draft,
            },
        )

    typer.echo(f"✓ Created registration: {registration.id}")
    echo_registration(registration)


def _transition(operation: str, registration_id: str, actor: str, db: Optional[Path]) -> None:
    regos = get_regos(db)

    with reported_errors():
        registration = getattr(regos, operation)(registration_id, actor)

    typer.echo(f"✓ Registration {registration.id} is now {registration.status.value}")


@registration_app.command("publish")
def registration_publish(
    registration_id: Annotated[str, typer.Option("--id", help="Registration ID")],
    actor: Annotated[str, typer.Option("--actor", help="Owner or admin ID or email")],
    db: DbOption = None,
) -> None:
    """Submit a draft for publishing (DRAFT → PENDING)"""
    _transition("submit_for_publishing", registration_id, actor, db)


@registration_app.command("approve")
def registration_approve(
    registration_id: Annotated[str, typer.Option("--id", help="Registration ID")],
    actor: Annotated[str, typer.Option("--actor", help="Owner or admin ID or email")],
    db: DbOption = None,
) -> None:
    """Confirm payment and go live (PENDING → ACTIVE)"""
    _transition("approve", registration_id, actor, db)


@registration_app.command("reject")
def registration_reject(
    registration_id: Annotated[str, typer.Option("--id", help="Registration ID")],
    actor: Annotated[str, typer.Option("--actor", help="Owner or admin ID or email")],
    db: DbOption = None,
) -> None:
    """Decline payment (PENDING → REJECTED)"""
    _transition("reject", registration_id, actor, db)


@registration_app.command("pause")
def registration_pause(
    registration_id: Annotated[str, typer.Option("--id", help="Registration ID")],
    actor: Annotated[str, typer.Option("--actor", help="Owner or admin ID or email")],
    db: DbOption = None,
) -> None:
    """Stop accepting submissions (ACTIVE → PAUSED)"""
    _transition("pause", registration_id, actor, db)


@registration_app.command("resume")
def registration_resume(
    registration_id: Annotated[str, typer.Option("--id", help="Registration ID")],
    actor: Annotated[str, typer.Option("--actor", help="Owner or admin ID or email")],
    db: DbOption = None,
) -> None:
    """Accept submissions again (PAUSED → ACTIVE)"""
    _transition("resume", registration_id, actor, db)


@registration_app.command("feature")
def registration_feature(
    registration_id: Annotated[str, typer.Option("--id", help="Registration ID")],
    actor: Annotated[str, typer.Option("--actor", help="Acting admin ID or email")],
    off: Annotated[bool, typer.Option("--off", help="Remove the featured flag")] = False,
    db: DbOption = None,
) -> None:
    """Feature a registration on the home page (admin only)"""
    regos = get_regos(db)

    with reported_errors():
        registration = regos.registrations.set_featured(
            registration_id, regos.actor(actor), featured=not off
        )

    typer.echo(
        f"✓ Registration {registration.id} {'featured' if registration.featured else 'unfeatured'}"
    )


@registration_app.command("delete")
def registration_delete(
    registration_id: Annotated[str, typer.Option("--id", help="Registration ID")],
    actor: Annotated[str, typer.Option("--actor", help="Owner or admin ID or email")],
    db: DbOption = None,
) -> None:
    """Delete a registration and all of its submissions"""
    regos = get_regos(db)

    with reported_errors():
        removed = regos.delete_registration(registration_id, actor)

    typer.echo(f"✓ Deleted registration: {registration_id} ({removed} submissions removed)")


@registration_app.command("show")
def registration_show(
    registration_id: Annotated[str, typer.Option("--id", help="Registration ID")],
    json_output: JsonOption = False,
    db: DbOption = None,
) -> None:
    """Show one registration"""
    regos = get_regos(db)

    with reported_errors():
        registration = regos.registrations.get(registration_id)

    if json_output:
        echo_json(registration.model_dump(mode="json"))
        return

    typer.echo(f"Registration {registration.id}:")
    echo_registration(registration)
    typer.echo(f"  Fields: {len(registration.form_schema)}")


@registration_app.command("list")
def registration_list(
    query: Annotated[Optional[str], typer.Option("--query", help="Search terms")] = None,
    category: Annotated[Optional[str], typer.Option("--category", help="Category ID")] = None,
    status: Annotated[
        Optional[str], typer.Option("--status", help="Status (default active)")
    ] = None,
    sort: Annotated[
        str,
        typer.Option("--sort", help="Order (newest, most_viewed, most_submissions, ending_soon)"),
    ] = "newest",
    json_output: JsonOption = False,
    db: DbOption = None,
) -> None:
    """Browse registrations"""
    regos = get_regos(db)

    with reported_errors():
        registrations = regos.browse(
            query, {"category": category, "status": status, "sort": sort}
        )

    if json_output:
        echo_json([r.model_dump(mode="json") for r in registrations])
        return

    if not registrations:
        typer.echo("No registrations found")
        return

    typer.echo(f"Registrations ({len(registrations)}):")
    for registration in registrations:
        typer.echo(
            f"  {registration.id}: {registration.title} [{registration.status.value}]"
        )


@registration_app.command("pending")
def registration_pending(
    json_output: JsonOption = False,
    db: DbOption = None,
) -> None:
    """List registrations awaiting payment confirmation"""
    regos = get_regos(db)
    pending = regos.registrations.list_pending()

    if json_output:
        echo_json([r.model_dump(mode="json") for r in pending])
        return

    typer.echo(f"Pending approvals: {len(pending)}")
    for registration in pending:
        typer.echo(f"  {registration.id}: {registration.title} (host {registration.host_id})")


# Submission commands


@submission_app.command("submit")
def submission_submit(
    registration_id: Annotated[
        str, typer.Option("--registration", help="Registration ID")
    ],
    data: Annotated[str, typer.Option("--data", help="Answers (JSON object)")],
    files: Annotated[
        Optional[str], typer.Option("--files", help="File references (comma-separated)")
    ] = None,
    user: Annotated[
        Optional[str], typer.Option("--user", help="Respondent ID or email")
    ] = None,
    db: DbOption = None,
) -> None:
    """Submit answers to a registration"""
    regos = get_regos(db)

    try:
        form_data = json.loads(data)
    except json.JSONDecodeError as e:
        typer.echo(f"Error: --data is not valid JSON: {e}", err=True)
        raise typer.Exit(1)

    file_list = [f.strip() for f in files.split(",") if f.strip()] if files else []

    with reported_errors():
        user_id = regos.actor(user).id if user else None
        submission = regos.submit(registration_id, form_data, file_list, user_id)

    typer.echo(f"✓ Submitted: {submission.id}")
    echo_submission(submission)


@submission_app.command("status")
def submission_status(
    submission_id: Annotated[str, typer.Option("--id", help="Submission ID")],
    status: Annotated[
        str, typer.Option("--status", help="New status (approved, rejected, scheduled)")
    ],
    actor: Annotated[str, typer.Option("--actor", help="Owner or admin ID or email")],
    notes: Annotated[Optional[str], typer.Option("--notes", help="Review notes")] = None,
    db: DbOption = None,
) -> None:
    """Review a submission"""
    regos = get_regos(db)

    with reported_errors():
        submission = regos.set_submission_status(submission_id, status, actor, notes)

    typer.echo(f"✓ Submission {submission.id} is now {submission.status.value}")


@submission_app.command("list")
def submission_list(
    registration_id: Annotated[
        str, typer.Option("--registration", help="Registration ID")
    ],
    status: Annotated[Optional[str], typer.Option("--status", help="Filter by status")] = None,
    json_output: JsonOption = False,
    db: DbOption = None,
) -> None:
    """List submissions for a registration"""
    regos = get_regos(db)

    with reported_errors():
        submissions = regos.submissions.list_by_registration(registration_id, status)

    if json_output:
        echo_json([s.model_dump(mode="json", exclude={"form_data", "files"}) for s in submissions])
        return

    typer.echo(f"Submissions ({len(submissions)}):")
    for submission in submissions:
        typer.echo(
            f"  {submission.id}: {submission.status.value} "
            f"({submission.submitted_at.isoformat()})"
        )


@submission_app.command("delete")
def submission_delete(
    submission_id: Annotated[str, typer.Option("--id", help="Submission ID")],
    actor: Annotated[str, typer.Option("--actor", help="Owner or admin ID or email")],
    db: DbOption = None,
) -> None:
    """Delete a submission"""
    regos = get_regos(db)

    with reported_errors():
        regos.delete_submission(submission_id, actor)

    typer.echo(f"✓ Deleted submission: {submission_id}")


def main() -> None:
    """Main entry point"""
    app()


if __name__ == "__main__":
    main()
