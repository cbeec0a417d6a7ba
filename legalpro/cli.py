"""CLI tools for LegalPro administration."""

from uuid import UUID

import click

from legalpro.db.enums import ADVOCATE_ROLES, Role
from legalpro.db.models import User
from legalpro.db.session import SessionLocal


@click.group()
def cli():
    """LegalPro CLI tools."""
    pass


@cli.command()
@click.option("--email", required=True, help="Advocate email address")
@click.option("--first-name", required=True, help="First name")
@click.option("--last-name", required=True, help="Last name")
@click.option("--specialization", "specializations", multiple=True, help="Practice area (repeatable)")
@click.option("--experience", default=0, help="Years of experience (default: 0)")
@click.option(
    "--role",
    default=Role.ADVOCATE.value,
    type=click.Choice([r.value for r in ADVOCATE_ROLES]),
    help="Role (default: advocate)",
)
def create_advocate(
    email: str,
    first_name: str,
    last_name: str,
    specializations: tuple[str, ...],
    experience: int,
    role: str,
):
    """
    Create a verified advocate account.

    Example:
        legalpro create-advocate --email "a.mensah@firm.com" --first-name Ama \\
            --last-name Mensah --specialization criminal --specialization family
    """
    db = SessionLocal()
    try:
        existing = db.query(User).filter(User.email == email.lower()).first()
        if existing:
            click.echo(f"❌ User already exists: {email}")
            return

        user = User(
            email=email.lower(),
            first_name=first_name,
            last_name=last_name,
            role=role,
            specialization=list(specializations),
            experience_years=experience,
            is_verified=True,
        )
        db.add(user)
        db.commit()

        click.echo(f"✓ Created {role}: {user.full_name}")
        click.echo(f"  ID: {user.id}")

    except Exception as e:
        db.rollback()
        click.echo(f"❌ Error: {e}")
    finally:
        db.close()


@cli.command()
@click.argument("advocate_id")
def workload(advocate_id: str):
    """
    Show an advocate's current workload.

    Example:
        legalpro workload 3f2c...
    """
    from legalpro.services import assignment_service

    db = SessionLocal()
    try:
        summary = assignment_service.get_advocate_workload(db, UUID(advocate_id))
        click.echo(f"Active cases: {summary['active_cases']}")
        click.echo(f"Total cases:  {summary['total_cases']}")
        click.echo(f"Urgent cases: {summary['urgent_cases']}")
        click.echo(f"Level:        {summary['workload_level'].value}")
        for status, count in sorted(summary["status_distribution"].items()):
            click.echo(f"  {status}: {count}")
    except Exception as e:
        click.echo(f"❌ Error: {e}")
    finally:
        db.close()


@cli.command()
@click.option("--days", default=None, type=int, help="Days to keep (default: ACTIVITY_RETENTION_DAYS)")
def cleanup_activities(days: int | None):
    """
    Hide activities older than the retention window.

    Important and critical entries are never hidden.
    """
    from legalpro.services import activity_service

    db = SessionLocal()
    try:
        result = activity_service.cleanup_old_activities(db, days)
        click.echo(
            f"✓ Hid {result['hidden_activities']} activities older than "
            f"{result['cutoff_date'].isoformat()} ({result['days_to_keep']} days kept)"
        )
    except Exception as e:
        db.rollback()
        click.echo(f"❌ Error: {e}")
    finally:
        db.close()


if __name__ == "__main__":
    cli()
