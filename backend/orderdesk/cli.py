# Overview: Flask CLI command groups for bootstrap, inspection, and maintenance.

# backend/orderdesk/cli.py
# Commands Legend (run from the backend directory):
# Prereqs:
# - Activate your virtualenv.
# - Set FLASK_APP to wsgi.py (PowerShell: $env:FLASK_APP="wsgi.py").
# - Use: python -m flask <group> <command> [options]
#
# System bootstrap/repair:
# - python -m flask system init [--org "Demo Organization"] [--slug demo]
#   Idempotent bootstrap: creates tables, an owner user and a first organization.
# - python -m flask system reset-db --yes
#   DEV/TEST only: drop and recreate all tables (deletes all data).
#
# Organizations:
# - python -m flask orgs list
#   List organizations with invite codes and member counts.
# - python -m flask orgs create --name "Acme" --slug acme --owner admin
#   Create an organization owned by an existing user.
#
# Users:
# - python -m flask users list
# - python -m flask users create --username admin --email admin@orderdesk.local --password "Password123!"
#
# Maintenance:
# - python -m flask maintenance cleanup-sessions
#   Delete expired/revoked sessions older than 30 days.

import click
from flask.cli import with_appcontext

from .errors import AppError
from .extensions import db
from .models import Membership, Organization, User
from .services import membership_service, session_service
from .services.auth_service import create_user


DEFAULT_USERNAME = "admin"
DEFAULT_EMAIL = "admin@orderdesk.local"
DEFAULT_PASSWORD = "Password123!"


@click.group('system')
def system_group():
    """System bootstrap and repair commands."""


@system_group.command('init')
@click.option('--org', 'org_name', default='Demo Organization', help='Organization name')
@click.option('--slug', default='demo', help='Organization slug (unique)')
@with_appcontext
def init_system(org_name, slug):
    """
    Create tables, a default owner account and a first organization.

    Default login: admin / Password123!  Change it immediately outside dev.
    """
    click.echo("START Initializing orderdesk...")
    db.create_all()

    user = db.session.query(User).filter_by(username=DEFAULT_USERNAME).first()
    if user is None:
        user = create_user(
            username=DEFAULT_USERNAME,
            email=DEFAULT_EMAIL,
            password=DEFAULT_PASSWORD,
            full_name="Administrator",
        )
        click.echo(f"PASS Created user: {user.username} (ID: {user.id})")
    else:
        click.echo(f"PASS Using existing user: {user.username} (ID: {user.id})")

    org = db.session.query(Organization).filter_by(slug=slug.strip().lower()).first()
    if org is None:
        org = membership_service.create_organization(user_id=user.id, name=org_name, slug=slug)
        click.echo(f"PASS Created organization: {org.name} (ID: {org.id}, invite code: {org.invite_code})")
    else:
        click.echo(f"PASS Using existing organization: {org.name} (ID: {org.id})")

    click.echo("DONE")


@system_group.command('reset-db')
@click.option('--yes', is_flag=True, help='Skip confirmation')
@with_appcontext
def reset_db(yes):
    """
    DANGER: Drop all tables and recreate schema.

    This will DELETE ALL DATA!
    """
    if not yes:
        click.confirm("WARN This will DELETE ALL DATA. Are you sure?", abort=True)

    click.echo("DELETE  Dropping all tables...")
    db.drop_all()

    click.echo("BUILD  Creating all tables...")
    db.create_all()

    click.echo("PASS Database reset complete. Run 'python -m flask system init' to initialize.")


@click.group('orgs')
def orgs_group():
    """Organization (tenant) management commands."""


@orgs_group.command('list')
@with_appcontext
def list_orgs():
    """List all organizations."""
    orgs = db.session.query(Organization).order_by(Organization.id.asc()).all()

    if not orgs:
        click.echo("No organizations found.")
        return

    click.echo("\n" + "=" * 80)
    click.echo(f"{'ID':<5} {'Name':<30} {'Slug':<20} {'Invite':<8} {'Members'}")
    click.echo("=" * 80)

    for org in orgs:
        member_count = db.session.query(Membership).filter_by(organization_id=org.id).count()
        click.echo(f"{org.id:<5} {org.name:<30} {org.slug:<20} {org.invite_code:<8} {member_count}")

    click.echo("=" * 80 + "\n")


@orgs_group.command('create')
@click.option('--name', required=True, help='Organization name')
@click.option('--slug', required=True, help='Slug (unique)')
@click.option('--owner', 'owner_username', required=True, help='Username of the owner')
@with_appcontext
def create_org_cli(name, slug, owner_username):
    """Create a new organization owned by an existing user."""
    owner = db.session.query(User).filter_by(username=owner_username.strip().lower()).first()
    if owner is None:
        click.echo(f"FAIL User '{owner_username}' not found")
        return

    try:
        org = membership_service.create_organization(user_id=owner.id, name=name, slug=slug)
    except AppError as e:
        click.echo(f"FAIL {e.message}")
        return

    click.echo(f"PASS Created organization: {org.name} (ID: {org.id}, invite code: {org.invite_code})")


@click.group('users')
def users_group():
    """User inspection and bootstrap commands."""


@users_group.command('create')
@click.option('--username', prompt=True)
@click.option('--email', prompt=True)
@click.option('--full-name', default='', help='Display name')
@click.option('--password', prompt=True, hide_input=True, confirmation_prompt=True)
@with_appcontext
def create_user_cli(username, email, full_name, password):
    """Create a user account."""
    try:
        user = create_user(username=username, email=email, password=password, full_name=full_name)
    except AppError as e:
        click.echo(f"FAIL {e.message}")
        return

    click.echo(f"PASS Created user: {user.username} (ID: {user.id})")


@users_group.command('list')
@with_appcontext
def list_users():
    """List all users with their organization memberships."""
    users = db.session.query(User).order_by(User.id.asc()).all()

    if not users:
        click.echo("No users found.")
        return

    click.echo("\n" + "=" * 80)
    click.echo(f"{'ID':<5} {'Username':<20} {'Email':<30} {'Active':<8} {'Memberships'}")
    click.echo("=" * 80)

    for user in users:
        memberships = db.session.query(Membership).filter_by(user_id=user.id).all()
        summary = ", ".join(f"{m.organization_id}:{m.role}" for m in memberships) or "-"
        active_str = "Yes" if user.is_active else "No"
        click.echo(f"{user.id:<5} {user.username:<20} {user.email:<30} {active_str:<8} {summary}")

    click.echo("=" * 80 + "\n")


@click.group('maintenance')
def maintenance_group():
    """Maintenance commands."""


@maintenance_group.command('cleanup-sessions')
@with_appcontext
def cleanup_sessions_cli():
    """Delete expired or revoked sessions past the retention window."""
    deleted = session_service.cleanup_expired_sessions()
    click.echo(f"Deleted {deleted} expired/revoked sessions.")


def register_commands(app):
    """Register all CLI commands with Flask app."""
    app.cli.add_command(system_group)
    app.cli.add_command(orgs_group)
    app.cli.add_command(users_group)
    app.cli.add_command(maintenance_group)
