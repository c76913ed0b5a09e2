# Overview: Flask CLI command groups for bootstrap, inspection, and maintenance.

# backend/invoicehub/cli.py
# Commands Legend (run from the backend directory):
# Prereqs:
# - Activate your virtualenv.
# - Set FLASK_APP to wsgi.py (PowerShell: $env:FLASK_APP="wsgi.py").
# - Use: python -m flask <group> <command> [options]
#
# System bootstrap/repair:
# - python -m flask system init [--username platform --password "Password123!"]
#   Create tables (if missing) and the first platform account.
# - python -m flask system reset-db --yes
#   DEV/TEST only: drop and recreate all tables (deletes all data).
#
# Business management:
# - python -m flask businesses list
# - python -m flask businesses create --name "Corner Store" --type store
#
# User inspection/bootstrap:
# - python -m flask users list [--business-id 1]
# - python -m flask users create --username alice --password "Password123!" --role admin --business-id 1
#
# Maintenance:
# - python -m flask maintenance cleanup-sessions --older-than-days 30
#   Delete expired/revoked sessions older than the retention window.

import click
from flask.cli import with_appcontext

from .errors import InvoiceHubError, PasswordValidationError
from .extensions import db
from .models import Business, User
from .services.authorization import Actor
from .services.auth_service import create_user
from .services.business_service import create_business
from .services.concurrency import run_in_transaction
from .services import session_service


def _platform_actor() -> Actor | None:
    """CLI mutations are attributed to the first active platform account."""
    user = (
        db.session.query(User)
        .filter(User.role == "platform", User.is_active.is_(True))
        .order_by(User.id.asc())
        .first()
    )
    if not user:
        return None
    return Actor(user_id=user.id, username=user.username, role=user.role, business_id=None)


@click.group('system')
def system_group():
    """System bootstrap and repair commands."""


@system_group.command('init')
@click.option('--username', default='platform', show_default=True, help='Platform account username')
@click.option('--password', default='Password123!', show_default=True, help='Platform account password')
@with_appcontext
def init_system(username, password):
    """
    Initialize InvoiceHub: create tables and the first platform account.

    Idempotent: an existing platform account is left untouched.

    SECURITY: Change the default password immediately in production!
    """
    click.echo("START Initializing InvoiceHub...")
    db.create_all()
    click.echo("PASS Tables created")

    existing = db.session.query(User).filter_by(role="platform").first()
    if existing:
        click.echo(f"PASS Using existing platform account: {existing.username} (ID: {existing.id})")
        return

    try:
        user = run_in_transaction(lambda: create_user(username=username, password=password, role="platform"))
    except PasswordValidationError as e:
        click.echo(f"FAIL Password validation failed: {e.message}")
        click.echo("Requirements: 8+ chars, uppercase, lowercase, digit, special char")
        return

    click.echo(f"PASS Created platform account: {user.username} (ID: {user.id})")


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


@click.group('businesses')
def businesses_group():
    """Business (tenant) management."""


@businesses_group.command('list')
@with_appcontext
def list_businesses_cli():
    businesses = db.session.query(Business).order_by(Business.bid.asc()).all()
    if not businesses:
        click.echo("No businesses found.")
        return

    click.echo("\n" + "=" * 80)
    click.echo(f"{'ID':<5} {'BID':<6} {'Name':<30} {'Type':<10} {'Phone'}")
    click.echo("=" * 80)
    for b in businesses:
        click.echo(f"{b.id:<5} {b.bid:<6} {b.name:<30} {b.type:<10} {b.phone or ''}")
    click.echo("=" * 80 + "\n")


@businesses_group.command('create')
@click.option('--name', prompt=True, help='Business name')
@click.option('--type', 'business_type', type=click.Choice(['store', 'franchise', 'platform']), default='store', show_default=True)
@click.option('--address', default=None)
@click.option('--phone', default=None)
@with_appcontext
def create_business_cli(name, business_type, address, phone):
    actor = _platform_actor()
    if actor is None:
        click.echo("FAIL No platform account found. Run 'python -m flask system init' first.")
        return

    try:
        business = create_business(actor, {"name": name, "type": business_type, "address": address, "phone": phone})
    except InvoiceHubError as e:
        click.echo(f"FAIL Failed to create business: {e.message}")
        return
    click.echo(f"PASS Created business: {business.name} (ID: {business.id}, BID: {business.bid})")


@click.group('users')
def users_group():
    """User inspection and bootstrap commands."""


@users_group.command('create')
@click.option('--username', prompt=True, help='Username')
@click.option('--password', prompt=True, hide_input=True, confirmation_prompt=True, help='Password')
@click.option('--role', type=click.Choice(['platform', 'admin', 'user']), prompt=True, help='Role')
@click.option('--business-id', type=int, default=None, help='Business ID (admin/user accounts)')
@with_appcontext
def create_user_cli(username, password, role, business_id):
    """
    Create a new user.

    Password must meet strength requirements:
    - Minimum 8 characters
    - At least one uppercase letter
    - At least one lowercase letter
    - At least one digit
    - At least one special character
    """
    try:
        user = run_in_transaction(
            lambda: create_user(username=username, password=password, role=role, business_id=business_id)
        )
    except PasswordValidationError as e:
        click.echo(f"FAIL Password validation failed: {e.message}")
        click.echo("Requirements: 8+ chars, uppercase, lowercase, digit, special char")
        return
    except InvoiceHubError as e:
        click.echo(f"FAIL Failed to create user: {e.message}")
        return

    click.echo(f"PASS Created user: {user.username} with role '{user.role}'")
    if user.business_id:
        click.echo(f"     Business ID: {user.business_id}")
    click.echo("SECURITY Password securely hashed with bcrypt")


@users_group.command('list')
@click.option('--business-id', type=int, help='Filter by business ID')
@with_appcontext
def list_users_cli(business_id):
    """List all users with their roles."""
    query = db.session.query(User)
    if business_id:
        query = query.filter_by(business_id=business_id)

    users = query.order_by(User.id.asc()).all()
    if not users:
        click.echo("No users found.")
        return

    click.echo("\n" + "=" * 70)
    click.echo(f"{'ID':<5} {'Business':<10} {'Username':<25} {'Role':<10} {'Active'}")
    click.echo("=" * 70)
    for user in users:
        active_str = "Yes" if user.is_active else "No"
        click.echo(f"{user.id:<5} {str(user.business_id or '-'):<10} {user.username:<25} {user.role:<10} {active_str}")
    click.echo("=" * 70 + "\n")


@click.group('maintenance')
def maintenance_group():
    """Maintenance commands."""


@maintenance_group.command('cleanup-sessions')
@click.option('--older-than-days', type=int, default=30, show_default=True)
@with_appcontext
def cleanup_sessions_cli(older_than_days):
    """Delete expired or revoked sessions created more than N days ago."""
    deleted = session_service.cleanup_expired_sessions(older_than_days=older_than_days)
    click.echo(f"Deleted {deleted} sessions older than {older_than_days} days.")


def register_commands(app):
    """Register all CLI commands with Flask app."""
    app.cli.add_command(system_group)
    app.cli.add_command(businesses_group)
    app.cli.add_command(users_group)
    app.cli.add_command(maintenance_group)
