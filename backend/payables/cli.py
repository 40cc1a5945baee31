# Overview: Flask CLI command groups for bootstrap, inspection, and maintenance.

# backend/payables/cli.py
# Commands Legend (run from the backend directory):
# Prereqs:
# - Activate your virtualenv.
# - Set FLASK_APP to wsgi.py (PowerShell: $env:FLASK_APP="wsgi.py").
# - Use: python -m flask <group> <command> [options]
#
# System bootstrap/repair:
# - python -m flask system init
#   Create tables (if missing) and a first administrator.
# - python -m flask system reset-db --yes
#   DEV/TEST only: drop and recreate all tables (deletes all data).
#
# Users:
# - python -m flask users list
# - python -m flask users create --username sara --email sara@example.com --full-name "Sara" --role user
#
# Custody:
# - python -m flask custody credit sara 500.00 --reason "Weekly float" [--by admin]
#   Advance custody. To recover custody pass a negative amount after "--":
#   python -m flask custody credit sara -- -120.00
# - python -m flask custody balance sara
#
# Maintenance:
# - python -m flask maintenance cleanup-sessions
#   Delete expired/revoked sessions older than 30 days.

import click
from flask.cli import with_appcontext

from .extensions import db
from .models import User
from .engine.errors import LedgerError
from .engine.reports import cents_to_amount
from .engine.snapshots import ROLE_ADMIN, VALID_ROLES
from .services.auth_service import create_user, PasswordValidationError
from .services import custody_service
from .services import session_service
from .validation import parse_amount_cents
from .time_utils import format_date, today


def _find_user(identifier: str) -> User | None:
    return db.session.query(User).filter(
        db.or_(User.username == identifier, User.email == identifier.lower())
    ).first()


@click.group('system')
def system_group():
    """System bootstrap and repair commands."""


@system_group.command('init')
@click.option('--username', default='admin', help='Administrator username')
@click.option('--email', default='admin@payables.local', help='Administrator email')
@click.option('--password', default='Password123!', help='Administrator password')
@with_appcontext
def init_system(username, email, password):
    """
    Create missing tables and the first administrator.

    Idempotent: an existing administrator is left untouched.

    SECURITY: Change the default password immediately in production!
    """
    click.echo("START Initializing payables database...")
    db.create_all()

    admin = db.session.query(User).filter_by(role=ROLE_ADMIN).first()
    if admin:
        click.echo(f"PASS Using existing administrator: {admin.username} (ID: {admin.id})")
        return

    try:
        admin = create_user(
            username=username,
            email=email,
            password=password,
            full_name="Administrator",
            role=ROLE_ADMIN,
        )
    except (ValueError, PasswordValidationError) as e:
        raise click.ClickException(f"Failed to create administrator: {e}")

    click.echo(f"PASS Created administrator: {admin.username} ({admin.email})")


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


@click.group('users')
def users_group():
    """User inspection and bootstrap commands."""


@users_group.command('create')
@click.option('--username', prompt=True, help='Username')
@click.option('--email', prompt=True, help='Email address')
@click.option('--full-name', default='', help='Display name used on receipts and reports')
@click.option('--password', prompt=True, hide_input=True, confirmation_prompt=True, help='Password')
@click.option('--role', type=click.Choice(list(VALID_ROLES)), prompt=True, help='Role')
@with_appcontext
def create_user_cli(username, email, full_name, password, role):
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
        user = create_user(
            username=username,
            email=email,
            password=password,
            full_name=full_name,
            role=role,
        )
    except PasswordValidationError as e:
        click.echo(f"FAIL Password validation failed: {str(e)}")
        click.echo("Requirements: 8+ chars, uppercase, lowercase, digit, special char")
        raise SystemExit(1)
    except ValueError as e:
        click.echo(f"FAIL Failed to create user: {str(e)}")
        raise SystemExit(1)

    click.echo(f"PASS Created user: {user.username} ({user.email}) with role '{user.role}'")
    click.echo("SECURITY Password securely hashed with bcrypt")


@users_group.command('list')
@with_appcontext
def list_users():
    """List all users with their roles and custody balance."""
    users = db.session.query(User).order_by(User.id).all()

    if not users:
        click.echo("No users found.")
        return

    click.echo("\n" + "="*100)
    click.echo(f"{'ID':<5} {'Username':<20} {'Email':<30} {'Role':<8} {'Active':<8} {'Custody'}")
    click.echo("="*100)

    for user in users:
        active_str = "Yes" if user.is_active else "No"
        balance = cents_to_amount(custody_service.get_balance(user.id))
        click.echo(f"{user.id:<5} {user.username:<20} {user.email:<30} {user.role:<8} {active_str:<8} {balance}")

    click.echo("="*100 + "\n")


@click.group('custody')
def custody_group():
    """Employee custody commands."""


@custody_group.command('credit')
@click.argument('username')
@click.argument('amount')
@click.option('--reason', default='Custody advance', help='Reason shown in the custody history')
@click.option('--by', 'admin_username', default=None, help='Administrator recording it (default: first admin)')
@with_appcontext
def credit_custody_cli(username, amount, reason, admin_username):
    """Advance custody to USERNAME (a negative AMOUNT recovers it)."""
    user = _find_user(username)
    if not user:
        raise click.ClickException(f"User '{username}' not found")

    if admin_username:
        admin = _find_user(admin_username)
    else:
        admin = db.session.query(User).filter_by(role=ROLE_ADMIN).order_by(User.id).first()
    if not admin or not admin.is_admin:
        raise click.ClickException("An administrator is required to record custody")

    try:
        amount_cents = parse_amount_cents(amount, allow_negative=True)
        tx = custody_service.record_transaction(
            actor=admin.to_actor(),
            user_id=user.id,
            amount_cents=amount_cents,
            reason=reason,
        )
    except LedgerError as e:
        raise click.ClickException(str(e))

    balance = cents_to_amount(custody_service.get_balance(user.id))
    click.echo(f"PASS Recorded {tx.type} of {cents_to_amount(abs(amount_cents))} for {user.username}")
    click.echo(f"     Balance: {balance}")


@custody_group.command('balance')
@click.argument('username')
@with_appcontext
def custody_balance_cli(username):
    """Show the custody balance of USERNAME."""
    user = _find_user(username)
    if not user:
        raise click.ClickException(f"User '{username}' not found")
    balance = cents_to_amount(custody_service.get_balance(user.id))
    click.echo(f"{user.username}: {balance} (as of {format_date(today())})")


@click.group('maintenance')
def maintenance_group():
    """Maintenance commands."""


@maintenance_group.command('cleanup-sessions')
@with_appcontext
def cleanup_sessions_cli():
    """Delete expired and revoked sessions older than 30 days."""
    deleted = session_service.cleanup_expired_sessions()
    click.echo(f"PASS Deleted {deleted} session(s)")


def register_commands(app):
    """Register all CLI commands with Flask app."""
    app.cli.add_command(system_group)
    app.cli.add_command(users_group)
    app.cli.add_command(custody_group)
    app.cli.add_command(maintenance_group)
