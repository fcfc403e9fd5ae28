# Overview: Flask CLI command groups for bootstrap, inspection, and maintenance.

# backend/tarpprint/cli.py
# Commands Legend (run from the backend directory):
# Prereqs:
# - Activate your virtualenv.
# - Set FLASK_APP to wsgi.py (PowerShell: $env:FLASK_APP="wsgi.py").
# - Use: python -m flask <group> <command> [options]
#
# System bootstrap/repair:
# - python -m flask system init
#   Idempotent bootstrap: creates tables, seeds the catalog, creates default admin and staff users.
# - python -m flask system reset-db --yes
#   DEV/TEST only: drop and recreate all tables (deletes all data).
#
# Users (staff and admin accounts exist only through here):
# - python -m flask users list [--role staff]
# - python -m flask users create --email staff@tarpprint.local --name "Front Desk" --password "Password123" --role staff
#
# Catalog:
# - python -m flask catalog seed
#   Insert the default materials and templates that are missing.
#
# Reports:
# - python -m flask reports generate --type monthly --start 2024-05-01 --end 2024-05-31
#
# Maintenance:
# - python -m flask maintenance cleanup-sessions --older-than-days 30
# - python -m flask maintenance cleanup-audit --retention-days 365

import click
from flask.cli import with_appcontext

from .extensions import db
from .models import User
from .models.auth import USER_ROLES
from .services.auth_service import create_user, AuthError, PasswordValidationError
from .services import catalog_service
from .services import maintenance_service
from .services import reporting_service
from .services.reporting_service import ReportError


@click.group('system')
def system_group():
    """System bootstrap and repair commands."""


@system_group.command('init')
@click.option('--password', default='Password123', show_default=True, help='Password for the default accounts')
@with_appcontext
def init_system(password):
    """
    Initialize the storefront: schema, catalog seed data and default accounts.

    Creates:
    - All tables (if missing)
    - Default materials and templates
    - Users: admin@tarpprint.local (admin), staff@tarpprint.local (staff)

    SECURITY: Change passwords immediately in production!
    """
    click.echo("START Initializing TarpPrint...")

    db.create_all()
    click.echo("PASS Tables ready")

    seeded = catalog_service.seed_catalog()
    click.echo(f"PASS Catalog seeded: {seeded['materials']} materials, {seeded['templates']} templates added")

    default_users = [
        ("admin@tarpprint.local", "Administrator", "admin"),
        ("staff@tarpprint.local", "Print Staff", "staff"),
    ]
    for email, name, role in default_users:
        if db.session.query(User).filter_by(email=email).first():
            click.echo(f"WARN  User '{email}' already exists, skipping...")
            continue
        try:
            create_user(email=email, password=password, name=name, role=role)
        except (AuthError, PasswordValidationError) as e:
            click.echo(f"FAIL Could not create '{email}': {e}")
            continue
        click.echo(f"PASS Created user: {email} with role '{role}'")

    click.echo("\nDONE TarpPrint initialized. Change default passwords in production!")


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


# =============================================================================
# USER MANAGEMENT COMMANDS
# =============================================================================

@click.group('users')
def users_group():
    """User inspection and bootstrap commands."""


@users_group.command('list')
@click.option('--role', type=click.Choice(USER_ROLES), help='Only users with this role')
@with_appcontext
def list_users(role):
    """List users with role and active status."""
    query = db.session.query(User)
    if role:
        query = query.filter_by(role=role)
    users = query.order_by(User.id.asc()).all()

    if not users:
        click.echo("No users found.")
        return

    click.echo("\n" + "="*80)
    click.echo(f"{'ID':<5} {'Email':<32} {'Name':<22} {'Role':<10} {'Active'}")
    click.echo("="*80)
    for user in users:
        active_str = "Yes" if user.is_active else "No"
        click.echo(f"{user.id:<5} {user.email:<32} {user.name[:22]:<22} {user.role:<10} {active_str}")
    click.echo("="*80 + "\n")


@users_group.command('create')
@click.option('--email', prompt=True, help='Email address')
@click.option('--name', prompt=True, help='Display name')
@click.option('--password', prompt=True, hide_input=True, confirmation_prompt=True, help='Password')
@click.option('--role', type=click.Choice(USER_ROLES), prompt=True, help='Role')
@click.option('--phone', default=None, help='Phone number')
@with_appcontext
def create_user_cli(email, name, password, role, phone):
    """
    Create a user with any role.

    Password must be 8+ characters with at least one letter and one digit.
    """
    try:
        user = create_user(email=email, password=password, name=name, role=role, phone=phone)
    except PasswordValidationError as e:
        click.echo(f"FAIL Password validation failed: {e}")
        click.echo("Requirements: 8+ chars, at least one letter and one digit")
        raise SystemExit(1)
    except AuthError as e:
        click.echo(f"FAIL Failed to create user: {e}")
        raise SystemExit(1)

    click.echo(f"PASS Created user: {user.email} (ID: {user.id}) with role '{user.role}'")
    click.echo("SECURITY Password securely hashed with bcrypt")


# =============================================================================
# CATALOG
# =============================================================================

@click.group('catalog')
def catalog_group():
    """Catalog reference data commands."""


@catalog_group.command('seed')
@with_appcontext
def seed_catalog_cli():
    """Insert the default materials and templates that are missing."""
    seeded = catalog_service.seed_catalog()
    click.echo(f"PASS Added {seeded['materials']} materials and {seeded['templates']} templates")


# =============================================================================
# REPORTS
# =============================================================================

@click.group('reports')
def reports_group():
    """Sales report commands."""


@reports_group.command('generate')
@click.option('--type', 'report_type', type=click.Choice(reporting_service.REPORT_TYPES), default='daily', show_default=True)
@click.option('--start', 'start_date', required=True, help='YYYY-MM-DD')
@click.option('--end', 'end_date', required=True, help='YYYY-MM-DD (inclusive)')
@with_appcontext
def generate_report_cli(report_type, start_date, end_date):
    """Generate and persist a sales report (no acting user)."""
    try:
        report = reporting_service.generate_sales_report(
            report_type=report_type,
            start_date=start_date,
            end_date=end_date,
        )
    except ReportError as e:
        click.echo(f"FAIL {e}")
        raise SystemExit(1)

    click.echo(f"PASS Report {report.id}: {report.total_orders} orders, "
               f"revenue {report.total_revenue}, {report.total_customers} customers")


# =============================================================================
# MAINTENANCE
# =============================================================================

@click.group('maintenance')
def maintenance_group():
    """Maintenance commands."""


@maintenance_group.command('cleanup-sessions')
@click.option('--older-than-days', type=int, default=30, show_default=True)
@with_appcontext
def cleanup_sessions_cli(older_than_days):
    """Delete expired and revoked sessions older than the cutoff."""
    deleted = maintenance_service.cleanup_sessions(older_than_days=older_than_days)
    click.echo(f"Deleted {deleted} sessions older than {older_than_days} days.")


@maintenance_group.command('cleanup-audit')
@click.option('--retention-days', type=int, default=365, show_default=True)
@with_appcontext
def cleanup_audit_cli(retention_days):
    """
    Cleanup old audit log entries.

    Default retention: 365 days.
    """
    deleted = maintenance_service.cleanup_audit_logs(retention_days=retention_days)
    click.echo(f"Deleted {deleted} audit entries older than {retention_days} days.")


def register_commands(app):
    """Register all CLI commands with Flask app."""
    app.cli.add_command(system_group)
    app.cli.add_command(users_group)
    app.cli.add_command(catalog_group)
    app.cli.add_command(reports_group)
    app.cli.add_command(maintenance_group)
