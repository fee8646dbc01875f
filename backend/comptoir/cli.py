# Overview: Flask CLI command groups for bootstrap, staff and week maintenance.

# backend/comptoir/cli.py
# Commands Legend (run from the backend directory):
# Prereqs:
# - Activate your virtualenv.
# - Set FLASK_APP to wsgi.py (PowerShell: $env:FLASK_APP="wsgi.py").
# - Use: python -m flask <group> <command> [options]
#
# System bootstrap/repair:
# - python -m flask system init
#   Idempotent bootstrap: creates tables, the current week setting and a default admin.
# - python -m flask system reset-db --yes
#   DEV/TEST only: drop and recreate all tables (deletes all data).
#
# Staff:
# - python -m flask users list
#   List all users with role, grade and active status.
# - python -m flask users create --username alice --password "Password123!" --role employe --grade Novice
#   Create a user (prompts if options are omitted).
# - python -m flask users invite
#   Print a fresh one-time invitation code (valid 24 hours).
#
# Weeks:
# - python -m flask weeks rollover --yes
#   Close the current week, post executive salaries, open the next week.

import click
from flask.cli import with_appcontext

from .extensions import db
from .models import User
from .models.auth import GRADES, ROLE_ADMIN, ROLES
from .services.auth_service import create_user, generate_invitation_code
from .services.week_service import ensure_current_week, start_new_week
from .validation import ServiceError


@click.group('system')
def system_group():
    """System bootstrap and repair commands."""


@system_group.command('init')
@click.option('--admin-username', default='admin', help='Username of the default admin')
@click.option('--admin-password', default='Password123!', help='Password of the default admin')
@with_appcontext
def init_system(admin_username, admin_password):
    """
    Initialize the back office.

    Creates missing tables, the current_week_id setting (1) and a default
    admin with grade Patron. SECURITY: change the password in production!
    """
    click.echo("START Initializing system...")

    db.create_all()
    settings = ensure_current_week()
    db.session.commit()
    click.echo(f"PASS Current week: {settings.current_week_id}")

    existing = db.session.query(User).filter_by(username=admin_username).first()
    if existing:
        click.echo(f"WARN  User '{admin_username}' already exists, skipping...")
    else:
        try:
            create_user(admin_username, admin_password, role=ROLE_ADMIN, grade="Patron")
            click.echo(f"PASS Created admin: {admin_username}")
        except ServiceError as e:
            click.echo(f"FAIL Failed to create admin '{admin_username}': {str(e)}")

    click.echo("DONE System initialized.")


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
    """Staff inspection and bootstrap commands."""


@users_group.command('create')
@click.option('--username', prompt=True, help='Username')
@click.option('--password', prompt=True, hide_input=True, confirmation_prompt=True, help='Password')
@click.option('--role', type=click.Choice(ROLES), prompt=True, help='Role')
@click.option('--grade', type=click.Choice(GRADES), default='Novice', show_default=True, help='Grade')
@with_appcontext
def create_user_cli(username, password, role, grade):
    """Create a user."""
    try:
        user = create_user(username, password, role=role, grade=grade)
    except ServiceError as e:
        raise click.ClickException(str(e))
    click.echo(f"PASS Created user: {user.username} (ID: {user.id}, role: {user.role}, grade: {user.grade})")


@users_group.command('list')
@with_appcontext
def list_users():
    """List all users."""
    users = db.session.query(User).order_by(User.id).all()

    if not users:
        click.echo("No users found.")
        return

    click.echo("\n" + "=" * 72)
    click.echo(f"{'ID':<5} {'Username':<20} {'Role':<8} {'Grade':<14} {'Active':<8}")
    click.echo("=" * 72)
    for user in users:
        active_str = "Yes" if user.is_active else "No"
        click.echo(f"{user.id:<5} {user.username:<20} {user.role:<8} {user.grade:<14} {active_str:<8}")
    click.echo("=" * 72 + "\n")


@users_group.command('invite')
@with_appcontext
def invite_cli():
    """Print a one-time invitation code."""
    code = generate_invitation_code()
    click.echo(f"PASS Invitation code (valid 24h): {code}")


@click.group('weeks')
def weeks_group():
    """Accounting week commands."""


@weeks_group.command('rollover')
@click.option('--yes', is_flag=True, help='Skip confirmation')
@with_appcontext
def rollover_cli(yes):
    """Close the current week and open the next one."""
    if not yes:
        click.confirm("Close the current week and post salaries?", abort=True)

    result = start_new_week()
    summary = result["summary"]
    click.echo(f"PASS Closed week {result['closed_week']} (net margin {summary['net_margin']:.2f})")
    click.echo(f"PASS Posted {result['salaries_posted']} salary expense(s)")
    click.echo(f"PASS Current week is now {result['new_week_id']}")


def register_commands(app):
    """Register all CLI commands with Flask app."""
    app.cli.add_command(system_group)
    app.cli.add_command(users_group)
    app.cli.add_command(weeks_group)
