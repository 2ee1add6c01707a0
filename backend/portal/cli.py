# Overview: Flask CLI command groups for bootstrap, inspection, and maintenance.

# backend/portal/cli.py
# Commands Legend (run from the backend directory):
# Prereqs:
# - Activate your virtualenv.
# - Set FLASK_APP to wsgi.py (PowerShell: $env:FLASK_APP="wsgi.py").
# - Use: python -m flask <group> <command> [options]
#
# System bootstrap/repair:
# - python -m flask system init-db
#   Create any missing tables.
# - python -m flask system reset-db --yes
#   DEV/TEST only: drop and recreate all tables (deletes all data).
#
# Employees:
# - python -m flask employees list [--role deliveryman]
#   List employees with role and status.
# - python -m flask employees create --identity-id user_abc --email jo@shop.test --role packer --first-name Jo
#   Create an employee (or promote the existing store user with that identity).
# - python -m flask employees set-status user_abc inactive
#   Activate or deactivate an employee.
#
# Permission inspection:
# - python -m flask perms list [--role warehouse] [--category CASH]
#   List portal permissions, optionally for one role or category.
#
# Users:
# - python -m flask users delete user_abc user_def --yes
#   Run the deletion cascade (identity provider + store) for each id.

import click
from flask.cli import with_appcontext

from .errors import OperationError
from .extensions import db
from .permissions import (
    DEFAULT_ROLE_PERMISSIONS,
    PERMISSION_DEFINITIONS,
    get_permissions_by_category,
    parse_role,
)
from .services import employee_service, user_deletion_service


@click.group('system')
def system_group():
    """System bootstrap and repair commands."""


@system_group.command('init-db')
@with_appcontext
def init_db():
    """Create all tables that do not exist yet."""
    click.echo("BUILD  Creating tables...")
    db.create_all()
    click.echo("PASS Database ready.")


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

    click.echo("PASS Database reset complete.")


@click.group('employees')
def employees_group():
    """Employee inspection and bootstrap commands."""


@employees_group.command('list')
@click.option('--role', help='Filter by role')
@with_appcontext
def list_employees_cli(role):
    """List employees with role and status."""
    try:
        employees = employee_service.list_employees(role)
    except OperationError as e:
        click.echo(f"FAIL {e.message}")
        return

    if not employees:
        click.echo("No employees found.")
        return

    click.echo("\n" + "="*90)
    click.echo(f"{'ID':<5} {'Identity':<24} {'Name':<25} {'Role':<12} {'Status':<9} {'Email'}")
    click.echo("="*90)
    for user in employees:
        click.echo(
            f"{user.id:<5} {user.identity_id:<24} {user.full_name[:24]:<25} "
            f"{user.employee_role:<12} {user.employee_status:<9} {user.email}"
        )
    click.echo("="*90 + "\n")


@employees_group.command('create')
@click.option('--identity-id', required=True, help='Identity provider user id')
@click.option('--email', required=True, help='Email address')
@click.option('--role', required=True, type=click.Choice([r.value for r in DEFAULT_ROLE_PERMISSIONS]), help='Employee role')
@click.option('--first-name', help='First name')
@click.option('--last-name', help='Last name')
@click.option('--phone', help='Phone number')
@with_appcontext
def create_employee_cli(identity_id, email, role, first_name, last_name, phone):
    """Create an active employee."""
    try:
        user = employee_service.create_employee(
            identity_id=identity_id,
            email=email,
            role=role,
            first_name=first_name,
            last_name=last_name,
            phone=phone,
        )
    except OperationError as e:
        click.echo(f"FAIL {e.message}")
        return
    click.echo(f"PASS Employee {user.full_name} (ID: {user.id}) is an active {user.employee_role}")


@employees_group.command('set-status')
@click.argument('identity_id')
@click.argument('status', type=click.Choice(['active', 'inactive']))
@with_appcontext
def set_employee_status_cli(identity_id, status):
    """Activate or deactivate an employee."""
    try:
        user = employee_service.set_employee_status(identity_id, status)
    except OperationError as e:
        click.echo(f"FAIL {e.message}")
        return
    click.echo(f"PASS {user.full_name} is now {user.employee_status}")


@click.group('perms')
def perms_group():
    """Permission inspection commands."""


@perms_group.command('list')
@click.option('--role', help='Filter by role')
@click.option('--category', help='Filter by category')
def list_permissions_cli(role, category):
    """List portal permissions, optionally filtered by role or category."""
    if role:
        parsed = parse_role(role)
        if parsed is None:
            click.echo(f"FAIL Role '{role}' not found")
            return
        codes = DEFAULT_ROLE_PERMISSIONS[parsed]
        perms = [p for p in PERMISSION_DEFINITIONS if p[0] in codes]
        title = f"Permissions for role: {parsed.value.upper()}"
    elif category:
        perms = get_permissions_by_category(category.upper())
        title = f"Permissions in category: {category.upper()}"
    else:
        perms = PERMISSION_DEFINITIONS
        title = "All permissions"

    click.echo(f"\n{'='*80}")
    click.echo(title)
    click.echo(f"{'='*80}\n")
    click.echo(f"{'Code':<26} {'Name':<28} {'Category'}")
    click.echo("-"*80)
    for code, name, _description, perm_category in perms:
        click.echo(f"{code:<26} {name:<28} {perm_category}")
    click.echo(f"\n Total: {len(perms)} permissions\n")


@click.group('users')
def users_group():
    """User maintenance commands."""


@users_group.command('delete')
@click.argument('identity_ids', nargs=-1, required=True)
@click.option('--yes', is_flag=True, help='Skip confirmation')
@with_appcontext
def delete_users_cli(identity_ids, yes):
    """Delete users and all their store data."""
    if not yes:
        click.confirm(
            f"WARN This will permanently delete {len(identity_ids)} user(s). Are you sure?",
            abort=True,
        )

    reports = user_deletion_service.delete_users_maintenance(list(identity_ids))
    for report in reports:
        status = "PASS" if report.succeeded else "FAIL"
        counts = report.deleted_counts
        click.echo(
            f"{status} {report.identity_id}: identity={report.identity_deleted} "
            f"store={report.store_deleted} addresses={counts['addresses']} "
            f"orders={counts['orders']} reviews={counts['reviews']}"
        )
        for error in report.errors:
            click.echo(f"      {error}")


def register_commands(app):
    """Register all CLI commands with Flask app."""
    app.cli.add_command(system_group)
    app.cli.add_command(employees_group)
    app.cli.add_command(perms_group)
    app.cli.add_command(users_group)
