# Overview: Flask CLI command groups for bootstrap, inspection, and maintenance.

# backend/stockai/cli.py
# Commands Legend (run from the backend directory):
# Prereqs:
# - Activate your virtualenv.
# - Set FLASK_APP to wsgi.py (PowerShell: $env:FLASK_APP="wsgi.py").
# - Use: python -m flask <group> <command> [options]
#
# System bootstrap/repair:
# - python -m flask system init [--super-admin-email root@stockai.local --super-admin-password "Password123!"]
#   Idempotent bootstrap: modules, system roles, default role modules, optional super admin.
# - python -m flask system reset-db --yes
#   DEV/TEST only: drop and recreate all tables (deletes all data).
# - python -m flask system cleanup-sessions
#   Delete expired/revoked session tokens older than 30 days.
#
# Role inspection/repair:
# - python -m flask roles list
#   List roles with their module grants.
# - python -m flask roles grant tenant Sales
#   Grant a module to a role.
# - python -m flask roles revoke tenant Sales
#   Revoke a module from a role.
#
# User inspection/bootstrap:
# - python -m flask users list
#   List all users with role and status.
# - python -m flask users create --name admin --email admin@stockai.local --password "Password123!" --role admin
#   Create a user (prompts if options are omitted).

import click
from flask.cli import with_appcontext

from .extensions import db
from .models import User
from .services import permission_service, session_service, user_service
from .services.auth_service import PasswordValidationError
from .services.permission_service import RoleError
from .services.user_service import UserError


@click.group('system')
def system_group():
    """System bootstrap and repair commands."""


@system_group.command('init')
@click.option('--super-admin-name', default='superadmin', help='Display name for the super admin')
@click.option('--super-admin-email', default=None, help='Create the super admin with this email')
@click.option('--super-admin-password', default=None, help='Password for the super admin')
@with_appcontext
def init_system(super_admin_name, super_admin_email, super_admin_password):
    """
    Initialize access control: modules, system roles and default grants.

    Optionally creates the single super admin account.
    """
    click.echo("START Initializing StockAI access control...")

    module_count = permission_service.ensure_modules()
    click.echo(f"PASS Modules created: {module_count}")

    role_count = permission_service.ensure_system_roles()
    click.echo(f"PASS Roles created: {role_count}")

    grant_count = permission_service.assign_default_role_modules()
    click.echo(f"PASS Role module grants created: {grant_count}")

    if super_admin_email:
        if not super_admin_password:
            super_admin_password = click.prompt("Super admin password", hide_input=True, confirmation_prompt=True)
        try:
            user = user_service.create_user(
                name=super_admin_name,
                email=super_admin_email,
                password=super_admin_password,
                role=permission_service.super_admin_slug(),
            )
            click.echo(f"PASS Created super admin: {user.email}")
        except (UserError, PasswordValidationError) as e:
            click.echo(f"WARN Super admin not created: {e}")

    click.echo("DONE StockAI initialized")


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
    click.echo("PASS Database reset. Run: python -m flask system init")


@system_group.command('cleanup-sessions')
@with_appcontext
def cleanup_sessions():
    """Delete expired and revoked session tokens older than 30 days."""
    deleted = session_service.cleanup_expired_sessions()
    click.echo(f"PASS Deleted {deleted} session tokens")


@click.group('roles')
def roles_group():
    """Role and module grant commands."""


@roles_group.command('list')
@with_appcontext
def list_roles():
    """List roles with their module grants."""
    role_map = permission_service.get_role_permission_map()
    if not role_map:
        click.echo("No roles found. Run: python -m flask system init")
        return
    for slug, modules in role_map.items():
        click.echo(f"{slug:<16} {', '.join(modules) or '-'}")


@roles_group.command('grant')
@click.argument('role_slug')
@click.argument('module_name')
@with_appcontext
def grant_module(role_slug, module_name):
    """Grant a module to a role."""
    try:
        permission_service.grant_module_to_role(role_slug, module_name)
        click.echo(f"PASS Granted {module_name} to {role_slug}")
    except RoleError as e:
        click.echo(f"FAIL {e}")


@roles_group.command('revoke')
@click.argument('role_slug')
@click.argument('module_name')
@with_appcontext
def revoke_module(role_slug, module_name):
    """Revoke a module from a role."""
    try:
        if permission_service.revoke_module_from_role(role_slug, module_name):
            click.echo(f"PASS Revoked {module_name} from {role_slug}")
        else:
            click.echo(f"WARN {role_slug} did not have {module_name}")
    except RoleError as e:
        click.echo(f"FAIL {e}")


@click.group('users')
def users_group():
    """User inspection and bootstrap commands."""


@users_group.command('list')
@with_appcontext
def list_users():
    """List all users with role and status."""
    users = db.session.query(User).order_by(User.id.asc()).all()
    if not users:
        click.echo("No users found.")
        return

    click.echo(f"{'ID':<5} {'Name':<24} {'Email':<32} {'Role':<14} {'Status'}")
    for user in users:
        click.echo(f"{user.id:<5} {user.name:<24} {user.email:<32} {user.role:<14} {user.status}")


@users_group.command('create')
@click.option('--name', prompt=True, help='Display name (also usable as login)')
@click.option('--email', prompt=True, help='Email address')
@click.option('--password', prompt=True, hide_input=True, confirmation_prompt=True, help='Password')
@click.option('--role', default='user', show_default=True, help='Role slug')
@with_appcontext
def create_user_cli(name, email, password, role):
    """Create an active user."""
    try:
        user = user_service.create_user(name=name, email=email, password=password, role=role)
        click.echo(f"PASS Created user {user.name} ({user.email}) with role '{user.role}'")
    except (UserError, PasswordValidationError) as e:
        click.echo(f"FAIL {e}")


def register_commands(app):
    """Register all CLI commands with Flask app."""
    app.cli.add_command(system_group)
    app.cli.add_command(roles_group)
    app.cli.add_command(users_group)
