# Overview: Flask CLI command groups for bootstrap, inspection, and maintenance.

# backend/app/cli.py
# Commands Legend (run from the backend directory):
# Prereqs:
# - Activate your virtualenv.
# - Set FLASK_APP to wsgi.py (PowerShell: $env:FLASK_APP="wsgi.py").
# - Use: python -m flask <group> <command> [options]
#
# System bootstrap/repair:
# - python -m flask system init
#   Idempotent bootstrap: creates tables, the default category tree and the
#   admin from ADMIN_EMAIL / ADMIN_NAME / ADMIN_PASSWORD (when set).
# - python -m flask system reset-db --yes
#   DEV/TEST only: drop and recreate all tables (deletes all data).
#
# User inspection/bootstrap:
# - python -m flask users list
#   List all users with their role.
# - python -m flask users create --email admin@listo365.com --password "Admin#12345" --name Admin --role ADMIN
#   Create a user (prompts if options are omitted).
#
# Catalog:
# - python -m flask catalog seed-categories
#   Create the default category tree (safe to re-run).
# - python -m flask catalog seed-products
#   Upsert the demo products (safe to re-run).

import click
from flask import current_app
from flask.cli import with_appcontext

from .extensions import db
from .models import User
from .models.auth import ROLE_ADMIN
from .services import auth_service, categories_service, products_service
from .services.auth_service import PasswordValidationError


@click.group('system')
def system_group():
    """System bootstrap and repair commands."""


@system_group.command('init')
@with_appcontext
def init_system():
    """
    Initialize the back office.

    Creates:
    - All tables (no-op for tables that exist)
    - Default category tree
    - Admin user from ADMIN_EMAIL / ADMIN_PASSWORD, if ADMIN_PASSWORD is set

    SECURITY: Change the admin password immediately in production!
    """
    click.echo("START Initializing Listo back office...")

    db.create_all()
    click.echo("PASS Tables ready")

    count = categories_service.seed_default_tree()
    click.echo(f"PASS Category tree seeded ({count} categories)")

    password = current_app.config.get("ADMIN_PASSWORD")
    if not password:
        click.echo("SKIP ADMIN_PASSWORD not set; no admin created")
    else:
        try:
            user = auth_service.upsert_admin(
                current_app.config.get("ADMIN_EMAIL") or "admin@listo365.com",
                password,
                current_app.config.get("ADMIN_NAME") or "Admin",
            )
        except PasswordValidationError as e:
            raise click.ClickException(f"Admin password rejected: {e}")
        click.echo(f"PASS Admin ready: {user.email}")

    click.echo("\nDONE System initialized")


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

    click.echo("PASS Database reset complete")


@click.group('users')
def users_group():
    """User inspection and bootstrap commands."""


@users_group.command('create')
@click.option('--email', prompt=True, help='Email address')
@click.option('--password', prompt=True, hide_input=True, confirmation_prompt=True, help='Password')
@click.option('--name', default=None, help='Display name')
@click.option('--role', default=ROLE_ADMIN, show_default=True, help='Role')
@with_appcontext
def create_user_cli(email, password, name, role):
    """Create a new user."""
    try:
        user = auth_service.create_user(email=email, password=password, name=name, role=role)
    except PasswordValidationError as e:
        raise click.ClickException(f"Password rejected: {e}")
    except ValueError as e:
        raise click.ClickException(str(e))

    click.echo(f"PASS Created user {user.email} (role: {user.role}, id: {user.id})")


@users_group.command('list')
@with_appcontext
def list_users():
    """List all users with their roles."""
    users = db.session.query(User).order_by(User.created_at.asc()).all()

    if not users:
        click.echo("No users found.")
        return

    click.echo(f"\n{'ID':<34} {'Email':<36} {'Role':<10} Name")
    click.echo("-" * 96)
    for user in users:
        click.echo(f"{user.id:<34} {user.email:<36} {user.role:<10} {user.name or ''}")


@click.group('catalog')
def catalog_group():
    """Catalog seed commands."""


@catalog_group.command('seed-categories')
@with_appcontext
def seed_categories():
    count = categories_service.seed_default_tree()
    click.echo(f"PASS Category tree seeded ({count} categories)")


@catalog_group.command('seed-products')
@with_appcontext
def seed_products():
    created, updated = products_service.seed_demo_products()
    click.echo(f"PASS Demo products: {created} created, {updated} updated")


def register_commands(app):
    """Register all CLI commands with Flask app."""
    app.cli.add_command(system_group)
    app.cli.add_command(users_group)
    app.cli.add_command(catalog_group)
