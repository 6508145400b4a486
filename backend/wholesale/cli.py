# Overview: Flask CLI command groups for bootstrap, catalog seeding and balance maintenance.

# Commands Legend (run from the backend directory):
# Prereqs:
# - Activate your virtualenv.
# - Set FLASK_APP to wholesale:create_app (PowerShell: $env:FLASK_APP="wholesale:create_app").
# - Use: python -m flask <group> <command> [options]
#
# System bootstrap/repair:
# - python -m flask system init
#   Create tables (if missing) and the owner admin from ADMIN_EMAIL/ADMIN_PASSWORD.
# - python -m flask system reset-db --yes
#   DEV/TEST only: drop and recreate all tables (deletes all data).
#
# Admin users:
# - python -m flask users create-admin --email owner@shop.in --name "Owner" --password "secret1" --role owner
# - python -m flask users list
#
# Catalog:
# - python -m flask catalog seed
#   Insert the default product list (skips names that already exist).
#
# Balances:
# - python -m flask balances check [--shop-id 3]
#   Report shops whose cached balance disagrees with orders and payments.
# - python -m flask balances reconcile [--shop-id 3]
#   Overwrite cached balances with the recomputed figure.

import click
from flask import current_app
from flask.cli import with_appcontext

from .extensions import db
from .models import User
from .models.auth import ADMIN_ROLES
from .services.auth_service import create_admin_user, PasswordValidationError
from .services.balance_service import find_drift, reconcile_balance, reconcile_all_balances, BalanceError
from .services.product_service import seed_products


def _rupees(paise: int) -> str:
    return f"Rs {paise / 100:,.2f}"


@click.group('system')
def system_group():
    """System bootstrap and repair commands."""


@system_group.command('init')
@with_appcontext
def init_system():
    """
    Idempotent bootstrap: create missing tables and the owner admin user.

    SECURITY: Change the default admin password immediately in production!
    """
    click.echo("START Initializing wholesale backend...")

    db.create_all()
    click.echo("PASS Tables ready")

    email = current_app.config["ADMIN_EMAIL"]
    existing = db.session.query(User).filter_by(email=email.lower()).first()
    if existing:
        click.echo(f"WARN  Admin '{email}' already exists, skipping...")
        return

    try:
        user = create_admin_user(
            email=email,
            name=current_app.config["ADMIN_NAME"],
            password=current_app.config["ADMIN_PASSWORD"],
            role="owner",
        )
    except PasswordValidationError as e:
        raise click.ClickException(f"Password validation failed for '{email}': {e}")

    click.echo(f"PASS Created owner admin: {user.email} (ID: {user.id})")
    click.echo("\nSECURITY WARNING: change the default admin password in production!")


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
    """Admin user management commands."""


@users_group.command('create-admin')
@click.option('--email', prompt=True, help='Email address')
@click.option('--name', prompt=True, help='Display name')
@click.option('--password', prompt=True, hide_input=True, confirmation_prompt=True, help='Password')
@click.option('--role', type=click.Choice(list(ADMIN_ROLES)), default='staff', show_default=True, help='Role')
@with_appcontext
def create_admin_cli(email, name, password, role):
    """Create an admin staff user."""
    try:
        user = create_admin_user(email=email, name=name, password=password, role=role)
    except (ValueError, PasswordValidationError) as e:
        raise click.ClickException(str(e))
    click.echo(f"PASS Created {user.role} '{user.email}' (ID: {user.id})")


@users_group.command('list')
@with_appcontext
def list_users():
    """List admin users."""
    users = db.session.query(User).order_by(User.id).all()
    if not users:
        click.echo("No admin users found.")
        return

    click.echo(f"{'ID':<5} {'Email':<32} {'Name':<20} {'Role':<8} {'Active':<6}")
    click.echo("-" * 75)
    for user in users:
        click.echo(f"{user.id:<5} {user.email:<32} {user.name:<20} {user.role:<8} {'yes' if user.is_active else 'no':<6}")


@click.group('catalog')
def catalog_group():
    """Product catalog commands."""


@catalog_group.command('seed')
@with_appcontext
def seed_catalog():
    """Insert the default product list."""
    added = seed_products()
    click.echo(f"PASS Added {added} products")


@click.group('balances')
def balances_group():
    """Shop balance inspection and repair."""


@balances_group.command('check')
@click.option('--shop-id', type=int, help='Check a single shop')
@with_appcontext
def check_balances(shop_id):
    """Report cached balances that disagree with orders and payments (read-only)."""
    drifted = find_drift(shop_id)
    if not drifted:
        click.echo("PASS All cached balances match")
        return

    click.echo(f"{'Shop':<6} {'Name':<28} {'Cached':>16} {'Recomputed':>16}")
    click.echo("-" * 70)
    for row in drifted:
        click.echo(
            f"{row['shop_id']:<6} {row['shop_name'][:28]:<28} "
            f"{_rupees(row['cached_paise']):>16} {_rupees(row['recomputed_paise']):>16}"
        )
    click.echo(f"\nWARN {len(drifted)} shop(s) drifted. Run 'flask balances reconcile' to fix.")


@balances_group.command('reconcile')
@click.option('--shop-id', type=int, help='Reconcile a single shop')
@with_appcontext
def reconcile_balances(shop_id):
    """Overwrite cached balances with the recomputed figure."""
    if shop_id is not None:
        try:
            summary = reconcile_balance(shop_id)
        except BalanceError as e:
            raise click.ClickException(str(e))
        click.echo(f"PASS Shop {shop_id} balance: {_rupees(summary.pending_balance_paise)}")
        return

    fixed = reconcile_all_balances()
    click.echo(f"PASS Reconciled {fixed} shop(s)")


def register_commands(app):
    """Register all CLI commands with Flask app."""
    app.cli.add_command(system_group)
    app.cli.add_command(users_group)
    app.cli.add_command(catalog_group)
    app.cli.add_command(balances_group)
