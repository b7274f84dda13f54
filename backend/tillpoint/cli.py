# Overview: Flask CLI command groups for bootstrap, catalogue inspection and sale maintenance.

# backend/tillpoint/cli.py
# Commands Legend (run from the backend directory, FLASK_APP=wsgi.py):
#
# System bootstrap:
# - python -m flask system init
#   Create all tables (idempotent).
# - python -m flask system reset-db --yes
#   DEV/TEST only: drop and recreate all tables (deletes all data).
#
# Users:
# - python -m flask users list [--all]
# - python -m flask users create --username admin --password "Secret123" --role admin
# - python -m flask users update 3 --role cashier --full-name "Dana Kusuma"
# - python -m flask users deactivate 3
#   Blocks login and revokes every open session of the user.
# - python -m flask users reactivate 3
#
# Products:
# - python -m flask products list
# - python -m flask products seed
#   Insert a small demo catalogue (skips barcodes that already exist).
#
# Sales:
# - python -m flask sales list --status COMPLETED
# - python -m flask sales void 42 --username admin
#   Void a sale and restore its stock, attributed to the given user.

import click
from flask.cli import with_appcontext

from .errors import TransactionError
from .extensions import db
from .models import Product, User
from .services import auth_service, products_service, reporting_service, sales_service
from .services.session_service import SessionContext


DEMO_PRODUCTS = [
    {"barcode": "8991001000011", "name": "Arabica Coffee 250g", "price_cents": 8500, "stock": 40, "category": "Beverages"},
    {"barcode": "8991001000028", "name": "Green Tea 25 bags", "price_cents": 3200, "stock": 60, "category": "Beverages"},
    {"barcode": "8991001000035", "name": "Whole Milk 1L", "price_cents": 1850, "stock": 30, "category": "Dairy"},
    {"barcode": "8991001000042", "name": "Sourdough Loaf", "price_cents": 4200, "stock": 12, "category": "Bakery"},
    {"barcode": "8991001000059", "name": "Dark Chocolate 100g", "price_cents": 2750, "stock": 25, "category": "Snacks"},
]


def _money(cents: int) -> str:
    return f"{cents // 100}.{cents % 100:02d}"


@click.group('system')
def system_group():
    """System bootstrap commands."""


@system_group.command('init')
@with_appcontext
def init_system():
    """Create all tables that do not exist yet."""
    db.create_all()
    click.echo("PASS Database schema ready")


@system_group.command('reset-db')
@click.option('--yes', is_flag=True, help='Confirm destructive reset')
@with_appcontext
def reset_db(yes):
    """DEV/TEST only: drop and recreate every table."""
    if not yes:
        click.echo("FAIL Refusing to reset without --yes")
        return
    db.drop_all()
    db.create_all()
    click.echo("PASS Database reset")


@click.group('users')
def users_group():
    """User inspection and bootstrap."""


@users_group.command('list')
@click.option('--all', 'include_inactive', is_flag=True, help='Include deactivated users')
@with_appcontext
def list_users(include_inactive):
    users = auth_service.list_users(include_inactive=include_inactive)
    if not users:
        click.echo("No users found")
        return
    for user in users:
        status = "active" if user.is_active else "inactive"
        click.echo(f"{user.id:>4}  {user.username:<20} {user.role:<8} {status}")


@users_group.command('create')
@click.option('--username', prompt=True, help='Username')
@click.option('--password', prompt=True, hide_input=True, confirmation_prompt=True, help='Password')
@click.option('--role', type=click.Choice(['admin', 'cashier'], case_sensitive=False), prompt=True, help='Role')
@click.option('--full-name', default=None, help='Display name')
@with_appcontext
def create_user_cli(username, password, role, full_name):
    """
    Create a new user.

    Password must be at least 8 characters with a letter and a digit.
    """
    try:
        user = auth_service.create_user(username, password, role=role.upper(), full_name=full_name)
    except TransactionError as e:
        click.echo(f"FAIL {e}")
        return
    click.echo(f"PASS Created user {user.username} (ID: {user.id}, role: {user.role})")


@users_group.command('update')
@click.argument('user_id', type=int)
@click.option('--username', default=None, help='New username')
@click.option('--full-name', default=None, help='New display name')
@click.option('--role', type=click.Choice(['admin', 'cashier'], case_sensitive=False), default=None)
@click.option('--password', default=None, help='New password (omit to keep the current one)')
@with_appcontext
def update_user_cli(user_id, username, full_name, role, password):
    try:
        user = auth_service.update_user(
            user_id, username=username, full_name=full_name, role=role, password=password,
        )
    except TransactionError as e:
        click.echo(f"FAIL {e}")
        return
    click.echo(f"PASS Updated user {user.username} (ID: {user.id}, role: {user.role})")


@users_group.command('deactivate')
@click.argument('user_id', type=int)
@with_appcontext
def deactivate_user_cli(user_id):
    """Deactivate a user and revoke all of their sessions."""
    try:
        revoked = auth_service.deactivate_user(user_id)
    except TransactionError as e:
        click.echo(f"FAIL {e}")
        return
    click.echo(f"PASS Deactivated user {user_id} ({revoked} sessions revoked)")


@users_group.command('reactivate')
@click.argument('user_id', type=int)
@with_appcontext
def reactivate_user_cli(user_id):
    try:
        user = auth_service.reactivate_user(user_id)
    except TransactionError as e:
        click.echo(f"FAIL {e}")
        return
    click.echo(f"PASS Reactivated user {user.username}")


@click.group('products')
def products_group():
    """Catalogue inspection and demo data."""


@products_group.command('list')
@click.option('--all', 'include_inactive', is_flag=True, help='Include deactivated products')
@with_appcontext
def list_products_cli(include_inactive):
    for p in products_service.list_products(include_inactive=include_inactive):
        click.echo(f"{p.id:>4}  {p.barcode:<15} {p.name:<30} {_money(p.price_cents):>10}  stock={p.stock}")


@products_group.command('seed')
@with_appcontext
def seed_products():
    created = 0
    for row in DEMO_PRODUCTS:
        if db.session.query(Product).filter_by(barcode=row["barcode"]).first():
            continue
        products_service.create_product(dict(row))
        created += 1
    click.echo(f"PASS Seeded {created} products")


@click.group('sales')
def sales_group():
    """Sale inspection and correction."""


@sales_group.command('list')
@click.option('--status', type=click.Choice(['COMPLETED', 'VOID'], case_sensitive=False), default=None)
@click.option('--limit', type=int, default=20)
@with_appcontext
def list_sales_cli(status, limit):
    for sale in reporting_service.list_sales(status=status, limit=limit):
        click.echo(
            f"{sale.id:>5}  {sale.created_at:%Y-%m-%d %H:%M}  {sale.status:<9} "
            f"total={_money(sale.total_cents)} user={sale.user_id}"
        )


@sales_group.command('void')
@click.argument('sale_id', type=int)
@click.option('--username', prompt=True, help='User the void is attributed to')
@with_appcontext
def void_sale_cli(sale_id, username):
    user = db.session.query(User).filter_by(username=username, is_active=True).first()
    if not user:
        click.echo(f"FAIL Unknown or inactive user '{username}'")
        return
    try:
        sale = sales_service.void_sale(sale_id, SessionContext.for_user(user))
    except TransactionError as e:
        click.echo(f"FAIL {e}")
        return
    click.echo(f"PASS Sale {sale.id} is now {sale.status}")


def register_commands(app):
    """Register all CLI commands with Flask app."""
    app.cli.add_command(system_group)
    app.cli.add_command(users_group)
    app.cli.add_command(products_group)
    app.cli.add_command(sales_group)
