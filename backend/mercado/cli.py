# Overview: Flask CLI command groups for bootstrap, users/tokens and catalog seeding.

# backend/mercado/cli.py
#
# Run from backend/ with FLASK_APP=wsgi.py:
#
#   flask system init-db                   create tables (idempotent)
#   flask system reset-db --yes            drop and recreate tables, dev only
#   flask users create --username ana --role employee --first-name Ana
#   flask users list
#   flask users token ana                  print a bearer token once; only its hash is stored
#   flask products create --code LAC-001 --name "Leche entera" --price 1200 \
#       --cost 800 --stock 50 --category dairy

import click
from flask.cli import with_appcontext

from .errors import ServiceError
from .extensions import db
from .models import User
from .models.auth import USER_ROLES
from .models.inventory import PRODUCT_CATEGORIES
from .services import products_service, session_service


@click.group('system')
def system_group():
    """System bootstrap commands."""


@system_group.command('init-db')
@with_appcontext
def init_db():
    """Create all tables."""
    db.create_all()
    click.echo("PASS Database schema created")


@system_group.command('reset-db')
@click.option('--yes', is_flag=True, help='Skip confirmation')
@with_appcontext
def reset_db(yes):
    """Drop every table and create the schema again. All sales and stock are lost."""
    if not yes:
        click.confirm("WARN Every sale, product and user will be deleted. Continue?", abort=True)

    click.echo("Dropping all tables...")
    db.drop_all()
    db.create_all()
    click.echo("PASS Database reset")


@click.group('users')
def users_group():
    """User bootstrap and token commands."""


@users_group.command('create')
@click.option('--username', prompt=True, help='Username')
@click.option('--role', type=click.Choice(USER_ROLES), prompt=True, help='Role')
@click.option('--email', default=None, help='Email address')
@click.option('--first-name', default=None)
@click.option('--last-name', default=None)
@with_appcontext
def create_user_cli(username, role, email, first_name, last_name):
    """Create a user that can be attributed as seller or customer."""
    existing = db.session.query(User).filter_by(username=username).first()
    if existing:
        click.echo(f"FAIL User '{username}' already exists")
        return

    user = User(
        username=username,
        role=role,
        email=email,
        first_name=first_name,
        last_name=last_name,
        is_active=True,
    )
    db.session.add(user)
    db.session.commit()
    click.echo(f"PASS Created user: {user.username} (ID: {user.id}, role: {user.role})")


@users_group.command('list')
@with_appcontext
def list_users_cli():
    """List all users."""
    users = db.session.query(User).order_by(User.id.asc()).all()
    if not users:
        click.echo("No users found")
        return
    for user in users:
        status = "active" if user.is_active else "inactive"
        click.echo(f"{user.id:>4}  {user.username:<20} {user.role:<10} {status}")


@users_group.command('token')
@click.argument('username')
@with_appcontext
def issue_token_cli(username):
    """Issue a bearer token for a user."""
    user = db.session.query(User).filter_by(username=username).first()
    if not user:
        click.echo(f"FAIL User '{username}' not found")
        return

    try:
        session, token = session_service.create_session(user.id)
    except ValueError as e:
        click.echo(f"FAIL {e}")
        return

    click.echo(f"PASS Token for {user.username} (expires {session.expires_at}):")
    click.echo(token)


@click.group('products')
def products_group():
    """Catalog seeding commands."""


@products_group.command('create')
@click.option('--code', required=True, help='Business code (unique)')
@click.option('--name', required=True)
@click.option('--price', required=True)
@click.option('--cost', required=True)
@click.option('--stock', default="0")
@click.option('--category', type=click.Choice(PRODUCT_CATEGORIES), required=True)
@click.option('--discount', default="0", help='Percentage 0-100')
@with_appcontext
def create_product_cli(code, name, price, cost, stock, category, discount):
    """Create a product."""
    try:
        product = products_service.create_product(
            code=code,
            name=name,
            price=price,
            cost=cost,
            stock=stock,
            category=category,
            discount=discount,
        )
    except ServiceError as e:
        click.echo(f"FAIL {e.message}")
        return

    click.echo(f"PASS Created product: {product.code} {product.name} (ID: {product.id}, stock: {product.stock})")


def register_commands(app):
    """Register all CLI commands with Flask app."""
    app.cli.add_command(system_group)
    app.cli.add_command(users_group)
    app.cli.add_command(products_group)
