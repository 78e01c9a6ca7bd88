# Overview: Flask CLI command groups for bootstrap, inspection, and maintenance.

# Commands Legend (run from the backend directory):
# Prereqs:
# - Activate your virtualenv.
# - Set FLASK_APP to wsgi.py (PowerShell: $env:FLASK_APP="wsgi.py").
# - Use: python -m flask <group> <command> [options]
#
# System bootstrap/repair:
# - python -m flask system init
#   Idempotent bootstrap: creates tables, payment methods and default admin/staff/warehouse users.
# - python -m flask system reset-db --yes
#   DEV/TEST only: drop and recreate all tables (deletes all data).
#
# User inspection/bootstrap:
# - python -m flask users list [--role staff]
#   List users with role and active status.
# - python -m flask users create --name "Jane" --email jane@example.com --password "Password123!" --role admin
#   Create a user (prompts if options are omitted).
#
# Inventory:
# - python -m flask inventory check-alerts
#   Run the stock guard over every product and report alerts created.

import click
from flask.cli import with_appcontext

from .extensions import db
from .models import PaymentMethod, User
from .permissions import Role
from .services import inventory_service
from .services.auth_service import create_user
from .validation import ValidationError


DEFAULT_PASSWORD = "Password123!"

DEFAULT_PAYMENT_METHODS = [
    ("Credit Card", "Pay with Visa, Mastercard or Amex", "card"),
    ("PayPal", "Pay with your PayPal account", "wallet"),
    ("Bank Transfer", "Direct bank transfer", "bank"),
    ("Digital Wallet", "Mobile wallet payment", "wallet"),
    ("Cash on Delivery", "Pay when the order arrives", "cash"),
]

DEFAULT_USERS = [
    ("Administrator", "admin@storefront.local", Role.ADMIN),
    ("Staff Member", "staff@storefront.local", Role.STAFF),
    ("Warehouse Manager", "warehouse@storefront.local", Role.WAREHOUSE_MANAGER),
]


@click.group('system')
def system_group():
    """System bootstrap and repair commands."""


@system_group.command('init')
@click.option('--password', default=DEFAULT_PASSWORD, show_default=True, help='Password for the default users')
@with_appcontext
def init_system(password):
    """
    Initialize the storefront: tables, payment methods and default users.

    Safe to run repeatedly; existing rows are left alone.

    SECURITY: Change the default passwords immediately in production!
    """
    click.echo("START Initializing storefront...")
    db.create_all()

    for name, description, method_type in DEFAULT_PAYMENT_METHODS:
        if not PaymentMethod.query.filter_by(name=name).first():
            db.session.add(PaymentMethod(name=name, description=description, type=method_type, is_active=True))
            click.echo(f"PASS Created payment method: {name}")
    db.session.commit()

    for name, email, role in DEFAULT_USERS:
        if User.query.filter_by(email=email).first():
            click.echo(f"SKIP User already exists: {email}")
            continue
        create_user(name, email, password, role)
        click.echo(f"PASS Created {role.value} user: {email}")

    click.echo("DONE Storefront initialized.")


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
@click.option('--name', prompt=True, help='Display name')
@click.option('--email', prompt=True, help='Email address')
@click.option('--password', prompt=True, hide_input=True, confirmation_prompt=True, help='Password')
@click.option('--role', type=click.Choice(Role.values()), prompt=True, help='Role')
@with_appcontext
def create_user_cli(name, email, password, role):
    """Create a user of any role. Customers also get an empty cart."""
    try:
        user = create_user(name, email, password, role)
    except ValidationError as e:
        for field, messages in e.errors.items():
            for message in messages:
                click.echo(f"FAIL {field}: {message}")
        raise SystemExit(1)

    click.echo(f"PASS Created user: {user.name} ({user.email}) with role '{user.role}'")
    click.echo("SECURITY Password securely hashed with bcrypt")


@users_group.command('list')
@click.option('--role', type=click.Choice(Role.values()), help='Filter by role')
@with_appcontext
def list_users(role):
    """List users with their role and active flag."""
    query = User.query.order_by(User.id)
    if role:
        query = query.filter_by(role=role)

    users = query.all()
    if not users:
        click.echo("No users found.")
        return

    click.echo("\n" + "=" * 90)
    click.echo(f"{'ID':<5} {'Name':<25} {'Email':<35} {'Role':<18} {'Active'}")
    click.echo("=" * 90)
    for user in users:
        active_str = "Yes" if user.is_active else "No"
        click.echo(f"{user.id:<5} {user.name:<25} {user.email:<35} {user.role:<18} {active_str}")


@click.group('inventory')
def inventory_group():
    """Inventory maintenance commands."""


@inventory_group.command('check-alerts')
@with_appcontext
def check_alerts():
    """Run check_and_create_alerts over every product."""
    created = inventory_service.check_all_products()
    click.echo(f"PASS Inventory check complete. {created} alert(s) created.")


def register_commands(app):
    """Register all CLI commands with Flask app."""
    app.cli.add_command(system_group)
    app.cli.add_command(users_group)
    app.cli.add_command(inventory_group)
