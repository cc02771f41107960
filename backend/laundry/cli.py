# Overview: Flask CLI command groups for bootstrap, inspection, and ledger maintenance.

# backend/laundry/cli.py
# Commands Legend (run from the backend directory):
# Prereqs:
# - Activate your virtualenv.
# - Use: flask --app laundry <group> <command> [options]
#
# System bootstrap/repair:
# - flask --app laundry system init [--username admin --name "Administrator"]
#   Idempotent bootstrap: creates tables and a first operator.
# - flask --app laundry system reset-db --yes
#   DEV/TEST only: drop and recreate all tables (deletes all data).
#
# Operators:
# - flask --app laundry users create --username maria --name "Maria" --role staff
# - flask --app laundry users list
#
# Counters:
# - flask --app laundry sequences show
#   Last value handed out for each named sequence (order_code, customer_code).
#
# Ledger maintenance:
# - flask --app laundry ledger reconcile [--order-id 12] [--dry-run]
#   Resum invoices into orders and report every order whose paid total or
#   status had drifted.

import click
from flask.cli import with_appcontext

from .errors import LaundryError
from .extensions import db
from .models import Order, User
from .services import user_service, sequence_service, order_service


@click.group('system')
def system_group():
    """System bootstrap and repair commands."""


@system_group.command('init')
@click.option('--username', default='admin', help='First operator username')
@click.option('--name', 'display_name', default='Administrator', help='First operator display name')
@with_appcontext
def init_system(username, display_name):
    """
    Initialize the ledger database.

    Creates:
    - All tables (if missing)
    - A first operator with role "admin" (if no user exists yet)
    """
    click.echo("START Initializing laundry ledger...")

    db.create_all()
    click.echo("PASS Tables ready")

    existing = db.session.query(User).first()
    if existing:
        click.echo(f"PASS Using existing operator: {existing.username} (ID: {existing.id})")
    else:
        user = user_service.create_user(username=username, name=display_name, role='admin')
        click.echo(f"PASS Created operator: {user.username} (ID: {user.id})")

    click.echo("DONE Send the operator ID in the X-User-Id header of API requests.")


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

    click.echo("PASS Database reset complete. Run 'flask --app laundry system init' to initialize.")


@click.group('users')
def users_group():
    """Operator management commands."""


@users_group.command('create')
@click.option('--username', prompt=True, help='Username')
@click.option('--name', 'display_name', prompt=True, help='Display name')
@click.option('--role', type=click.Choice(['admin', 'staff']), default='staff', help='Role')
@with_appcontext
def create_user_cli(username, display_name, role):
    """Create an operator."""
    try:
        user = user_service.create_user(username=username, name=display_name, role=role)
    except LaundryError as e:
        raise click.ClickException(e.message)
    click.echo(f"PASS Created user: {user.username} (ID: {user.id}) with role '{user.role}'")


@users_group.command('list')
@with_appcontext
def list_users():
    """List all operators."""
    users = user_service.list_users()

    if not users:
        click.echo("No users found.")
        return

    click.echo("\n" + "="*70)
    click.echo(f"{'ID':<5} {'Username':<20} {'Name':<25} {'Role':<8} {'Active'}")
    click.echo("="*70)

    for user in users:
        active_str = "Yes" if user.is_active else "No"
        click.echo(f"{user.id:<5} {user.username:<20} {user.name:<25} {user.role:<8} {active_str}")

    click.echo("="*70 + "\n")


@click.group('sequences')
def sequences_group():
    """Named counter inspection."""


@sequences_group.command('show')
@with_appcontext
def show_sequences():
    sequences = sequence_service.list_sequences()
    if not sequences:
        click.echo("No sequences allocated yet.")
        return
    for seq in sequences:
        click.echo(f"{seq.name:<20} {seq.value}")


@click.group('ledger')
def ledger_group():
    """Payment ledger maintenance."""


@ledger_group.command('reconcile')
@click.option('--order-id', type=int, help='Reconcile a single order')
@click.option('--dry-run', is_flag=True, help='Report drift without writing')
@with_appcontext
def reconcile_ledger(order_id, dry_run):
    """
    Resum every order's invoices and fix drifted paid totals and statuses.

    Each order is reconciled in its own transaction.
    """
    if order_id is not None:
        order_ids = [order_id]
    else:
        order_ids = [row[0] for row in db.session.query(Order.id).order_by(Order.id.asc()).all()]

    drifted = 0
    for oid in order_ids:
        try:
            result = order_service.reconcile(oid, dry_run=dry_run)
        except LaundryError as e:
            raise click.ClickException(e.message)
        if result.changed:
            drifted += 1
            click.echo(
                f"DRIFT order {oid}: paid {result.previous_paid_cents} -> {result.paid_cents}, "
                f"status {result.previous_status} -> {result.status}"
            )

    mode = "would fix" if dry_run else "fixed"
    click.echo(f"DONE Checked {len(order_ids)} order(s), {mode} {drifted}.")


def register_commands(app):
    """Register all CLI commands with Flask app."""
    app.cli.add_command(system_group)
    app.cli.add_command(users_group)
    app.cli.add_command(sequences_group)
    app.cli.add_command(ledger_group)
