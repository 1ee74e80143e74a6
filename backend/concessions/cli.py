# Overview: Flask CLI command groups for bootstrap, inspection, and maintenance.

# backend/concessions/cli.py
# Commands Legend (run from the backend directory):
# Prereqs:
# - Activate your virtualenv.
# - Set FLASK_APP to wsgi.py (PowerShell: $env:FLASK_APP="wsgi.py").
# - Use: python -m flask <group> <command> [options]
#
# System bootstrap/repair:
# - python -m flask system init [--program "Band"]
#   Idempotent bootstrap: creates tables, the main cashbox, the CashApp account and a first program.
# - python -m flask system reset-db --yes
#   DEV/TEST only: drop and recreate all tables (deletes all data).
#
# Programs:
# - python -m flask programs list
# - python -m flask programs create --name "Robotics"
# - python -m flask programs deposit 1 2500 --note "Fundraiser"
#
# Inventory:
# - python -m flask inventory list
#   On-hand quantity and FIFO value per tracked item.
# - python -m flask inventory stock 3 24 --cost 45
#   Manual (non-reimbursable) stock for an item.
# - python -m flask inventory count 3 20
#   Record a physical count; shortfalls are booked as losses.
#
# Sessions:
# - python -m flask sessions list [--status active]
# - python -m flask sessions summary 4
# - python -m flask sessions cashbox [--set --quarters 40 --bills-1 20 ...]

import click
from flask.cli import with_appcontext

from .errors import LedgerError
from .extensions import db
from .models import CashAppAccount, MainCashbox, Program
from .money import DENOMINATION_CENTS, Denominations, format_cents
from .services import catalog_service, inventory_service, program_ledger_service, purchase_service, session_service


@click.group('system')
def system_group():
    """System bootstrap and repair commands."""


@system_group.command('init')
@click.option('--program', 'program_name', default='General Fund', help='Name of the first program')
@with_appcontext
def init_system(program_name):
    """
    Initialize the concessions database.

    Creates:
    - All tables (if missing)
    - The main cashbox row (empty)
    - The CashApp account row (zero balance)
    - One program, if none exist yet
    """
    click.echo("START Initializing concessions ledger...")

    db.create_all()
    click.echo("PASS Tables ready")

    if db.session.get(MainCashbox, 1) is None:
        db.session.add(MainCashbox(id=1))
        click.echo("PASS Created main cashbox")
    if db.session.get(CashAppAccount, 1) is None:
        db.session.add(CashAppAccount(id=1, balance_cents=0))
        click.echo("PASS Created CashApp account")
    db.session.commit()

    if db.session.query(Program).count() == 0:
        program = catalog_service.create_program(program_name)
        click.echo(f"PASS Created program: {program.name} (ID: {program.id})")
    else:
        click.echo("PASS Programs already exist")

    click.echo("DONE Initialization complete")


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
# PROGRAMS
# =============================================================================

@click.group('programs')
def programs_group():
    """Program account commands."""


@programs_group.command('list')
@click.option('--all', 'include_inactive', is_flag=True, help='Include inactive programs')
@with_appcontext
def list_programs(include_inactive):
    programs = catalog_service.list_programs(include_inactive=include_inactive)
    if not programs:
        click.echo("No programs found.")
        return
    for p in programs:
        status = "active" if p.is_active else "inactive"
        click.echo(f"{p.id:>4}  {p.name:<30} {format_cents(p.balance_cents):>12}  {status}")


@programs_group.command('create')
@click.option('--name', required=True, help='Program name')
@with_appcontext
def create_program_cli(name):
    try:
        program = catalog_service.create_program(name)
    except LedgerError as exc:
        click.echo(f"FAIL {exc.message}")
        raise SystemExit(1)
    click.echo(f"PASS Created program: {program.name} (ID: {program.id})")


@programs_group.command('deposit')
@click.argument('program_id', type=int)
@click.argument('amount_cents', type=int)
@click.option('--note', default=None, help='Transaction note')
@with_appcontext
def deposit_cli(program_id, amount_cents, note):
    try:
        program_ledger_service.deposit(program_id, amount_cents, note)
    except LedgerError as exc:
        click.echo(f"FAIL {exc.message}")
        raise SystemExit(1)
    program = catalog_service.get_program(program_id)
    click.echo(f"PASS Deposited {format_cents(amount_cents)}; balance {format_cents(program.balance_cents)}")


# =============================================================================
# INVENTORY
# =============================================================================

@click.group('inventory')
def inventory_group():
    """Inventory inspection and correction commands."""


@inventory_group.command('list')
@with_appcontext
def list_inventory():
    items = [i for i in catalog_service.list_menu_items() if i.track_inventory and not i.is_composite]
    if not items:
        click.echo("No tracked items.")
        return
    for item in items:
        summary = inventory_service.get_inventory_summary(item.id)
        click.echo(
            f"{item.id:>4}  {item.name:<30} on hand {summary['quantity_on_hand']:>5}"
            f"  value {format_cents(summary['inventory_value_cents']):>10}"
            f"  lots {summary['lot_count']}"
        )


@inventory_group.command('stock')
@click.argument('item_id', type=int)
@click.argument('quantity', type=int)
@click.option('--cost', 'unit_cost_cents', type=int, default=None, help='Unit cost in cents')
@with_appcontext
def stock_cli(item_id, quantity, unit_cost_cents):
    try:
        lot = purchase_service.stock_update(item_id, quantity, unit_cost_cents=unit_cost_cents, created_by="cli")
    except LedgerError as exc:
        click.echo(f"FAIL {exc.message}")
        raise SystemExit(1)
    click.echo(f"PASS Lot {lot.id}: {lot.quantity_original} @ {format_cents(lot.unit_cost_cents)}")


@inventory_group.command('count')
@click.argument('item_id', type=int)
@click.argument('actual_quantity', type=int)
@with_appcontext
def count_cli(item_id, actual_quantity):
    try:
        result = inventory_service.record_count(item_id, actual_quantity, counted_by="cli")
    except LedgerError as exc:
        click.echo(f"FAIL {exc.message}")
        raise SystemExit(1)
    click.echo(
        f"PASS {result['menu_item_name']}: expected {result['expected_quantity']}, "
        f"counted {result['actual_quantity']} (delta {result['delta']:+d})"
    )
    if result["loss_id"]:
        click.echo(f"WARN Recorded loss #{result['loss_id']} of {format_cents(result['loss_cents'])}")


# =============================================================================
# SESSIONS
# =============================================================================

@click.group('sessions')
def sessions_group():
    """Concession session inspection commands."""


@sessions_group.command('list')
@click.option('--status', type=click.Choice(['created', 'active', 'closed', 'cancelled']), default=None)
@with_appcontext
def list_sessions(status):
    sessions = session_service.list_sessions(status=status)
    if not sessions:
        click.echo("No sessions found.")
        return
    for s in sessions:
        tag = " [practice]" if s.is_test else ""
        profit = format_cents(s.profit_cents) if s.profit_cents is not None else "-"
        click.echo(f"{s.id:>4}  {s.name:<30} {s.status:<10} profit {profit:>10}{tag}")


@sessions_group.command('summary')
@click.argument('session_id', type=int)
@with_appcontext
def session_summary(session_id):
    try:
        summary = session_service.get_sales_summary(session_id)
    except LedgerError as exc:
        click.echo(f"FAIL {exc.message}")
        raise SystemExit(1)
    click.echo(f"Session {session_id}: {summary['session']['name']} ({summary['session']['status']})")
    click.echo(f"  Orders:     {summary['order_count']}")
    click.echo(f"  Gross:      {format_cents(summary['gross_sales_cents'])}")
    click.echo(f"  Discounts:  {format_cents(summary['discount_total_cents'])}")
    click.echo(f"  Net:        {format_cents(summary['net_sales_cents'])}")
    for method, cents in summary["revenue_by_method_cents"].items():
        click.echo(f"    {method:<8} {format_cents(cents)}")
    click.echo(f"  COGS:       {format_cents(summary['cogs_cents'])}")
    click.echo(f"  Expected cash in drawer: {format_cents(summary['expected_cash_cents'])}")


@sessions_group.command('cashbox')
@click.option('--set', 'set_counts', is_flag=True, help='Overwrite the cashbox with the given counts')
@click.option('--quarters', type=int, default=0)
@click.option('--bills-1', 'bills_1', type=int, default=0)
@click.option('--bills-5', 'bills_5', type=int, default=0)
@click.option('--bills-10', 'bills_10', type=int, default=0)
@click.option('--bills-20', 'bills_20', type=int, default=0)
@click.option('--bills-50', 'bills_50', type=int, default=0)
@click.option('--bills-100', 'bills_100', type=int, default=0)
@with_appcontext
def cashbox_cli(set_counts, **counts):
    if set_counts:
        try:
            session_service.set_main_cashbox(Denominations(**counts))
        except LedgerError as exc:
            click.echo(f"FAIL {exc.message}")
            raise SystemExit(1)
        click.echo("PASS Main cashbox updated")

    current = session_service.get_main_cashbox()
    for name in DENOMINATION_CENTS:
        click.echo(f"  {name:<10} {getattr(current, name):>5}")
    click.echo(f"  Total      {format_cents(current.value_cents())}")


def register_commands(app):
    """Register all CLI commands with Flask app."""
    app.cli.add_command(system_group)
    app.cli.add_command(programs_group)
    app.cli.add_command(inventory_group)
    app.cli.add_command(sessions_group)
