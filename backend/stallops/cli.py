# Overview: Flask CLI command groups for bootstrap and the scheduled operational jobs.

# backend/stallops/cli.py
# Commands Legend (run from the backend directory):
# Prereqs:
# - Activate your virtualenv.
# - Set FLASK_APP to the package (PowerShell: $env:FLASK_APP="stallops").
# - Use: python -m flask <group> <command> [options]
#
# System bootstrap:
# - python -m flask system init-db
#   Create all tables that do not exist yet (idempotent).
# - python -m flask system reset-db --yes
#   DEV/TEST only: drop and recreate all tables (deletes all data).
#
# Inventory jobs (run nightly):
# - python -m flask inventory refresh-batches
#   Re-derive batch freshness; expired batches are switched inactive.
# - python -m flask inventory alerts --days 2
#   Print low-stock and near-expiry batches.
#
# Expense jobs (run daily):
# - python -m flask expenses due-recurring [--date 2026-02-01]
#   List recurring expenses whose next due date has arrived.
# - python -m flask expenses advance-recurring [--date 2026-02-01]
#   Advance every due recurring expense by one occurrence.
#
# Investor jobs:
# - python -m flask investors payouts-due [--date 2026-02-01]
#   List active investors whose next profit calculation is due.
#
# Payroll reports:
# - python -m flask payroll monthly-total --month-year "January 2026"
#   Print the month's payroll totals.

import click
from flask import current_app
from flask.cli import with_appcontext

from .domain.errors import DomainError
from .extensions import db
from .services import expense_service, inventory_service, investor_service, payroll_service
from .time_utils import parse_iso_date


def _date_option(value):
    try:
        return parse_iso_date(value)
    except ValueError:
        raise click.BadParameter("expected an ISO-8601 date (YYYY-MM-DD)")


@click.group('system')
def system_group():
    """System bootstrap commands."""


@system_group.command('init-db')
@with_appcontext
def init_db():
    """Create all tables that do not exist yet."""
    db.create_all()
    click.echo("PASS Database schema is up to date.")


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


@click.group('inventory')
def inventory_group():
    """Inventory freshness jobs."""


@inventory_group.command('refresh-batches')
@with_appcontext
def refresh_batches_cli():
    """Re-derive freshness for every active batch and persist changes."""
    result = inventory_service.refresh_batches()
    click.echo(
        f"Checked {result['checked']} batches: {result['updated']} updated, {result['expired']} expired."
    )


@inventory_group.command('alerts')
@click.option('--days', type=int, default=None, help='Near-expiry window in days (default from config)')
@with_appcontext
def inventory_alerts_cli(days):
    """Print low-stock and near-expiry batches."""
    low = inventory_service.low_stock()
    expiring = inventory_service.near_expiry(days=days)

    click.echo(f"Low stock ({len(low)}):")
    for row in low:
        click.echo(f"  {row.code:<20} {row.item_name:<30} stock={row.total_stock}")

    click.echo(f"Near expiry ({len(expiring)}):")
    for row in expiring:
        click.echo(f"  {row.code:<20} {row.item_name:<30} expires={row.expiry_date:%Y-%m-%d %H:%M}")


@click.group('expenses')
def expenses_group():
    """Recurring expense jobs."""


@expenses_group.command('due-recurring')
@click.option('--date', 'on_date', default=None, help='Reference date (default today)')
@with_appcontext
def due_recurring_cli(on_date):
    """List recurring expenses whose next due date has arrived."""
    rows = expense_service.due_recurring(_date_option(on_date))
    if not rows:
        click.echo("No recurring expenses due.")
        return
    for row in rows:
        click.echo(f"{row.id:<6} {row.code:<20} {row.expense_type:<16} {row.amount:>12} due={row.next_due_date}")


@expenses_group.command('advance-recurring')
@click.option('--date', 'on_date', default=None, help='Reference date (default today)')
@with_appcontext
def advance_recurring_cli(on_date):
    """Advance every due recurring expense by one occurrence."""
    rows = expense_service.due_recurring(_date_option(on_date))
    advanced = 0
    for row in rows:
        try:
            expense_service.advance_recurring(expense_id=row.id)
            advanced += 1
        except DomainError as e:
            current_app.logger.warning("Skipped recurring expense %s: %s", row.code, e)
            click.echo(f"SKIP {row.code}: {e}")
    click.echo(f"Advanced {advanced} of {len(rows)} due recurring expenses.")


@click.group('investors')
def investors_group():
    """Investor payout jobs."""


@investors_group.command('payouts-due')
@click.option('--date', 'on_date', default=None, help='Reference date (default today)')
@with_appcontext
def payouts_due_cli(on_date):
    """List active investors whose next profit calculation date has arrived."""
    rows = investor_service.payouts_due(_date_option(on_date))
    if not rows:
        click.echo("No investor payouts due.")
        return
    for row in rows:
        click.echo(f"{row.id:<6} {row.code:<16} {row.name:<30} next={row.next_calculation_date}")


@click.group('payroll')
def payroll_group():
    """Payroll reports."""


@payroll_group.command('monthly-total')
@click.option('--month-year', required=True, help='Month label, e.g. "January 2026"')
@with_appcontext
def monthly_total_cli(month_year):
    """Print payroll totals for one month."""
    total = payroll_service.monthly_total(month_year)
    click.echo(f"Payroll {total.month_year}: {total.employee_count} employees")
    click.echo(f"  Gross salary:  {total.total_gross_salary}")
    click.echo(f"  Deductions:    {total.total_deductions}")
    click.echo(f"  Bonus:         {total.total_bonus}")
    click.echo(f"  Net payable:   {total.total_net_payable}")
    click.echo(f"  Final payment: {total.total_final_payment}")


def register_commands(app):
    """Register all CLI commands with Flask app."""
    app.cli.add_command(system_group)
    app.cli.add_command(inventory_group)
    app.cli.add_command(expenses_group)
    app.cli.add_command(investors_group)
    app.cli.add_command(payroll_group)
