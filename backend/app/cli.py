# Overview: Flask CLI command groups for bootstrap, business hours and the charcoal ledger.

# backend/app/cli.py
# Commands Legend (run from the backend directory):
# Prereqs:
# - Activate your virtualenv.
# - Set FLASK_APP to wsgi.py (PowerShell: $env:FLASK_APP="wsgi.py").
# - Use: python -m flask <group> <command> [options]
#
# System bootstrap/repair:
# - python -m flask system init-db
#   Create any missing tables (idempotent).
# - python -m flask system reset-db --yes
#   DEV/TEST only: drop and recreate all tables (deletes all data).
#
# Business hours:
# - python -m flask business-hours show
#   Print the effective schedule (cache -> database -> local fallback -> default).
# - python -m flask business-hours status [--as-of 2026-10-19T23:00:00+07:00]
#   Print whether the store is open, and the customer message if not.
# - python -m flask business-hours reset
#   Save the built-in default schedule.
#
# Charcoal ledger:
# - python -m flask coal summary
#   Print the stored summary row.
# - python -m flask coal recompute
#   Rebuild the summary from every ledger row.
# - python -m flask coal transactions --limit 20
#   List the most recent ledger rows.

import json

import click
from flask.cli import with_appcontext

from .extensions import db
from .services import coal_inventory_service
from .services.business_hours_service import get_business_hours_service
from .time_utils import parse_as_of


@click.group('system')
def system_group():
    """System bootstrap and repair commands."""


@system_group.command('init-db')
@with_appcontext
def init_db():
    """Create all tables that do not exist yet."""
    db.create_all()
    click.echo("PASS Tables created.")


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


@click.group('business-hours')
def business_hours_group():
    """Business hours gate inspection."""


@business_hours_group.command('show')
@with_appcontext
def show_business_hours():
    settings = get_business_hours_service().get_business_hours()
    click.echo(f"Enabled:  {settings.is_enabled}")
    click.echo(f"Timezone: {settings.operating_timezone}")
    for day in settings.working_days:
        state = f"{day.open_time}-{day.close_time}" if day.is_active else "closed"
        click.echo(f"  {day.day:<10} {state}")
    click.echo(f"Message:  {settings.off_work_message}")


@business_hours_group.command('status')
@click.option('--as-of', 'as_of', default=None, help='ISO-8601 instant to evaluate (default: now)')
@with_appcontext
def business_hours_status(as_of):
    try:
        instant = parse_as_of(as_of)
    except ValueError:
        raise click.BadParameter("must be an ISO-8601 datetime", param_hint="--as-of")
    status = get_business_hours_service().get_current_status(instant)
    click.echo("OPEN" if status.is_open else "CLOSED")
    if status.message:
        click.echo(status.message)


@business_hours_group.command('reset')
@with_appcontext
def reset_business_hours():
    result = get_business_hours_service().reset_to_default()
    click.echo(("PASS " if result.success else "WARN ") + result.message)


@click.group('coal')
def coal_group():
    """Charcoal stock ledger maintenance."""


@coal_group.command('summary')
@with_appcontext
def coal_summary():
    result = coal_inventory_service.get_summary()
    if result.error is not None:
        raise click.ClickException(str(result.error))
    if result.data is None:
        click.echo("No summary yet. Run 'python -m flask coal recompute'.")
        return
    click.echo(json.dumps(result.data.to_dict(), indent=2))


@coal_group.command('recompute')
@with_appcontext
def coal_recompute():
    result = coal_inventory_service.update_inventory_summary()
    if result.error is not None:
        raise click.ClickException(str(result.error))
    summary = result.data
    click.echo(
        f"PASS current stock {summary.current_stock_kg:.2f} kg "
        f"(premium {summary.premium_stock_kg:.2f}, standard {summary.standard_stock_kg:.2f}, "
        f"economy {summary.economy_stock_kg:.2f})"
    )


@coal_group.command('transactions')
@click.option('--limit', default=20, show_default=True, type=int)
@with_appcontext
def coal_transactions(limit):
    result = coal_inventory_service.get_transactions(limit=limit)
    if result.error is not None:
        raise click.ClickException(str(result.error))
    if not result.data:
        click.echo("No transactions.")
        return
    for tx in result.data:
        click.echo(
            f"{tx.transaction_date:%Y-%m-%d %H:%M}  {tx.transaction_type:<8} "
            f"{tx.quantity_kg:>10.2f} kg  {tx.transaction_reason:<26} {tx.source_destination}"
        )


def register_commands(app):
    """Register all CLI commands with Flask app."""
    app.cli.add_command(system_group)
    app.cli.add_command(business_hours_group)
    app.cli.add_command(coal_group)
