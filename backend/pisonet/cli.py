# Overview: Flask CLI command groups for the daily aggregation, harvest settlement and maintenance.

# backend/pisonet/cli.py
# Commands Legend (run from the backend directory):
# Prereqs:
# - Activate your virtualenv.
# - Use: python -m flask --app pisonet <group> <command> [options]
#
# Daily aggregation (schedule `aggregates run` at 23:59 business time, e.g. cron
# "59 23 * * *" with the host clock on Asia/Manila):
# - python -m flask --app pisonet aggregates run
#   Aggregate today's sales (business timezone) into per-branch rows.
# - python -m flask --app pisonet aggregates run --date 2026-10-18
#   Re-run or backfill a specific business date (safe to repeat).
# - python -m flask --app pisonet aggregates history BRANCH_ID --limit 7
#   Show the most recent daily aggregates of a branch.
#
# Harvest settlement:
# - python -m flask --app pisonet harvest pending DEVICE_ID
#   Show what a harvest of the unit would settle right now (no writes).
# - python -m flask --app pisonet harvest settle DEVICE_ID
#   Mark the unit's unharvested aggregates harvested and print the totals.
#
# System:
# - python -m flask --app pisonet system reset-db --yes
#   DEV/TEST only: drop and recreate all tables (deletes all data).
# - python -m flask --app pisonet system seed-demo --days 7
#   DEV only: create demo branches, units, today's sales and unharvested unit aggregates.

import random
from datetime import timedelta

import click
from flask import current_app
from flask.cli import with_appcontext

from .extensions import db
from .models import Branch, Unit, SaleEvent, UnitDailyAggregate, COIN_DENOMINATIONS
from .services import aggregation_service, harvest_service, history_service
from .services.aggregation_service import AggregationError
from .services.harvest_service import HarvestError
from .services.history_service import HistoryError
from .time_utils import (
    business_date_for,
    business_day_window,
    format_date_id,
    parse_date_id,
    utcnow,
)


@click.group('aggregates')
def aggregates_group():
    """Daily sales aggregation commands."""


@aggregates_group.command('run')
@click.option('--date', 'date_id', help='Business date to aggregate (YYYY-MM-DD); defaults to today')
@with_appcontext
def run_aggregation_cli(date_id):
    """
    Aggregate one business day of sales into per-branch rows.

    Exits non-zero on failure so the scheduler can apply its retry policy.
    """
    business_date = None
    if date_id:
        try:
            business_date = parse_date_id(date_id)
        except ValueError:
            raise click.BadParameter("must be YYYY-MM-DD", param_hint="--date")

    try:
        run = aggregation_service.run_daily_aggregation(
            db.session,
            business_date=business_date,
            utc_offset_minutes=current_app.config["BUSINESS_UTC_OFFSET_MINUTES"],
        )
    except AggregationError as e:
        click.echo(f"FAIL {e} {e.details}", err=True)
        raise SystemExit(1)

    if not run.sales_count:
        click.echo(f"PASS No sales found for {run.date_id}; nothing written.")
        return

    click.echo(f"PASS Aggregated {run.sales_count} sales across {run.branch_count} branches for {run.date_id}")
    for branch_id, total in run.branch_totals.items():
        click.echo(f"  {branch_id:<24} P{total}")


@aggregates_group.command('history')
@click.argument('branch_id')
@click.option('--limit', type=int, default=30, show_default=True, help='Max days to show')
@with_appcontext
def branch_history_cli(branch_id, limit):
    """Show the most recent daily aggregates of a branch."""
    try:
        history = history_service.branch_aggregate_history(db.session, branch_id, limit=limit)
    except HistoryError as e:
        click.echo(f"FAIL {e}", err=True)
        raise SystemExit(1)

    if not history.records:
        click.echo(f"No aggregates yet for {history.location}.")
        return

    click.echo("\n" + "="*80)
    click.echo(f"{history.location} ({history.branch_id})")
    click.echo(f"{'Date':<14} {'Txns':>6} {'Revenue':>10} {'P1':>6} {'P5':>6} {'P10':>6} {'P20':>6} {'Coins':>7}")
    click.echo("="*80)
    for record in history.records:
        coins = record.coin_breakdown
        click.echo(
            f"{record.date_id:<14} {record.total_transactions:>6} {'P' + str(record.total_revenue):>10} "
            f"{coins['peso1']:>6} {coins['peso5']:>6} {coins['peso10']:>6} {coins['peso20']:>6} "
            f"{record.total_coins:>7}"
        )
    click.echo("="*80 + "\n")


@click.group('harvest')
def harvest_group():
    """Harvest settlement commands."""


def _echo_harvest(result):
    click.echo(f"  Device:        {result.device_id}")
    click.echo(f"  Branch:        {result.branch_location or '-'} ({result.branch_id or 'unassigned'})")
    click.echo(f"  Days:          {result.date_range['start']} .. {result.date_range['end']} ({result.documents_updated})")
    click.echo(f"  Sales:         {result.sales_count}")
    click.echo(f"  Coins:         P1 x{result.coins_1}, P5 x{result.coins_5}, P10 x{result.coins_10}, P20 x{result.coins_20}")
    click.echo(f"  Total:         P{result.total_harvested}")


@harvest_group.command('pending')
@click.argument('device_id')
@with_appcontext
def pending_harvest_cli(device_id):
    """Show what a harvest of the unit would settle (no writes)."""
    try:
        result = harvest_service.preview_unit_harvest(db.session, device_id)
    except HarvestError as e:
        click.echo(f"FAIL {e}", err=True)
        raise SystemExit(1)

    click.echo("Pending harvest:")
    _echo_harvest(result)


@harvest_group.command('settle')
@click.argument('device_id')
@with_appcontext
def settle_harvest_cli(device_id):
    """Mark the unit's unharvested aggregates harvested and print the totals."""
    try:
        result = harvest_service.settle_unit_harvest(db.session, device_id)
    except HarvestError as e:
        click.echo(f"FAIL {e}", err=True)
        raise SystemExit(1)

    click.echo("PASS Harvest settled:")
    _echo_harvest(result)


@click.group('system')
def system_group():
    """System bootstrap and repair commands."""


@system_group.command('reset-db')
@click.option('--yes', is_flag=True, help='Skip confirmation')
@with_appcontext
def reset_db(yes):
    """
    DEV/TEST only: drop and recreate all tables.

    WARNING: Deletes all sales, units, branches and aggregates!
    """
    if not yes:
        click.confirm('This will DELETE ALL DATA. Continue?', abort=True)

    db.drop_all()
    db.create_all()
    click.echo("PASS Database reset complete")


@system_group.command('seed-demo')
@click.option('--days', type=int, default=7, show_default=True, help='Days of unharvested unit aggregates per unit')
@click.option('--sales', 'sales_per_unit', type=int, default=20, show_default=True, help='Sales per unit for today')
@click.option('--seed', type=int, default=None, help='Random seed for repeatable data')
@with_appcontext
def seed_demo(days, sales_per_unit, seed):
    """
    DEV only: idempotently create demo branches and units, then add today's
    sales and unharvested per-unit aggregates for the previous days.
    """
    rng = random.Random(seed)
    offset = current_app.config["BUSINESS_UTC_OFFSET_MINUTES"]

    layout = {
        "branch-main": ("Main", "Poblacion, Main St."),
        "branch-market": ("Market", "Public Market Annex"),
    }
    for branch_id, (name, location) in layout.items():
        if db.session.get(Branch, branch_id) is None:
            db.session.add(Branch(id=branch_id, name=name, location=location))
            click.echo(f"PASS Created branch {branch_id}")

    device_ids = []
    for branch_id in layout:
        for n in range(1, 3):
            device_id = f"{branch_id.split('-')[1].upper()}-{n:02d}"
            device_ids.append(device_id)
            if db.session.get(Unit, device_id) is None:
                db.session.add(Unit(device_id=device_id, branch_id=branch_id, alias=f"PC {n}"))
                click.echo(f"PASS Created unit {device_id} -> {branch_id}")
    db.session.flush()

    today = business_date_for(utcnow(), offset)
    window = business_day_window(today, offset)
    for device_id in device_ids:
        ts = window.start
        for _ in range(sales_per_unit):
            ts = ts + timedelta(minutes=rng.randint(1, 30))
            if ts > window.end:
                break
            coins = {name: rng.randint(0, 5) for name in COIN_DENOMINATIONS}
            total = sum(coins[name] * value for name, value in COIN_DENOMINATIONS.items())
            db.session.add(SaleEvent(device_id=device_id, total=total, timestamp=ts, **coins))

        for back in range(1, days + 1):
            date_id = format_date_id(today - timedelta(days=back))
            if db.session.get(UnitDailyAggregate, (device_id, date_id)) is not None:
                continue
            coins = {name: rng.randint(10, 80) for name in COIN_DENOMINATIONS}
            db.session.add(UnitDailyAggregate(
                device_id=device_id,
                date_id=date_id,
                total=sum(coins[name] * value for name, value in COIN_DENOMINATIONS.items()),
                sales_count=rng.randint(5, 15),
                harvested=False,
                **coins,
            ))

    db.session.commit()
    click.echo(f"PASS Seeded {len(device_ids)} units with sales for {window.date_id} and {days} days of unit aggregates")


def register_commands(app):
    """Register all CLI commands with Flask app."""
    app.cli.add_command(aggregates_group)
    app.cli.add_command(harvest_group)
    app.cli.add_command(system_group)
