# Overview: Flask CLI command groups for bootstrap, inspection, and month-end payouts.

# backend/payout_console/cli.py
# Commands Legend (run from the backend directory):
# Prereqs:
# - Activate your virtualenv.
# - Set FLASK_APP to payout_console (PowerShell: $env:FLASK_APP="payout_console").
# - Use: python -m flask <group> <command> [options]
#
# System bootstrap/repair:
# - python -m flask system init [--password "Password123!"]
#   Idempotent bootstrap: creates tables and the default admin/manager/sales users.
# - python -m flask system reset-db --yes
#   DEV/TEST only: drop and recreate all tables (deletes all data).
#
# Users:
# - python -m flask users list
# - python -m flask users create --email ops@example.com --password "Password123!" --role manager
#
# Partners and payouts:
# - python -m flask brands list [--all]
# - python -m flask payouts summary [--month 2024-10]
# - python -m flask payouts settle Nike [--month 2024-10] --yes
# - python -m flask sales export [--month 2024-10] [--output Invoices.csv]

import click
from flask import current_app
from flask.cli import with_appcontext

from .errors import ConsoleError
from .extensions import db
from .models import User
from .models.auth import ROLE_ADMIN, ROLE_MANAGER, ROLE_SALES, VALID_ROLES
from .money import format_cents
from .services import aggregation_service, catalog_service, export_service, sales_service, settlement_service
from .services.aggregation_service import SalesFilter
from .services.auth_service import create_user, PasswordValidationError
from .time_utils import local_date, report_tz, utcnow


DEFAULT_USERS = (
    ("admin@payouts.local", ROLE_ADMIN),
    ("manager@payouts.local", ROLE_MANAGER),
    ("sales@payouts.local", ROLE_SALES),
)


def _month_filter(month):
    try:
        return SalesFilter.from_args({"month": month})
    except ConsoleError as e:
        raise click.BadParameter(e.message, param_hint="--month")


@click.group('system')
def system_group():
    """System bootstrap and repair commands."""


@system_group.command('init')
@click.option('--password', default='Password123!', show_default=True, help='Password for the default users')
@with_appcontext
def init_system(password):
    """
    Create tables and the default users (one per role).

    SECURITY: Change passwords immediately in production!
    """
    click.echo("START Initializing payout console...")
    db.create_all()

    for email, role in DEFAULT_USERS:
        if db.session.query(User).filter_by(email=email).first():
            click.echo(f"PASS User exists: {email}")
            continue
        try:
            create_user(email=email, password=password, role=role)
        except ConsoleError as e:
            raise click.ClickException(f"Failed to create {email}: {e.message}")
        click.echo(f"PASS Created user: {email} ({role})")

    click.echo("PASS Initialization complete.")


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
    """User management commands."""


@users_group.command('create')
@click.option('--email', prompt=True, help='Email address')
@click.option('--password', prompt=True, hide_input=True, confirmation_prompt=True, help='Password')
@click.option('--role', type=click.Choice(sorted(VALID_ROLES)), prompt=True, help='Role')
@click.option('--name', 'display_name', default=None, help='Display name')
@with_appcontext
def create_user_cli(email, password, role, display_name):
    """
    Create a console user.

    Password must be 8+ characters with upper, lower, digit and special.
    """
    try:
        user = create_user(email=email, password=password, role=role, display_name=display_name)
    except PasswordValidationError as e:
        raise click.ClickException(f"Password validation failed: {e.message}")
    except ConsoleError as e:
        raise click.ClickException(e.message)

    click.echo(f"PASS Created user: {user.email} with role '{user.effective_role}'")


@users_group.command('list')
@with_appcontext
def list_users():
    """List all users with their roles."""
    users = db.session.query(User).order_by(User.id).all()

    if not users:
        click.echo("No users found.")
        return

    click.echo("\n" + "="*70)
    click.echo(f"{'ID':<5} {'Email':<35} {'Role':<10} {'Active'}")
    click.echo("="*70)
    for user in users:
        active_str = "Yes" if user.is_active else "No"
        click.echo(f"{user.id:<5} {user.email:<35} {user.effective_role:<10} {active_str}")
    click.echo("="*70 + "\n")


@click.group('brands')
def brands_group():
    """Brand partner commands."""


@brands_group.command('list')
@click.option('--all', 'include_inactive', is_flag=True, help='Include deactivated brands')
@with_appcontext
def list_brands(include_inactive):
    brands = catalog_service.list_brands(include_inactive=include_inactive)
    if not brands:
        click.echo("No brands found.")
        return

    for brand in brands:
        status = "" if brand.is_active else " (inactive)"
        contact = brand.contact_email or "-"
        click.echo(
            f"{brand.id:<5} {brand.name:<30} {brand.commission_rate_bps / 100:>6.2f}% "
            f"{brand.partnership_type:<14} {contact}{status}"
        )


@click.group('payouts')
def payouts_group():
    """Month-end payout commands."""


@payouts_group.command('summary')
@click.option('--month', default=None, help='Calendar month, YYYY-MM')
@with_appcontext
def payouts_summary(month):
    """Per-brand totals, largest payout first."""
    filters = _month_filter(month)
    symbol = current_app.config["CURRENCY_SYMBOL"]
    aggregates = aggregation_service.aggregate_by_brand(
        sales_service.list_sales(), filters, report_tz(), order=aggregation_service.ORDER_PAYOUT
    )
    if not aggregates:
        click.echo("No sales found.")
        return

    for agg in aggregates:
        click.echo(
            f"{agg.brand_name:<30} sales={agg.count:<4} "
            f"gross={format_cents(agg.total_gross_cents, symbol):>14} "
            f"commission={format_cents(agg.total_commission_cents, symbol):>12} "
            f"payout={format_cents(agg.total_payout_cents, symbol):>14} "
            f"pending={format_cents(agg.pending_payout_cents, symbol):>14}"
        )


@payouts_group.command('settle')
@click.argument('brand_name')
@click.option('--month', default=None, help='Only settle sales from this month, YYYY-MM')
@click.option('--yes', is_flag=True, help='Skip confirmation')
@with_appcontext
def payouts_settle(brand_name, month, yes):
    """Mark a brand's pending sales as settled."""
    filters = _month_filter(month)
    tz = report_tz()
    try:
        pending = settlement_service.pending_sales(brand_name, filters, tz)
        if not pending:
            raise click.ClickException(f"No pending sales to settle for {brand_name}")

        total = sum(r.payout_cents for r in pending)
        if not yes:
            click.confirm(
                f"Settle {len(pending)} sale(s) for {brand_name}, payout "
                f"{format_cents(total, current_app.config['CURRENCY_SYMBOL'])}?",
                abort=True,
            )

        result = settlement_service.settle_brand(brand_name, filters=filters, tz=tz)
    except ConsoleError as e:
        raise click.ClickException(e.message)

    click.echo(f"PASS Settled {result.count} sale(s) for {result.brand_name}")


@click.group('sales')
def sales_group():
    """Sale ledger commands."""


@sales_group.command('export')
@click.option('--month', default=None, help='Calendar month, YYYY-MM')
@click.option('--output', type=click.Path(dir_okay=False, writable=True), default=None,
              help='File to write (default Invoices_<today>.csv)')
@with_appcontext
def export_sales(month, output):
    """Write the ledger as CSV."""
    filters = _month_filter(month)
    tz = report_tz()
    records = aggregation_service.filter_sales(sales_service.list_sales(), filters, tz)
    path = output or export_service.export_filename(local_date(utcnow(), tz))
    with open(path, "w", encoding="utf-8", newline="") as fh:
        fh.write(export_service.sales_csv(records, tz))
    click.echo(f"PASS Wrote {len(records)} row(s) to {path}")


def register_commands(app):
    """Register all CLI commands with Flask app."""
    app.cli.add_command(system_group)
    app.cli.add_command(users_group)
    app.cli.add_command(brands_group)
    app.cli.add_command(payouts_group)
    app.cli.add_command(sales_group)
