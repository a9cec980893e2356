# Overview: Flask CLI command group for bootstrap and inspection.

# Commands Legend (run from the backend directory):
# Prereqs:
# - Activate your virtualenv.
# - Set FLASK_APP to wsgi.py (PowerShell: $env:FLASK_APP="wsgi.py").
# - Use: python -m flask billing <command> [options]
#
# Bootstrap/repair:
# - python -m flask billing init-db
#   Create any missing tables (idempotent).
# - python -m flask billing reset-db --yes
#   DEV/TEST only: drop and recreate all tables (deletes all data).
# - python -m flask billing seed-demo
#   Add shop settings, categories, items and customers for a demo shop (idempotent).
#
# Inspection:
# - python -m flask billing dues --filter overdue
#   Unpaid credit invoices (all | overdue | due_soon).
# - python -m flask billing low-stock
#   Active items at or below their minimum stock alert.

import click
from flask.cli import with_appcontext

from .extensions import db
from .models import Category, Customer, Item, ShopSettings
from .services import report_service
from .services.report_service import DUES_FILTERS


DEMO_CATEGORIES = [
    ("Hardware", "Fasteners, tools and fittings"),
    ("Electrical", "Wires, switches and lighting"),
    ("Paints", "Paints, primers and thinners"),
]

# (name, unit, hsn_code, quantity_in_stock, minimum_stock_alert, category)
DEMO_ITEMS = [
    ("Steel Screws 1in", "box", "7318", 40, 10, "Hardware"),
    ("Claw Hammer", "pcs", "8205", 12, 5, "Hardware"),
    ("Copper Wire 1.5mm", "mtr", "8544", 500, 100, "Electrical"),
    ("LED Bulb 9W", "pcs", "8539", 3, 10, "Electrical"),
    ("Wall Primer", "ltr", "3209", 60, 20, "Paints"),
]

# (name, phone, city, credit_eligible)
DEMO_CUSTOMERS = [
    ("Walk-in Customer", None, None, False),
    ("Sharma Constructions", "9800000001", "Pune", True),
    ("Patel Electricals", "9800000002", "Surat", True),
]


@click.group('billing')
def billing_group():
    """Bill Master bootstrap and inspection commands."""


@billing_group.command('init-db')
@with_appcontext
def init_db():
    """Create all tables that do not exist yet."""
    db.create_all()
    click.echo("PASS Database tables ready.")


@billing_group.command('reset-db')
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

    click.echo("PASS Database reset complete. Run 'python -m flask billing seed-demo' for demo data.")


@billing_group.command('seed-demo')
@click.option('--shop-name', default='Demo Hardware Store', help='Shop name for the settings row')
@with_appcontext
def seed_demo(shop_name):
    """
    Seed a demo shop: settings, categories, stock items and customers.

    Existing rows (matched by name) are left alone.
    """
    click.echo("START Seeding demo data...")

    if not db.session.query(ShopSettings).first():
        db.session.add(ShopSettings(shop_name=shop_name, invoice_prefix="INV"))
        click.echo(f"PASS Created shop settings: {shop_name}")
    else:
        click.echo("WARN  Shop settings already exist, skipping...")

    categories = {}
    for name, description in DEMO_CATEGORIES:
        category = db.session.query(Category).filter_by(name=name).first()
        if not category:
            category = Category(name=name, description=description)
            db.session.add(category)
            db.session.flush()
            click.echo(f"PASS Created category: {name}")
        categories[name] = category

    for name, unit, hsn, stock, minimum, category_name in DEMO_ITEMS:
        if db.session.query(Item).filter_by(name=name).first():
            click.echo(f"WARN  Item '{name}' already exists, skipping...")
            continue
        db.session.add(Item(
            name=name,
            unit=unit,
            hsn_code=hsn,
            quantity_in_stock=stock,
            minimum_stock_alert=minimum,
            category_id=categories[category_name].id,
        ))
        click.echo(f"PASS Created item: {name} ({stock} {unit})")

    for name, phone, city, credit_eligible in DEMO_CUSTOMERS:
        if db.session.query(Customer).filter_by(name=name).first():
            click.echo(f"WARN  Customer '{name}' already exists, skipping...")
            continue
        db.session.add(Customer(name=name, phone=phone, city=city, credit_eligible=credit_eligible))
        click.echo(f"PASS Created customer: {name}")

    db.session.commit()
    click.echo("DONE Demo data ready.")


@billing_group.command('dues')
@click.option('--filter', 'dues_filter', type=click.Choice(DUES_FILTERS), default='all', show_default=True)
@with_appcontext
def list_dues(dues_filter):
    """List unpaid credit invoices, earliest due first."""
    report = report_service.credit_dues(dues_filter=dues_filter)

    if not report["rows"]:
        click.echo("No outstanding credit dues.")
        return

    click.echo(f"\n{'Invoice':<12} {'Customer':<28} {'Balance':>12} {'Due':<12} Status")
    click.echo("-" * 90)
    for row in report["rows"]:
        click.echo(
            f"{row['invoice_number']:<12} {row['customer_name'][:28]:<28} "
            f"{row['balance_due']:>12} {row['due_date'] or '-':<12} {row['due_status']}"
        )
    click.echo("-" * 90)
    click.echo(f"{report['count']} invoice(s), total due {report['total_due']}")


@billing_group.command('low-stock')
@with_appcontext
def low_stock():
    """List active items at or below their minimum stock alert."""
    report = report_service.low_stock_report()

    if not report["rows"]:
        click.echo("PASS No items below their minimum stock alert.")
        return

    for row in report["rows"]:
        click.echo(
            f"WARN  {row['name']}: {row['quantity_in_stock']} {row['unit']} "
            f"(alert at {row['minimum_stock_alert']})"
        )


def register_commands(app):
    """Register all CLI commands with Flask app."""
    app.cli.add_command(billing_group)
