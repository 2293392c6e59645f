# Overview: Flask CLI command groups for store bootstrap, inspection and counter work.

# backend/stockpos/cli.py
# Commands Legend (run from the backend directory):
# - python -m flask --app wsgi store init
#   Create the data directory and an empty state document (idempotent).
# - python -m flask --app wsgi store show
#   Print collection counts for the current state document.
# - python -m flask --app wsgi store reset --yes
#   DEV/TEST only: replace the state document with an empty one.
# - python -m flask --app wsgi products add --name "Widget" --category Tools --price 5 --quantity 10
#   Create a product (low stock threshold defaults to 10).
# - python -m flask --app wsgi products list
#   List products; low-stock rows are flagged.
# - python -m flask --app wsgi sales record --item <product_id>:3:5 --total 15
#   Record a sale from the counter. --item is PRODUCT_ID:QTY[:PRICE] and may repeat.
# - python -m flask --app wsgi sales list
#   List recorded sales.
# - python -m flask --app wsgi ledger list [--product-id <id>]
#   List stock transactions.

import click
from flask import current_app
from flask.cli import with_appcontext

from .models import State
from .services import products_service, sales_service
from .services.ledger_service import list_stock_transactions
from .services.products_service import ProductPersistenceError
from .services.sales_service import SaleError
from .services.state_store import get_state_store
from .validation import ValidationError


@click.group('store')
def store_group():
    """State document bootstrap and inspection commands."""


@store_group.command('init')
@with_appcontext
def init_store():
    """Create the backing storage and an empty document if none exists."""
    store = get_state_store()
    store.initialize()
    click.echo(f"PASS State store ready: {store.describe()}")


@store_group.command('show')
@with_appcontext
def show_store():
    """Print collection counts."""
    store = get_state_store()
    state = store.load()
    click.echo(f"Store: {store.describe()}")
    click.echo(f"  products:          {len(state.products)}")
    click.echo(f"  sales:             {len(state.sales)}")
    click.echo(f"  customers:         {len(state.customers)}")
    click.echo(f"  stockTransactions: {len(state.stockTransactions)}")


@store_group.command('reset')
@click.option('--yes', is_flag=True, help='Skip confirmation')
@with_appcontext
def reset_store(yes):
    """
    DANGER: Replace the state document with an empty one.

    This will DELETE ALL DATA!
    """
    if not yes:
        click.confirm("WARN This will DELETE ALL DATA. Are you sure?", abort=True)

    if not get_state_store().save(State()):
        raise click.ClickException("State document write failed")
    click.echo("PASS State document reset.")


# =============================================================================
# PRODUCT COMMANDS
# =============================================================================

@click.group('products')
def products_group():
    """Product inspection and bootstrap commands."""


@products_group.command('add')
@click.option('--name', required=True, help='Product name')
@click.option('--category', default='', help='Category label')
@click.option('--price', required=True, help='Unit price')
@click.option('--quantity', required=True, help='Units on hand')
@click.option('--low-stock-threshold', default=None, help='Low stock warning level')
@with_appcontext
def add_product_cli(name, category, price, quantity, low_stock_threshold):
    """Create a product."""
    payload = {
        "name": name,
        "category": category,
        "price": price,
        "quantity": quantity,
        "lowStockThreshold": low_stock_threshold,
    }
    try:
        product = products_service.create_product(
            get_state_store(),
            payload,
            default_low_stock_threshold=current_app.config["DEFAULT_LOW_STOCK_THRESHOLD"],
        )
    except (ValidationError, ProductPersistenceError) as e:
        raise click.ClickException(str(e))

    click.echo(f"PASS Created product: {product.name} (ID: {product.id}, Qty: {product.quantity})")


@products_group.command('list')
@with_appcontext
def list_products_cli():
    """List all products."""
    products = products_service.list_products(get_state_store())

    if not products:
        click.echo("No products found.")
        return

    click.echo("\n" + "="*90)
    click.echo(f"{'ID':<26} {'Name':<25} {'Category':<15} {'Price':>9} {'Qty':>6}  Low")
    click.echo("="*90)

    for p in products:
        low_str = "LOW" if p.is_low_stock else ""
        click.echo(f"{p.id:<26} {p.name:<25} {p.category or '-':<15} {p.price:>9} {p.quantity:>6}  {low_str}")

    click.echo("="*90 + "\n")


# =============================================================================
# SALES COMMANDS
# =============================================================================

@click.group('sales')
def sales_group():
    """Counter sale commands."""


def _parse_item_option(raw: str) -> dict:
    parts = raw.split(":")
    if len(parts) not in (2, 3) or not parts[0]:
        raise click.BadParameter(f"expected PRODUCT_ID:QTY[:PRICE], got {raw!r}", param_hint="--item")
    item = {"productId": parts[0], "quantity": parts[1]}
    if len(parts) == 3:
        item["price"] = parts[2]
    return item


@sales_group.command('record')
@click.option('--item', 'items', multiple=True, required=True, help='PRODUCT_ID:QTY[:PRICE], repeatable')
@click.option('--total', required=True, help='Total amount charged')
@click.option('--customer', default=None, help='Customer name (default Walk-in Customer)')
@click.option('--payment', default=None, help='Payment method (default cash)')
@with_appcontext
def record_sale_cli(items, total, customer, payment):
    """Record a sale."""
    payload = {
        "items": [_parse_item_option(raw) for raw in items],
        "totalAmount": total,
        "customerName": customer,
        "paymentMethod": payment,
    }
    try:
        sale = sales_service.record_sale(get_state_store(), payload)
    except SaleError as e:
        raise click.ClickException(str(e))

    click.echo(f"PASS Recorded sale {sale.id}: {len(sale.items)} item(s), total {sale.totalAmount}")


@sales_group.command('list')
@with_appcontext
def list_sales_cli():
    """List recorded sales."""
    sales = sales_service.list_sales(get_state_store())

    if not sales:
        click.echo("No sales found.")
        return

    for sale in sales:
        click.echo(
            f"{sale.date}  {sale.id:<26} {sale.customerName:<20} "
            f"{sale.paymentMethod:<8} {sale.totalAmount:>9}  items={len(sale.items)}"
        )


# =============================================================================
# LEDGER COMMANDS
# =============================================================================

@click.group('ledger')
def ledger_group():
    """Stock ledger inspection."""


@ledger_group.command('list')
@click.option('--product-id', default=None, help='Only entries for this product')
@with_appcontext
def list_ledger_cli(product_id):
    """List stock transactions in append order."""
    entries = list_stock_transactions(get_state_store(), product_id=product_id)

    if not entries:
        click.echo("No stock transactions found.")
        return

    for t in entries:
        click.echo(f"{t.date}  {t.productId:<26} {t.type:<4} {t.quantity:>6}  {t.reason}")


def register_commands(app):
    """Register all CLI commands with Flask app."""
    app.cli.add_command(store_group)
    app.cli.add_command(products_group)
    app.cli.add_command(sales_group)
    app.cli.add_command(ledger_group)
