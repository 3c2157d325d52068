# Overview: Flask CLI command groups for bootstrap, inspection, and the till scanner.

# backend/kantin/cli.py
# Commands Legend (run from the backend directory):
# Prereqs:
# - Activate your virtualenv.
# - Use: flask --app kantin <group> <command> [options]
#
# System bootstrap/repair:
# - flask --app kantin system init
#   Idempotent bootstrap: creates tables, the admin user and sample products.
# - flask --app kantin system reset-db --yes
#   DEV/TEST only: drop and recreate all tables (deletes all data).
#
# Users:
# - flask --app kantin users list
# - flask --app kantin users create --username kasir1 --password "Kasir123!" --display-name "Bu Sari"
# - flask --app kantin users deactivate kasir1
#
# Catalog:
# - flask --app kantin products low-stock [--threshold 5]
#
# Scanner:
# - flask --app kantin scan listen [--multi] [--checkout]
#   Read codes from a keyboard-wedge scanner (one per line on stdin).

import click
from flask import current_app
from flask.cli import with_appcontext

from .extensions import db
from .formatting import format_currency
from .models import User
from .services import barcode_service, checkout_service, products_service
from .services.auth_service import create_user, set_active, PasswordValidationError
from .services.cart import Cart
from .services.checkout_service import CheckoutError
from .services.scan_service import (
    DEFAULT_COOLDOWN_SECONDS,
    MODE_MULTI,
    MODE_SINGLE,
    CameraError,
    ScanSession,
    line_decoder,
)
from .services.session_service import revoke_all_user_sessions
from .validation import InsufficientStockError, NotFoundError, ValidationError

DEFAULT_ADMIN_USERNAME = "admin"
# Meets the password rules: 8+ chars, upper, lower, digit, special char
DEFAULT_ADMIN_PASSWORD = "Admin123!"

SAMPLE_PRODUCTS = [
    {"barcode_id": "BRK001", "nama_produk": "Aqua 600ml", "kategori": "Minuman",
     "stok": 100, "harga_modal": 2500, "harga_jual": 3000},
    {"barcode_id": "BRK002", "nama_produk": "Indomie Goreng", "kategori": "Makanan",
     "stok": 75, "harga_modal": 2800, "harga_jual": 3500},
    {"barcode_id": "BRK003", "nama_produk": "Pulpen", "kategori": "Alat Tulis",
     "stok": 50, "harga_modal": 1500, "harga_jual": 2000},
]


@click.group('system')
def system_group():
    """System bootstrap and repair commands."""


@system_group.command('init')
@click.option('--no-samples', is_flag=True, help='Skip the sample products')
@with_appcontext
def init_system(no_samples):
    """
    Initialize the canteen database.

    Creates:
    - All tables (if missing)
    - User: admin / Admin123!
    - Sample products BRK001-BRK003 (unless --no-samples)

    SECURITY: Change the admin password immediately in production!
    """
    click.echo("START Initializing Kantin POS...")
    db.create_all()
    click.echo("PASS Tables ready")

    existing = db.session.query(User).filter_by(username=DEFAULT_ADMIN_USERNAME).first()
    if existing:
        click.echo(f"WARN  User '{DEFAULT_ADMIN_USERNAME}' already exists, skipping...")
    else:
        create_user(DEFAULT_ADMIN_USERNAME, DEFAULT_ADMIN_PASSWORD, display_name="Admin")
        click.echo(f"PASS Created user: {DEFAULT_ADMIN_USERNAME}")

    if not no_samples:
        for data in SAMPLE_PRODUCTS:
            if barcode_service.resolve_barcode(data["barcode_id"]) is not None:
                click.echo(f"WARN  Product {data['barcode_id']} already exists, skipping...")
                continue
            products_service.create_product(patch=dict(data))
            click.echo(f"PASS Created product: {data['barcode_id']} {data['nama_produk']}")

    click.echo("\nDefault Credentials (CHANGE IN PRODUCTION!):")
    click.echo(f"   {DEFAULT_ADMIN_USERNAME} / {DEFAULT_ADMIN_PASSWORD}")


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

    click.echo("PASS Database reset complete. Run 'flask system init' to initialize.")


@click.group('users')
def users_group():
    """User inspection and bootstrap commands."""


@users_group.command('create')
@click.option('--username', prompt=True, help='Username')
@click.option('--password', prompt=True, hide_input=True, confirmation_prompt=True, help='Password')
@click.option('--display-name', default=None, help='Name printed on receipts')
@with_appcontext
def create_user_cli(username, password, display_name):
    """
    Create a cashier account.

    Password must meet strength requirements:
    8+ chars, uppercase, lowercase, digit, special char.
    """
    try:
        user = create_user(username, password, display_name=display_name)
        click.echo(f"PASS Created user: {user.username} (ID: {user.id})")
    except PasswordValidationError as e:
        click.echo(f"FAIL Password validation failed: {str(e)}")
        click.echo("Requirements: 8+ chars, uppercase, lowercase, digit, special char")
    except ValueError as e:
        click.echo(f"FAIL Failed to create user: {str(e)}")


@users_group.command('deactivate')
@click.argument('username')
@with_appcontext
def deactivate_user_cli(username):
    """Disable an account and revoke its sessions."""
    try:
        user = set_active(username, False)
    except ValueError as e:
        click.echo(f"FAIL {str(e)}")
        return
    revoked = revoke_all_user_sessions(user.id, reason="Account deactivated")
    click.echo(f"PASS Deactivated {username}; revoked {revoked} session(s)")


@users_group.command('list')
@with_appcontext
def list_users():
    """List all users."""
    users = db.session.query(User).order_by(User.id.asc()).all()

    if not users:
        click.echo("No users found.")
        return

    click.echo("\n" + "="*70)
    click.echo(f"{'ID':<5} {'Username':<20} {'Display name':<25} {'Active':<8}")
    click.echo("="*70)

    for user in users:
        active_str = "Yes" if user.is_active else "No"
        click.echo(f"{user.id:<5} {user.username:<20} {(user.display_name or '-'):<25} {active_str:<8}")

    click.echo("="*70 + "\n")


@click.group('products')
def products_group():
    """Catalog inspection commands."""


@products_group.command('low-stock')
@click.option('--threshold', type=int, default=None, help='Defaults to LOW_STOCK_THRESHOLD')
@with_appcontext
def low_stock_cli(threshold):
    """List products at or below the stock threshold."""
    if threshold is None:
        threshold = current_app.config.get("LOW_STOCK_THRESHOLD", 10)

    products = products_service.low_stock_products(threshold)
    if not products:
        click.echo(f"No products at or below {threshold} units.")
        return

    click.echo(f"{'Barcode':<12} {'Produk':<30} {'Stok':>6}")
    for p in products:
        click.echo(f"{p.barcode_id:<12} {p.nama_produk:<30} {p.stok:>6}")


@click.group('scan')
def scan_group():
    """Keyboard-wedge scanner commands."""


@scan_group.command('listen')
@click.option('--multi', is_flag=True, help='Keep scanning after the first code')
@click.option('--cooldown', type=float, default=DEFAULT_COOLDOWN_SECONDS, show_default=True,
              help='Seconds a repeated code is ignored in --multi mode')
@click.option('--checkout', 'do_checkout', is_flag=True, help='Sell the scanned cart at the end')
@with_appcontext
def scan_listen(multi, cooldown, do_checkout):
    """
    Read codes from stdin (a USB scanner types the code and Enter), resolve
    each one and build a cart.
    """
    cart = Cart()

    def on_scan(code: str) -> None:
        product = barcode_service.resolve_barcode(code)
        if product is None:
            click.echo(f"FAIL {code}: Produk tidak ditemukan")
            return
        try:
            cart.add(product.to_dict())
        except InsufficientStockError as e:
            click.echo(f"FAIL {product.barcode_id}: {str(e)}")
            return
        click.echo(f"PASS {product.barcode_id} {product.nama_produk} {format_currency(product.harga_jual)}")

    session = ScanSession(
        line_decoder(click.get_text_stream("stdin")),
        on_scan,
        mode=MODE_MULTI if multi else MODE_SINGLE,
        cooldown_seconds=cooldown,
    )
    try:
        session.run()
    except CameraError as e:
        raise click.ClickException(str(e))

    if not len(cart):
        click.echo("Keranjang kosong")
        return

    click.echo(f"TOTAL {cart.item_count} item(s) {format_currency(cart.total)}")

    if do_checkout:
        try:
            result = checkout_service.checkout_cart(cart.to_checkout_items())
        except (ValidationError, NotFoundError, CheckoutError) as e:
            raise click.ClickException(str(e))
        codes = ", ".join(t.transaksi_id for t in result.entries)
        click.echo(f"PASS Checkout {result.checkout_id}: {codes}")


def register_commands(app):
    """Register all CLI commands with Flask app."""
    app.cli.add_command(system_group)
    app.cli.add_command(users_group)
    app.cli.add_command(products_group)
    app.cli.add_command(scan_group)
