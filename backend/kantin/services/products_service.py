# backend/kantin/services/products_service.py
"""
Products Service

- list_products returns the whole catalog, newest first (no pagination)
- create/update enforce the price rule (harga_jual > harga_modal) on the
  resulting record
- decrement_stock is the only write path for sales
"""
from __future__ import annotations

from sqlalchemy import update

from ..extensions import db
from ..models import Product, Transaction
from ..validation import ConflictError, NotFoundError, ValidationError, enforce_rules_product
from kantin.time_utils import utcnow

PRODUCT_MUTABLE_FIELDS = {"barcode_id", "nama_produk", "kategori", "stok", "harga_modal", "harga_jual"}


def apply_product_patch(p: Product, patch: dict) -> None:
    for k, v in patch.items():
        if k not in PRODUCT_MUTABLE_FIELDS:
            continue
        setattr(p, k, v)


def _current_values(p: Product) -> dict:
    return {k: getattr(p, k) for k in PRODUCT_MUTABLE_FIELDS}


def list_products() -> list[Product]:
    return (
        db.session.query(Product)
        .order_by(Product.created_at.desc(), Product.id.desc())
        .all()
    )


def get_product(product_id: int) -> Product:
    p = db.session.get(Product, product_id)
    if p is None:
        raise NotFoundError("Produk tidak ditemukan")
    return p


def create_product(*, patch: dict) -> Product:
    """
    Create product from a validated patch dict.

    Raises:
        ValidationError: price rule / category / barcode format
        ConflictError: barcode already used
    """
    missing_prices = sorted(k for k in ("harga_jual", "harga_modal") if patch.get(k) is None)
    if missing_prices:
        raise ValidationError(f"Missing required fields: {', '.join(missing_prices)}")

    enforce_rules_product(patch)

    existing = db.session.query(Product).filter(Product.barcode_id == patch["barcode_id"]).first()
    if existing:
        raise ConflictError("Barcode sudah digunakan produk lain")

    p = Product()
    apply_product_patch(p, patch)
    if p.stok is None:
        p.stok = 0

    db.session.add(p)
    db.session.commit()
    return p


def update_product(*, product_id: int, patch: dict) -> Product:
    """
    Partial update by id. The price rule is checked against the merged record.

    Raises NotFoundError, ValidationError, ConflictError.
    """
    p = get_product(product_id)

    enforce_rules_product(patch, current=_current_values(p))

    if "barcode_id" in patch and patch["barcode_id"] != p.barcode_id:
        clash = (
            db.session.query(Product)
            .filter(Product.barcode_id == patch["barcode_id"], Product.id != p.id)
            .first()
        )
        if clash:
            raise ConflictError("Barcode sudah digunakan produk lain")

    apply_product_patch(p, patch)
    db.session.commit()
    return p


def delete_product(*, product_id: int) -> None:
    """Hard delete. Ledger rows keep their own name/price snapshot."""
    p = get_product(product_id)
    # SQLite does not enforce ON DELETE SET NULL unless foreign keys are enabled
    db.session.execute(
        update(Transaction)
        .where(Transaction.product_id == p.id)
        .values(product_id=None)
        .execution_options(synchronize_session=False)
    )
    db.session.delete(p)
    db.session.commit()


def decrement_stock(product_id: int, quantity: int) -> bool:
    """
    Conditionally take `quantity` units: stok = stok - quantity WHERE stok >= quantity.

    Single statement, so two checkouts cannot both spend the same units.
    Returns False when the row no longer has enough stock. Does not commit.
    """
    stmt = (
        update(Product)
        .where(Product.id == product_id, Product.stok >= quantity)
        .values(stok=Product.stok - quantity, updated_at=utcnow())
        .execution_options(synchronize_session="fetch")
    )
    result = db.session.execute(stmt)
    return bool(result.rowcount)


def current_stock(product_id: int) -> int | None:
    return db.session.query(Product.stok).filter(Product.id == product_id).scalar()


def low_stock_products(threshold: int) -> list[Product]:
    return (
        db.session.query(Product)
        .filter(Product.stok <= threshold)
        .order_by(Product.stok.asc(), Product.nama_produk.asc())
        .all()
    )
