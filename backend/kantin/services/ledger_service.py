# Overview: Service-layer operations for the transaction ledger; append-only sale records.

from __future__ import annotations

from datetime import date

from ..extensions import db
from ..models import Product, Transaction
from ..validation import NotFoundError
from kantin.time_utils import day_bounds, utcnow
"""
Ledger invariants

- One row per sold cart line, written in the same DB transaction as the
  stock decrement it records.
- No update path. Rows disappear only when that DB transaction rolls back.
- Product name/price are copied at sale time, never re-joined.
"""


def compute_totals(product: Product, jumlah: int) -> tuple[int, int]:
    """(total_harga, keuntungan) for selling `jumlah` units at today's prices."""
    total_harga = jumlah * product.harga_jual
    keuntungan = jumlah * (product.harga_jual - product.harga_modal)
    return total_harga, keuntungan


def append_entry(
    *,
    product: Product,
    transaksi_id: str,
    jumlah: int,
    checkout_id: str | None = None,
    created_by_user_id: int | None = None,
) -> Transaction:
    """Insert a ledger row and flush (assigns id). Does not commit."""
    total_harga, keuntungan = compute_totals(product, jumlah)

    entry = Transaction(
        transaksi_id=transaksi_id,
        product_id=product.id,
        barcode_id=product.barcode_id,
        nama_produk=product.nama_produk,
        jumlah=jumlah,
        harga_satuan=product.harga_jual,
        total_harga=total_harga,
        keuntungan=keuntungan,
        checkout_id=checkout_id,
        created_by_user_id=created_by_user_id,
        created_at=utcnow(),
    )
    db.session.add(entry)
    db.session.flush()
    return entry


def transactions_query(start: date | None = None, end: date | None = None):
    """Newest-first query, optionally limited to an inclusive day range."""
    start_dt, end_dt = day_bounds(start, end)
    q = db.session.query(Transaction)
    if start_dt:
        q = q.filter(Transaction.created_at >= start_dt)
    if end_dt:
        q = q.filter(Transaction.created_at < end_dt)
    return q.order_by(Transaction.created_at.desc(), Transaction.id.desc())


def list_transactions(start: date | None = None, end: date | None = None) -> list[Transaction]:
    return transactions_query(start, end).all()


def get_transaction(transaksi_id: str) -> Transaction:
    entry = (
        db.session.query(Transaction)
        .filter(Transaction.transaksi_id == transaksi_id.strip().upper())
        .first()
    )
    if entry is None:
        raise NotFoundError("Transaksi tidak ditemukan")
    return entry


def get_checkout_entries(checkout_id: str) -> list[Transaction]:
    return (
        db.session.query(Transaction)
        .filter(Transaction.checkout_id == checkout_id)
        .order_by(Transaction.id.asc())
        .all()
    )
