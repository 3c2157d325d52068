# Overview: Receipt rendering; pure formatting of completed sales into printable HTML.

"""
Receipt Renderer

build_receipt() turns ledger entries (one, or every line of a cart checkout)
into a receipt dict; render_receipt() turns that dict plus display settings
into the HTML the till prints. Rendering reads nothing from the database.
"""

from __future__ import annotations

from flask import render_template

from kantin.time_utils import to_utc_z, utcnow

from .settings_service import DEFAULT_RECEIPT_SETTINGS


def _entry_dict(entry) -> dict:
    return entry.to_dict() if hasattr(entry, "to_dict") else dict(entry)


def build_receipt(entries: list, discounts: dict[str, int] | None = None, *, kasir: str | None = None) -> dict:
    """
    Aggregate ledger entries (models or dicts) into one receipt.

    The first entry's code and time head the receipt. discounts maps
    barcode_id -> rupiah off that line.
    """
    rows = [_entry_dict(e) for e in entries]
    if not rows:
        raise ValueError("A receipt needs at least one line")
    discounts = discounts or {}

    items = []
    for row in rows:
        line_discount = min(int(discounts.get(row["barcode_id"], 0)), row["total_harga"])
        items.append({
            "transaksi_id": row["transaksi_id"],
            "barcode_id": row["barcode_id"],
            "nama_produk": row["nama_produk"],
            "jumlah": row["jumlah"],
            "harga_satuan": row["harga_satuan"],
            "total_harga": row["total_harga"],
            "diskon": line_discount,
        })

    subtotal = sum(i["total_harga"] for i in items)
    discount = sum(i["diskon"] for i in items)
    created_at = rows[0].get("created_at")
    return {
        "transaksi_id": rows[0]["transaksi_id"],
        "transaksi_ids": [r["transaksi_id"] for r in rows],
        "checkout_id": rows[0].get("checkout_id"),
        "created_at": created_at if isinstance(created_at, str) else to_utc_z(created_at),
        "kasir": kasir,
        "items": items,
        "subtotal": subtotal,
        "discount": discount,
        "total": subtotal - discount,
    }


def sample_receipt() -> dict:
    """Fixed two-line sale used for test prints."""
    return build_receipt([
        {
            "transaksi_id": "TRX00000",
            "barcode_id": "BRK001",
            "nama_produk": "Aqua 600ml",
            "jumlah": 2,
            "harga_satuan": 3000,
            "total_harga": 6000,
            "created_at": to_utc_z(utcnow()),
        },
        {
            "transaksi_id": "TRX00000",
            "barcode_id": "BRK002",
            "nama_produk": "Indomie Goreng",
            "jumlah": 1,
            "harga_satuan": 3500,
            "total_harga": 3500,
            "created_at": to_utc_z(utcnow()),
        },
    ])


def normalize_receipt(receipt: dict) -> dict:
    """Accept a single ledger entry dict as well as an aggregated receipt."""
    if "items" in receipt:
        return receipt
    return build_receipt([receipt])


def render_receipt(receipt: dict, settings: dict | None = None) -> str:
    """Render printable HTML. Missing settings fall back to the defaults."""
    effective = dict(DEFAULT_RECEIPT_SETTINGS)
    effective.update(settings or {})
    receipt = normalize_receipt(receipt)
    kasir = receipt.get("kasir") or effective["kasir_name"]
    return render_template("receipt.html", receipt=receipt, settings=effective, kasir=kasir)
