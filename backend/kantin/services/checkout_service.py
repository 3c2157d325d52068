# Overview: Service-layer operations for checkout; turns cart lines into ledger rows and stock decrements.

"""
Checkout Orchestrator

Per line, in order:
1. resolve the product by barcode (404 when unknown)
2. check jumlah <= stok (400 "Stok tidak cukup. Tersedia: N")
3. allocate the next transaction code
4. compute total_harga / keuntungan
5. append the ledger row (flush)
6. decrement stock with a conditional UPDATE

Everything runs in one DB transaction. If step 6 or anything after step 5
fails, the transaction is rolled back, which removes the ledger row along with
any other write of the batch; that rollback is the compensating action.

checkout_cart applies the same steps to every line of a cart inside the same
DB transaction: either every line is recorded or none is.
"""

from __future__ import annotations

import uuid
from dataclasses import dataclass, field

from flask import current_app
from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from ..extensions import db
from ..models import Transaction
from ..validation import (
    InsufficientStockError,
    NotFoundError,
    ValidationError,
    require_positive_int,
)
from . import barcode_service, ledger_service, products_service, sequence_service
from .concurrency import RETRYABLE_ERRORS, run_with_retry

CHECKOUT_RETRY_ON = RETRYABLE_ERRORS + (IntegrityError,)


class CheckoutError(Exception):
    """Raised when a checkout failed after writes began and was rolled back."""
    def __init__(self, message: str, details: dict | None = None):
        super().__init__(message)
        self.details = details or {}


@dataclass
class CheckoutLine:
    barcode_id: str
    jumlah: int
    diskon: int = 0


@dataclass
class CheckoutResult:
    checkout_id: str
    entries: list[Transaction] = field(default_factory=list)
    discounts: dict[str, int] = field(default_factory=dict)


def parse_line(data: dict | None) -> CheckoutLine:
    """Validate one {barcode_id, jumlah, diskon?} payload."""
    if not isinstance(data, dict):
        raise ValidationError("Invalid request data")

    raw_barcode = data.get("barcode_id")
    if raw_barcode is None or not str(raw_barcode).strip():
        raise ValidationError("Invalid request data")

    jumlah = require_positive_int(data.get("jumlah"))

    diskon = data.get("diskon") or 0
    if isinstance(diskon, bool) or not isinstance(diskon, (int, float)) or diskon < 0:
        raise ValidationError("diskon must be a non-negative number")

    return CheckoutLine(
        barcode_id=barcode_service.normalize_barcode(str(raw_barcode)),
        jumlah=jumlah,
        diskon=int(diskon),
    )


def merge_lines(lines: list[CheckoutLine]) -> list[CheckoutLine]:
    """Combine repeated barcodes (quantities and discounts add up), keep first-seen order."""
    merged: dict[str, CheckoutLine] = {}
    for line in lines:
        if line.barcode_id in merged:
            merged[line.barcode_id].jumlah += line.jumlah
            merged[line.barcode_id].diskon += line.diskon
        else:
            merged[line.barcode_id] = CheckoutLine(line.barcode_id, line.jumlah, line.diskon)
    return list(merged.values())


def _checkout_line_locked(
    line: CheckoutLine,
    *,
    checkout_id: str | None,
    user_id: int | None,
) -> Transaction:
    product = barcode_service.resolve_barcode(line.barcode_id)
    if product is None:
        raise NotFoundError("Produk tidak ditemukan")

    if product.stok < line.jumlah:
        raise InsufficientStockError(product.stok, barcode_id=product.barcode_id)

    transaksi_id = sequence_service.next_transaction_code()

    entry = ledger_service.append_entry(
        product=product,
        transaksi_id=transaksi_id,
        jumlah=line.jumlah,
        checkout_id=checkout_id,
        created_by_user_id=user_id,
    )

    if not products_service.decrement_stock(product.id, line.jumlah):
        # Another checkout spent the units between our read and write
        available = products_service.current_stock(product.id) or 0
        raise InsufficientStockError(available, barcode_id=product.barcode_id)

    return entry


def _write_failed(exc: Exception, *, checkout_id: str | None, lines: list[CheckoutLine]) -> CheckoutError:
    current_app.logger.warning(
        "Checkout rolled back after write failure (checkout_id=%s, lines=%s): %s",
        checkout_id,
        [(line.barcode_id, line.jumlah) for line in lines],
        exc,
    )
    return CheckoutError(
        "Gagal memperbarui stok, transaksi dibatalkan",
        details={"checkout_id": checkout_id},
    )


def _run_checkout(lines: list[CheckoutLine], *, checkout_id: str | None, user_id: int | None) -> list[Transaction]:
    def _op():
        try:
            entries = [
                _checkout_line_locked(line, checkout_id=checkout_id, user_id=user_id)
                for line in lines
            ]
            db.session.commit()
            return entries
        except CHECKOUT_RETRY_ON:
            raise
        except (ValidationError, NotFoundError):
            db.session.rollback()
            raise
        except SQLAlchemyError as exc:
            db.session.rollback()
            raise _write_failed(exc, checkout_id=checkout_id, lines=lines) from exc

    try:
        return run_with_retry(_op, retry_on=CHECKOUT_RETRY_ON)
    except CHECKOUT_RETRY_ON as exc:
        # Retries exhausted; run_with_retry already rolled the session back
        raise _write_failed(exc, checkout_id=checkout_id, lines=lines) from exc


def checkout_line(barcode_id, jumlah, *, user_id: int | None = None) -> Transaction:
    """
    Sell one line. Returns the committed ledger entry.

    Raises ValidationError (incl. InsufficientStockError), NotFoundError,
    CheckoutError.
    """
    line = parse_line({"barcode_id": barcode_id, "jumlah": jumlah})
    entries = _run_checkout([line], checkout_id=None, user_id=user_id)
    current_app.logger.info(
        "Checkout %s: %s x %s = %s",
        entries[0].transaksi_id, line.jumlah, line.barcode_id, entries[0].total_harga,
    )
    return entries[0]


def checkout_cart(items: list[dict] | None, *, user_id: int | None = None) -> CheckoutResult:
    """
    Sell every line of a cart atomically. Repeated barcodes are merged.

    Raises the same errors as checkout_line; on any error nothing is recorded.
    """
    if not isinstance(items, list) or not items:
        raise ValidationError("Keranjang kosong")

    lines = merge_lines([parse_line(item) for item in items])
    checkout_id = uuid.uuid4().hex[:16]

    entries = _run_checkout(lines, checkout_id=checkout_id, user_id=user_id)
    current_app.logger.info(
        "Checkout %s committed %d line(s): %s",
        checkout_id, len(entries), ", ".join(e.transaksi_id for e in entries),
    )
    return CheckoutResult(
        checkout_id=checkout_id,
        entries=entries,
        discounts={line.barcode_id: line.diskon for line in lines if line.diskon},
    )
