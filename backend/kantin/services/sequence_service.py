# Overview: Service-layer operations for transaction codes; atomic sequential numbering.

"""
Transaction code allocation ("TRX00001", "TRX00002", ...).

The counter lives in transaction_sequences and is bumped with one UPDATE
statement inside the caller's DB transaction: a checkout that rolls back
releases its number, and two concurrent checkouts never see the same value.

The first allocation for a prefix seeds the counter from the newest ledger
row (parsed suffix + 1), so databases that predate the counter continue their
numbering.
"""

from __future__ import annotations

from flask import current_app
from sqlalchemy import func, update

from ..extensions import db
from ..models import Transaction, TransactionSequence


class SequenceError(Exception):
    """Raised when a transaction code cannot be allocated."""
    pass


def _prefix() -> str:
    return current_app.config.get("TRANSACTION_CODE_PREFIX", "TRX")


def _pad() -> int:
    return current_app.config.get("TRANSACTION_CODE_PAD", 5)


def format_transaction_code(number: int, prefix: str | None = None, pad: int | None = None) -> str:
    prefix = _prefix() if prefix is None else prefix
    pad = _pad() if pad is None else pad
    return f"{prefix}{number:0{pad}d}"


def parse_transaction_code(code: str | None, prefix: str | None = None) -> int | None:
    """Numeric suffix of a code, or None when it doesn't carry the prefix."""
    if not code:
        return None
    prefix = _prefix() if prefix is None else prefix
    if not code.startswith(prefix):
        return None
    suffix = code[len(prefix):]
    if not suffix.isdigit():
        return None
    return int(suffix)


def _seed_number(prefix: str) -> int:
    latest = (
        db.session.query(Transaction.transaksi_id)
        .order_by(Transaction.created_at.desc(), Transaction.id.desc())
        .limit(1)
        .scalar()
    )
    if latest is None:
        return 1

    last_num = parse_transaction_code(latest, prefix)
    if last_num is not None:
        return last_num + 1

    # Foreign code format: fall back to the row count
    return (db.session.query(func.count(Transaction.id)).scalar() or 0) + 1


def next_transaction_number(prefix: str | None = None) -> int:
    """
    Allocate the next number for `prefix`. Does not commit.

    A concurrent first allocation can hit the unique prefix constraint
    (IntegrityError); callers run inside run_with_retry and retry.
    """
    prefix = _prefix() if prefix is None else prefix
    if not prefix:
        raise SequenceError("prefix is required")

    stmt = (
        update(TransactionSequence)
        .where(TransactionSequence.prefix == prefix)
        .values(next_number=TransactionSequence.next_number + 1)
        .execution_options(synchronize_session=False)
    )
    result = db.session.execute(stmt)
    if result.rowcount:
        current = (
            db.session.query(TransactionSequence.next_number)
            .filter_by(prefix=prefix)
            .scalar()
        )
        return current - 1

    number = _seed_number(prefix)
    db.session.add(TransactionSequence(prefix=prefix, next_number=number + 1))
    db.session.flush()
    return number


def next_transaction_code(prefix: str | None = None) -> str:
    prefix = _prefix() if prefix is None else prefix
    return format_transaction_code(next_transaction_number(prefix), prefix=prefix)
