from __future__ import annotations

from ..extensions import db
from kantin.time_utils import to_utc_z, utcnow


class Transaction(db.Model):
    """
    Ledger entry: one sold cart line.

    Product name and price are snapshotted at sale time and never re-joined,
    so deleting or repricing a product leaves history intact. Rows are
    immutable once committed; there is no update path.
    """
    __tablename__ = "transactions"
    __table_args__ = (
        db.Index("ix_transactions_created_at", "created_at"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)

    # Human-readable sequential code, e.g. "TRX00006"
    transaksi_id = db.Column(db.String(32), nullable=False, unique=True, index=True)

    product_id = db.Column(db.Integer, db.ForeignKey("products.id", ondelete="SET NULL"), nullable=True, index=True)
    barcode_id = db.Column(db.String(64), nullable=False, index=True)
    nama_produk = db.Column(db.String(255), nullable=False)

    jumlah = db.Column(db.Integer, nullable=False)
    harga_satuan = db.Column(db.Integer, nullable=False)
    total_harga = db.Column(db.Integer, nullable=False)
    keuntungan = db.Column(db.Integer, nullable=False)

    # Lines checked out together share a checkout_id (null for single-line sales)
    checkout_id = db.Column(db.String(32), nullable=True, index=True)
    created_by_user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow, server_default=db.func.now())

    product = db.relationship("Product")

    def __repr__(self) -> str:
        return f"<Transaction {self.transaksi_id} barcode_id={self.barcode_id!r} jumlah={self.jumlah}>"

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "transaksi_id": self.transaksi_id,
            "product_id": self.product_id,
            "barcode_id": self.barcode_id,
            "nama_produk": self.nama_produk,
            "jumlah": self.jumlah,
            "harga_satuan": self.harga_satuan,
            "total_harga": self.total_harga,
            "keuntungan": self.keuntungan,
            "checkout_id": self.checkout_id,
            "created_by_user_id": self.created_by_user_id,
            "created_at": to_utc_z(self.created_at),
        }


class TransactionSequence(db.Model):
    """
    Atomic counter behind transaction codes.

    WHY: Reading the newest ledger row and adding one races under concurrent
    checkouts. The counter is bumped with a single UPDATE inside the checkout's
    own DB transaction.
    """
    __tablename__ = "transaction_sequences"
    __table_args__ = {"sqlite_autoincrement": True}

    id = db.Column(db.Integer, primary_key=True)
    prefix = db.Column(db.String(16), nullable=False, unique=True)
    next_number = db.Column(db.Integer, nullable=False, default=1)
    updated_at = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow, onupdate=utcnow)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "prefix": self.prefix,
            "next_number": self.next_number,
            "updated_at": to_utc_z(self.updated_at),
        }
