from __future__ import annotations

from ..extensions import db
from kantin.time_utils import to_utc_z, utcnow


class Product(db.Model):
    """
    Product master data for the canteen catalog.

    BARCODE: barcode_id is the user-facing identity (printed label or
    manufacturer code). Stored uppercase; lookups normalize input the same way.

    STOCK: stok is the only contended column. Sales never write it through the
    ORM; they use a conditional UPDATE (see products_service.decrement_stock).
    """
    __tablename__ = "products"
    __table_args__ = (
        db.Index("ix_products_created_at", "created_at"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)

    barcode_id = db.Column(db.String(64), nullable=False, unique=True, index=True)
    nama_produk = db.Column(db.String(255), nullable=False)
    kategori = db.Column(db.String(32), nullable=False, index=True)

    stok = db.Column(db.Integer, nullable=False, default=0)

    # Whole rupiah
    harga_modal = db.Column(db.Integer, nullable=False)
    harga_jual = db.Column(db.Integer, nullable=False)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow, server_default=db.func.now())
    updated_at = db.Column(
        db.DateTime(timezone=True),
        nullable=False,
        default=utcnow,
        server_default=db.func.now(),
        onupdate=utcnow,
    )

    def __repr__(self) -> str:
        return f"<Product id={self.id} barcode_id={self.barcode_id!r} nama_produk={self.nama_produk!r}>"

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "barcode_id": self.barcode_id,
            "nama_produk": self.nama_produk,
            "kategori": self.kategori,
            "stok": self.stok,
            "harga_modal": self.harga_modal,
            "harga_jual": self.harga_jual,
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
        }
