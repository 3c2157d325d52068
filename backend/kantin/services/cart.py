# Overview: In-memory cart aggregate for the till; pure Python, no database access.

"""
Cart

A mapping barcode_id -> line {product snapshot, quantity, discount}. The cart
checks quantities optimistically against the stock it last saw; the checkout
re-validates against the database.

to_dict()/from_dict() let a client keep an in-progress cart in session
storage and hand it back later.
"""

from __future__ import annotations

from dataclasses import dataclass, field

from ..validation import InsufficientStockError, ValidationError


@dataclass
class CartLine:
    barcode_id: str
    nama_produk: str
    harga_jual: int
    stok: int
    quantity: int = 1
    discount: int = 0

    @property
    def subtotal(self) -> int:
        return self.harga_jual * self.quantity

    @property
    def total(self) -> int:
        return max(self.subtotal - self.discount, 0)

    def to_dict(self) -> dict:
        return {
            "barcode_id": self.barcode_id,
            "nama_produk": self.nama_produk,
            "harga_jual": self.harga_jual,
            "stok": self.stok,
            "quantity": self.quantity,
            "discount": self.discount,
            "subtotal": self.subtotal,
            "total": self.total,
        }


@dataclass
class Cart:
    lines: dict[str, CartLine] = field(default_factory=dict)

    def __len__(self) -> int:
        return len(self.lines)

    def __contains__(self, barcode_id: str) -> bool:
        return barcode_id in self.lines

    def add(self, product: dict, quantity: int = 1) -> CartLine:
        """
        Add `quantity` units of a product snapshot (a Product.to_dict()).
        Adding an existing barcode increments its line.
        """
        if quantity <= 0:
            raise ValidationError("quantity must be > 0")

        barcode_id = product["barcode_id"]
        line = self.lines.get(barcode_id)
        new_quantity = quantity + (line.quantity if line else 0)
        if new_quantity > product["stok"]:
            raise InsufficientStockError(product["stok"], barcode_id=barcode_id)

        if line is None:
            line = CartLine(
                barcode_id=barcode_id,
                nama_produk=product["nama_produk"],
                harga_jual=product["harga_jual"],
                stok=product["stok"],
                quantity=new_quantity,
            )
            self.lines[barcode_id] = line
        else:
            # Refresh the snapshot with what the resolver just returned
            line.nama_produk = product["nama_produk"]
            line.harga_jual = product["harga_jual"]
            line.stok = product["stok"]
            line.quantity = new_quantity
        return line

    def _line(self, barcode_id: str) -> CartLine:
        try:
            return self.lines[barcode_id]
        except KeyError:
            raise ValidationError(f"{barcode_id} is not in the cart") from None

    def set_quantity(self, barcode_id: str, quantity: int) -> CartLine | None:
        """Set an absolute quantity; 0 or less removes the line."""
        line = self._line(barcode_id)
        if quantity <= 0:
            self.remove(barcode_id)
            return None
        if quantity > line.stok:
            raise InsufficientStockError(line.stok, barcode_id=barcode_id)
        line.quantity = quantity
        return line

    def change_quantity(self, barcode_id: str, delta: int) -> CartLine | None:
        return self.set_quantity(barcode_id, self._line(barcode_id).quantity + delta)

    def set_discount(self, barcode_id: str, amount: int) -> CartLine:
        line = self._line(barcode_id)
        if amount < 0:
            raise ValidationError("discount must be >= 0")
        if amount > line.subtotal:
            raise ValidationError("discount cannot exceed the line subtotal")
        line.discount = amount
        return line

    def remove(self, barcode_id: str) -> None:
        self.lines.pop(barcode_id, None)

    def clear(self) -> None:
        self.lines.clear()

    @property
    def item_count(self) -> int:
        return sum(line.quantity for line in self.lines.values())

    @property
    def subtotal(self) -> int:
        return sum(line.subtotal for line in self.lines.values())

    @property
    def total_discount(self) -> int:
        return sum(min(line.discount, line.subtotal) for line in self.lines.values())

    @property
    def total(self) -> int:
        return sum(line.total for line in self.lines.values())

    def validate_stock(self) -> None:
        """Raise on the first line whose quantity exceeds its last-known stock."""
        for line in self.lines.values():
            if line.quantity > line.stok:
                raise InsufficientStockError(line.stok, barcode_id=line.barcode_id)

    def to_checkout_items(self) -> list[dict]:
        """Payload for POST /api/transactions/checkout."""
        items = []
        for line in self.lines.values():
            item = {"barcode_id": line.barcode_id, "jumlah": line.quantity}
            if line.discount:
                item["diskon"] = line.discount
            items.append(item)
        return items

    def to_dict(self) -> dict:
        return {
            "items": [line.to_dict() for line in self.lines.values()],
            "item_count": self.item_count,
            "subtotal": self.subtotal,
            "discount": self.total_discount,
            "total": self.total,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "Cart":
        cart = cls()
        for item in data.get("items", []):
            cart.lines[item["barcode_id"]] = CartLine(
                barcode_id=item["barcode_id"],
                nama_produk=item["nama_produk"],
                harga_jual=item["harga_jual"],
                stok=item["stok"],
                quantity=item.get("quantity", 1),
                discount=item.get("discount", 0),
            )
        return cart
