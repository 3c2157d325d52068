# Overview: Service-layer operations for barcode lookup; read-only resolution of scanned codes.

"""
Barcode Resolver

Exact match only: the scanned/typed value is normalized (trimmed, spaces
removed, uppercased) and compared to Product.barcode_id, which is stored in
the same normal form. No partial or fuzzy matching.
"""

import random

from ..extensions import db
from ..models import Product

GENERATED_PREFIX = "BRK"


def normalize_barcode(value: str) -> str:
    """Normalize to uppercase, no spaces."""
    return value.upper().strip().replace(" ", "")


def resolve_barcode(value: str | None) -> Product | None:
    """Return the product whose barcode matches `value`, or None."""
    if value is None:
        return None
    normalized = normalize_barcode(str(value))
    if not normalized:
        return None
    return db.session.query(Product).filter(Product.barcode_id == normalized).first()


def generate_barcode_id(max_attempts: int = 50) -> str:
    """
    Suggest an unused label code: "BRK" + 4 digits.

    Raises RuntimeError when no free code is found within max_attempts.
    """
    for _ in range(max_attempts):
        candidate = f"{GENERATED_PREFIX}{random.randint(1, 9999):04d}"
        if resolve_barcode(candidate) is None:
            return candidate
    raise RuntimeError("Could not generate an unused barcode")
