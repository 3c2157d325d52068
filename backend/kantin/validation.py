from __future__ import annotations
import re
from dataclasses import dataclass, field
from typing import Any

from sqlalchemy import Integer, String, Text
from sqlalchemy.orm import DeclarativeMeta


# Maximum price: Rp 999.999.999
# This prevents database overflow issues and nonsensical prices
MAX_PRICE = 999_999_999

PRODUCT_CATEGORIES = ("Makanan", "Minuman", "Snack", "Alat Tulis")

BARCODE_PATTERN = re.compile(r"^[A-Z0-9]+$")

# str.isdigit() also accepts superscripts and other digits int() rejects
ASCII_DIGITS = re.compile(r"^[0-9]+$")


class ValidationError(ValueError):
    """400-level input problem."""


class ConflictError(ValueError):
    """409-level business rule conflict (e.g., duplicate barcode)."""


class NotFoundError(LookupError):
    """404-level missing record."""


class InsufficientStockError(ValidationError):
    """400-level: requested quantity exceeds the available stock."""

    def __init__(self, available: int, barcode_id: str | None = None):
        super().__init__(f"Stok tidak cukup. Tersedia: {available}")
        self.available = available
        self.barcode_id = barcode_id


@dataclass(frozen=True)
class ModelValidationPolicy:
    """
    Central policy layer:
    - writable_fields: what clients are allowed to set (security boundary)
    - required_on_create: fields required for POST
    - ignored_fields: keys clients echo back (id, timestamps) that are dropped silently
    """
    writable_fields: set[str]
    required_on_create: set[str] = field(default_factory=set)
    ignored_fields: set[str] = field(default_factory=set)


def _columns_by_key(model: DeclarativeMeta) -> dict[str, Any]:
    mapper = model.__mapper__
    return {c.key: c for c in mapper.columns}


def _coerce_value(col, value: Any):
    coltype = col.type

    if value is None:
        return None

    # Integers - strict validation to reject floats and scientific notation
    if isinstance(coltype, Integer):
        # Already an int (but not bool which is a subclass of int)
        if isinstance(value, int) and not isinstance(value, bool):
            return value
        # String input - must be plain digits (with optional leading minus)
        if isinstance(value, str):
            stripped = value.strip()
            if not stripped:
                raise ValidationError(f"{col.key} must be an integer")
            if 'e' in stripped.lower():
                raise ValidationError(f"{col.key} must be a plain integer (scientific notation not allowed)")
            if '.' in stripped:
                raise ValidationError(f"{col.key} must be an integer (no decimals)")
            try:
                return int(stripped)
            except ValueError:
                raise ValidationError(f"{col.key} must be an integer")
        # Whole-number floats come from JS number inputs
        if isinstance(value, float):
            if value.is_integer():
                return int(value)
            raise ValidationError(f"{col.key} must be an integer, not a decimal")
        raise ValidationError(f"{col.key} must be an integer")

    # Strings / Text
    if isinstance(coltype, (String, Text)):
        return str(value).strip()

    return value


def validate_payload(
    *,
    model: DeclarativeMeta,
    payload: dict,
    policy: ModelValidationPolicy,
    partial: bool,
) -> dict:
    """
    Validates + normalizes incoming JSON against:
    - SQLAlchemy column metadata (nullable, type, String length)
    - a policy allowlist (writable_fields)
    - required_on_create (if partial=False)
    Returns a cleaned patch dict with only writable fields.

    partial=False: create semantics (enforce required_on_create)
    partial=True: patch semantics (validate only provided keys)
    """
    if payload is None:
        payload = {}
    if not isinstance(payload, dict):
        raise ValidationError("Invalid JSON payload")

    payload = {k: v for k, v in payload.items() if k not in policy.ignored_fields}

    if not partial:
        missing = sorted(
            f for f in policy.required_on_create
            if payload.get(f) is None or (isinstance(payload.get(f), str) and not payload[f].strip())
        )
        if missing:
            raise ValidationError(f"Missing required fields: {', '.join(missing)}")

    cols = _columns_by_key(model)

    # Reject unknown / non-writable fields
    for k in payload.keys():
        if k not in policy.writable_fields:
            raise ValidationError(f"Field not allowed: {k}")
        if k not in cols:
            raise ValidationError(f"Unknown field: {k}")

    patch: dict = {}

    for k, raw in payload.items():
        col = cols[k]

        if raw is None:
            if not col.nullable:
                raise ValidationError(f"{k} cannot be null")
            patch[k] = None
            continue

        val = _coerce_value(col, raw)

        # Blank string check for non-nullable text fields
        if isinstance(col.type, (String, Text)) and not col.nullable:
            if isinstance(val, str) and val == "":
                raise ValidationError(f"{k} cannot be blank")

        # Max length check for String(n)
        if isinstance(col.type, String) and col.type.length and isinstance(val, str):
            if len(val) > col.type.length:
                raise ValidationError(f"{k} exceeds max length {col.type.length}")

        patch[k] = val

    return patch


def enforce_rules_product(patch: dict, current: dict | None = None) -> None:
    """
    Business rules that are not captured by SQLAlchemy metadata alone.

    `current` holds the stored values for updates so the price rule is checked
    against the merged result. Normalizes barcode_id in place (uppercase).
    """
    if patch.get("barcode_id") is not None:
        barcode = patch["barcode_id"].upper().replace(" ", "")
        if not BARCODE_PATTERN.match(barcode):
            raise ValidationError("barcode_id must be alphanumeric")
        patch["barcode_id"] = barcode

    if "kategori" in patch and patch["kategori"] not in PRODUCT_CATEGORIES:
        raise ValidationError(f"kategori must be one of: {', '.join(PRODUCT_CATEGORIES)}")

    if patch.get("stok") is not None and patch["stok"] < 0:
        raise ValidationError("stok must be >= 0")

    for key in ("harga_modal", "harga_jual"):
        if patch.get(key) is None:
            continue
        if patch[key] < 0:
            raise ValidationError(f"{key} must be >= 0")
        if patch[key] > MAX_PRICE:
            raise ValidationError(f"{key} cannot exceed {MAX_PRICE}")

    merged = dict(current or {})
    merged.update({k: v for k, v in patch.items() if v is not None})
    harga_modal = merged.get("harga_modal")
    harga_jual = merged.get("harga_jual")
    if harga_modal is not None and harga_jual is not None and harga_jual <= harga_modal:
        raise ValidationError("Harga jual harus lebih besar dari harga modal")


def require_positive_int(value: Any, message: str = "Invalid request data") -> int:
    """Quantities from the POS client: positive integers only (bools rejected)."""
    if isinstance(value, bool):
        raise ValidationError(message)
    if isinstance(value, float) and value.is_integer():
        value = int(value)
    if isinstance(value, str) and ASCII_DIGITS.match(value.strip()):
        value = int(value.strip())
    if not isinstance(value, int) or value <= 0:
        raise ValidationError(message)
    return value
