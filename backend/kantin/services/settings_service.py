# Overview: Service-layer operations for store settings; receipt display configuration.

from __future__ import annotations

import json

from ..extensions import db
from ..models import StoreSetting
from ..validation import ValidationError

RECEIPT_PREFIX = "receipt."

DEFAULT_RECEIPT_SETTINGS = {
    "auto_print": True,
    "printer_name": "Default",
    "show_logo": True,
    "store_name": "KANTIN SEKOLAH",
    "store_address": "Jl. Pendidikan No. 123",
    "store_phone": "0812-3456-7890",
    "store_website": "www.kantinsekolah.com",
    "paper_width": "58mm",
    "show_kasir": True,
    "kasir_name": "Admin",
}

PAPER_WIDTHS = ("58mm", "80mm")


def _validate_receipt_value(key: str, value):
    default = DEFAULT_RECEIPT_SETTINGS[key]
    if isinstance(default, bool):
        if not isinstance(value, bool):
            raise ValidationError(f"{key} must be true or false")
        return value
    if not isinstance(value, str):
        raise ValidationError(f"{key} must be a string")
    value = value.strip()
    if key == "paper_width" and value not in PAPER_WIDTHS:
        raise ValidationError(f"paper_width must be one of: {', '.join(PAPER_WIDTHS)}")
    if key == "store_name" and not value:
        raise ValidationError("store_name cannot be blank")
    if len(value) > 255:
        raise ValidationError(f"{key} exceeds max length 255")
    return value


def get_receipt_settings() -> dict:
    """Stored values layered over DEFAULT_RECEIPT_SETTINGS."""
    settings = dict(DEFAULT_RECEIPT_SETTINGS)
    rows = (
        db.session.query(StoreSetting)
        .filter(StoreSetting.key.like(f"{RECEIPT_PREFIX}%"))
        .all()
    )
    for row in rows:
        key = row.key[len(RECEIPT_PREFIX):]
        if key in settings and row.value_json is not None:
            settings[key] = json.loads(row.value_json)
    return settings


def validate_receipt_patch(patch: dict) -> dict:
    if not isinstance(patch, dict):
        raise ValidationError("Invalid JSON payload")

    cleaned = {}
    for key, value in patch.items():
        if key not in DEFAULT_RECEIPT_SETTINGS:
            raise ValidationError(f"Unknown setting: {key}")
        cleaned[key] = _validate_receipt_value(key, value)
    return cleaned


def update_receipt_settings(patch: dict) -> dict:
    """
    Validate and persist a partial settings dict. Unknown keys are rejected.
    Returns the effective settings.
    """
    cleaned = validate_receipt_patch(patch)

    for key, value in cleaned.items():
        full_key = f"{RECEIPT_PREFIX}{key}"
        row = db.session.query(StoreSetting).filter_by(key=full_key).first()
        if row is None:
            row = StoreSetting(key=full_key)
            db.session.add(row)
        row.value_json = json.dumps(value)

    db.session.commit()
    return get_receipt_settings()


def reset_receipt_settings() -> dict:
    db.session.query(StoreSetting).filter(StoreSetting.key.like(f"{RECEIPT_PREFIX}%")).delete(
        synchronize_session=False
    )
    db.session.commit()
    return get_receipt_settings()
