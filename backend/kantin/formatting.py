# Overview: Indonesian display formatting for money and timestamps (receipts, exports).

from __future__ import annotations

from datetime import datetime, timezone
from zoneinfo import ZoneInfo

from flask import current_app, has_app_context

from .time_utils import parse_iso_datetime

MONTHS_ID = ["Jan", "Feb", "Mar", "Apr", "Mei", "Jun", "Jul", "Agu", "Sep", "Okt", "Nov", "Des"]

DEFAULT_DISPLAY_TIMEZONE = "Asia/Jakarta"


def display_timezone() -> ZoneInfo:
    name = DEFAULT_DISPLAY_TIMEZONE
    if has_app_context():
        name = current_app.config.get("DISPLAY_TIMEZONE") or name
    return ZoneInfo(name)


def to_local(value: datetime) -> datetime:
    """Stored timestamps are UTC (naive); receipts show the till's wall clock."""
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value.astimezone(display_timezone())


def format_currency(amount: int | float | None) -> str:
    """
    Format rupiah the way id-ID renders it: "Rp 12.000" (no decimals).
    """
    if amount is None:
        amount = 0
    value = int(round(amount))
    sign = "-" if value < 0 else ""
    grouped = f"{abs(value):,}".replace(",", ".")
    return f"{sign}Rp {grouped}"


def format_datetime(value: datetime | str | None) -> str:
    """e.g. "19 Okt 2026 14.05" in the display time zone. Blank or missing -> ""."""
    # Jinja passes Undefined (falsy) for a missing key
    if not value:
        return ""
    if isinstance(value, str):
        value = parse_iso_datetime(value)
        if value is None:
            return ""
    value = to_local(value)
    return f"{value.day:02d} {MONTHS_ID[value.month - 1]} {value.year} {value.hour:02d}.{value.minute:02d}"
