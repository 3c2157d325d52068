# backend/kantin/config.py
from __future__ import annotations
import os


class Config:
    # Optional "SECRET_KEY", with default dev key
    SECRET_KEY = os.environ.get("SECRET_KEY", "dev-secret-key-change-me")

    # SQLite DB stored next to the backend by default
    SQLALCHEMY_DATABASE_URI = os.environ.get(
        "DATABASE_URL", #optional alternative location
        "sqlite:///kantin.sqlite3", #default local location
    )
    SQLALCHEMY_TRACK_MODIFICATIONS = False

    # Human-readable transaction codes: TRX00001, TRX00002, ...
    TRANSACTION_CODE_PREFIX = os.environ.get("TRANSACTION_CODE_PREFIX", "TRX")
    TRANSACTION_CODE_PAD = int(os.environ.get("TRANSACTION_CODE_PAD", "5"))

    # Products at or below this stock count show up as "low stock"
    LOW_STOCK_THRESHOLD = int(os.environ.get("LOW_STOCK_THRESHOLD", "10"))

    # Timestamps are stored in UTC; receipts and exports print this wall clock
    DISPLAY_TIMEZONE = os.environ.get("DISPLAY_TIMEZONE", "Asia/Jakarta")

    # bcrypt cost factor (tests lower this to keep fixtures fast)
    BCRYPT_ROUNDS = int(os.environ.get("BCRYPT_ROUNDS", "12"))

    CORS_ORIGINS = {
        origin.strip()
        for origin in os.environ.get(
            "CORS_ORIGINS",
            "http://localhost:3000,http://127.0.0.1:3000,http://localhost:5173,http://127.0.0.1:5173",
        ).split(",")
        if origin.strip()
    }
