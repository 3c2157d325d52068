from __future__ import annotations

from ..extensions import db
from kantin.time_utils import to_utc_z, utcnow


class StoreSetting(db.Model):
    """
    Key/value store configuration (receipt header, paper width, ...).

    value_json holds the JSON-encoded value so booleans survive round trips.
    """
    __tablename__ = "store_settings"
    __table_args__ = {"sqlite_autoincrement": True}

    id = db.Column(db.Integer, primary_key=True)
    key = db.Column(db.String(128), nullable=False, unique=True)
    value_json = db.Column(db.Text, nullable=True)
    updated_at = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow, onupdate=utcnow)

    def to_dict(self) -> dict:
        return {
            "key": self.key,
            "value_json": self.value_json,
            "updated_at": to_utc_z(self.updated_at),
        }
