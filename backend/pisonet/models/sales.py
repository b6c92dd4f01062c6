from __future__ import annotations

from sqlalchemy.orm import validates

from ..extensions import db
from pisonet.time_utils import to_point_in_time, to_utc_z

# Peso coin denominations accepted by the units, and the column holding each count.
COIN_DENOMINATIONS = {
    "coins_1": 1,
    "coins_5": 5,
    "coins_10": 10,
    "coins_20": 20,
}
COIN_FIELDS = tuple(COIN_DENOMINATIONS)


class SaleEvent(db.Model):
    """
    Raw coin-insertion event reported by a unit.

    Append-only: written by the devices, never updated or deleted here.
    Invariant (upstream): total == 1*coins_1 + 5*coins_5 + 10*coins_10 + 20*coins_20
    """
    __tablename__ = "sales"
    __table_args__ = (
        db.Index("ix_sales_device_timestamp", "device_id", "timestamp"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    device_id = db.Column(db.String(64), nullable=False, index=True)

    coins_1 = db.Column(db.Integer, nullable=False, default=0)
    coins_5 = db.Column(db.Integer, nullable=False, default=0)
    coins_10 = db.Column(db.Integer, nullable=False, default=0)
    coins_20 = db.Column(db.Integer, nullable=False, default=0)
    total = db.Column(db.Integer, nullable=False, default=0)  # whole pesos

    timestamp = db.Column(db.DateTime(timezone=True), nullable=False, index=True)

    @validates("timestamp")
    def _normalize_timestamp(self, key, value):
        return to_point_in_time(value)

    def __repr__(self) -> str:
        return f"<SaleEvent id={self.id} device_id={self.device_id!r} total={self.total}>"

    def expected_total(self) -> int:
        return sum((getattr(self, field) or 0) * value for field, value in COIN_DENOMINATIONS.items())

    def is_consistent(self) -> bool:
        return (self.total or 0) == self.expected_total()

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "deviceId": self.device_id,
            "coins_1": self.coins_1,
            "coins_5": self.coins_5,
            "coins_10": self.coins_10,
            "coins_20": self.coins_20,
            "total": self.total,
            "timestamp": to_utc_z(self.timestamp),
        }
