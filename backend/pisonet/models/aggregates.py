from __future__ import annotations

from sqlalchemy.orm import validates

from ..extensions import db
from pisonet.time_utils import to_point_in_time, to_utc_z
from .sales import COIN_FIELDS


class BranchDailyAggregate(db.Model):
    """
    Per-branch rollup of one business day of sales, keyed by (branch_id, date_id).

    Written only by the daily aggregation job, which overwrites the row on
    every run for the same date. branch_id is not a foreign key:
    sales from unmapped devices are stored under the "unknown" and
    "unassigned" buckets.
    """
    __tablename__ = "branch_daily_aggregates"
    __table_args__ = (
        db.Index("ix_branch_daily_aggregates_branch_date", "branch_id", "aggregate_date"),
    )

    branch_id = db.Column(db.String(64), primary_key=True)
    date_id = db.Column(db.String(10), primary_key=True)  # YYYY-MM-DD, business timezone
    aggregate_date = db.Column(db.Date, nullable=False)

    total_transactions = db.Column(db.Integer, nullable=False, default=0)
    grand_total = db.Column(db.Integer, nullable=False, default=0)
    coins_1 = db.Column(db.Integer, nullable=False, default=0)
    coins_5 = db.Column(db.Integer, nullable=False, default=0)
    coins_10 = db.Column(db.Integer, nullable=False, default=0)
    coins_20 = db.Column(db.Integer, nullable=False, default=0)
    total_coins = db.Column(db.Integer, nullable=False, default=0)  # coin count, not pesos

    earliest = db.Column(db.DateTime(timezone=True), nullable=True)
    latest = db.Column(db.DateTime(timezone=True), nullable=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False)
    processed_at = db.Column(db.DateTime(timezone=True), nullable=False)

    def __repr__(self) -> str:
        return (
            f"<BranchDailyAggregate branch_id={self.branch_id!r} date_id={self.date_id!r} "
            f"grand_total={self.grand_total}>"
        )

    def coin_counts(self) -> dict:
        return {field: getattr(self, field) or 0 for field in COIN_FIELDS}

    def to_dict(self) -> dict:
        return {
            "branchId": self.branch_id,
            "aggregateDate": self.date_id,
            "totalTransactions": self.total_transactions,
            "grandTotal": self.grand_total,
            **self.coin_counts(),
            "totalCoins": self.total_coins,
            "earliest": to_utc_z(self.earliest),
            "latest": to_utc_z(self.latest),
            "createdAt": to_utc_z(self.created_at),
            "processedAt": to_utc_z(self.processed_at),
        }


class UnitDailyAggregate(db.Model):
    """
    Per-unit rollup of one day of sales, produced upstream by the device side.

    Lifecycle: created with harvested = False, flipped to True exactly once by
    the harvest settlement, never reverted.
    """
    __tablename__ = "unit_daily_aggregates"
    __table_args__ = (
        db.Index("ix_unit_daily_aggregates_device_harvested", "device_id", "harvested"),
    )

    device_id = db.Column(db.String(64), primary_key=True)
    date_id = db.Column(db.String(10), primary_key=True)

    total = db.Column(db.Integer, nullable=False, default=0)
    coins_1 = db.Column(db.Integer, nullable=False, default=0)
    coins_5 = db.Column(db.Integer, nullable=False, default=0)
    coins_10 = db.Column(db.Integer, nullable=False, default=0)
    coins_20 = db.Column(db.Integer, nullable=False, default=0)
    sales_count = db.Column(db.Integer, nullable=False, default=0)

    timestamp = db.Column(db.DateTime(timezone=True), nullable=True)

    harvested = db.Column(db.Boolean, nullable=False, default=False, index=True)
    harvested_at = db.Column(db.DateTime(timezone=True), nullable=True)

    @validates("timestamp", "harvested_at")
    def _normalize_timestamps(self, key, value):
        return to_point_in_time(value)

    def __repr__(self) -> str:
        return (
            f"<UnitDailyAggregate device_id={self.device_id!r} date_id={self.date_id!r} "
            f"harvested={self.harvested}>"
        )

    def coin_counts(self) -> dict:
        return {field: getattr(self, field) or 0 for field in COIN_FIELDS}

    def to_dict(self) -> dict:
        return {
            "deviceId": self.device_id,
            "dateId": self.date_id,
            "total": self.total,
            **self.coin_counts(),
            "sales_count": self.sales_count,
            "timestamp": to_utc_z(self.timestamp),
            "harvested": self.harvested,
            "harvestedAt": to_utc_z(self.harvested_at),
        }
