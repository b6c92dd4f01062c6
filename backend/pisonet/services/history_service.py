# Overview: Read-only projections over daily aggregates for the dashboard and calendar.

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime

from sqlalchemy import func

from ..models import Branch, BranchDailyAggregate, Unit, UnitDailyAggregate, COIN_FIELDS
from pisonet.time_utils import parse_date_id, to_utc_z

DEFAULT_HISTORY_LIMIT = 30
MAX_HISTORY_LIMIT = 365


class HistoryError(Exception):
    """Raised when a history lookup fails."""
    pass


class HistoryValidationError(HistoryError):
    pass


class BranchNotFoundError(HistoryError):
    pass


class UnitNotFoundError(HistoryError):
    pass


def format_display_date(date_id: str) -> str:
    """'2026-10-19' -> 'Oct 19, 2026'"""
    day = parse_date_id(date_id)
    return f"{day.strftime('%b')} {day.day}, {day.year}"


def _coin_breakdown(row) -> dict:
    return {
        "peso1": row.coins_1 or 0,
        "peso5": row.coins_5 or 0,
        "peso10": row.coins_10 or 0,
        "peso20": row.coins_20 or 0,
    }


def _validate_limit(limit: int) -> int:
    if isinstance(limit, bool) or not isinstance(limit, int):
        raise HistoryValidationError("limit must be an integer")
    if limit < 1 or limit > MAX_HISTORY_LIMIT:
        raise HistoryValidationError(f"limit must be between 1 and {MAX_HISTORY_LIMIT}")
    return limit


@dataclass
class HistoricalAggregate:
    date_id: str
    total_revenue: int
    total_transactions: int
    location: str
    coin_breakdown: dict
    earliest: datetime | None = None
    latest: datetime | None = None

    @property
    def total_coins(self) -> int:
        return sum(self.coin_breakdown.values())

    def to_dict(self) -> dict:
        return {
            "date": format_display_date(self.date_id),
            "dateId": self.date_id,
            "totalRevenue": self.total_revenue,
            "totalTransactions": self.total_transactions,
            "location": self.location,
            "coinBreakdown": dict(self.coin_breakdown),
            "totalCoins": self.total_coins,
            "earliest": to_utc_z(self.earliest),
            "latest": to_utc_z(self.latest),
        }


@dataclass
class BranchHistory:
    branch_id: str
    location: str
    records: list[HistoricalAggregate] = field(default_factory=list)

    def to_dict(self) -> dict:
        return {
            "branchId": self.branch_id,
            "location": self.location,
            "aggregates": [record.to_dict() for record in self.records],
        }


def branch_aggregate_history(session, branch_id: str, *, limit: int = DEFAULT_HISTORY_LIMIT) -> BranchHistory:
    """
    Most recent `limit` daily aggregates of a branch, newest first.

    Raises BranchNotFoundError for an unknown branch. A known branch with no
    aggregates yet returns an empty history.
    """
    if not branch_id or not str(branch_id).strip():
        raise HistoryValidationError("Branch ID is required")
    limit = _validate_limit(limit)

    branch = session.get(Branch, branch_id)
    if branch is None:
        raise BranchNotFoundError("Branch not found")
    location = branch.display_name

    rows = (
        session.query(BranchDailyAggregate)
        .filter(BranchDailyAggregate.branch_id == branch_id)
        .order_by(BranchDailyAggregate.date_id.desc())
        .limit(limit)
        .all()
    )

    return BranchHistory(
        branch_id=branch_id,
        location=location,
        records=[
            HistoricalAggregate(
                date_id=row.date_id,
                total_revenue=row.grand_total or 0,
                total_transactions=row.total_transactions or 0,
                location=location,
                coin_breakdown=_coin_breakdown(row),
                earliest=row.earliest,
                latest=row.latest,
            )
            for row in rows
        ],
    )


def unit_aggregate_history(
    session,
    device_id: str,
    *,
    limit: int = DEFAULT_HISTORY_LIMIT,
    include_harvested: bool = True,
) -> dict:
    """Per-unit daily aggregates, newest first, with harvested state."""
    if not device_id or not str(device_id).strip():
        raise HistoryValidationError("Device ID is required")
    limit = _validate_limit(limit)

    unit = session.get(Unit, device_id)
    if unit is None:
        raise UnitNotFoundError("Unit not found")

    query = session.query(UnitDailyAggregate).filter(UnitDailyAggregate.device_id == device_id)
    if not include_harvested:
        query = query.filter(UnitDailyAggregate.harvested.is_(False))
    rows = query.order_by(UnitDailyAggregate.date_id.desc()).limit(limit).all()

    unharvested_total = session.query(func.coalesce(func.sum(UnitDailyAggregate.total), 0)).filter(
        UnitDailyAggregate.device_id == device_id,
        UnitDailyAggregate.harvested.is_(False),
    ).scalar()

    records = []
    for row in rows:
        record = row.to_dict()
        record["date"] = format_display_date(row.date_id)
        record["totalCoins"] = sum(getattr(row, name) or 0 for name in COIN_FIELDS)
        records.append(record)

    return {
        "deviceId": unit.device_id,
        "alias": unit.alias,
        "branchId": unit.branch_id,
        "unharvestedTotal": int(unharvested_total or 0),
        "aggregates": records,
    }
