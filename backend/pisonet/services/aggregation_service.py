# Overview: Daily sales aggregation; folds one business day of raw sale events
# into per-branch BranchDailyAggregate rows.

"""
Daily sales aggregation job.

Runs once per business day (23:59 business time) from an external scheduler,
either via `flask aggregates run` or POST /api/aggregate.

Guarantees:
- Idempotent per date: rows are keyed by (branch_id, date_id) and overwritten,
  so re-running a day never duplicates or double-counts. Rows of that date
  under buckets the re-run no longer produces (a unit was assigned to a
  branch in between) are deleted in the same transaction.
- Conservation: every sale in the window lands in exactly one bucket; sales
  from unmapped devices go to the "unknown"/"unassigned" buckets instead of
  being dropped.
- All-or-nothing: every branch row for the day is written in one commit.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import date, datetime

from ..models import BranchDailyAggregate, SaleEvent, COIN_FIELDS
from pisonet.time_utils import (
    DEFAULT_BUSINESS_UTC_OFFSET_MINUTES,
    DayWindow,
    business_date_for,
    business_day_window,
    utcnow,
)
from .branch_resolver import DeviceBranchMap, build_device_branch_map

logger = logging.getLogger(__name__)


class AggregationError(Exception):
    """Raised when a daily aggregation run fails and nothing was committed."""
    def __init__(self, message: str, details: dict | None = None):
        super().__init__(message)
        self.details = details or {}


@dataclass
class BranchAccumulator:
    """Running totals for one branch bucket during a fold."""
    bucket_id: str
    total_transactions: int = 0
    grand_total: int = 0
    coins_1: int = 0
    coins_5: int = 0
    coins_10: int = 0
    coins_20: int = 0
    earliest: datetime | None = None
    latest: datetime | None = None

    @property
    def total_coins(self) -> int:
        return sum(getattr(self, name) for name in COIN_FIELDS)

    def add(self, sale: SaleEvent) -> None:
        self.total_transactions += 1
        self.grand_total += sale.total or 0
        for name in COIN_FIELDS:
            setattr(self, name, getattr(self, name) + _coin_count(sale, name))

        ts = sale.timestamp
        if ts is not None:
            if self.earliest is None or ts < self.earliest:
                self.earliest = ts
            if self.latest is None or ts > self.latest:
                self.latest = ts


@dataclass
class AggregationRun:
    """Summary of one aggregation run, returned to the CLI / trigger endpoint."""
    date_id: str
    window: DayWindow
    sales_count: int = 0
    branch_totals: dict[str, int] = field(default_factory=dict)

    @property
    def grand_total(self) -> int:
        return sum(self.branch_totals.values())

    @property
    def branch_count(self) -> int:
        return len(self.branch_totals)

    def to_dict(self) -> dict:
        return {
            "dateId": self.date_id,
            "salesCount": self.sales_count,
            "branchCount": self.branch_count,
            "grandTotal": self.grand_total,
            "branches": dict(self.branch_totals),
        }


def _coin_count(sale: SaleEvent, name: str) -> int:
    value = getattr(sale, name) or 0
    if value < 0:
        logger.warning(
            "Sale %s from device %s has negative %s=%d; counting as 0",
            sale.id, sale.device_id, name, value,
        )
        return 0
    return value


def fold_sales(sales, device_map: DeviceBranchMap) -> dict[str, BranchAccumulator]:
    """Group sales by resolved branch bucket. Pure, no I/O."""
    buckets: dict[str, BranchAccumulator] = {}
    reported: set[str] = set()

    for sale in sales:
        resolution = device_map.resolve(sale.device_id)
        if resolution.is_sentinel and sale.device_id not in reported:
            reported.add(sale.device_id)
            logger.warning(
                "Device %s has no branch mapping; counting under %r",
                sale.device_id, resolution.bucket_id,
            )

        bucket = buckets.get(resolution.bucket_id)
        if bucket is None:
            bucket = BranchAccumulator(bucket_id=resolution.bucket_id)
            buckets[resolution.bucket_id] = bucket
        bucket.add(sale)

    return buckets


def _sales_in_window(session, window: DayWindow) -> list[SaleEvent]:
    return (
        session.query(SaleEvent)
        .filter(
            SaleEvent.timestamp >= window.start,
            SaleEvent.timestamp <= window.end,
        )
        .order_by(SaleEvent.timestamp.asc(), SaleEvent.id.asc())
        .all()
    )


def _upsert_branch_aggregate(
    session,
    acc: BranchAccumulator,
    window: DayWindow,
    processed_at: datetime,
) -> BranchDailyAggregate:
    row = session.get(BranchDailyAggregate, (acc.bucket_id, window.date_id))
    if row is None:
        row = BranchDailyAggregate(
            branch_id=acc.bucket_id,
            date_id=window.date_id,
            created_at=processed_at,
        )
        session.add(row)

    row.aggregate_date = window.business_date
    row.total_transactions = acc.total_transactions
    row.grand_total = acc.grand_total
    for name in COIN_FIELDS:
        setattr(row, name, getattr(acc, name))
    row.total_coins = acc.total_coins
    row.earliest = acc.earliest
    row.latest = acc.latest
    row.processed_at = processed_at
    return row


def _drop_stale_buckets(session, window: DayWindow, buckets) -> int:
    """Remove rows of this date whose bucket no longer receives any sale."""
    removed = (
        session.query(BranchDailyAggregate)
        .filter(
            BranchDailyAggregate.date_id == window.date_id,
            BranchDailyAggregate.branch_id.notin_(list(buckets)),
        )
        .delete(synchronize_session="fetch")
    )
    if removed:
        logger.info("Removed %d stale branch rows for %s", removed, window.date_id)
    return removed


def run_daily_aggregation(
    session,
    *,
    now: datetime | None = None,
    business_date: date | None = None,
    utc_offset_minutes: int = DEFAULT_BUSINESS_UTC_OFFSET_MINUTES,
) -> AggregationRun:
    """
    Aggregate one business day of sales into per-branch rows.

    `business_date` defaults to the business date of `now` (the trigger time);
    pass it explicitly to backfill or re-run an earlier day.

    Raises AggregationError (chained to the cause) on any read or write
    failure; the session is rolled back so no branch of that day is partially
    written.
    """
    run_at = now or utcnow()
    if business_date is None:
        business_date = business_date_for(run_at, utc_offset_minutes)
    window = business_day_window(business_date, utc_offset_minutes)
    run = AggregationRun(date_id=window.date_id, window=window)

    logger.info(
        "Aggregating sales for %s (UTC %s .. %s)",
        window.date_id, window.start.isoformat(), window.end.isoformat(),
    )

    sales: list[SaleEvent] = []
    try:
        device_map = build_device_branch_map(session)
        logger.info("Loaded %d units for branch lookup", len(device_map))

        sales = _sales_in_window(session, window)
        if not sales:
            logger.info("No sales found for %s", window.date_id)
            return run

        buckets = fold_sales(sales, device_map)
        _drop_stale_buckets(session, window, buckets)
        for bucket_id in sorted(buckets):
            acc = buckets[bucket_id]
            _upsert_branch_aggregate(session, acc, window, run_at)
            logger.info(
                "Branch %s - %d txns, P%d, %d coins",
                bucket_id, acc.total_transactions, acc.grand_total, acc.total_coins,
            )

        session.commit()
    except Exception as exc:
        session.rollback()
        logger.exception(
            "Error aggregating sales for %s (%d sales read); nothing committed",
            window.date_id, len(sales),
        )
        raise AggregationError(
            f"Aggregation failed for {window.date_id}",
            details={"date_id": window.date_id, "sales_read": len(sales)},
        ) from exc

    run.sales_count = len(sales)
    run.branch_totals = {bucket_id: acc.grand_total for bucket_id, acc in sorted(buckets.items())}
    logger.info(
        "Aggregated %d sales across %d branches for %s",
        run.sales_count, run.branch_count, window.date_id,
    )
    return run
