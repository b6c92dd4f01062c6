# Overview: Harvest settlement; folds a unit's unharvested daily aggregates into one
# HarvestResult and flips them to harvested in the same transaction.

"""
Harvest settlement.

A harvest is the physical collection of coins from a unit. Settling it marks
every UnitDailyAggregate with harvested = False as harvested and returns
their sum.

Invariant: a UnitDailyAggregate is included in exactly one successful
HarvestResult. The write is conditioned on the same predicate as the read
(harvested = False, same date ids), so a concurrent settlement for the same
unit either sees a disjoint set or fails with HarvestConflictError; it never
counts a row twice.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime

from ..models import Branch, Unit, UnitDailyAggregate, COIN_FIELDS
from pisonet.time_utils import utcnow, to_utc_z
from .concurrency import ConcurrentUpdateError, conditional_update, lock_for_update

logger = logging.getLogger(__name__)


class HarvestError(Exception):
    """Raised for harvest settlement errors."""
    def __init__(self, message: str, details: dict | None = None):
        super().__init__(message)
        self.details = details or {}


class HarvestValidationError(HarvestError):
    """400-level input problem; raised before any data access."""


class NothingToHarvestError(HarvestError):
    """The unit has no unharvested aggregates."""


class HarvestConflictError(HarvestError):
    """A concurrent settlement changed the unharvested set between read and write."""


@dataclass
class HarvestResult:
    device_id: str
    total_harvested: int = 0
    coins_1: int = 0
    coins_5: int = 0
    coins_10: int = 0
    coins_20: int = 0
    sales_count: int = 0
    documents_updated: int = 0
    harvest_date: datetime | None = None
    harvested_dates: list[str] = field(default_factory=list)
    branch_id: str | None = None
    branch_location: str | None = None

    def add(self, aggregate: UnitDailyAggregate) -> None:
        self.total_harvested += aggregate.total or 0
        for name in COIN_FIELDS:
            setattr(self, name, getattr(self, name) + (getattr(aggregate, name) or 0))
        self.sales_count += aggregate.sales_count or 0
        self.documents_updated += 1
        self.harvested_dates.append(aggregate.date_id)

    @property
    def total_coins(self) -> int:
        return sum(getattr(self, name) for name in COIN_FIELDS)

    @property
    def date_range(self) -> dict:
        dates = sorted(self.harvested_dates)
        return {
            "start": dates[0] if dates else None,
            "end": dates[-1] if dates else None,
        }

    def to_dict(self) -> dict:
        return {
            "deviceId": self.device_id,
            "totalHarvested": self.total_harvested,
            "coins_1": self.coins_1,
            "coins_5": self.coins_5,
            "coins_10": self.coins_10,
            "coins_20": self.coins_20,
            "totalCoins": self.total_coins,
            "sales_count": self.sales_count,
            "documentsUpdated": self.documents_updated,
            "harvestDate": to_utc_z(self.harvest_date),
            "harvestedDates": sorted(self.harvested_dates),
            "dateRange": self.date_range,
            "branchId": self.branch_id,
            "branchLocation": self.branch_location,
        }


def _require_device_id(device_id) -> str:
    if not isinstance(device_id, str) or not device_id.strip():
        raise HarvestValidationError("Device ID is required")
    return device_id.strip()


def _select_unharvested(session, device_id: str) -> list[UnitDailyAggregate]:
    query = session.query(UnitDailyAggregate).filter(
        UnitDailyAggregate.device_id == device_id,
        UnitDailyAggregate.harvested.is_(False),
    ).order_by(UnitDailyAggregate.date_id.asc())
    return lock_for_update(query).all()


def _attach_branch(session, result: HarvestResult) -> None:
    unit = session.get(Unit, result.device_id)
    if unit is None or not unit.branch_id:
        return
    result.branch_id = unit.branch_id
    branch = session.get(Branch, unit.branch_id)
    result.branch_location = branch.display_name if branch else "Unknown Location"


def _fold(session, device_id: str, aggregates: list[UnitDailyAggregate]) -> HarvestResult:
    result = HarvestResult(device_id=device_id)
    for aggregate in aggregates:
        result.add(aggregate)
    _attach_branch(session, result)
    return result


def preview_unit_harvest(session, device_id: str) -> HarvestResult:
    """Totals a settlement would return right now, without flipping anything."""
    device_id = _require_device_id(device_id)
    aggregates = (
        session.query(UnitDailyAggregate)
        .filter(
            UnitDailyAggregate.device_id == device_id,
            UnitDailyAggregate.harvested.is_(False),
        )
        .order_by(UnitDailyAggregate.date_id.asc())
        .all()
    )
    if not aggregates:
        raise NothingToHarvestError(
            "No unharvested aggregates found",
            details={"device_id": device_id},
        )
    return _fold(session, device_id, aggregates)


def settle_unit_harvest(session, device_id: str, *, now: datetime | None = None) -> HarvestResult:
    """
    Settle a harvest for one unit.

    Raises:
    - HarvestValidationError: blank device id (no data access)
    - NothingToHarvestError: no unharvested aggregates
    - HarvestConflictError: a concurrent settlement won the race; nothing written
    Anything else is rolled back and propagated.
    """
    device_id = _require_device_id(device_id)
    harvested_at = now or utcnow()

    try:
        aggregates = _select_unharvested(session, device_id)
        if not aggregates:
            session.rollback()
            raise NothingToHarvestError(
                "No unharvested aggregates found",
                details={"device_id": device_id},
            )

        date_ids = [aggregate.date_id for aggregate in aggregates]
        logger.info("Harvesting %d aggregates for device %s", len(date_ids), device_id)

        result = _fold(session, device_id, aggregates)
        result.harvest_date = harvested_at

        claim = session.query(UnitDailyAggregate).filter(
            UnitDailyAggregate.device_id == device_id,
            UnitDailyAggregate.date_id.in_(date_ids),
            UnitDailyAggregate.harvested.is_(False),
        )
        conditional_update(
            claim,
            {"harvested": True, "harvested_at": harvested_at},
            expected=len(date_ids),
        )
        session.commit()
    except ConcurrentUpdateError as exc:
        session.rollback()
        logger.warning(
            "Harvest conflict for device %s: %d selected, %d still unharvested at write",
            device_id, exc.expected, exc.updated,
        )
        raise HarvestConflictError(
            "Aggregates changed during settlement",
            details={"device_id": device_id, "selected": exc.expected, "updated": exc.updated},
        ) from exc
    except HarvestError:
        raise
    except Exception:
        session.rollback()
        logger.exception("Harvest failed for device %s", device_id)
        raise

    logger.info(
        "Harvest complete for device %s: P%d across %d aggregates (%s .. %s)",
        device_id, result.total_harvested, result.documents_updated,
        result.date_range["start"], result.date_range["end"],
    )
    return result
