from datetime import date, datetime

import pytest

from pisonet.models import BranchDailyAggregate
from pisonet.services.history_service import (
    BranchNotFoundError,
    HistoryValidationError,
    UnitNotFoundError,
    branch_aggregate_history,
    format_display_date,
    unit_aggregate_history,
)


def _branch_row(branch_id, day, grand_total, **coins):
    return BranchDailyAggregate(
        branch_id=branch_id,
        date_id=day.isoformat(),
        aggregate_date=day,
        total_transactions=grand_total // 5,
        grand_total=grand_total,
        coins_1=coins.get("coins_1", 0),
        coins_5=coins.get("coins_5", 0),
        coins_10=coins.get("coins_10", 0),
        coins_20=coins.get("coins_20", 0),
        total_coins=sum(coins.values()),
        created_at=datetime(2026, 10, 19),
        processed_at=datetime(2026, 10, 19),
    )


class TestBranchAggregateHistory:
    def test_newest_first_with_limit(self, db_session, make_branch):
        make_branch("branchA", location="Poblacion")
        for day in range(10, 20):
            db_session.add(_branch_row("branchA", date(2026, 10, day), day * 10, coins_5=day))
        db_session.add(_branch_row("branchB", date(2026, 10, 19), 999, coins_20=1))
        db_session.commit()

        history = branch_aggregate_history(db_session, "branchA", limit=3)

        assert history.location == "Poblacion"
        assert [r.date_id for r in history.records] == ["2026-10-19", "2026-10-18", "2026-10-17"]
        top = history.records[0]
        assert top.total_revenue == 190
        assert top.coin_breakdown == {"peso1": 0, "peso5": 19, "peso10": 0, "peso20": 0}
        assert top.total_coins == 19

    def test_display_record(self, db_session, make_branch):
        make_branch("branchA", name="Main")
        db_session.add(_branch_row("branchA", date(2026, 10, 19), 35, coins_1=5, coins_10=3))
        db_session.commit()

        record = branch_aggregate_history(db_session, "branchA").to_dict()["aggregates"][0]

        assert record["date"] == "Oct 19, 2026"
        assert record["location"] == "Main"
        assert record["totalRevenue"] == 35
        assert record["totalCoins"] == 8

    def test_location_falls_back_to_branch_id(self, db_session, make_branch):
        make_branch("branchZ")
        assert branch_aggregate_history(db_session, "branchZ").location == "Branch branchZ"

    def test_unknown_branch_is_not_found(self, db_session):
        with pytest.raises(BranchNotFoundError):
            branch_aggregate_history(db_session, "nope")

    def test_branch_without_aggregates_is_empty_not_error(self, db_session, make_branch):
        make_branch("branchA")
        assert branch_aggregate_history(db_session, "branchA").records == []

    @pytest.mark.parametrize("limit", [0, -1, 366, True, "5"])
    def test_invalid_limit(self, db_session, make_branch, limit):
        make_branch("branchA")
        with pytest.raises(HistoryValidationError):
            branch_aggregate_history(db_session, "branchA", limit=limit)


class TestUnitAggregateHistory:
    def test_lists_with_harvest_state(self, db_session, make_unit, make_unit_aggregate):
        make_unit("D1", alias="PC 1")
        make_unit_aggregate("D1", "2026-10-17", 50, harvested=True)
        make_unit_aggregate("D1", "2026-10-18", 75, coins_5=15)

        history = unit_aggregate_history(db_session, "D1")

        assert [r["dateId"] for r in history["aggregates"]] == ["2026-10-18", "2026-10-17"]
        assert history["unharvestedTotal"] == 75
        assert history["aggregates"][0]["totalCoins"] == 15
        assert history["alias"] == "PC 1"

    def test_exclude_harvested(self, db_session, make_unit, make_unit_aggregate):
        make_unit("D1")
        make_unit_aggregate("D1", "2026-10-17", 50, harvested=True)
        make_unit_aggregate("D1", "2026-10-18", 75)

        history = unit_aggregate_history(db_session, "D1", include_harvested=False)

        assert [r["dateId"] for r in history["aggregates"]] == ["2026-10-18"]

    def test_unknown_unit(self, db_session):
        with pytest.raises(UnitNotFoundError):
            unit_aggregate_history(db_session, "ghost")


def test_format_display_date():
    assert format_display_date("2026-01-05") == "Jan 5, 2026"
