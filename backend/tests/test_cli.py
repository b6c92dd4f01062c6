from datetime import datetime

from pisonet.models import Branch, BranchDailyAggregate, UnitDailyAggregate


class TestAggregatesCli:
    def test_run_for_date(self, app, db_session, make_branch, make_unit, make_sale):
        make_branch("branchA")
        make_unit("U1", "branchA")
        make_sale("U1", datetime(2026, 10, 17, 4, 0), coins_5=2)

        result = app.test_cli_runner().invoke(args=["aggregates", "run", "--date", "2026-10-17"])

        assert result.exit_code == 0, result.output
        assert "Aggregated 1 sales across 1 branches for 2026-10-17" in result.output
        db_session.expire_all()
        assert db_session.get(BranchDailyAggregate, ("branchA", "2026-10-17")).grand_total == 10

    def test_run_without_sales(self, app, db_session):
        result = app.test_cli_runner().invoke(args=["aggregates", "run", "--date", "2026-10-17"])

        assert result.exit_code == 0
        assert "No sales found for 2026-10-17" in result.output

    def test_bad_date(self, app, db_session):
        result = app.test_cli_runner().invoke(args=["aggregates", "run", "--date", "yesterday"])
        assert result.exit_code != 0

    def test_history_unknown_branch_fails(self, app, db_session):
        result = app.test_cli_runner().invoke(args=["aggregates", "history", "nope"])
        assert result.exit_code == 1


class TestHarvestCli:
    def test_settle(self, app, db_session, make_unit_aggregate):
        make_unit_aggregate("D1", "2026-10-17", 50)

        result = app.test_cli_runner().invoke(args=["harvest", "settle", "D1"])

        assert result.exit_code == 0, result.output
        assert "P50" in result.output
        db_session.expire_all()
        assert db_session.get(UnitDailyAggregate, ("D1", "2026-10-17")).harvested is True

    def test_settle_nothing(self, app, db_session):
        result = app.test_cli_runner().invoke(args=["harvest", "settle", "D1"])
        assert result.exit_code == 1


def test_seed_demo_is_repeatable(app, db_session):
    runner = app.test_cli_runner()

    first = runner.invoke(args=["system", "seed-demo", "--days", "2", "--sales", "3", "--seed", "7"])
    second = runner.invoke(args=["system", "seed-demo", "--days", "2", "--sales", "3", "--seed", "7"])

    assert first.exit_code == 0, first.output
    assert second.exit_code == 0, second.output
    db_session.expire_all()
    assert db_session.query(Branch).count() == 2
    assert db_session.query(UnitDailyAggregate).count() == 4 * 2
