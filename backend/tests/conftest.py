"""
Pytest fixtures for the pisonet backend tests.

Provides an in-memory database, per-test table clearing, a test client and
small factories for units, sales and per-unit aggregates.
"""

from datetime import datetime, timedelta, timezone

import pytest
from pisonet import create_app
from pisonet.extensions import db
from pisonet.models import Branch, Unit, SaleEvent, UnitDailyAggregate, COIN_DENOMINATIONS


HARVEST_KEY = "test-harvest-key"
CRON_SECRET = "test-cron-secret"
MANILA = timezone(timedelta(hours=8))


def manila(year, month, day, hour=0, minute=0, second=0, microsecond=0) -> datetime:
    """Aware datetime in business time (UTC+08:00)."""
    return datetime(year, month, day, hour, minute, second, microsecond, tzinfo=MANILA)


@pytest.fixture(scope='session')
def app():
    """Create application for testing."""
    app = create_app({
        'TESTING': True,
        'SQLALCHEMY_DATABASE_URI': 'sqlite:///:memory:',
        'SQLALCHEMY_TRACK_MODIFICATIONS': False,
        'HARVEST_API_KEY': HARVEST_KEY,
        'CRON_SECRET': CRON_SECRET,
        'BUSINESS_UTC_OFFSET_MINUTES': 480,
        'HISTORY_DEFAULT_LIMIT': 30,
    })

    with app.app_context():
        db.create_all()
        yield app
        db.drop_all()


@pytest.fixture(scope='function')
def client(app):
    """Create test client."""
    return app.test_client()


@pytest.fixture(scope='function')
def db_session(app):
    """Create fresh database for each test."""
    with app.app_context():
        # Clear all data but keep schema
        meta = db.metadata
        for table in reversed(meta.sorted_tables):
            db.session.execute(table.delete())
        db.session.commit()

        yield db.session

        # Cleanup after test
        db.session.rollback()


@pytest.fixture(scope='function')
def make_branch(db_session):
    def _make(branch_id, location=None, name=None):
        branch = Branch(id=branch_id, location=location, name=name)
        db_session.add(branch)
        db_session.commit()
        return branch
    return _make


@pytest.fixture(scope='function')
def make_unit(db_session):
    def _make(device_id, branch_id=None, alias=None):
        unit = Unit(device_id=device_id, branch_id=branch_id, alias=alias)
        db_session.add(unit)
        db_session.commit()
        return unit
    return _make


@pytest.fixture(scope='function')
def make_sale(db_session):
    """Insert a sale; total is derived from the coins unless given."""
    def _make(device_id, timestamp, total=None, **coins):
        counts = {name: coins.get(name, 0) for name in COIN_DENOMINATIONS}
        if total is None:
            total = sum(counts[name] * value for name, value in COIN_DENOMINATIONS.items())
        sale = SaleEvent(device_id=device_id, total=total, timestamp=timestamp, **counts)
        db_session.add(sale)
        db_session.commit()
        return sale
    return _make


@pytest.fixture(scope='function')
def make_unit_aggregate(db_session):
    def _make(device_id, date_id, total, harvested=False, sales_count=1, **coins):
        aggregate = UnitDailyAggregate(
            device_id=device_id,
            date_id=date_id,
            total=total,
            sales_count=sales_count,
            harvested=harvested,
            **{name: coins.get(name, 0) for name in COIN_DENOMINATIONS},
        )
        db_session.add(aggregate)
        db_session.commit()
        return aggregate
    return _make


def harvest_body(device_id, key=HARVEST_KEY) -> dict:
    body = {"key": key}
    if device_id is not None:
        body["deviceId"] = device_id
    return body


def cron_headers(token=CRON_SECRET) -> dict:
    return {'Authorization': f'Bearer {token}'}
