from .fleet import Branch, Unit
from .sales import SaleEvent, COIN_FIELDS, COIN_DENOMINATIONS
from .aggregates import BranchDailyAggregate, UnitDailyAggregate

__all__ = [
    'Branch', 'Unit',
    'SaleEvent', 'COIN_FIELDS', 'COIN_DENOMINATIONS',
    'BranchDailyAggregate', 'UnitDailyAggregate',
]
