# Overview: Service-layer helpers for concurrency; row locking and conditioned writes.

from __future__ import annotations


class ConcurrentUpdateError(Exception):
    """Raised when a conditioned write matched a different number of rows than were read."""

    def __init__(self, expected: int, updated: int):
        super().__init__(f"Expected to update {expected} rows, updated {updated}")
        self.expected = expected
        self.updated = updated


def lock_for_update(query):
    """
    Apply row-level locking for critical operations.

    NOTE: SQLite ignores SELECT ... FOR UPDATE, but other DBs will honor it.
    """
    return query.with_for_update()


def conditional_update(query, values: dict, *, expected: int) -> int:
    """
    Bulk UPDATE the rows matched by `query` and require exactly `expected` of them.

    The query carries the same predicate the rows were selected with, so a row
    changed by a concurrent writer since the read no longer matches and the
    count comes up short. Caller owns the rollback.
    """
    updated = query.update(values, synchronize_session=False)
    if updated != expected:
        raise ConcurrentUpdateError(expected, updated)
    return updated
