# Overview: Service-layer operations for concurrency; encapsulates business logic and database work.

from __future__ import annotations

import time
from contextlib import contextmanager

from sqlalchemy.exc import OperationalError
from sqlalchemy.orm.exc import StaleDataError

from ..extensions import db


def lock_for_update(query):
    """
    Apply row-level locking for critical operations.

    NOTE: SQLite ignores SELECT ... FOR UPDATE, but other DBs will honor it.
    The version_id column still catches lost updates there.
    """
    return query.with_for_update()


@contextmanager
def unit_of_work():
    """
    One database transaction around a multi-step mutation.

    Commits when the block exits normally; any exception rolls back every
    change made inside the block (stock adjustments, documents, audit rows)
    and is re-raised.
    """
    try:
        yield db.session
        db.session.commit()
    except Exception:
        db.session.rollback()
        raise


def run_with_retry(func, *, attempts: int = 3, backoff_base: float = 0.1):
    """
    Execute a DB operation with retry on concurrency-related failures.

    Retries on OperationalError (deadlocks, locks) and StaleDataError
    (optimistic locking conflicts). func must own its transaction so a retry
    starts from a clean session.
    """
    last_exc = None
    for attempt in range(attempts):
        try:
            return func()
        except (OperationalError, StaleDataError) as exc:
            db.session.rollback()
            last_exc = exc
            if attempt >= attempts - 1:
                raise
            time.sleep(backoff_base * (2 ** attempt))
    if last_exc:
        raise last_exc


def run_in_transaction(func, *, attempts: int = 3, backoff_base: float = 0.1):
    """Run func inside unit_of_work(), retrying the whole transaction on conflict."""
    def _op():
        with unit_of_work():
            return func()
    return run_with_retry(_op, attempts=attempts, backoff_base=backoff_base)
