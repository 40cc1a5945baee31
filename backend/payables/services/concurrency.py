# Overview: Row locking and retry helpers for settlement and reversal writes.

from __future__ import annotations

import logging
import time

from sqlalchemy.exc import OperationalError
from sqlalchemy.orm.exc import StaleDataError

from ..extensions import db
from ..engine.errors import ConcurrencyConflictError


logger = logging.getLogger(__name__)


def lock_for_update(query):
    """
    Apply row-level locking for critical operations.

    NOTE: SQLite ignores SELECT ... FOR UPDATE, but other DBs will honor it.
    The receivable version column still catches concurrent writers there.
    """
    return query.with_for_update()


def run_with_retry(func, *, attempts: int = 3, backoff_base: float = 0.1):
    """
    Execute a DB operation with retry on concurrency-related failures.

    Retries on OperationalError (deadlocks, locks), StaleDataError
    (optimistic locking conflicts) and ConcurrencyConflictError (write-set
    expectation mismatch). func must re-read its snapshot on every call so a
    retry plans against fresh rows. When attempts run out, a StaleDataError
    surfaces as ConcurrencyConflictError.
    """
    last_exc = None
    for attempt in range(attempts):
        try:
            return func()
        except (OperationalError, StaleDataError, ConcurrencyConflictError) as exc:
            db.session.rollback()
            last_exc = exc
            logger.warning("Concurrent write conflict (attempt %s/%s): %s", attempt + 1, attempts, exc)
            if attempt >= attempts - 1:
                if isinstance(exc, StaleDataError):
                    raise ConcurrencyConflictError(
                        "Receivable was modified by another session; reload and try again"
                    ) from exc
                raise
            time.sleep(backoff_base * (2 ** attempt))
    if last_exc:
        raise last_exc
