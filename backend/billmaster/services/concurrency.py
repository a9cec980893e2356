# Overview: Retry and locking helpers for read-modify-write operations against the store.

from __future__ import annotations

import logging
import time

from sqlalchemy.exc import OperationalError
from sqlalchemy.orm.exc import StaleDataError

from ..errors import StoreError
from ..extensions import db


logger = logging.getLogger(__name__)

# Optimistic version conflicts (version_id_col) and lock/deadlock errors.
RETRYABLE_ERRORS = (OperationalError, StaleDataError)


def lock_for_update(query):
    """
    Apply row-level locking for critical operations.

    NOTE: SQLite ignores SELECT ... FOR UPDATE, but other DBs will honor it.
    """
    return query.with_for_update()


def run_with_retry(
    func,
    *,
    attempts: int = 3,
    backoff_base: float = 0.1,
    retry_on: tuple = RETRYABLE_ERRORS,
    rollback=None,
):
    """
    Execute a store operation, re-running it from scratch on concurrency failures.

    Each attempt must re-read everything it needs; the session is rolled back
    between attempts. When the last attempt fails the error surfaces as
    StoreError.
    """
    rollback = rollback or db.session.rollback
    for attempt in range(attempts):
        try:
            return func()
        except retry_on as exc:
            rollback()
            if attempt >= attempts - 1:
                logger.error("Giving up after %d attempts: %s", attempts, exc)
                raise StoreError(
                    "The record was changed by another operation; please reload and retry",
                    details={"attempts": attempts, "cause": type(exc).__name__},
                ) from exc
            logger.warning("Retrying after %s (attempt %d/%d)", type(exc).__name__, attempt + 1, attempts)
            time.sleep(backoff_base * (2 ** attempt))
