# Overview: Unit-of-work and retry helpers shared by the write paths.

from __future__ import annotations

import logging
import time
from contextlib import contextmanager

from sqlalchemy.exc import OperationalError, SQLAlchemyError
from sqlalchemy.orm.exc import StaleDataError

from ..errors import StorageFailure
from ..extensions import db

logger = logging.getLogger(__name__)

RETRYABLE_ERRORS = (OperationalError, StaleDataError)


def lock_for_update(query):
    """
    SELECT ... FOR UPDATE on databases that support it.

    SQLite has no row locks and ignores the clause; there the write lock taken
    by the first UPDATE of the unit of work serializes writers.
    """
    return query.with_for_update()


@contextmanager
def unit_of_work():
    """
    Commit the session when the block finishes, roll back on any exception.

    Everything written inside the block is applied together or not at all.
    """
    try:
        yield db.session
        db.session.commit()
    except Exception:
        db.session.rollback()
        raise


def run_with_retry(
    func,
    *,
    attempts: int = 3,
    backoff_base: float = 0.1,
    retry_on: tuple = RETRYABLE_ERRORS,
    on_retry=None,
):
    """
    Run func, retrying when a concurrent writer got in the way.

    By default OperationalError (lock timeouts, deadlocks) and StaleDataError
    (Sale.version_id mismatch) are retried. Once attempts are exhausted,
    or on any other database error, raises StorageFailure.

    on_retry(exc) runs after the rollback and before the next attempt.
    """
    for attempt in range(attempts):
        try:
            return func()
        except retry_on as exc:
            db.session.rollback()
            if attempt >= attempts - 1:
                raise StorageFailure(
                    "Could not commit the operation",
                    details={"attempts": attempts, "reason": type(exc).__name__},
                ) from exc
            logger.warning("Retrying after %s (attempt %d of %d)", type(exc).__name__, attempt + 1, attempts)
            if on_retry is not None:
                on_retry(exc)
            time.sleep(backoff_base * (2 ** attempt))
        except SQLAlchemyError as exc:
            db.session.rollback()
            raise StorageFailure(
                "Could not commit the operation",
                details={"reason": type(exc).__name__},
            ) from exc
