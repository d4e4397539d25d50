# Overview: Retry helper for optimistic-locking conflicts on versioned rows.

from __future__ import annotations

import time

from sqlalchemy.exc import IntegrityError, OperationalError
from sqlalchemy.orm.exc import StaleDataError

from ..extensions import db
from ..validation import ConflictError


# IntegrityError covers two writers inserting the same first row; the next
# attempt sees that row and takes the update path.
RETRYABLE_ERRORS = (OperationalError, StaleDataError, IntegrityError)


def run_with_retry(func, *, attempts: int = 3, backoff_base: float = 0.05):
    """
    Execute a DB operation with retry on concurrency-related failures.

    Retries on OperationalError (locks), StaleDataError (a concurrent
    writer bumped a version_id first) and IntegrityError (a concurrent
    writer inserted the same unique row first). The session is rolled back
    before each retry so func re-reads current state. After the last
    attempt the failure is reported as ConflictError.
    """
    for attempt in range(attempts):
        try:
            return func()
        except RETRYABLE_ERRORS as exc:
            db.session.rollback()
            if attempt >= attempts - 1:
                raise ConflictError("Concurrent update detected, please retry") from exc
            time.sleep(backoff_base * (2 ** attempt))
