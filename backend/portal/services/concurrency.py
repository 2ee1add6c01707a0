# Overview: Row locking and retry helpers shared by every write path.

from __future__ import annotations

import time

from sqlalchemy.exc import OperationalError
from sqlalchemy.orm.exc import StaleDataError

from ..errors import ConflictError
from ..extensions import db


def lock_for_update(query):
    """
    Apply row-level locking for critical operations.

    NOTE: SQLite ignores SELECT ... FOR UPDATE, but other DBs will honor it.
    The order's version_id column still catches lost updates there.
    """
    return query.with_for_update()


def run_with_retry(func, *, attempts: int = 3, backoff_base: float = 0.1):
    """
    Execute a DB operation with retry on lock failures.

    Retries on OperationalError (deadlocks, lock timeouts); func must re-read
    and re-validate its preconditions on every attempt. A StaleDataError means
    another transition committed first and is reported as ConflictError
    without retrying, since the caller's intent was based on the old state.
    """
    for attempt in range(attempts):
        try:
            return func()
        except StaleDataError:
            db.session.rollback()
            raise ConflictError()
        except OperationalError:
            db.session.rollback()
            if attempt >= attempts - 1:
                raise
            time.sleep(backoff_base * (2 ** attempt))

