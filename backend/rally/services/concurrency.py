# Overview: Transaction helpers shared by every ledger- or inventory-mutating service.

from __future__ import annotations

import time

from sqlalchemy import text
from sqlalchemy.exc import OperationalError
from sqlalchemy.orm.exc import StaleDataError

from ..extensions import db


def lock_for_update(query):
    """
    Apply row-level locking for critical operations.

    NOTE: SQLite ignores SELECT ... FOR UPDATE; begin_write() covers it there.
    """
    return query.with_for_update()


def begin_write() -> None:
    """
    Start the unit of work holding the database write lock.

    SQLite only: issue BEGIN IMMEDIATE so concurrent writers queue on the
    busy timeout instead of deadlocking when two readers both try to upgrade.
    A no-op when the driver already has a transaction open.
    """
    if db.engine.dialect.name != "sqlite":
        return
    dbapi_conn = db.session.connection().connection.dbapi_connection
    if dbapi_conn.in_transaction:
        return
    db.session.execute(text("BEGIN IMMEDIATE"))


def run_with_retry(func, *, attempts: int = 5, backoff_base: float = 0.05):
    """
    Execute one unit of work, retrying on concurrency-related failures.

    Retries on OperationalError (locks, deadlocks) and StaleDataError
    (version_id conflicts). Any other exception rolls the session back and
    propagates, so a failed step never leaves a partially applied unit.
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
        except Exception:
            db.session.rollback()
            raise
    if last_exc:
        raise last_exc
