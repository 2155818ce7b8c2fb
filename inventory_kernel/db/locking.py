"""
Module: inventory_kernel.db.locking
Responsibility: Backend-specific pieces of pessimistic locking -- bounding
    how long a transaction waits for row locks, and recognising the driver
    errors that mean "lock not granted".
Architecture position: Kernel > DB.  Used by services/stock_orchestrator.py.

Failure modes:
    - PostgreSQL raises SQLSTATE 55P03 (lock_not_available) when
      lock_timeout expires and 40P01 (deadlock_detected) when it aborts a
      deadlock victim.  Both surface as OperationalError / DBAPIError.
    - SQLite raises OperationalError("database is locked") once the busy
      timeout expires.
"""

from sqlalchemy import text
from sqlalchemy.exc import DBAPIError
from sqlalchemy.orm import Session

# SQLSTATE codes that mean the lock was not granted
LOCK_FAILURE_SQLSTATES = frozenset({
    "55P03",  # lock_not_available
    "40P01",  # deadlock_detected
})

_SQLITE_LOCK_MESSAGES = ("database is locked", "database table is locked")


def dialect_name(session: Session) -> str:
    return session.get_bind().dialect.name


def apply_lock_timeout(session: Session, lock_timeout_ms: int | None) -> None:
    """
    Bound lock waits for the current transaction.

    PostgreSQL only: SET LOCAL scopes the setting to the open transaction, so
    it disappears on commit or rollback.  On SQLite the busy timeout is set
    per connection by the engine and this is a no-op.
    """
    if lock_timeout_ms is None or dialect_name(session) != "postgresql":
        return
    # SET does not accept bind parameters
    session.execute(text(f"SET LOCAL lock_timeout = '{int(lock_timeout_ms)}ms'"))


def _sqlstate(exc: DBAPIError) -> str | None:
    orig = exc.orig
    # psycopg2 exposes pgcode, psycopg 3 exposes sqlstate
    return getattr(orig, "pgcode", None) or getattr(orig, "sqlstate", None)


def is_lock_failure(exc: BaseException) -> bool:
    """True if ``exc`` means a row/database lock could not be acquired."""
    if not isinstance(exc, DBAPIError):
        return False
    if _sqlstate(exc) in LOCK_FAILURE_SQLSTATES:
        return True
    message = str(exc.orig).lower()
    return any(fragment in message for fragment in _SQLITE_LOCK_MESSAGES)
