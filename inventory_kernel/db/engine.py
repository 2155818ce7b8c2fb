"""
Engine and session management for the inventory database.

Production runs on PostgreSQL at READ COMMITTED; the engines take row locks
(SELECT ... FOR UPDATE) on the inventory rows they change, in canonical key
order.  SQLite is accepted for local runs and the test suite: every
transaction opens with BEGIN IMMEDIATE, so writers queue on the database
write lock, which is at least as strict as row locking.

One engine per process.  ``init_engine_from_url`` must run before any of the
getters; they raise RuntimeError otherwise.  create_tables imports the
models so the metadata is complete, but nothing here imports services or
selectors.
"""

import atexit
from contextlib import contextmanager
from typing import Any, Generator

from sqlalchemy import create_engine, event
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, sessionmaker

from inventory_kernel.logging_config import configure_logging, get_logger

logger = get_logger("db.engine")

_engine: Engine | None = None
_SessionFactory: sessionmaker[Session] | None = None

DEFAULT_LOCK_TIMEOUT_MS = 5000


def _install_sqlite_locking(engine: Engine) -> None:
    """BEGIN IMMEDIATE on every transaction; foreign keys on."""

    @event.listens_for(engine, "connect")
    def _on_connect(dbapi_connection, connection_record):
        # pysqlite must not issue its own deferred BEGIN
        dbapi_connection.isolation_level = None
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()

    @event.listens_for(engine, "begin")
    def _on_begin(conn):
        conn.exec_driver_sql("BEGIN IMMEDIATE")


def init_engine_from_url(
    database_url: str,
    echo: bool = False,
    pool_size: int = 20,
    max_overflow: int = 10,
    pool_pre_ping: bool = True,
    pool_timeout: int = 30,
    pool_recycle: int = 1800,
    lock_timeout_ms: int = DEFAULT_LOCK_TIMEOUT_MS,
) -> Engine:
    """
    Create the process-wide engine and session factory.

    ``database_url`` is a PostgreSQL URL or a file-backed SQLite URL.  An
    in-memory SQLite database is private to one connection, so the
    concurrent checkout paths would each see an empty store.

    ``lock_timeout_ms`` becomes the SQLite busy timeout for every
    connection.  On PostgreSQL the orchestrator applies it per transaction
    with ``SET LOCAL lock_timeout`` instead.

    Calling again replaces the previous engine without disposing it; use
    reset_engine() for that.
    """
    global _engine, _SessionFactory

    options: dict[str, Any] = dict(
        echo=echo,
        pool_size=pool_size,
        max_overflow=max_overflow,
        pool_pre_ping=pool_pre_ping,
        pool_timeout=pool_timeout,
        pool_recycle=pool_recycle,
    )

    sqlite = database_url.startswith("sqlite")
    if sqlite:
        options["connect_args"] = {
            "timeout": lock_timeout_ms / 1000,
            "check_same_thread": False,
        }
    else:
        options["isolation_level"] = "READ COMMITTED"

    engine = create_engine(database_url, **options)
    if sqlite:
        _install_sqlite_locking(engine)

    _engine = engine
    _SessionFactory = sessionmaker(bind=engine, expire_on_commit=False)

    configure_logging()
    logger.info(
        "engine_initialized",
        extra={
            "dialect": engine.dialect.name,
            "pool_size": pool_size,
            "max_overflow": max_overflow,
            "lock_timeout_ms": lock_timeout_ms,
            "echo": echo,
        },
    )
    return engine


def init_engine_from_config(config) -> Engine:
    """
    Same as init_engine_from_url, reading settings off an InventoryConfig.

    Only attribute names matter; the kernel never imports inventory_config.
    ``config.log_level`` is applied to the kernel logger first, so the
    engine_initialized record already honours it.
    """
    configure_logging(level=config.log_level)
    return init_engine_from_url(
        config.database_url,
        echo=config.echo,
        pool_size=config.pool_size,
        max_overflow=config.max_overflow,
        pool_timeout=config.pool_timeout,
        lock_timeout_ms=config.lock_timeout_ms,
    )


def _require_initialized() -> tuple[Engine, sessionmaker[Session]]:
    if _engine is None or _SessionFactory is None:
        raise RuntimeError(
            "Inventory database is not initialized; call init_engine_from_url() first."
        )
    return _engine, _SessionFactory


def get_engine() -> Engine:
    return _require_initialized()[0]


def get_session_factory() -> sessionmaker[Session]:
    """Factory for per-thread sessions, as used by concurrent checkout workers."""
    return _require_initialized()[1]


def get_session() -> Session:
    return get_session_factory()()


@contextmanager
def session_scope() -> Generator[Session, None, None]:
    """
    Session that commits when the block exits cleanly.

    Any exception rolls the transaction back before propagating.  The
    session is closed either way.  Kernel writes go through
    StockOrchestrator; this is for setup scripts and seeding stock.
    """
    session = get_session()
    logger.debug("transaction_started")
    try:
        yield session
        session.commit()
        logger.debug("transaction_committed")
    except Exception:
        session.rollback()
        logger.warning("transaction_rolled_back", exc_info=True)
        raise
    finally:
        session.close()


def create_tables(install_triggers: bool = True) -> None:
    """
    Create inventory_items and stock_movements.

    On PostgreSQL the append-only triggers on stock_movements are installed
    too unless ``install_triggers`` is False.  SQLite relies on the ORM
    listeners alone.
    """
    from inventory_kernel.db.base import Base
    import inventory_kernel.models  # noqa: F401  (registers tables)

    engine = get_engine()
    engine.dispose()

    Base.metadata.create_all(engine)

    if install_triggers and is_postgres():
        from inventory_kernel.db.triggers import install_immutability_triggers

        install_immutability_triggers(engine)

    logger.info(
        "tables_created",
        extra={"tables": sorted(Base.metadata.tables), "triggers": install_triggers},
    )


def drop_tables() -> None:
    """Remove the triggers (PostgreSQL) and every kernel table.  Test teardown only."""
    from inventory_kernel.db.base import Base
    import inventory_kernel.models  # noqa: F401

    engine = get_engine()
    if is_postgres():
        from inventory_kernel.db.triggers import uninstall_immutability_triggers

        uninstall_immutability_triggers(engine)
    Base.metadata.drop_all(engine)


def reset_engine() -> None:
    """Dispose the pool and forget the engine."""
    global _engine, _SessionFactory

    if _engine is not None:
        _engine.dispose()
    _engine = None
    _SessionFactory = None


def _dispose_at_exit():
    if _engine is not None:
        _engine.dispose()


atexit.register(_dispose_at_exit)


def is_postgres() -> bool:
    """False when no engine has been initialized."""
    return _engine is not None and _engine.dialect.name == "postgresql"
