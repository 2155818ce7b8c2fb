"""
Module: inventory_kernel.db.triggers
Responsibility: Installing, verifying and removing the PostgreSQL triggers that
    make the movement log append-only at the database level (Layer 2 of 2,
    complementing the ORM listeners in db/immutability.py).
Architecture position: Kernel > DB.  MUST NOT import from models/, services/,
    or outer layers.

Triggers:
    trg_stock_movement_immutability_update  -- rejects UPDATE on stock_movements
    trg_stock_movement_immutability_delete  -- rejects DELETE on stock_movements
    trg_inventory_item_no_delete            -- rejects DELETE on inventory_items

Failure modes:
    - PostgreSQL RAISE EXCEPTION on violation (surfaces as a DBAPIError).
    - TRUNCATE is not a row-level operation and is deliberately not blocked;
      the test suite relies on it for cleanup.
"""

from sqlalchemy import text
from sqlalchemy.engine import Engine

from inventory_kernel.logging_config import get_logger

logger = get_logger("db.triggers")

_INSTALL_SQL = """
CREATE OR REPLACE FUNCTION inventory_reject_mutation() RETURNS trigger AS $$
BEGIN
    RAISE EXCEPTION 'IMMUTABILITY_VIOLATION: % on % is not allowed',
        TG_OP, TG_TABLE_NAME;
END;
$$ LANGUAGE plpgsql;

DROP TRIGGER IF EXISTS trg_stock_movement_immutability_update ON stock_movements;
CREATE TRIGGER trg_stock_movement_immutability_update
    BEFORE UPDATE ON stock_movements
    FOR EACH ROW EXECUTE FUNCTION inventory_reject_mutation();

DROP TRIGGER IF EXISTS trg_stock_movement_immutability_delete ON stock_movements;
CREATE TRIGGER trg_stock_movement_immutability_delete
    BEFORE DELETE ON stock_movements
    FOR EACH ROW EXECUTE FUNCTION inventory_reject_mutation();

DROP TRIGGER IF EXISTS trg_inventory_item_no_delete ON inventory_items;
CREATE TRIGGER trg_inventory_item_no_delete
    BEFORE DELETE ON inventory_items
    FOR EACH ROW EXECUTE FUNCTION inventory_reject_mutation();
"""

_DROP_SQL = """
DROP TRIGGER IF EXISTS trg_stock_movement_immutability_update ON stock_movements;
DROP TRIGGER IF EXISTS trg_stock_movement_immutability_delete ON stock_movements;
DROP TRIGGER IF EXISTS trg_inventory_item_no_delete ON inventory_items;
DROP FUNCTION IF EXISTS inventory_reject_mutation();
"""

ALL_TRIGGER_NAMES = [
    "trg_stock_movement_immutability_update",
    "trg_stock_movement_immutability_delete",
    "trg_inventory_item_no_delete",
]


def install_immutability_triggers(engine: Engine) -> None:
    """Install (or replace) all triggers in one transaction."""
    with engine.begin() as conn:
        conn.exec_driver_sql(_INSTALL_SQL)
    logger.info("immutability_triggers_installed", extra={"triggers": ALL_TRIGGER_NAMES})


def uninstall_immutability_triggers(engine: Engine) -> None:
    """Drop all triggers.  Tables that no longer exist are skipped."""
    with engine.begin() as conn:
        existing = {
            row[0]
            for row in conn.execute(text(
                "SELECT tablename FROM pg_tables WHERE schemaname = current_schema()"
            ))
        }
        if {"stock_movements", "inventory_items"} <= existing:
            conn.exec_driver_sql(_DROP_SQL)


def triggers_installed(engine: Engine) -> bool:
    """Check whether every trigger in ALL_TRIGGER_NAMES exists."""
    with engine.connect() as conn:
        found = {
            row[0]
            for row in conn.execute(
                text(
                    "SELECT tgname FROM pg_trigger "
                    "WHERE NOT tgisinternal AND tgname = ANY(:names)"
                ),
                {"names": ALL_TRIGGER_NAMES},
            )
        }
    return found == set(ALL_TRIGGER_NAMES)
