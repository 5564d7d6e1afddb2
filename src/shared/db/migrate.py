"""Schema initialisation for the vintage store.

Creates the ORM tables if they are missing. Safe to run repeatedly.

Usage:
    python -m src.shared.db.migrate          # create missing tables
    python -m src.shared.db.migrate --status  # show which tables exist
"""

from __future__ import annotations

import argparse
import sys

from sqlalchemy import inspect

from src.shared.config.logging import get_logger
from src.shared.db.connection import DatabaseManager, get_db
from src.shared.db.models import Base

logger = get_logger(__name__)


def missing_tables(db: DatabaseManager) -> list[str]:
    """Return ORM table names not yet present in the database."""
    existing = set(inspect(db.engine).get_table_names())
    return [name for name in Base.metadata.tables if name not in existing]


def init_schema(db: DatabaseManager | None = None) -> int:
    """Create every missing ORM table.

    Args:
        db: DatabaseManager instance. Uses the global instance when None.

    Returns:
        Number of tables created.
    """
    db = db or get_db()
    pending = missing_tables(db)
    if not pending:
        logger.info("schema_up_to_date")
        return 0

    logger.info("creating_tables", tables=pending)
    Base.metadata.create_all(db.engine)
    logger.info("schema_initialised", created=len(pending))
    return len(pending)


def show_status(db: DatabaseManager | None = None) -> None:
    """Print table status to stdout."""
    db = db or get_db()
    pending = set(missing_tables(db))
    for name in Base.metadata.tables:
        status = "MISSING" if name in pending else "PRESENT"
        print(f"  [{status}] {name}")


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description="Initialise the vintage store schema")
    parser.add_argument(
        "--status",
        action="store_true",
        help="Show table status instead of creating tables",
    )
    args = parser.parse_args()

    try:
        db = get_db()
        if args.status:
            show_status(db)
        else:
            count = init_schema(db)
            print(f"Created {count} table(s).")
    except Exception as exc:
        logger.error("schema_init_failed", error=str(exc))
        print(f"Schema initialisation failed: {exc}", file=sys.stderr)
        sys.exit(1)
