"""
Local SQLite Schema Initialization.

Defines the tables behind client storage and a single entry-point,
:func:`initialize_schema`, that creates them idempotently.  A
``schema_version`` table tracks applied migrations so later changes can
be rolled forward without wiping a signed-in user's session.

Tables:
    - ``local_storage``: persistent key-value store (``ts-user``, ``ts-token``).
    - ``cookies``: the cookie jar mirror (``ts-token``).

Usage::

    from crm_portal.schema import initialize_schema

    initialize_schema(db.sqlite, StructuredLogger(name="schema"))
"""

from __future__ import annotations

import sqlite3
from collections.abc import Callable

from crm_portal.logger import StructuredLogger

__all__ = ["CURRENT_SCHEMA_VERSION", "initialize_schema"]

CURRENT_SCHEMA_VERSION: int = 1

_TABLE_DEFINITIONS: list[str] = [
    # -- persistent key-value store -------------------------------------------
    """
    CREATE TABLE IF NOT EXISTS local_storage (
        key TEXT PRIMARY KEY,
        value TEXT NOT NULL,
        updated_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
    )
    """,
    # -- cookie jar -----------------------------------------------------------
    """
    CREATE TABLE IF NOT EXISTS cookies (
        name TEXT PRIMARY KEY,
        value TEXT NOT NULL,
        path TEXT NOT NULL DEFAULT '/',
        expires_at TEXT NOT NULL,
        secure INTEGER NOT NULL DEFAULT 0,
        same_site TEXT NOT NULL DEFAULT 'Lax',
        created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
    )
    """,
]

MigrationFunc = Callable[[sqlite3.Connection, StructuredLogger], None]

# Maps *target* version to its migration function.
_MIGRATIONS: dict[int, MigrationFunc] = {}


def _ensure_version_table(conn: sqlite3.Connection) -> None:
    conn.execute(
        """
        CREATE TABLE IF NOT EXISTS schema_version (
            id INTEGER PRIMARY KEY CHECK (id = 1),
            version INTEGER NOT NULL,
            applied_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
        )
        """
    )
    conn.commit()


def _get_schema_version(conn: sqlite3.Connection) -> int:
    row = conn.execute("SELECT version FROM schema_version WHERE id = 1").fetchone()
    return int(row[0]) if row is not None else 0


def _set_schema_version(conn: sqlite3.Connection, version: int) -> None:
    conn.execute(
        """
        INSERT INTO schema_version (id, version) VALUES (1, ?)
        ON CONFLICT(id) DO UPDATE SET
            version = excluded.version,
            applied_at = CURRENT_TIMESTAMP
        """,
        (version,),
    )


def _create_all_tables(conn: sqlite3.Connection, logger: StructuredLogger) -> None:
    for ddl in _TABLE_DEFINITIONS:
        conn.execute(ddl)
    logger.info("Created %d storage tables.", len(_TABLE_DEFINITIONS))


def _run_incremental_migrations(
    conn: sqlite3.Connection,
    logger: StructuredLogger,
    from_version: int,
    to_version: int,
) -> None:
    """Run registered migrations in ``(from_version, to_version]`` order.

    Does **not** commit; the caller is responsible for transaction
    management.
    """
    for version in sorted(v for v in _MIGRATIONS if from_version < v <= to_version):
        logger.info("Running migration to version %d.", version)
        _MIGRATIONS[version](conn, logger)


def initialize_schema(conn: sqlite3.Connection, logger: StructuredLogger) -> None:
    """Ensure the local database matches :data:`CURRENT_SCHEMA_VERSION`.

    Fresh databases get every table; existing ones run incremental
    migrations.  The upgrade and the version bump commit together, so a
    failure leaves the stored version unchanged and the next startup
    retries.  Safe to call on every startup.
    """
    _ensure_version_table(conn)
    current: int = _get_schema_version(conn)

    if current >= CURRENT_SCHEMA_VERSION:
        logger.debug("Schema is up to date (version %d).", current)
        return

    try:
        if current == 0:
            _create_all_tables(conn, logger)
        else:
            _run_incremental_migrations(conn, logger, current, CURRENT_SCHEMA_VERSION)
        _set_schema_version(conn, CURRENT_SCHEMA_VERSION)
        conn.commit()
    except Exception:
        conn.rollback()
        logger.error(
            "Schema migration failed; rolled back to version %d.", current,
        )
        raise

    logger.info("Schema initialised at version %d.", CURRENT_SCHEMA_VERSION)
