"""
Local Storage Service.

Read/write access to the ``local_storage`` key-value table: the durable,
process-independent store holding the persisted profile (``ts-user``) and
the primary copy of the bearer token (``ts-token``).

Reads degrade to ``None`` with a logged warning; writes raise
``sqlite3.Error`` so that a surrounding ``batch_write()`` rolls back.
Writes commit immediately unless a batch is active.
"""

from __future__ import annotations

from typing import Optional

from crm_portal.database import DatabaseManager
from crm_portal.logger import StructuredLogger


class LocalStorageService:
    """Persistent string key-value store in local SQLite.

    Parameters
    ----------
    db:
        Initialised ``DatabaseManager`` with the storage schema applied.
    logger:
        Structured logger instance.
    """

    def __init__(self, db: DatabaseManager, logger: StructuredLogger) -> None:
        self._db = db
        self._logger = logger

    def get(self, key: str) -> Optional[str]:
        """Read a value by key.  Returns ``None`` if not found."""
        try:
            row = self._db.sqlite.execute(
                "SELECT value FROM local_storage WHERE key = ?",
                (key,),
            ).fetchone()
            return row["value"] if row is not None else None
        except Exception as exc:
            self._logger.warning("Failed to read local_storage[%s]: %s", key, exc)
            return None

    def set(self, key: str, value: str) -> None:
        """Upsert *value* under *key*."""
        with self._db.write_lock:
            self._db.sqlite.execute(
                """
                INSERT INTO local_storage (key, value)
                VALUES (?, ?)
                ON CONFLICT(key) DO UPDATE SET
                    value      = excluded.value,
                    updated_at = CURRENT_TIMESTAMP
                """,
                (key, value),
            )
            self._db.commit()
        self._logger.debug("local_storage[%s] updated.", key)

    def remove(self, key: str) -> None:
        """Delete *key*.  Missing keys are ignored."""
        with self._db.write_lock:
            self._db.sqlite.execute("DELETE FROM local_storage WHERE key = ?", (key,))
            self._db.commit()

    def keys(self) -> list[str]:
        rows = self._db.sqlite.execute(
            "SELECT key FROM local_storage ORDER BY key",
        ).fetchall()
        return [row["key"] for row in rows]
