"""
Local Database Layer.

The CRM portal keeps its client-side durable state (the key-value store
and the cookie jar) in a single local SQLite file.  Both stores share one
connection so that a session can be written or wiped in one transaction.

This module only manages the raw connection; it contains no query logic.

Usage (dependency injection at app startup)::

    from crm_portal.database import DatabaseManager
    from crm_portal.logger import StructuredLogger

    db = DatabaseManager(
        sqlite_path=Path(config.STORAGE_PATH),
        logger=StructuredLogger(name="database"),
    )
"""

from __future__ import annotations

import sqlite3
import threading
from contextlib import contextmanager
from pathlib import Path
from typing import Generator, Union

from crm_portal.logger import StructuredLogger


class DatabaseManager:
    """Owns the SQLite connection backing client storage.

    Parameters
    ----------
    sqlite_path:
        Filesystem path for the SQLite database file, or ``":memory:"``.
    logger:
        A ``StructuredLogger`` instance for structured JSON log output.
    """

    def __init__(
        self,
        sqlite_path: Union[Path, str],
        logger: StructuredLogger,
    ) -> None:
        self._logger: StructuredLogger = logger
        self._write_lock: threading.RLock = threading.RLock()
        self._in_batch: bool = False
        self._closed: bool = False
        self._sqlite_conn: sqlite3.Connection = self._connect_sqlite(sqlite_path)

    @property
    def sqlite(self) -> sqlite3.Connection:
        """Return the initialised SQLite connection."""
        return self._sqlite_conn

    @property
    def write_lock(self) -> threading.RLock:
        """Return the write lock for thread-safe SQLite operations.

        All code that performs SQLite writes should acquire this lock
        first::

            with db.write_lock:
                db.sqlite.execute("INSERT ...")
                db.commit()
        """
        return self._write_lock

    @property
    def in_batch(self) -> bool:
        """``True`` while a :meth:`batch_write` context is active."""
        return self._in_batch

    def commit(self) -> None:
        """Commit unless a :meth:`batch_write` will commit for us."""
        if not self._in_batch:
            self._sqlite_conn.commit()

    @contextmanager
    def batch_write(self) -> Generator[None, None, None]:
        """Group several writes into one atomic transaction.

        Holds the write lock for the whole block.  While active,
        :meth:`commit` is a no-op; on normal exit a single ``commit()``
        is issued.  On exception the transaction is rolled back and the
        error re-raised.  Re-entrant.

        Example::

            with db.batch_write():
                local_storage.remove("ts-user")
                cookie_store.remove("ts-token")
            # single commit happens here
        """
        with self._write_lock:
            if self._in_batch:
                yield
                return

            self._in_batch = True
            try:
                yield
                self._sqlite_conn.commit()
                self._logger.debug("Batch write committed.")
            except Exception:
                self._sqlite_conn.rollback()
                self._logger.error(
                    "Batch write rolled back due to exception.", exc_info=True,
                )
                raise
            finally:
                self._in_batch = False

    def close(self) -> None:
        """Close the SQLite connection.

        Safe to call multiple times; subsequent calls are no-ops.
        """
        with self._write_lock:
            if self._closed:
                return
            self._closed = True
            self._sqlite_conn.close()
            self._logger.info("SQLite connection closed.")

    def _connect_sqlite(self, path: Union[Path, str]) -> sqlite3.Connection:
        """Open (or create) the SQLite database.

        Raises
        ------
        PermissionError
            If the OS denies access to the database file or its directory.
        """
        try:
            conn = sqlite3.connect(str(path), check_same_thread=False)
            conn.row_factory = sqlite3.Row
            conn.execute("PRAGMA journal_mode=WAL;")
            self._logger.info("SQLite database opened at %s", path)
            return conn
        except PermissionError as exc:
            msg = (
                f"Cannot open the local database at '{path}'. "
                "The file or its directory may be read-only or locked by "
                "another process.  Please check file permissions and try again."
            )
            self._logger.error(msg)
            raise PermissionError(msg) from exc
