"""
Cookie Store Service.

The client cookie jar, persisted to the ``cookies`` table.  Holds the
mirror copy of the bearer token that request-level guards read when the
key-value store is not reachable.
"""

from __future__ import annotations

from datetime import datetime, timedelta, timezone
from typing import Optional

from crm_portal.database import DatabaseManager
from crm_portal.logger import StructuredLogger
from crm_portal.models.enums import SameSite
from crm_portal.models.storage_models import Cookie


class CookieStore:
    """Persistent cookie jar with expiry.

    Expired cookies are never returned; they are purged when read.

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

    def set(
        self,
        name: str,
        value: str,
        *,
        max_age_days: int = 7,
        secure: bool = False,
        same_site: SameSite = SameSite.LAX,
        path: str = "/",
    ) -> Cookie:
        """Store a cookie expiring *max_age_days* from now and return it."""
        cookie = Cookie(
            name=name,
            value=value,
            path=path,
            expires_at=datetime.now(tz=timezone.utc) + timedelta(days=max_age_days),
            secure=secure,
            same_site=same_site,
        )
        with self._db.write_lock:
            self._db.sqlite.execute(
                """
                INSERT INTO cookies (name, value, path, expires_at, secure, same_site)
                VALUES (?, ?, ?, ?, ?, ?)
                ON CONFLICT(name) DO UPDATE SET
                    value      = excluded.value,
                    path       = excluded.path,
                    expires_at = excluded.expires_at,
                    secure     = excluded.secure,
                    same_site  = excluded.same_site
                """,
                (
                    cookie.name,
                    cookie.value,
                    cookie.path,
                    cookie.expires_at.isoformat(),
                    int(cookie.secure),
                    cookie.same_site.value,
                ),
            )
            self._db.commit()
        return cookie

    def get_cookie(self, name: str) -> Optional[Cookie]:
        """Return the live cookie named *name*, or ``None``."""
        try:
            row = self._db.sqlite.execute(
                "SELECT name, value, path, expires_at, secure, same_site "
                "FROM cookies WHERE name = ?",
                (name,),
            ).fetchone()
        except Exception as exc:
            self._logger.warning("Failed to read cookie %s: %s", name, exc)
            return None

        if row is None:
            return None

        try:
            cookie = Cookie(
                name=row["name"],
                value=row["value"],
                path=row["path"],
                expires_at=datetime.fromisoformat(row["expires_at"]),
                secure=bool(row["secure"]),
                same_site=SameSite(row["same_site"]),
            )
        except ValueError as exc:
            self._logger.warning("Discarding unreadable cookie %s: %s", name, exc)
            self._purge(name)
            return None

        if cookie.is_expired():
            self._logger.info("Cookie %s expired at %s.", name, cookie.expires_at.isoformat())
            self._purge(name)
            return None
        return cookie

    def get(self, name: str) -> Optional[str]:
        """Return the value of the live cookie named *name*, or ``None``."""
        cookie = self.get_cookie(name)
        return cookie.value if cookie is not None else None

    def remove(self, name: str) -> None:
        with self._db.write_lock:
            self._db.sqlite.execute("DELETE FROM cookies WHERE name = ?", (name,))
            self._db.commit()

    def as_dict(self) -> dict[str, str]:
        """All live cookies as a ``name -> value`` mapping."""
        rows = self._db.sqlite.execute("SELECT name FROM cookies").fetchall()
        result: dict[str, str] = {}
        for row in rows:
            value = self.get(row["name"])
            if value is not None:
                result[row["name"]] = value
        return result

    def _purge(self, name: str) -> None:
        try:
            self.remove(name)
        except Exception as exc:
            self._logger.warning("Failed to purge cookie %s: %s", name, exc)
