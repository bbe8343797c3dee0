"""
Session Persistence Service.

Persists the authenticated session across process restarts using two
stores:

- **Key-value store** (primary): ``ts-user`` holds the profile JSON,
  ``ts-token`` the raw bearer token.
- **Cookie** (mirror): ``ts-token`` again, with a 7-day expiry and
  ``Secure; SameSite=None`` in production, ``SameSite=Lax`` otherwise.

The token is read from the primary store and only falls back to the
cookie when the primary copy is absent.  Saving and clearing run inside
a single ``batch_write()`` transaction, so no reader can observe one
store updated and the other not.
"""

from __future__ import annotations

from typing import Optional

from pydantic import ValidationError

from crm_portal.config import AppConfig
from crm_portal.database import DatabaseManager
from crm_portal.errors import StorageCorruptError
from crm_portal.logger import StructuredLogger
from crm_portal.models.enums import SameSite
from crm_portal.models.session_models import Session
from crm_portal.models.storage_models import TOKEN_KEY, USER_KEY
from crm_portal.services.cookie_store import CookieStore
from crm_portal.services.local_storage import LocalStorageService


class SessionStore:
    """Reads and writes the persisted session.

    Parameters
    ----------
    db:
        Shared ``DatabaseManager``; provides the transaction boundary.
    local_storage:
        Primary key-value store.
    cookies:
        Cookie jar holding the token mirror.
    config:
        Supplies the cookie lifetime and the production flag.
    logger:
        A ``StructuredLogger`` instance.  Tokens are never logged.
    """

    def __init__(
        self,
        db: DatabaseManager,
        local_storage: LocalStorageService,
        cookies: CookieStore,
        config: AppConfig,
        logger: StructuredLogger,
    ) -> None:
        self._db = db
        self._local = local_storage
        self._cookies = cookies
        self._config = config
        self._logger = logger

    def read_token(self) -> Optional[str]:
        """Return the stored token: primary store first, cookie mirror second."""
        token = self._local.get(TOKEN_KEY)
        if token:
            return token
        mirrored = self._cookies.get(TOKEN_KEY)
        if mirrored:
            self._logger.debug("Token read from cookie mirror.")
            return mirrored
        return None

    def has_stored_data(self) -> bool:
        """``True`` when any session fragment is present in either store."""
        return bool(self._local.get(USER_KEY) or self.read_token())

    def load(self) -> Optional[Session]:
        """Load the persisted session.

        Returns
        -------
        Session or None
            ``None`` when nothing is stored at all.

        Raises
        ------
        StorageCorruptError
            When a fragment exists but no valid session can be built:
            unparsable profile, missing ``tenantId`` or ``id``, a profile
            without a token, or a token without a profile.
        """
        profile_json = self._local.get(USER_KEY)
        token = self.read_token()

        if profile_json is None and token is None:
            return None
        if profile_json is None:
            raise StorageCorruptError("Stored token has no matching user profile.")
        if token is None:
            raise StorageCorruptError("Stored user profile has no matching token.")

        try:
            return Session.from_storage(profile_json, token)
        except ValidationError as exc:
            fields = sorted({".".join(str(p) for p in err["loc"]) for err in exc.errors()})
            raise StorageCorruptError(
                f"Stored user profile is invalid (fields: {', '.join(fields)})."
            ) from exc
        except ValueError as exc:
            raise StorageCorruptError(f"Stored user profile is unreadable: {exc}") from exc

    def save(self, session: Session) -> None:
        """Persist *session* to both stores in one transaction."""
        production = self._config.is_production
        with self._db.batch_write():
            self._local.set(USER_KEY, session.profile_json())
            self._local.set(TOKEN_KEY, session.token)
            self._cookies.set(
                TOKEN_KEY,
                session.token,
                max_age_days=self._config.TOKEN_COOKIE_MAX_AGE_DAYS,
                secure=production,
                same_site=SameSite.NONE if production else SameSite.LAX,
            )
        self._logger.info(
            "Session persisted.",
            extra={"user_id": session.user_id, "tenant_id": session.tenant_id},
        )

    def clear(self) -> None:
        """Remove the profile and both token copies in one transaction."""
        with self._db.batch_write():
            self._local.remove(USER_KEY)
            self._local.remove(TOKEN_KEY)
            self._cookies.remove(TOKEN_KEY)
        self._logger.debug("Stored session cleared.")
