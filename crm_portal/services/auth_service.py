"""
Authentication Service.

Single orchestrator for every session concern of the CRM portal client:
startup restore, login, signup, logout, and the forced sign-out that
follows a 401 from any API endpoint.

Sits between the UI layer and the storage / HTTP layers so that pages
stay thin.  It is the only writer of the persisted session, of the shared
client's ``Authorization`` header and of the in-memory ``SessionManager``.

Concurrency
-----------
State changes happen under ``self._lock``; network calls do not.  Each
``login()`` takes a generation number and may only write state if no
newer login started in the meantime.
"""

from __future__ import annotations

import sqlite3
import threading
from typing import Any, Optional

import httpx
from pydantic import ValidationError

from crm_portal.auth import SessionManager
from crm_portal.config import AppConfig
from crm_portal.errors import MalformedResponseError, StorageCorruptError
from crm_portal.events import Subscription
from crm_portal.http_client import clear_bearer_token, set_bearer_token
from crm_portal.interceptors import attach_unauthorized_observer
from crm_portal.logger import StructuredLogger
from crm_portal.models.auth_models import LoginCredentials, SignupData
from crm_portal.models.enums import SessionEventType
from crm_portal.models.session_models import Session
from crm_portal.navigation import Navigator
from crm_portal.services.session_store import SessionStore

LOGIN_ENDPOINT: str = "/api/auth/login"
REGISTER_ENDPOINT: str = "/api/auth/register"


class AuthService:
    """Centralised session service.

    Receives all infrastructure dependencies via ``__init__``.  The 401
    observer is attached to *http* on construction and detached by
    :meth:`close`.

    Parameters
    ----------
    session:
        Injectable in-memory session holder.
    store:
        Durable session persistence (key-value store + cookie mirror).
    http:
        The shared ``httpx.Client`` used for every CRM API call.
    navigator:
        Used for the hard redirect to the login page.
    config:
        Application configuration (paths, avatar placeholder).
    logger:
        Structured JSON logger.
    """

    def __init__(
        self,
        session: SessionManager,
        store: SessionStore,
        http: httpx.Client,
        navigator: Navigator,
        config: AppConfig,
        logger: StructuredLogger,
    ) -> None:
        self._session: SessionManager = session
        self._store: SessionStore = store
        self._http: httpx.Client = http
        self._navigator: Navigator = navigator
        self._config: AppConfig = config
        self._logger: StructuredLogger = logger

        self._lock: threading.RLock = threading.RLock()
        self._login_generation: int = 0
        self._observer: Subscription = attach_unauthorized_observer(
            http, self._handle_unauthorized,
        )

    # ==================================================================
    # Startup
    # ==================================================================

    def restore_session(self) -> Optional[Session]:
        """Rebuild the session from durable storage.

        A corrupt record is discarded (both stores cleared) and the
        session stays absent; nothing is raised.  The manager is marked
        ready when this returns, whatever the outcome.

        Returns
        -------
        Session or None
            The restored session, or ``None`` when signed out.
        """
        restored: Optional[Session] = None
        try:
            with self._lock:
                try:
                    restored = self._store.load()
                except StorageCorruptError as exc:
                    self._logger.warning("Discarding stored session: %s", exc)
                    self.destroy_session(SessionEventType.INVALIDATED, reason=str(exc))

                if restored is None:
                    self._logger.info("No stored session; starting signed out.")
                else:
                    set_bearer_token(self._http, restored.token)
                    self._session.replace(
                        restored, SessionEventType.RESTORED, reason="restored from storage",
                    )
                    self._logger.info(
                        "Session restored.",
                        extra={
                            "user_id": restored.user_id,
                            "role": restored.role.value,
                            "tenant_id": restored.tenant_id,
                        },
                    )
        finally:
            self._session.mark_ready()
        return restored

    # ==================================================================
    # Login / signup / logout
    # ==================================================================

    def login(self, credentials: LoginCredentials) -> dict[str, Any]:
        """Authenticate against the CRM API and establish a session.

        Issues exactly one request.  On any failure the session is
        destroyed before the error is re-raised, so no partial state
        survives.

        Returns
        -------
        dict
            The raw response payload.

        Raises
        ------
        httpx.HTTPError
            Transport failure or non-2xx response.
        MalformedResponseError
            2xx response without ``user.tenantId`` or ``token``.
        sqlite3.Error
            The session could not be persisted.
        """
        with self._lock:
            self._login_generation += 1
            generation = self._login_generation

        self._logger.info(
            "Attempting login.",
            extra={"email": credentials.email, "role": credentials.role.value},
        )

        try:
            response = self._http.post(LOGIN_ENDPOINT, json=credentials.to_payload())
            response.raise_for_status()
            payload = self._decode_json(response)
            session = self._build_session(payload)
        except (httpx.HTTPError, MalformedResponseError) as exc:
            self._fail_login(generation, exc)
            raise

        with self._lock:
            if generation != self._login_generation:
                self._logger.warning(
                    "Discarding stale login response; a newer login is in flight.",
                    extra={"user_id": session.user_id},
                )
                return payload
            try:
                self._store.save(session)
            except sqlite3.Error as exc:
                self._fail_login(generation, exc)
                raise
            set_bearer_token(self._http, session.token)
            self._session.replace(session, SessionEventType.LOGIN, reason="login")

        self._session.mark_ready()
        self._logger.info(
            "Login complete.",
            extra={
                "user_id": session.user_id,
                "role": session.role.value,
                "tenant_id": session.tenant_id,
            },
        )
        return payload

    def signup(self, registration: SignupData) -> Any:
        """Register a new account.  Does not sign the user in.

        Raises
        ------
        httpx.HTTPError
            Propagated unmodified.
        """
        self._logger.info("Submitting registration.", extra={"email": registration.email})
        response = self._http.post(REGISTER_ENDPOINT, json=registration.to_payload())
        response.raise_for_status()
        self._logger.info("Registration accepted.", extra={"email": registration.email})
        return response.json() if response.content else None

    def logout(self) -> None:
        """End the session and hard-redirect to the login page.  Idempotent."""
        with self._lock:
            was_at_login = self._navigator.current_path == self._config.LOGIN_PATH
            if self._session.is_authenticated:
                self._logger.info("Logging out.")
            self.destroy_session(SessionEventType.LOGOUT, reason="logout")
        self._redirect_to_login(was_at_login)

    # ==================================================================
    # Teardown
    # ==================================================================

    def destroy_session(
        self,
        event_type: SessionEventType = SessionEventType.INVALIDATED,
        reason: str = "",
    ) -> None:
        """Clear both durable stores, the auth header and the in-memory session.

        Storage failures are logged, never raised: memory and the header
        are cleared regardless.  The manager's ready status is untouched.
        """
        with self._lock:
            try:
                self._store.clear()
            except sqlite3.Error as exc:
                self._logger.error(
                    "Failed to clear stored session: %s", exc, exc_info=True,
                )
            clear_bearer_token(self._http)
            self._session.clear(event_type, reason=reason)

    def close(self) -> None:
        """Detach the 401 observer from the shared client."""
        self._observer.dispose()

    @property
    def observer(self) -> Subscription:
        return self._observer

    # ==================================================================
    # Private helpers
    # ==================================================================

    def _handle_unauthorized(self, response: httpx.Response) -> None:
        """401 from any request: drop the session and force the login page."""
        self._logger.warning(
            "401 Unauthorized from %s %s; session invalidated.",
            response.request.method,
            response.request.url.path,
        )
        with self._lock:
            was_at_login = self._navigator.current_path == self._config.LOGIN_PATH
            self.destroy_session(SessionEventType.INVALIDATED, reason="401 unauthorized")
        self._redirect_to_login(was_at_login)

    def _redirect_to_login(self, was_at_login: bool) -> None:
        # Checked before teardown: subscribers may already have moved the
        # page to the login route during destroy_session().
        if was_at_login:
            self._logger.debug("Already on the login page; redirect skipped.")
            return
        self._navigator.navigate(self._config.LOGIN_PATH, hard=True)

    def _fail_login(self, generation: int, exc: BaseException) -> None:
        with self._lock:
            if generation != self._login_generation:
                self._logger.warning("Stale login attempt failed: %s", exc)
                return
            self._logger.error("Login failed: %s", exc)
            self.destroy_session(SessionEventType.INVALIDATED, reason="login failed")

    @staticmethod
    def _decode_json(response: httpx.Response) -> Any:
        try:
            return response.json()
        except ValueError as exc:
            raise MalformedResponseError(
                "Invalid server response - body is not valid JSON"
            ) from exc

    def _build_session(self, payload: Any) -> Session:
        """Validate a login payload and build the canonical session."""
        if not isinstance(payload, dict):
            raise MalformedResponseError("Invalid server response - expected a JSON object")

        user = payload.get("user")
        token = payload.get("token")

        if not isinstance(user, dict) or not user.get("tenantId"):
            raise MalformedResponseError(
                "Invalid server response - missing tenant information"
            )
        if not token or not isinstance(token, str):
            raise MalformedResponseError(
                "Invalid server response - missing authentication token"
            )

        user_id = user.get("id") or user.get("_id")
        try:
            return Session.model_validate({
                "id": str(user_id) if user_id is not None else None,
                "username": user.get("username") or "",
                "email": user.get("email") or "",
                "role": user.get("role"),
                "tenantId": user.get("tenantId"),
                "tenantName": user.get("tenantName"),
                "avatar": user.get("avatar") or self._config.AVATAR_PLACEHOLDER,
                "token": token,
            })
        except ValidationError as exc:
            fields = sorted({".".join(str(p) for p in err["loc"]) for err in exc.errors()})
            raise MalformedResponseError(
                f"Invalid server response - invalid user fields: {', '.join(fields)}"
            ) from exc
