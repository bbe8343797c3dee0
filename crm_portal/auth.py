"""
Authentication & Session State.

Provides an injectable ``SessionManager`` that holds the canonical
tenant-scoped ``Session`` and the initialisation status for the lifetime
of one client process.

Only ``AuthService`` mutates it; UI code reads it and subscribes to
changes.

Usage::

    from crm_portal.auth import SessionManager

    session = SessionManager()
    sub = session.subscribe(lambda event: print(event.type))
    ...
    sub.dispose()
"""

from __future__ import annotations

import threading
from datetime import datetime, timezone
from typing import Callable, Optional

from crm_portal.errors import AuthenticationError
from crm_portal.events import ListenerRegistry, SessionEvent, Subscription
from crm_portal.models.enums import SessionEventType, SessionStatus
from crm_portal.models.session_models import Session, TenantInfo


class SessionManager:
    """Injectable holder for the current session.

    Each instance maintains its own state, eliminating the need for
    module-level globals.  Pass a single ``SessionManager`` through the
    composition root so every component shares the same session.

    Listeners are called after the lock is released, in the thread that
    performed the change.
    """

    def __init__(self) -> None:
        self._lock: threading.RLock = threading.RLock()
        self._current: Optional[Session] = None
        self._status: SessionStatus = SessionStatus.INITIALIZING
        self._listeners: ListenerRegistry[SessionEvent] = ListenerRegistry()

    # ------------------------------------------------------------------
    # Read side
    # ------------------------------------------------------------------

    @property
    def current_session(self) -> Optional[Session]:
        """The current session, or ``None`` when signed out."""
        with self._lock:
            return self._current

    def get_current_session(self) -> Session:
        """Return the active session.

        Raises:
            AuthenticationError: If no session is active.
        """
        with self._lock:
            if self._current is None:
                raise AuthenticationError(
                    "No user is currently authenticated. Login required."
                )
            return self._current

    @property
    def token(self) -> Optional[str]:
        with self._lock:
            return self._current.token if self._current is not None else None

    @property
    def status(self) -> SessionStatus:
        with self._lock:
            return self._status

    @property
    def ready(self) -> bool:
        """``True`` once the startup restore has completed."""
        return self.status == SessionStatus.READY

    @property
    def loading(self) -> bool:
        """Inverse of :attr:`ready`; kept for consumers of the two-flag API."""
        return not self.ready

    @property
    def is_authenticated(self) -> bool:
        with self._lock:
            return self._current is not None

    def validate(self) -> bool:
        """``True`` when a complete, tenant-scoped session is active."""
        with self._lock:
            current = self._current
        return bool(current and current.token and current.tenant_id)

    def tenant_info(self) -> Optional[TenantInfo]:
        with self._lock:
            current = self._current
        return current.tenant_info() if current is not None else None

    def subscribe(self, listener: Callable[[SessionEvent], None]) -> Subscription:
        """Register *listener* for session and status changes."""
        return self._listeners.subscribe(listener)

    # ------------------------------------------------------------------
    # Write side (AuthService only)
    # ------------------------------------------------------------------

    def replace(
        self,
        session: Session,
        event_type: SessionEventType,
        reason: str = "",
    ) -> None:
        """Install *session* as the current session."""
        with self._lock:
            old = self._current
            self._current = session
            event = self._event(event_type, old, session, reason)
        self._listeners.notify(event)

    def clear(
        self,
        event_type: SessionEventType = SessionEventType.LOGOUT,
        reason: str = "",
    ) -> None:
        """Drop the current session.  Does not touch the status."""
        with self._lock:
            old = self._current
            if old is None:
                return
            self._current = None
            event = self._event(event_type, old, None, reason)
        self._listeners.notify(event)

    def mark_ready(self) -> bool:
        """Move the status to ``READY``.

        Returns ``True`` only for the call that performed the transition;
        later calls are no-ops.
        """
        with self._lock:
            if self._status == SessionStatus.READY:
                return False
            self._status = SessionStatus.READY
            event = self._event(
                SessionEventType.READY, self._current, self._current, "initialised",
            )
        self._listeners.notify(event)
        return True

    def _event(
        self,
        event_type: SessionEventType,
        old: Optional[Session],
        new: Optional[Session],
        reason: str,
    ) -> SessionEvent:
        return SessionEvent(
            type=event_type,
            old_session=old,
            new_session=new,
            status=self._status,
            reason=reason,
            ts_utc=datetime.now(timezone.utc),
        )
