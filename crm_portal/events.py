"""
Session Events & Subscriptions.

Event objects delivered to session subscribers, plus the disposable
``Subscription`` handle returned by every ``subscribe()`` / ``attach()``
call in the package.  Consumers react to login/logout without holding
a reference to the auth service.
"""

from __future__ import annotations

import threading
from dataclasses import dataclass
from datetime import datetime
from typing import Callable, Generic, Optional, TypeVar

from crm_portal.models.enums import SessionEventType, SessionStatus
from crm_portal.models.session_models import Session

T = TypeVar("T")


@dataclass(frozen=True, slots=True)
class SessionEvent:
    """A change of the session value or of the initialisation status."""

    type: SessionEventType
    old_session: Optional[Session]
    new_session: Optional[Session]
    status: SessionStatus
    reason: str
    ts_utc: datetime


class Subscription:
    """Handle for a registered callback.  ``dispose()`` is idempotent."""

    def __init__(self, on_dispose: Callable[[], None]) -> None:
        self._on_dispose: Optional[Callable[[], None]] = on_dispose
        self._lock = threading.Lock()

    @property
    def active(self) -> bool:
        return self._on_dispose is not None

    def dispose(self) -> None:
        with self._lock:
            callback, self._on_dispose = self._on_dispose, None
        if callback is not None:
            callback()

    def __enter__(self) -> "Subscription":
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.dispose()


class ListenerRegistry(Generic[T]):
    """Thread-safe list of listeners notified in registration order.

    Notification iterates over a copy, so a listener may dispose its own
    subscription (or subscribe others) while being called.
    """

    def __init__(self) -> None:
        self._listeners: list[Callable[[T], None]] = []
        self._lock = threading.Lock()

    def subscribe(self, listener: Callable[[T], None]) -> Subscription:
        with self._lock:
            self._listeners.append(listener)
        return Subscription(lambda: self._remove(listener))

    def notify(self, payload: T) -> None:
        with self._lock:
            listeners = list(self._listeners)
        for listener in listeners:
            listener(payload)

    def __len__(self) -> int:
        with self._lock:
            return len(self._listeners)

    def _remove(self, listener: Callable[[T], None]) -> None:
        with self._lock:
            try:
                self._listeners.remove(listener)
            except ValueError:
                pass
