"""
Navigation.

``Navigator`` is the seam between session logic and whatever hosts the
pages.  ``HistoryNavigator`` is the in-process implementation: it keeps
the current location, records every navigation, and notifies listeners
of location changes.

Two kinds of navigation exist:

- **soft**: a client-side transition (used by the route guard);
- **hard**: a full reload that resets client state (used on logout and
  on a 401).
"""

from __future__ import annotations

import threading
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Callable, Protocol

from crm_portal.events import ListenerRegistry, Subscription


@dataclass(frozen=True, slots=True)
class NavigationEvent:
    from_path: str
    to_path: str
    hard: bool
    ts_utc: datetime


class Navigator(Protocol):
    @property
    def current_path(self) -> str: ...

    def navigate(self, path: str, *, hard: bool = False) -> None: ...

    def subscribe(self, listener: Callable[[NavigationEvent], None]) -> Subscription: ...


class HistoryNavigator:
    """In-memory navigator recording a history of ``NavigationEvent``."""

    def __init__(self, initial_path: str = "/") -> None:
        self._lock = threading.Lock()
        self._current_path: str = initial_path
        self._history: list[NavigationEvent] = []
        self._listeners: ListenerRegistry[NavigationEvent] = ListenerRegistry()

    @property
    def current_path(self) -> str:
        with self._lock:
            return self._current_path

    @property
    def history(self) -> list[NavigationEvent]:
        with self._lock:
            return list(self._history)

    def navigate(self, path: str, *, hard: bool = False) -> None:
        with self._lock:
            event = NavigationEvent(
                from_path=self._current_path,
                to_path=path,
                hard=hard,
                ts_utc=datetime.now(timezone.utc),
            )
            self._current_path = path
            self._history.append(event)
        self._listeners.notify(event)

    def subscribe(self, listener: Callable[[NavigationEvent], None]) -> Subscription:
        return self._listeners.subscribe(listener)


def redirect_once(navigator: Navigator, path: str, *, hard: bool) -> bool:
    """Navigate to *path* unless already there.

    Returns ``True`` when a navigation was issued.
    """
    if navigator.current_path == path:
        return False
    navigator.navigate(path, hard=hard)
    return True
