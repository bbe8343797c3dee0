"""
Route Guards.

Two guards decide where a user may be:

``RouteGuard``
    Client-side guard driven by the ``SessionManager``.  Open routes
    (login, signup) send a signed-in user to the dashboard; every other
    route sends an anonymous user to login.  It re-checks on session
    changes, on the ready transition, and on every location change, and
    makes no decision until the startup restore has finished.

``EdgeGuard``
    Request-level guard for server-rendered requests, where only the
    cookie mirror of the token is available.

Usage::

    guard = RouteGuard(session, navigator, config, logger)
    guard.start()
"""

from __future__ import annotations

from typing import Mapping, Optional

from crm_portal.auth import SessionManager
from crm_portal.config import AppConfig
from crm_portal.events import SessionEvent, Subscription
from crm_portal.logger import StructuredLogger
from crm_portal.models.enums import RouteAccess
from crm_portal.models.storage_models import TOKEN_KEY
from crm_portal.navigation import NavigationEvent, Navigator, redirect_once


class RouteGuard:
    """Redirects based on session presence and the route's access class.

    Parameters
    ----------
    session:
        Source of the session value and the ready status.
    navigator:
        Location source and target of (soft) redirects.
    config:
        Supplies the login, signup and dashboard paths.
    logger:
        Structured logger instance.
    """

    def __init__(
        self,
        session: SessionManager,
        navigator: Navigator,
        config: AppConfig,
        logger: StructuredLogger,
    ) -> None:
        self._session = session
        self._navigator = navigator
        self._config = config
        self._logger = logger
        self._subscriptions: list[Subscription] = []

    def classify(self, path: str) -> RouteAccess:
        if path in self._config.open_routes:
            return RouteAccess.OPEN
        return RouteAccess.PROTECTED

    def decide(self, path: str, *, ready: bool, authenticated: bool) -> Optional[str]:
        """Return the redirect target for *path*, or ``None`` to stay."""
        if not ready:
            return None
        access = self.classify(path)
        if access is RouteAccess.PROTECTED and not authenticated:
            return self._config.LOGIN_PATH
        if access is RouteAccess.OPEN and authenticated:
            return self._config.DASHBOARD_PATH
        return None

    def check(self) -> Optional[str]:
        """Evaluate the current location and redirect if needed.

        Returns the path redirected to, or ``None``.
        """
        path = self._navigator.current_path
        target = self.decide(
            path,
            ready=self._session.ready,
            authenticated=self._session.is_authenticated,
        )
        if target is None or not redirect_once(self._navigator, target, hard=False):
            return None
        self._logger.info("Route guard redirect %s -> %s.", path, target)
        return target

    def start(self) -> None:
        """Subscribe to session and location changes, then check once."""
        if self._subscriptions:
            return
        self._subscriptions = [
            self._session.subscribe(self._on_session_event),
            self._navigator.subscribe(self._on_navigation),
        ]
        self.check()

    def stop(self) -> None:
        for subscription in self._subscriptions:
            subscription.dispose()
        self._subscriptions = []

    @property
    def running(self) -> bool:
        return bool(self._subscriptions)

    def _on_session_event(self, event: SessionEvent) -> None:
        self.check()

    def _on_navigation(self, event: NavigationEvent) -> None:
        self.check()


class EdgeGuard:
    """Cookie-only redirect rules for incoming page requests.

    - No token cookie and a non-public path: go to login.
    - Token cookie on login, signup or the root page: go to the dashboard.

    Only paths under ``EDGE_GUARDED_PREFIXES`` (plus login, signup and
    ``/``) are inspected; any other path passes through.
    """

    def __init__(self, config: AppConfig) -> None:
        self._config = config

    def matches(self, path: str) -> bool:
        if path in self._config.open_routes or path == "/":
            return True
        return any(
            path == prefix or path.startswith(prefix + "/")
            for prefix in self._config.EDGE_GUARDED_PREFIXES
        )

    def is_public(self, path: str) -> bool:
        return any(path.startswith(prefix) for prefix in self._config.PUBLIC_PATH_PREFIXES)

    def evaluate(self, path: str, cookies: Mapping[str, str]) -> Optional[str]:
        """Return the redirect target for a request to *path*, or ``None``."""
        if not self.matches(path):
            return None

        has_token = bool(cookies.get(TOKEN_KEY))

        if not has_token and not self.is_public(path):
            return self._config.LOGIN_PATH

        if has_token and (path in self._config.open_routes or path == "/"):
            return self._config.DASHBOARD_PATH

        return None
