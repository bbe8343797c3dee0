"""
Services Package.

Storage, session and API services for the CRM portal client.

The ``create_services()`` factory wires every service together, returning
a typed dict that the application layer consumes without knowing the
internal dependency graph.
"""

from __future__ import annotations

from typing import TypedDict

import httpx

from crm_portal.api import ApiClient
from crm_portal.auth import SessionManager
from crm_portal.config import AppConfig
from crm_portal.database import DatabaseManager
from crm_portal.guards import EdgeGuard, RouteGuard
from crm_portal.logger import get_logger
from crm_portal.navigation import Navigator
from crm_portal.services.auth_service import AuthService
from crm_portal.services.cookie_store import CookieStore
from crm_portal.services.local_storage import LocalStorageService
from crm_portal.services.session_store import SessionStore


class ServiceContainer(TypedDict):
    """Typed container for all application services."""

    # --- Storage ---
    local_storage: LocalStorageService
    cookie_store: CookieStore
    session_store: SessionStore

    # --- Session ---
    auth_service: AuthService
    route_guard: RouteGuard
    edge_guard: EdgeGuard

    # --- API ---
    api_client: ApiClient


def create_services(
    db: DatabaseManager,
    config: AppConfig,
    session: SessionManager,
    http: httpx.Client,
    navigator: Navigator,
) -> ServiceContainer:
    """Wire all services together.

    This is the single composition root for the service layer.  Creating
    the ``AuthService`` attaches the 401 observer to *http*; the route
    guard is built but not started, so the caller decides when it begins
    reacting (normally right before ``restore_session()``).

    Args:
        db: Initialised DatabaseManager with the storage schema applied.
        config: Application configuration.
        session: The process-wide session holder.
        http: The shared CRM API client.
        navigator: Location source and redirect target.

    Returns:
        ServiceContainer mapping service names to fully-wired instances.
    """
    logger = get_logger("services")

    local_storage = LocalStorageService(db=db, logger=logger)
    cookie_store = CookieStore(db=db, logger=logger)
    session_store = SessionStore(
        db=db,
        local_storage=local_storage,
        cookies=cookie_store,
        config=config,
        logger=logger,
    )

    auth_service = AuthService(
        session=session,
        store=session_store,
        http=http,
        navigator=navigator,
        config=config,
        logger=get_logger("auth"),
    )
    route_guard = RouteGuard(
        session=session,
        navigator=navigator,
        config=config,
        logger=get_logger("route_guard"),
    )

    return ServiceContainer(
        local_storage=local_storage,
        cookie_store=cookie_store,
        session_store=session_store,
        auth_service=auth_service,
        route_guard=route_guard,
        edge_guard=EdgeGuard(config=config),
        api_client=ApiClient(http=http, session=session, logger=logger),
    )
