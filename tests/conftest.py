"""
Pytest Configuration and Shared Fixtures.

Responsibilities:
  - Isolate configuration from the developer's .env / environment
  - Provide an in-memory SQLite database with the storage schema applied
  - Provide a stub CRM API served through ``httpx.MockTransport``
  - Wire the service graph the same way ``main.py`` does

Notes:
  - Every fixture is function-scoped so each test starts signed out.
"""

from __future__ import annotations

import io
import json
import os
from typing import Any, Callable, Iterator, Optional

import httpx
import pytest

os.environ["LOG_FILE"] = ""
os.environ.setdefault("ENVIRONMENT", "development")

from crm_portal.auth import SessionManager  # noqa: E402
from crm_portal.config import AppConfig  # noqa: E402
from crm_portal.database import DatabaseManager  # noqa: E402
from crm_portal.http_client import create_http_client  # noqa: E402
from crm_portal.logger import StructuredLogger  # noqa: E402
from crm_portal.navigation import HistoryNavigator  # noqa: E402
from crm_portal.schema import initialize_schema  # noqa: E402
from crm_portal.services import ServiceContainer, create_services  # noqa: E402

API_BASE = "https://crm.test"

Handler = Callable[[httpx.Request], httpx.Response]


def json_response(data: Any, status: int = 200) -> httpx.Response:
    return httpx.Response(
        status_code=status,
        content=json.dumps(data).encode(),
        headers={"Content-Type": "application/json"},
    )


def login_payload(**user_overrides: Any) -> dict[str, Any]:
    user: dict[str, Any] = {
        "id": "u1",
        "username": "alice",
        "email": "a@b.com",
        "role": "admin",
        "tenantId": "t1",
    }
    user.update(user_overrides)
    return {"user": user, "token": "abc123"}


class StubApi:
    """Routes ``(method, path)`` to handlers and records every request."""

    def __init__(self) -> None:
        self.routes: dict[tuple[str, str], Handler] = {}
        self.requests: list[httpx.Request] = []

    def on(self, method: str, path: str, handler: Handler) -> None:
        self.routes[(method.upper(), path)] = handler

    def reply(self, method: str, path: str, data: Any, status: int = 200) -> None:
        self.on(method, path, lambda request: json_response(data, status))

    def calls(self, method: str, path: str) -> list[httpx.Request]:
        return [
            r for r in self.requests
            if r.method == method.upper() and r.url.path == path
        ]

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        handler = self.routes.get((request.method, request.url.path))
        if handler is None:
            return json_response({"message": "Not found"}, status=404)
        return handler(request)


@pytest.fixture
def config() -> AppConfig:
    return AppConfig(
        _env_file=None,
        API_BASE_URL=API_BASE,
        ENVIRONMENT="development",
        STORAGE_PATH=":memory:",
        LOG_FILE="",
    )


@pytest.fixture
def log_stream() -> io.StringIO:
    return io.StringIO()


@pytest.fixture
def logger(log_stream: io.StringIO) -> StructuredLogger:
    structured = StructuredLogger(name="tests", stream=log_stream, log_file="")
    # The handler is created once per logger name; point it at this test's stream.
    for handler in structured.logger.handlers:
        if hasattr(handler, "setStream"):
            handler.setStream(log_stream)
    return structured


@pytest.fixture
def db(logger: StructuredLogger) -> Iterator[DatabaseManager]:
    manager = DatabaseManager(sqlite_path=":memory:", logger=logger)
    initialize_schema(manager.sqlite, logger)
    yield manager
    manager.close()


@pytest.fixture
def stub_api() -> StubApi:
    return StubApi()


@pytest.fixture
def http(config: AppConfig, stub_api: StubApi) -> Iterator[httpx.Client]:
    client = create_http_client(config, transport=httpx.MockTransport(stub_api))
    yield client
    client.close()


@pytest.fixture
def navigator() -> HistoryNavigator:
    return HistoryNavigator(initial_path="/dashboard")


@pytest.fixture
def session() -> SessionManager:
    return SessionManager()


@pytest.fixture
def services(
    db: DatabaseManager,
    config: AppConfig,
    session: SessionManager,
    http: httpx.Client,
    navigator: HistoryNavigator,
) -> Iterator[ServiceContainer]:
    container = create_services(
        db=db, config=config, session=session, http=http, navigator=navigator,
    )
    yield container
    container["route_guard"].stop()
    container["auth_service"].close()


@pytest.fixture
def make_services(
    db: DatabaseManager,
    config: AppConfig,
) -> Iterator[Callable[..., tuple[ServiceContainer, SessionManager, httpx.Client, HistoryNavigator]]]:
    """Build an independent service graph over the shared database.

    Simulates a fresh process: new session holder, new HTTP client and
    new navigator, same durable storage.
    """
    created: list[tuple[ServiceContainer, httpx.Client]] = []

    def _factory(
        api: Optional[StubApi] = None,
        initial_path: str = "/dashboard",
    ) -> tuple[ServiceContainer, SessionManager, httpx.Client, HistoryNavigator]:
        fresh_session = SessionManager()
        fresh_nav = HistoryNavigator(initial_path=initial_path)
        client = create_http_client(config, transport=httpx.MockTransport(api or StubApi()))
        container = create_services(
            db=db, config=config, session=fresh_session, http=client, navigator=fresh_nav,
        )
        created.append((container, client))
        return container, fresh_session, client, fresh_nav

    yield _factory

    for container, client in created:
        container["route_guard"].stop()
        container["auth_service"].close()
        client.close()
