"""
Tests for the command-line entry point.
"""

from __future__ import annotations

import logging

import httpx
import pytest
from conftest import StubApi, login_payload

import main
from crm_portal.config import AppConfig

pytestmark = pytest.mark.unit

_LOGGER_NAMES = ("main", "database", "schema", "services", "auth", "route_guard")


@pytest.fixture(autouse=True)
def _fresh_log_handlers():
    # Handlers bind sys.stdout when created; rebind them to this test's capture.
    for name in _LOGGER_NAMES:
        logging.getLogger(name).handlers.clear()
    yield
    for name in _LOGGER_NAMES:
        logging.getLogger(name).handlers.clear()


@pytest.fixture
def file_config(tmp_path) -> AppConfig:
    return AppConfig(
        _env_file=None,
        API_BASE_URL="https://crm.test",
        STORAGE_PATH=str(tmp_path / "portal.db"),
        LOG_FILE="",
    )


@pytest.fixture
def api(monkeypatch) -> StubApi:
    stub = StubApi()
    real_factory = main.create_http_client

    def _factory(config, transport=None):
        return real_factory(config, transport=httpx.MockTransport(stub))

    monkeypatch.setattr(main, "create_http_client", _factory)
    monkeypatch.setattr(main.getpass, "getpass", lambda prompt="": "x")
    return stub


class TestMain:
    def test_status_signed_out(self, file_config, api, capsys):
        assert main.main(["status"], config=file_config) == 0
        assert "Signed out." in capsys.readouterr().out

    def test_login_persists_across_runs(self, file_config, api, capsys):
        api.reply("POST", "/api/auth/login", login_payload(tenantName="Acme"))

        assert main.main(["login", "--email", "a@b.com"], config=file_config) == 0
        capsys.readouterr()

        assert main.main(["status"], config=file_config) == 0
        out = capsys.readouterr().out
        assert "Signed in as alice (admin) in tenant Acme [t1]" in out

    def test_login_failure_reports_api_message(self, file_config, api, capsys):
        api.reply("POST", "/api/auth/login", {"message": "Invalid credentials"}, status=401)

        assert main.main(["login", "--email", "a@b.com"], config=file_config) == 1
        assert "Login failed: Invalid credentials" in capsys.readouterr().err

    def test_logout_clears(self, file_config, api, capsys):
        api.reply("POST", "/api/auth/login", login_payload())
        main.main(["login", "--email", "a@b.com"], config=file_config)

        assert main.main(["logout"], config=file_config) == 0
        assert main.main([], config=file_config) == 0
        assert capsys.readouterr().out.count("Signed out.") == 2

    def test_signup(self, file_config, api, capsys):
        api.reply("POST", "/api/auth/register", {"message": "ok"}, status=201)

        code = main.main(
            ["signup", "--username", "alice", "--email", "a@b.com", "--country-code", "+91"],
            config=file_config,
        )

        assert code == 0
        assert api.calls("POST", "/api/auth/register")
        assert "Registration submitted" in capsys.readouterr().out
