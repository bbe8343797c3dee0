"""
Tests for the 401 response observer and the shared client helpers.
"""

from __future__ import annotations

import httpx
import pytest
from conftest import StubApi, json_response

from crm_portal.http_client import (
    clear_bearer_token,
    create_http_client,
    get_bearer_token,
    set_bearer_token,
)
from crm_portal.interceptors import (
    attach_unauthorized_observer,
    detach_unauthorized_observers,
)

pytestmark = pytest.mark.unit


@pytest.fixture
def client(config, stub_api):
    stub_api.reply("GET", "/api/leads", {"message": "Token expired"}, status=401)
    stub_api.reply("GET", "/api/ok", {"ok": True})
    with create_http_client(config, transport=httpx.MockTransport(stub_api)) as c:
        yield c


class TestUnauthorizedObserver:
    def test_callback_runs_then_error_raised(self, client):
        seen = []
        attach_unauthorized_observer(client, seen.append)

        with pytest.raises(httpx.HTTPStatusError) as exc_info:
            client.get("/api/leads")

        assert len(seen) == 1
        assert seen[0].status_code == 401
        assert exc_info.value.response.json() == {"message": "Token expired"}

    def test_success_passes_through(self, client):
        seen = []
        attach_unauthorized_observer(client, seen.append)

        assert client.get("/api/ok").json() == {"ok": True}
        assert seen == []

    def test_reattach_replaces_previous_observer(self, client):
        first, second = [], []
        attach_unauthorized_observer(client, first.append)
        attach_unauthorized_observer(client, second.append)

        with pytest.raises(httpx.HTTPStatusError):
            client.get("/api/leads")

        assert first == []
        assert len(second) == 1
        assert len(client.event_hooks["response"]) == 1

    def test_dispose_detaches(self, client):
        seen = []
        subscription = attach_unauthorized_observer(client, seen.append)

        subscription.dispose()
        subscription.dispose()
        response = client.get("/api/leads")

        assert response.status_code == 401
        assert seen == []
        assert subscription.active is False

    def test_foreign_hooks_are_kept(self, client):
        logged = []
        client.event_hooks = {"response": [lambda r: logged.append(r.status_code)]}
        attach_unauthorized_observer(client, lambda r: None)

        removed = detach_unauthorized_observers(client)

        assert removed == 1
        client.get("/api/ok")
        assert logged == [200]

    def test_non_401_errors_untouched(self, config):
        api = StubApi()
        api.on("GET", "/api/x", lambda r: json_response({}, status=403))
        seen = []
        with create_http_client(config, transport=httpx.MockTransport(api)) as client:
            attach_unauthorized_observer(client, seen.append)
            assert client.get("/api/x").status_code == 403
        assert seen == []


class TestBearerToken:
    def test_set_get_clear(self, client, stub_api):
        set_bearer_token(client, "abc123")
        client.get("/api/ok")

        assert get_bearer_token(client) == "abc123"
        assert stub_api.calls("GET", "/api/ok")[-1].headers["Authorization"] == "Bearer abc123"

        clear_bearer_token(client)
        clear_bearer_token(client)
        client.get("/api/ok")

        assert get_bearer_token(client) is None
        assert "Authorization" not in stub_api.calls("GET", "/api/ok")[-1].headers

    def test_base_url_and_accept_header(self, client, stub_api):
        client.get("/api/ok")

        request = stub_api.calls("GET", "/api/ok")[0]
        assert str(request.url) == "https://crm.test/api/ok"
        assert request.headers["Accept"] == "application/json"
