"""
Tests for RouteGuard and EdgeGuard.
"""

from __future__ import annotations

import pytest
from conftest import login_payload

from crm_portal.models.auth_models import LoginCredentials
from crm_portal.models.enums import RouteAccess

pytestmark = pytest.mark.unit


class TestRouteGuardDecisions:
    @pytest.fixture
    def guard(self, services):
        return services["route_guard"]

    @pytest.mark.parametrize(
        ("path", "authenticated", "expected"),
        [
            ("/dashboard", False, "/login"),
            ("/leads", False, "/login"),
            ("/dashboard", True, None),
            ("/login", True, "/dashboard"),
            ("/signup", True, "/dashboard"),
            ("/login", False, None),
            ("/signup", False, None),
        ],
    )
    def test_decide(self, guard, path, authenticated, expected):
        assert guard.decide(path, ready=True, authenticated=authenticated) == expected

    @pytest.mark.parametrize("path", ["/dashboard", "/login", "/signup"])
    def test_no_decision_while_initializing(self, guard, path):
        assert guard.decide(path, ready=False, authenticated=False) is None
        assert guard.decide(path, ready=False, authenticated=True) is None

    def test_classify(self, guard):
        assert guard.classify("/login") is RouteAccess.OPEN
        assert guard.classify("/signup") is RouteAccess.OPEN
        assert guard.classify("/reports/2024") is RouteAccess.PROTECTED


class TestRouteGuardReactions:
    def test_no_redirect_before_restore_finishes(self, services, navigator):
        services["route_guard"].start()

        assert navigator.history == []

    def test_anonymous_user_sent_to_login_after_restore(self, services, navigator):
        services["route_guard"].start()
        services["auth_service"].restore_session()

        assert navigator.current_path == "/login"
        assert navigator.history[-1].hard is False

    def test_login_on_login_page_moves_to_dashboard(self, make_services, stub_api):
        stub_api.reply("POST", "/api/auth/login", login_payload())
        container, _, _, nav = make_services(api=stub_api, initial_path="/login")
        container["route_guard"].start()
        container["auth_service"].restore_session()

        container["auth_service"].login(
            LoginCredentials(email="a@b.com", password="x", role="admin"),
        )

        assert nav.current_path == "/dashboard"
        assert [e.to_path for e in nav.history] == ["/dashboard"]

    def test_navigation_triggers_check(self, services, navigator):
        services["route_guard"].start()
        services["auth_service"].restore_session()

        navigator.navigate("/reports")

        assert navigator.current_path == "/login"

    def test_logout_from_dashboard_ends_with_hard_reload(self, services, navigator, stub_api):
        stub_api.reply("POST", "/api/auth/login", login_payload())
        services["route_guard"].start()
        services["auth_service"].restore_session()
        services["auth_service"].login(
            LoginCredentials(email="a@b.com", password="x", role="admin"),
        )
        navigator.navigate("/dashboard")
        before = len(navigator.history)

        services["auth_service"].logout()

        new_events = navigator.history[before:]
        assert navigator.current_path == "/login"
        # The guard reacts to the cleared session first; the reload follows.
        assert [(e.to_path, e.hard) for e in new_events] == [
            ("/login", False),
            ("/login", True),
        ]

    def test_stop_unsubscribes(self, services, navigator):
        guard = services["route_guard"]
        guard.start()
        guard.stop()

        services["auth_service"].restore_session()

        assert guard.running is False
        assert navigator.history == []


class TestEdgeGuard:
    @pytest.fixture
    def edge(self, services):
        return services["edge_guard"]

    def test_protected_without_cookie_goes_to_login(self, edge):
        assert edge.evaluate("/dashboard", {}) == "/login"
        assert edge.evaluate("/leads/42", {}) == "/login"

    def test_protected_with_cookie_passes(self, edge):
        assert edge.evaluate("/dashboard", {"ts-token": "abc"}) is None

    def test_open_routes_with_cookie_go_to_dashboard(self, edge):
        for path in ("/login", "/signup", "/"):
            assert edge.evaluate(path, {"ts-token": "abc"}) == "/dashboard"

    def test_login_without_cookie_passes(self, edge):
        assert edge.evaluate("/login", {}) is None
        assert edge.evaluate("/signup", {}) is None

    def test_root_without_cookie_goes_to_login(self, edge):
        assert edge.evaluate("/", {}) == "/login"

    def test_unmatched_paths_pass_through(self, edge):
        assert edge.matches("/about") is False
        assert edge.evaluate("/about", {}) is None
        assert edge.evaluate("/dashboards", {}) is None

    def test_empty_cookie_counts_as_missing(self, edge):
        assert edge.evaluate("/reports", {"ts-token": ""}) == "/login"
