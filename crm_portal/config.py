"""
Application Configuration.

Pydantic Settings model for the CRM portal client.
All configuration is loaded from environment variables and .env files.
Inject an AppConfig instance via dependency injection where needed.
"""

from __future__ import annotations

import logging
import threading
from pathlib import Path
from typing import Literal, Optional

from pydantic import Field, model_validator
from pydantic_settings import BaseSettings

_DEFAULT_API_BASE_URL: str = "https://one4-02-2026.onrender.com"


class AppConfig(BaseSettings):
    """Central configuration loaded from environment variables and defaults."""

    # --- External CRM API ---
    API_BASE_URL: str = _DEFAULT_API_BASE_URL
    HTTP_TIMEOUT_S: float = 30.0

    # --- Deployment ---
    ENVIRONMENT: Literal["development", "production"] = "development"

    # --- Local persistence ---
    STORAGE_PATH: str = "crm_portal_local.db"
    TOKEN_COOKIE_MAX_AGE_DAYS: int = 7

    # --- Navigation entry points ---
    LOGIN_PATH: str = "/login"
    SIGNUP_PATH: str = "/signup"
    DASHBOARD_PATH: str = "/dashboard"
    AVATAR_PLACEHOLDER: str = "/images/profile.png"

    # Paths reachable without a token cookie (prefix match).
    PUBLIC_PATH_PREFIXES: tuple[str, ...] = Field(
        default=("/login", "/signup", "/_next", "/api", "/public"),
    )

    # Paths the request-level guard inspects; anything else passes through.
    EDGE_GUARDED_PREFIXES: tuple[str, ...] = Field(
        default=(
            "/dashboard",
            "/leads",
            "/manage-items",
            "/manage-salespersons",
            "/reports",
            "/newsletter",
            "/lead-capture-form",
        ),
    )

    # --- Logging ---
    LOG_FILE: str = "crm_portal.log"
    LOG_MAX_BYTES: int = 5_242_880  # 5 MB
    LOG_BACKUP_COUNT: int = 3

    model_config = {"env_file": ".env", "env_file_encoding": "utf-8", "extra": "ignore"}

    @model_validator(mode="after")
    def _warn_missing_env(self) -> "AppConfig":
        """Emit a startup warning when configuration falls back to defaults.

        Pydantic silently falls back to defaults when ``.env`` is missing.
        This validator logs a warning so operators know which API the
        client is talking to on first run.
        """
        _log = logging.getLogger("crm_portal.config")

        if not Path(".env").exists():
            _log.warning(
                "No .env file found; all configuration loaded from "
                "environment variables or defaults."
            )

        if self.API_BASE_URL == _DEFAULT_API_BASE_URL:
            _log.warning(
                "API_BASE_URL not set; using the default CRM API at %s.",
                _DEFAULT_API_BASE_URL,
            )

        return self

    @property
    def is_production(self) -> bool:
        """``True`` when running against the production deployment."""
        return self.ENVIRONMENT == "production"

    @property
    def open_routes(self) -> frozenset[str]:
        """Routes that never require a session (login and signup)."""
        return frozenset({self.LOGIN_PATH, self.SIGNUP_PATH})


# ---------------------------------------------------------------------------
# Module-level singleton factory
# ---------------------------------------------------------------------------

_config_instance: Optional[AppConfig] = None
_config_lock: threading.Lock = threading.Lock()


def get_config() -> AppConfig:
    """Return a cached ``AppConfig`` singleton.

    On first call, creates an ``AppConfig`` instance (reading from ``.env``).
    Subsequent calls return the same instance.  Uses a check-lock-check
    pattern to avoid the lock overhead on the fast path while remaining
    thread-safe during first initialisation.

    Prefer direct constructor injection of ``AppConfig`` in new code.
    """
    global _config_instance
    if _config_instance is None:
        with _config_lock:
            if _config_instance is None:
                _config_instance = AppConfig()
    return _config_instance
