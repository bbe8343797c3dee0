"""
Data Models Package.

Re-exports the Pydantic models and enumerations:
    from crm_portal.models import Session, LoginCredentials, UserRole
"""

from __future__ import annotations

from crm_portal.models.auth_models import AuthErrorCode, LoginCredentials, SignupData
from crm_portal.models.enums import (
    RouteAccess,
    SameSite,
    SessionEventType,
    SessionStatus,
    UserRole,
)
from crm_portal.models.session_models import DEFAULT_AVATAR, Session, TenantInfo
from crm_portal.models.storage_models import TOKEN_KEY, USER_KEY, ApiResponse, Cookie

__all__ = [
    "AuthErrorCode",
    "LoginCredentials",
    "SignupData",
    "RouteAccess",
    "SameSite",
    "SessionEventType",
    "SessionStatus",
    "UserRole",
    "DEFAULT_AVATAR",
    "Session",
    "TenantInfo",
    "TOKEN_KEY",
    "USER_KEY",
    "ApiResponse",
    "Cookie",
]
