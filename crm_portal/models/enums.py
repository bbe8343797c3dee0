"""
Shared Enumerations for CRM Portal Models.

All string enumerations for type-safe field constraints.
StrEnum values compare equal to their string equivalents,
so code like ``if role == "admin"`` continues to work.
"""

from __future__ import annotations
from enum import StrEnum


class UserRole(StrEnum):
    """Roles the CRM API assigns to a tenant member."""

    ADMIN = "admin"
    SALESPERSON = "salesperson"


class SessionStatus(StrEnum):
    """Initialisation state of the session manager.

    ``READY`` means the startup restore has finished.  It says nothing
    about whether a session exists: once ``READY`` the status never
    returns to ``INITIALIZING``, even after logout.
    """

    INITIALIZING = "INITIALIZING"
    READY = "READY"


class RouteAccess(StrEnum):
    """Access class of an application route."""

    OPEN = "OPEN"
    PROTECTED = "PROTECTED"


class SessionEventType(StrEnum):
    """Kind of change delivered to session subscribers."""

    RESTORED = "RESTORED"
    LOGIN = "LOGIN"
    LOGOUT = "LOGOUT"
    INVALIDATED = "INVALIDATED"
    READY = "READY"


class SameSite(StrEnum):
    """``SameSite`` attribute values for the token cookie."""

    LAX = "Lax"
    STRICT = "Strict"
    NONE = "None"
