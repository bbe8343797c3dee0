"""
Session Error Taxonomy.

Typed exceptions raised at the session-manager seams.  Transport and
non-2xx failures are not wrapped: they surface as the ``httpx.HTTPError``
subclasses the HTTP client raised.
"""

from __future__ import annotations

from typing import Optional

import httpx

from crm_portal.models.auth_models import AuthErrorCode


class SessionError(RuntimeError):
    """Base class for session-manager failures."""

    error_code: AuthErrorCode = AuthErrorCode.NOT_AUTHENTICATED

    def __init__(self, message: str, error_code: Optional[AuthErrorCode] = None) -> None:
        super().__init__(message)
        if error_code is not None:
            self.error_code = error_code


class StorageCorruptError(SessionError):
    """The persisted profile failed to parse or is missing required fields.

    Only raised inside ``SessionStore.load``; ``AuthService.restore_session``
    recovers from it by discarding the stored data.
    """

    error_code = AuthErrorCode.STORAGE_CORRUPT


class MalformedResponseError(SessionError):
    """The auth API answered 2xx but omitted ``user.tenantId`` or ``token``."""

    error_code = AuthErrorCode.MALFORMED_RESPONSE


class AuthenticationError(SessionError):
    """Raised when a session is required but none is active."""

    error_code = AuthErrorCode.NOT_AUTHENTICATED


def describe_error(exc: BaseException) -> str:
    """Return the message the UI should display for *exc*.

    Prefers the ``message`` field of a JSON error body returned by the
    CRM API, falling back to the exception text.
    """
    if isinstance(exc, httpx.HTTPStatusError):
        try:
            body = exc.response.json()
        except (ValueError, httpx.StreamError):
            body = None
        if isinstance(body, dict) and body.get("message"):
            return str(body["message"])
    return str(exc)
