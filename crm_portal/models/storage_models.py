"""
Client Storage Models.

Typed records for the cookie mirror and for the tenant-aware API wrapper
responses.
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, Optional

from pydantic import BaseModel, Field

from crm_portal.models.enums import SameSite

# Storage keys shared by the key-value store and the cookie jar.
USER_KEY: str = "ts-user"
TOKEN_KEY: str = "ts-token"


class Cookie(BaseModel):
    """A persisted client cookie.

    Attributes
    ----------
    name:
        Cookie name (e.g. ``ts-token``).
    value:
        Raw cookie value.  Excluded from ``repr`` so tokens stay out of logs.
    path:
        Cookie path scope.
    expires_at:
        Absolute UTC expiry.  Expired cookies are treated as absent.
    secure:
        ``True`` when the cookie is only sent over HTTPS.
    same_site:
        ``SameSite`` policy.
    """

    name: str
    value: str = Field(repr=False)
    path: str = "/"
    expires_at: datetime
    secure: bool = False
    same_site: SameSite = SameSite.LAX

    def is_expired(self, now: Optional[datetime] = None) -> bool:
        current = now or datetime.now(tz=timezone.utc)
        return current >= self.expires_at

    def to_header(self) -> str:
        """Render the cookie as a ``Set-Cookie`` header value."""
        parts: list[str] = [
            f"{self.name}={self.value}",
            f"Expires={self.expires_at.strftime('%a, %d %b %Y %H:%M:%S GMT')}",
            f"Path={self.path}",
            f"SameSite={self.same_site.value}",
        ]
        if self.secure:
            parts.append("Secure")
        return "; ".join(parts)


class ApiResponse(BaseModel):
    """Uniform result of a tenant-aware API call.

    ``success`` is ``False`` for transport errors and non-2xx replies;
    ``error`` then carries the API's ``message`` or the exception text.
    """

    success: bool
    data: Any = None
    error: Optional[str] = None
    status: Optional[int] = None
