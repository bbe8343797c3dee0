"""
Authentication Request Models.

Pydantic models for the request bodies ``AuthService`` sends to the
CRM auth endpoints, plus the error-code enumeration shared by the
session exceptions.
"""

from __future__ import annotations

from enum import StrEnum
from typing import Any, Optional

from pydantic import BaseModel, Field, SecretStr

from crm_portal.models.enums import UserRole


class AuthErrorCode(StrEnum):
    """Categories of session failures surfaced to the UI layer."""

    STORAGE_CORRUPT = "storage_corrupt"
    MALFORMED_RESPONSE = "malformed_response"
    NOT_AUTHENTICATED = "not_authenticated"
    UNAUTHORIZED = "unauthorized"


class LoginCredentials(BaseModel):
    """Body of ``POST /api/auth/login``.

    No format validation happens here; the API and the login form own it.
    """

    email: str
    password: SecretStr
    role: UserRole = UserRole.ADMIN

    def to_payload(self) -> dict[str, str]:
        """Return the JSON body with the password revealed."""
        return {
            "email": self.email,
            "password": self.password.get_secret_value(),
            "role": self.role.value,
        }


class SignupData(BaseModel):
    """Registration fields forwarded verbatim to ``POST /api/auth/register``."""

    username: str
    email: str
    password: SecretStr
    country: str = ""
    country_code: str = Field(default="", alias="countryCode")
    contact_no: str = Field(default="", alias="contactNo")
    promo_code: Optional[str] = Field(default=None, alias="promoCode")
    role: UserRole = UserRole.ADMIN

    model_config = {"populate_by_name": True}

    def to_payload(self) -> dict[str, Any]:
        payload: dict[str, Any] = self.model_dump(
            mode="json", by_alias=True, exclude_none=True, exclude={"password"},
        )
        payload["password"] = self.password.get_secret_value()
        return payload
