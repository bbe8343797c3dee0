"""
Session Model.

The single authenticated identity held by the client: user profile,
tenant scope and bearer token.  The profile half is persisted as JSON
under the ``ts-user`` key using the API's camelCase field names; the
token is stored separately and never serialised with the profile.
"""

from __future__ import annotations

import json
from typing import Any

from pydantic import BaseModel, Field, model_validator

from crm_portal.models.enums import UserRole

DEFAULT_AVATAR: str = "/images/profile.png"


class TenantInfo(BaseModel):
    """Tenant scope of the current user."""

    tenant_id: str
    tenant_name: str
    role: UserRole


class Session(BaseModel):
    """A fully valid, tenant-scoped session.

    Instances are frozen: a session is replaced, never edited.  Any
    record missing ``id``, ``tenantId`` or the token fails validation,
    which is how partial records are rejected.
    """

    user_id: str = Field(alias="id", min_length=1)
    username: str = ""
    email: str = ""
    role: UserRole
    tenant_id: str = Field(alias="tenantId", min_length=1)
    tenant_name: str = Field(default="", alias="tenantName")
    avatar: str = DEFAULT_AVATAR
    token: str = Field(min_length=1, repr=False)

    model_config = {
        "populate_by_name": True,
        "frozen": True,
        "extra": "ignore",
    }

    @model_validator(mode="before")
    @classmethod
    def _apply_defaults(cls, data: Any) -> Any:
        """Default ``tenantName`` to the username and blank avatars to the placeholder."""
        if not isinstance(data, dict):
            return data
        data = dict(data)
        if not (data.get("tenantName") or data.get("tenant_name")):
            data.pop("tenant_name", None)
            data["tenantName"] = data.get("username") or ""
        if not data.get("avatar"):
            data.pop("avatar", None)
        return data

    @classmethod
    def from_storage(cls, profile_json: str, token: str) -> "Session":
        """Rebuild a session from the persisted profile and token.

        Raises
        ------
        ValueError
            If the profile is not a JSON object or fails validation
            (``pydantic.ValidationError`` is a ``ValueError``).
        """
        data = json.loads(profile_json)
        if not isinstance(data, dict):
            raise ValueError("Stored profile is not a JSON object.")
        return cls.model_validate({**data, "token": token})

    def profile_json(self) -> str:
        """Serialise the profile (everything except the token)."""
        return self.model_dump_json(by_alias=True, exclude={"token"})

    @property
    def is_admin(self) -> bool:
        return self.role == UserRole.ADMIN

    @property
    def is_salesperson(self) -> bool:
        return self.role == UserRole.SALESPERSON

    def tenant_info(self) -> TenantInfo:
        return TenantInfo(
            tenant_id=self.tenant_id,
            tenant_name=self.tenant_name or self.username,
            role=self.role,
        )
