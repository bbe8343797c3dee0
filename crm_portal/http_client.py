"""
Shared HTTP Client.

Builds the single ``httpx.Client`` every CRM API call goes through and
manages its ``Authorization`` default.  The header lives on this one
client instance (injected into the services), not on process-wide state.
"""

from __future__ import annotations

from typing import Optional

import httpx

from crm_portal.config import AppConfig

AUTHORIZATION_HEADER: str = "Authorization"


def create_http_client(
    config: AppConfig,
    transport: Optional[httpx.BaseTransport] = None,
) -> httpx.Client:
    """Return a client bound to the CRM API base URL.

    httpx keeps a cookie jar per client, so cookies set by the API are
    sent back on later requests (the equivalent of ``withCredentials``).

    Parameters
    ----------
    config:
        Supplies ``API_BASE_URL`` and ``HTTP_TIMEOUT_S``.
    transport:
        Optional transport override (tests pass ``httpx.MockTransport``).
    """
    return httpx.Client(
        base_url=config.API_BASE_URL,
        timeout=config.HTTP_TIMEOUT_S,
        headers={"Accept": "application/json"},
        transport=transport,
    )


def set_bearer_token(client: httpx.Client, token: str) -> None:
    client.headers[AUTHORIZATION_HEADER] = f"Bearer {token}"


def clear_bearer_token(client: httpx.Client) -> None:
    client.headers.pop(AUTHORIZATION_HEADER, None)


def get_bearer_token(client: httpx.Client) -> Optional[str]:
    """Return the token currently attached to *client*, if any."""
    value = client.headers.get(AUTHORIZATION_HEADER)
    if value and value.startswith("Bearer "):
        return value[len("Bearer "):]
    return None
