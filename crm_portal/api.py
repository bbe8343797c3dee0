"""
Tenant-Aware API Client.

Thin wrapper over the shared ``httpx.Client`` for the CRM resource
endpoints (leads, products, salespersons, ...).  Tenant isolation is
enforced server-side from the bearer token, which the auth service keeps
on the shared client; this wrapper never touches the header itself.

Unlike the auth calls, these helpers do not raise: every call returns an
``ApiResponse``.  A 401 still triggers the global sign-out first.
"""

from __future__ import annotations

from typing import Any, Optional

import httpx

from crm_portal.auth import SessionManager
from crm_portal.errors import describe_error
from crm_portal.logger import StructuredLogger
from crm_portal.models.storage_models import ApiResponse


class ApiClient:
    """Uniform ``ApiResponse`` results for CRM API calls.

    Parameters
    ----------
    http:
        The shared client configured by ``AuthService``.
    session:
        Read to warn when a call is made while signed out.
    logger:
        Structured logger instance.
    """

    def __init__(
        self,
        http: httpx.Client,
        session: SessionManager,
        logger: StructuredLogger,
    ) -> None:
        self._http = http
        self._session = session
        self._logger = logger

    def request(
        self,
        method: str,
        url: str,
        *,
        json: Any = None,
        params: Optional[dict[str, Any]] = None,
    ) -> ApiResponse:
        if not self._session.is_authenticated:
            self._logger.warning("API call %s %s without an active session.", method, url)

        try:
            response = self._http.request(method, url, json=json, params=params)
            response.raise_for_status()
        except httpx.HTTPStatusError as exc:
            status = exc.response.status_code
            message = describe_error(exc)
            self._logger.error(
                "API error.",
                extra={"url": url, "method": method, "status": status, "error": message},
            )
            return ApiResponse(success=False, error=message, status=status)
        except httpx.HTTPError as exc:
            self._logger.error(
                "API transport error.",
                extra={"url": url, "method": method, "error": str(exc)},
            )
            return ApiResponse(success=False, error=str(exc))

        return ApiResponse(
            success=True,
            data=self._decode(response),
            status=response.status_code,
        )

    def get(self, url: str, params: Optional[dict[str, Any]] = None) -> ApiResponse:
        return self.request("GET", url, params=params)

    def post(self, url: str, data: Any = None) -> ApiResponse:
        return self.request("POST", url, json=data)

    def put(self, url: str, data: Any = None) -> ApiResponse:
        return self.request("PUT", url, json=data)

    def delete(self, url: str) -> ApiResponse:
        return self.request("DELETE", url)

    @staticmethod
    def _decode(response: httpx.Response) -> Any:
        if not response.content:
            return None
        try:
            return response.json()
        except ValueError:
            return response.text
