"""License backends.

A license backend validates, activates and deactivates license keys
against a hosted license service. The built-in ``PolarClient`` talks to the
Polar customer-portal license-key endpoints, which are unauthenticated and
meant for desktop clients.

Uses stdlib ``urllib.request`` -- no extra dependencies required.

Custom backends just need the three methods of ``LicenseBackend``.
"""

from __future__ import annotations

import http.client
import json
import urllib.error
import urllib.request
from typing import Any, Protocol, runtime_checkable

DEFAULT_API_BASE_URL = "https://api.polar.sh/v1/customer-portal/license-keys"


class LicenseBackendError(Exception):
    """Raised when the license service cannot be reached or rejects a call."""

    def __init__(self, message: str, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code


@runtime_checkable
class LicenseBackend(Protocol):
    """Protocol for hosted license services."""

    def validate(
        self,
        key: str,
        organization_id: str,
        activation_id: str | None = None,
        increment_usage: int = 0,
    ) -> dict[str, Any]:
        """Validate a key. Returns the service's license-key payload."""
        ...

    def activate(
        self,
        key: str,
        organization_id: str,
        label: str,
        meta: dict[str, Any] | None = None,
    ) -> dict[str, Any]:
        """Activate a key on this machine. Returns the activation payload."""
        ...

    def deactivate(
        self,
        key: str,
        organization_id: str,
        activation_id: str,
    ) -> None:
        ...


class PolarClient:
    """Polar customer-portal license-key client."""

    def __init__(
        self,
        base_url: str = DEFAULT_API_BASE_URL,
        timeout: float = 10.0,
        headers: dict[str, str] | None = None,
    ) -> None:
        self._base_url = base_url.rstrip("/")
        self._timeout = timeout
        self._headers = headers or {}

    def validate(
        self,
        key: str,
        organization_id: str,
        activation_id: str | None = None,
        increment_usage: int = 0,
    ) -> dict[str, Any]:
        body: dict[str, Any] = {
            "key": key,
            "organization_id": organization_id,
        }
        if activation_id:
            body["activation_id"] = activation_id
        if increment_usage:
            body["increment_usage"] = increment_usage
        return self._post("validate", body) or {}

    def activate(
        self,
        key: str,
        organization_id: str,
        label: str,
        meta: dict[str, Any] | None = None,
    ) -> dict[str, Any]:
        body = {
            "key": key,
            "organization_id": organization_id,
            "label": label,
            "meta": meta or {},
        }
        return self._post("activate", body) or {}

    def deactivate(
        self,
        key: str,
        organization_id: str,
        activation_id: str,
    ) -> None:
        self._post(
            "deactivate",
            {
                "key": key,
                "organization_id": organization_id,
                "activation_id": activation_id,
            },
        )

    def _post(self, endpoint: str, body: dict[str, Any]) -> dict[str, Any] | None:
        req = urllib.request.Request(
            f"{self._base_url}/{endpoint}",
            data=json.dumps(body).encode("utf-8"),
            headers={
                "Content-Type": "application/json",
                "Accept": "application/json",
                **self._headers,
            },
            method="POST",
        )
        try:
            with urllib.request.urlopen(req, timeout=self._timeout) as resp:  # noqa: S310
                raw = resp.read()
        except urllib.error.HTTPError as e:
            raise LicenseBackendError(
                f"License service rejected {endpoint}: {_error_detail(e)}",
                status_code=e.code,
            ) from e
        except (urllib.error.URLError, http.client.HTTPException, TimeoutError) as e:
            raise LicenseBackendError(
                f"License service unreachable: {e}"
            ) from e

        if not raw:
            return None
        try:
            data = json.loads(raw)
        except (json.JSONDecodeError, UnicodeDecodeError) as e:
            raise LicenseBackendError(
                f"Invalid JSON from license service: {e}"
            ) from e
        if not isinstance(data, dict):
            raise LicenseBackendError(
                f"Unexpected response from license service: {type(data).__name__}"
            )
        return data


def _error_detail(error: urllib.error.HTTPError) -> str:
    """Best-effort extraction of the service's error message."""
    try:
        payload = json.loads(error.read() or b"{}")
    except (json.JSONDecodeError, UnicodeDecodeError, OSError):
        return f"HTTP {error.code}"
    detail = payload.get("detail") if isinstance(payload, dict) else None
    if isinstance(detail, str):
        return detail
    return f"HTTP {error.code}"
