"""HTTP client for the Steadfast parcel courier API.

Every request carries the account's ``api-key`` and ``secret-key`` headers.
Responses are classified into three failure kinds so callers can tell a
clear rejection from the courier apart from a transport problem whose
outcome is unknown:

- :class:`CourierTransportError` for connection failures and HTML error
  pages served by a proxy instead of the API;
- :class:`CourierAPIError` for JSON responses that report a non-200 status;
- :class:`CourierResponseError` for any other unparseable body.
"""
from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field
from typing import Any, Dict, Optional

import httpx

from ..rate_limit import RateLimiter

LOGGER = logging.getLogger(__name__)

DEFAULT_BASE_URL = "https://portal.packzy.com/api/v1"
DEFAULT_TIMEOUT = 30.0


class CourierError(RuntimeError):
    """Base class for courier failures."""


class CourierConfigurationError(CourierError):
    """Raised before any request when credentials are missing."""


class CourierTransportError(CourierError):
    """The request may or may not have reached the courier."""


class CourierResponseError(CourierError):
    """The courier answered with a body that could not be interpreted."""


class CourierAPIError(CourierError):
    """The courier explicitly rejected the request."""

    def __init__(self, message: str, *, status: Any = None, payload: Optional[Dict[str, Any]] = None) -> None:
        super().__init__(message)
        self.status = status
        self.payload = payload or {}


@dataclass
class BalanceCheck:
    success: bool
    message: str
    balance: Optional[float] = None


@dataclass
class Consignment:
    consignment_id: str
    status: str
    raw: Dict[str, Any] = field(default_factory=dict)


def _looks_like_html(text: str) -> bool:
    head = text.lstrip()[:15].lower()
    return head.startswith("<!doctype") or head.startswith("<html")


def parse_response(response: httpx.Response) -> Dict[str, Any]:
    """Decode a courier response body, classifying non-JSON bodies."""

    text = response.text
    try:
        data = json.loads(text)
    except ValueError as exc:
        if _looks_like_html(text):
            raise CourierTransportError(
                f"Courier endpoint returned an HTML page (HTTP {response.status_code}) instead of JSON"
            ) from exc
        raise CourierResponseError("Invalid response format from server.") from exc
    if not isinstance(data, dict):
        raise CourierResponseError("Invalid response format from server.")
    return data


def _ensure_ok(data: Dict[str, Any], default_message: str) -> None:
    if data.get("status") != 200:
        raise CourierAPIError(data.get("message") or default_message, status=data.get("status"), payload=data)


class SteadfastClient:
    """Thin synchronous wrapper over the three courier endpoints in use."""

    def __init__(
        self,
        api_key: Optional[str],
        secret_key: Optional[str],
        *,
        base_url: str = DEFAULT_BASE_URL,
        timeout: float = DEFAULT_TIMEOUT,
        rate_limiter: Optional[RateLimiter] = None,
        transport: Optional[httpx.BaseTransport] = None,
    ) -> None:
        self.api_key = api_key or ""
        self.secret_key = secret_key or ""
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self._rate_limiter = rate_limiter or RateLimiter(None)
        self._transport = transport

    @property
    def has_credentials(self) -> bool:
        return bool(self.api_key and self.secret_key)

    def _headers(self) -> Dict[str, str]:
        return {
            "content-type": "application/json",
            "api-key": self.api_key,
            "secret-key": self.secret_key,
        }

    def _build_url(self, path: str) -> str:
        if not path.startswith("/"):
            path = f"/{path}"
        return f"{self.base_url}{path}"

    def _request(self, method: str, path: str, payload: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
        if not self.has_credentials:
            raise CourierConfigurationError("API keys are missing in Settings.")

        url = self._build_url(path)
        self._rate_limiter.acquire()
        LOGGER.debug("%s %s", method, url)
        try:
            with httpx.Client(timeout=self.timeout, transport=self._transport) as client:
                response = client.request(method, url, json=payload, headers=self._headers())
        except httpx.TransportError as exc:
            raise CourierTransportError(f"Could not reach courier at {url}: {exc}") from exc
        return parse_response(response)

    def get_balance(self) -> BalanceCheck:
        """Verify the credentials by reading the account balance."""

        data = self._request("GET", "/get_balance")
        if data.get("status") == 200:
            balance = data.get("current_balance")
            return BalanceCheck(
                success=True,
                balance=float(balance) if balance is not None else None,
                message=f"Connection successful. Account balance: {balance}",
            )
        return BalanceCheck(success=False, message=data.get("message") or "Invalid API Credentials.")

    def create_order(self, payload: Dict[str, Any]) -> Consignment:
        data = self._request("POST", "/create_order", payload)
        _ensure_ok(data, "Steadfast API Error")
        consignment = data.get("consignment") or {}
        consignment_id = consignment.get("consignment_id")
        if consignment_id in (None, ""):
            raise CourierResponseError("Courier response did not include a consignment id")
        return Consignment(
            consignment_id=str(consignment_id),
            status=str(consignment.get("status") or "pending"),
            raw=data,
        )

    def get_status(self, consignment_id: str) -> str:
        """Return the raw delivery status for ``consignment_id``."""

        data = self._request("GET", f"/status_by_cid/{consignment_id}")
        _ensure_ok(data, "Could not fetch consignment status")
        status = data.get("delivery_status")
        if not status:
            raise CourierResponseError("Courier response did not include a delivery status")
        return str(status)


__all__ = [
    "DEFAULT_BASE_URL",
    "BalanceCheck",
    "Consignment",
    "CourierAPIError",
    "CourierConfigurationError",
    "CourierError",
    "CourierResponseError",
    "CourierTransportError",
    "SteadfastClient",
    "parse_response",
]
