"""Steadfast courier integration."""

from .client import (
    BalanceCheck,
    Consignment,
    CourierAPIError,
    CourierConfigurationError,
    CourierError,
    CourierResponseError,
    CourierTransportError,
    SteadfastClient,
)
from .status import map_courier_status
from .webhook import StatusUpdate, parse_webhook

__all__ = [
    "BalanceCheck",
    "Consignment",
    "CourierAPIError",
    "CourierConfigurationError",
    "CourierError",
    "CourierResponseError",
    "CourierTransportError",
    "SteadfastClient",
    "StatusUpdate",
    "map_courier_status",
    "parse_webhook",
]
