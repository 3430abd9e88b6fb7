"""Translation of courier delivery statuses into local order statuses."""
from __future__ import annotations

from typing import Mapping

from ..models import OrderStatus

_STATUS_MAP: Mapping[str, OrderStatus] = {
    "delivered": OrderStatus.DELIVERED,
    "partial_delivered": OrderStatus.DELIVERED,
    "cancelled": OrderStatus.CANCELLED,
    "hold": OrderStatus.ON_HOLD,
}


def map_courier_status(raw_status: str | None) -> OrderStatus:
    """Anything the courier reports that is not terminal counts as ``processing``."""

    key = (raw_status or "").strip().lower()
    return _STATUS_MAP.get(key, OrderStatus.PROCESSING)


__all__ = ["map_courier_status"]
