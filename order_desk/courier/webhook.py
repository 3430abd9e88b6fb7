"""Parsing of delivery-status notifications pushed by the courier."""
from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Mapping, Optional

from ..models import OrderStatus
from .status import map_courier_status

DELIVERY_STATUS_NOTIFICATION = "delivery_status"


@dataclass(frozen=True)
class StatusUpdate:
    consignment_id: str
    invoice: Optional[str]
    new_status: OrderStatus
    raw_status: str


def parse_webhook(payload: Mapping[str, Any]) -> Optional[StatusUpdate]:
    """Return a status update for delivery notifications, ``None`` for anything else."""

    if payload.get("notification_type") != DELIVERY_STATUS_NOTIFICATION:
        return None
    consignment_id = payload.get("consignment_id")
    if consignment_id in (None, ""):
        raise ValueError("Delivery notification is missing 'consignment_id'")
    raw_status = str(payload.get("status") or "")
    invoice = payload.get("invoice")
    return StatusUpdate(
        consignment_id=str(consignment_id),
        invoice=str(invoice) if invoice not in (None, "") else None,
        new_status=map_courier_status(raw_status),
        raw_status=raw_status,
    )


__all__ = ["DELIVERY_STATUS_NOTIFICATION", "StatusUpdate", "parse_webhook"]
