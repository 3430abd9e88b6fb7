"""Record models for leads, orders, and the derived contact projection."""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from datetime import date, datetime
from enum import Enum
from typing import Any, Dict, List, Mapping, Optional

from .timeutil import format_timestamp, parse_date, parse_timestamp


class LeadStatus(str, Enum):
    PENDING = "pending"
    CONFIRMED = "confirmed"
    COMMUNICATION = "communication"
    NO_RESPONSE = "no-response"


class OrderStatus(str, Enum):
    PENDING = "pending"
    CONFIRMED = "confirmed"
    PROCESSING = "processing"
    SHIPPED = "shipped"
    DELIVERED = "delivered"
    CANCELLED = "cancelled"
    RETURNED = "returned"
    ON_HOLD = "on_hold"


class DeliveryRegion(str, Enum):
    INSIDE = "inside"
    OUTSIDE = "outside"


DEFAULT_DELIVERY_CHARGES: Dict[DeliveryRegion, float] = {
    DeliveryRegion.INSIDE: 70.0,
    DeliveryRegion.OUTSIDE: 130.0,
}

_ABSENT_MODERATOR_VALUES = {"", "null", "none"}


def clean_moderator_id(value: Any) -> Optional[str]:
    """Collapse empty and ``"null"`` moderator ids read from storage into ``None``."""

    if value is None:
        return None
    text = str(value).strip()
    if text.lower() in _ABSENT_MODERATOR_VALUES:
        return None
    return text


def compute_grand_total(
    total_amount: float,
    delivery_charge: float,
    advance_amount: float = 0.0,
    discount: Optional[float] = None,
) -> float:
    """Amount to collect on delivery, never below zero."""

    return max(0.0, total_amount + delivery_charge - (discount or 0.0) - advance_amount)


# --- Persisted records ---

@dataclass(slots=True)
class Lead:
    """A prospective customer queued for an outreach call."""

    id: str
    phone_number: str
    status: LeadStatus
    created_at: datetime
    customer_name: Optional[str] = None
    address: Optional[str] = None
    moderator_id: Optional[str] = None
    assigned_date: Optional[date] = None

    @classmethod
    def from_row(cls, row: Mapping[str, Any]) -> "Lead":
        return cls(
            id=str(row["id"]),
            phone_number=str(row.get("phone_number") or ""),
            status=LeadStatus(row.get("status") or LeadStatus.PENDING.value),
            created_at=parse_timestamp(row["created_at"]),  # type: ignore[arg-type]
            customer_name=row.get("customer_name") or None,
            address=row.get("address") or None,
            moderator_id=clean_moderator_id(row.get("moderator_id")),
            assigned_date=parse_date(row.get("assigned_date")),
        )

    def to_row(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "phone_number": self.phone_number,
            "customer_name": self.customer_name,
            "address": self.address,
            "moderator_id": self.moderator_id,
            "status": self.status.value,
            "assigned_date": self.assigned_date.isoformat() if self.assigned_date else None,
            "created_at": format_timestamp(self.created_at),
        }


@dataclass(slots=True)
class Moderator:
    """A call-center operator who receives leads."""

    id: str
    name: str
    email: str = ""
    is_active: bool = True

    @classmethod
    def from_row(cls, row: Mapping[str, Any]) -> "Moderator":
        active = row.get("is_active")
        return cls(
            id=str(row["id"]),
            name=str(row.get("name") or ""),
            email=str(row.get("email") or ""),
            is_active=True if active is None else bool(active),
        )

    def to_row(self) -> Dict[str, Any]:
        return {"id": self.id, "name": self.name, "email": self.email, "is_active": self.is_active}


@dataclass(slots=True)
class Product:
    """A catalog entry; its current price is copied onto each new order line."""

    id: str
    sku: str
    name: str
    price: float
    stock: int = 0

    @classmethod
    def from_row(cls, row: Mapping[str, Any]) -> "Product":
        return cls(
            id=str(row["id"]),
            sku=str(row.get("sku") or ""),
            name=str(row.get("name") or ""),
            price=float(row.get("price") or 0),
            stock=int(row.get("stock") or 0),
        )

    def to_row(self) -> Dict[str, Any]:
        return {"id": self.id, "sku": self.sku, "name": self.name, "price": self.price, "stock": self.stock}


@dataclass(frozen=True, slots=True)
class OrderItem:
    """A line item; the price is the one captured when the order was placed."""

    product_id: str
    quantity: int
    price: float

    @property
    def line_total(self) -> float:
        return self.price * self.quantity

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "OrderItem":
        return cls(
            product_id=str(data.get("product_id", data.get("productId", ""))),
            quantity=int(data.get("quantity", 0)),
            price=float(data.get("price", 0)),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {"product_id": self.product_id, "quantity": self.quantity, "price": self.price}


def _parse_items(value: Any) -> List[OrderItem]:
    if value is None or value == "":
        return []
    if isinstance(value, str):
        value = json.loads(value)
    return [OrderItem.from_dict(item) for item in value]


def _optional_text(value: Any) -> Optional[str]:
    if value is None:
        return None
    text = str(value).strip()
    return text or None


@dataclass(slots=True)
class Order:
    """A placed sales transaction and its courier linkage."""

    id: str
    customer_name: str
    customer_phone: str
    customer_address: str
    delivery_region: DeliveryRegion
    delivery_charge: float
    total_amount: float
    grand_total: float
    status: OrderStatus
    created_at: datetime
    items: List[OrderItem] = field(default_factory=list)
    advance_amount: float = 0.0
    discount: Optional[float] = None
    moderator_id: Optional[str] = None
    notes: Optional[str] = None
    steadfast_id: Optional[str] = None
    courier_status: Optional[str] = None
    success_rate: Optional[str] = None

    @property
    def is_dispatched(self) -> bool:
        return bool(self.steadfast_id)

    @classmethod
    def from_row(cls, row: Mapping[str, Any]) -> "Order":
        discount = row.get("discount")
        return cls(
            id=str(row["id"]),
            customer_name=str(row.get("customer_name") or ""),
            customer_phone=str(row.get("customer_phone") or ""),
            customer_address=str(row.get("customer_address") or ""),
            delivery_region=DeliveryRegion(row.get("delivery_region") or DeliveryRegion.INSIDE.value),
            delivery_charge=float(row.get("delivery_charge") or 0),
            total_amount=float(row.get("total_amount") or 0),
            grand_total=float(row.get("grand_total") or 0),
            status=OrderStatus(row.get("status") or OrderStatus.PENDING.value),
            created_at=parse_timestamp(row["created_at"]),  # type: ignore[arg-type]
            items=_parse_items(row.get("items")),
            advance_amount=float(row.get("advance_amount") or 0),
            discount=float(discount) if discount not in (None, "") else None,
            moderator_id=clean_moderator_id(row.get("moderator_id")),
            notes=_optional_text(row.get("notes")),
            steadfast_id=_optional_text(row.get("steadfast_id")),
            courier_status=_optional_text(row.get("courier_status")),
            success_rate=_optional_text(row.get("success_rate")),
        )

    def to_row(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "moderator_id": self.moderator_id,
            "customer_name": self.customer_name,
            "customer_phone": self.customer_phone,
            "customer_address": self.customer_address,
            "delivery_region": self.delivery_region.value,
            "delivery_charge": self.delivery_charge,
            "items": json.dumps([item.to_dict() for item in self.items]),
            "total_amount": self.total_amount,
            "discount": self.discount,
            "advance_amount": self.advance_amount,
            "grand_total": self.grand_total,
            "status": self.status.value,
            "created_at": format_timestamp(self.created_at),
            "notes": self.notes,
            "steadfast_id": self.steadfast_id,
            "courier_status": self.courier_status,
            "success_rate": self.success_rate,
        }


# --- Derived projection ---

@dataclass
class Contact:
    """One row per normalised phone number, rebuilt on every read."""

    phone: str
    name: str
    address: str = ""
    lead_id: Optional[str] = None
    moderator_id: Optional[str] = None
    current_status: Optional[LeadStatus] = None
    last_call_date: Optional[datetime] = None
    days_since_call: Optional[int] = None
    last_order_date: Optional[datetime] = None
    days_since_order: Optional[int] = None
    total_orders: int = 0

    @property
    def is_unassigned(self) -> bool:
        return self.moderator_id is None

    @property
    def last_activity(self) -> Optional[datetime]:
        dates = [value for value in (self.last_order_date, self.last_call_date) if value is not None]
        return max(dates) if dates else None

    def as_row(self) -> Dict[str, Any]:
        """Return a flat representation suitable for tabular export."""
        return {
            "phone": self.phone,
            "name": self.name,
            "address": self.address,
            "lead_id": self.lead_id or "",
            "moderator_id": self.moderator_id or "",
            "status": self.current_status.value if self.current_status else "unassigned",
            "last_call_date": format_timestamp(self.last_call_date) if self.last_call_date else "",
            "days_since_call": self.days_since_call,
            "last_order_date": format_timestamp(self.last_order_date) if self.last_order_date else "",
            "days_since_order": self.days_since_order,
            "total_orders": self.total_orders,
        }


STATUS_ALL = "all"
STATUS_UNASSIGNED = "unassigned"


@dataclass
class ContactFilter:
    """Conjunctive filter applied to the contact projection."""

    search: str = ""
    status: str = STATUS_ALL
    min_days_since_call: Optional[int] = None
    min_days_since_order: Optional[int] = None

    def __post_init__(self) -> None:
        if isinstance(self.status, LeadStatus):
            self.status = self.status.value
        if self.status not in {STATUS_ALL, STATUS_UNASSIGNED} and self.status not in {
            status.value for status in LeadStatus
        }:
            raise ValueError(f"Unknown contact status filter '{self.status}'")


__all__ = [
    "LeadStatus",
    "OrderStatus",
    "DeliveryRegion",
    "DEFAULT_DELIVERY_CHARGES",
    "Lead",
    "Moderator",
    "Product",
    "OrderItem",
    "Order",
    "Contact",
    "ContactFilter",
    "STATUS_ALL",
    "STATUS_UNASSIGNED",
    "clean_moderator_id",
    "compute_grand_total",
]
