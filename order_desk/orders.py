"""Order submission and repeat-customer lookup."""
from __future__ import annotations

from collections import Counter
from dataclasses import dataclass
from typing import Dict, Iterable, List, Mapping, Optional, Sequence

from .models import (
    DEFAULT_DELIVERY_CHARGES,
    DeliveryRegion,
    Lead,
    Order,
    OrderItem,
    OrderStatus,
    Product,
    compute_grand_total,
)
from .phone import normalize_phone
from .timeutil import Clock, utc_now

VIP_MIN_ORDERS = 3
VIP_MIN_LIFETIME_VALUE = 5000.0


class OrderValidationError(ValueError):
    """Raised when an order is missing required data; nothing is persisted."""


def _require(value: Optional[str], label: str) -> str:
    text = (value or "").strip()
    if not text:
        raise OrderValidationError(f"{label} is required")
    return text


def new_order_id(clock: Clock = utc_now) -> str:
    return f"ORD-{int(clock().timestamp() * 1000)}"


@dataclass(frozen=True)
class ItemRequest:
    """A line as entered by the operator: a product id or SKU and a quantity."""

    product: str
    quantity: int


def _catalog_index(products: Sequence[Product]) -> Dict[str, Product]:
    # ids take precedence over SKUs that happen to look like ids
    index: Dict[str, Product] = {product.sku: product for product in products if product.sku}
    index.update({product.id: product for product in products})
    return index


def price_items(requests: Sequence[ItemRequest], products: Iterable[Product]) -> List[OrderItem]:
    """Resolve requested lines against the catalog at its current prices.

    Quantities for the same product are added up before they are checked
    against stock.
    """

    catalog = _catalog_index(list(products))
    resolved: List[tuple[Product, int]] = []
    for request in requests:
        product = catalog.get(str(request.product).strip())
        if product is None:
            raise OrderValidationError(f"Unknown product '{request.product}'")
        if request.quantity < 1:
            raise OrderValidationError(f"Quantity for product {product.name} must be at least 1")
        resolved.append((product, request.quantity))

    wanted: Counter = Counter()
    for product, quantity in resolved:
        wanted[product.id] += quantity
    for product, _ in resolved:
        if wanted[product.id] > product.stock:
            raise OrderValidationError(f"Only {product.stock} units available for {product.name}")

    return [OrderItem(product_id=product.id, quantity=quantity, price=product.price) for product, quantity in resolved]


def build_order(
    *,
    customer_name: str,
    customer_phone: str,
    customer_address: str,
    items: Sequence[ItemRequest],
    products: Iterable[Product],
    delivery_region: DeliveryRegion | str = DeliveryRegion.INSIDE,
    advance_amount: float = 0.0,
    discount: Optional[float] = None,
    notes: Optional[str] = None,
    moderator_id: Optional[str] = None,
    delivery_charges: Optional[Mapping[DeliveryRegion, float]] = None,
    clock: Clock = utc_now,
) -> Order:
    """Validate order input, price its lines from the catalog and compute totals.

    Each line records the product's price at this moment; later catalog
    price changes do not affect the order. Nothing is written here.
    """

    name = _require(customer_name, "Customer name")
    address = _require(customer_address, "Customer address")
    phone = _require(customer_phone, "Customer phone")
    if not normalize_phone(phone):
        raise OrderValidationError(f"Customer phone '{phone}' is not a valid number")

    if not items:
        raise OrderValidationError("An order needs at least one item")
    if advance_amount < 0:
        raise OrderValidationError("Advance amount cannot be negative")
    if discount is not None and discount < 0:
        raise OrderValidationError("Discount cannot be negative")
    priced = price_items(items, products)

    region = DeliveryRegion(delivery_region)
    charges = dict(DEFAULT_DELIVERY_CHARGES)
    charges.update(delivery_charges or {})
    delivery_charge = float(charges[region])
    subtotal = sum(item.line_total for item in priced)

    return Order(
        id=new_order_id(clock),
        customer_name=name,
        customer_phone=phone,
        customer_address=address,
        delivery_region=region,
        delivery_charge=delivery_charge,
        total_amount=subtotal,
        grand_total=compute_grand_total(subtotal, delivery_charge, advance_amount, discount),
        status=OrderStatus.PENDING,
        created_at=clock(),
        items=priced,
        advance_amount=advance_amount,
        discount=discount,
        moderator_id=moderator_id,
        notes=(notes or "").strip() or None,
    )


@dataclass
class CustomerLookup:
    status: str = "none"
    lifetime_value: float = 0.0
    order_count: int = 0
    is_vip: bool = False
    name: Optional[str] = None
    address: Optional[str] = None


def lookup_customer(phone: str, orders: Iterable[Order], leads: Iterable[Lead]) -> CustomerLookup:
    """Find an existing customer or lead for ``phone`` to prefill a new order.

    ``orders`` and ``leads`` are expected newest first, so the prefilled name
    and address come from the most recent record.
    """

    key = normalize_phone(phone)
    if not key:
        return CustomerLookup()

    history = [order for order in orders if normalize_phone(order.customer_phone) == key]
    if history:
        lifetime_value = sum(order.total_amount for order in history)
        return CustomerLookup(
            status="found-customer",
            lifetime_value=lifetime_value,
            order_count=len(history),
            is_vip=len(history) >= VIP_MIN_ORDERS or lifetime_value > VIP_MIN_LIFETIME_VALUE,
            name=history[0].customer_name,
            address=history[0].customer_address,
        )

    for lead in leads:
        if normalize_phone(lead.phone_number) == key:
            return CustomerLookup(status="found-lead", name=lead.customer_name, address=lead.address)
    return CustomerLookup()


__all__ = [
    "CustomerLookup",
    "ItemRequest",
    "OrderValidationError",
    "build_order",
    "lookup_customer",
    "new_order_id",
    "price_items",
]
