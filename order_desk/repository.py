"""Typed access to the lead, order, product and moderator tables."""
from __future__ import annotations

import logging
from datetime import date
from typing import Any, Dict, Iterable, List, Optional, Sequence

from .models import Lead, LeadStatus, Moderator, Order, OrderStatus, Product
from .storage import (
    LEADS_TABLE,
    MODERATORS_TABLE,
    ORDERS_TABLE,
    PRODUCTS_TABLE,
    RecordNotFoundError,
    RecordStore,
)

LOGGER = logging.getLogger(__name__)


class LeadRepository:
    """Maps ``leads`` rows to :class:`~order_desk.models.Lead` records."""

    def __init__(self, store: RecordStore) -> None:
        self._store = store

    def list(self) -> List[Lead]:
        """Return all leads, newest first."""
        return [Lead.from_row(row) for row in self._store.select_all(LEADS_TABLE)]

    def insert_many(self, rows: Sequence[Dict[str, Any]]) -> List[Lead]:
        if not rows:
            return []
        return [Lead.from_row(row) for row in self._store.insert_many(LEADS_TABLE, rows)]

    def reassign(self, lead_ids: Sequence[str], moderator_id: str, assigned_date: date) -> List[Lead]:
        """Move leads to ``moderator_id`` and queue them again for outreach."""

        rows = self._store.update_many(
            LEADS_TABLE,
            lead_ids,
            {
                "moderator_id": moderator_id,
                "assigned_date": assigned_date.isoformat(),
                "status": LeadStatus.PENDING.value,
            },
        )
        return [Lead.from_row(row) for row in rows]

    def update_status(self, lead_id: str, status: LeadStatus | str) -> Lead:
        status = LeadStatus(status)
        return Lead.from_row(self._store.update(LEADS_TABLE, lead_id, {"status": status.value}))

    def for_moderator(self, moderator_id: str, *, assigned_on: Optional[date] = None) -> List[Lead]:
        """A moderator's call queue, optionally limited to one assignment date."""

        return [
            lead
            for lead in self.list()
            if lead.moderator_id == str(moderator_id)
            and (assigned_on is None or lead.assigned_date == assigned_on)
        ]

    def delete(self, lead_id: str) -> None:
        self._store.delete(LEADS_TABLE, lead_id)
        LOGGER.info("Deleted lead %s", lead_id)


class OrderRepository:
    """Maps ``orders`` rows to :class:`~order_desk.models.Order` records."""

    def __init__(self, store: RecordStore) -> None:
        self._store = store

    def list(self) -> List[Order]:
        return [Order.from_row(row) for row in self._store.select_all(ORDERS_TABLE)]

    def get(self, order_id: str) -> Order:
        for order in self.list():
            if order.id == str(order_id):
                return order
        raise RecordNotFoundError(f"Order '{order_id}' was not found")

    def find_by_consignment(self, consignment_id: str) -> Optional[Order]:
        for order in self.list():
            if order.steadfast_id == str(consignment_id):
                return order
        return None

    def create(self, order: Order) -> Order:
        return Order.from_row(self._store.insert_many(ORDERS_TABLE, [order.to_row()])[0])

    def update_status(
        self,
        order_id: str,
        status: OrderStatus,
        *,
        steadfast_id: Optional[str] = None,
        courier_status: Optional[str] = None,
    ) -> Order:
        values: Dict[str, Any] = {"status": OrderStatus(status).value}
        if steadfast_id is not None:
            values["steadfast_id"] = steadfast_id
        if courier_status is not None:
            values["courier_status"] = courier_status
        return Order.from_row(self._store.update(ORDERS_TABLE, order_id, values))

    def bulk_update_status(self, order_ids: Iterable[str], status: OrderStatus) -> List[Order]:
        """Manual admin override of several orders at once."""
        rows = self._store.update_many(ORDERS_TABLE, list(order_ids), {"status": OrderStatus(status).value})
        return [Order.from_row(row) for row in rows]


class ProductRepository:
    """Product catalog. Prices here are only read when an order is built."""

    def __init__(self, store: RecordStore) -> None:
        self._store = store

    def list(self) -> List[Product]:
        return sorted(
            (Product.from_row(row) for row in self._store.select_all(PRODUCTS_TABLE)),
            key=lambda product: product.name.lower(),
        )

    def get(self, product_ref: str) -> Product:
        """Find a product by id, falling back to its SKU."""

        products = self.list()
        for product in products:
            if product.id == str(product_ref):
                return product
        for product in products:
            if product.sku and product.sku == str(product_ref):
                return product
        raise RecordNotFoundError(f"Product '{product_ref}' was not found")

    def add(self, sku: str, name: str, price: float, stock: int = 0) -> Product:
        values = _validated_product_values(sku=sku, name=name, price=price, stock=stock)
        if any(product.sku == values["sku"] for product in self.list()):
            raise ValueError(f"A product with SKU '{values['sku']}' already exists")
        product = Product.from_row(self._store.insert_many(PRODUCTS_TABLE, [values])[0])
        LOGGER.info("Added product %s (%s)", product.id, product.sku)
        return product

    def update(self, product_id: str, **values: Any) -> Product:
        """Change any of ``sku``, ``name``, ``price`` and ``stock``.

        Orders already placed keep the price they were created with.
        """

        changes = _validated_product_values(**{key: value for key, value in values.items() if value is not None})
        if not changes:
            raise ValueError("Nothing to update")
        return Product.from_row(self._store.update(PRODUCTS_TABLE, product_id, changes))

    def delete(self, product_id: str) -> None:
        self._store.delete(PRODUCTS_TABLE, product_id)
        LOGGER.info("Deleted product %s", product_id)


_PRODUCT_FIELDS = ("sku", "name", "price", "stock")


def _validated_product_values(**values: Any) -> Dict[str, Any]:
    unknown = set(values) - set(_PRODUCT_FIELDS)
    if unknown:
        raise ValueError(f"Unknown product fields: {', '.join(sorted(unknown))}")

    cleaned: Dict[str, Any] = {}
    for key in ("sku", "name"):
        if key in values:
            text = str(values[key] or "").strip()
            if not text:
                raise ValueError(f"Product {key} is required")
            cleaned[key] = text
    if "price" in values:
        price = float(values["price"])
        if price < 0:
            raise ValueError("Product price cannot be negative")
        cleaned["price"] = price
    if "stock" in values:
        stock = int(values["stock"])
        if stock < 0:
            raise ValueError("Product stock cannot be negative")
        cleaned["stock"] = stock
    return cleaned


class ModeratorRepository:
    """Roster of moderators that leads can be assigned to."""

    def __init__(self, store: RecordStore) -> None:
        self._store = store

    def list(self, *, active_only: bool = False) -> List[Moderator]:
        moderators = [Moderator.from_row(row) for row in self._store.select_all(MODERATORS_TABLE)]
        return [moderator for moderator in moderators if moderator.is_active or not active_only]

    def get(self, moderator_id: str) -> Moderator:
        for moderator in self.list():
            if moderator.id == str(moderator_id):
                return moderator
        raise RecordNotFoundError(f"Moderator '{moderator_id}' was not found")

    def add(self, name: str, email: str = "") -> Moderator:
        name = (name or "").strip()
        if not name:
            raise ValueError("Moderator name is required")
        row = self._store.insert_many(
            MODERATORS_TABLE, [{"name": name, "email": (email or "").strip(), "is_active": True}]
        )[0]
        return Moderator.from_row(row)

    def set_active(self, moderator_id: str, active: bool) -> Moderator:
        return Moderator.from_row(self._store.update(MODERATORS_TABLE, moderator_id, {"is_active": bool(active)}))

    def delete(self, moderator_id: str) -> None:
        self._store.delete(MODERATORS_TABLE, moderator_id)


__all__ = ["LeadRepository", "ModeratorRepository", "OrderRepository", "ProductRepository"]
