from __future__ import annotations

import pytest

from order_desk.models import (
    STATUS_UNASSIGNED,
    ContactFilter,
    DeliveryRegion,
    Lead,
    LeadStatus,
    Moderator,
    Order,
    OrderItem,
    OrderStatus,
    Product,
    clean_moderator_id,
    compute_grand_total,
)


@pytest.mark.parametrize(
    ("total", "delivery", "advance", "discount"),
    [
        (1100.0, 130.0, 200.0, 30.0),
        (550.0, 70.0, 0.0, None),
        (550.0, 70.0, 1000.0, None),
        (0.0, 70.0, 0.0, 100.0),
        (2900.0, 130.0, 500.0, 0.0),
    ],
)
def test_grand_total_matches_invariant(total, delivery, advance, discount) -> None:
    expected = max(0.0, total + delivery - (discount or 0) - advance)

    assert compute_grand_total(total, delivery, advance, discount) == expected


def test_grand_total_is_floored_at_zero() -> None:
    assert compute_grand_total(100.0, 70.0, advance_amount=500.0) == 0.0


@pytest.mark.parametrize("value", [None, "", "null", "NULL", "  "])
def test_clean_moderator_id_treats_sentinels_as_absent(value) -> None:
    assert clean_moderator_id(value) is None


def test_clean_moderator_id_keeps_numeric_ids_as_text() -> None:
    assert clean_moderator_id(7) == "7"


def test_lead_from_row_normalises_absent_moderator(now) -> None:
    lead = Lead.from_row(
        {
            "id": 12,
            "phone_number": "01711000000",
            "customer_name": "",
            "moderator_id": "null",
            "status": "no-response",
            "assigned_date": "2026-10-01",
            "created_at": "2026-10-01T09:30:00Z",
        }
    )

    assert lead.id == "12"
    assert lead.moderator_id is None
    assert lead.customer_name is None
    assert lead.status is LeadStatus.NO_RESPONSE
    assert lead.assigned_date.isoformat() == "2026-10-01"
    assert lead.created_at.tzinfo is not None


def test_order_row_round_trip_keeps_items_and_courier_fields(now) -> None:
    order = Order(
        id="ORD-1",
        customer_name="Rahim",
        customer_phone="01711000000",
        customer_address="Dhaka",
        delivery_region=DeliveryRegion.INSIDE,
        delivery_charge=70.0,
        total_amount=1100.0,
        grand_total=1170.0,
        status=OrderStatus.CONFIRMED,
        created_at=now,
        items=[OrderItem("p1", 2, 550.0)],
        steadfast_id="SF-1",
    )

    row = order.to_row()
    assert isinstance(row["items"], str)

    restored = Order.from_row(row)
    assert restored.items == [OrderItem("p1", 2, 550.0)]
    assert restored.steadfast_id == "SF-1"
    assert restored.is_dispatched
    assert restored.created_at == now


def test_order_item_price_is_immutable() -> None:
    item = OrderItem("p1", 1, 550.0)

    with pytest.raises(AttributeError):
        item.price = 600.0  # type: ignore[misc]


def test_order_from_row_accepts_item_lists_with_camel_case_keys(now) -> None:
    order = Order.from_row(
        {
            "id": "ORD-2",
            "customer_name": "Karim",
            "customer_phone": "01811000000",
            "customer_address": "Chattogram",
            "delivery_region": "outside",
            "delivery_charge": "130",
            "items": [{"productId": "p3", "quantity": 1, "price": 650}],
            "total_amount": "650",
            "grand_total": "780",
            "status": "pending",
            "created_at": now.isoformat(),
            "steadfast_id": None,
        }
    )

    assert order.items == [OrderItem("p3", 1, 650.0)]
    assert not order.is_dispatched


def test_contact_filter_rejects_unknown_status() -> None:
    with pytest.raises(ValueError):
        ContactFilter(status="shipped")

    assert ContactFilter(status=LeadStatus.CONFIRMED).status == "confirmed"
    assert ContactFilter(status=STATUS_UNASSIGNED).status == "unassigned"


def test_catalog_and_roster_rows_fill_defaults() -> None:
    product = Product.from_row({"id": 5, "sku": "TSH-01", "name": "T-shirt", "price": "550"})
    moderator = Moderator.from_row({"id": "7", "name": "Rina"})

    assert (product.id, product.price, product.stock) == ("5", 550.0, 0)
    assert moderator.is_active
    assert Moderator.from_row({**moderator.to_row(), "is_active": False}).is_active is False
