"""Reconcile leads and order history into one contact per phone number."""
from __future__ import annotations

import logging
from datetime import datetime
from typing import Dict, Iterable, List, Optional, Sequence

from .models import STATUS_ALL, STATUS_UNASSIGNED, Contact, ContactFilter, Lead, LeadStatus, Order
from .phone import normalize_phone
from .timeutil import Clock, utc_now, whole_days_between

LOGGER = logging.getLogger(__name__)

DEFAULT_CONTACT_NAME = "Prospect"


def _merge_lead(contacts: Dict[str, Contact], lead: Lead, now: datetime) -> None:
    phone = normalize_phone(lead.phone_number)
    if not phone:
        LOGGER.debug("Skipping lead %s with unusable phone %r", lead.id, lead.phone_number)
        return

    if phone in contacts:
        # An earlier (newer) lead already owns assignment and status.
        return

    call_date = lead.created_at if lead.status is not LeadStatus.PENDING else None
    contacts[phone] = Contact(
        phone=phone,
        name=lead.customer_name or DEFAULT_CONTACT_NAME,
        address=lead.address or "",
        lead_id=lead.id,
        moderator_id=lead.moderator_id,
        current_status=lead.status,
        last_call_date=call_date,
        days_since_call=whole_days_between(call_date, now) if call_date else None,
    )


def _merge_order(contacts: Dict[str, Contact], order: Order, now: datetime) -> None:
    phone = normalize_phone(order.customer_phone)
    if not phone:
        LOGGER.debug("Skipping order %s with unusable phone %r", order.id, order.customer_phone)
        return

    existing = contacts.get(phone)
    if existing is None:
        contacts[phone] = Contact(
            phone=phone,
            name=order.customer_name,
            address=order.customer_address,
            last_order_date=order.created_at,
            days_since_order=whole_days_between(order.created_at, now),
            total_orders=1,
        )
        return

    existing.total_orders += 1
    if existing.last_order_date is None or order.created_at > existing.last_order_date:
        existing.last_order_date = order.created_at
        existing.days_since_order = whole_days_between(order.created_at, now)


def build_contacts(
    leads: Iterable[Lead],
    orders: Iterable[Order],
    *,
    clock: Clock = utc_now,
) -> List[Contact]:
    """Merge leads and orders into contacts keyed by normalised phone.

    Leads must be supplied newest first (the order storage returns them in):
    the first lead seen for a phone number supplies the contact's moderator,
    status and lead reference. Across orders the chronologically latest one
    sets the last-order date regardless of iteration order.
    """

    now = clock()
    contacts: Dict[str, Contact] = {}

    for lead in leads:
        _merge_lead(contacts, lead, now)
    for order in orders:
        _merge_order(contacts, order, now)

    return list(contacts.values())


def _matches(contact: Contact, contact_filter: ContactFilter) -> bool:
    if contact_filter.search and contact_filter.search not in contact.phone:
        return False

    if contact_filter.status == STATUS_UNASSIGNED:
        if not contact.is_unassigned:
            return False
    elif contact_filter.status != STATUS_ALL:
        if contact.current_status is None or contact.current_status.value != contact_filter.status:
            return False

    if contact_filter.min_days_since_call is not None:
        if contact.days_since_call is None or contact.days_since_call < contact_filter.min_days_since_call:
            return False

    if contact_filter.min_days_since_order is not None:
        if contact.days_since_order is None or contact.days_since_order < contact_filter.min_days_since_order:
            return False

    return True


def _activity_sort_key(contact: Contact) -> tuple:
    activity = contact.last_activity
    if activity is None:
        return (1, 0.0)
    return (0, -activity.timestamp())


def filter_contacts(
    contacts: Iterable[Contact],
    contact_filter: Optional[ContactFilter] = None,
) -> List[Contact]:
    """Apply ``contact_filter`` and sort the most recently active contacts first."""

    contact_filter = contact_filter or ContactFilter()
    matched = [contact for contact in contacts if _matches(contact, contact_filter)]
    matched.sort(key=_activity_sort_key)
    return matched


def select_range(contacts: Sequence[Contact], start: int, end: int) -> List[Contact]:
    """Select contacts by 1-based inclusive serial numbers."""

    if start < 1 or end < start:
        raise ValueError(f"Invalid selection range {start}-{end}")
    return list(contacts[start - 1 : end])


__all__ = ["DEFAULT_CONTACT_NAME", "build_contacts", "filter_contacts", "select_range"]
