"""Bulk hand-off of selected contacts to a moderator."""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import date
from typing import Any, Dict, Iterable, List

from .models import Contact, Lead, LeadStatus
from .repository import LeadRepository

LOGGER = logging.getLogger(__name__)


class AssignmentError(ValueError):
    """Raised when a bulk assignment request is incomplete."""


@dataclass
class AssignmentResult:
    updated_ids: List[str] = field(default_factory=list)
    created: List[Lead] = field(default_factory=list)

    @property
    def total(self) -> int:
        return len(self.updated_ids) + len(self.created)


def _new_lead_row(contact: Contact, moderator_id: str, assigned_date: date) -> Dict[str, Any]:
    return {
        "phone_number": contact.phone,
        "customer_name": contact.name,
        "address": contact.address,
        "moderator_id": moderator_id,
        "status": LeadStatus.PENDING.value,
        "assigned_date": assigned_date.isoformat(),
    }


def bulk_assign(
    contacts: Iterable[Contact],
    moderator_id: str,
    assigned_date: date,
    repository: LeadRepository,
) -> AssignmentResult:
    """Assign ``contacts`` to ``moderator_id`` for outreach on ``assigned_date``.

    Contacts that already reference a lead have that lead reassigned and its
    status reset to ``pending``; the others get a new pending lead. The split
    happens up front so each write path is issued at most once.
    """

    selected = list(contacts)
    if not selected:
        raise AssignmentError("Select at least one contact to assign")
    moderator_id = str(moderator_id or "").strip()
    if not moderator_id:
        raise AssignmentError("A moderator is required for assignment")

    existing_ids = [contact.lead_id for contact in selected if contact.lead_id]
    new_rows = [
        _new_lead_row(contact, moderator_id, assigned_date)
        for contact in selected
        if not contact.lead_id
    ]

    result = AssignmentResult()
    if existing_ids:
        repository.reassign(existing_ids, moderator_id, assigned_date)
        result.updated_ids = existing_ids
    if new_rows:
        result.created = repository.insert_many(new_rows)

    LOGGER.info(
        "Assigned %s contacts to moderator %s (%s reassigned, %s new)",
        result.total,
        moderator_id,
        len(result.updated_ids),
        len(result.created),
    )
    return result


__all__ = ["AssignmentError", "AssignmentResult", "bulk_assign"]
