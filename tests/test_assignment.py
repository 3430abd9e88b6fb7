from __future__ import annotations

from datetime import date, timedelta
from typing import List

import pytest

from order_desk.assignment import AssignmentError, bulk_assign
from order_desk.merge import build_contacts
from order_desk.models import Contact, Lead, LeadStatus
from order_desk.repository import LeadRepository, OrderRepository
from order_desk.storage import InMemoryStore

ASSIGNED = date(2026, 10, 20)


class RecordingLeadRepository:
    def __init__(self) -> None:
        self.reassign_calls: List[tuple] = []
        self.insert_calls: List[list] = []

    def reassign(self, lead_ids, moderator_id, assigned_date):
        self.reassign_calls.append((list(lead_ids), moderator_id, assigned_date))
        return []

    def insert_many(self, rows):
        self.insert_calls.append(list(rows))
        return [Lead.from_row({**row, "id": str(index), "created_at": "2026-10-19T00:00:00Z"}) for index, row in enumerate(rows)]


def _contacts() -> List[Contact]:
    return [
        Contact(phone="01711000001", name="A", lead_id="1", moderator_id="3"),
        Contact(phone="01711000002", name="B", address="Uttara"),
        Contact(phone="01711000003", name="C", lead_id="2"),
        Contact(phone="01711000004", name="D"),
    ]


def test_bulk_assign_issues_one_write_per_path() -> None:
    repository = RecordingLeadRepository()

    result = bulk_assign(_contacts(), "9", ASSIGNED, repository)  # type: ignore[arg-type]

    assert repository.reassign_calls == [(["1", "2"], "9", ASSIGNED)]
    assert len(repository.insert_calls) == 1
    inserted = repository.insert_calls[0]
    assert [row["phone_number"] for row in inserted] == ["01711000002", "01711000004"]
    assert all(row["moderator_id"] == "9" and row["status"] == "pending" for row in inserted)
    assert inserted[0]["address"] == "Uttara"
    assert result.total == 4


def test_bulk_assign_skips_empty_paths() -> None:
    repository = RecordingLeadRepository()

    bulk_assign([Contact(phone="01711000002", name="B")], "9", ASSIGNED, repository)  # type: ignore[arg-type]

    assert repository.reassign_calls == []
    assert len(repository.insert_calls) == 1


@pytest.mark.parametrize(("contacts", "moderator"), [([], "9"), (None, ""), (None, "  ")])
def test_bulk_assign_rejects_incomplete_requests(contacts, moderator) -> None:
    repository = RecordingLeadRepository()
    selected = _contacts() if contacts is None else contacts

    with pytest.raises(AssignmentError):
        bulk_assign(selected, moderator, ASSIGNED, repository)  # type: ignore[arg-type]

    assert repository.reassign_calls == [] and repository.insert_calls == []


def test_bulk_assign_resets_status_and_creates_leads_for_order_only_contacts(now, clock) -> None:
    store = InMemoryStore(
        {
            "leads": [
                {
                    "id": "1",
                    "phone_number": "01711000001",
                    "moderator_id": "3",
                    "status": "confirmed",
                    "created_at": (now - timedelta(days=12)).isoformat(),
                }
            ],
            "orders": [
                {
                    "id": "ORD-1",
                    "customer_name": "Order Only",
                    "customer_phone": "01811000000",
                    "customer_address": "Khulna",
                    "status": "delivered",
                    "created_at": (now - timedelta(days=40)).isoformat(),
                }
            ],
        },
        clock=clock,
    )
    leads = LeadRepository(store)
    contacts = build_contacts(leads.list(), OrderRepository(store).list(), clock=clock)

    result = bulk_assign(contacts, "9", ASSIGNED, leads)

    assert result.updated_ids == ["1"]
    assert [lead.phone_number for lead in result.created] == ["01811000000"]

    refreshed = {lead.phone_number: lead for lead in leads.list()}
    assert refreshed["01711000001"].status is LeadStatus.PENDING
    assert refreshed["01711000001"].moderator_id == "9"
    assert refreshed["01711000001"].assigned_date == ASSIGNED
    assert refreshed["01811000000"].customer_name == "Order Only"
    assert refreshed["01811000000"].moderator_id == "9"
