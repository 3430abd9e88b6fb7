"""Bulk lead import from uploaded spreadsheets and export of the contact list."""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Iterable, List, Mapping

from ..merge import DEFAULT_CONTACT_NAME
from ..models import Lead, LeadStatus
from ..phone import normalize_phone
from ..repository import LeadRepository
from .exporters import export_contacts
from .loaders import UnsupportedFileTypeError, extract_field, load_lead_rows

LOGGER = logging.getLogger(__name__)


class NoValidRowsError(ValueError):
    """Raised when an uploaded file contains no row with a usable phone number."""


@dataclass
class ImportReport:
    created: List[Lead] = field(default_factory=list)
    skipped: int = 0

    @property
    def created_count(self) -> int:
        return len(self.created)


def rows_to_lead_rows(rows: Iterable[Mapping[str, Any]]) -> tuple[List[Dict[str, Any]], int]:
    """Map uploaded rows to unassigned pending lead rows.

    Returns the lead rows and the number of rows dropped because their phone
    number could not be normalised.
    """

    lead_rows: List[Dict[str, Any]] = []
    skipped = 0
    for row in rows:
        phone = normalize_phone(extract_field(row, "phone"))
        if not phone:
            skipped += 1
            continue
        lead_rows.append(
            {
                "phone_number": phone,
                "customer_name": extract_field(row, "name") or DEFAULT_CONTACT_NAME,
                "address": extract_field(row, "address") or "",
                "moderator_id": None,
                "status": LeadStatus.PENDING.value,
                "assigned_date": None,
            }
        )
    return lead_rows, skipped


def import_leads(path: str | Path, repository: LeadRepository) -> ImportReport:
    """Create one pending, unassigned lead per valid row of ``path``."""

    rows = load_lead_rows(path)
    lead_rows, skipped = rows_to_lead_rows(rows)
    if not lead_rows:
        raise NoValidRowsError(
            f"No valid rows found in '{Path(path).name}'. Make sure the sheet has a 'Phone' "
            "or 'Recipient Phone' header."
        )

    created = repository.insert_many(lead_rows)
    LOGGER.info("Imported %s leads from %s (%s rows skipped)", len(created), path, skipped)
    return ImportReport(created=created, skipped=skipped)


__all__ = [
    "ImportReport",
    "NoValidRowsError",
    "UnsupportedFileTypeError",
    "export_contacts",
    "import_leads",
    "load_lead_rows",
    "rows_to_lead_rows",
]
