"""Export utilities for the reconciled contact list."""
from __future__ import annotations

from pathlib import Path
from typing import Any, Callable, Dict, MutableMapping, Optional, Sequence, Union

import pandas as pd

from ..models import Contact

PathLike = Union[str, Path]

CONTACT_COLUMNS = [
    "phone",
    "name",
    "address",
    "lead_id",
    "moderator_id",
    "status",
    "last_call_date",
    "days_since_call",
    "last_order_date",
    "days_since_order",
    "total_orders",
]


def _to_delimited(sep: str) -> Callable[..., None]:
    def write(dataframe: pd.DataFrame, path: Path, *, sheet_name: str, **kwargs: Any) -> None:
        kwargs.setdefault("sep", sep)
        dataframe.to_csv(path, index=False, **kwargs)

    return write


def _to_workbook(dataframe: pd.DataFrame, path: Path, *, sheet_name: str, **kwargs: Any) -> None:
    kwargs.setdefault("engine", "openpyxl")
    dataframe.to_excel(path, index=False, sheet_name=sheet_name, **kwargs)


_WRITERS: Dict[str, Callable[..., None]] = {
    ".csv": _to_delimited(","),
    ".tsv": _to_delimited("\t"),
    ".xlsx": _to_workbook,
}


def contacts_to_dataframe(contacts: Sequence[Contact]) -> pd.DataFrame:
    """Convert contacts into a :class:`pandas.DataFrame` with a fixed column order."""

    return pd.DataFrame([contact.as_row() for contact in contacts], columns=CONTACT_COLUMNS)


def export_contacts(
    contacts: Sequence[Contact],
    path: PathLike,
    *,
    sheet_name: str = "Contacts",
    exporter_kwargs: Optional[MutableMapping[str, Any]] = None,
) -> Path:
    """Write the contact projection to a CSV, TSV or Excel file.

    The format follows the file suffix; anything other than ``.csv``,
    ``.tsv`` or ``.xlsx`` raises :class:`ValueError` before a file is created.
    """

    destination = Path(path)
    writer = _WRITERS.get(destination.suffix.lower())
    if writer is None:
        raise ValueError(f"Unsupported export file extension: {destination.suffix}")

    destination.parent.mkdir(parents=True, exist_ok=True)
    writer(contacts_to_dataframe(contacts), destination, sheet_name=sheet_name, **dict(exporter_kwargs or {}))
    return destination


__all__ = ["CONTACT_COLUMNS", "contacts_to_dataframe", "export_contacts"]
