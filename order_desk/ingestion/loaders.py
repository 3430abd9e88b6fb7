"""Utilities for loading lead rows from uploaded spreadsheets."""
from __future__ import annotations

from pathlib import Path
from typing import Any, Dict, Iterable, List, Mapping, MutableMapping, Optional, Sequence, Union

import pandas as pd

PathLike = Union[str, Path]

_FIELD_SYNONYMS: Mapping[str, Sequence[str]] = {
    "phone": ("phone", "mobile", "number", "contact", "recipientphone", "customerphone", "phone_number"),
    "name": ("name", "customer", "customername", "fullname", "recipientname", "receivername"),
    "address": ("address", "location", "fulladdress", "recipientaddress", "receiveraddress"),
}

_CSV_SUFFIXES = {".csv"}
_EXCEL_SUFFIXES = {".xlsx", ".xls"}


class UnsupportedFileTypeError(ValueError):
    """Raised when an unsupported file format is passed to the loader."""


def load_lead_rows(
    path: PathLike,
    *,
    loader_kwargs: Optional[MutableMapping[str, Any]] = None,
) -> List[Dict[str, Any]]:
    """Load raw rows from a CSV or Excel file, one dict per non-blank row.

    Excel workbooks are read from their first sheet only. Every value is read
    as text so phone numbers keep their leading zeros.
    """

    dataframe = _read_dataframe(path, loader_kwargs=loader_kwargs)
    rows: List[Dict[str, Any]] = []
    for _, row in dataframe.iterrows():
        if _row_is_empty(row):
            continue
        rows.append({str(column): row[column] for column in dataframe.columns})
    return rows


def _read_dataframe(
    path: PathLike,
    *,
    loader_kwargs: Optional[MutableMapping[str, Any]] = None,
) -> pd.DataFrame:
    loader_kwargs = dict(loader_kwargs or {})
    loader_kwargs.setdefault("dtype", str)
    path_obj = Path(path)
    suffix = path_obj.suffix.lower()

    if suffix in _CSV_SUFFIXES:
        return pd.read_csv(path_obj, **loader_kwargs)

    if suffix in _EXCEL_SUFFIXES:
        engine = loader_kwargs.pop("engine", None)
        if engine is None and suffix == ".xlsx":
            engine = "openpyxl"
        return pd.read_excel(path_obj, sheet_name=0, engine=engine, **loader_kwargs)

    raise UnsupportedFileTypeError(f"Unsupported file extension: {path_obj.suffix}")


def _row_is_empty(row: pd.Series) -> bool:
    return all(pd.isna(value) or (isinstance(value, str) and not value.strip()) for value in row.values)


def normalize_header(value: Any) -> str:
    """Lower-case a header and drop whitespace and underscores."""

    return "".join(char for char in str(value).lower() if not char.isspace() and char != "_")


def find_value(row: Mapping[str, Any], synonyms: Iterable[str]) -> Optional[str]:
    """Return the first non-empty value whose header matches one of ``synonyms``.

    Synonyms are tried in order, so an earlier synonym wins over a later one
    even when the later column comes first in the file.
    """

    columns = {normalize_header(column): column for column in reversed(list(row.keys()))}
    for synonym in synonyms:
        column = columns.get(normalize_header(synonym))
        if column is None:
            continue
        text = _clean_text(row[column])
        if text is not None:
            return text
    return None


def extract_field(row: Mapping[str, Any], field: str) -> Optional[str]:
    return find_value(row, _FIELD_SYNONYMS[field])


def _clean_text(value: Any) -> Optional[str]:
    if value is None:
        return None
    if not isinstance(value, str) and pd.isna(value):
        return None
    if isinstance(value, str):
        stripped = value.strip()
        return stripped or None
    text = str(value).strip()
    return text or None


__all__ = [
    "UnsupportedFileTypeError",
    "load_lead_rows",
    "normalize_header",
    "find_value",
    "extract_field",
]
