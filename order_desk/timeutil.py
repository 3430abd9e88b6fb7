"""Clock and timestamp helpers shared by the reconciliation and storage layers."""
from __future__ import annotations

from datetime import date, datetime, timezone
from typing import Any, Callable, Optional

Clock = Callable[[], datetime]

_SECONDS_PER_DAY = 24 * 60 * 60


def utc_now() -> datetime:
    """Default wall clock. Always timezone aware."""

    return datetime.now(timezone.utc)


def parse_timestamp(value: Any) -> Optional[datetime]:
    """Parse an ISO-8601 timestamp (``Z`` suffix allowed) into an aware datetime."""

    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        parsed = value
    elif isinstance(value, date):
        parsed = datetime(value.year, value.month, value.day)
    else:
        text = str(value).strip()
        if text.endswith("Z"):
            text = f"{text[:-1]}+00:00"
        parsed = datetime.fromisoformat(text)
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def parse_date(value: Any) -> Optional[date]:
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    return date.fromisoformat(str(value).strip()[:10])


def format_timestamp(value: datetime) -> str:
    return value.astimezone(timezone.utc).isoformat()


def whole_days_between(earlier: datetime, now: datetime) -> int:
    """Floor of the elapsed time in days, negative when ``earlier`` is in the future."""

    return int((now - earlier).total_seconds() // _SECONDS_PER_DAY)


__all__ = [
    "Clock",
    "utc_now",
    "parse_timestamp",
    "parse_date",
    "format_timestamp",
    "whole_days_between",
]
