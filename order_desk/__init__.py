"""Order desk: lead reconciliation and courier dispatch for a small-business shop."""

from . import models  # noqa: F401
from .assignment import AssignmentResult, bulk_assign
from .dispatch import (
    AlreadyDispatched,
    BulkDispatchReport,
    ConfirmedDispatch,
    DispatchCoordinator,
    SimulatedDispatch,
)
from .merge import build_contacts, filter_contacts, select_range
from .models import (
    Contact,
    ContactFilter,
    Lead,
    LeadStatus,
    Moderator,
    Order,
    OrderItem,
    OrderStatus,
    Product,
    compute_grand_total,
)
from .phone import normalize_phone

__all__ = [
    "AlreadyDispatched",
    "AssignmentResult",
    "BulkDispatchReport",
    "ConfirmedDispatch",
    "Contact",
    "ContactFilter",
    "DispatchCoordinator",
    "Lead",
    "LeadStatus",
    "Moderator",
    "Order",
    "OrderItem",
    "OrderStatus",
    "Product",
    "SimulatedDispatch",
    "build_contacts",
    "bulk_assign",
    "compute_grand_total",
    "filter_contacts",
    "normalize_phone",
    "select_range",
    "courier",
    "ingestion",
]
