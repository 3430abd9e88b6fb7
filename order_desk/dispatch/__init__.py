"""Courier dispatch workflow for confirmed orders."""

from .service import (
    AlreadyDispatched,
    BulkDispatchReport,
    ConfirmedDispatch,
    DispatchCoordinator,
    DispatchError,
    DispatchResult,
    SimulatedDispatch,
    StatusSync,
)

__all__ = [
    "AlreadyDispatched",
    "BulkDispatchReport",
    "ConfirmedDispatch",
    "DispatchCoordinator",
    "DispatchError",
    "DispatchResult",
    "SimulatedDispatch",
    "StatusSync",
]
