"""Coordinator that hands orders to the courier and keeps their status in sync."""
from __future__ import annotations

import logging
import random
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from typing import Any, Callable, ClassVar, Dict, Iterable, List, Optional, Protocol

from ..courier.client import Consignment, CourierTransportError
from ..courier.status import map_courier_status
from ..courier.webhook import StatusUpdate
from ..models import Order, OrderStatus
from ..repository import OrderRepository
from ..storage import RecordNotFoundError

LOGGER = logging.getLogger(__name__)

DEFAULT_NOTE = "Order from order-desk"
SIMULATED_COURIER_STATUS = "pending"


class DispatchError(RuntimeError):
    """Raised when an order is not in a state the requested operation accepts."""


class CourierProtocol(Protocol):
    """Interface the coordinator needs from a courier client."""

    def create_order(self, payload: Dict[str, Any]) -> Consignment:  # pragma: no cover - runtime protocol
        """Create a consignment for the payload."""

    def get_status(self, consignment_id: str) -> str:  # pragma: no cover - runtime protocol
        """Return the raw delivery status of a consignment."""


def simulated_consignment_id() -> str:
    return f"SF-{random.randint(1_000_000, 9_999_999)}"


# --- Results ---

@dataclass
class DispatchResult:
    """Outcome of a single dispatch attempt."""

    order: Order

    authoritative: ClassVar[bool] = True
    dispatched: ClassVar[bool] = True


@dataclass
class ConfirmedDispatch(DispatchResult):
    """The courier accepted the order and returned a consignment."""

    consignment_id: str = ""
    courier_status: str = ""


@dataclass
class SimulatedDispatch(DispatchResult):
    """The courier could not be reached; a placeholder consignment was recorded.

    The order looks dispatched but nothing confirms the courier received it.
    """

    consignment_id: str = ""
    courier_status: str = SIMULATED_COURIER_STATUS
    reason: str = ""

    authoritative: ClassVar[bool] = False


@dataclass
class AlreadyDispatched(DispatchResult):
    """No request was made because the order already has a consignment."""

    dispatched: ClassVar[bool] = False


@dataclass
class StatusSync:
    order: Order
    raw_status: str
    status: OrderStatus


@dataclass
class BulkDispatchReport:
    results: List[DispatchResult] = field(default_factory=list)
    skipped: List[str] = field(default_factory=list)
    failures: Dict[str, str] = field(default_factory=dict)

    @property
    def success_count(self) -> int:
        return sum(1 for result in self.results if result.dispatched)

    @property
    def simulated_count(self) -> int:
        return sum(1 for result in self.results if isinstance(result, SimulatedDispatch))


# --- Coordinator ---

class DispatchCoordinator:
    """Moves orders into the courier pipeline.

    An order is dispatched at most once: :meth:`dispatch` re-reads the stored
    order and makes no courier request when it already carries a consignment
    id. A transport failure, where the courier may or may not have received
    the request, is recorded as a :class:`SimulatedDispatch` unless
    ``allow_simulated_dispatch`` is off.
    """

    def __init__(
        self,
        courier: CourierProtocol,
        orders: OrderRepository,
        *,
        allow_simulated_dispatch: bool = True,
        default_note: str = DEFAULT_NOTE,
        concurrent: bool = False,
        max_workers: Optional[int] = None,
        placeholder_id_factory: Callable[[], str] = simulated_consignment_id,
    ) -> None:
        self._courier = courier
        self._orders = orders
        self._allow_simulated = allow_simulated_dispatch
        self._default_note = default_note
        self._concurrent = concurrent
        self._max_workers = max_workers
        self._placeholder_id_factory = placeholder_id_factory

    @property
    def allow_simulated_dispatch(self) -> bool:
        return self._allow_simulated

    def build_payload(self, order: Order) -> Dict[str, Any]:
        return {
            "invoice": order.id,
            "recipient_name": order.customer_name,
            "recipient_phone": order.customer_phone,
            "recipient_address": order.customer_address,
            "cod_amount": order.grand_total,
            "note": order.notes or self._default_note,
        }

    def dispatch(self, order: Order) -> DispatchResult:
        """Create a consignment for ``order`` and mark it confirmed."""

        current = self._orders.get(order.id)
        if current.is_dispatched:
            LOGGER.info("Order %s already has consignment %s; not dispatching", current.id, current.steadfast_id)
            return AlreadyDispatched(order=current)

        try:
            consignment = self._courier.create_order(self.build_payload(current))
        except CourierTransportError as exc:
            if not self._allow_simulated:
                raise
            return self._record_simulated(current, exc)

        updated = self._orders.update_status(
            current.id,
            OrderStatus.CONFIRMED,
            steadfast_id=consignment.consignment_id,
            courier_status=consignment.status,
        )
        LOGGER.info("Dispatched order %s as consignment %s", current.id, consignment.consignment_id)
        return ConfirmedDispatch(
            order=updated,
            consignment_id=consignment.consignment_id,
            courier_status=consignment.status,
        )

    def _record_simulated(self, order: Order, exc: CourierTransportError) -> SimulatedDispatch:
        placeholder = self._placeholder_id_factory()
        LOGGER.warning(
            "Courier unreachable for order %s (%s); recording unconfirmed placeholder consignment %s",
            order.id,
            exc,
            placeholder,
        )
        updated = self._orders.update_status(
            order.id,
            OrderStatus.CONFIRMED,
            steadfast_id=placeholder,
            courier_status=SIMULATED_COURIER_STATUS,
        )
        return SimulatedDispatch(order=updated, consignment_id=placeholder, reason=str(exc))

    def bulk_dispatch(self, orders: Iterable[Order]) -> BulkDispatchReport:
        """Dispatch every order that has no consignment yet.

        Failures are logged and collected per order; they never stop the
        batch and nothing already dispatched is rolled back.
        """

        report = BulkDispatchReport()
        pending: List[Order] = []
        seen: set = set()
        for order in orders:
            if order.id in seen:
                continue
            seen.add(order.id)
            if order.is_dispatched:
                LOGGER.debug("Skipping order %s, already dispatched", order.id)
                report.skipped.append(order.id)
                continue
            pending.append(order)

        if not self._concurrent or len(pending) <= 1:
            outcomes = [self._dispatch_collecting(order) for order in pending]
        else:
            with ThreadPoolExecutor(max_workers=self._max_workers) as executor:
                outcomes = list(executor.map(self._dispatch_collecting, pending))

        for order, outcome in zip(pending, outcomes):
            if isinstance(outcome, DispatchResult):
                if outcome.dispatched:
                    report.results.append(outcome)
                else:
                    report.skipped.append(order.id)
            else:
                report.failures[order.id] = outcome

        LOGGER.info(
            "Bulk dispatch finished: %s dispatched, %s skipped, %s failed",
            report.success_count,
            len(report.skipped),
            len(report.failures),
        )
        return report

    def _dispatch_collecting(self, order: Order) -> DispatchResult | str:
        try:
            return self.dispatch(order)
        except Exception as exc:
            LOGGER.exception("Failed to dispatch order %s", order.id)
            return str(exc)

    def sync_status(self, order: Order) -> StatusSync:
        """Pull the courier's status for an already dispatched order."""

        if not order.is_dispatched:
            raise DispatchError(f"Order {order.id} has not been dispatched yet")

        raw_status = self._courier.get_status(order.steadfast_id)  # type: ignore[arg-type]
        status = map_courier_status(raw_status)
        updated = self._orders.update_status(order.id, status, courier_status=raw_status)
        LOGGER.info("Order %s courier status %s -> %s", order.id, raw_status, status.value)
        return StatusSync(order=updated, raw_status=raw_status, status=status)

    def apply_status_update(self, update: StatusUpdate) -> Order:
        """Persist a status pushed by the courier's webhook."""

        order: Optional[Order] = None
        if update.invoice:
            try:
                order = self._orders.get(update.invoice)
            except RecordNotFoundError:
                order = None
        if order is None:
            order = self._orders.find_by_consignment(update.consignment_id)
        if order is None:
            raise DispatchError(
                f"No order matches consignment {update.consignment_id} (invoice {update.invoice})"
            )
        return self._orders.update_status(order.id, update.new_status, courier_status=update.raw_status)


__all__ = [
    "AlreadyDispatched",
    "BulkDispatchReport",
    "ConfirmedDispatch",
    "CourierProtocol",
    "DispatchCoordinator",
    "DispatchError",
    "DispatchResult",
    "SimulatedDispatch",
    "StatusSync",
    "simulated_consignment_id",
]
