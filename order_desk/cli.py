"""Command line interface for the order desk."""
from __future__ import annotations

import argparse
import json
import logging
import sys
from datetime import date, timedelta
from pathlib import Path
from typing import Callable, Dict, List, Optional

from .assignment import AssignmentError, bulk_assign
from .config import ConfigurationError, Settings, load_settings
from .courier.client import CourierError
from .courier.webhook import parse_webhook
from .dispatch.service import AlreadyDispatched, DispatchError, DispatchResult, SimulatedDispatch
from .factory import build_coordinator, build_courier_client, build_store
from .ingestion import NoValidRowsError, export_contacts, import_leads
from .ingestion.loaders import UnsupportedFileTypeError
from .merge import build_contacts, filter_contacts, select_range
from .models import STATUS_ALL, STATUS_UNASSIGNED, Contact, ContactFilter, Lead, LeadStatus, OrderStatus
from .orders import ItemRequest, OrderValidationError, build_order, lookup_customer
from .repository import LeadRepository, ModeratorRepository, OrderRepository, ProductRepository
from .storage import RecordNotFoundError, RecordStore

LOGGER = logging.getLogger(__name__)

OPERATOR_ERRORS = (
    AssignmentError,
    ConfigurationError,
    CourierError,
    DispatchError,
    NoValidRowsError,
    OrderValidationError,
    RecordNotFoundError,
    UnsupportedFileTypeError,
    ValueError,
)

_STATUS_CHOICES = [STATUS_ALL, STATUS_UNASSIGNED] + [status.value for status in LeadStatus]


def _add_filter_arguments(parser: argparse.ArgumentParser) -> None:
    parser.add_argument("--search", default="", help="Only contacts whose phone contains this text")
    parser.add_argument("--status", choices=_STATUS_CHOICES, default=STATUS_ALL, help="Lead status filter")
    parser.add_argument("--min-days-call", type=int, default=None, help="Minimum days since the last call")
    parser.add_argument("--min-days-order", type=int, default=None, help="Minimum days since the last order")


def _parse_item(value: str) -> ItemRequest:
    product, _, quantity = value.rpartition(":")
    try:
        if not product:
            raise ValueError(value)
        return ItemRequest(product=product, quantity=int(quantity))
    except ValueError as exc:
        raise argparse.ArgumentTypeError(f"Items must look like PRODUCT:QTY, got '{value}'") from exc


def build_parser(prog: Optional[str] = None) -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog=prog, description="Manage leads, contacts and courier dispatch")
    parser.add_argument("--config", default=None, help="Path to the configuration file (YAML or JSON)")
    parser.add_argument("--log-level", default="INFO", help="Logging level (e.g. DEBUG, INFO, WARNING)")
    subparsers = parser.add_subparsers(dest="command", required=True)

    import_parser = subparsers.add_parser("import-leads", help="Create leads from a CSV or Excel file")
    import_parser.add_argument("input", help="Path to the spreadsheet (CSV, XLSX or XLS)")

    contacts_parser = subparsers.add_parser("contacts", help="List the reconciled contact list")
    _add_filter_arguments(contacts_parser)
    contacts_parser.add_argument("--output", default=None, help="Write the list to a CSV/TSV/XLSX file")

    assign_parser = subparsers.add_parser("assign", help="Assign filtered contacts to a moderator")
    _add_filter_arguments(assign_parser)
    assign_parser.add_argument("--moderator", required=True, help="Moderator id receiving the leads")
    assign_parser.add_argument(
        "--date", type=date.fromisoformat, default=None, help="Outreach date (YYYY-MM-DD), defaults to today"
    )
    assign_parser.add_argument(
        "--range", nargs=2, type=int, metavar=("START", "END"), default=None,
        help="1-based serial number range within the filtered list",
    )

    status_parser = subparsers.add_parser("lead-status", help="Record the outcome of a lead call")
    status_parser.add_argument("lead_id")
    status_parser.add_argument("status", choices=[status.value for status in LeadStatus])

    order_parser = subparsers.add_parser("create-order", help="Submit a new order")
    order_parser.add_argument("--name", required=True)
    order_parser.add_argument("--phone", required=True)
    order_parser.add_argument("--address", required=True)
    order_parser.add_argument("--region", choices=["inside", "outside"], default="inside")
    order_parser.add_argument("--item", dest="items", action="append", type=_parse_item, default=[],
                              help="PRODUCT:QTY where PRODUCT is a product id or SKU, repeatable")
    order_parser.add_argument("--advance", type=float, default=0.0)
    order_parser.add_argument("--discount", type=float, default=None)
    order_parser.add_argument("--notes", default=None)
    order_parser.add_argument("--moderator", default=None)

    order_status_parser = subparsers.add_parser("order-status", help="Manually set the status of orders")
    order_status_parser.add_argument("order_ids", nargs="+", metavar="ORDER_ID")
    order_status_parser.add_argument("status", choices=[status.value for status in OrderStatus])

    queue_parser = subparsers.add_parser("my-leads", help="Show a moderator's call queue")
    queue_parser.add_argument("--moderator", required=True, help="Moderator id")
    queue_parser.add_argument("--day", choices=["today", "tomorrow", "all"], default="today",
                              help="Assignment date to show (default: today)")

    product_add = subparsers.add_parser("product-add", help="Add a product to the catalog")
    product_add.add_argument("--sku", required=True)
    product_add.add_argument("--name", required=True)
    product_add.add_argument("--price", type=float, required=True)
    product_add.add_argument("--stock", type=int, default=0)

    subparsers.add_parser("product-list", help="List the product catalog")

    product_update = subparsers.add_parser("product-update", help="Change a catalog entry")
    product_update.add_argument("product_id")
    product_update.add_argument("--sku", default=None)
    product_update.add_argument("--name", default=None)
    product_update.add_argument("--price", type=float, default=None)
    product_update.add_argument("--stock", type=int, default=None)

    product_delete = subparsers.add_parser("product-delete", help="Remove a product from the catalog")
    product_delete.add_argument("product_id")

    moderator_add = subparsers.add_parser("moderator-add", help="Register a moderator")
    moderator_add.add_argument("--name", required=True)
    moderator_add.add_argument("--email", default="")

    moderator_list = subparsers.add_parser("moderator-list", help="List moderators")
    moderator_list.add_argument("--active", action="store_true", help="Only active moderators")

    moderator_status = subparsers.add_parser("moderator-status", help="Activate or deactivate a moderator")
    moderator_status.add_argument("moderator_id")
    moderator_status.add_argument("state", choices=["active", "inactive"])

    lookup_parser = subparsers.add_parser("lookup", help="Look up a returning customer by phone")
    lookup_parser.add_argument("phone")

    dispatch_parser = subparsers.add_parser("dispatch", help="Send orders to the courier")
    dispatch_parser.add_argument("order_ids", nargs="*", help="Orders to dispatch")
    dispatch_parser.add_argument("--all", action="store_true", help="Dispatch every order without a consignment")

    sync_parser = subparsers.add_parser("sync-status", help="Refresh an order's courier status")
    sync_parser.add_argument("order_id")

    webhook_parser = subparsers.add_parser("webhook", help="Apply a courier status notification (JSON file)")
    webhook_parser.add_argument("payload", help="Path to the notification JSON")

    subparsers.add_parser("check-courier", help="Verify the courier credentials")
    return parser


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    return build_parser().parse_args(argv)


def _contact_filter(args: argparse.Namespace) -> ContactFilter:
    return ContactFilter(
        search=args.search,
        status=args.status,
        min_days_since_call=args.min_days_call,
        min_days_since_order=args.min_days_order,
    )


def _filtered_contacts(store: RecordStore, args: argparse.Namespace) -> List[Contact]:
    contacts = build_contacts(LeadRepository(store).list(), OrderRepository(store).list())
    return filter_contacts(contacts, _contact_filter(args))


def _format_contact(index: int, contact: Contact) -> str:
    status = contact.current_status.value if contact.current_status else STATUS_UNASSIGNED
    call = f"{contact.days_since_call}d" if contact.days_since_call is not None else "-"
    order = f"{contact.days_since_order}d" if contact.days_since_order is not None else "-"
    return (
        f"{index:>4}  {contact.phone}  {contact.name:<24.24}  {status:<13}  "
        f"moderator={contact.moderator_id or '-'}  call={call}  order={order}  orders={contact.total_orders}"
    )


def _describe_dispatch(result: DispatchResult) -> str:
    order = result.order
    if isinstance(result, AlreadyDispatched):
        return f"{order.id}: already dispatched as {order.steadfast_id}; use sync-status instead"
    if isinstance(result, SimulatedDispatch):
        return (
            f"{order.id}: UNCONFIRMED placeholder {result.consignment_id} recorded - "
            f"courier could not be reached ({result.reason})"
        )
    return f"{order.id}: dispatched as consignment {order.steadfast_id} ({order.courier_status})"


def _cmd_import_leads(args: argparse.Namespace, settings: Settings, store: RecordStore) -> int:
    report = import_leads(args.input, LeadRepository(store))
    print(f"Imported {report.created_count} leads ({report.skipped} rows skipped)")
    return 0


def _cmd_contacts(args: argparse.Namespace, settings: Settings, store: RecordStore) -> int:
    contacts = _filtered_contacts(store, args)
    if args.output:
        destination = export_contacts(contacts, args.output)
        print(f"Wrote {len(contacts)} contacts to {destination.resolve()}")
        return 0
    for index, contact in enumerate(contacts, start=1):
        print(_format_contact(index, contact))
    print(f"{len(contacts)} contacts")
    return 0


def _cmd_assign(args: argparse.Namespace, settings: Settings, store: RecordStore) -> int:
    roster = ModeratorRepository(store).list()
    if roster and not any(moderator.id == args.moderator and moderator.is_active for moderator in roster):
        raise AssignmentError(f"Moderator '{args.moderator}' is not an active moderator")

    contacts = _filtered_contacts(store, args)
    if args.range:
        contacts = select_range(contacts, *args.range)
    result = bulk_assign(contacts, args.moderator, args.date or date.today(), LeadRepository(store))
    print(
        f"Assigned {result.total} leads to moderator {args.moderator} "
        f"({len(result.updated_ids)} reassigned, {len(result.created)} new)"
    )
    return 0


def _cmd_lead_status(args: argparse.Namespace, settings: Settings, store: RecordStore) -> int:
    lead = LeadRepository(store).update_status(args.lead_id, args.status)
    print(f"Lead {lead.id} is now {lead.status.value}")
    return 0


def _cmd_create_order(args: argparse.Namespace, settings: Settings, store: RecordStore) -> int:
    order = build_order(
        customer_name=args.name,
        customer_phone=args.phone,
        customer_address=args.address,
        items=args.items,
        products=ProductRepository(store).list(),
        delivery_region=args.region,
        advance_amount=args.advance,
        discount=args.discount,
        notes=args.notes,
        moderator_id=args.moderator,
        delivery_charges=settings.delivery_charges,
    )
    created = OrderRepository(store).create(order)
    print(f"Created order {created.id}, amount to collect {created.grand_total:.2f}")
    return 0


def _cmd_order_status(args: argparse.Namespace, settings: Settings, store: RecordStore) -> int:
    updated = OrderRepository(store).bulk_update_status(args.order_ids, OrderStatus(args.status))
    for order in updated:
        suffix = f" (consignment {order.steadfast_id})" if order.is_dispatched else ""
        print(f"{order.id}: status {order.status.value}{suffix}")
    return 0


_QUEUE_DAY_OFFSETS = {"today": 0, "tomorrow": 1}


def _format_queue_lead(index: int, lead: Lead) -> str:
    assigned = lead.assigned_date.isoformat() if lead.assigned_date else "-"
    return (
        f"{index:>4}  {lead.phone_number}  {(lead.customer_name or '-'):<24.24}  "
        f"{lead.status.value:<13}  assigned={assigned}  {lead.address or ''}"
    ).rstrip()


def _cmd_my_leads(args: argparse.Namespace, settings: Settings, store: RecordStore) -> int:
    assigned_on = None
    if args.day in _QUEUE_DAY_OFFSETS:
        assigned_on = date.today() + timedelta(days=_QUEUE_DAY_OFFSETS[args.day])
    leads = LeadRepository(store).for_moderator(args.moderator, assigned_on=assigned_on)
    for index, lead in enumerate(leads, start=1):
        print(_format_queue_lead(index, lead))
    pending = sum(1 for lead in leads if lead.status is LeadStatus.PENDING)
    print(f"{len(leads)} leads ({pending} pending)")
    return 0


def _cmd_product_add(args: argparse.Namespace, settings: Settings, store: RecordStore) -> int:
    product = ProductRepository(store).add(args.sku, args.name, args.price, args.stock)
    print(f"Added product {product.id}: {product.sku} {product.name} @ {product.price:.2f} ({product.stock} in stock)")
    return 0


def _cmd_product_list(args: argparse.Namespace, settings: Settings, store: RecordStore) -> int:
    products = ProductRepository(store).list()
    for product in products:
        print(f"{product.id:>4}  {product.sku:<12}  {product.name:<24.24}  {product.price:>10.2f}  stock={product.stock}")
    print(f"{len(products)} products")
    return 0


def _cmd_product_update(args: argparse.Namespace, settings: Settings, store: RecordStore) -> int:
    product = ProductRepository(store).update(
        args.product_id, sku=args.sku, name=args.name, price=args.price, stock=args.stock
    )
    print(f"Updated product {product.id}: {product.sku} {product.name} @ {product.price:.2f} ({product.stock} in stock)")
    return 0


def _cmd_product_delete(args: argparse.Namespace, settings: Settings, store: RecordStore) -> int:
    ProductRepository(store).delete(args.product_id)
    print(f"Deleted product {args.product_id}")
    return 0


def _cmd_moderator_add(args: argparse.Namespace, settings: Settings, store: RecordStore) -> int:
    moderator = ModeratorRepository(store).add(args.name, args.email)
    print(f"Added moderator {moderator.id}: {moderator.name}")
    return 0


def _cmd_moderator_list(args: argparse.Namespace, settings: Settings, store: RecordStore) -> int:
    moderators = ModeratorRepository(store).list(active_only=args.active)
    for moderator in moderators:
        state = "active" if moderator.is_active else "inactive"
        print(f"{moderator.id:>4}  {moderator.name:<24.24}  {moderator.email:<28.28}  {state}")
    print(f"{len(moderators)} moderators")
    return 0


def _cmd_moderator_status(args: argparse.Namespace, settings: Settings, store: RecordStore) -> int:
    moderator = ModeratorRepository(store).set_active(args.moderator_id, args.state == "active")
    print(f"Moderator {moderator.id} is now {args.state}")
    return 0


def _cmd_lookup(args: argparse.Namespace, settings: Settings, store: RecordStore) -> int:
    found = lookup_customer(args.phone, OrderRepository(store).list(), LeadRepository(store).list())
    if found.status == "none":
        print("No matching customer or lead")
        return 0
    print(
        f"{found.status}: {found.name or '-'} / {found.address or '-'}  orders={found.order_count}  "
        f"lifetime_value={found.lifetime_value:.2f}{'  VIP' if found.is_vip else ''}"
    )
    return 0


def _cmd_dispatch(args: argparse.Namespace, settings: Settings, store: RecordStore) -> int:
    orders = OrderRepository(store)
    coordinator = build_coordinator(settings, store)
    if args.all:
        targets = [order for order in orders.list() if not order.is_dispatched]
    elif args.order_ids:
        targets = [orders.get(order_id) for order_id in args.order_ids]
    else:
        raise DispatchError("Name at least one order or pass --all")

    if len(targets) == 1 and not args.all:
        print(_describe_dispatch(coordinator.dispatch(targets[0])))
        return 0

    report = coordinator.bulk_dispatch(targets)
    for result in report.results:
        print(_describe_dispatch(result))
    for order_id, message in report.failures.items():
        print(f"{order_id}: failed - {message}")
    print(f"Successfully dispatched {report.success_count} orders ({report.simulated_count} unconfirmed)")
    return 0


def _cmd_sync_status(args: argparse.Namespace, settings: Settings, store: RecordStore) -> int:
    coordinator = build_coordinator(settings, store)
    synced = coordinator.sync_status(OrderRepository(store).get(args.order_id))
    print(f"{synced.order.id}: courier reports '{synced.raw_status}' -> {synced.status.value}")
    return 0


def _cmd_webhook(args: argparse.Namespace, settings: Settings, store: RecordStore) -> int:
    payload = json.loads(Path(args.payload).read_text(encoding="utf-8"))
    update = parse_webhook(payload)
    if update is None:
        print("Ignored notification")
        return 0
    order = build_coordinator(settings, store).apply_status_update(update)
    print(f"{order.id}: status {order.status.value} ({order.courier_status})")
    return 0


def _cmd_check_courier(args: argparse.Namespace, settings: Settings, store: RecordStore) -> int:
    check = build_courier_client(settings).get_balance()
    print(check.message)
    return 0 if check.success else 1


_COMMANDS: Dict[str, Callable[[argparse.Namespace, Settings, RecordStore], int]] = {
    "import-leads": _cmd_import_leads,
    "contacts": _cmd_contacts,
    "assign": _cmd_assign,
    "lead-status": _cmd_lead_status,
    "create-order": _cmd_create_order,
    "order-status": _cmd_order_status,
    "my-leads": _cmd_my_leads,
    "product-add": _cmd_product_add,
    "product-list": _cmd_product_list,
    "product-update": _cmd_product_update,
    "product-delete": _cmd_product_delete,
    "moderator-add": _cmd_moderator_add,
    "moderator-list": _cmd_moderator_list,
    "moderator-status": _cmd_moderator_status,
    "lookup": _cmd_lookup,
    "dispatch": _cmd_dispatch,
    "sync-status": _cmd_sync_status,
    "webhook": _cmd_webhook,
    "check-courier": _cmd_check_courier,
}


def main(argv: list[str] | None = None) -> int:
    args = parse_args(argv)
    logging.basicConfig(level=getattr(logging, args.log_level.upper(), logging.INFO))

    try:
        settings = load_settings(args.config)
        store = build_store(settings)
        return _COMMANDS[args.command](args, settings, store)
    except OPERATOR_ERRORS as exc:
        print(f"error: {exc}", file=sys.stderr)
        return 1


if __name__ == "__main__":  # pragma: no cover - CLI entry point
    sys.exit(main())
