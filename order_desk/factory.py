"""Factory helpers for constructing collaborators from settings."""
from __future__ import annotations

import logging
from typing import Optional

from .config import Settings
from .courier.client import SteadfastClient
from .dispatch.service import CourierProtocol, DispatchCoordinator
from .rate_limit import RateLimiter
from .repository import OrderRepository
from .storage import InMemoryStore, JsonFileStore, RecordStore

LOGGER = logging.getLogger(__name__)


def build_store(settings: Settings) -> RecordStore:
    if settings.storage_path is None:
        LOGGER.warning("No storage.path configured - records will not be persisted")
        return InMemoryStore()
    return JsonFileStore(settings.storage_path)


def build_courier_client(settings: Settings) -> SteadfastClient:
    courier = settings.courier
    return SteadfastClient(
        courier.api_key,
        courier.secret_key,
        base_url=courier.base_url,
        timeout=courier.timeout_seconds,
        rate_limiter=RateLimiter(courier.rate_limit_per_minute),
    )


def build_coordinator(
    settings: Settings,
    store: RecordStore,
    courier: Optional[CourierProtocol] = None,
) -> DispatchCoordinator:
    return DispatchCoordinator(
        courier or build_courier_client(settings),
        OrderRepository(store),
        allow_simulated_dispatch=settings.dispatch.allow_simulated,
        default_note=settings.courier.default_note,
        concurrent=settings.dispatch.concurrent,
        max_workers=settings.dispatch.max_workers,
    )


__all__ = ["build_coordinator", "build_courier_client", "build_store"]
