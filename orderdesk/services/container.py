"""
Service wiring.

All services are constructed once per process from explicit settings and
handed to request handlers through FastAPI dependencies.
"""

from dataclasses import dataclass
from typing import Callable

from orderdesk.cache.durable import OrderCache
from orderdesk.clients.order_api import ExternalOrderClient, HttpOrderClient
from orderdesk.config import Settings
from orderdesk.db.unit_of_work import UnitOfWork
from orderdesk.queue.store import JobStore
from orderdesk.services.order_lookup import OrderLookupService, build_order_lookup_service
from orderdesk.worker.enrichment import EnrichmentWorker


@dataclass
class Services:
    """Process-wide service instances."""

    settings: Settings
    store: JobStore
    order_cache: OrderCache
    lookup: OrderLookupService
    worker: EnrichmentWorker


def build_services(
    settings: Settings,
    client: ExternalOrderClient | None = None,
    uow_factory: Callable[[], UnitOfWork] = UnitOfWork,
) -> Services:
    """
    Build every service from settings.

    Args:
        settings: Loaded settings
        client: Order API client (defaults to HttpOrderClient)
        uow_factory: UnitOfWork factory used by the queue and durable cache

    Returns:
        Services
    """
    client = client or HttpOrderClient(settings.order_api)
    store = JobStore(settings.queue, uow_factory=uow_factory)
    order_cache = OrderCache(settings.order_cache, uow_factory=uow_factory)

    return Services(
        settings=settings,
        store=store,
        order_cache=order_cache,
        lookup=build_order_lookup_service(settings, client),
        worker=EnrichmentWorker(store, client, order_cache, settings.worker),
    )
