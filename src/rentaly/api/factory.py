"""FastAPI application factory.

Wires the core explicitly: one store, one registry and one notifier are built
here (from settings unless passed in) and shared through app.state. Nothing
in the core reaches for a process-wide singleton.
"""

from __future__ import annotations

from datetime import datetime
from typing import Callable

from fastapi import FastAPI, Request, Response

from rentaly.api.errors import rentaly_error_handler
from rentaly.api.routes import health, reservations, resources
from rentaly.domain.admission import AdmissionController
from rentaly.domain.errors import RentalyError
from rentaly.domain.lifecycle import StatusLifecycleManager
from rentaly.domain.reservations import ReservationStore
from rentaly.domain.resources import ResourceRegistry
from rentaly.infra.notifications import (
    CompositeNotifier,
    LoggingNotifier,
    ReservationNotifier,
    WebhookNotifier,
)
from rentaly.infra.repositories.reservations_repository import (
    InMemoryReservationStore,
    PostgresReservationStore,
)
from rentaly.infra.repositories.resources_repository import (
    InMemoryResourceRegistry,
    PostgresResourceRegistry,
)
from rentaly.infra.settings import Settings, load_settings
from rentaly.infra.time import utc_now
from rentaly.observability.correlation import (
    CORRELATION_ID_HEADER,
    generate_correlation_id,
    reset_correlation_id,
    set_correlation_id,
)
from rentaly.operations.seed_resources import load_resources_file


def build_backends(settings: Settings) -> tuple[ReservationStore, ResourceRegistry]:
    if settings.store_backend == "postgres":
        return PostgresReservationStore(), PostgresResourceRegistry()
    resources = load_resources_file(settings.resources_file) if settings.resources_file else []
    return InMemoryReservationStore(), InMemoryResourceRegistry(resources)


def build_notifier(settings: Settings) -> ReservationNotifier:
    notifiers: list[ReservationNotifier] = [LoggingNotifier()]
    if settings.notify_webhook_url:
        notifiers.append(
            WebhookNotifier(settings.notify_webhook_url, timeout=settings.notify_timeout)
        )
    if len(notifiers) == 1:
        return notifiers[0]
    return CompositeNotifier(notifiers)


def create_app(
    settings: Settings | None = None,
    *,
    store: ReservationStore | None = None,
    registry: ResourceRegistry | None = None,
    notifier: ReservationNotifier | None = None,
    clock: Callable[[], datetime] = utc_now,
) -> FastAPI:
    """Create the FastAPI app.

    Args:
        settings: Explicit settings. If None, read from the environment.
        store: Reservation store override (tests, embedding).
        registry: Resource registry override.
        notifier: Post-commit notifier override.
        clock: Current-time source for admission checks.

    Returns:
        Configured FastAPI application.
    """
    if settings is None:
        settings = load_settings()

    if store is None or registry is None:
        default_store, default_registry = build_backends(settings)
        if store is None:
            store = default_store
        if registry is None:
            registry = default_registry
    if notifier is None:
        notifier = build_notifier(settings)

    app = FastAPI(
        title="Rentaly",
        docs_url=None,
        redoc_url=None,
    )

    app.state.settings = settings
    app.state.store = store
    app.state.registry = registry
    app.state.admission = AdmissionController(
        store, registry, notifier=notifier, clock=clock
    )
    app.state.lifecycle = StatusLifecycleManager(store, notifier=notifier)

    @app.middleware("http")
    async def correlation_id_middleware(request: Request, call_next) -> Response:
        cid = request.headers.get(CORRELATION_ID_HEADER) or generate_correlation_id()
        token = set_correlation_id(cid)
        try:
            response = await call_next(request)
            response.headers[CORRELATION_ID_HEADER] = cid
            return response
        finally:
            reset_correlation_id(token)

    app.add_exception_handler(RentalyError, rentaly_error_handler)

    app.include_router(health.router)
    app.include_router(resources.router)
    app.include_router(reservations.router)

    return app
