"""Application factory for the FastAPI app.

Centralizes app construction (metadata, middleware, handlers, routers) and
the lifespan of the long-lived resources: the credential store, the upstream
HTTP client and the daily quota reset job.
"""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import AsyncIterator

from fastapi import FastAPI

from app.adapters.search.factory import create_search_client
from app.adapters.storage.json_store import JsonCredentialStore
from app.api.routes import credentials_router, health_router, search_router
from app.core.config import settings
from app.core.exception_handlers import setup_exception_handlers
from app.core.logging import configure_logging
from app.core.middleware import request_id_middleware
from app.core.openapi import apply_openapi_customizations
from app.services.aggregation_service import AggregationService
from app.services.credential_service import CredentialService
from app.services.quota_reset import QuotaResetJob

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Open the store and client on startup; flush and release them on shutdown."""

    store = JsonCredentialStore.from_settings(settings.store)
    client = create_search_client()

    app.state.credential_store = store
    app.state.aggregation_service = AggregationService(
        store,
        client,
        page_size=settings.search.page_size,
        rotation_mode=settings.search.rotation_mode,
        serialize_calls=settings.search.serialize_calls,
    )
    app.state.credential_service = CredentialService(
        store,
        default_quota=settings.store.default_quota,
    )

    reset_job: QuotaResetJob | None = None
    if settings.reset.enabled:
        reset_job = QuotaResetJob(
            store,
            quota=settings.store.default_quota,
            hour=settings.reset.hour_utc,
            minute=settings.reset.minute_utc,
        )
        reset_job.start()

    logger.info(
        "app.started",
        extra={"store_path": settings.store.path, "rotation_mode": settings.search.rotation_mode},
    )
    try:
        yield
    finally:
        if reset_job is not None:
            await reset_job.stop()
        await client.aclose()
        store.close()
        logger.info("app.stopped")


def create_app() -> FastAPI:
    """Create and configure the FastAPI application instance."""

    # Logging first so subsequent init logs are formatted as desired
    configure_logging(settings.log)

    app = FastAPI(
        title="Search Aggregator API",
        description=(
            "Aggregates results of a paginated search API across a pool of "
            "quota-limited credentials. Results are deduplicated by site and "
            "returned in first-seen order; per-credential quota is tracked "
            "durably and reset daily."
        ),
        version="0.1.0",
        lifespan=lifespan,
    )

    app.middleware("http")(request_id_middleware)

    setup_exception_handlers(app)

    app.include_router(search_router, prefix="/v1")
    app.include_router(credentials_router, prefix="/v1")
    app.include_router(health_router)

    apply_openapi_customizations(app)

    return app
