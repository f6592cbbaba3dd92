"""
Orderdesk API - Main FastAPI Application.

Serves interactive order lookups and accepts background enrichment requests.
"""

import asyncio
import logging
import os
from contextlib import asynccontextmanager, suppress

from dotenv import load_dotenv
from fastapi import FastAPI

from orderdesk.config import load_settings
from orderdesk.db import DatabaseConnection
from orderdesk.services.container import Services, build_services
from orderdesk.utils.logging import setup_logging

# Load environment variables
load_dotenv()

# Configure logging early
setup_logging("orderdesk-api")

logger = logging.getLogger(__name__)

LOCAL_CACHE_SWEEP_INTERVAL_SECONDS = float(
    os.getenv("LOCAL_CACHE_SWEEP_INTERVAL_SECONDS", "60")
)


async def _sweep_local_cache(services: Services, interval: float):
    """Periodically drop expired entries from the process-local order cache."""
    while True:
        await asyncio.sleep(interval)
        swept = services.lookup.sweep_cache()
        if swept:
            logger.info("Swept %s expired local cache entries", swept)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Lifespan context manager for startup and shutdown events."""
    db_initialized = DatabaseConnection.initialize_from_env()

    services = build_services(load_settings())
    app.state.services = services
    sweeper = asyncio.create_task(
        _sweep_local_cache(services, LOCAL_CACHE_SWEEP_INTERVAL_SECONDS)
    )
    logger.info("Orderdesk API started (database: %s)", db_initialized)

    yield

    sweeper.cancel()
    with suppress(asyncio.CancelledError):
        await sweeper
    app.state.services = None

    if db_initialized:
        DatabaseConnection.close()
    logger.info("Orderdesk API stopped")


# OpenAPI tag descriptions (shown in /docs and /openapi.json)
OPENAPI_TAGS = [
    {
        "name": "orders",
        "description": "Order lookup and background enrichment endpoints",
    },
    {
        "name": "system",
        "description": "System health and information endpoints",
    },
]

# Create FastAPI application
app = FastAPI(
    title="Orderdesk API",
    description=(
        "Order lookups for the customer-service desk.\n\n"
        "Interactive lookups by order number are cached per process; background "
        "enrichment requests are queued and their results served from the shared order cache."
    ),
    version="0.1.0",
    lifespan=lifespan,
    openapi_tags=OPENAPI_TAGS,
)


@app.get("/", tags=["system"], operation_id="getServiceInfo")
async def root():
    """Return basic information about the API service."""
    return {
        "service": "Orderdesk API",
        "version": "0.1.0",
        "status": "operational",
        "description": "Order lookup and enrichment for customer service",
    }


@app.get("/health", tags=["system"], operation_id="healthCheck")
async def health_check():
    """Check service health status (used by Cloud Run monitoring)."""
    return {
        "status": "healthy",
        "service": "orderdesk-api",
        "environment": os.getenv("GOOGLE_CLOUD_PROJECT", "local"),
    }


# Import and include routers
from orderdesk.api.routes import orders

app.include_router(orders.router, prefix="/api/v1", tags=["orders"])
