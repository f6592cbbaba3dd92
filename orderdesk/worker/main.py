"""
Orderdesk worker service.

Runs enrichment batches and queue housekeeping when a scheduler (Cloud
Scheduler, cron or a manual call) hits the /tasks endpoints. The process
starts without a database if none is configured; /health then reports it
as degraded.
"""

import logging
from contextlib import asynccontextmanager

from dotenv import load_dotenv
from fastapi import FastAPI, Request

from orderdesk.config import load_settings
from orderdesk.db import DatabaseConnection
from orderdesk.services.container import build_services
from orderdesk.utils.logging import setup_logging

load_dotenv()
setup_logging("orderdesk-worker")

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    db_initialized = DatabaseConnection.initialize_from_env()
    settings = load_settings()
    app.state.services = build_services(settings)

    logger.info(
        "Worker ready",
        extra={
            "json_fields": {
                "database": db_initialized,
                "worker_policy": settings.worker.model_dump(),
            }
        },
    )

    yield

    app.state.services = None
    if db_initialized:
        DatabaseConnection.close()
    logger.info("Worker stopped")


app = FastAPI(
    title="Orderdesk Worker API",
    description="Scheduler-triggered order enrichment and queue maintenance",
    version="0.1.0",
    lifespan=lifespan,
)


@app.get("/")
async def root():
    return {
        "service": "Orderdesk Worker API",
        "version": "0.1.0",
        "status": "operational",
        "tasks": ["/tasks/process-queue", "/tasks/queue-stats", "/tasks/housekeeping"],
    }


@app.get("/health")
async def health_check(request: Request):
    """
    Report whether the worker can drain the queue.

    The status is "degraded" while the database is unavailable and
    worker_state is "running" while a batch is in progress.
    """
    services = getattr(request.app.state, "services", None)
    database = DatabaseConnection.is_initialized()

    return {
        "status": "healthy" if database and services is not None else "degraded",
        "service": "orderdesk-worker",
        "database": database,
        "worker_state": str(services.worker.state) if services is not None else None,
    }


from orderdesk.worker.routes import tasks

app.include_router(tasks.router, prefix="/tasks", tags=["tasks"])
