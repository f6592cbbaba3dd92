"""
Logging setup for the orderdesk API and worker services.

On Cloud Run, records go to Cloud Logging labelled with the service name and
`json_fields` become structured payload. Locally, records are written to
stdout with their json_fields as one sorted `key=value` line.

Levels:
    LOG_LEVEL   Root level (default INFO)
    LOG_LEVELS  Per-logger overrides, e.g. "orderdesk.queue=DEBUG,sqlalchemy.engine=INFO"

HTTP and database driver loggers are held at WARNING unless LOG_LEVELS names them.
"""

import json
import logging
import os
import sys
from typing import Any

from orderdesk.models.job import Job

NOISY_LOGGERS = (
    "urllib3",
    "requests",
    "sqlalchemy.engine",
    "google.auth",
    "google.cloud.sql.connector",
)

_logging_configured = False


class LocalFormatter(logging.Formatter):
    """Formatter that appends a record's json_fields as sorted key=value pairs."""

    def __init__(self, service_name: str):
        super().__init__(
            f"%(asctime)s {service_name} %(levelname)s %(name)s: %(message)s"
        )

    def format(self, record: logging.LogRecord) -> str:
        message = super().format(record)

        json_fields = getattr(record, "json_fields", None)
        if json_fields:
            pairs = " ".join(
                f"{key}={json.dumps(value, default=str, ensure_ascii=False)}"
                for key, value in sorted(json_fields.items())
            )
            message = f"{message}\n    {pairs}"

        return message


def job_fields(job: Job, **fields: Any) -> dict[str, Any]:
    """
    Build the `extra` argument that tags a log record with a job's identity.

    Example:
        logger.info("Processing job", extra=job_fields(job))
    """
    return {
        "json_fields": {
            "job_id": job.id,
            "job_type": str(job.job_type),
            "attempt": job.attempts,
            "max_attempts": job.max_attempts,
            **fields,
        }
    }


def parse_logger_levels(spec: str | None) -> dict[str, int]:
    """
    Parse a LOG_LEVELS value into logger names and levels.

    Raises:
        ValueError: If an entry is not `name=LEVEL` or names an unknown level
    """
    levels: dict[str, int] = {}
    for entry in (spec or "").split(","):
        entry = entry.strip()
        if not entry:
            continue
        name, sep, level_name = entry.partition("=")
        if not sep or not name.strip():
            raise ValueError(f"Invalid LOG_LEVELS entry: {entry!r}")
        levels[name.strip()] = _level(level_name)
    return levels


def setup_logging(service_name: str = "orderdesk"):
    """
    Configure logging once per process.

    Args:
        service_name: Name of the service for log identification
    """
    global _logging_configured

    if _logging_configured:
        return

    root_level = _level(os.getenv("LOG_LEVEL", "INFO"))
    overrides = parse_logger_levels(os.getenv("LOG_LEVELS"))

    if os.getenv("K_SERVICE"):
        _setup_cloud_logging(service_name, root_level)
    else:
        _setup_local_logging(service_name, root_level)

    for name in NOISY_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)
    for name, level in overrides.items():
        logging.getLogger(name).setLevel(level)

    _logging_configured = True


def _setup_cloud_logging(service_name: str, level: int):
    try:
        import google.cloud.logging

        client = google.cloud.logging.Client()
        client.setup_logging(log_level=level, labels={"service": service_name})

        logging.getLogger(__name__).info("Cloud Logging configured for %s", service_name)
    except Exception as e:
        # Credentials or metadata server missing; stdout still reaches Cloud Run logs
        _setup_local_logging(service_name, level)
        logging.getLogger(__name__).warning(
            "Failed to setup Cloud Logging, using local logging: %s", e
        )


def _setup_local_logging(service_name: str, level: int):
    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(LocalFormatter(service_name))

    root_logger = logging.getLogger()
    root_logger.setLevel(level)
    root_logger.addHandler(handler)


def _level(name: str) -> int:
    level = logging.getLevelName(name.strip().upper())
    if not isinstance(level, int):
        raise ValueError(f"Unknown log level: {name!r}")
    return level
