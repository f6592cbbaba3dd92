"""
Error taxonomy for the order enrichment subsystem.

Storage errors degrade to no-op/None results at the queue and cache seams.
External API errors drive retry/backoff in the worker and propagate from the
synchronous lookup service, except for rate limiting which is handled as
"no data yet".
"""


class OrderdeskError(Exception):
    """Base class for all orderdesk errors."""


class StorageError(OrderdeskError):
    """Queue or cache datastore is unreachable or rejected the operation."""


class ExternalApiError(OrderdeskError):
    """General failure talking to the external order API."""

    def __init__(self, message: str, status_code: int | None = None):
        super().__init__(message)
        self.status_code = status_code


class RateLimitError(ExternalApiError):
    """The external order API signalled that we are over its request budget."""

    def __init__(self, message: str = "RATE_LIMIT: Too many requests to order API"):
        super().__init__(message, status_code=429)


class PayloadValidationError(OrderdeskError):
    """A job payload is missing fields required to process it."""
