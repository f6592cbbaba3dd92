"""
Clients for external services.
"""

from orderdesk.clients.order_api import (
    ExternalOrderClient,
    HttpOrderClient,
    clean_email,
    extract_order_number,
)

__all__ = [
    "ExternalOrderClient",
    "HttpOrderClient",
    "clean_email",
    "extract_order_number",
]
