"""
External order API client.

The enrichment code depends only on the ExternalOrderClient protocol.
HttpOrderClient is a thin GraphQL-over-HTTP implementation; token issuing and
refresh are delegated to a token provider callable.
"""

import logging
import re
from typing import Any, Callable, Protocol

import requests

from orderdesk.config import OrderApiSettings
from orderdesk.errors import ExternalApiError, RateLimitError

logger = logging.getLogger(__name__)

GET_ORDER_BY_NUMBER_QUERY = """
  query GetOrder($orderNumber: String!) {
    listOrder(orderNumber: { eq: $orderNumber }, pagination: { page: 1, limit: 1 }) {
      data {
        id
        orderNumber
        status
        customer { email firstName lastName }
        totalPrice
        netTotalFinalPrice
        shippingLines { price title }
        currencyCode
        orderedAt
        orderLineItems {
          id quantity price unitPrice finalPrice finalUnitPrice
          variant { name }
        }
        orderPackages {
          trackingInfo { trackingNumber trackingLink cargoCompany }
          orderPackageFulfillStatus
        }
      }
    }
  }
"""

GET_ORDERS_BY_EMAIL_QUERY = """
  query GetOrdersByEmail($limit: Int!, $emailQuery: String!) {
    orders(first: $limit, query: $emailQuery) {
      edges {
        node {
          id
          orderNumber
          status
          customer { email name }
          totalPrice
          currency
          createdAt
          lineItems { id name quantity price }
        }
      }
    }
  }
"""

# Order number formats seen in customer mails, most specific first
ORDER_NUMBER_PATTERNS = [
    re.compile(r"#(\d{4,})", re.IGNORECASE),  # #12345
    re.compile(r"(\d{4,})\s*numaralı\s*sipariş", re.IGNORECASE),  # 12345 numaralı sipariş
    re.compile(r"sipariş\s*(?:no|numarası)?:?\s*#?(\d{4,})", re.IGNORECASE),  # sipariş no: 12345
    re.compile(r"(\d{4,})\s*(?:nolu|numaralı)\s*order", re.IGNORECASE),  # 12345 nolu order
    re.compile(r"order\s*(?:no|number)?:?\s*#?(\d{4,})", re.IGNORECASE),  # order no: 12345
]


def extract_order_number(text: str | None) -> str | None:
    """
    Find an order number in free text.

    Args:
        text: Mail subject/body or any other free text

    Returns:
        Order number digits, or None if none is found
    """
    if not text:
        return None

    for pattern in ORDER_NUMBER_PATTERNS:
        match = pattern.search(text)
        if match:
            return match.group(1)

    return None


def clean_email(email: str) -> str:
    """Strip a display name: 'Jane <jane@example.com>' -> 'jane@example.com'."""
    if "<" in email:
        return email.split("<", 1)[1].split(">", 1)[0].strip()
    return email.strip()


class ExternalOrderClient(Protocol):
    """Lookup operations the enrichment code needs from the order API."""

    def get_order_by_number(self, order_number: str) -> dict[str, Any] | None:
        """Return the raw order, or None if no such order exists."""
        ...

    def get_orders_by_email(self, email: str, limit: int = 10) -> list[dict[str, Any]]:
        """Return the customer's raw orders, most recent first."""
        ...


class HttpOrderClient:
    """
    GraphQL client for the order API.

    Raises RateLimitError on HTTP 429 and ExternalApiError on any other
    transport, HTTP or GraphQL failure.
    """

    def __init__(
        self,
        settings: OrderApiSettings,
        token_provider: Callable[[], str] | None = None,
        session: requests.Session | None = None,
    ):
        self.settings = settings
        self._token_provider = token_provider or self._static_token
        self._session = session or requests.Session()

    def _static_token(self) -> str:
        if not self.settings.access_token:
            raise ExternalApiError("Order API access token not configured")
        return self.settings.access_token

    def _query(self, query: str, variables: dict[str, Any]) -> dict[str, Any]:
        headers = {
            "Content-Type": "application/json",
            "Authorization": f"Bearer {self._token_provider()}",
        }

        try:
            response = self._session.post(
                self.settings.graphql_url,
                json={"query": query, "variables": variables},
                headers=headers,
                timeout=self.settings.timeout_seconds,
            )
        except requests.RequestException as e:
            raise ExternalApiError(f"Order API request failed: {e}") from e

        if response.status_code == 429:
            raise RateLimitError()

        if not response.ok:
            raise ExternalApiError(
                f"Order API GraphQL failed: {response.status_code} {response.text}",
                status_code=response.status_code,
            )

        try:
            result = response.json()
        except ValueError as e:
            raise ExternalApiError(f"Order API returned invalid JSON: {e}") from e

        if result.get("errors"):
            raise ExternalApiError(f"Order API GraphQL errors: {result['errors']}")

        return result.get("data") or {}

    def get_order_by_number(self, order_number: str) -> dict[str, Any] | None:
        logger.info("Order API: querying order by number %s", order_number)
        data = self._query(GET_ORDER_BY_NUMBER_QUERY, {"orderNumber": order_number})

        orders = (data.get("listOrder") or {}).get("data") or []
        if not orders:
            logger.info("Order API: order not found: %s", order_number)
            return None

        return orders[0]

    def get_orders_by_email(self, email: str, limit: int = 10) -> list[dict[str, Any]]:
        email = clean_email(email)
        logger.info("Order API: querying orders by email %s (limit=%s)", email, limit)
        data = self._query(
            GET_ORDERS_BY_EMAIL_QUERY,
            {"limit": limit, "emailQuery": f"email:{email}"},
        )

        edges = (data.get("orders") or {}).get("edges") or []
        return [edge["node"] for edge in edges if edge.get("node")]
