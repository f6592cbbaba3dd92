from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field

DEFAULT_CURRENCY = "TRY"
DEFAULT_ITEM_NAME = "Ürün"
DEFAULT_TRACKING_NUMBER = "Henüz atanmadı"
DEFAULT_CARRIER = "Kargo şirketi"
DEFAULT_PACKAGE_STATUS = "Hazırlanıyor"


class OrderItem(BaseModel):
    """Single line item of an order"""

    model_config = ConfigDict(frozen=True)

    id: Optional[str] = Field(default=None, description="Line item identifier")
    name: str = Field(description="Product/variant name")
    quantity: int = Field(default=1, description="Quantity ordered")
    price: float = Field(default=0, description="Unit price")


class ShippingInfo(BaseModel):
    """Shipping/tracking details of the first package"""

    model_config = ConfigDict(frozen=True)

    tracking_number: Optional[str] = Field(default=None, description="Carrier tracking number")
    tracking_url: Optional[str] = Field(default=None, description="Tracking link")
    carrier: Optional[str] = Field(default=None, description="Cargo company")
    status: Optional[str] = Field(default=None, description="Package fulfillment status")


class Order(BaseModel):
    """
    Order as seen by the customer-service application.

    Immutable: built only by map_raw_order() from an order API payload and
    replaced wholesale on re-fetch.
    """

    model_config = ConfigDict(frozen=True)

    id: str = Field(description="Order API identifier")
    order_number: str = Field(description="Customer-facing order number")
    status: Optional[str] = Field(default=None, description="Order status")
    customer_name: str = Field(default="", description="Customer display name")
    customer_email: str = Field(default="", description="Customer email")
    total_price: float = Field(default=0, description="Final order total")
    shipping_price: float = Field(default=0, description="Sum of shipping lines")
    currency: str = Field(default=DEFAULT_CURRENCY, description="ISO 4217 currency code")
    ordered_at: Optional[str] = Field(default=None, description="Order timestamp (as sent)")
    items: tuple[OrderItem, ...] = Field(default=(), description="Ordered line items")
    shipping: Optional[ShippingInfo] = Field(default=None, description="Shipping info")


def _as_text(value: Any) -> str:
    return "" if value is None else str(value)


def _customer_name(customer: dict[str, Any]) -> str:
    first = customer.get("firstName")
    last = customer.get("lastName")
    if first and last:
        return f"{first} {last}"
    return first or last or customer.get("name") or ""


def _item_price(item: dict[str, Any]) -> float:
    for key in ("finalUnitPrice", "unitPrice", "finalPrice", "price"):
        if item.get(key):
            return item[key]
    return 0


def _map_item(item: dict[str, Any]) -> OrderItem:
    variant = item.get("variant") or {}
    return OrderItem(
        id=item.get("id"),
        name=variant.get("name") or item.get("name") or DEFAULT_ITEM_NAME,
        quantity=item.get("quantity") or 1,
        price=_item_price(item),
    )


def _map_shipping(packages: list[dict[str, Any]] | None) -> ShippingInfo | None:
    if not packages:
        return None
    package = packages[0]
    tracking = package.get("trackingInfo") or {}
    return ShippingInfo(
        tracking_number=tracking.get("trackingNumber") or DEFAULT_TRACKING_NUMBER,
        tracking_url=tracking.get("trackingLink"),
        carrier=tracking.get("cargoCompany") or DEFAULT_CARRIER,
        status=package.get("orderPackageFulfillStatus") or DEFAULT_PACKAGE_STATUS,
    )


def map_raw_order(raw: dict[str, Any]) -> Order:
    """
    Map a raw order API payload to an Order.

    Pure function: handles both the by-number shape (orderLineItems,
    currencyCode, orderedAt) and the by-email shape (lineItems, currency,
    createdAt).

    Args:
        raw: Order payload as returned by the order API client

    Returns:
        Order
    """
    customer = raw.get("customer") or {}
    shipping_lines = raw.get("shippingLines") or []
    line_items = raw.get("orderLineItems") or raw.get("lineItems") or []

    return Order(
        id=_as_text(raw.get("id")),
        order_number=_as_text(raw.get("orderNumber")),
        status=raw.get("status"),
        customer_name=_customer_name(customer),
        customer_email=customer.get("email") or "",
        total_price=raw.get("netTotalFinalPrice") or raw.get("totalPrice") or 0,
        shipping_price=sum(line.get("price") or 0 for line in shipping_lines),
        currency=raw.get("currencyCode") or raw.get("currency") or DEFAULT_CURRENCY,
        ordered_at=raw.get("orderedAt") or raw.get("createdAt"),
        items=tuple(_map_item(item) for item in line_items),
        shipping=_map_shipping(raw.get("orderPackages")),
    )
