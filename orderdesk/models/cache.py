from datetime import datetime
from typing import Any, Generic, TypeVar

from pydantic import BaseModel, Field, model_validator

ValueT = TypeVar("ValueT")


class CacheEntry(BaseModel, Generic[ValueT]):
    """
    Cached value with freshness bounds.

    An entry is valid while now < expires_at.
    """

    key: str = Field(description="Cache key")
    value: ValueT = Field(description="Cached value")
    fetched_at: datetime = Field(description="When the value was stored")
    expires_at: datetime = Field(description="When the value goes stale")

    @model_validator(mode="after")
    def _check_expiry(self):
        if self.expires_at <= self.fetched_at:
            raise ValueError("expires_at must be later than fetched_at")
        return self

    def is_valid(self, now: datetime) -> bool:
        return now < self.expires_at


class OrderSnapshot(BaseModel):
    """Raw order payload resolved for a correlation id"""

    order_number: str = Field(description="Resolved order number")
    order_data: dict[str, Any] = Field(
        default_factory=dict, description="Raw order API payload"
    )
