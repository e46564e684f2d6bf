"""Pydantic models for payloads returned by the subscription provider."""
from __future__ import annotations

from datetime import datetime, timezone
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator


def parse_provider_datetime(value: object) -> datetime:
    """Parse a provider timestamp, treating naive values as UTC."""

    if isinstance(value, datetime):
        return value if value.tzinfo else value.replace(tzinfo=timezone.utc)
    if isinstance(value, str) and value.strip():
        parsed = datetime.fromisoformat(value.strip().replace("Z", "+00:00"))
        return parsed if parsed.tzinfo else parsed.replace(tzinfo=timezone.utc)
    raise ValueError(f"Unsupported datetime value: {value!r}")


def _optional_text(value: object) -> Optional[str]:
    if value is None:
        return None
    return str(value)


def format_amount(price: Optional[str]) -> str:
    """Render a line item price the way the storefront displays it."""

    return f"${price}" if price else ""


class ItemProperty(BaseModel):
    """One entry of a line item's key/value property bag."""

    key: str
    value: Optional[str] = None

    model_config = ConfigDict(extra="ignore")

    @field_validator("value", mode="before")
    @classmethod
    def _coerce_value(cls, value: object) -> Optional[str]:
        return _optional_text(value)


class LineItem(BaseModel):
    """Subscription line item; only the first one carries child details."""

    title: str = ""
    price: Optional[str] = None
    properties: List[ItemProperty] = Field(default_factory=list)

    model_config = ConfigDict(extra="allow")

    @field_validator("price", mode="before")
    @classmethod
    def _coerce_price(cls, value: object) -> Optional[str]:
        return _optional_text(value)

    @field_validator("title", mode="before")
    @classmethod
    def _blank_title(cls, value: object) -> str:
        return "" if value is None else str(value)

    @field_validator("properties", mode="before")
    @classmethod
    def _default_properties(cls, value: object) -> object:
        return value or []

    def get_property(self, key: str) -> str:
        """Return the first property value stored under ``key`` or ``""``."""

        for prop in self.properties:
            if prop.key == key:
                return prop.value or ""
        return ""

    @property
    def amount(self) -> str:
        return format_amount(self.price)


class BillingAttempt(BaseModel):
    """Provider-scheduled charge. Unknown fields are kept for pass-through."""

    id: str
    date: datetime
    status: Optional[str] = None

    model_config = ConfigDict(extra="allow")

    @field_validator("id", mode="before")
    @classmethod
    def _coerce_id(cls, value: object) -> str:
        return str(value)

    @field_validator("date", mode="before")
    @classmethod
    def _parse_date(cls, value: object) -> datetime:
        return parse_provider_datetime(value)

    def is_past(self, now: datetime) -> bool:
        return self.date < now


class SubscriptionSummary(BaseModel):
    """Entry of the provider's subscription search results."""

    id: str
    billing_interval: Optional[str] = None

    model_config = ConfigDict(extra="allow")

    @field_validator("id", mode="before")
    @classmethod
    def _coerce_id(cls, value: object) -> str:
        return str(value)

    @field_validator("billing_interval", mode="before")
    @classmethod
    def _coerce_interval(cls, value: object) -> Optional[str]:
        return _optional_text(value)


class SubscriptionDetail(BaseModel):
    """Full subscription record with line items and billing attempts."""

    id: str
    items: List[LineItem] = Field(default_factory=list)
    billing_attempts: List[BillingAttempt] = Field(default_factory=list)

    model_config = ConfigDict(extra="allow")

    @field_validator("id", mode="before")
    @classmethod
    def _coerce_id(cls, value: object) -> str:
        return str(value)

    @field_validator("items", "billing_attempts", mode="before")
    @classmethod
    def _default_list(cls, value: object) -> object:
        return value or []

    @property
    def primary_item(self) -> Optional[LineItem]:
        return self.items[0] if self.items else None

    def classify_attempts(self, now: datetime) -> tuple[List[BillingAttempt], List[BillingAttempt]]:
        """Split billing attempts into ``(past, upcoming)`` keeping provider order."""

        past: List[BillingAttempt] = []
        upcoming: List[BillingAttempt] = []
        for attempt in self.billing_attempts:
            (past if attempt.is_past(now) else upcoming).append(attempt)
        return past, upcoming


__all__ = [
    "BillingAttempt",
    "ItemProperty",
    "LineItem",
    "SubscriptionDetail",
    "SubscriptionSummary",
    "format_amount",
    "parse_provider_datetime",
]
