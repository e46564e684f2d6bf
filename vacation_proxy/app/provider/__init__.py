"""Subscription provider integration: payload models and HTTP client."""

from .client import SealProviderClient, SubscriptionProvider
from .models import (
    BillingAttempt,
    ItemProperty,
    LineItem,
    SubscriptionDetail,
    SubscriptionSummary,
    format_amount,
    parse_provider_datetime,
)

__all__ = [
    "BillingAttempt",
    "ItemProperty",
    "LineItem",
    "SealProviderClient",
    "SubscriptionDetail",
    "SubscriptionProvider",
    "SubscriptionSummary",
    "format_amount",
    "parse_provider_datetime",
]
