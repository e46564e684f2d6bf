"""Read-only view of a subscription's upcoming billing attempts."""
from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import List

from pydantic import BaseModel, ConfigDict

from ..provider import SubscriptionProvider

SCHEDULE_LENGTH = 4


class ScheduledCharge(BaseModel):
    date: datetime
    amount: str

    model_config = ConfigDict(frozen=True)


@dataclass
class BillingScheduleView:
    """First billing attempts in provider order, priced from the primary line item."""

    provider: SubscriptionProvider

    def schedule(self, subscription_id: str) -> List[ScheduledCharge]:
        detail = self.provider.get_subscription_detail(subscription_id)
        amount = detail.primary_item.amount if detail.primary_item else ""
        return [
            ScheduledCharge(date=attempt.date, amount=amount)
            for attempt in detail.billing_attempts[:SCHEDULE_LENGTH]
        ]


__all__ = ["BillingScheduleView", "SCHEDULE_LENGTH", "ScheduledCharge"]
