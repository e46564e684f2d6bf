"""Normalized enrollment view built from live provider data."""
from __future__ import annotations

from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field


class PreviousPayment(BaseModel):
    """A past-dated billing attempt re-priced from the current line item."""

    date: datetime
    amount: str
    status: str = "unknown"

    model_config = ConfigDict(frozen=True)


class Enrollment(BaseModel):
    """One subscription seen from the parent portal. Never persisted."""

    subscription_id: str
    child_first_name: str = ""
    child_last_name: str = ""
    external_child_id: str = ""
    program: str = ""
    payment_frequency: str = ""
    next_payment_date: Optional[datetime] = None
    next_payment_amount: str = ""
    parent_email: str
    previous_payments: List[PreviousPayment] = Field(default_factory=list)

    model_config = ConfigDict(frozen=True)
