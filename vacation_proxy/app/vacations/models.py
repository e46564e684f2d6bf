"""Domain models for vacation requests."""
from __future__ import annotations

from datetime import date, datetime
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

MAX_SHIFT_DAYS = 3650


def ranges_overlap(a_start: date, a_end: date, b_start: date, b_end: date) -> bool:
    """Inclusive ranges ``[a_start, a_end]`` and ``[b_start, b_end]`` share a day."""

    return a_start <= b_end and b_start <= a_end


class VacationRequestInput(BaseModel):
    """Unvalidated submission as received from the portal."""

    customer_id: Optional[str] = None
    child_name: Optional[str] = None
    from_date: Optional[date] = None
    to_date: Optional[date] = None
    shift_days: Optional[int] = None
    reason: Optional[str] = None
    subscription_id: Optional[str] = None
    billing_attempt_id: Optional[str] = None

    model_config = ConfigDict(populate_by_name=True)

    @field_validator("customer_id", "subscription_id", "billing_attempt_id", mode="before")
    @classmethod
    def _coerce_identifier(cls, value: object) -> Optional[str]:
        if value is None:
            return None
        return str(value)


class VacationRequest(BaseModel):
    """Persisted vacation request. Immutable once stored."""

    id: Optional[int] = None
    customer_id: str
    child_name: str
    from_date: date
    to_date: date
    shift_days: int = Field(gt=0, le=MAX_SHIFT_DAYS)
    reason: Optional[str] = None
    subscription_id: str
    billing_attempt_id: str
    created_at: Optional[datetime] = None

    model_config = ConfigDict(populate_by_name=True, frozen=True)

    def overlaps(self, from_date: date, to_date: date) -> bool:
        return ranges_overlap(self.from_date, self.to_date, from_date, to_date)


class AdmissionResult(BaseModel):
    """Stored request plus the subscription's billing attempts after the shift."""

    vacation: VacationRequest
    billing_attempts: List[Dict[str, Any]] = Field(default_factory=list)

    model_config = ConfigDict(frozen=True)


__all__ = ["MAX_SHIFT_DAYS", "AdmissionResult", "VacationRequest", "VacationRequestInput", "ranges_overlap"]
