"""API schemas for the portal-facing endpoints."""
from __future__ import annotations

from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field

from ..enrollments import Enrollment
from ..errors import PersistenceError
from ..vacations import AdmissionResult, ScheduledCharge, VacationRequest


class EnrollmentListResponse(BaseModel):
    success: bool = True
    enrollments: List[Enrollment] = Field(default_factory=list)


class VacationListResponse(BaseModel):
    success: bool = True
    vacations: List[VacationRequest] = Field(default_factory=list)


class BillingScheduleResponse(BaseModel):
    success: bool = True
    billing_attempts: List[ScheduledCharge] = Field(default_factory=list)


class UpdatedBillingAttempts(BaseModel):
    billing_attempts: List[Dict[str, Any]] = Field(default_factory=list)


class VacationSubmissionResponse(BaseModel):
    success: bool = True
    id: int
    vacation: VacationRequest
    updated: UpdatedBillingAttempts

    @classmethod
    def from_result(cls, result: AdmissionResult) -> "VacationSubmissionResponse":
        if result.vacation.id is None:
            raise PersistenceError("Stored vacation request has no id")
        return cls(
            id=result.vacation.id,
            vacation=result.vacation,
            updated=UpdatedBillingAttempts(billing_attempts=result.billing_attempts),
        )


class RescheduleRequest(BaseModel):
    billing_attempt_id: Optional[str] = None
    subscription_id: Optional[str] = None
    date: Optional[str] = None
    time: Optional[str] = None
    timezone: Optional[str] = None

    model_config = ConfigDict(coerce_numbers_to_str=True)

    def missing_fields(self) -> List[str]:
        return [
            name
            for name in ("billing_attempt_id", "subscription_id", "date", "time", "timezone")
            if not (getattr(self, name) or "").strip()
        ]


class RescheduleResponse(BaseModel):
    success: bool = True
    result: Dict[str, Any] = Field(default_factory=dict)


class HealthResponse(BaseModel):
    success: bool = True
    status: str = "ok"


__all__ = [
    "BillingScheduleResponse",
    "EnrollmentListResponse",
    "HealthResponse",
    "RescheduleRequest",
    "RescheduleResponse",
    "UpdatedBillingAttempts",
    "VacationListResponse",
    "VacationSubmissionResponse",
]
