"""Vacation request domain: models, persistence and admission."""

from .models import MAX_SHIFT_DAYS, AdmissionResult, VacationRequest, VacationRequestInput, ranges_overlap
from .repository import InMemoryVacationRepository, PostgresVacationRepository
from .schedule import BillingScheduleView, ScheduledCharge
from .service import (
    KeyedLock,
    VacationAdmissionService,
    VacationRepository,
    earliest_billing_attempt,
    shift_billing_attempts,
)

__all__ = [
    "MAX_SHIFT_DAYS",
    "AdmissionResult",
    "BillingScheduleView",
    "InMemoryVacationRepository",
    "KeyedLock",
    "PostgresVacationRepository",
    "ScheduledCharge",
    "VacationAdmissionService",
    "VacationRepository",
    "VacationRequest",
    "VacationRequestInput",
    "earliest_billing_attempt",
    "ranges_overlap",
    "shift_billing_attempts",
]
