"""Admission of vacation requests against provider data and stored history."""
from __future__ import annotations

import logging
from contextlib import contextmanager
from dataclasses import dataclass, field
from datetime import date, timedelta
from threading import Lock
from typing import Any, Dict, Hashable, Iterator, List, Optional, Protocol, Sequence

from ..errors import ProcessingError, TooLateError, ValidationError
from ..provider import BillingAttempt, SubscriptionDetail, SubscriptionProvider
from .models import MAX_SHIFT_DAYS, AdmissionResult, VacationRequest, VacationRequestInput
from .repository import overlap_error

logger = logging.getLogger(__name__)

REQUIRED_FIELDS = (
    "customer_id",
    "child_name",
    "from_date",
    "to_date",
    "shift_days",
    "subscription_id",
    "billing_attempt_id",
)


class VacationRepository(Protocol):
    """Persistence operations required by the admission service."""

    def find_overlapping(
        self,
        customer_id: str,
        child_name: str,
        from_date: date,
        to_date: date,
    ) -> Optional[VacationRequest]:
        ...

    def insert(self, request: VacationRequest) -> VacationRequest:
        ...

    def list_by_customer_and_child(self, customer_id: str, child_name: str) -> Sequence[VacationRequest]:
        ...


@dataclass
class _LockEntry:
    lock: Lock = field(default_factory=Lock)
    holders: int = 0


class KeyedLock:
    """Mutual exclusion per key; entries are dropped once nobody holds them."""

    def __init__(self) -> None:
        self._guard = Lock()
        self._entries: Dict[Hashable, _LockEntry] = {}

    @contextmanager
    def hold(self, key: Hashable) -> Iterator[None]:
        with self._guard:
            entry = self._entries.setdefault(key, _LockEntry())
            entry.holders += 1
        entry.lock.acquire()
        try:
            yield
        finally:
            entry.lock.release()
            with self._guard:
                entry.holders -= 1
                if entry.holders == 0:
                    self._entries.pop(key, None)

    def __len__(self) -> int:
        with self._guard:
            return len(self._entries)


def shift_billing_attempts(attempts: Sequence[BillingAttempt], shift_days: int) -> List[Dict[str, Any]]:
    """Move every attempt forward by ``shift_days`` calendar days.

    The addition happens in the attempt's own UTC offset, so the wall-clock
    time is kept and month ends roll over correctly.
    """

    shifted: List[Dict[str, Any]] = []
    for attempt in attempts:
        record = attempt.model_dump(mode="json")
        record["original_date"] = attempt.date.isoformat()
        record["date"] = (attempt.date + timedelta(days=shift_days)).isoformat()
        shifted.append(record)
    return shifted


def earliest_billing_attempt(detail: SubscriptionDetail) -> Optional[BillingAttempt]:
    """Return the attempt with the smallest date, ignoring provider order."""

    if not detail.billing_attempts:
        return None
    return min(detail.billing_attempts, key=lambda attempt: attempt.date)


@dataclass
class VacationAdmissionService:
    """Validates, stores and enriches vacation requests."""

    provider: SubscriptionProvider
    repository: VacationRepository
    locks: KeyedLock = field(default_factory=KeyedLock)

    def submit(self, request: VacationRequestInput) -> AdmissionResult:
        candidate = self._validate(request)

        detail = self.provider.get_subscription_detail(candidate.subscription_id)
        self._check_earliest_date(detail, candidate.from_date)

        with self.locks.hold((candidate.customer_id, candidate.child_name)):
            conflict = self.repository.find_overlapping(
                candidate.customer_id,
                candidate.child_name,
                candidate.from_date,
                candidate.to_date,
            )
            if conflict is not None:
                logger.info(
                    "Rejected overlapping vacation request",
                    extra={
                        "customer_id": candidate.customer_id,
                        "conflict_id": conflict.id,
                    },
                )
                raise overlap_error(conflict)
            stored = self.repository.insert(candidate)

        logger.info(
            "Vacation request stored",
            extra={
                "vacation_id": stored.id,
                "customer_id": stored.customer_id,
                "subscription_id": stored.subscription_id,
                "shift_days": stored.shift_days,
            },
        )

        try:
            refreshed = self.provider.get_subscription_detail(stored.subscription_id)
            billing_attempts = shift_billing_attempts(refreshed.billing_attempts, stored.shift_days)
        except Exception as exc:
            logger.error(
                "Billing attempt enrichment failed after insert",
                extra={"vacation_id": stored.id, "error": str(exc)},
            )
            raise ProcessingError(
                "Error processing subscription billing attempts",
                vacation_id=stored.id,
            ) from exc

        return AdmissionResult(vacation=stored, billing_attempts=billing_attempts)

    def list_vacations(self, customer_id: Optional[str], child_name: Optional[str]) -> List[VacationRequest]:
        if not (customer_id or "").strip() or not (child_name or "").strip():
            raise ValidationError("Missing customer_id or child_name")
        return list(self.repository.list_by_customer_and_child(customer_id.strip(), child_name.strip()))

    def _validate(self, request: VacationRequestInput) -> VacationRequest:
        missing = [name for name in REQUIRED_FIELDS if _is_blank(getattr(request, name))]
        if missing:
            raise ValidationError(f"Missing required fields: {', '.join(missing)}")
        if request.shift_days <= 0:
            raise ValidationError("shift_days must be a positive number of days")
        if request.shift_days > MAX_SHIFT_DAYS:
            raise ValidationError(f"shift_days must be at most {MAX_SHIFT_DAYS}")
        if request.from_date > request.to_date:
            raise ValidationError("from_date must be on or before to_date")

        return VacationRequest(
            customer_id=request.customer_id.strip(),
            child_name=request.child_name.strip(),
            from_date=request.from_date,
            to_date=request.to_date,
            shift_days=request.shift_days,
            reason=(request.reason or "").strip() or None,
            subscription_id=request.subscription_id.strip(),
            billing_attempt_id=request.billing_attempt_id.strip(),
        )

    def _check_earliest_date(self, detail: SubscriptionDetail, from_date: date) -> None:
        earliest = earliest_billing_attempt(detail)
        if earliest is None:
            return
        earliest_date = earliest.date.date()
        if from_date > earliest_date:
            raise TooLateError(
                f"Vacation must start on or before your next billing date ({earliest_date.isoformat()})",
                earliest_allowed_date=earliest_date,
            )


def _is_blank(value: object) -> bool:
    if value is None:
        return True
    if isinstance(value, str):
        return not value.strip()
    return False


__all__ = [
    "KeyedLock",
    "VacationAdmissionService",
    "VacationRepository",
    "earliest_billing_attempt",
    "shift_billing_attempts",
]
