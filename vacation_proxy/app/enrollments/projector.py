"""Projection of provider subscriptions into enrollment records."""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Callable, List, Sequence

from ..errors import EmptyDetailError, UpstreamError
from ..provider import SubscriptionDetail, SubscriptionProvider, SubscriptionSummary
from .models import Enrollment, PreviousPayment

logger = logging.getLogger(__name__)

CHILD_FIRST_NAME = "Child First Name"
CHILD_LAST_NAME = "Child Last Name"
CHILD_EXTERNAL_ID = "Child CricClub ID"
PROGRAM_LEVEL = "Program Level"
BILLING_INTERVAL = "Billing Interval"

PREVIOUS_PAYMENT_LIMIT = 4


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def strip_program_prefix(program: str, prefix: str) -> str:
    """Drop the provider's internal program prefix, ignoring case."""

    if prefix and program.lower().startswith(prefix.lower()):
        return program[len(prefix):]
    return program


@dataclass(slots=True)
class EnrollmentProjector:
    """Builds enrollments, skipping subscriptions whose detail cannot be read."""

    provider: SubscriptionProvider
    program_prefix: str = "coach-"
    clock: Callable[[], datetime] = field(default=_utcnow)

    def list_enrollments(self, email: str) -> List[Enrollment]:
        subscriptions = self.provider.list_subscriptions_by_email(email)
        return self.project(email, subscriptions)

    def project(self, email: str, subscriptions: Sequence[SubscriptionSummary]) -> List[Enrollment]:
        now = self.clock()
        enrollments: List[Enrollment] = []
        for summary in subscriptions:
            try:
                detail = self.provider.get_subscription_detail(summary.id)
                enrollment = self._to_enrollment(email, summary, detail, now)
            except UpstreamError as exc:
                logger.warning(
                    "Skipping subscription without usable detail",
                    extra={"subscription_id": summary.id, "error": exc.message},
                )
                continue
            enrollments.append(enrollment)
        return enrollments

    def _to_enrollment(
        self,
        email: str,
        summary: SubscriptionSummary,
        detail: SubscriptionDetail,
        now: datetime,
    ) -> Enrollment:
        item = detail.primary_item
        if item is None:
            raise EmptyDetailError(f"Subscription {detail.id} has no line items")
        past, upcoming = detail.classify_attempts(now)
        next_attempt = upcoming[0] if upcoming else None

        previous_payments = [
            PreviousPayment(date=attempt.date, amount=item.amount, status=attempt.status or "unknown")
            for attempt in past[-PREVIOUS_PAYMENT_LIMIT:]
        ]
        program = item.get_property(PROGRAM_LEVEL) or item.title

        return Enrollment(
            subscription_id=summary.id,
            child_first_name=item.get_property(CHILD_FIRST_NAME),
            child_last_name=item.get_property(CHILD_LAST_NAME),
            external_child_id=item.get_property(CHILD_EXTERNAL_ID),
            program=strip_program_prefix(program, self.program_prefix),
            payment_frequency=item.get_property(BILLING_INTERVAL) or summary.billing_interval or "",
            next_payment_date=next_attempt.date if next_attempt else None,
            next_payment_amount=item.amount,
            parent_email=email,
            previous_payments=previous_payments,
        )


__all__ = ["EnrollmentProjector", "strip_program_prefix"]
