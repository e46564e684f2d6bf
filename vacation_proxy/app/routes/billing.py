"""API routes for a subscription's billing attempts."""
from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Query

from ..errors import UpstreamError, ValidationError
from ..schemas.proxy import BillingScheduleResponse, RescheduleRequest, RescheduleResponse
from ..services.provider import get_provider_client
from ..services.vacations import get_billing_schedule_view

router = APIRouter(tags=["billing"])


@router.get("/billing-schedule", response_model=BillingScheduleResponse)
def get_billing_schedule(subscription_id: Optional[str] = Query(default=None)) -> BillingScheduleResponse:
    if not subscription_id or not subscription_id.strip():
        raise ValidationError("Missing subscription_id")

    view = get_billing_schedule_view()
    return BillingScheduleResponse(billing_attempts=view.schedule(subscription_id.strip()))


@router.put("/reschedule-billing-attempt", response_model=RescheduleResponse)
def reschedule_billing_attempt(payload: RescheduleRequest) -> RescheduleResponse:
    if payload.missing_fields():
        raise ValidationError("Missing required fields")

    client = get_provider_client()
    try:
        result = client.reschedule_billing_attempt(
            payload.billing_attempt_id,
            payload.subscription_id,
            date=payload.date,
            time=payload.time,
            timezone=payload.timezone,
        )
    except UpstreamError as exc:
        if exc.upstream_status is None:
            raise
        # Provider status codes are passed through unchanged.
        raise UpstreamError(
            exc.message,
            status_code=exc.upstream_status,
            upstream_status=exc.upstream_status,
        ) from exc
    return RescheduleResponse(result=result if isinstance(result, dict) else {"payload": result})
