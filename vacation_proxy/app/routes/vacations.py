"""API routes for vacation requests."""
from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Query

from ..schemas.proxy import VacationListResponse, VacationSubmissionResponse
from ..services.vacations import get_admission_service
from ..vacations import VacationRequestInput

router = APIRouter(tags=["vacations"])


@router.get("/vacations", response_model=VacationListResponse)
def list_vacations(
    customer_id: Optional[str] = Query(default=None),
    child_name: Optional[str] = Query(default=None),
    email: Optional[str] = Query(default=None),
) -> VacationListResponse:
    """Return stored requests for one child, newest range first.

    ``email`` identifies the customer when the portal has no numeric id.
    """

    service = get_admission_service()
    vacations = service.list_vacations(customer_id or email, child_name)
    return VacationListResponse(vacations=vacations)


@router.post("/vacation-request", response_model=VacationSubmissionResponse)
def submit_vacation_request(payload: VacationRequestInput) -> VacationSubmissionResponse:
    service = get_admission_service()
    result = service.submit(payload)
    return VacationSubmissionResponse.from_result(result)
