"""API routes exposing enrollment data for the parent portal."""
from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Query

from ..errors import ValidationError
from ..schemas.proxy import EnrollmentListResponse
from ..services.enrollments import get_enrollment_projector

router = APIRouter(tags=["enrollments"])


@router.get("/enrollments", response_model=EnrollmentListResponse)
def list_enrollments(email: Optional[str] = Query(default=None)) -> EnrollmentListResponse:
    """Return one enrollment per subscription found for ``email``."""

    if not email or not email.strip():
        raise ValidationError("Missing email")

    projector = get_enrollment_projector()
    enrollments = projector.list_enrollments(email.strip())
    return EnrollmentListResponse(enrollments=enrollments)
