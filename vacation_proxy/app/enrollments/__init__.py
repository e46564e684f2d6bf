"""Enrollment projection built from provider subscriptions."""

from .models import Enrollment, PreviousPayment
from .projector import EnrollmentProjector, strip_program_prefix

__all__ = ["Enrollment", "EnrollmentProjector", "PreviousPayment", "strip_program_prefix"]
