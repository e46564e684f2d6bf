"""Application wiring for the enrollment projector."""
from __future__ import annotations

from functools import lru_cache

from ..enrollments import EnrollmentProjector
from .provider import get_provider_client, get_proxy_config


@lru_cache(maxsize=1)
def get_enrollment_projector() -> EnrollmentProjector:
    config = get_proxy_config()
    return EnrollmentProjector(provider=get_provider_client(), program_prefix=config.program_prefix)


__all__ = ["get_enrollment_projector"]
