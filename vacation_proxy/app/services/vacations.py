"""Application wiring for vacation admission and the billing schedule."""
from __future__ import annotations

import logging
from functools import lru_cache
from typing import Union

from ..vacations import (
    BillingScheduleView,
    InMemoryVacationRepository,
    PostgresVacationRepository,
    VacationAdmissionService,
)
from .provider import get_provider_client, get_proxy_config

logger = logging.getLogger(__name__)

MEMORY_STORE_URL = "memory://"


@lru_cache(maxsize=1)
def get_vacation_repository() -> Union[PostgresVacationRepository, InMemoryVacationRepository]:
    config = get_proxy_config()
    if config.database_url.startswith(MEMORY_STORE_URL):
        logger.warning("Using the in-memory vacation store; requests are lost on restart")
        return InMemoryVacationRepository()
    return PostgresVacationRepository(
        dsn=config.database_url,
        connect_timeout=config.db_connect_timeout,
    )


@lru_cache(maxsize=1)
def get_admission_service() -> VacationAdmissionService:
    return VacationAdmissionService(
        provider=get_provider_client(),
        repository=get_vacation_repository(),
    )


@lru_cache(maxsize=1)
def get_billing_schedule_view() -> BillingScheduleView:
    return BillingScheduleView(provider=get_provider_client())


__all__ = [
    "MEMORY_STORE_URL",
    "get_admission_service",
    "get_billing_schedule_view",
    "get_vacation_repository",
]
