from __future__ import annotations

import asyncio
import json
from datetime import date
from types import SimpleNamespace

import pytest
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from starlette.responses import Response

from vacation_proxy import app_context
from vacation_proxy.app.errors import OverlapError, ProcessingError
from vacation_proxy.app.services import enrollments as enrollments_services
from vacation_proxy.app.services import provider as provider_services
from vacation_proxy.app.services import vacations as vacations_services
from vacation_proxy.app.vacations import InMemoryVacationRepository
from vacation_proxy.config import load_proxy_config
from vacation_proxy.main import (
    create_app,
    handle_proxy_error,
    handle_request_validation_error,
)
from vacation_proxy.middleware_errors import UnhandledErrorMiddleware
from vacation_proxy.middleware_security import SECURITY_HEADERS, SecurityHeadersMiddleware

REQUEST = SimpleNamespace(url=SimpleNamespace(path="/vacation-request"))


def _clear_caches() -> None:
    provider_services.get_provider_client.cache_clear()
    enrollments_services.get_enrollment_projector.cache_clear()
    vacations_services.get_vacation_repository.cache_clear()
    vacations_services.get_admission_service.cache_clear()
    vacations_services.get_billing_schedule_view.cache_clear()


@pytest.fixture
def config():
    _clear_caches()
    yield load_proxy_config(
        {
            "SEAL_TOKEN": "secret",
            "ALLOWED_ORIGIN": "https://portal.example.com",
            "DATABASE_URL": "memory://",
        }
    )
    app_context.reset()
    _clear_caches()


def _body(response) -> dict:
    return json.loads(response.body)


def test_create_app_registers_routes_and_middleware(config):
    app = create_app(config)

    paths = set(app.openapi()["paths"])
    assert {
        "/enrollments",
        "/vacations",
        "/vacation-request",
        "/billing-schedule",
        "/reschedule-billing-attempt",
        "/health",
    } <= paths
    middleware = [entry.cls for entry in app.user_middleware]
    assert {SecurityHeadersMiddleware, CORSMiddleware, UnhandledErrorMiddleware} <= set(middleware)
    # user_middleware is listed outermost first
    assert middleware.index(UnhandledErrorMiddleware) > middleware.index(CORSMiddleware)
    assert middleware.index(UnhandledErrorMiddleware) > middleware.index(SecurityHeadersMiddleware)
    assert app.state.config is config
    assert app_context.get_config() is config


def test_services_are_wired_from_configuration(config):
    create_app(config)

    repository = vacations_services.get_vacation_repository()
    service = vacations_services.get_admission_service()

    assert isinstance(repository, InMemoryVacationRepository)
    assert service.repository is repository
    assert service.provider is provider_services.get_provider_client()
    assert enrollments_services.get_enrollment_projector().program_prefix == "coach-"


def test_unconfigured_context_raises():
    app_context.reset()

    with pytest.raises(RuntimeError):
        app_context.get_config()


def test_proxy_errors_render_status_and_payload():
    exc = OverlapError(
        "Overlapping requests are not allowed.",
        conflict_from=date(2025, 5, 10),
        conflict_to=date(2025, 5, 20),
    )

    response = asyncio.run(handle_proxy_error(REQUEST, exc))

    assert response.status_code == 409
    assert _body(response) == {
        "success": False,
        "error": "Overlapping requests are not allowed.",
        "conflict": {"from_date": "2025-05-10", "to_date": "2025-05-20"},
    }


def test_processing_error_body_carries_stored_id():
    response = asyncio.run(
        handle_proxy_error(REQUEST, ProcessingError("Error processing subscription billing attempts", vacation_id=12))
    )

    assert response.status_code == 500
    assert _body(response)["id"] == 12


def test_request_validation_errors_become_bad_request():
    exc = RequestValidationError(
        [{"loc": ("body", "from_date"), "msg": "Input should be a valid date", "type": "date_from_datetime_parsing"}]
    )

    response = asyncio.run(handle_request_validation_error(REQUEST, exc))

    assert response.status_code == 400
    assert _body(response) == {
        "success": False,
        "error": "Invalid request: from_date: Input should be a valid date",
    }


def test_unexpected_errors_hide_details():
    async def call_next(request):
        raise RuntimeError("secret stack")

    middleware = UnhandledErrorMiddleware(app=None)
    response = asyncio.run(middleware.dispatch(REQUEST, call_next))

    assert response.status_code == 500
    assert _body(response) == {"success": False, "error": "Internal server error"}


def test_security_headers_are_added_without_overriding():
    async def call_next(request):
        return Response("ok", headers={"X-Frame-Options": "DENY"})

    middleware = SecurityHeadersMiddleware(app=None)
    response = asyncio.run(middleware.dispatch(REQUEST, call_next))

    assert response.headers["X-Frame-Options"] == "DENY"
    assert response.headers["X-Content-Type-Options"] == SECURITY_HEADERS["X-Content-Type-Options"]
    assert "Strict-Transport-Security" in response.headers
