from __future__ import annotations

from datetime import date, datetime, timezone
from types import SimpleNamespace
from typing import Dict, List

import pytest

from vacation_proxy.app.enrollments import Enrollment
from vacation_proxy.app.errors import PersistenceError, UpstreamError, ValidationError
from vacation_proxy.app.provider import SubscriptionDetail
from vacation_proxy.app.routes import billing as billing_routes
from vacation_proxy.app.routes import enrollments as enrollments_routes
from vacation_proxy.app.routes import vacations as vacations_routes
from vacation_proxy.app.schemas.proxy import (
    BillingScheduleResponse,
    EnrollmentListResponse,
    RescheduleRequest,
    VacationSubmissionResponse,
)
from vacation_proxy.app.vacations import (
    AdmissionResult,
    BillingScheduleView,
    VacationRequest,
    VacationRequestInput,
)


def _vacation(**overrides) -> VacationRequest:
    values = {
        "id": 3,
        "customer_id": "cust-1",
        "child_name": "Ana Silva",
        "from_date": date(2025, 5, 10),
        "to_date": date(2025, 5, 20),
        "shift_days": 14,
        "subscription_id": "sub-1",
        "billing_attempt_id": "7",
    }
    values.update(overrides)
    return VacationRequest(**values)


def test_list_enrollments_requires_email():
    with pytest.raises(ValidationError) as excinfo:
        enrollments_routes.list_enrollments(email="  ")

    assert excinfo.value.payload == {"success": False, "error": "Missing email"}


def test_list_enrollments_returns_projection(monkeypatch):
    captured: Dict[str, str] = {}
    enrollment = Enrollment(subscription_id="1", parent_email="parent@example.com")

    def fake_list(email: str) -> List[Enrollment]:
        captured["email"] = email
        return [enrollment]

    monkeypatch.setattr(
        enrollments_routes,
        "get_enrollment_projector",
        lambda: SimpleNamespace(list_enrollments=fake_list),
    )

    response = enrollments_routes.list_enrollments(email=" parent@example.com ")

    assert isinstance(response, EnrollmentListResponse)
    assert response.success is True
    assert response.enrollments == [enrollment]
    assert captured == {"email": "parent@example.com"}


def test_list_vacations_falls_back_to_email(monkeypatch):
    captured: Dict[str, object] = {}

    def fake_list(customer_id, child_name):
        captured["args"] = (customer_id, child_name)
        return [_vacation()]

    monkeypatch.setattr(
        vacations_routes,
        "get_admission_service",
        lambda: SimpleNamespace(list_vacations=fake_list),
    )

    response = vacations_routes.list_vacations(customer_id=None, child_name="Ana Silva", email="parent@example.com")

    assert captured["args"] == ("parent@example.com", "Ana Silva")
    assert [vacation.id for vacation in response.vacations] == [3]


def test_submit_vacation_request_shapes_response(monkeypatch):
    result = AdmissionResult(
        vacation=_vacation(),
        billing_attempts=[{"id": "7", "date": "2025-06-15T09:00:00+00:00", "original_date": "2025-06-01T09:00:00+00:00"}],
    )
    received: List[VacationRequestInput] = []

    def fake_submit(payload: VacationRequestInput) -> AdmissionResult:
        received.append(payload)
        return result

    monkeypatch.setattr(
        vacations_routes,
        "get_admission_service",
        lambda: SimpleNamespace(submit=fake_submit),
    )
    payload = VacationRequestInput(customer_id="cust-1", child_name="Ana Silva")

    response = vacations_routes.submit_vacation_request(payload)

    assert isinstance(response, VacationSubmissionResponse)
    assert received == [payload]
    body = response.model_dump(mode="json")
    assert body["success"] is True
    assert body["id"] == 3
    assert body["vacation"]["from_date"] == "2025-05-10"
    assert body["updated"]["billing_attempts"][0]["original_date"] == "2025-06-01T09:00:00+00:00"


def test_billing_schedule_requires_subscription_id():
    with pytest.raises(ValidationError) as excinfo:
        billing_routes.get_billing_schedule(subscription_id=None)

    assert excinfo.value.message == "Missing subscription_id"


class _DetailProvider:
    def __init__(self, detail: SubscriptionDetail) -> None:
        self.detail = detail
        self.calls: List[str] = []

    def get_subscription_detail(self, subscription_id: str) -> SubscriptionDetail:
        self.calls.append(subscription_id)
        return self.detail


def test_billing_schedule_returns_first_four_attempts_in_provider_order(monkeypatch):
    detail = SubscriptionDetail.model_validate(
        {
            "id": "sub-1",
            "items": [{"title": "coach-Juniors", "price": "25.50"}],
            "billing_attempts": [
                {"id": index, "date": f"2025-0{month}-01T00:00:00Z"}
                for index, month in enumerate([3, 1, 2, 4, 5], start=1)
            ],
        }
    )
    provider = _DetailProvider(detail)
    monkeypatch.setattr(billing_routes, "get_billing_schedule_view", lambda: BillingScheduleView(provider=provider))

    response = billing_routes.get_billing_schedule(subscription_id=" sub-1 ")

    assert isinstance(response, BillingScheduleResponse)
    assert provider.calls == ["sub-1"]
    assert [charge.date.month for charge in response.billing_attempts] == [3, 1, 2, 4]
    assert {charge.amount for charge in response.billing_attempts} == {"$25.50"}
    assert response.billing_attempts[0].date == datetime(2025, 3, 1, tzinfo=timezone.utc)


def test_reschedule_rejects_missing_fields():
    with pytest.raises(ValidationError) as excinfo:
        billing_routes.reschedule_billing_attempt(RescheduleRequest(billing_attempt_id="7", subscription_id="42"))

    assert excinfo.value.message == "Missing required fields"


def _reschedule_payload() -> RescheduleRequest:
    return RescheduleRequest.model_validate(
        {
            "billing_attempt_id": 7,
            "subscription_id": 42,
            "date": "2025-07-01",
            "time": "09:00",
            "timezone": "Europe/London",
        }
    )


def test_reschedule_forwards_to_provider(monkeypatch):
    calls: List[tuple] = []

    def fake_reschedule(attempt_id, subscription_id, *, date, time, timezone):
        calls.append((attempt_id, subscription_id, date, time, timezone))
        return {"success": True, "payload": {"id": 7}}

    monkeypatch.setattr(
        billing_routes,
        "get_provider_client",
        lambda: SimpleNamespace(reschedule_billing_attempt=fake_reschedule),
    )

    response = billing_routes.reschedule_billing_attempt(_reschedule_payload())

    assert calls == [("7", "42", "2025-07-01", "09:00", "Europe/London")]
    assert response.success is True
    assert response.result == {"success": True, "payload": {"id": 7}}


def test_reschedule_passes_provider_status_through(monkeypatch):
    def fake_reschedule(*args, **kwargs):
        raise UpstreamError("Date is in the past", upstream_status=422)

    monkeypatch.setattr(
        billing_routes,
        "get_provider_client",
        lambda: SimpleNamespace(reschedule_billing_attempt=fake_reschedule),
    )

    with pytest.raises(UpstreamError) as excinfo:
        billing_routes.reschedule_billing_attempt(_reschedule_payload())

    assert excinfo.value.status_code == 422
    assert excinfo.value.payload == {"success": False, "error": "Date is in the past"}


def test_reschedule_transport_failure_stays_bad_gateway(monkeypatch):
    def fake_reschedule(*args, **kwargs):
        raise UpstreamError("Subscription provider is unreachable")

    monkeypatch.setattr(
        billing_routes,
        "get_provider_client",
        lambda: SimpleNamespace(reschedule_billing_attempt=fake_reschedule),
    )

    with pytest.raises(UpstreamError) as excinfo:
        billing_routes.reschedule_billing_attempt(_reschedule_payload())

    assert excinfo.value.status_code == 502


def test_submission_response_requires_stored_id():
    result = AdmissionResult(vacation=_vacation(id=None))

    with pytest.raises(PersistenceError):
        VacationSubmissionResponse.from_result(result)
