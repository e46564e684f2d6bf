"""HTTP client for the Seal subscription provider API."""
from __future__ import annotations

import json
import logging
import socket
from typing import Any, Dict, List, Mapping, Optional, Protocol
from urllib import error as urllib_error, parse as urllib_parse, request as urllib_request

from pydantic import ValidationError as PydanticValidationError

from ..errors import EmptyDetailError, UpstreamError
from .models import SubscriptionDetail, SubscriptionSummary

logger = logging.getLogger(__name__)

TOKEN_HEADER = "X-Seal-Token"


class SubscriptionProvider(Protocol):
    """Operations the proxy needs from the subscription provider."""

    def list_subscriptions_by_email(self, email: str) -> List[SubscriptionSummary]:
        ...

    def get_subscription_detail(self, subscription_id: str) -> SubscriptionDetail:
        ...

    def reschedule_billing_attempt(
        self,
        attempt_id: str,
        subscription_id: str,
        *,
        date: str,
        time: str,
        timezone: str,
    ) -> Dict[str, Any]:
        ...


class SealProviderClient:
    """Blocking client; every call is attempted once with a bounded timeout."""

    def __init__(self, *, base_url: str, token: str, timeout: float = 10.0) -> None:
        self.base_url = base_url.rstrip("/")
        self._token = token
        self.timeout = timeout

    @classmethod
    def from_config(cls, config) -> "SealProviderClient":
        return cls(
            base_url=config.provider_base_url,
            token=config.provider_token,
            timeout=config.provider_timeout_seconds,
        )

    def list_subscriptions_by_email(self, email: str) -> List[SubscriptionSummary]:
        payload = self._request("GET", "/subscriptions", query={"query": email})
        raw_subscriptions = (payload or {}).get("subscriptions") or []
        try:
            return [SubscriptionSummary.model_validate(item) for item in raw_subscriptions]
        except PydanticValidationError as exc:
            raise UpstreamError("Unexpected subscription list from provider") from exc

    def get_subscription_detail(self, subscription_id: str) -> SubscriptionDetail:
        payload = self._request("GET", "/subscription", query={"id": subscription_id})
        if not payload:
            raise UpstreamError(f"Subscription {subscription_id} not found", upstream_status=404)
        try:
            detail = SubscriptionDetail.model_validate(payload)
        except PydanticValidationError as exc:
            raise UpstreamError(f"Unexpected detail for subscription {subscription_id}") from exc
        if not detail.items:
            raise EmptyDetailError(f"Subscription {subscription_id} has no line items")
        return detail

    def reschedule_billing_attempt(
        self,
        attempt_id: str,
        subscription_id: str,
        *,
        date: str,
        time: str,
        timezone: str,
    ) -> Dict[str, Any]:
        body = {
            "id": attempt_id,
            "subscription_id": subscription_id,
            "date": date,
            "time": time,
            "timezone": timezone,
            "action": "reschedule",
            "reset_schedule": True,
        }
        result = self._request("PUT", "/subscription-billing-attempt", body=body, unwrap=False)
        logger.info(
            "Billing attempt rescheduled",
            extra={"billing_attempt_id": attempt_id, "subscription_id": subscription_id, "date": date},
        )
        return result

    def _request(
        self,
        method: str,
        path: str,
        *,
        query: Optional[Mapping[str, str]] = None,
        body: Optional[Mapping[str, Any]] = None,
        unwrap: bool = True,
    ) -> Any:
        url = f"{self.base_url}{path}"
        if query:
            url = f"{url}?{urllib_parse.urlencode(query)}"
        data = json.dumps(body).encode("utf-8") if body is not None else None
        req = urllib_request.Request(
            url,
            data=data,
            method=method,
            headers={TOKEN_HEADER: self._token, "Content-Type": "application/json"},
        )

        try:
            with urllib_request.urlopen(req, timeout=self.timeout) as response:
                raw = response.read()
        except urllib_error.HTTPError as exc:
            message = _error_message(exc)
            logger.warning(
                "Provider request failed",
                extra={"provider_path": path, "status": exc.code, "error": message},
            )
            raise UpstreamError(message, upstream_status=exc.code) from exc
        except (urllib_error.URLError, socket.timeout, TimeoutError, ConnectionError) as exc:
            logger.warning("Provider unreachable", extra={"provider_path": path, "error": str(exc)})
            raise UpstreamError("Subscription provider is unreachable") from exc

        try:
            decoded = json.loads(raw.decode("utf-8")) if raw else {}
        except (json.JSONDecodeError, UnicodeDecodeError) as exc:
            raise UpstreamError("Subscription provider returned invalid JSON") from exc

        if not unwrap:
            return decoded
        if not isinstance(decoded, dict):
            raise UpstreamError("Subscription provider returned an unexpected body")
        return decoded.get("payload")


def _error_message(exc: urllib_error.HTTPError) -> str:
    fallback = f"Provider API error: {exc.code}"
    try:
        raw = exc.read()
    except OSError:
        return fallback
    if not raw:
        return fallback
    text = raw.decode("utf-8", errors="replace")
    try:
        parsed = json.loads(text)
    except json.JSONDecodeError:
        return f"{fallback} - {text}"
    if isinstance(parsed, dict) and parsed.get("error"):
        return str(parsed["error"])
    return f"{fallback} - {text}"


__all__ = ["SealProviderClient", "SubscriptionProvider", "TOKEN_HEADER"]
