"""Domain errors surfaced to API callers as JSON error bodies."""
from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from typing import Any, Dict, Mapping, Optional

from fastapi import status


@dataclass
class ProxyError(Exception):
    """Base error carrying the HTTP status and JSON body for a failed request."""

    message: str
    status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR
    detail: Optional[Mapping[str, Any]] = None

    def __post_init__(self) -> None:
        super().__init__(self.message)

    @property
    def payload(self) -> Dict[str, Any]:
        """Serialized representation suitable for JSON responses."""

        body: Dict[str, Any] = {"success": False, "error": self.message}
        if self.detail:
            body.update(self.detail)
        return body


@dataclass
class ValidationError(ProxyError):
    """Client input is missing or malformed."""

    status_code: int = status.HTTP_400_BAD_REQUEST


@dataclass
class TooLateError(ProxyError):
    """The vacation starts after the first upcoming billing attempt."""

    status_code: int = status.HTTP_400_BAD_REQUEST
    earliest_allowed_date: Optional[date] = None

    def __post_init__(self) -> None:
        if self.earliest_allowed_date is not None:
            self.detail = {"earliest_allowed_date": self.earliest_allowed_date.isoformat()}
        super().__post_init__()


@dataclass
class OverlapError(ProxyError):
    """A stored vacation request already covers part of the requested range."""

    status_code: int = status.HTTP_409_CONFLICT
    conflict_from: Optional[date] = None
    conflict_to: Optional[date] = None

    def __post_init__(self) -> None:
        if self.conflict_from is not None and self.conflict_to is not None:
            self.detail = {
                "conflict": {
                    "from_date": self.conflict_from.isoformat(),
                    "to_date": self.conflict_to.isoformat(),
                }
            }
        super().__post_init__()


@dataclass
class UpstreamError(ProxyError):
    """The subscription provider was unreachable or answered with an error."""

    status_code: int = status.HTTP_502_BAD_GATEWAY
    upstream_status: Optional[int] = None


@dataclass
class EmptyDetailError(UpstreamError):
    """A subscription detail came back without any line items."""


@dataclass
class PersistenceError(ProxyError):
    """The vacation store failed to read or write."""


@dataclass
class ProcessingError(ProxyError):
    """Post-insert enrichment failed after the vacation request was stored."""

    vacation_id: Optional[int] = None

    def __post_init__(self) -> None:
        if self.vacation_id is not None:
            self.detail = {"id": self.vacation_id}
        super().__post_init__()


class ConfigError(ValueError):
    """Raised when required configuration is missing at startup."""


__all__ = [
    "ConfigError",
    "EmptyDetailError",
    "OverlapError",
    "PersistenceError",
    "ProcessingError",
    "ProxyError",
    "TooLateError",
    "UpstreamError",
    "ValidationError",
]
