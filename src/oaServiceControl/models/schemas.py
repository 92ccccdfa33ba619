"""
Response schemas for the service control API.
"""

from datetime import datetime
from typing import Any

from pydantic import BaseModel, ConfigDict

from .operations import ErrorKind, OperationKind, OperationOutcome, OutcomeKind
from .records import ServiceRecord


class ControlResponse(BaseModel):
    """Result of a stop, start or restart request."""
    model_config = ConfigDict(extra="allow")

    status: str
    operation: OperationKind
    server_id: int
    service_id: int
    service_name: str
    outcome: OutcomeKind
    message: str
    final_status: str | None = None
    error_kind: ErrorKind | None = None
    details: dict[str, Any] = {}
    timestamp: str

    @classmethod
    def from_outcome(
        cls,
        operation: OperationKind,
        service: ServiceRecord,
        outcome: OperationOutcome,
        timestamp: datetime,
    ) -> "ControlResponse":
        return cls(
            status="ok" if outcome.is_success else "error",
            operation=operation,
            server_id=service.server_id,
            service_id=service.id,
            service_name=service.service_name,
            outcome=outcome.kind,
            message=outcome.message,
            final_status=outcome.final_status.label if outcome.final_status is not None else None,
            error_kind=outcome.error_kind,
            details=outcome.details,
            timestamp=timestamp.isoformat(),
        )


class ServiceStatusResponse(BaseModel):
    """Live status of one service."""
    model_config = ConfigDict(extra="allow")

    server_id: int
    service_id: int
    service_name: str
    displayed_name: str = ""
    status: str
    status_code: int
    timestamp: str


class ServiceInfo(BaseModel):
    """Stored service record with its last known status."""
    id: int
    service_name: str
    displayed_name: str = ""
    status: str
    updated_at: str


class ServiceListResponse(BaseModel):
    """Services registered on one server."""
    server_id: int
    services: list[ServiceInfo]
    count: int


class ServiceRefreshResponse(ServiceListResponse):
    """Services of one server after a live status refresh."""
    refreshed: int
    failed: list[str] = []
    timestamp: str


class ErrorResponse(BaseModel):
    """Standard error response schema."""
    model_config = ConfigDict(extra="allow")

    status: str = "error"
    error: str
    error_code: str
    category: str
    severity: str
    timestamp: str
    timestamp_epoch: int
    details: dict[str, Any] = {}
    recovery_suggestion: str | None = None
    request_id: str | None = None
