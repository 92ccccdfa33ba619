"""Models for oaServiceControl."""

from .operations import (
    ErrorKind,
    OperationKind,
    OperationOutcome,
    OutcomeKind,
    ServiceIdentity,
)
from .records import ServerRecord, ServiceRecord
from .schemas import (
    ControlResponse,
    ErrorResponse,
    ServiceInfo,
    ServiceListResponse,
    ServiceRefreshResponse,
    ServiceStatusResponse,
)

__all__ = [
    "OperationKind",
    "OutcomeKind",
    "ErrorKind",
    "ServiceIdentity",
    "OperationOutcome",
    "ServerRecord",
    "ServiceRecord",
    "ControlResponse",
    "ServiceStatusResponse",
    "ServiceInfo",
    "ServiceListResponse",
    "ServiceRefreshResponse",
    "ErrorResponse",
]
