"""
Operation request and outcome models for the service controller.
"""

from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator

from ..control.commands import is_valid_service_name
from ..control.status import ServiceStatus


class OperationKind(str, Enum):
    """Supported service control operations."""
    STOP = "stop"
    START = "start"
    RESTART = "restart"


class OutcomeKind(str, Enum):
    """Result classes of one controller invocation."""
    SUCCEEDED = "succeeded"
    ALREADY_IN_TARGET_STATE = "already_in_target_state"
    CONFLICT = "conflict"
    INVALID_STATE = "invalid_state"
    FAILED = "failed"


class ErrorKind(str, Enum):
    """Reasons an operation failed."""
    TRANSPORT = "transport"
    COMMAND_REJECTED = "command_rejected"
    CONVERGENCE_TIMEOUT = "convergence_timeout"
    UNEXPECTED_STATE = "unexpected_state"


class ServiceIdentity(BaseModel):
    """Remote service name and the name shown to operators."""
    model_config = ConfigDict(frozen=True)

    service_name: str = Field(min_length=1)
    display_name: str = ""

    @field_validator('service_name')
    @classmethod
    def validate_service_name(cls, v: str) -> str:
        """Reject names that cannot be quoted safely in a remote command."""
        if not is_valid_service_name(v):
            raise ValueError(f"Invalid service name: {v!r}")
        return v

    @property
    def label(self) -> str:
        return self.display_name or self.service_name


class OperationOutcome(BaseModel):
    """Result of one stop/start/restart invocation."""
    model_config = ConfigDict(frozen=True)

    kind: OutcomeKind
    message: str
    final_status: ServiceStatus | None = None
    error_kind: ErrorKind | None = None
    details: dict[str, Any] = Field(default_factory=dict)

    @property
    def is_success(self) -> bool:
        """True when the service ended up in the requested state."""
        return self.kind in (OutcomeKind.SUCCEEDED, OutcomeKind.ALREADY_IN_TARGET_STATE)

    @classmethod
    def succeeded(cls, final_status: ServiceStatus, message: str) -> "OperationOutcome":
        return cls(kind=OutcomeKind.SUCCEEDED, message=message, final_status=final_status)

    @classmethod
    def already_in_target_state(cls, message: str, final_status: ServiceStatus | None = None) -> "OperationOutcome":
        return cls(kind=OutcomeKind.ALREADY_IN_TARGET_STATE, message=message, final_status=final_status)

    @classmethod
    def conflict(cls, message: str, observed: ServiceStatus | None = None) -> "OperationOutcome":
        details = {"observed_status": observed.name} if observed is not None else {}
        return cls(kind=OutcomeKind.CONFLICT, message=message, details=details)

    @classmethod
    def invalid_state(cls, message: str, observed: ServiceStatus | None = None) -> "OperationOutcome":
        details = {"observed_status": observed.name} if observed is not None else {}
        return cls(kind=OutcomeKind.INVALID_STATE, message=message, details=details)

    @classmethod
    def failed(
        cls,
        error_kind: ErrorKind,
        message: str,
        details: dict[str, Any] | None = None,
    ) -> "OperationOutcome":
        return cls(
            kind=OutcomeKind.FAILED,
            message=message,
            error_kind=error_kind,
            details=details or {},
        )
