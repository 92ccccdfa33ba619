"""
Unified exception classes for oaServiceControl.

This module provides standardized exceptions with structured error
information so that transport failures, rejected commands and convergence
problems can be told apart by callers and by the API layer.
"""

from datetime import UTC, datetime
from enum import Enum
from typing import Any


class ErrorCategory(str, Enum):
    """Categories for error classification."""
    TRANSPORT = "transport"
    COMMAND = "command"
    CONVERGENCE = "convergence"
    STORAGE = "storage"
    NOT_FOUND = "not_found"
    NETWORK = "network"
    CONFIGURATION = "configuration"
    VALIDATION = "validation"
    SYSTEM = "system"


class ErrorSeverity(str, Enum):
    """Error severity levels."""
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"


class BaseServiceControlException(Exception):
    """
    Base exception class for all oaServiceControl errors.

    Provides structured error information with context, severity,
    and recovery suggestions for better debugging and monitoring.
    """

    def __init__(
        self,
        message: str,
        category: ErrorCategory,
        severity: ErrorSeverity = ErrorSeverity.MEDIUM,
        error_code: str | None = None,
        details: dict[str, Any] | None = None,
        recovery_suggestion: str | None = None,
    ):
        super().__init__(message)
        self.message = message
        self.category = category
        self.severity = severity
        self.error_code = error_code or self._generate_error_code()
        self.details = details or {}
        self.recovery_suggestion = recovery_suggestion
        self.timestamp = datetime.now(UTC)

    def _generate_error_code(self) -> str:
        """Generate an error code based on category and class name."""
        class_name = self.__class__.__name__
        category_prefix = self.category.value.upper()[:3]
        return f"{category_prefix}_{class_name.upper()}"

    def to_dict(self) -> dict[str, Any]:
        """Convert exception to dictionary for API responses."""
        return {
            "error": self.message,
            "error_code": self.error_code,
            "category": self.category.value,
            "severity": self.severity.value,
            "timestamp": self.timestamp.isoformat(),
            "details": self.details,
            "recovery_suggestion": self.recovery_suggestion,
        }

    def __str__(self) -> str:
        return f"[{self.error_code}] {self.message}"


class TransportError(BaseServiceControlException):
    """The remote executor itself failed (timeout, connection drop)."""

    def __init__(
        self,
        message: str,
        command: str | None = None,
        host: str | None = None,
        **kwargs
    ):
        kwargs.setdefault('category', ErrorCategory.TRANSPORT)
        kwargs.setdefault('severity', ErrorSeverity.HIGH)
        details = kwargs.setdefault('details', {})
        if command:
            details['command'] = command
        if host:
            details['host'] = host
        kwargs.setdefault('recovery_suggestion',
                          'Check connectivity and credentials for the remote host')
        super().__init__(message, **kwargs)


class LogicalCommandFailure(BaseServiceControlException):
    """The remote command ran but the service rejected the transition."""

    def __init__(
        self,
        message: str,
        reason: str,
        code: int | None = None,
        **kwargs
    ):
        kwargs.setdefault('category', ErrorCategory.COMMAND)
        details = kwargs.setdefault('details', {})
        details['reason'] = reason
        if code is not None:
            details['code'] = code
        self.reason = reason
        self.code = code
        super().__init__(message, **kwargs)


class ConvergenceTimeout(BaseServiceControlException):
    """The wait deadline elapsed before the target status was observed."""

    def __init__(
        self,
        message: str,
        target_status: str | None = None,
        last_status: str | None = None,
        **kwargs
    ):
        kwargs.setdefault('category', ErrorCategory.CONVERGENCE)
        details = kwargs.setdefault('details', {})
        if target_status:
            details['target_status'] = target_status
        if last_status:
            details['last_status'] = last_status
        super().__init__(message, **kwargs)


class UnexpectedStateError(BaseServiceControlException):
    """A status outside the expected transitional set was observed while waiting."""

    def __init__(
        self,
        message: str,
        target_status: str | None = None,
        observed_status: str | None = None,
        **kwargs
    ):
        kwargs.setdefault('category', ErrorCategory.CONVERGENCE)
        details = kwargs.setdefault('details', {})
        if target_status:
            details['target_status'] = target_status
        if observed_status:
            details['observed_status'] = observed_status
        self.observed_status = observed_status
        super().__init__(message, **kwargs)


class StatusPollError(TransportError):
    """A status poll failed while waiting for convergence."""


class CacheWriteFailure(BaseServiceControlException):
    """A best-effort status write to storage failed."""

    def __init__(self, message: str, service_name: str | None = None, **kwargs):
        kwargs.setdefault('category', ErrorCategory.STORAGE)
        kwargs.setdefault('severity', ErrorSeverity.LOW)
        if service_name:
            kwargs.setdefault('details', {})['service_name'] = service_name
        super().__init__(message, **kwargs)


class ServerNotFoundError(BaseServiceControlException):
    """Requested server record does not exist."""

    def __init__(self, message: str, server_id: int | None = None, **kwargs):
        kwargs.setdefault('category', ErrorCategory.NOT_FOUND)
        kwargs.setdefault('severity', ErrorSeverity.LOW)
        if server_id is not None:
            kwargs.setdefault('details', {})['server_id'] = server_id
        super().__init__(message, **kwargs)


class ServiceNotFoundError(BaseServiceControlException):
    """Requested service record does not exist."""

    def __init__(
        self,
        message: str,
        server_id: int | None = None,
        service_id: int | None = None,
        **kwargs
    ):
        kwargs.setdefault('category', ErrorCategory.NOT_FOUND)
        kwargs.setdefault('severity', ErrorSeverity.LOW)
        details = kwargs.setdefault('details', {})
        if server_id is not None:
            details['server_id'] = server_id
        if service_id is not None:
            details['service_id'] = service_id
        super().__init__(message, **kwargs)


class HostUnreachableError(BaseServiceControlException):
    """The remote host did not answer the reachability probe."""

    def __init__(self, message: str, address: str | None = None, port: int | None = None, **kwargs):
        kwargs.setdefault('category', ErrorCategory.NETWORK)
        details = kwargs.setdefault('details', {})
        if address:
            details['address'] = address
        if port:
            details['port'] = port
        kwargs.setdefault('recovery_suggestion', 'Verify the host is online and the port is open')
        super().__init__(message, **kwargs)


class ConfigurationError(BaseServiceControlException):
    """Errors related to configuration and settings."""

    def __init__(
        self,
        message: str,
        config_key: str | None = None,
        config_value: Any | None = None,
        **kwargs
    ):
        kwargs.setdefault('category', ErrorCategory.CONFIGURATION)
        details = kwargs.setdefault('details', {})
        if config_key:
            details['config_key'] = config_key
        if config_value is not None:
            details['config_value'] = str(config_value)
        super().__init__(message, **kwargs)


class ValidationError(BaseServiceControlException):
    """Errors related to data validation."""

    def __init__(
        self,
        message: str,
        field: str | None = None,
        value: Any | None = None,
        **kwargs
    ):
        kwargs.setdefault('category', ErrorCategory.VALIDATION)
        details = kwargs.setdefault('details', {})
        if field:
            details['field'] = field
        if value is not None:
            details['value'] = str(value)
        super().__init__(message, **kwargs)


class SystemError(BaseServiceControlException):
    """Unexpected internal errors."""

    def __init__(self, message: str, **kwargs):
        kwargs.setdefault('category', ErrorCategory.SYSTEM)
        super().__init__(message, **kwargs)


# Exception mapping for converting standard exceptions
EXCEPTION_MAPPING = {
    ConnectionRefusedError: TransportError,
    ConnectionError: TransportError,
    TimeoutError: TransportError,
    OSError: TransportError,
    ValueError: ValidationError,
    KeyError: ValidationError,
    AttributeError: ConfigurationError,
}


def convert_exception(
    exc: Exception,
    default_message: str | None = None,
    **kwargs
) -> BaseServiceControlException:
    """
    Convert standard exceptions to the unified exception format.

    Args:
        exc: The exception to convert
        default_message: Default message if none can be extracted
        **kwargs: Additional arguments for the exception constructor

    Returns:
        Converted BaseServiceControlException
    """
    exc_type = type(exc)
    message = default_message or str(exc) or f"Unexpected {exc_type.__name__}"

    target_exception_class = EXCEPTION_MAPPING.get(exc_type, SystemError)

    kwargs.setdefault('details', {}).update({
        'original_exception_type': exc_type.__name__,
        'original_exception_message': str(exc)
    })

    return target_exception_class(message, **kwargs)
