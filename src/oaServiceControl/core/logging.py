"""
Structured logging system with request tracing for oaServiceControl.

This module provides structured logging with JSON output and request
correlation IDs, so that every remote command issued for one API call can be
traced back to the request that triggered it.
"""

import json
import logging
import logging.handlers
import sys
import uuid
from contextvars import ContextVar
from datetime import UTC, datetime

from fastapi import Request
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.responses import Response

from .config_schema import AppConfig

_request_id_var: ContextVar[str | None] = ContextVar("request_id", default=None)

# Standard LogRecord attributes that are not "extra" fields
_RESERVED_ATTRS = frozenset([
    'name', 'msg', 'args', 'levelname', 'levelno', 'pathname',
    'filename', 'module', 'lineno', 'funcName', 'created',
    'msecs', 'relativeCreated', 'thread', 'threadName',
    'processName', 'process', 'message', 'exc_info',
    'exc_text', 'stack_info', 'taskName', 'getMessage'
])


class JSONFormatter(logging.Formatter):
    """
    JSON formatter for structured logging.

    Converts log records to structured JSON format with consistent fields
    and proper handling of exceptions and extra data.
    """

    def __init__(
        self,
        *,
        service_name: str = "oaServiceControl",
        service_version: str = "1.0.0",
        include_extra: bool = True
    ):
        super().__init__()
        self.service_name = service_name
        self.service_version = service_version
        self.include_extra = include_extra

    def format(self, record: logging.LogRecord) -> str:
        """Format log record as JSON."""
        log_entry = {
            "timestamp": datetime.fromtimestamp(
                record.created, tz=UTC
            ).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "service": {
                "name": self.service_name,
                "version": self.service_version
            }
        }

        request_id = _request_id_var.get()
        if request_id:
            log_entry["request_id"] = request_id

        if record.exc_info:
            log_entry["exception"] = {
                "type": record.exc_info[0].__name__ if record.exc_info[0] else None,
                "message": str(record.exc_info[1]) if record.exc_info[1] else None,
                "traceback": self.formatException(record.exc_info).split('\n')
            }

        log_entry["source"] = {
            "file": record.pathname,
            "line": record.lineno,
            "function": record.funcName
        }

        if self.include_extra:
            extra_fields = {}
            for key, value in record.__dict__.items():
                if key in _RESERVED_ATTRS:
                    continue
                try:
                    json.dumps(value)
                    extra_fields[key] = value
                except (TypeError, ValueError):
                    extra_fields[key] = str(value)

            if extra_fields:
                log_entry["extra"] = extra_fields

        return json.dumps(log_entry, ensure_ascii=False)


class RequestTrackingMiddleware(BaseHTTPMiddleware):
    """
    Middleware to add request correlation IDs and duration tracking.

    The request ID is stored on ``request.state`` and in a context variable
    so that log lines emitted deep inside the service controller carry it.
    """

    def __init__(self, app, logger_name: str = "oaServiceControl.requests"):
        super().__init__(app)
        self.logger = logging.getLogger(logger_name)

    async def dispatch(self, request: Request, call_next) -> Response:
        """Process request with tracking and logging."""
        request_id = self._get_or_generate_request_id(request)
        request.state.request_id = request_id
        token = _request_id_var.set(request_id)

        start_time = datetime.now(UTC)
        self.logger.info(
            f"Request started: {request.method} {request.url.path}",
            extra={
                "request_id": request_id,
                "method": request.method,
                "path": request.url.path,
                "client_host": request.client.host if request.client else None,
                "event_type": "request_start"
            }
        )

        try:
            response = await call_next(request)

            duration_ms = (datetime.now(UTC) - start_time).total_seconds() * 1000
            self.logger.info(
                f"Request completed: {request.method} {request.url.path} - "
                f"{response.status_code} ({duration_ms:.2f}ms)",
                extra={
                    "request_id": request_id,
                    "method": request.method,
                    "path": request.url.path,
                    "status_code": response.status_code,
                    "duration_ms": duration_ms,
                    "event_type": "request_complete"
                }
            )

            response.headers["X-Request-ID"] = request_id
            return response

        except Exception as exc:
            duration_ms = (datetime.now(UTC) - start_time).total_seconds() * 1000
            self.logger.error(
                f"Request failed: {request.method} {request.url.path} - "
                f"Error: {str(exc)} ({duration_ms:.2f}ms)",
                extra={
                    "request_id": request_id,
                    "method": request.method,
                    "path": request.url.path,
                    "duration_ms": duration_ms,
                    "error": str(exc),
                    "error_type": type(exc).__name__,
                    "event_type": "request_error"
                },
                exc_info=True
            )
            raise
        finally:
            _request_id_var.reset(token)

    def _get_or_generate_request_id(self, request: Request) -> str:
        """Get existing request ID or generate a new one."""
        request_id = request.headers.get("X-Request-ID")
        if request_id:
            return request_id

        trace_id = request.headers.get("X-Trace-ID")
        if trace_id:
            return trace_id

        return str(uuid.uuid4())


class LoggingManager:
    """
    Central logging configuration and management.

    Configures logging based on application settings and
    sets up formatters and handlers.
    """

    def __init__(self, config: AppConfig):
        self.config = config

    def setup_logging(self) -> None:
        """Set up logging configuration based on app config."""
        root_logger = logging.getLogger()
        root_logger.handlers.clear()

        log_level = getattr(logging, self.config.logging.level.value)
        root_logger.setLevel(log_level)

        self._setup_console_handler(root_logger)

        if self.config.logging.log_to_file and self.config.logging.log_file_path:
            self._setup_file_handler(root_logger)

        self._configure_third_party_loggers()

        app_logger = logging.getLogger("oaServiceControl")
        app_logger.info(
            f"Logging configured - Level: {self.config.logging.level.value}, "
            f"Structured: {self.config.logging.enable_structured_logging}",
            extra={
                "event_type": "logging_configured",
                "log_level": self.config.logging.level.value,
                "structured_logging": self.config.logging.enable_structured_logging,
                "file_logging": self.config.logging.log_to_file
            }
        )

    def _setup_console_handler(self, logger: logging.Logger) -> None:
        """Set up console logging handler."""
        console_handler = logging.StreamHandler(sys.stdout)

        if self.config.logging.enable_structured_logging:
            formatter = JSONFormatter(
                service_name=self.config.app_name,
                service_version=self.config.app_version
            )
        else:
            formatter = logging.Formatter(self.config.logging.format)

        console_handler.setFormatter(formatter)
        logger.addHandler(console_handler)

    def _setup_file_handler(self, logger: logging.Logger) -> None:
        """Set up file logging handler with rotation."""
        try:
            log_file = self.config.logging.log_file_path
            log_file.parent.mkdir(parents=True, exist_ok=True)

            file_handler = logging.handlers.RotatingFileHandler(
                filename=log_file,
                maxBytes=self.config.logging.max_file_size_mb * 1024 * 1024,
                backupCount=self.config.logging.backup_count
            )

            # Always use JSON format for file logs
            file_handler.setFormatter(JSONFormatter(
                service_name=self.config.app_name,
                service_version=self.config.app_version
            ))

            logger.addHandler(file_handler)

        except OSError as exc:
            # Log error but don't fail startup
            logging.getLogger("oaServiceControl.logging").error(
                f"Failed to set up file logging: {exc}",
                extra={"event_type": "logging_setup_error"}
            )

    def _configure_third_party_loggers(self) -> None:
        """Reduce noise from third-party libraries."""
        third_party_levels = {
            "uvicorn": logging.WARNING,
            "uvicorn.error": logging.INFO,
            "uvicorn.access": logging.WARNING,
            "fastapi": logging.WARNING,
            "paramiko": logging.WARNING,
        }

        for logger_name, level in third_party_levels.items():
            logging.getLogger(logger_name).setLevel(level)


def get_request_id() -> str | None:
    """Get the request ID of the request currently being handled, if any."""
    return _request_id_var.get()


def log_with_context(
    logger: logging.Logger,
    level: int,
    message: str,
    request_id: str | None = None,
    **extra_context
) -> None:
    """
    Log with additional context information.

    Args:
        logger: Logger instance to use
        level: Log level (logging.INFO, etc.)
        message: Log message
        request_id: Optional request ID
        **extra_context: Additional context fields
    """
    extra_data = extra_context.copy()

    if request_id:
        extra_data["request_id"] = request_id
    elif "request_id" not in extra_data:
        current_request_id = get_request_id()
        if current_request_id:
            extra_data["request_id"] = current_request_id

    logger.log(level, message, extra=extra_data)


# Global logging manager instance
_logging_manager: LoggingManager | None = None


def setup_logging(config: AppConfig) -> LoggingManager:
    """Set up global logging configuration."""
    global _logging_manager
    _logging_manager = LoggingManager(config)
    _logging_manager.setup_logging()
    return _logging_manager
