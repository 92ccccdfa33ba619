"""
Configuration schema and validation for oaServiceControl.

This module provides structured configuration with validation and
environment variable support for the API, the remote transport and the
service control timings.
"""

import ipaddress
from enum import Enum
from pathlib import Path
from typing import TYPE_CHECKING, Optional, List

from pydantic import BaseModel, Field, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

if TYPE_CHECKING:
    from ..control.backoff import BackoffSchedule


class LogLevel(str, Enum):
    """Supported log levels."""
    DEBUG = "DEBUG"
    INFO = "INFO"
    WARNING = "WARNING"
    ERROR = "ERROR"
    CRITICAL = "CRITICAL"


class NetworkConfig(BaseModel):
    """Network-related configuration."""
    host: str = Field(default="0.0.0.0", description="API host address")
    port: int = Field(default=9090, ge=1, le=65535, description="API port number")
    allowed_subnets: List[str] = Field(
        default=["100.64.0.0/10"],
        description="Client networks allowed to reach the API"
    )

    @field_validator('allowed_subnets')
    @classmethod
    def validate_subnets(cls, v):
        """Validate subnet format."""
        for subnet in v:
            try:
                ipaddress.ip_network(subnet, strict=False)
            except ValueError:
                raise ValueError(f"Invalid subnet format: {subnet}")
        return v


class SecurityConfig(BaseModel):
    """Security-related configuration."""
    enable_cors: bool = Field(default=True, description="Enable CORS middleware")
    cors_origins: List[str] = Field(default=["*"], description="Allowed CORS origins")
    enable_subnet_restriction: bool = Field(
        default=True,
        description="Restrict access to the allowed subnets"
    )


class LoggingConfig(BaseModel):
    """Logging configuration."""
    level: LogLevel = Field(default=LogLevel.INFO, description="Log level")
    format: str = Field(
        default="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        description="Log format string"
    )
    enable_structured_logging: bool = Field(
        default=False,
        description="Enable structured JSON logging"
    )
    log_to_file: bool = Field(default=False, description="Enable file logging")
    log_file_path: Optional[Path] = Field(default=None, description="Log file path")
    max_file_size_mb: int = Field(default=100, ge=1, description="Max log file size in MB")
    backup_count: int = Field(default=5, ge=1, description="Number of backup log files")

    @field_validator('log_file_path', mode='before')
    @classmethod
    def validate_log_path(cls, v):
        """Expand log file path."""
        if v is None:
            return None
        return Path(v).expanduser().resolve()


class ControlConfig(BaseModel):
    """Timings for status queries, actions and convergence waits."""
    status_timeout: float = Field(default=5.0, gt=0, description="Status query deadline in seconds")
    action_timeout: float = Field(default=30.0, gt=0, description="Start/stop command deadline in seconds")
    wait_timeout: float = Field(default=30.0, gt=0, description="Convergence wait deadline in seconds")

    backoff_initial_delay: float = Field(default=0.1, gt=0, description="First poll delay in seconds")
    backoff_multiplier: float = Field(default=2.0, ge=1, description="Delay growth factor")
    backoff_max_delay: float = Field(default=5.0, gt=0, description="Delay cap in seconds")

    serialize_operations: bool = Field(
        default=True,
        description="Serialize operations on the same service at the API boundary"
    )

    @model_validator(mode='after')
    def validate_backoff(self):
        """Ensure the delay cap is not below the initial delay."""
        if self.backoff_max_delay < self.backoff_initial_delay:
            raise ValueError(
                f"backoff_max_delay ({self.backoff_max_delay}) must be >= "
                f"backoff_initial_delay ({self.backoff_initial_delay})"
            )
        return self

    def backoff_schedule(self) -> "BackoffSchedule":
        """Polling schedule for convergence waits, bounded by ``wait_timeout``."""
        from ..control.backoff import BackoffSchedule

        return BackoffSchedule(
            initial_delay=self.backoff_initial_delay,
            multiplier=self.backoff_multiplier,
            max_delay=self.backoff_max_delay,
            deadline=self.wait_timeout,
        )


class RemoteConfig(BaseModel):
    """Remote command transport configuration."""
    port: int = Field(default=22, ge=1, le=65535, description="Remote command port")
    connect_timeout: float = Field(default=10.0, gt=0, description="Connection timeout in seconds")
    check_reachability: bool = Field(default=True, description="Probe the host before connecting")
    reachability_timeout: float = Field(default=1.0, gt=0, description="Reachability probe timeout")


class StorageConfig(BaseModel):
    """Service inventory storage configuration."""
    inventory_path: Optional[Path] = Field(
        default=None,
        description="JSON file used to seed servers and services"
    )

    @field_validator('inventory_path', mode='before')
    @classmethod
    def expand_inventory_path(cls, v):
        if v is None or v == "":
            return None
        return Path(v).expanduser().resolve()


class DevConfig(BaseModel):
    """Development and debugging configuration."""
    debug: bool = Field(default=False, description="Enable debug mode")
    include_traceback: bool = Field(default=False, description="Include tracebacks in responses")

    @model_validator(mode='after')
    def sync_with_debug(self):
        """Auto-enable traceback in debug mode."""
        if self.debug:
            self.include_traceback = True
        return self


class AppConfig(BaseSettings):
    """
    Main application configuration.

    Combines all configuration sections with validation and environment variable support.
    Nested values are read from variables such as ``CONTROL__WAIT_TIMEOUT=45``.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_nested_delimiter="__",
        case_sensitive=False,
        extra="ignore",
    )

    network: NetworkConfig = Field(default_factory=NetworkConfig)
    security: SecurityConfig = Field(default_factory=SecurityConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)
    control: ControlConfig = Field(default_factory=ControlConfig)
    remote: RemoteConfig = Field(default_factory=RemoteConfig)
    storage: StorageConfig = Field(default_factory=StorageConfig)
    dev: DevConfig = Field(default_factory=DevConfig)

    app_name: str = Field(default="oaServiceControl")
    app_version: str = Field(default="1.0.0")
    environment: str = Field(default="production", description="Environment name")

    def is_development(self) -> bool:
        """Check if running in development mode."""
        return self.dev.debug or self.environment.lower() in ['dev', 'development', 'debug']

    def is_production(self) -> bool:
        """Check if running in production mode."""
        return self.environment.lower() in ['prod', 'production']
