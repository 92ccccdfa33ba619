"""
Stored server and service records.
"""

from datetime import UTC, datetime

from pydantic import BaseModel, ConfigDict, Field, SecretStr, field_validator

from ..control.commands import is_valid_service_name


class ServerRecord(BaseModel):
    """A managed host and the credentials used to reach it."""
    model_config = ConfigDict(extra="ignore")

    id: int
    name: str
    address: str = Field(min_length=1)
    username: str = Field(min_length=1)
    password: SecretStr = SecretStr("")
    port: int | None = Field(default=None, ge=1, le=65535)

    @field_validator('address')
    @classmethod
    def strip_address(cls, v: str) -> str:
        return v.strip()


class ServiceRecord(BaseModel):
    """A service registered for control on a server."""
    model_config = ConfigDict(extra="ignore")

    id: int
    server_id: int
    service_name: str = Field(min_length=1)
    displayed_name: str = ""
    status: str = "Unknown"
    updated_at: datetime = Field(default_factory=lambda: datetime.now(UTC))

    @field_validator('service_name')
    @classmethod
    def validate_service_name(cls, v: str) -> str:
        if not is_valid_service_name(v):
            raise ValueError(f"Invalid service name: {v!r}")
        return v
