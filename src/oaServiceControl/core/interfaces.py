"""
Service interfaces for oaServiceControl.

Defines protocol interfaces for the collaborators of the service controller
(remote command execution, status storage, reachability probing) so that
implementations can be swapped for fakes in tests.
"""

from typing import TYPE_CHECKING, Protocol

if TYPE_CHECKING:
    from ..models.records import ServerRecord, ServiceRecord


class RemoteCommandExecutor(Protocol):
    """Runs a command on a remote host and returns its text output.

    Implementations raise ``TransportError`` when the command could not be
    delivered or its output could not be read.
    """

    async def run_command(self, command: str) -> str:
        ...


class ExecutorFactory(Protocol):
    """Protocol for creating executors bound to one host."""

    def create(
        self,
        address: str,
        username: str,
        password: str,
        port: int | None = None,
    ) -> RemoteCommandExecutor:
        """Create an executor for the given host and credentials."""
        ...


class StatusSink(Protocol):
    """Write-only view of the status cache, bound to one host."""

    async def change_service_status(self, service_name: str, status: str) -> None:
        """Record the latest known status label of a service."""
        ...


class ServiceStorage(Protocol):
    """Protocol for server and service record storage."""

    async def get_server(self, server_id: int) -> "ServerRecord":
        """Get a server record with its credentials."""
        ...

    async def get_service(self, server_id: int, service_id: int) -> "ServiceRecord":
        """Get a service record registered on a server."""
        ...

    async def list_services(self, server_id: int) -> list["ServiceRecord"]:
        """List the service records registered on a server."""
        ...

    async def change_service_status(self, server_id: int, service_name: str, status: str) -> None:
        """Update the cached status label of every record of a service on a server."""
        ...

    def status_sink(self, server_id: int) -> StatusSink:
        """Get a write-only status view bound to one server."""
        ...


class ReachabilityChecker(Protocol):
    """Protocol for probing whether a host accepts connections."""

    async def is_reachable(self, address: str, port: int, timeout: float) -> bool:
        ...

