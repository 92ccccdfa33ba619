"""
In-memory server and service storage.

Holds the inventory of managed servers and their controllable services along
with the last known status label of each service. The inventory can be
seeded from a JSON file of the form::

    {
        "servers": [{"id": 1, "name": "web-01", "address": "10.0.0.5",
                     "username": "svc", "password": "..."}],
        "services": [{"id": 1, "server_id": 1, "service_name": "Spooler",
                      "displayed_name": "Print Spooler"}]
    }
"""

import json
import logging
from datetime import UTC, datetime
from pathlib import Path
from threading import RLock

from ..core.exceptions import ConfigurationError, ServerNotFoundError, ServiceNotFoundError
from ..models.records import ServerRecord, ServiceRecord

logger = logging.getLogger(__name__)


class ServerStatusSink:
    """Status writes for the services of one server."""

    def __init__(self, storage: "InMemoryStorage", server_id: int):
        self.storage = storage
        self.server_id = server_id

    async def change_service_status(self, service_name: str, status: str) -> None:
        await self.storage.change_service_status(self.server_id, service_name, status)


class InMemoryStorage:
    """Thread-safe in-memory implementation of ``ServiceStorage``."""

    def __init__(self):
        self._servers: dict[int, ServerRecord] = {}
        self._services: dict[tuple[int, int], ServiceRecord] = {}
        self._lock = RLock()

    def add_server(self, server: ServerRecord) -> ServerRecord:
        with self._lock:
            self._servers[server.id] = server
        return server

    def add_service(self, service: ServiceRecord) -> ServiceRecord:
        with self._lock:
            if service.server_id not in self._servers:
                raise ServerNotFoundError(
                    f"Server {service.server_id} not found",
                    server_id=service.server_id
                )
            self._services[(service.server_id, service.id)] = service
        return service

    async def get_server(self, server_id: int) -> ServerRecord:
        with self._lock:
            server = self._servers.get(server_id)
        if server is None:
            raise ServerNotFoundError(f"Server {server_id} not found", server_id=server_id)
        return server

    async def get_service(self, server_id: int, service_id: int) -> ServiceRecord:
        with self._lock:
            service = self._services.get((server_id, service_id))
        if service is None:
            raise ServiceNotFoundError(
                f"Service {service_id} not found on server {server_id}",
                server_id=server_id,
                service_id=service_id
            )
        return service

    async def list_services(self, server_id: int) -> list[ServiceRecord]:
        with self._lock:
            return [s for (sid, _), s in self._services.items() if sid == server_id]

    async def change_service_status(self, server_id: int, service_name: str, status: str) -> None:
        """Update the status label of every record of ``service_name`` on a server."""
        now = datetime.now(UTC)
        with self._lock:
            for key, service in self._services.items():
                if key[0] == server_id and service.service_name == service_name:
                    self._services[key] = service.model_copy(update={"status": status, "updated_at": now})

    def status_sink(self, server_id: int) -> ServerStatusSink:
        return ServerStatusSink(self, server_id)

    def load_inventory(self, path: Path) -> None:
        """Seed servers and services from a JSON inventory file."""
        try:
            data = json.loads(Path(path).read_text())
        except (OSError, json.JSONDecodeError) as exc:
            raise ConfigurationError(
                f"Failed to read inventory {path}: {exc}",
                config_key="storage.inventory_path",
                config_value=path
            ) from exc

        for item in data.get("servers", []):
            self.add_server(ServerRecord.model_validate(item))
        for item in data.get("services", []):
            self.add_service(ServiceRecord.model_validate(item))

        logger.info(
            f"Loaded inventory from {path}: {len(self._servers)} servers, {len(self._services)} services",
            extra={"event_type": "inventory_loaded"}
        )
