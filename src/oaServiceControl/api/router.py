"""
Service control endpoints.

Each control request resolves the stored server and service records, probes
the host, builds an executor for it and hands the operation to the
``ServiceController``. The controller's outcome decides the HTTP status code.
"""

import logging
from contextlib import nullcontext
from datetime import UTC, datetime

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse

from ..control.controller import ServiceController
from ..control.locks import ServiceLockRegistry
from ..core.config_schema import AppConfig
from ..core.error_handler import get_outcome_status_code
from ..core.exceptions import HostUnreachableError
from ..core.interfaces import ExecutorFactory, ReachabilityChecker, ServiceStorage
from ..core.logging import log_with_context
from ..models.operations import OperationKind, ServiceIdentity
from ..models.records import ServerRecord, ServiceRecord
from ..models.schemas import (
    ControlResponse,
    ErrorResponse,
    ServiceInfo,
    ServiceListResponse,
    ServiceRefreshResponse,
    ServiceStatusResponse,
)
from .dependencies import (
    get_config,
    get_controller,
    get_executor_factory,
    get_locks,
    get_reachability_checker,
    get_storage,
)

logger = logging.getLogger(__name__)

router = APIRouter(
    prefix="/servers",
    tags=["Services"],
    responses={404: {"model": ErrorResponse}, 502: {"model": ErrorResponse}},
)


def _identity(service: ServiceRecord) -> ServiceIdentity:
    return ServiceIdentity(service_name=service.service_name, display_name=service.displayed_name)


async def _ensure_reachable(
    server: ServerRecord,
    config: AppConfig,
    checker: ReachabilityChecker,
) -> None:
    if not config.remote.check_reachability:
        return

    port = server.port or config.remote.port
    if not await checker.is_reachable(server.address, port, config.remote.reachability_timeout):
        raise HostUnreachableError(
            f"Server `{server.name}` is unreachable at {server.address}:{port}",
            address=server.address,
            port=port
        )


def _executor_for(server: ServerRecord, factory: ExecutorFactory):
    return factory.create(
        server.address,
        server.username,
        server.password.get_secret_value(),
        port=server.port,
    )


def _service_info(service: ServiceRecord) -> ServiceInfo:
    return ServiceInfo(
        id=service.id,
        service_name=service.service_name,
        displayed_name=service.displayed_name,
        status=service.status,
        updated_at=service.updated_at.isoformat(),
    )


@router.get("/{server_id}/services", response_model=ServiceListResponse)
async def list_services(server_id: int, storage: ServiceStorage = Depends(get_storage)):
    """List the services registered on a server with their cached status."""
    await storage.get_server(server_id)
    services = await storage.list_services(server_id)
    return ServiceListResponse(
        server_id=server_id,
        services=[_service_info(s) for s in services],
        count=len(services),
    )


@router.post("/{server_id}/services/refresh", response_model=ServiceRefreshResponse)
async def refresh_services(
    server_id: int,
    config: AppConfig = Depends(get_config),
    storage: ServiceStorage = Depends(get_storage),
    controller: ServiceController = Depends(get_controller),
    factory: ExecutorFactory = Depends(get_executor_factory),
    checker: ReachabilityChecker = Depends(get_reachability_checker),
):
    """Query the live status of every service on a server and resync the cache."""
    server = await storage.get_server(server_id)
    services = await storage.list_services(server_id)
    await _ensure_reachable(server, config, checker)

    results = await controller.refresh_statuses(
        [_identity(s) for s in services],
        _executor_for(server, factory),
        storage.status_sink(server_id),
    )
    failed = [name for name, status in results.items() if status is None]

    services = await storage.list_services(server_id)
    return ServiceRefreshResponse(
        server_id=server_id,
        services=[_service_info(s) for s in services],
        count=len(services),
        refreshed=len(results) - len(failed),
        failed=failed,
        timestamp=datetime.now(UTC).isoformat(),
    )


@router.get("/{server_id}/services/{service_id}/status", response_model=ServiceStatusResponse)
async def get_service_status(
    server_id: int,
    service_id: int,
    config: AppConfig = Depends(get_config),
    storage: ServiceStorage = Depends(get_storage),
    controller: ServiceController = Depends(get_controller),
    factory: ExecutorFactory = Depends(get_executor_factory),
    checker: ReachabilityChecker = Depends(get_reachability_checker),
):
    """Query the live status of a service and refresh the cached value."""
    server = await storage.get_server(server_id)
    service = await storage.get_service(server_id, service_id)
    await _ensure_reachable(server, config, checker)

    identity = _identity(service)
    status = await controller.query_status(identity, _executor_for(server, factory))
    await controller.record_status(storage.status_sink(server_id), identity, status)

    return ServiceStatusResponse(
        server_id=server_id,
        service_id=service_id,
        service_name=service.service_name,
        displayed_name=service.displayed_name,
        status=status.label,
        status_code=int(status),
        timestamp=datetime.now(UTC).isoformat(),
    )


@router.post(
    "/{server_id}/services/{service_id}/{operation}",
    response_model=ControlResponse,
    responses={409: {"model": ControlResponse}, 400: {"model": ControlResponse}, 500: {"model": ControlResponse}},
)
async def control_service(
    server_id: int,
    service_id: int,
    operation: OperationKind,
    config: AppConfig = Depends(get_config),
    storage: ServiceStorage = Depends(get_storage),
    controller: ServiceController = Depends(get_controller),
    factory: ExecutorFactory = Depends(get_executor_factory),
    checker: ReachabilityChecker = Depends(get_reachability_checker),
    locks: ServiceLockRegistry | None = Depends(get_locks),
):
    """Stop, start or restart a service."""
    server = await storage.get_server(server_id)
    service = await storage.get_service(server_id, service_id)
    await _ensure_reachable(server, config, checker)

    identity = _identity(service)
    executor = _executor_for(server, factory)
    log_with_context(
        logger,
        logging.INFO,
        f"{operation.value.capitalize()} requested for service `{identity.label}` on server `{server.name}`",
        server_id=server_id,
        service_name=service.service_name,
        operation=operation.value,
        event_type="control_requested",
    )

    guard = locks.hold((server_id, service.service_name)) if locks is not None else nullcontext()
    async with guard:
        outcome = await controller.execute(
            operation,
            identity,
            executor,
            storage.status_sink(server_id),
        )

    body = ControlResponse.from_outcome(operation, service, outcome, datetime.now(UTC))
    return JSONResponse(
        status_code=get_outcome_status_code(outcome),
        content=body.model_dump(mode="json"),
    )
