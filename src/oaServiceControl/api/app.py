"""
Application factory.

Wires storage, the executor factory, the reachability checker and the
service controller into a FastAPI app. Every collaborator can be replaced,
which is how the tests run the API without remote hosts.
"""

import logging
from contextlib import asynccontextmanager
from datetime import UTC, datetime

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from .. import __version__
from ..control.controller import ServiceController
from ..control.locks import ServiceLockRegistry
from ..core.config_schema import AppConfig
from ..core.error_handler import ErrorHandlingMiddleware
from ..core.interfaces import ExecutorFactory, ReachabilityChecker
from ..core.logging import RequestTrackingMiddleware
from ..middleware import AllowedSubnetMiddleware
from ..remote.executor import SSHExecutorFactory
from ..remote.reachability import TCPReachabilityChecker
from ..storage.memory import InMemoryStorage
from .router import router as services_router

logger = logging.getLogger(__name__)


def create_app(
    config: AppConfig,
    storage=None,
    executor_factory: ExecutorFactory | None = None,
    checker: ReachabilityChecker | None = None,
    controller: ServiceController | None = None,
    locks: ServiceLockRegistry | None = None,
) -> FastAPI:
    """Build the API application from configuration and optional collaborators."""
    if storage is None:
        storage = InMemoryStorage()
    if locks is None and config.control.serialize_operations:
        locks = ServiceLockRegistry()

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        logger.info(
            f"Starting {config.app_name} v{__version__}",
            extra={"environment": config.environment, "event_type": "startup"}
        )

        inventory = config.storage.inventory_path
        if inventory is not None and hasattr(storage, "load_inventory"):
            storage.load_inventory(inventory)

        yield

        logger.info(f"Shutting down {config.app_name}", extra={"event_type": "shutdown"})

    app = FastAPI(
        title="OrangeAd Service Control API",
        description="Stop, start and restart services on managed Windows hosts",
        version=__version__,
        lifespan=lifespan
    )

    app.state.config = config
    app.state.storage = storage
    app.state.executor_factory = executor_factory or SSHExecutorFactory(config.remote)
    app.state.reachability_checker = checker or TCPReachabilityChecker()
    app.state.controller = controller or ServiceController(config.control)
    app.state.locks = locks

    # Added innermost first so the request ID is set when errors are rendered
    app.add_middleware(
        ErrorHandlingMiddleware,
        include_traceback=config.dev.include_traceback
    )
    app.add_middleware(RequestTrackingMiddleware)

    if config.security.enable_subnet_restriction:
        app.add_middleware(
            AllowedSubnetMiddleware,
            allowed_subnets=config.network.allowed_subnets
        )

    if config.security.enable_cors:
        app.add_middleware(
            CORSMiddleware,
            allow_origins=config.security.cors_origins,
            allow_credentials=True,
            allow_methods=["*"],
            allow_headers=["*"],
        )

    app.include_router(services_router)

    @app.get("/")
    async def root():
        """Root endpoint with API information."""
        return {
            "name": config.app_name,
            "version": __version__,
            "endpoints": {
                "health": "/health",
                "services": "/servers/{server_id}/services",
                "refresh": "/servers/{server_id}/services/refresh",
                "status": "/servers/{server_id}/services/{service_id}/status",
                "control": "/servers/{server_id}/services/{service_id}/{stop|start|restart}",
                "docs": "/docs"
            }
        }

    @app.get("/health")
    async def health():
        """Liveness check."""
        return {
            "status": "healthy",
            "version": __version__,
            "timestamp": datetime.now(UTC).isoformat(),
        }

    return app
