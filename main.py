#!/usr/bin/env python
"""
Service Control API Entry Point

Builds the application from environment configuration and serves it with uvicorn.
"""

import logging
import os
import sys

import uvicorn

from src.oaServiceControl.api.app import create_app
from src.oaServiceControl.core.config import APP_VERSION, app_config
from src.oaServiceControl.core.logging import setup_logging

logging_manager = setup_logging(app_config)
logger = logging.getLogger(__name__)

app = create_app(app_config)


def validate_startup_environment():
    """Validate runtime environment before starting the service."""
    if sys.version_info < (3, 12):
        logger.error(f"Python 3.12+ required, got {sys.version_info}")
        return False

    inventory = app_config.storage.inventory_path
    if inventory is not None and not inventory.exists():
        logger.error(f"Inventory file missing: {inventory}")
        return False

    logger.info(f"oaServiceControl v{APP_VERSION} starting")
    logger.info(f"Python: {sys.version}")
    logger.info(f"Working directory: {os.getcwd()}")
    logger.info(f"Host: {app_config.network.host}:{app_config.network.port}")

    return True


if __name__ == "__main__":
    if not validate_startup_environment():
        logger.error("Startup validation failed - exiting")
        sys.exit(1)

    try:
        uvicorn.run(
            "main:app",
            host=app_config.network.host,
            port=app_config.network.port,
            log_level=app_config.logging.level.value.lower(),
            reload=app_config.is_development(),
            access_log=True
        )
    except Exception as e:
        logger.error(f"Failed to start server: {e}")
        sys.exit(1)
