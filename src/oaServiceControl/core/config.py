"""Configuration management for oaServiceControl."""

import logging

from .config_schema import AppConfig

logger = logging.getLogger(__name__)

# App version
APP_VERSION = "1.0.0"

try:
    app_config = AppConfig()
except Exception as exc:
    # Fall back to defaults so the module stays importable with a broken .env
    logger.warning(f"Invalid configuration, using defaults: {exc}")
    app_config = AppConfig.model_construct(
        app_version=APP_VERSION,
        environment="development"
    )
