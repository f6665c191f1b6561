"""App factory functions.

Convenience functions for creating and running coredata-rest applications,
including the ASGI factory used for deployment (``uvicorn --factory``).
"""

from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import Any

from fastapi import FastAPI

from coredata_rest.converters import convert_model_description, load_model_file
from coredata_rest.runtime.logging import setup_logging
from coredata_rest.runtime.server import CoreDataBackendApp, ServerConfig
from coredata_rest.specs import DataModelSpec

logger = logging.getLogger("coredata.server")


def create_app(
    model: DataModelSpec,
    database_url: str | None = None,
    config: ServerConfig | None = None,
) -> FastAPI:
    """
    Create a FastAPI application from a DataModelSpec.

    Args:
        model: Data model to serve
        database_url: Database URL (overrides config and DATABASE_URL)
        config: Server configuration

    Returns:
        FastAPI application

    Example:
        >>> model = load_model_file("model.json")
        >>> app = create_app(model, database_url="postgresql://...")
    """
    config = config or ServerConfig()
    if database_url:
        config.database_url = database_url
    return CoreDataBackendApp(model, config).build()


def create_app_from_dict(description: dict[str, Any], database_url: str | None = None) -> FastAPI:
    """Create an application from a decoded model description."""
    return create_app(convert_model_description(description), database_url=database_url)


def create_app_from_json(json_path: str | Path, database_url: str | None = None) -> FastAPI:
    """Create an application from a JSON model file."""
    return create_app(load_model_file(json_path), database_url=database_url)


def create_app_factory() -> FastAPI:
    """
    ASGI factory configured entirely from the environment.

    Reads the model from ``COREDATA_MODEL`` and everything else through
    ``ServerConfig.from_env()``::

        COREDATA_MODEL=model.json uvicorn coredata_rest.runtime.app_factory:create_app_factory --factory
    """
    model_path = os.environ.get("COREDATA_MODEL")
    if not model_path:
        raise RuntimeError("COREDATA_MODEL must point at a JSON model description")
    config = ServerConfig.from_env()
    setup_logging(config.log_dir, config.log_level)
    return create_app(load_model_file(model_path), config=config)


def run_app(
    model: DataModelSpec,
    host: str = "127.0.0.1",
    port: int = 8000,
    database_url: str | None = None,
    config: ServerConfig | None = None,
) -> None:
    """
    Run an application with uvicorn.

    Migrations run before the server starts accepting connections.
    """
    import uvicorn

    app = create_app(model, database_url=database_url, config=config)
    logger.info("Starting server on http://%s:%d", host, port)
    uvicorn.run(app, host=host, port=port, log_level="info")
