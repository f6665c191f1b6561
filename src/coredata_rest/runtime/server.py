"""
Application builder - turns a DataModelSpec into a FastAPI application.

Startup runs strictly in this order, single-threaded, before any route is
registered:

1. build the model registry (two phases)
2. converge the database (additive migrations)
3. create one CRUD service per record type
4. mount one router per record type and the exception handlers

No request can observe a partially migrated schema.
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import sqlalchemy as sa
from fastapi import FastAPI

from coredata_rest._version import get_version
from coredata_rest.runtime.crud_service import CRUDService
from coredata_rest.runtime.exception_handlers import register_exception_handlers
from coredata_rest.runtime.registry import ModelRegistry, register_entities
from coredata_rest.runtime.repository import RecordRepository
from coredata_rest.runtime.route_generator import RouteGenerator
from coredata_rest.runtime.route_validator import validate_routes
from coredata_rest.specs import DataModelSpec

logger = logging.getLogger("coredata.server")

DEFAULT_DATABASE_URL = "sqlite:///.coredata/data.db"

_TRUTHY = {"1", "true", "yes", "on"}


# =============================================================================
# Server Configuration
# =============================================================================


@dataclass
class ServerConfig:
    """
    Configuration for CoreDataBackendApp.

    Groups all initialization options into a single object.
    """

    # Database settings
    database_url: str | None = None  # falls back to DATABASE_URL, then local SQLite
    echo_sql: bool = False

    # Fields left out of list/read responses
    serialization_exclude: tuple[str, ...] = ("deviceToken",)

    # Logging
    log_dir: Path | None = None
    log_level: str = "INFO"

    # Raise instead of warn on duplicate routes
    strict_routes: bool = False

    extra_engine_options: dict[str, Any] = field(default_factory=dict)

    @classmethod
    def from_env(cls) -> ServerConfig:
        """Build a config from environment variables."""
        log_dir = os.environ.get("COREDATA_LOG_DIR")
        return cls(
            database_url=os.environ.get("DATABASE_URL"),
            echo_sql=os.environ.get("COREDATA_ECHO_SQL", "").lower() in _TRUTHY,
            log_dir=Path(log_dir) if log_dir else None,
            log_level=os.environ.get("COREDATA_LOG_LEVEL", "INFO"),
        )

    def resolved_database_url(self) -> str:
        url = self.database_url or os.environ.get("DATABASE_URL") or DEFAULT_DATABASE_URL
        # Normalize Heroku's postgres:// to postgresql://
        if url.startswith("postgres://"):
            url = url.replace("postgres://", "postgresql://", 1)
        return url


def create_database_engine(config: ServerConfig) -> sa.Engine:
    """Create the SQLAlchemy engine, preparing local SQLite paths."""
    url = sa.make_url(config.resolved_database_url())
    options: dict[str, Any] = {"echo": config.echo_sql, **config.extra_engine_options}

    if url.get_backend_name() == "sqlite":
        # Requests run on threadpool workers
        options.setdefault("connect_args", {"check_same_thread": False})
        if url.database and url.database != ":memory:":
            Path(url.database).parent.mkdir(parents=True, exist_ok=True)

    return sa.create_engine(url, **options)


# =============================================================================
# Application Builder
# =============================================================================


class CoreDataBackendApp:
    """
    Creates a complete FastAPI application from a DataModelSpec.
    """

    def __init__(
        self,
        model: DataModelSpec,
        config: ServerConfig | None = None,
        *,
        engine: sa.Engine | None = None,
    ):
        """
        Args:
            model: Data model to serve
            config: Server configuration (defaults from ``ServerConfig()``)
            engine: Pre-built engine; one is created from the config otherwise
        """
        self.model = model
        self.config = config or ServerConfig()
        self.engine = engine or create_database_engine(self.config)
        self.registry: ModelRegistry | None = None
        self.services: dict[str, CRUDService] = {}
        self._app: FastAPI | None = None

    def _build_services(self, registry: ModelRegistry) -> dict[str, CRUDService]:
        return {
            key: CRUDService(
                record_type,
                RecordRepository(self.engine, record_type),
                serialization_exclude=self.config.serialization_exclude,
            )
            for key, record_type in registry.items()
        }

    def build(self) -> FastAPI:
        """
        Build the application.

        Raises:
            ConfigurationError: If the model cannot be registered
            MigrationError: If the database cannot be converged
        """
        if self._app is not None:
            return self._app

        self.registry = register_entities(self.model.entities, self.engine)
        for plan in self.registry.migrations:
            for action in plan.actions:
                logger.info("Migration applied: %s", action.describe())

        self.services = self._build_services(self.registry)

        app = FastAPI(
            title=self.model.name,
            version=self.model.version or get_version(),
            redirect_slashes=True,
        )
        app.state.registry = self.registry
        app.state.engine = self.engine

        for router in RouteGenerator(self.services).generate_all_routes():
            app.include_router(router)
        register_exception_handlers(app)
        validate_routes(app, strict=self.config.strict_routes)

        logger.info(
            "Serving %d entities: %s",
            len(self.registry),
            ", ".join(rt.table_name for rt in self.registry.values()),
        )
        self._app = app
        return app
