"""
Runtime - schema synthesis, migrations, model registry and CRUD dispatch.
"""

from coredata_rest.runtime.app_factory import create_app, run_app
from coredata_rest.runtime.registry import ModelRegistry, RecordType, register_entities
from coredata_rest.runtime.server import CoreDataBackendApp, ServerConfig

__all__ = [
    "CoreDataBackendApp",
    "ModelRegistry",
    "RecordType",
    "ServerConfig",
    "create_app",
    "register_entities",
    "run_app",
]
