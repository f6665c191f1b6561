"""
coredata-rest - serve a declarative entity model as a REST API.

This package provides:
- Specs: entity, attribute and relationship input types
- Converters: model description (dict / JSON) to DataModelSpec
- Runtime: schema synthesis, additive migrations, the model registry and
  the generic CRUD dispatcher (FastAPI + SQLAlchemy Core)
"""

from coredata_rest._version import get_version as _get_version

__version__ = _get_version()

from coredata_rest.specs import AttributeSpec, AttributeType, DataModelSpec, EntitySpec, RelationshipSpec

__all__ = [
    "AttributeSpec",
    "AttributeType",
    "DataModelSpec",
    "EntitySpec",
    "RelationshipSpec",
]
