"""
Data model specification types.

This module exports all input types consumed by the runtime.
"""

from coredata_rest.specs.entity import (
    AttributeSpec,
    AttributeType,
    EntitySpec,
    RelationshipSpec,
)
from coredata_rest.specs.model_spec import DataModelSpec

__all__ = [
    "AttributeSpec",
    "AttributeType",
    "DataModelSpec",
    "EntitySpec",
    "RelationshipSpec",
]
