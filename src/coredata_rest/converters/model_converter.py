"""
Model converter - turns a parsed model description into a DataModelSpec.

The model-format parser is an external collaborator; what reaches us is a
list of entities exposing ``name``, ``attributes`` and ``relationships``,
either as plain mappings (decoded JSON) or as objects with those attributes.
"""

from __future__ import annotations

import json
from collections.abc import Iterable, Mapping
from pathlib import Path
from typing import Any

from pydantic import ValidationError

from coredata_rest.core.errors import ConfigurationError
from coredata_rest.specs import AttributeSpec, DataModelSpec, EntitySpec, RelationshipSpec

# Keys read from each description object, camelCase as the model format spells them
_ATTRIBUTE_KEYS = (
    "name",
    "type",
    "optional",
    "indexed",
    "defaultValue",
    "transient",
    "minimumValue",
    "maximumValue",
)
_RELATIONSHIP_KEYS = ("name", "destination", "toMany", "optional", "inverseName")

_SNAKE_FALLBACKS = {
    "defaultValue": "default_value",
    "minimumValue": "minimum_value",
    "maximumValue": "maximum_value",
    "toMany": "to_many",
    "inverseName": "inverse",
}


def _read(source: Any, key: str) -> Any:
    """Read ``key`` from a mapping or object, trying the snake_case spelling too."""
    alt = _SNAKE_FALLBACKS.get(key)
    if isinstance(source, Mapping):
        if key in source:
            return source[key]
        return source.get(alt) if alt else None
    if hasattr(source, key):
        return getattr(source, key)
    return getattr(source, alt, None) if alt else None


def _collect(source: Any, keys: Iterable[str]) -> dict[str, Any]:
    data: dict[str, Any] = {}
    for key in keys:
        value = _read(source, key)
        if value is not None:
            data[key] = value
    return data


def convert_attribute(source: Any) -> AttributeSpec:
    return AttributeSpec.model_validate(_collect(source, _ATTRIBUTE_KEYS))


def convert_relationship(source: Any) -> RelationshipSpec:
    return RelationshipSpec.model_validate(_collect(source, _RELATIONSHIP_KEYS))


def convert_entity(source: Any) -> EntitySpec:
    """Convert one entity description (mapping or object) to an EntitySpec."""
    return EntitySpec(
        name=_read(source, "name"),
        attributes=[convert_attribute(a) for a in _read(source, "attributes") or []],
        relationships=[convert_relationship(r) for r in _read(source, "relationships") or []],
    )


def convert_model_description(description: Any, name: str | None = None) -> DataModelSpec:
    """
    Convert a model description to a DataModelSpec.

    Accepts either a mapping with an ``entities`` list (and optional ``name``
    and ``version``) or a bare list of entity descriptions.

    Raises:
        ConfigurationError: If the description is malformed.
    """
    if isinstance(description, Mapping):
        entities = description.get("entities")
        name = name or description.get("name")
        version = description.get("version")
    else:
        entities = description
        version = None

    if entities is None or isinstance(entities, (str, bytes)) or not isinstance(entities, Iterable):
        raise ConfigurationError("Model description must contain a list of entities")

    try:
        return DataModelSpec(
            name=name or "model",
            version=str(version) if version is not None else None,
            entities=[convert_entity(e) for e in entities],
        )
    except ValidationError as exc:
        raise ConfigurationError(f"Malformed model description: {exc}") from exc


def load_model_file(path: str | Path) -> DataModelSpec:
    """
    Load a JSON model description from disk.

    Raises:
        ConfigurationError: If the file is missing, not JSON, or malformed.
    """
    model_path = Path(path)
    try:
        raw = json.loads(model_path.read_text(encoding="utf-8"))
    except FileNotFoundError as exc:
        raise ConfigurationError(f"Model file not found: {model_path}") from exc
    except json.JSONDecodeError as exc:
        raise ConfigurationError(f"Model file {model_path} is not valid JSON: {exc}") from exc
    return convert_model_description(raw, name=None if isinstance(raw, Mapping) else model_path.stem)
