"""
SQLAlchemy bridge for EntitySpec.

Maps attribute types to storage types, derives the column set of an entity
and renders it as a SQLAlchemy ``Table``. The same ``ColumnSpec`` list drives
table creation, additive migration and request-time coercion, so there is a
single source of truth for what an entity stores.

Uses **SQLAlchemy Core only**: no ORM, no Session.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from enum import StrEnum
from typing import Any

import sqlalchemy as sa

from coredata_rest.core.errors import ConfigurationError
from coredata_rest.core.strings import foreign_key_column
from coredata_rest.specs.entity import AttributeSpec, AttributeType, EntitySpec

PRIMARY_KEY = "id"
PRIMARY_KEY_TYPE = "int4"

# =============================================================================
# Type mapping
# =============================================================================


class StorageType(StrEnum):
    """Column storage types."""

    INT2 = "int2"
    INT4 = "int4"
    INT8 = "int8"
    FLOAT4 = "float4"
    FLOAT8 = "float8"
    TIMESTAMP = "timestamp"
    BOOLEAN = "boolean"
    BYTEA = "bytea"
    VARCHAR = "varchar"

    @property
    def is_integer(self) -> bool:
        return self in (StorageType.INT2, StorageType.INT4, StorageType.INT8)

    @property
    def is_float(self) -> bool:
        return self in (StorageType.FLOAT4, StorageType.FLOAT8)

    @property
    def integer_bounds(self) -> tuple[int, int]:
        """Inclusive (min, max) an integer column can hold."""
        bits = _INTEGER_BITS.get(self)
        if bits is None:
            raise TypeError(f"{self} is not an integer storage type")
        return -(2 ** (bits - 1)), 2 ** (bits - 1) - 1


_INTEGER_BITS = {StorageType.INT2: 16, StorageType.INT4: 32, StorageType.INT8: 64}

# Largest value any integer column or SQL parameter can carry
MAX_SQL_INT = 2**63 - 1


# Decimal is stored as a double; exact decimals are not supported.
_ATTRIBUTE_STORAGE: dict[AttributeType, StorageType] = {
    AttributeType.INTEGER_16: StorageType.INT2,
    AttributeType.INTEGER_32: StorageType.INT4,
    AttributeType.INTEGER_64: StorageType.INT8,
    AttributeType.FLOAT: StorageType.FLOAT4,
    AttributeType.DOUBLE: StorageType.FLOAT8,
    AttributeType.DECIMAL: StorageType.FLOAT8,
    AttributeType.DATE: StorageType.TIMESTAMP,
    AttributeType.BOOLEAN: StorageType.BOOLEAN,
    AttributeType.BINARY: StorageType.BYTEA,
    AttributeType.STRING: StorageType.VARCHAR,
}


def map_attribute_type(attribute_type: AttributeType | str) -> StorageType:
    """Map an attribute type to its storage type; anything unmapped is text."""
    return _ATTRIBUTE_STORAGE.get(AttributeType.parse(attribute_type), StorageType.VARCHAR)


def storage_type_to_sa(storage_type: StorageType) -> Any:
    """Convert a StorageType to a SQLAlchemy column type instance."""
    mapping: dict[StorageType, Any] = {
        StorageType.INT2: sa.SmallInteger(),
        StorageType.INT4: sa.Integer(),
        StorageType.INT8: sa.BigInteger(),
        StorageType.FLOAT4: sa.REAL(),
        StorageType.FLOAT8: sa.Double(),
        StorageType.TIMESTAMP: sa.DateTime(),
        StorageType.BOOLEAN: sa.Boolean(),
        StorageType.BYTEA: sa.LargeBinary(),
        StorageType.VARCHAR: sa.String(),
    }
    return mapping.get(storage_type, sa.String())


# =============================================================================
# Column synthesis
# =============================================================================


@dataclass(frozen=True)
class ColumnSpec:
    """One persisted column of a record type."""

    name: str
    storage_type: StorageType
    nullable: bool = True
    indexed: bool = False
    default: Any = None
    primary_key: bool = False


_TRUE_STRINGS = frozenset({"yes", "true", "1", "y", "t", "on"})
_FALSE_STRINGS = frozenset({"no", "false", "0", "n", "f", "off"})


def parse_bool(value: Any) -> bool:
    """Parse a boolean the way the model format and form posts spell them."""
    if isinstance(value, bool):
        return value
    if isinstance(value, (int, float)) and value in (0, 1):
        return bool(value)
    text = str(value).strip().lower()
    if text in _TRUE_STRINGS:
        return True
    if text in _FALSE_STRINGS:
        return False
    raise ValueError(f"{value!r} is not a boolean")


def _coerce_default(attribute: AttributeSpec, storage_type: StorageType) -> Any:
    """Coerce a declared default value to the column's storage type."""
    value = attribute.default_value
    if value is None:
        return None
    try:
        if storage_type.is_integer:
            return int(float(value))
        if storage_type.is_float:
            return float(value)
        if storage_type == StorageType.BOOLEAN:
            return parse_bool(value)
        if storage_type == StorageType.TIMESTAMP and not isinstance(value, datetime):
            return datetime.fromisoformat(str(value))
    except ValueError as exc:
        raise ConfigurationError(
            f"Default {value!r} of attribute '{attribute.name}' "
            f"does not fit storage type {storage_type}"
        ) from exc
    if storage_type == StorageType.VARCHAR and not isinstance(value, str):
        return str(value)
    return value


def synthesize_columns(entity: EntitySpec) -> list[ColumnSpec]:
    """
    Derive the full column set for an entity.

    Order: the surrogate primary key, then one column per persisted attribute,
    then one integer foreign-key column per to-one relationship. To-many
    relationships never produce a column.

    Raises:
        ConfigurationError: If two columns would share a name.
    """
    columns = [
        ColumnSpec(PRIMARY_KEY, StorageType(PRIMARY_KEY_TYPE), nullable=False, primary_key=True)
    ]

    for attribute in entity.persisted_attributes:
        storage_type = map_attribute_type(attribute.type)
        columns.append(
            ColumnSpec(
                name=attribute.name,
                storage_type=storage_type,
                nullable=attribute.optional,
                indexed=attribute.indexed,
                default=_coerce_default(attribute, storage_type),
            )
        )

    for relationship in entity.relationships:
        if relationship.to_many:
            continue
        columns.append(
            ColumnSpec(
                name=foreign_key_column(relationship.name),
                storage_type=StorageType.INT4,
                nullable=relationship.optional,
                indexed=True,
            )
        )

    seen: set[str] = set()
    for column in columns:
        if column.name in seen:
            raise ConfigurationError(
                f"Entity '{entity.name}' produces column '{column.name}' more than once"
            )
        seen.add(column.name)

    return columns


# =============================================================================
# SQLAlchemy rendering
# =============================================================================


def index_name(table_name: str, column_name: str) -> str:
    """Index name, matching SQLAlchemy's default ``ix_<table>_<column>`` convention."""
    return f"ix_{table_name}_{column_name}"


def _server_default(value: Any) -> Any:
    if value is None:
        return None
    if isinstance(value, bool):
        return sa.true() if value else sa.false()
    if isinstance(value, (int, float)):
        return sa.text(repr(value))
    if isinstance(value, datetime):
        return value.isoformat(sep=" ")
    return str(value)


def column_to_sa(column: ColumnSpec, *, with_index: bool = True) -> sa.Column[Any]:
    """
    Render a ColumnSpec as a fresh SQLAlchemy ``Column``.

    ``with_index=False`` is used when the index is created separately (adding a
    column to an existing table).
    """
    if column.primary_key:
        return sa.Column(
            column.name, storage_type_to_sa(column.storage_type), primary_key=True, autoincrement=True
        )

    kwargs: dict[str, Any] = {"nullable": column.nullable}
    server_default = _server_default(column.default)
    if server_default is not None:
        kwargs["server_default"] = server_default
    if column.indexed and with_index:
        kwargs["index"] = True

    return sa.Column(column.name, storage_type_to_sa(column.storage_type), **kwargs)


def build_table(
    table_name: str, columns: list[ColumnSpec] | tuple[ColumnSpec, ...], metadata: sa.MetaData
) -> sa.Table:
    """Render a column set as a ``Table`` on the given MetaData."""
    return sa.Table(table_name, metadata, *(column_to_sa(c) for c in columns))
