"""
Model registry - one RecordType per entity, built in two explicit phases.

Phase 1 allocates an empty, named RecordType for every entity so that every
name resolves. Phase 2 fills in columns, relationship bindings and compiled
validations, looking destinations up in the phase-1 map. Because every
destination already exists when phase 2 starts, relationships may point at
later-declared entities and at the entity itself.

After construction the registry is a read-only mapping shared by the
migration step and every request handler.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable, Iterator, Mapping
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any

import sqlalchemy as sa

from coredata_rest.core.errors import ConfigurationError
from coredata_rest.core.strings import (
    foreign_key_column,
    record_key,
    singular_key,
    table_name_for,
)
from coredata_rest.runtime.migrations import MigrationPlan, converge
from coredata_rest.runtime.sa_schema import ColumnSpec, build_table, synthesize_columns
from coredata_rest.runtime.validation import ValidationRule, compile_validations
from coredata_rest.specs.entity import EntitySpec

logger = logging.getLogger("coredata.registry")


# =============================================================================
# Record types
# =============================================================================


@dataclass(frozen=True)
class RelationshipBinding:
    """
    A relationship resolved against its destination RecordType.

    ``foreign_key`` names the integer column linking the two tables: on the
    owning table for to-one, on the destination table for to-many.
    """

    name: str
    destination: RecordType = field(repr=False)
    to_many: bool
    optional: bool
    foreign_key: str


@dataclass(eq=False)
class RecordType:
    """
    Runtime descriptor of one entity: table, columns, relationships, rules.

    Allocated empty in phase 1 and completed in phase 2; never modified once
    the registry is built.
    """

    entity_name: str
    key: str
    table_name: str
    singular_name: str
    columns: tuple[ColumnSpec, ...] = ()
    relationships: Mapping[str, RelationshipBinding] = field(default_factory=dict)
    validations: tuple[ValidationRule, ...] = ()
    table: sa.Table | None = field(default=None, repr=False)

    @property
    def column_names(self) -> list[str]:
        return [c.name for c in self.columns]

    def get_column(self, name: str) -> ColumnSpec | None:
        for column in self.columns:
            if column.name == name:
                return column
        return None

    @property
    def writable_columns(self) -> list[ColumnSpec]:
        """Columns a request body may set (everything but the primary key)."""
        return [c for c in self.columns if not c.primary_key]

    @property
    def to_many_relationships(self) -> list[RelationshipBinding]:
        return [b for b in self.relationships.values() if b.to_many]

    @property
    def sa_table(self) -> sa.Table:
        if self.table is None:
            raise RuntimeError(f"Record type {self.key} has not been materialized")
        return self.table

    def url_for(self, record_id: Any) -> str:
        return f"/{self.table_name}/{record_id}"


# =============================================================================
# Registry
# =============================================================================


class ModelRegistry(Mapping[str, RecordType]):
    """Read-only map of record key -> RecordType, plus the migrations applied."""

    def __init__(
        self,
        record_types: Mapping[str, RecordType],
        metadata: sa.MetaData,
        migrations: list[MigrationPlan] | None = None,
    ):
        self._record_types = MappingProxyType(dict(record_types))
        self.metadata = metadata
        self.migrations: tuple[MigrationPlan, ...] = tuple(migrations or ())

    def __getitem__(self, key: str) -> RecordType:
        return self._record_types[key]

    def __iter__(self) -> Iterator[str]:
        return iter(self._record_types)

    def __len__(self) -> int:
        return len(self._record_types)

    def for_entity(self, entity_name: str) -> RecordType:
        """Look up by raw entity name (normalized the same way as in phase 1)."""
        return self._record_types[record_key(entity_name)]

    def by_table(self, table_name: str) -> RecordType | None:
        for record_type in self._record_types.values():
            if record_type.table_name == table_name:
                return record_type
        return None

    @property
    def applied_actions(self) -> list[Any]:
        return [a for plan in self.migrations for a in plan.actions]


def _allocate(entities: list[EntitySpec]) -> dict[str, RecordType]:
    """Phase 1: one empty, named RecordType per entity."""
    allocated: dict[str, RecordType] = {}
    for entity in entities:
        key = record_key(entity.name)
        if key in allocated:
            raise ConfigurationError(
                f"Entities '{allocated[key].entity_name}' and '{entity.name}' "
                f"both normalize to '{key}'"
            )
        allocated[key] = RecordType(
            entity_name=entity.name,
            key=key,
            table_name=table_name_for(entity.name),
            singular_name=singular_key(entity.name),
        )
    tables = [rt.table_name for rt in allocated.values()]
    duplicates = {t for t in tables if tables.count(t) > 1}
    if duplicates:
        raise ConfigurationError(f"Entities map to the same table: {', '.join(sorted(duplicates))}")
    return allocated


def _bind_relationships(
    entity: EntitySpec, allocated: Mapping[str, RecordType]
) -> dict[str, RelationshipBinding]:
    bindings: dict[str, RelationshipBinding] = {}
    for relationship in entity.relationships:
        destination = allocated.get(record_key(relationship.destination))
        if destination is None:
            raise ConfigurationError(
                f"Relationship '{entity.name}.{relationship.name}' points at unknown "
                f"entity '{relationship.destination}'"
            )
        if relationship.to_many:
            inverse = relationship.inverse or entity.name.lower()
            fk = foreign_key_column(inverse)
        else:
            fk = foreign_key_column(relationship.name)
        bindings[relationship.name] = RelationshipBinding(
            name=relationship.name,
            destination=destination,
            to_many=relationship.to_many,
            optional=relationship.optional,
            foreign_key=fk,
        )
    return bindings


def _check_inverse_keys(record_types: Iterable[RecordType]) -> None:
    """Every to-many binding needs its foreign key on the destination table."""
    for record_type in record_types:
        for binding in record_type.to_many_relationships:
            if binding.foreign_key not in binding.destination.column_names:
                raise ConfigurationError(
                    f"To-many relationship '{record_type.entity_name}.{binding.name}' expects "
                    f"column '{binding.foreign_key}' on '{binding.destination.table_name}'; "
                    f"declare the inverse to-one relationship"
                )


def register_entities(
    entities: Iterable[EntitySpec],
    engine: sa.Engine | None = None,
    *,
    metadata: sa.MetaData | None = None,
) -> ModelRegistry:
    """
    Build the registry and, when an engine is given, converge the database.

    Args:
        entities: Entity specifications, in any order
        engine: Database to migrate; None builds descriptors only
        metadata: MetaData to attach tables to (fresh one by default)

    Returns:
        Read-only registry keyed by capitalized entity name

    Raises:
        ConfigurationError: Unresolved destinations, name collisions, missing inverses
        MigrationError: If the database rejects a DDL statement
    """
    entities = list(entities)
    metadata = metadata if metadata is not None else sa.MetaData()

    allocated = _allocate(entities)

    # Phase 2: resolve against the complete phase-1 map
    for entity in entities:
        record_type = allocated[record_key(entity.name)]
        record_type.relationships = MappingProxyType(_bind_relationships(entity, allocated))
        record_type.columns = tuple(synthesize_columns(entity))
        record_type.validations = compile_validations(entity.attributes)
        record_type.table = build_table(record_type.table_name, record_type.columns, metadata)

    _check_inverse_keys(allocated.values())

    migrations: list[MigrationPlan] = []
    if engine is not None:
        for record_type in allocated.values():
            migrations.append(converge(engine, record_type.sa_table, record_type.columns))

    logger.info(
        "Registered %d record types (%d migration actions)",
        len(allocated),
        sum(len(p.actions) for p in migrations),
    )
    return ModelRegistry(allocated, metadata, migrations)
