"""
Record repository - SQL access for one RecordType.

Implements the repository pattern over SQLAlchemy Core. Every public method
runs in its own transaction (``engine.begin()``), so each request issues
exactly one logical operation and row locking and isolation are left to the
database engine.
"""

from __future__ import annotations

import base64
import binascii
import logging
import re
from collections.abc import Mapping
from datetime import date, datetime
from typing import Any

import sqlalchemy as sa
from sqlalchemy.exc import DataError, IntegrityError

from coredata_rest.runtime.registry import RecordType, RelationshipBinding
from coredata_rest.runtime.sa_schema import PRIMARY_KEY, ColumnSpec, StorageType, parse_bool
from coredata_rest.runtime.validation import RecordValidationError

logger = logging.getLogger("coredata.repository")

# =============================================================================
# Errors
# =============================================================================


class RecordNotFoundError(Exception):
    """Raised when no record has the requested primary key."""

    def __init__(self, table_name: str, record_id: Any):
        self.table_name = table_name
        self.record_id = record_id
        super().__init__(f"No record {record_id!r} in {table_name}")


class PersistenceError(Exception):
    """Raised when the storage engine rejects a write for non-validation reasons."""

    def __init__(self, message: str, errors: dict[str, list[str]]):
        self.errors = errors
        super().__init__(message)


def _parse_constraint_error(exc: Exception) -> tuple[str, str | None]:
    """Extract (constraint_type, column) from a driver error message.

    Returns:
        (constraint_type, field_name_or_none)
    """
    err = str(getattr(exc, "orig", exc))

    # SQLite: "NOT NULL constraint failed: users.name"
    match = re.search(r"(NOT NULL|UNIQUE) constraint failed: [\w\"]+\.(\w+)", err)
    if match:
        return match.group(1).lower().replace(" ", "_"), match.group(2)

    # PostgreSQL: 'null value in column "name" of relation "users" violates not-null constraint'
    match = re.search(r'null value in column "(\w+)"', err)
    if match:
        return "not_null", match.group(1)

    # PostgreSQL: "duplicate key value violates unique constraint" + DETAIL: Key (slug)=(x)
    match = re.search(r"Key \((\w+)\)", err)
    if match:
        return "unique", match.group(1)

    return "integrity", None


_CONSTRAINT_MESSAGES = {
    "not_null": "is not present",
    "unique": "is already taken",
}


def _persistence_error(exc: Exception, table_name: str, operation: str) -> PersistenceError:
    ctype, column = _parse_constraint_error(exc)
    message = _CONSTRAINT_MESSAGES.get(ctype, f"was rejected by the database ({ctype})")
    key = column or "base"
    detail = message if column else f"{operation} {message}"
    logger.warning("%s on %s rejected: %s", operation, table_name, getattr(exc, "orig", exc))
    return PersistenceError(f"{operation} on {table_name} failed", {key: [detail]})


# =============================================================================
# Input coercion
# =============================================================================


class ValueOutOfRangeError(ValueError):
    """A value parses but does not fit its column."""


def _coerce_value(column: ColumnSpec, value: Any) -> Any:
    """Convert a request value to what the column's SQLAlchemy type expects."""
    if value is None:
        return None
    storage_type = column.storage_type
    if storage_type.is_integer:
        number = int(str(value).strip()) if not isinstance(value, int) else value
        low, high = storage_type.integer_bounds
        if not low <= number <= high:
            raise ValueOutOfRangeError(f"{number} does not fit {storage_type}")
        return number
    if storage_type.is_float:
        return float(value)
    if storage_type == StorageType.BOOLEAN:
        return parse_bool(value)
    if storage_type == StorageType.TIMESTAMP:
        if isinstance(value, datetime):
            return value
        if isinstance(value, date):
            return datetime(value.year, value.month, value.day)
        text = str(value).strip()
        if text.endswith("Z"):
            text = text[:-1] + "+00:00"
        return datetime.fromisoformat(text)
    if storage_type == StorageType.BYTEA:
        if isinstance(value, (bytes, bytearray)):
            return bytes(value)
        return base64.b64decode(str(value), validate=True)
    return value if isinstance(value, str) else str(value)


_COERCION_MESSAGES = {
    StorageType.BOOLEAN: "is not a boolean",
    StorageType.TIMESTAMP: "is not a valid timestamp",
    StorageType.BYTEA: "is not valid base64",
}


def coerce_record(record_type: RecordType, data: Mapping[str, Any]) -> dict[str, Any]:
    """
    Coerce writable values to storage types.

    Raises:
        RecordValidationError: With one message per value that cannot be coerced.
    """
    result: dict[str, Any] = {}
    errors: dict[str, list[str]] = {}
    for name, value in data.items():
        column = record_type.get_column(name)
        if column is None:
            continue
        try:
            result[name] = _coerce_value(column, value)
        except ValueOutOfRangeError:
            errors.setdefault(name, []).append("is out of range")
        except (ValueError, TypeError, binascii.Error):
            fallback = "is not an integer" if column.storage_type.is_integer else "is not a number"
            message = _COERCION_MESSAGES.get(column.storage_type, fallback)
            errors.setdefault(name, []).append(message)
    if errors:
        raise RecordValidationError(errors)
    return result


# =============================================================================
# Repository
# =============================================================================


class RecordRepository:
    """
    SQL access for a single record type.

    Rows are returned as plain dicts keyed by column name.
    """

    def __init__(self, engine: sa.Engine, record_type: RecordType):
        self.engine = engine
        self.record_type = record_type
        self.table = record_type.sa_table

    @property
    def _pk(self) -> sa.Column[Any]:
        return self.table.c[PRIMARY_KEY]

    def count(self) -> int:
        with self.engine.connect() as conn:
            return int(conn.execute(sa.select(sa.func.count()).select_from(self.table)).scalar_one())

    def fetch_slice(self, limit: int, offset: int) -> list[dict[str, Any]]:
        """Rows ordered by primary key, ``limit`` rows starting at ``offset``."""
        stmt = sa.select(self.table).order_by(self._pk).limit(limit).offset(offset)
        with self.engine.connect() as conn:
            return [dict(row) for row in conn.execute(stmt).mappings()]

    def get(self, record_id: int) -> dict[str, Any] | None:
        stmt = sa.select(self.table).where(self._pk == record_id)
        with self.engine.connect() as conn:
            row = conn.execute(stmt).mappings().first()
        return dict(row) if row is not None else None

    def insert(self, values: Mapping[str, Any]) -> dict[str, Any]:
        """Insert a row and return it as stored (including server defaults)."""
        try:
            with self.engine.begin() as conn:
                result = conn.execute(sa.insert(self.table).values(**values))
                new_id = result.inserted_primary_key[0]
                row = conn.execute(sa.select(self.table).where(self._pk == new_id)).mappings().one()
        except (IntegrityError, DataError) as exc:
            raise _persistence_error(exc, self.table.name, "insert") from exc
        return dict(row)

    def update(self, record_id: int, values: Mapping[str, Any]) -> dict[str, Any] | None:
        """Update columns in place; None if the row vanished."""
        try:
            with self.engine.begin() as conn:
                if values:
                    conn.execute(
                        sa.update(self.table).where(self._pk == record_id).values(**values)
                    )
                row = conn.execute(
                    sa.select(self.table).where(self._pk == record_id)
                ).mappings().first()
        except (IntegrityError, DataError) as exc:
            raise _persistence_error(exc, self.table.name, "update") from exc
        return dict(row) if row is not None else None

    def delete(self, record_id: int) -> bool:
        """Delete by primary key. Returns True if a row was removed."""
        try:
            with self.engine.begin() as conn:
                result = conn.execute(sa.delete(self.table).where(self._pk == record_id))
        except (IntegrityError, DataError) as exc:
            raise _persistence_error(exc, self.table.name, "delete") from exc
        return result.rowcount > 0

    def list_related(self, binding: RelationshipBinding, owner_id: int) -> list[dict[str, Any]]:
        """Destination rows whose foreign key references ``owner_id``, by primary key."""
        destination = binding.destination.sa_table
        stmt = (
            sa.select(destination)
            .where(destination.c[binding.foreign_key] == owner_id)
            .order_by(destination.c[PRIMARY_KEY])
        )
        with self.engine.connect() as conn:
            return [dict(row) for row in conn.execute(stmt).mappings()]
