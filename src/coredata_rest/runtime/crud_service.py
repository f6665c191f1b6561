"""
CRUD service - the request-independent half of the generic dispatcher.

One ``CRUDService`` instance is created per RecordType. Every service runs
the same code; only the RecordType (and its repository) differ. Services
return serialized records and raise the runtime error types, which the
exception handlers turn into HTTP responses.
"""

from __future__ import annotations

import logging
from collections.abc import Collection, Mapping
from typing import Any

from coredata_rest.runtime.pagination import PageParams, SliceParams
from coredata_rest.runtime.registry import RecordType
from coredata_rest.runtime.repository import (
    RecordNotFoundError,
    RecordRepository,
    coerce_record,
)
from coredata_rest.runtime.sa_schema import PRIMARY_KEY_TYPE, StorageType
from coredata_rest.runtime.serializer import serialize_record, serialize_records
from coredata_rest.runtime.validation import RecordValidationError, run_validations

logger = logging.getLogger("coredata.service")

_PRIMARY_KEY_BOUNDS = StorageType(PRIMARY_KEY_TYPE).integer_bounds


def parse_record_id(raw: Any) -> int | None:
    """Primary key from a path segment; None when it cannot be an id."""
    try:
        value = int(str(raw))
    except ValueError:
        return None
    low, high = _PRIMARY_KEY_BOUNDS
    return value if low <= value <= high else None


class CRUDService:
    """
    Generic CRUD operations for one record type.

    Provides list, create, read, update, delete and nested listing through
    to-many relationships.
    """

    def __init__(
        self,
        record_type: RecordType,
        repository: RecordRepository,
        serialization_exclude: Collection[str] = (),
    ):
        self.record_type = record_type
        self.repository = repository
        self.serialization_exclude = frozenset(serialization_exclude)

    # -------------------------------------------------------------------------
    # Helpers
    # -------------------------------------------------------------------------

    def _writable(self, data: Mapping[str, Any]) -> dict[str, Any]:
        """Keep only keys naming writable columns; everything else is ignored."""
        names = {c.name for c in self.record_type.writable_columns}
        return {k: v for k, v in data.items() if k in names}

    def _validate(self, candidate: Mapping[str, Any]) -> None:
        errors = run_validations(self.record_type.validations, candidate)
        if errors:
            logger.info("Validation failed on %s: %s", self.record_type.table_name, errors)
            raise RecordValidationError(errors)

    def _require(self, record_id: Any) -> tuple[int, dict[str, Any]]:
        pk = parse_record_id(record_id)
        row = self.repository.get(pk) if pk is not None else None
        if pk is None or row is None:
            raise RecordNotFoundError(self.record_type.table_name, record_id)
        return pk, row

    def _serialize(self, row: Mapping[str, Any], *, public: bool) -> dict[str, Any]:
        exclude = self.serialization_exclude if public else ()
        return serialize_record(self.record_type, row, exclude)

    # -------------------------------------------------------------------------
    # Operations
    # -------------------------------------------------------------------------

    def list_page(self, params: PageParams) -> tuple[list[dict[str, Any]], int]:
        """One page of records plus the total record count."""
        rows = self.repository.fetch_slice(params.per_page, params.offset)
        total = self.repository.count()
        return serialize_records(self.record_type, rows, self.serialization_exclude), total

    def list_slice(self, params: SliceParams) -> list[dict[str, Any]]:
        rows = self.repository.fetch_slice(params.limit, params.offset)
        return serialize_records(self.record_type, rows, self.serialization_exclude)

    def create(self, data: Mapping[str, Any]) -> dict[str, Any]:
        """
        Validate and insert a new record.

        Raises:
            RecordValidationError: Failed rules or uncoercible values; nothing is written
            PersistenceError: The database rejected the insert
        """
        candidate = self._writable(data)
        self._validate(candidate)
        row = self.repository.insert(coerce_record(self.record_type, candidate))
        logger.info("Created %s %s", self.record_type.singular_name, row["id"])
        return self._serialize(row, public=False)

    def read(self, record_id: Any) -> dict[str, Any]:
        _, row = self._require(record_id)
        return self._serialize(row, public=True)

    def update(self, record_id: Any, data: Mapping[str, Any]) -> dict[str, Any]:
        """
        Apply changes to an existing record.

        The merged record (stored values + changes) is validated; only the
        changed columns are written.
        """
        pk, existing = self._require(record_id)
        changes = self._writable(data)
        self._validate({**existing, **changes})
        row = self.repository.update(pk, coerce_record(self.record_type, changes))
        if row is None:
            raise RecordNotFoundError(self.record_type.table_name, record_id)
        return self._serialize(row, public=False)

    def delete(self, record_id: Any) -> dict[str, Any]:
        """Delete a record and return it as it was."""
        pk, row = self._require(record_id)
        if not self.repository.delete(pk):
            raise RecordNotFoundError(self.record_type.table_name, record_id)
        logger.info("Deleted %s %s", self.record_type.singular_name, pk)
        return self._serialize(row, public=True)

    def list_related(self, record_id: Any, relationship: str) -> list[dict[str, Any]]:
        """Records reachable from ``record_id`` through a to-many relationship."""
        binding = self.record_type.relationships[relationship]
        pk, _ = self._require(record_id)
        rows = self.repository.list_related(binding, pk)
        return serialize_records(binding.destination, rows, self.serialization_exclude)
