"""
Record serialization for JSON responses.
"""

from __future__ import annotations

import base64
from collections.abc import Collection, Mapping
from datetime import date, datetime
from decimal import Decimal
from typing import Any

from coredata_rest.runtime.registry import RecordType
from coredata_rest.runtime.sa_schema import PRIMARY_KEY


def _json_value(value: Any) -> Any:
    if isinstance(value, datetime):
        return value.isoformat()
    if isinstance(value, date):
        return value.isoformat()
    if isinstance(value, (bytes, bytearray, memoryview)):
        return base64.b64encode(bytes(value)).decode("ascii")
    if isinstance(value, Decimal):
        return float(value)
    return value


def serialize_record(
    record_type: RecordType,
    row: Mapping[str, Any],
    exclude: Collection[str] = (),
) -> dict[str, Any]:
    """
    Convert a row to a JSON-safe dict with a derived ``url`` field.

    Args:
        record_type: Record type the row belongs to
        row: Row as returned by the repository
        exclude: Field names left out of the output
    """
    data = {k: _json_value(v) for k, v in row.items() if k not in exclude}
    data["url"] = record_type.url_for(row[PRIMARY_KEY])
    return data


def serialize_records(
    record_type: RecordType,
    rows: list[dict[str, Any]],
    exclude: Collection[str] = (),
) -> list[dict[str, Any]]:
    return [serialize_record(record_type, row, exclude) for row in rows]
