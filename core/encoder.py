#!/usr/bin/env python3
"""
Row Encoder - SQLite values to PostgreSQL insert values

Two output forms are supported:

- Parameter values (default): Python objects handed to psycopg2 for binding.
  BLOBs going into BYTEA columns are sent as real binary.
- Literal SQL: a comma-joined list of SQL literals built by plain textual
  escaping. Only NUL removal and quote doubling are applied, so this form
  must not be fed untrusted input.

Caveat for literal form: BLOB values are reinterpreted as text (UTF-8, or
Latin-1 if the bytes are not valid UTF-8). Binary payloads are therefore not
preserved; use parameter form for binary-safe transfer.
"""

import math
from enum import Enum
from typing import Any, Dict, List, Optional

import psycopg2


class ValueKind(Enum):
    """Runtime storage class of a SQLite value"""
    NULL = "null"
    INTEGER = "integer"
    REAL = "real"
    TEXT = "text"
    BLOB = "blob"


def classify_value(value: Any) -> ValueKind:
    if value is None:
        return ValueKind.NULL
    if isinstance(value, (bytes, bytearray, memoryview)):
        return ValueKind.BLOB
    if isinstance(value, str):
        return ValueKind.TEXT
    if isinstance(value, float):
        return ValueKind.REAL
    if isinstance(value, int):
        return ValueKind.INTEGER
    raise TypeError(f"Unsupported SQLite value type: {type(value).__name__}")


def decode_blob(value) -> str:
    """Decode binary payload as UTF-8, falling back to one byte per character."""
    raw = bytes(value)
    try:
        return raw.decode('utf-8')
    except UnicodeDecodeError:
        return raw.decode('latin-1')


def _is_boolean(column_type: Optional[str]) -> bool:
    return column_type is not None and column_type.lower() == 'boolean'


def _is_bytea(column_type: Optional[str]) -> bool:
    return column_type is not None and column_type.lower() == 'bytea'


def _quote_text(text: str) -> str:
    return "'" + text.replace("'", "''") + "'"


def encode_literal(value: Any, column_type: Optional[str] = None) -> str:
    """Encode one value as a SQL literal"""
    kind = classify_value(value)

    if kind is ValueKind.NULL:
        return 'NULL'

    if _is_boolean(column_type):
        return 'true' if value == 1 else 'false'

    if kind is ValueKind.BLOB:
        return _quote_text(decode_blob(value))

    if kind is ValueKind.TEXT:
        return _quote_text(value.replace('\x00', ''))

    if kind is ValueKind.REAL and not math.isfinite(value):
        if math.isnan(value):
            return "'NaN'"
        return "'Infinity'" if value > 0 else "'-Infinity'"

    return repr(value) if kind is ValueKind.REAL else str(value)


def encode_param(value: Any, column_type: Optional[str] = None) -> Any:
    """Convert one value to the object psycopg2 should bind"""
    kind = classify_value(value)

    if kind is ValueKind.NULL:
        return None

    if _is_boolean(column_type):
        return value == 1

    if kind is ValueKind.BLOB:
        if _is_bytea(column_type):
            return psycopg2.Binary(bytes(value))
        return decode_blob(value).replace('\x00', '')

    if kind is ValueKind.TEXT:
        if _is_bytea(column_type):
            return psycopg2.Binary(value.encode('utf-8'))
        return value.replace('\x00', '')

    return value


def encode_row_literals(row: Dict[str, Any], column_types: Dict[str, str]) -> str:
    """Encode a row into a comma-joined literal list, in the row's own key order."""
    return ', '.join(
        encode_literal(value, column_types.get(column.lower()))
        for column, value in row.items()
    )


def encode_row_params(row: Dict[str, Any], column_types: Dict[str, str]) -> List[Any]:
    """Encode a row into bind parameters, in the row's own key order."""
    return [
        encode_param(value, column_types.get(column.lower()))
        for column, value in row.items()
    ]
