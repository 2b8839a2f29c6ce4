#!/usr/bin/env python3
"""
Identifier handling for both ends of the migration.

PostgreSQL identifiers are only quoted when they collide with a small set of
reserved keywords; everything else is emitted bare and therefore folded to
lower case by the server. SQLite identifiers are always quoted.
"""

from typing import FrozenSet

RESERVED_KEYWORDS: FrozenSet[str] = frozenset({
    'user', 'group', 'order', 'table', 'select',
    'where', 'from', 'index', 'constraint',
})


def _quote(identifier: str) -> str:
    return '"' + identifier.replace('"', '""') + '"'


def is_reserved(identifier: str) -> bool:
    return identifier.lower() in RESERVED_KEYWORDS


def get_safe_identifier(identifier: str) -> str:
    """Quote a PostgreSQL identifier if it is a reserved keyword, else return it unchanged."""
    return _quote(identifier) if is_reserved(identifier) else identifier


def catalog_name(identifier: str) -> str:
    """Name under which PostgreSQL stores an identifier emitted by get_safe_identifier."""
    return identifier if is_reserved(identifier) else identifier.lower()


def quote_sqlite_ident(identifier: str) -> str:
    """Quote identifier for the SQLite source"""
    return _quote(identifier)
