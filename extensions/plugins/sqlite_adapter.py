#!/usr/bin/env python3
"""
sqlite2pg SQLite Adapter - migration source

Provides read access to the SQLite source:
- Catalog: get_tables(), get_columns(), count_rows()
- Data: fetch_page() with LIMIT/OFFSET paging in storage order
- Health: integrity_check(), quick_check(), foreign_key_check()

Usage:
    adapter = SQLiteAdapter(database='webui.db')
    for row in adapter.fetch_page('chat', limit=500, offset=0):
        ...
"""

import sqlite3
import logging
from dataclasses import dataclass
from typing import Dict, List, Any, Optional
from pathlib import Path

from core.errors import ConnectionFailedError, IntegrityCheckError, RowFetchError, SchemaError
from core.identifiers import quote_sqlite_ident

logger = logging.getLogger(__name__)

# Applied on connect, failures are ignored
CONNECT_PRAGMAS = {
    'journal_mode': 'WAL',
    'synchronous': 'NORMAL',
}


@dataclass(frozen=True)
class SourceColumn:
    """Column as declared in the SQLite schema"""
    name: str
    declared_type: str


def _decode_text(raw: bytes) -> str:
    try:
        return raw.decode('utf-8')
    except UnicodeDecodeError:
        return raw.decode('latin-1')


class SQLiteAdapter:
    """Read-side adapter over a single sqlite3 connection."""

    def __init__(
        self,
        database: str,
        timeout: float = 30.0,
        apply_pragmas: bool = True,
    ):
        """
        Initialize SQLite adapter.

        Args:
            database: Path to SQLite database file or ':memory:'
            timeout: Busy timeout in seconds
            apply_pragmas: Apply CONNECT_PRAGMAS after connecting
        """
        self.database = str(database)
        self.timeout = timeout
        self._connection: Optional[sqlite3.Connection] = None
        self._connect()
        if apply_pragmas:
            self._apply_pragmas()
        logger.info(f"SQLite adapter initialized for {self.database}")

    def _connect(self) -> None:
        """Establish database connection."""
        if self.database != ':memory:' and not Path(self.database).is_file():
            raise ConnectionFailedError(
                f"SQLite database not found: {self.database}",
                details={'path': self.database}
            )
        try:
            self._connection = sqlite3.connect(self.database, timeout=self.timeout)
            self._connection.row_factory = sqlite3.Row
            self._connection.text_factory = _decode_text
            logger.debug(f"Connected to SQLite database: {self.database}")
        except sqlite3.Error as e:
            logger.error(f"Failed to connect to SQLite: {e}")
            raise ConnectionFailedError(f"Failed to open SQLite database: {e}",
                                        details={'path': self.database}) from e

    def _apply_pragmas(self) -> None:
        for pragma, value in CONNECT_PRAGMAS.items():
            result = self.set_pragma(pragma, value)
            if not result['success']:
                logger.debug(f"Could not set PRAGMA {pragma}={value}: {result['error']}")

    def close(self) -> None:
        """Close database connection."""
        if self._connection:
            self._connection.close()
            self._connection = None
            logger.info("SQLite adapter closed")

    def execute_query(
        self,
        sql: str,
        params: Optional[tuple] = None,
        fetch: bool = True
    ) -> Dict[str, Any]:
        """
        Execute SQL query.

        Args:
            sql: SQL query string
            params: Query parameters (optional)
            fetch: Whether to fetch results

        Returns:
            Dictionary with execution results
        """
        result = {
            'success': False,
            'data': [],
            'error': None
        }

        try:
            cursor = self._connection.cursor()

            if params:
                cursor.execute(sql, params)
            else:
                cursor.execute(sql)

            if fetch and cursor.description:
                result['data'] = [dict(row) for row in cursor.fetchall()]

            cursor.close()
            result['success'] = True

        except sqlite3.Error as e:
            result['error'] = f"SQLite error: {str(e)}"

        return result

    # Catalog

    def get_tables(self) -> List[str]:
        """
        Get user tables in catalog order, SQLite internal tables excluded.
        """
        query = """
            SELECT name
            FROM sqlite_master
            WHERE type = 'table'
            AND name NOT LIKE 'sqlite\\_%' ESCAPE '\\'
        """

        result = self.execute_query(query)

        if not result['success']:
            raise SchemaError(f"Failed to list tables: {result['error']}")

        tables = [row['name'] for row in result['data']]
        logger.debug(f"Found {len(tables)} tables: {tables}")

        return tables

    def get_columns(self, table_name: str) -> List[SourceColumn]:
        """Get declared columns of a table via PRAGMA table_info."""
        result = self.execute_query(f"PRAGMA table_info({quote_sqlite_ident(table_name)})")

        if not result['success']:
            raise SchemaError(f"Failed to read schema for {table_name}: {result['error']}", table=table_name)

        if not result['data']:
            raise SchemaError(f"Table {table_name} has no columns in the source", table=table_name)

        return [SourceColumn(name=col['name'], declared_type=col['type'] or '') for col in result['data']]

    def count_rows(self, table_name: str) -> int:
        """Row count estimate for progress reporting; 0 if it cannot be read."""
        result = self.execute_query(f"SELECT COUNT(*) AS count FROM {quote_sqlite_ident(table_name)}")
        if not result['success']:
            logger.warning(f"Could not count rows in {table_name}: {result['error']}")
            return 0
        return result['data'][0]['count']

    # Data

    def fetch_page(self, table_name: str, limit: int, offset: int) -> List[Dict[str, Any]]:
        """
        Fetch up to `limit` rows starting at `offset`, in storage order.

        No ORDER BY is applied, so pages are only stable while nothing else
        writes to the source.
        """
        query = f"SELECT * FROM {quote_sqlite_ident(table_name)} LIMIT ? OFFSET ?"
        result = self.execute_query(query, (limit, offset))

        if not result['success']:
            raise RowFetchError(
                f"Failed to fetch rows from {table_name} at offset {offset}: {result['error']}",
                table=table_name, offset=offset
            )

        return result['data']

    # Health

    def _pragma_rows(self, pragma: str) -> List[Dict[str, Any]]:
        result = self.execute_query(f'PRAGMA {pragma}')
        if not result['success']:
            raise IntegrityCheckError(f"PRAGMA {pragma} failed: {result['error']}")
        return result['data']

    def integrity_check(self) -> List[str]:
        return [row['integrity_check'] for row in self._pragma_rows('integrity_check')]

    def quick_check(self) -> List[str]:
        return [row['quick_check'] for row in self._pragma_rows('quick_check')]

    def foreign_key_check(self) -> List[Dict[str, Any]]:
        return self._pragma_rows('foreign_key_check')

    def schema_object_count(self) -> int:
        result = self.execute_query("SELECT COUNT(*) AS count FROM sqlite_master")
        if not result['success']:
            raise IntegrityCheckError(f"Cannot query sqlite_master: {result['error']}")
        return result['data'][0]['count']

    def get_pragma_settings(self) -> Dict[str, Any]:
        pragmas = {}
        for pragma in ('journal_mode', 'synchronous', 'foreign_keys', 'encoding'):
            result = self.execute_query(f'PRAGMA {pragma}')
            if result['success'] and result['data']:
                pragmas[pragma] = result['data'][0].get(pragma)
        return pragmas

    def set_pragma(self, pragma: str, value: Any) -> Dict[str, Any]:
        query = f'PRAGMA {pragma} = {value}'
        return self.execute_query(query)
