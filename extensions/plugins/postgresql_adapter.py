#!/usr/bin/env python3
"""
sqlite2pg PostgreSQL Adapter - migration destination

This module wraps the single psycopg2 connection a migration run writes to:
- Connection setup from a ConnectionConfig (SSL, timeouts, application name)
- Result-dict execution that never raises on statement errors
- Per-row isolation with savepoints when the connection is transactional
- Catalog lookups against information_schema

Usage:
    adapter = PostgreSQLAdapter(
        host='localhost',
        port=5433,
        database='appdb',
        user='appuser',
        password='apppassword'
    )
    result = adapter.execute_query("SELECT 1")
"""

import psycopg2
import psycopg2.extras
from psycopg2 import OperationalError
import logging
import re
from typing import Dict, Any, Optional, Sequence
from dataclasses import dataclass
from enum import Enum

from core.errors import ConnectionFailedError, SchemaError

# Configure logging
logger = logging.getLogger(__name__)

ROW_SAVEPOINT = "sqlite2pg_row"

class SSLMode(Enum):
    """SSL connection modes"""
    DISABLE = "disable"
    ALLOW = "allow"
    PREFER = "prefer"
    REQUIRE = "require"
    VERIFY_CA = "verify-ca"
    VERIFY_FULL = "verify-full"

@dataclass
class ConnectionConfig:
    """PostgreSQL connection configuration"""
    host: str = "localhost"
    port: int = 5433
    database: str = "appdb"
    user: str = "appuser"
    password: str = "apppassword"

    connect_timeout: int = 10
    ssl_mode: SSLMode = SSLMode.PREFER

    # Statements commit individually unless a page transaction is requested
    autocommit: bool = True

    application_name: str = "sqlite2pg"

    def to_connection_params(self) -> Dict[str, Any]:
        """Convert to psycopg2 connection parameters"""
        return {
            'host': self.host,
            'port': self.port,
            'dbname': self.database,
            'user': self.user,
            'password': self.password,
            'connect_timeout': self.connect_timeout,
            'application_name': self.application_name,
            'sslmode': self.ssl_mode.value,
        }

def sanitize_error(e: Exception) -> str:
    """Mask credentials in error messages"""
    msg = str(e).strip()
    msg = re.sub(r'://([^:/@]+):([^@]+)@', r'://\1:***@', msg)
    return re.sub(r'password=\S+', 'password=***', msg)

class PostgreSQLAdapter:
    """
    Destination adapter for one migration run.

    Statement errors are reported in result dicts instead of raised, so the
    caller decides whether a failure is fatal, per table, or per row.
    """

    def __init__(self, config: Optional[ConnectionConfig] = None, **kwargs):
        """Initialize PostgreSQL adapter and open the connection"""
        if config:
            self.config = config
        else:
            self.config = ConnectionConfig(**kwargs)

        self.connection = None

        self._connect()

        logger.info(f"PostgreSQL adapter initialized for {self.config.host}:{self.config.port}/{self.config.database}")

    def _connect(self):
        try:
            self.connection = psycopg2.connect(**self.config.to_connection_params())
            self.connection.autocommit = self.config.autocommit
        except OperationalError as e:
            message = sanitize_error(e)
            logger.error(f"Failed to connect to PostgreSQL: {message}")
            raise ConnectionFailedError(
                f"Failed to connect to PostgreSQL at {self.config.host}:{self.config.port}/{self.config.database}: {message}"
            ) from e

    @property
    def autocommit(self) -> bool:
        return self.config.autocommit

    def close(self):
        """Close the connection"""
        if self.connection is not None:
            if not self.connection.closed:
                self.connection.close()
            self.connection = None
            logger.info("PostgreSQL adapter closed")

    def execute_query(self, sql: str, params: Optional[Sequence[Any]] = None,
                      fetch: bool = False) -> Dict[str, Any]:
        """
        Execute SQL and report the outcome instead of raising

        Args:
            sql: SQL statement
            params: Bind parameters (optional)
            fetch: Whether to fetch result rows

        Returns:
            Dictionary with 'success', 'data', 'error'
        """
        result = {
            'success': False,
            'data': [],
            'error': None
        }

        try:
            with self.connection.cursor(cursor_factory=psycopg2.extras.RealDictCursor) as cursor:
                cursor.execute(sql, params)
                if fetch and cursor.description:
                    result['data'] = [dict(row) for row in cursor.fetchall()]
            result['success'] = True
        except psycopg2.Error as e:
            result['error'] = sanitize_error(e)

        return result

    def execute_isolated(self, sql: str, params: Optional[Sequence[Any]] = None) -> Dict[str, Any]:
        """
        Execute one statement whose failure must not poison the surrounding work.

        With autocommit every statement is already its own transaction. Inside a
        transaction the statement is wrapped in a savepoint that is rolled back
        on failure, so earlier rows of the page survive.
        """
        if self.autocommit:
            return self.execute_query(sql, params)

        with self.connection.cursor() as cursor:
            cursor.execute(f"SAVEPOINT {ROW_SAVEPOINT}")

        result = self.execute_query(sql, params)

        with self.connection.cursor() as cursor:
            if result['success']:
                cursor.execute(f"RELEASE SAVEPOINT {ROW_SAVEPOINT}")
            else:
                cursor.execute(f"ROLLBACK TO SAVEPOINT {ROW_SAVEPOINT}")

        return result

    def commit(self):
        """
        Commit the current transaction.

        psycopg2 treats this as a no-op on an autocommit connection.
        """
        self.connection.commit()

    def rollback(self) -> bool:
        """Roll back the current transaction, logging instead of raising"""
        try:
            self.connection.rollback()
            return True
        except psycopg2.Error as e:
            logger.warning(f"Rollback failed: {sanitize_error(e)}")
            return False

    # ===== Catalog =====

    def get_column_types(self, table_name: str) -> Dict[str, str]:
        """
        Get the column types of a table in the current schema.

        Args:
            table_name: Name as stored in the catalog

        Returns:
            Mapping of lower-case column name to information_schema data_type;
            empty when the table does not exist.
        """
        query = """
            SELECT column_name, data_type
            FROM information_schema.columns
            WHERE table_schema = current_schema()
            AND table_name = %s
            ORDER BY ordinal_position
        """

        result = self.execute_query(query, (table_name,), fetch=True)

        if not result['success']:
            if not self.autocommit:
                self.rollback()
            raise SchemaError(f"Failed to read destination columns for {table_name}: {result['error']}",
                              table=table_name)

        return {row['column_name'].lower(): row['data_type'] for row in result['data']}

