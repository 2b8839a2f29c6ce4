#!/usr/bin/env python3
"""
sqlite2pg Test Configuration - PyTest Configuration and Fixtures

Provides a throwaway SQLite source builder and an in-memory stand-in for the
PostgreSQL destination, so the pipeline can be exercised without a server.
"""

import os
import re
import sqlite3
import sys

import pytest

# Add project root to path
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

# PostgreSQL spelling of the column types CREATE TABLE emits
_CATALOG_TYPES = {
    'INTEGER': 'integer',
    'DOUBLE PRECISION': 'double precision',
    'TEXT': 'text',
    'BYTEA': 'bytea',
}

_CREATE_RE = re.compile(r'^CREATE TABLE IF NOT EXISTS (\S+) \((.*)\)$', re.DOTALL)
_TRUNCATE_RE = re.compile(r'^TRUNCATE TABLE (\S+) CASCADE$')
_INSERT_RE = re.compile(r'^INSERT INTO (\S+) \(')


def _catalog(identifier: str) -> str:
    if identifier.startswith('"'):
        return identifier[1:-1].replace('""', '"')
    return identifier.lower()


class RecordingDestination:
    """
    Stand-in for PostgreSQLAdapter.

    Understands the handful of statements the migration issues (TRUNCATE,
    CREATE TABLE, INSERT) well enough to keep a catalog and row store, and
    records everything else verbatim.
    """

    def __init__(self, autocommit: bool = True):
        self.autocommit = autocommit
        self.tables = {}
        self.rows = {}
        self.statements = []
        self.failures = []
        self.commits = 0
        self.rollbacks = 0
        self.closed = False

    def fail_on(self, fragment: str, error: str = "simulated failure"):
        """Make every statement containing `fragment` fail with `error`"""
        self.failures.append((fragment, error))

    def execute_query(self, sql, params=None, fetch=False):
        self.statements.append((sql, params))

        for fragment, error in self.failures:
            if fragment in sql or (params and any(fragment == p for p in params)):
                return {'success': False, 'data': [], 'error': error}

        match = _TRUNCATE_RE.match(sql)
        if match:
            table = _catalog(match.group(1))
            if table not in self.tables:
                return {'success': False, 'data': [], 'error': f'relation "{table}" does not exist'}
            self.rows[table] = []

        match = _CREATE_RE.match(sql)
        if match:
            table = _catalog(match.group(1))
            if table not in self.tables:
                columns = {}
                for definition in match.group(2).split(', '):
                    name, pg_type = definition.split(' ', 1)
                    columns[_catalog(name)] = _CATALOG_TYPES[pg_type]
                self.tables[table] = columns
                self.rows[table] = []

        match = _INSERT_RE.match(sql)
        if match:
            self.rows.setdefault(_catalog(match.group(1)), []).append(params if params is not None else sql)

        return {'success': True, 'data': [], 'error': None}

    def execute_isolated(self, sql, params=None):
        return self.execute_query(sql, params)

    def get_column_types(self, table_name):
        return dict(self.tables.get(table_name, {}))

    def commit(self):
        self.commits += 1

    def rollback(self):
        self.rollbacks += 1
        return True

    def close(self):
        self.closed = True


@pytest.fixture
def destination():
    return RecordingDestination()


@pytest.fixture
def make_source_db(tmp_path):
    """Build a SQLite file from a SQL script; returns its path"""
    def _make(script: str, name: str = 'source.db') -> str:
        path = tmp_path / name
        conn = sqlite3.connect(str(path))
        try:
            conn.executescript(script)
            conn.commit()
        finally:
            conn.close()
        return str(path)
    return _make


@pytest.fixture
def webui_db(make_source_db):
    """Small users/products database plus a bookkeeping table"""
    return make_source_db("""
        CREATE TABLE users (id INTEGER, name TEXT, is_admin INTEGER);
        CREATE TABLE products (id INTEGER, name TEXT, price REAL, image BLOB, created_at DATETIME);
        CREATE TABLE migratehistory (id INTEGER, name TEXT);

        INSERT INTO users VALUES (1, 'alice', 1);
        INSERT INTO users VALUES (2, 'bob', 0);
        INSERT INTO users VALUES (3, 'O''Brien', NULL);

        INSERT INTO products VALUES (1, 'widget', 9.5, X'00FF10', '2024-01-01 10:00:00');
        INSERT INTO products VALUES (2, 'gadget', NULL, NULL, NULL);

        INSERT INTO migratehistory VALUES (1, '001_initial');
    """)
