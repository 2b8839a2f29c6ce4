"""
Tests for destination table preparation.
"""

from unittest.mock import MagicMock

import pytest

from core.errors import SchemaError
from core.schema_translator import SchemaTranslator
from extensions.plugins.sqlite_adapter import SourceColumn, SQLiteAdapter


@pytest.fixture
def source(webui_db):
    adapter = SQLiteAdapter(webui_db)
    yield adapter
    adapter.close()


class TestCreateTable:

    def test_create_statement(self):
        translator = SchemaTranslator(MagicMock(), MagicMock())
        sql = translator.build_create_table('products', [
            SourceColumn('id', 'INTEGER'),
            SourceColumn('name', 'TEXT'),
            SourceColumn('price', 'REAL'),
            SourceColumn('image', 'BLOB'),
            SourceColumn('created_at', 'DATETIME'),
        ])
        assert sql == ('CREATE TABLE IF NOT EXISTS products '
                       '(id INTEGER, name TEXT, price DOUBLE PRECISION, image BYTEA, created_at TEXT)')

    def test_reserved_names_quoted(self):
        translator = SchemaTranslator(MagicMock(), MagicMock())
        sql = translator.build_create_table('user', [SourceColumn('order', 'INTEGER'), SourceColumn('group', '')])
        assert sql == 'CREATE TABLE IF NOT EXISTS "user" ("order" INTEGER, "group" TEXT)'

    def test_lossy_types_logged(self, caplog):
        translator = SchemaTranslator(MagicMock(), MagicMock())
        with caplog.at_level('WARNING', logger='core.schema_translator'):
            translator.build_create_table('products', [SourceColumn('created_at', 'DATETIME')])
        assert "LOSSY TYPE in products.created_at" in caplog.text


class TestPrepareTable:

    def test_missing_table_is_created(self, source, destination):
        column_types = SchemaTranslator(source, destination).prepare_table('products')

        assert column_types == {
            'id': 'integer', 'name': 'text', 'price': 'double precision',
            'image': 'bytea', 'created_at': 'text',
        }
        statements = [sql for sql, _ in destination.statements]
        assert statements[0] == 'TRUNCATE TABLE products CASCADE'
        assert statements[1].startswith('CREATE TABLE IF NOT EXISTS products (')
        # Failed truncate is rolled back
        assert destination.rollbacks == 1
        assert destination.commits == 1

    def test_existing_table_is_reused_and_emptied(self, source, destination):
        destination.tables['users'] = {'id': 'integer', 'name': 'text', 'is_admin': 'boolean'}
        destination.rows['users'] = [[9, 'stale', False]]

        column_types = SchemaTranslator(source, destination).prepare_table('users')

        assert column_types['is_admin'] == 'boolean'
        assert destination.rows['users'] == []
        assert not any(sql.startswith('CREATE') for sql, _ in destination.statements)
        assert destination.rollbacks == 0

    def test_catalog_lookup_uses_folded_name(self, make_source_db, destination):
        source = SQLiteAdapter(make_source_db("CREATE TABLE ChatLog (Id INTEGER, Body TEXT);"))
        try:
            column_types = SchemaTranslator(source, destination).prepare_table('ChatLog')
        finally:
            source.close()
        assert column_types == {'id': 'integer', 'body': 'text'}
        assert 'chatlog' in destination.tables

    def test_create_failure_is_fatal(self, source, destination):
        destination.fail_on('CREATE TABLE', 'permission denied for schema public')

        with pytest.raises(SchemaError) as exc_info:
            SchemaTranslator(source, destination).prepare_table('products')

        assert exc_info.value.table == 'products'
        assert "permission denied" in str(exc_info.value)
        assert destination.rollbacks == 2

    def test_schema_read_retried(self, destination):
        source = MagicMock()
        source.get_columns.side_effect = [
            SchemaError("database is locked", table='t'),
            [SourceColumn('id', 'INTEGER')],
        ]
        SchemaTranslator(source, destination, max_retries=3).prepare_table('t')
        assert source.get_columns.call_count == 2
        assert destination.tables['t'] == {'id': 'integer'}

    def test_schema_read_gives_up(self, destination):
        source = MagicMock()
        source.get_columns.side_effect = SchemaError("no such table", table='t')
        with pytest.raises(SchemaError):
            SchemaTranslator(source, destination, max_retries=2).prepare_table('t')
        assert source.get_columns.call_count == 2
