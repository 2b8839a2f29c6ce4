#!/usr/bin/env python3
"""
Schema Translator - prepares the destination table for one source table

Steps per table:
1. best-effort TRUNCATE ... CASCADE (missing table or any other error is logged)
2. read the destination column map
3. if the map is empty, CREATE TABLE IF NOT EXISTS from the source declaration

Existing destination tables are reused as they are; a changed source schema
is not reconciled.
"""

import logging
from typing import Dict, List

from core.errors import SchemaError
from core.identifiers import catalog_name, get_safe_identifier
from core.type_registry import TypeRegistry

logger = logging.getLogger(__name__)


class SchemaTranslator:
    def __init__(self, source, destination, max_retries: int = 3):
        self.source = source
        self.destination = destination
        self.max_retries = max_retries

    def truncate(self, table: str) -> bool:
        safe_table = get_safe_identifier(table)
        logger.info(f"Truncating table: {table}")
        result = self.destination.execute_query(f"TRUNCATE TABLE {safe_table} CASCADE")
        if not result['success']:
            logger.info(f"Note: Table {table} does not exist yet or could not be truncated: {result['error']}")
            self.destination.rollback()
            return False
        return True

    def read_source_columns(self, table: str) -> List:
        """PRAGMA table_info with up to max_retries attempts and no delay"""
        for attempt in range(1, self.max_retries + 1):
            try:
                return self.source.get_columns(table)
            except SchemaError as e:
                logger.warning(f"Retry {attempt}/{self.max_retries} getting schema for {table}: {e}")
                if attempt == self.max_retries:
                    raise

    def build_create_table(self, table: str, columns: List) -> str:
        column_defs = []
        for column in columns:
            is_lossy, reason = TypeRegistry.is_lossy_conversion(column.declared_type)
            if is_lossy:
                logger.warning(f"LOSSY TYPE in {table}.{column.name}: {reason}")
            pg_type = TypeRegistry.to_postgres(column.declared_type)
            column_defs.append(f"{get_safe_identifier(column.name)} {pg_type}")

        return f"CREATE TABLE IF NOT EXISTS {get_safe_identifier(table)} ({', '.join(column_defs)})"

    def create_table(self, table: str) -> None:
        columns = self.read_source_columns(table)
        create_sql = self.build_create_table(table, columns)

        logger.info(f"Creating table {table}...")
        result = self.destination.execute_query(create_sql)
        if not result['success']:
            self.destination.rollback()
            raise SchemaError(f"Failed to create table {table}: {result['error']}", table=table)

    def prepare_table(self, table: str) -> Dict[str, str]:
        """
        Make sure the destination table exists and is empty.

        Returns:
            Destination column map (lower-case column name -> data type)

        Raises:
            SchemaError: source schema unreadable or CREATE TABLE failed
        """
        self.truncate(table)

        column_types = self.destination.get_column_types(catalog_name(table))
        if not column_types:
            self.create_table(table)
            column_types = self.destination.get_column_types(catalog_name(table))

        self.destination.commit()
        return column_types
