#!/usr/bin/env python3
"""
Inserter - one INSERT per source row

A failing row is recorded in the table's progress and the next row runs; a
single bad row never aborts its page or table. After each page the commit
directive is issued. On an autocommit connection that directive is a no-op
and every row is already durable on its own; in PAGE mode rows run inside
savepoints and the page is committed as a whole.
"""

import logging
from enum import Enum
from typing import Any, Dict, List, Optional, Tuple

from core.encoder import encode_row_literals, encode_row_params
from core.identifiers import get_safe_identifier
from core.pager import FailedRow, Page, TableProgress

logger = logging.getLogger(__name__)


class InsertMode(Enum):
    PARAMETERIZED = "parameterized"
    LITERAL = "literal"


class CommitMode(Enum):
    AUTOCOMMIT = "autocommit"
    PAGE = "page"


class Inserter:
    def __init__(self, destination, table: str, column_types: Dict[str, str],
                 mode: InsertMode = InsertMode.PARAMETERIZED):
        self.destination = destination
        self.table = table
        self.safe_table = get_safe_identifier(table)
        self.column_types = column_types
        self.mode = mode

    def build_insert(self, row: Dict[str, Any]) -> Tuple[str, Optional[List[Any]]]:
        """Build the INSERT statement (and bind parameters) for one row"""
        columns = ', '.join(get_safe_identifier(column) for column in row)

        if self.mode is InsertMode.LITERAL:
            values = encode_row_literals(row, self.column_types)
            return f"INSERT INTO {self.safe_table} ({columns}) VALUES ({values})", None

        placeholders = ', '.join(['%s'] * len(row))
        params = encode_row_params(row, self.column_types)
        return f"INSERT INTO {self.safe_table} ({columns}) VALUES ({placeholders})", params

    def insert_page(self, page: Page, progress: TableProgress) -> int:
        """Insert every row of a page; returns the number of rows that failed."""
        failures = 0

        for index, row in enumerate(page.rows):
            row_index = page.offset + index
            try:
                sql, params = self.build_insert(row)
            except (TypeError, ValueError) as e:
                error = f"Could not encode row: {e}"
            else:
                result = self.destination.execute_isolated(sql, params)
                if result['success']:
                    continue
                error = result['error']

            logger.warning(f"Error processing row {row_index} in {self.table}: {error}")
            progress.failed_rows.append(FailedRow(self.table, row_index, error))
            failures += 1

        self.destination.commit()
        return failures
