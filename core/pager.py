#!/usr/bin/env python3
"""
Row Pager - LIMIT/OFFSET paging over one source table

Per table the pager runs FETCHING -> ENCODING_INSERTING -> FETCHING until a
fetch returns no rows. The consumer does the encoding and inserting between
two iterations; the offset then advances by the number of rows returned.

A failing fetch is handled by FetchFailurePolicy. The default SKIP policy
advances past the unread page, which loses those rows; they are recorded in
TableProgress.skipped_pages so the loss shows up in the summary.
"""

import logging
import time
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Iterator, List, NamedTuple, Optional

from core.errors import RowFetchError

logger = logging.getLogger(__name__)


class FetchFailurePolicy(Enum):
    SKIP = "skip"
    ABORT = "abort"
    RETRY = "retry"


class FailedRow(NamedTuple):
    table: str
    row_index: int
    error: str


@dataclass
class TableProgress:
    """Per-table counters, reset for every table"""
    table: str
    total_rows: int = 0
    processed_rows: int = 0
    read_rows: int = 0
    failed_rows: List[FailedRow] = field(default_factory=list)
    skipped_pages: List[int] = field(default_factory=list)

    @property
    def inserted_rows(self) -> int:
        return self.read_rows - len(self.failed_rows)


class Page(NamedTuple):
    offset: int
    rows: List[Dict[str, Any]]


class RowPager:
    """Iterates pages of one table and keeps its TableProgress current."""

    def __init__(self, source, table: str, batch_size: int,
                 policy: FetchFailurePolicy = FetchFailurePolicy.SKIP,
                 max_retries: int = 3, retry_delay: float = 1.0,
                 progress: Optional[TableProgress] = None):
        self.source = source
        self.table = table
        self.batch_size = batch_size
        self.policy = policy
        self.max_retries = max_retries
        self.retry_delay = retry_delay
        self.progress = progress if progress is not None else TableProgress(table=table)

    def pages(self) -> Iterator[Page]:
        progress = self.progress
        progress.total_rows = self.source.count_rows(self.table)
        offset = 0

        while True:
            try:
                rows = self._fetch(offset)
            except RowFetchError as e:
                if self.policy is not FetchFailurePolicy.SKIP:
                    raise

                logger.error(f"SQLite error during batch processing: {e}")
                logger.warning(f"Skipping rows {offset}-{offset + self.batch_size - 1} of {self.table}, "
                               f"attempting to continue with next batch...")
                progress.skipped_pages.append(offset)
                offset += self.batch_size
                progress.processed_rows = offset

                if offset >= progress.total_rows:
                    logger.warning(f"Offset {offset} is past the {progress.total_rows} rows counted in "
                                   f"{self.table}, stopping")
                    break
                continue

            if not rows:
                break

            yield Page(offset=offset, rows=rows)

            offset += len(rows)
            progress.read_rows += len(rows)
            progress.processed_rows = offset
            logger.info(f"Processed {progress.processed_rows}/{progress.total_rows} rows from {self.table}")

    def _fetch(self, offset: int) -> List[Dict[str, Any]]:
        attempt = 0
        while True:
            try:
                return self.source.fetch_page(self.table, self.batch_size, offset)
            except RowFetchError as e:
                attempt += 1
                if self.policy is not FetchFailurePolicy.RETRY or attempt >= self.max_retries:
                    raise
                delay = self.retry_delay * attempt
                logger.warning(f"Retry {attempt}/{self.max_retries} fetching {self.table} at offset {offset} "
                               f"in {delay:.1f}s: {e}")
                time.sleep(delay)
