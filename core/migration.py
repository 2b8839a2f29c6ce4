"""
sqlite2pg Migration Runner
==========================

Copies every user table of a SQLite database into PostgreSQL:

    integrity precheck -> enumerate tables -> per table:
        prepare destination -> page source rows -> insert row by row

The runner owns both connections and closes them exactly once, whichever way
the run ends.

Not atomic: the source is read without a snapshot, so concurrent writers can
shift pages or change counts mid-run, and rows already inserted stay in the
destination if the run aborts.
"""

import logging
import time
from dataclasses import dataclass, field
from typing import Iterator, List, Optional

from core.errors import IntegrityCheckError, RowFetchError, SchemaError
from core.identifiers import get_safe_identifier
from core.inserter import CommitMode, Inserter
from core.integrity import check_source_integrity
from core.pager import RowPager, TableProgress
from core.schema_translator import SchemaTranslator

logger = logging.getLogger(__name__)


@dataclass
class TableResult:
    table: str
    progress: TableProgress
    error: Optional[str] = None

    @property
    def succeeded(self) -> bool:
        return self.error is None


@dataclass
class MigrationSummary:
    tables: List[TableResult] = field(default_factory=list)
    skipped_tables: List[str] = field(default_factory=list)
    start_time: float = field(default_factory=time.time)
    end_time: Optional[float] = None

    @property
    def total_processed(self) -> int:
        return sum(t.progress.processed_rows for t in self.tables)

    @property
    def total_inserted(self) -> int:
        return sum(t.progress.inserted_rows for t in self.tables)

    @property
    def total_failed(self) -> int:
        return sum(len(t.progress.failed_rows) for t in self.tables)

    @property
    def total_skipped_pages(self) -> int:
        return sum(len(t.progress.skipped_pages) for t in self.tables)

    @property
    def failed_tables(self) -> List[TableResult]:
        return [t for t in self.tables if not t.succeeded]

    @property
    def duration(self) -> float:
        return (self.end_time or time.time()) - self.start_time


class MigrationRunner:
    def __init__(self, config, source=None, destination=None):
        self.config = config
        self.source = source
        self.destination = destination
        self._closed = False

    # Connections

    def connect_source(self):
        if self.source is None:
            from extensions.plugins.sqlite_adapter import SQLiteAdapter
            logger.info(f"Connecting to source: {self.config.sqlite_path}...")
            self.source = SQLiteAdapter(self.config.sqlite_path,
                                        apply_pragmas=self.config.apply_source_pragmas)
        return self.source

    def connect_destination(self):
        if self.destination is None:
            from extensions.plugins.postgresql_adapter import ConnectionConfig, PostgreSQLAdapter, SSLMode
            logger.info(f"Connecting to destination: {self.config.get_db_url()}...")
            self.destination = PostgreSQLAdapter(ConnectionConfig(
                host=self.config.pg_host,
                port=self.config.pg_port,
                database=self.config.pg_database,
                user=self.config.pg_user,
                password=self.config.pg_password,
                connect_timeout=self.config.pg_connect_timeout,
                ssl_mode=SSLMode(self.config.pg_sslmode),
                autocommit=self.config.commit_mode_enum is CommitMode.AUTOCOMMIT,
            ))
        return self.destination

    def close(self):
        """Close database connections and release resources."""
        if self._closed:
            return
        self._closed = True
        for adapter in (self.source, self.destination):
            if adapter is None:
                continue
            try:
                adapter.close()
            except Exception as e:
                logger.warning(f"Error closing {type(adapter).__name__}: {e}")

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()
        return False

    # Steps

    def enumerate_tables(self, summary: Optional[MigrationSummary] = None) -> Iterator[str]:
        """User tables in catalog order, minus the bookkeeping denylist."""
        skip = set(self.config.skip_tables)
        for table in self.source.get_tables():
            if table in skip:
                logger.info(f"Skipping table: {table}")
                if summary is not None:
                    summary.skipped_tables.append(table)
                continue
            yield table

    def migrate_table(self, table: str, progress: Optional[TableProgress] = None) -> TableResult:
        """
        Copy one table. `progress` is filled in place, so a caller that passes
        its own keeps the counters and failed rows if the table aborts.
        """
        logger.info(f"Processing table: {table}")
        progress = progress if progress is not None else TableProgress(table=table)

        translator = SchemaTranslator(self.source, self.destination, max_retries=self.config.max_retries)
        column_types = translator.prepare_table(table)

        pager = RowPager(
            self.source, table,
            batch_size=self.config.batch_size,
            policy=self.config.fetch_failure_policy_enum,
            max_retries=self.config.max_retries,
            retry_delay=self.config.fetch_retry_delay,
            progress=progress,
        )
        inserter = Inserter(self.destination, table, column_types, mode=self.config.insert_mode_enum)

        try:
            for page in pager.pages():
                inserter.insert_page(page, progress)
        finally:
            self._log_table_outcome(progress)

        return TableResult(table=table, progress=progress)

    def _log_table_outcome(self, progress: TableProgress):
        table = progress.table
        if progress.failed_rows:
            logger.warning(f"Failed rows for {table}:")
            for failed in progress.failed_rows:
                logger.warning(f"Row {failed.row_index}: {failed.error}")
        if progress.skipped_pages:
            logger.warning(f"Unread pages in {table} at offsets {progress.skipped_pages} "
                           f"({self.config.batch_size} rows each) were skipped")

        logger.info(f"Completed migrating {progress.processed_rows} rows from {table}")
        logger.info(f"Failed to migrate {len(progress.failed_rows)} rows from {table}")

    def run(self) -> MigrationSummary:
        """
        Run the whole migration.

        Raises:
            IntegrityCheckError: source failed its precheck; destination untouched
            MigrationError: connection failure or a table error while
                continue_on_table_error is off
        """
        summary = MigrationSummary()

        self.connect_source()

        if self.config.skip_integrity_check:
            logger.warning("Skipping SQLite integrity check")
        else:
            report = check_source_integrity(self.source)
            if not report:
                logger.error("Aborting migration due to database integrity issues")
                raise IntegrityCheckError("Source database failed integrity check", report.anomalies)

        self.connect_destination()

        try:
            for table in self.enumerate_tables(summary):
                progress = TableProgress(table=table)
                try:
                    result = self.migrate_table(table, progress)
                except (SchemaError, RowFetchError) as e:
                    if not self.config.continue_on_table_error:
                        raise
                    logger.error(f"Giving up on table {table}: {e}")
                    self.destination.rollback()
                    result = TableResult(table=table, progress=progress, error=str(e))
                summary.tables.append(result)
        except Exception as e:
            logger.error(f"Critical error during migration: {e}")
            self.destination.rollback()
            raise
        finally:
            summary.end_time = time.time()

        logger.info("Migration completed!")
        if summary.total_failed:
            logger.info(f"Total failed rows: {summary.total_failed}")
        return summary


def print_report(summary: MigrationSummary):
    """Print the end-of-run report"""
    print("\n" + "=" * 70)
    print("MIGRATION REPORT")
    print("=" * 70)

    for result in summary.tables:
        progress = result.progress
        if result.succeeded:
            marker = "✓" if not progress.failed_rows and not progress.skipped_pages else "⚠️"
            print(f"  {marker} {result.table} ({get_safe_identifier(result.table)})")
            print(f"      Rows: {progress.inserted_rows:,} inserted / {progress.total_rows:,} counted")
            if progress.failed_rows:
                print(f"      Failed rows: {len(progress.failed_rows):,}")
            if progress.skipped_pages:
                print(f"      Skipped pages at offsets: {progress.skipped_pages}")
        else:
            print(f"  ✗ {result.table}")
            print(f"      Error: {result.error}")

    if summary.skipped_tables:
        print("\n" + "-" * 70)
        print(f"SKIPPED TABLES: {', '.join(summary.skipped_tables)}")

    print("\n" + "-" * 70)
    print("SUMMARY:")
    print("-" * 70)
    print(f"  Tables migrated: {len(summary.tables) - len(summary.failed_tables)}")
    print(f"  Tables failed: {len(summary.failed_tables)}")
    print(f"  Rows inserted: {summary.total_inserted:,}")
    print(f"  Rows failed: {summary.total_failed:,}")
    print(f"  Pages skipped: {summary.total_skipped_pages}")
    print(f"  Duration: {summary.duration:.2f}s")
    print("=" * 70 + "\n")
