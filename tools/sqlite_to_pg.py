#!/usr/bin/env python3
"""
sqlite2pg - SQLite to PostgreSQL Migrator
=========================================

Copies every user table of a SQLite database into a PostgreSQL database in a
single run: integrity precheck, schema translation, paged row copy.

Settings come from (highest first) command-line flags, SQLITE2PG_* environment
variables, a .env file, then built-in defaults.

Usage:
    python3 tools/sqlite_to_pg.py --sqlite-path webui.db --pg-host localhost --pg-port 5433

    # Keep going past a table that cannot be created
    python3 tools/sqlite_to_pg.py --continue-on-table-error

Exit status is 1 when the source fails its integrity check, the configuration
is invalid, a connection cannot be opened or the run aborts; 0 otherwise, even
when individual rows failed.
"""

import argparse
import logging
import sys
from pathlib import Path

# Add parent directory to path to import sqlite2pg modules
sys.path.insert(0, str(Path(__file__).parent.parent.resolve()))

from config.migration_config import load_config, LOG_LEVELS
from core.errors import IntegrityCheckError, MigrationError
from core.inserter import CommitMode, InsertMode
from core.migration import MigrationRunner, print_report
from core.pager import FetchFailurePolicy
from extensions.plugins.postgresql_adapter import sanitize_error

logger = logging.getLogger(__name__)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="sqlite2pg - SQLite to PostgreSQL Migrator")
    parser.add_argument("--env-file", help="Path to a .env file (default: ./.env)")

    source = parser.add_argument_group("source")
    source.add_argument("--sqlite-path", help="SQLite database file (default: webui.db)")
    source.add_argument("--no-source-pragmas", dest="apply_source_pragmas", action="store_false", default=None,
                        help="Do not switch the source to WAL / synchronous=NORMAL")

    target = parser.add_argument_group("destination")
    target.add_argument("--pg-host", help="PostgreSQL host (default: localhost)")
    target.add_argument("--pg-port", type=int, help="PostgreSQL port (default: 5433)")
    target.add_argument("--pg-database", help="PostgreSQL database (default: appdb)")
    target.add_argument("--pg-user", help="PostgreSQL user (default: appuser)")
    target.add_argument("--pg-password", help="PostgreSQL password (prefer SQLITE2PG_PG_PASSWORD)")
    target.add_argument("--pg-sslmode", help="libpq sslmode (default: prefer)")
    target.add_argument("--pg-connect-timeout", type=int, help="Connect timeout in seconds (default: 10)")

    run = parser.add_argument_group("run")
    run.add_argument("--batch-size", type=int, help="Rows per page (default: 500)")
    run.add_argument("--max-retries", type=int, help="Attempts for schema reads and retried fetches (default: 3)")
    run.add_argument("--fetch-retry-delay", type=float, help="Base delay in seconds between fetch retries")
    run.add_argument("--insert-mode", choices=[m.value for m in InsertMode],
                     help="Bind values as parameters or inline them as literals")
    run.add_argument("--commit-mode", choices=[m.value for m in CommitMode],
                     help="Commit every row (autocommit) or once per page")
    run.add_argument("--fetch-failure-policy", choices=[p.value for p in FetchFailurePolicy],
                     help="What to do when reading a page fails")
    run.add_argument("--continue-on-table-error", action="store_true", default=None,
                     help="Record a table that cannot be prepared and move on to the next one")
    run.add_argument("--skip-integrity-check", action="store_true", default=None,
                     help="Do not run the SQLite integrity precheck")
    run.add_argument("--skip-tables", type=lambda s: tuple(t.strip() for t in s.split(',') if t.strip()),
                     help="Comma-separated tables to leave out (default: migratehistory,alembic_version)")
    run.add_argument("--log-level", type=str.upper, choices=LOG_LEVELS, help="Logging level (default: INFO)")
    return parser


def main(argv=None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    overrides = vars(args)
    env_file = overrides.pop("env_file")

    try:
        config = load_config(env_file).with_overrides(**overrides).validate()
    except MigrationError as e:
        logging.basicConfig(level=logging.INFO, format='%(asctime)s - %(levelname)s - %(message)s')
        logger.error(f"Invalid configuration: {e}")
        return 1

    logging.basicConfig(level=getattr(logging, config.log_level.upper()),
                        format='%(asctime)s - %(levelname)s - %(message)s')
    logger.debug(f"Configuration: {config.get_safe_dict()}")

    try:
        with MigrationRunner(config) as runner:
            summary = runner.run()
    except IntegrityCheckError as e:
        logger.error(f"Migration aborted: {e}")
        return 1
    except Exception as e:
        logger.error(f"Fatal error: {sanitize_error(e)}")
        return 1

    print_report(summary)
    return 0


if __name__ == "__main__":
    sys.exit(main())
