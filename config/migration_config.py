#!/usr/bin/env python3
"""
Migration Configuration for sqlite2pg
Handles defaults, .env files and SQLITE2PG_* environment variables centrally
"""

import os
from dataclasses import dataclass, fields, replace
from pathlib import Path
from typing import Dict, Any, Mapping, Optional, Tuple

from core.errors import ConfigError
from core.inserter import CommitMode, InsertMode
from core.pager import FetchFailurePolicy

ENV_PREFIX = 'SQLITE2PG_'

DEFAULT_SKIP_TABLES: Tuple[str, ...] = ('migratehistory', 'alembic_version')

LOG_LEVELS = ('DEBUG', 'INFO', 'WARNING', 'ERROR', 'CRITICAL')

SSL_MODES = ('disable', 'allow', 'prefer', 'require', 'verify-ca', 'verify-full')


@dataclass
class MigrationConfig:
    """sqlite2pg configuration settings"""

    # Source
    sqlite_path: str = 'webui.db'
    apply_source_pragmas: bool = True

    # Destination
    pg_host: str = 'localhost'
    pg_port: int = 5433
    pg_database: str = 'appdb'
    pg_user: str = 'appuser'
    pg_password: str = 'apppassword'
    pg_sslmode: str = 'prefer'
    pg_connect_timeout: int = 10

    # Run behaviour
    batch_size: int = 500
    max_retries: int = 3
    fetch_retry_delay: float = 1.0
    insert_mode: str = InsertMode.PARAMETERIZED.value
    commit_mode: str = CommitMode.AUTOCOMMIT.value
    fetch_failure_policy: str = FetchFailurePolicy.SKIP.value
    continue_on_table_error: bool = False
    skip_integrity_check: bool = False
    skip_tables: Tuple[str, ...] = DEFAULT_SKIP_TABLES

    log_level: str = 'INFO'

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> 'MigrationConfig':
        """Build a config from SQLITE2PG_* variables over the dataclass defaults"""
        environ = os.environ if environ is None else environ
        overrides = {}

        for f in fields(cls):
            raw = environ.get(ENV_PREFIX + f.name.upper())
            if raw is None:
                continue
            overrides[f.name] = _coerce(f.name, raw, getattr(cls, f.name, None))

        return cls(**overrides)

    def with_overrides(self, **overrides) -> 'MigrationConfig':
        """Return a copy with every non-None override applied"""
        return replace(self, **{k: v for k, v in overrides.items() if v is not None})

    def validate(self) -> 'MigrationConfig':
        """Validate values, raising ConfigError on the first problem"""
        if self.batch_size < 1:
            raise ConfigError(f"batch_size must be positive, got {self.batch_size}")
        if self.max_retries < 1:
            raise ConfigError(f"max_retries must be at least 1, got {self.max_retries}")
        if self.fetch_retry_delay < 0:
            raise ConfigError(f"fetch_retry_delay cannot be negative, got {self.fetch_retry_delay}")
        if not 0 < self.pg_port < 65536:
            raise ConfigError(f"pg_port out of range: {self.pg_port}")
        if self.log_level.upper() not in LOG_LEVELS:
            raise ConfigError(f"Unknown log level '{self.log_level}'")
        if self.pg_sslmode not in SSL_MODES:
            raise ConfigError(f"Unknown pg_sslmode '{self.pg_sslmode}' (expected one of: {', '.join(SSL_MODES)})")

        for name, enum_cls in (('insert_mode', InsertMode),
                               ('commit_mode', CommitMode),
                               ('fetch_failure_policy', FetchFailurePolicy)):
            value = getattr(self, name)
            try:
                enum_cls(value)
            except ValueError:
                choices = ', '.join(m.value for m in enum_cls)
                raise ConfigError(f"Unknown {name} '{value}' (expected one of: {choices})")

        return self

    @property
    def insert_mode_enum(self) -> InsertMode:
        return InsertMode(self.insert_mode)

    @property
    def commit_mode_enum(self) -> CommitMode:
        return CommitMode(self.commit_mode)

    @property
    def fetch_failure_policy_enum(self) -> FetchFailurePolicy:
        return FetchFailurePolicy(self.fetch_failure_policy)

    def get_db_url(self, include_password: bool = False) -> str:
        """Get destination connection URL"""
        if include_password and self.pg_password:
            return f"postgresql://{self.pg_user}:{self.pg_password}@{self.pg_host}:{self.pg_port}/{self.pg_database}"
        return f"postgresql://{self.pg_user}@{self.pg_host}:{self.pg_port}/{self.pg_database}"

    def get_safe_dict(self) -> Dict[str, Any]:
        """Get configuration as dict without sensitive values"""
        data = {f.name: getattr(self, f.name) for f in fields(self)}
        data['pg_password'] = '***' if self.pg_password else ''
        data['skip_tables'] = list(self.skip_tables)
        return data


def _coerce(name: str, raw: str, default: Any) -> Any:
    raw = raw.strip()
    if isinstance(default, bool):
        return raw.lower() in ('1', 'true', 'yes', 'on')
    if isinstance(default, int):
        try:
            return int(raw)
        except ValueError:
            raise ConfigError(f"{ENV_PREFIX}{name.upper()} must be an integer, got '{raw}'")
    if isinstance(default, float):
        try:
            return float(raw)
        except ValueError:
            raise ConfigError(f"{ENV_PREFIX}{name.upper()} must be a number, got '{raw}'")
    if isinstance(default, tuple):
        return tuple(part.strip() for part in raw.split(',') if part.strip())
    return raw


def load_env_file(env_file: Path, environ: Optional[Dict[str, str]] = None) -> int:
    """Load KEY=VALUE lines from a .env file.

    Only sets values for keys not already in the environment, so exported
    variables take precedence over the file. Returns the number of keys set.
    """
    environ = os.environ if environ is None else environ
    loaded = 0

    with open(env_file, 'r', encoding='utf-8') as f:
        for line in f:
            line = line.strip()
            if not line or line.startswith('#') or '=' not in line:
                continue
            key, value = line.split('=', 1)
            key = key.strip()
            if key.startswith('export '):
                key = key[len('export '):].strip()
            value = value.strip().strip('"').strip("'")
            if key not in environ:
                environ[key] = value
                loaded += 1

    return loaded


def load_config(env_file: Optional[Path] = None, environ: Optional[Dict[str, str]] = None) -> MigrationConfig:
    """Load configuration.

    Priority (highest to lowest):
    1. Environment variables (SQLITE2PG_*)
    2. .env file (loaded into the environment before config creation)
    3. MigrationConfig dataclass defaults

    CLI flags are layered on top by the caller with with_overrides().
    """
    if env_file:
        env_file = Path(env_file)
        if not env_file.is_file():
            raise ConfigError(f"Env file not found: {env_file}")
    else:
        env_file = Path.cwd() / '.env'

    if env_file.is_file():
        load_env_file(env_file, environ)
    return MigrationConfig.from_env(environ)
