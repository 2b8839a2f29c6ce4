#!/usr/bin/env python3
"""
sqlite2pg Error Hierarchy
Canonical exception classes for the migration run.
"""

from enum import Enum

class ErrorCode(Enum):
    UNKNOWN = "UNKNOWN_ERROR"
    CONFIG_ERROR = "CONFIG_ERROR"
    CONNECTION_ERROR = "CONNECTION_ERROR"
    INTEGRITY_ERROR = "INTEGRITY_ERROR"
    SCHEMA_ERROR = "SCHEMA_ERROR"
    FETCH_ERROR = "FETCH_ERROR"

class MigrationError(Exception):
    """Base class for all migration exceptions"""
    def __init__(self, message: str, code: ErrorCode = ErrorCode.UNKNOWN, details: dict = None):
        super().__init__(message)
        self.message = message
        self.code = code
        self.details = details or {}

class ConfigError(MigrationError):
    """Raised when configuration values are invalid"""
    def __init__(self, message: str, details: dict = None):
        super().__init__(message, ErrorCode.CONFIG_ERROR, details)

class ConnectionFailedError(MigrationError):
    """Raised when the source or destination cannot be opened"""
    def __init__(self, message: str, details: dict = None):
        super().__init__(message, ErrorCode.CONNECTION_ERROR, details)

class IntegrityCheckError(MigrationError):
    """Raised when the source database fails its structural precheck"""
    def __init__(self, message: str, anomalies: list = None):
        super().__init__(message, ErrorCode.INTEGRITY_ERROR, {'anomalies': anomalies or []})

class SchemaError(MigrationError):
    """Raised when a table schema cannot be read or created"""
    def __init__(self, message: str, table: str = None):
        super().__init__(message, ErrorCode.SCHEMA_ERROR, {'table': table})
        self.table = table

class RowFetchError(MigrationError):
    """Raised when a page of source rows cannot be read"""
    def __init__(self, message: str, table: str = None, offset: int = None):
        super().__init__(message, ErrorCode.FETCH_ERROR, {'table': table, 'offset': offset})
        self.table = table
        self.offset = offset
