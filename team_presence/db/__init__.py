"""Database access: connection pools, SQL rendering and migrations."""

from .database import (
    Connection,
    Database,
    ForeignKeyViolation,
    StorageError,
    StorageUnavailable,
    UniqueViolation,
    open_database,
)
from .query_builder import ABSENT, Dialect, Statement

__all__ = [
    "ABSENT",
    "Connection",
    "Database",
    "Dialect",
    "ForeignKeyViolation",
    "Statement",
    "StorageError",
    "StorageUnavailable",
    "UniqueViolation",
    "open_database",
]
