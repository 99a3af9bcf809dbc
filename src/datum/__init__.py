"""
Datum - a small ORM with schema-reflecting models.

Models reflect their columns from the live table, queries are built by
chaining criteria on a QueryProxy, and SQL is generated per dialect by
adapters for SQLite, PostgreSQL and MySQL. Schema changes are applied from
plain SQL migration files tracked in a ledger table.
"""

__version__ = "0.1.0"

from datum.connection import ConnectionRegistry, ConnectionScope, registry
from datum.core.errors import (
    AsymmetricalMigration,
    CastError,
    ConnectionNotEstablished,
    DatumError,
    InvalidArgumentError,
    InvalidHierarchyError,
    InvalidStatement,
    MigrationDirectoryNotSet,
    RecordNotFound,
    UnavailableAdapter,
    UnsupportedValue,
)
from datum.migrations import Migration, MigrationStatus, Migrator
from datum.models import Record
from datum.query import QueryProxy, RecordEnumerator
from datum.settings import Settings, configure, get_settings, reset_settings

__all__ = [
    # Version
    "__version__",
    # Models and queries
    "Record",
    "QueryProxy",
    "RecordEnumerator",
    # Connections
    "ConnectionRegistry",
    "ConnectionScope",
    "registry",
    # Migrations
    "Migration",
    "MigrationStatus",
    "Migrator",
    # Settings
    "Settings",
    "configure",
    "get_settings",
    "reset_settings",
    # Errors
    "DatumError",
    "ConnectionNotEstablished",
    "UnavailableAdapter",
    "RecordNotFound",
    "InvalidHierarchyError",
    "UnsupportedValue",
    "InvalidStatement",
    "InvalidArgumentError",
    "CastError",
    "MigrationDirectoryNotSet",
    "AsymmetricalMigration",
]
