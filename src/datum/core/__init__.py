"""
Datum Core Module.

Contains the error taxonomy, column casting, filter expressions, DSN parsing
and word inflection.
"""

from datum.core.column import (
    DEFAULT_FORMATS,
    CastFormats,
    Column,
    ColumnType,
    cast_to_model,
    cast_to_storage,
    classify,
    extract_limit,
)
from datum.core.dsn import ConnectionConfig, parse_dsn
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
from datum.core.filters import (
    ConditionsFilter,
    Filter,
    OrderDirection,
    OrderMap,
    SqlFilter,
    build_filter,
    normalize_order,
)

__all__ = [
    # Columns
    "Column",
    "ColumnType",
    "CastFormats",
    "DEFAULT_FORMATS",
    "classify",
    "extract_limit",
    "cast_to_storage",
    "cast_to_model",
    # DSN
    "ConnectionConfig",
    "parse_dsn",
    # Filters
    "Filter",
    "SqlFilter",
    "ConditionsFilter",
    "OrderDirection",
    "OrderMap",
    "build_filter",
    "normalize_order",
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
