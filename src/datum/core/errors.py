"""
Error taxonomy for Datum.

All Datum errors inherit from DatumError and include:
- A unique error code for programmatic handling
- A human-readable message
- Optional details describing the failing context

Driver errors (sqlite3, psycopg, mysql.connector) are never wrapped; they
propagate to the caller unchanged.
"""

from typing import Any


class DatumError(Exception):
    """
    Base class for all Datum errors.

    Attributes:
        code: Unique error code for programmatic handling
        message: Human-readable error message
        details: Additional error context
    """

    code: str = "DATUM_ERROR"

    def __init__(
        self,
        message: str,
        *,
        details: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def to_dict(self) -> dict[str, Any]:
        """Convert error to a dictionary for serialization."""
        return {
            "code": self.code,
            "message": self.message,
            "details": self.details,
        }


class ConnectionNotEstablished(DatumError):
    """No connection configuration is registered for a model hierarchy."""

    code = "CONNECTION_NOT_ESTABLISHED"

    def __init__(self, model: str | None = None, reason: str | None = None, **kwargs: Any) -> None:
        message = "No connection has been established"
        if model:
            message += f" for {model}"
        if reason:
            message += f"; {reason}"
        super().__init__(message, details={"model": model, "reason": reason}, **kwargs)


class UnavailableAdapter(DatumError):
    """No adapter is registered for the requested dialect."""

    code = "UNAVAILABLE_ADAPTER"

    def __init__(self, dialect: str, available: list[str] | None = None, **kwargs: Any) -> None:
        super().__init__(
            f"Adapter '{dialect}' is unavailable. This usually indicates that a "
            "required driver is not installed, or the application is "
            "misconfigured. Check installed packages and the DSN.",
            details={"dialect": dialect, "available": available or []},
            **kwargs,
        )


class RecordNotFound(DatumError):
    """A strict finder did not find the requested record(s)."""

    code = "RECORD_NOT_FOUND"


class InvalidHierarchyError(DatumError):
    """A model class has no ancestor anchoring it to Record."""

    code = "INVALID_HIERARCHY"


class UnsupportedValue(DatumError):
    """A value cannot be bound into a statement."""

    code = "UNSUPPORTED_VALUE"

    def __init__(self, column: str, value: Any, **kwargs: Any) -> None:
        super().__init__(
            f"Unsupported value for '{column}': {type(value).__name__}",
            details={"column": column, "type": type(value).__name__},
            **kwargs,
        )


class InvalidStatement(DatumError):
    """A filter or update payload is malformed."""

    code = "INVALID_STATEMENT"


class InvalidArgumentError(DatumError, ValueError):
    """A usage contract was violated before any SQL was issued."""

    code = "INVALID_ARGUMENT"


class CastError(DatumError, ValueError):
    """A stored value could not be cast into its model representation."""

    code = "CAST_ERROR"

    def __init__(self, column: str, value: Any, expected: str, **kwargs: Any) -> None:
        super().__init__(
            f"Cannot cast {value!r} in column '{column}' using format '{expected}'",
            details={"column": column, "value": repr(value), "format": expected},
            **kwargs,
        )


class MigrationDirectoryNotSet(DatumError):
    """The migrations directory has not been configured."""

    code = "MIGRATION_DIRECTORY_NOT_SET"

    def __init__(self, message: str = "Migration directory not set", **kwargs: Any) -> None:
        super().__init__(message, **kwargs)


class AsymmetricalMigration(DatumError):
    """A migration lacks either its up or its down script."""

    code = "ASYMMETRICAL_MIGRATION"

    def __init__(self, migration_id: str, name: str, **kwargs: Any) -> None:
        super().__init__(
            f"{migration_id}_{name} is asymmetrical; migrations must have a "
            ".up.sql, and .down.sql pair.",
            details={"id": migration_id, "name": name},
            **kwargs,
        )


FIND_NOT_FOUND_SINGLE = "Could not find {model} with {key}='{id}'"
FIND_NOT_FOUND_MULTIPLE = (
    "Could not find all {model} records with {key}=({ids}) "
    "(obtained {have} results, but expected {want})"
)
FIND_BY_NOT_FOUND = "Could not find {model} with {conditions}"
LOAD_GENERIC = "Could not find {model}"


def _dump_value(value: Any) -> str:
    if isinstance(value, bool):
        return "'t'" if value else "'f'"
    if isinstance(value, (int, float)):
        return str(value)
    if isinstance(value, str):
        return '"' + value.replace("\\", "\\\\").replace('"', '\\"') + '"'
    return _dump_value(str(value))


def find_not_found(model: str, key: str, ids: list[Any], have: int) -> RecordNotFound:
    """Build the error raised when find_or_raise misses one or more ids."""
    if len(ids) == 1:
        message = FIND_NOT_FOUND_SINGLE.format(model=model, key=key, id=ids[0])
    else:
        message = FIND_NOT_FOUND_MULTIPLE.format(
            model=model,
            key=key,
            ids=", ".join(str(i) for i in ids),
            have=have,
            want=len(ids),
        )
    return RecordNotFound(message, details={"model": model, "ids": ids})


def find_by_not_found(model: str, conditions: dict[str, Any]) -> RecordNotFound:
    """Build the error raised when a conditions lookup finds nothing."""
    parts = []
    for key, value in conditions.items():
        if isinstance(value, (list, tuple)):
            rendered = " IN (" + ", ".join(_dump_value(v) for v in value) + ")"
        else:
            rendered = f" = {_dump_value(value)}"
        parts.append(f"'{key}'{rendered}")
    return RecordNotFound(
        FIND_BY_NOT_FOUND.format(model=model, conditions=", ".join(parts)),
        details={"model": model},
    )


def generic_not_found(model: str) -> RecordNotFound:
    """Build the error raised when an unfiltered lookup finds nothing."""
    return RecordNotFound(LOAD_GENERIC.format(model=model), details={"model": model})


def find_by_sql_not_found(model: str, sql: str, args: tuple[Any, ...]) -> RecordNotFound:
    """Build the error raised when a raw SQL lookup finds nothing."""
    rendered = ", ".join(_dump_value(a) for a in args)
    message = FIND_BY_NOT_FOUND.format(model=model, conditions=f"'{sql}'")
    if rendered:
        message += f" and arguments ({rendered})"
    return RecordNotFound(message, details={"model": model, "sql": sql})
