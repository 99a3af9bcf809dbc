"""
Column descriptors and type casting.

A Column is derived once per model class by reflecting the live table schema.
Its semantic type decides how values are cast when crossing the adapter
boundary: `cast_to_storage` produces what gets bound into a statement and
`cast_to_model` turns raw driver values back into Python values.
"""

import re
from dataclasses import dataclass
from datetime import date, datetime, time, timedelta, timezone
from enum import Enum
from typing import Any

from pydantic import BaseModel

from datum.core.errors import CastError


class ColumnType(str, Enum):
    """Semantic column types."""

    INTEGER = "integer"
    FLOAT = "float"
    DATETIME = "datetime"
    TIME = "time"
    DATE = "date"
    TEXT = "text"
    STRING = "string"
    BOOLEAN = "boolean"
    UNKNOWN = "unknown"


_LIMIT_RE = re.compile(r"\(\s*(\d+)")

# Evaluated in order; the first match wins.
_TYPE_RULES: list[tuple[re.Pattern[str], ColumnType]] = [
    (re.compile(r"interval", re.I), ColumnType.STRING),
    (re.compile(r"(big)?int", re.I), ColumnType.INTEGER),
    (re.compile(r"float|double|decimal|numeric|real|money", re.I), ColumnType.FLOAT),
    (re.compile(r"datetime|timestamp", re.I), ColumnType.DATETIME),
    (re.compile(r"date", re.I), ColumnType.DATE),
    (re.compile(r"time", re.I), ColumnType.TIME),
    (re.compile(r"(c|b)lob|text", re.I), ColumnType.TEXT),
    (re.compile(r"char|string", re.I), ColumnType.STRING),
    (re.compile(r"bool(ean)?", re.I), ColumnType.BOOLEAN),
]


def extract_limit(raw_type: str | None) -> int | None:
    """Extract the declared size from a raw type, e.g. VARCHAR(255) -> 255."""
    if not raw_type:
        return None
    match = _LIMIT_RE.search(raw_type)
    return int(match.group(1)) if match else None


def classify(raw_type: str | None) -> ColumnType:
    """
    Map a driver-reported type string to a semantic ColumnType.

    Matching is case-insensitive and substring based. MySQL reports booleans
    as TINYINT(1), so a tinyint is a boolean only when its display width is
    exactly 1.
    """
    if not raw_type:
        return ColumnType.UNKNOWN

    if re.search(r"tinyint", raw_type, re.I):
        return ColumnType.BOOLEAN if extract_limit(raw_type) == 1 else ColumnType.INTEGER

    for pattern, column_type in _TYPE_RULES:
        if pattern.search(raw_type):
            return column_type

    return ColumnType.UNKNOWN


class Column(BaseModel):
    """A single reflected database column."""

    name: str
    type: ColumnType = ColumnType.UNKNOWN
    default: Any = None
    limit: int | None = None
    raw_type: str | None = None

    model_config = {"frozen": True}

    @classmethod
    def reflect(
        cls,
        name: str,
        default: Any,
        raw_type: str | None = None,
        limit: int | None = None,
    ) -> "Column":
        """Build a Column from the raw values reported by a driver."""
        if limit is None:
            limit = extract_limit(raw_type)
        return cls(
            name=name,
            type=classify(raw_type),
            default=default,
            limit=limit,
            raw_type=raw_type,
        )


@dataclass(frozen=True)
class CastFormats:
    """strftime/strptime formats a dialect uses for temporal values."""

    date_format: str = "%Y-%m-%d"
    time_format: str = "%H:%M:%S%z"
    separator: str = "T"

    @property
    def timestamp_format(self) -> str:
        return f"{self.date_format}{self.separator}{self.time_format}"


DEFAULT_FORMATS = CastFormats()


def _as_utc(value: datetime) -> datetime:
    # Naive datetimes are taken to already be in UTC.
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def _time_as_utc(value: time) -> time:
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    anchored = datetime.combine(date(2000, 1, 1), value)
    return anchored.astimezone(timezone.utc).timetz()


def _strftime(value: date, fmt: str) -> str:
    # %Y is not zero-padded below year 1000 on every platform.
    return value.strftime(fmt.replace("%Y", f"{value.year:04d}"))


def cast_to_storage(value: Any, column: Column, formats: CastFormats = DEFAULT_FORMATS) -> Any:
    """Cast a model value into the representation bound into statements."""
    if value is None:
        return None

    kind = column.type

    if kind == ColumnType.INTEGER:
        return int(value)

    if kind == ColumnType.FLOAT:
        return float(value)

    if kind == ColumnType.DATETIME:
        if isinstance(value, datetime):
            return _strftime(_as_utc(value), formats.timestamp_format)
        if isinstance(value, date):
            return _strftime(
                datetime(value.year, value.month, value.day, tzinfo=timezone.utc), formats.timestamp_format
            )
        return value

    if kind == ColumnType.TIME:
        if isinstance(value, datetime):
            return _as_utc(value).strftime(formats.time_format)
        if isinstance(value, time):
            return _time_as_utc(value).strftime(formats.time_format)
        return value

    if kind == ColumnType.DATE:
        if isinstance(value, datetime):
            return _strftime(_as_utc(value), formats.date_format)
        if isinstance(value, date):
            return _strftime(value, formats.date_format)
        return value

    if kind in (ColumnType.TEXT, ColumnType.STRING):
        return str(value)

    if kind == ColumnType.BOOLEAN:
        return 1 if value else 0

    return value


def _parse(value: str, fmt: str, column: Column) -> datetime:
    try:
        return datetime.strptime(value, fmt)
    except ValueError as e:
        raise CastError(column.name, value, fmt) from e


def cast_to_model(value: Any, column: Column, formats: CastFormats = DEFAULT_FORMATS) -> Any:
    """Cast a raw driver value into its model representation."""
    if value is None:
        return None

    kind = column.type

    if kind == ColumnType.INTEGER:
        return int(value)

    if kind == ColumnType.FLOAT:
        return float(value)

    if kind == ColumnType.DATETIME:
        if isinstance(value, datetime):
            return _as_utc(value)
        if isinstance(value, date):
            return datetime(value.year, value.month, value.day, tzinfo=timezone.utc)
        return _as_utc(_parse(_text(value), formats.timestamp_format, column))

    if kind == ColumnType.TIME:
        if isinstance(value, time):
            return _time_as_utc(value)
        if isinstance(value, datetime):
            return _as_utc(value).timetz()
        if isinstance(value, timedelta):
            return (datetime(2000, 1, 1, tzinfo=timezone.utc) + value).timetz()
        return _as_utc(_parse(_text(value), formats.time_format, column)).timetz()

    if kind == ColumnType.DATE:
        if isinstance(value, datetime):
            return _as_utc(value).date()
        if isinstance(value, date):
            return value
        return _parse(_text(value), formats.date_format, column).date()

    if kind in (ColumnType.TEXT, ColumnType.STRING):
        return _text(value)

    if kind == ColumnType.BOOLEAN:
        return value in (1, "t", True)

    return value


def _text(value: Any) -> str:
    if isinstance(value, (bytes, bytearray)):
        return bytes(value).decode("utf-8")
    return str(value)
