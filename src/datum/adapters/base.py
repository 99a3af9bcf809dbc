"""
Abstract base adapter.

An adapter owns one live connection and presents a uniform contract over it:
select / count / insert / update / delete, schema reflection, transactions,
DDL execution and the migration ledger. The logical shape of every statement
is built here; dialects only supply placeholders, driver calls and casting
quirks.
"""

import time
from abc import ABC, abstractmethod
from collections.abc import Callable, Iterator
from contextlib import contextmanager
from typing import Any, TypeVar

from datum.core.column import (
    DEFAULT_FORMATS,
    CastFormats,
    Column,
    cast_to_model,
    cast_to_storage,
)
from datum.core.dsn import ConnectionConfig
from datum.core.errors import UnsupportedValue
from datum.core.filters import ConditionsFilter, OrderMap, SqlFilter
from datum.logging import DatumLogger, get_logger

T = TypeVar("T")

Row = dict[str, Any]


class Adapter(ABC):
    """
    Base class for dialect adapters.

    Subclasses must implement:
    - connect / disconnect
    - columns_of
    - _fetch, _execute, _execute_insert, _execute_script
    - in_transaction
    """

    dialect: str = ""

    # Temporal formats used when casting values at the wire boundary
    formats: CastFormats = DEFAULT_FORMATS

    # Whether INSERT ... RETURNING is used instead of a last-insert-id call
    supports_returning: bool = False

    # LIMIT value emitted when an OFFSET is requested without a LIMIT
    unbounded_limit: str | None = None

    def __init__(
        self,
        config: ConnectionConfig,
        logger: DatumLogger | None = None,
        *,
        migrations_table: str = "datum_metadata",
    ) -> None:
        """
        Initialize the adapter and open its connection.

        Args:
            config: Parsed connection configuration
            logger: Logger receiving statement logs
            migrations_table: Name of the migration ledger table
        """
        self.config = config
        self.logger = logger or get_logger("datum.adapters")
        self.migrations_table = migrations_table
        self.connect()

    # =========================================================================
    # DRIVER PRIMITIVES
    # =========================================================================

    @abstractmethod
    def connect(self) -> None:
        """Open the underlying driver connection."""
        ...

    @abstractmethod
    def disconnect(self) -> None:
        """Close the underlying driver connection."""
        ...

    @abstractmethod
    def columns_of(self, table: str) -> list[Column]:
        """Reflect the columns of a table."""
        ...

    @property
    @abstractmethod
    def in_transaction(self) -> bool:
        """Whether a transaction is currently open on the connection."""
        ...

    @abstractmethod
    def _fetch(self, sql: str, params: list[Any]) -> list[Row]:
        """Run a statement and return its rows (empty for row-less statements)."""
        ...

    @abstractmethod
    def _execute(self, sql: str, params: list[Any]) -> int:
        """Run a statement and return the number of affected rows."""
        ...

    @abstractmethod
    def _execute_insert(self, sql: str, params: list[Any]) -> Any:
        """Run an INSERT and return the generated row id."""
        ...

    @abstractmethod
    def _execute_script(self, sql: str) -> None:
        """Run a script that may contain several statements."""
        ...

    @abstractmethod
    def placeholder(self, index: int) -> str:
        """Return the bind placeholder for the 1-based parameter index."""
        ...

    # =========================================================================
    # SQL BUILDING
    # =========================================================================

    def _bind(self, params: list[Any], value: Any) -> str:
        params.append(value)
        return self.placeholder(len(params))

    def prepare_where(
        self,
        where: SqlFilter | ConditionsFilter | None,
        params: list[Any],
    ) -> str | None:
        """Render a filter into a WHERE condition, appending its bind values to params."""
        if where is None:
            return None

        if isinstance(where, SqlFilter):
            sql = where.sql
            for arg in where.args:
                params.append(self.cast_param(arg))
            return sql

        parts = []
        for column, value in where.conditions.items():
            value = self.normalize_value(value)
            if value is None:
                parts.append(f"{column} IS NULL")
            elif isinstance(value, (list, tuple, set, frozenset)):
                if not value:
                    parts.append("1 = 0")
                    continue
                marks = [self._bind(params, self.cast_param(v)) for v in value]
                parts.append(f"{column} IN ({', '.join(marks)})")
            elif isinstance(value, dict):
                raise UnsupportedValue(column, value)
            else:
                parts.append(f"{column} = {self._bind(params, self.cast_param(value))}")
        return " AND ".join(parts)

    def prepare_order(self, order: OrderMap | None) -> str | None:
        """Render an ordering map as 'col DIRECTION' pairs."""
        if not order:
            return None
        return ", ".join(f"{column} {direction.value.upper()}" for column, direction in order.items())

    def _empty_insert(self, table: str) -> str:
        return f"INSERT INTO {table} DEFAULT VALUES"

    # =========================================================================
    # PUBLIC CONTRACT
    # =========================================================================

    def select(
        self,
        table: str,
        *,
        name: str | None = None,
        where: SqlFilter | ConditionsFilter | None = None,
        order: OrderMap | None = None,
        limit: int | None = None,
        skip: int | None = None,
    ) -> list[Row]:
        """Return rows as dicts keyed by column name."""
        sql = [f"SELECT * FROM {table}"]
        params: list[Any] = []

        condition = self.prepare_where(where, params)
        if condition is not None:
            sql.append(f"WHERE ({condition})")

        ordering = self.prepare_order(order)
        if ordering is not None:
            sql.append(f"ORDER BY {ordering}")

        if limit is not None:
            sql.append(f"LIMIT {self._bind(params, limit)}")
        elif skip is not None and self.unbounded_limit is not None:
            sql.append(f"LIMIT {self.unbounded_limit}")

        if skip is not None:
            sql.append(f"OFFSET {self._bind(params, skip)}")

        statement = " ".join(sql)
        return self.log(statement, lambda: self._fetch(statement, params), name=name, params=params)

    def count(
        self,
        table: str,
        *,
        name: str | None = None,
        where: SqlFilter | ConditionsFilter | None = None,
    ) -> int:
        """Return the number of rows matching a filter."""
        sql = [f"SELECT COUNT(*) AS count FROM {table}"]
        params: list[Any] = []

        condition = self.prepare_where(where, params)
        if condition is not None:
            sql.append(f"WHERE ({condition})")

        statement = " ".join(sql)
        rows = self.log(statement, lambda: self._fetch(statement, params), name=name, params=params)
        return int(next(iter(rows[0].values()))) if rows else 0

    def insert(
        self,
        table: str,
        values: dict[str, Any],
        returning: list[str],
        *,
        primary_key: str = "id",
        name: str | None = None,
    ) -> dict[str, Any]:
        """
        Insert a row and return generated values.

        Dialects supporting RETURNING hand back exactly the requested columns;
        the others ignore `returning` and report only the generated primary key.
        """
        params: list[Any] = []
        if values:
            marks = [self._bind(params, v) for v in values.values()]
            statement = f"INSERT INTO {table} ({', '.join(values)}) VALUES ({', '.join(marks)})"
        else:
            statement = self._empty_insert(table)

        if self.supports_returning:
            if returning:
                statement += f" RETURNING {', '.join(returning)}"
            rows = self.log(statement, lambda: self._fetch(statement, params), name=name, params=params)
            return dict(rows[0]) if rows else {}

        generated = self.log(
            statement, lambda: self._execute_insert(statement, params), name=name, params=params
        )
        return {primary_key: generated}

    def update(
        self,
        table: str,
        *,
        where: SqlFilter | ConditionsFilter | None,
        values: dict[str, Any],
        name: str | None = None,
    ) -> int:
        """Update matching rows and return the number affected."""
        if not values:
            self.logger.debug(f"{name or 'SQL'} skipped; nothing to update", dialect=self.dialect)
            return 0

        params: list[Any] = []
        setters = [f"{column} = {self._bind(params, self.cast_param(v))}" for column, v in values.items()]
        sql = [f"UPDATE {table} SET {', '.join(setters)}"]

        condition = self.prepare_where(where, params)
        if condition is not None:
            sql.append(f"WHERE ({condition})")

        statement = " ".join(sql)
        return self.log(statement, lambda: self._execute(statement, params), name=name, params=params)

    def delete(
        self,
        table: str,
        *,
        where: SqlFilter | ConditionsFilter | None = None,
        name: str | None = None,
    ) -> int:
        """Delete matching rows and return the number affected."""
        sql = [f"DELETE FROM {table}"]
        params: list[Any] = []

        condition = self.prepare_where(where, params)
        if condition is not None:
            sql.append(f"WHERE ({condition})")

        statement = " ".join(sql)
        return self.log(statement, lambda: self._execute(statement, params), name=name, params=params)

    def execute(self, sql: str, *params: Any) -> list[Row]:
        """Run a raw statement with positional bind values and return any rows."""
        values = [self.cast_param(p) for p in params]
        return self.log(sql, lambda: self._fetch(sql, values), params=values)

    def execute_ddl(self, sql: str) -> None:
        """Run a DDL script, which may hold several statements."""
        self.log(sql, lambda: self._execute_script(sql), name="DDL")

    # =========================================================================
    # TRANSACTIONS
    # =========================================================================

    def tx_begin(self) -> None:
        self.log("BEGIN", lambda: self._execute("BEGIN", []), name="TRANSACTION")

    def tx_commit(self) -> None:
        self.log("COMMIT", lambda: self._execute("COMMIT", []), name="TRANSACTION")

    def tx_rollback(self) -> None:
        self.log("ROLLBACK", lambda: self._execute("ROLLBACK", []), name="TRANSACTION")

    def transaction(self, fn: Callable[..., T], *args: Any, **kwargs: Any) -> T:
        """
        Execute a function within a transaction.

        The transaction is committed if the function completes; it is rolled
        back if the function raises (the error is re-raised) or returns False.
        Nested transactions are not supported.
        """
        self.tx_begin()
        try:
            result = fn(*args, **kwargs)
        except BaseException:
            self.tx_rollback()
            raise

        if result is False:
            self.tx_rollback()
        else:
            self.tx_commit()
        return result

    @contextmanager
    def atomic(self) -> Iterator["Adapter"]:
        """
        Context manager form of transaction().

        Commits when the block exits normally and rolls back when it raises.
        """
        self.tx_begin()
        try:
            yield self
        except BaseException:
            self.tx_rollback()
            raise
        self.tx_commit()

    # =========================================================================
    # MIGRATION LEDGER
    # =========================================================================

    def prepare_migration_log(self) -> None:
        """Create the ledger table if it does not exist."""
        self.execute_ddl(
            f"CREATE TABLE IF NOT EXISTS {self.migrations_table} (mid TEXT);\n"
            f"CREATE INDEX IF NOT EXISTS {self.migrations_table}_mid "
            f"ON {self.migrations_table} (mid);"
        )

    def register_migration(self, migration_id: str | int) -> None:
        """Record a migration id as applied."""
        params: list[Any] = []
        statement = (
            f"INSERT INTO {self.migrations_table} (mid) VALUES ({self._bind(params, str(migration_id))})"
        )
        self.log(statement, lambda: self._execute(statement, params), name="Migration Register", params=params)

    def unregister_migration(self, migration_id: str | int) -> None:
        """Remove a migration id from the ledger."""
        params: list[Any] = []
        statement = f"DELETE FROM {self.migrations_table} WHERE mid = {self._bind(params, str(migration_id))}"
        self.log(statement, lambda: self._execute(statement, params), name="Migration Unregister", params=params)

    def load_migration_log(self) -> list[str]:
        """Return the ids of every applied migration."""
        statement = f"SELECT mid FROM {self.migrations_table}"
        rows = self.log(statement, lambda: self._fetch(statement, []), name="Migration Log")
        return [_as_text(row["mid"]) for row in rows]

    # =========================================================================
    # CASTING
    # =========================================================================

    def cast_to_storage(self, value: Any, column: Column) -> Any:
        """Cast a model value into the representation bound for this dialect."""
        return cast_to_storage(value, column, self.formats)

    def cast_to_model(self, value: Any, column: Column) -> Any:
        """Cast a raw driver value into its model representation."""
        return cast_to_model(value, column, self.formats)

    def cast_param(self, value: Any) -> Any:
        """Prepare a filter or update value for binding."""
        return self.normalize_value(value)

    def normalize_value(self, value: Any) -> Any:
        """Replace records by their primary key, recursively through lists."""
        from datum.models.record import Record

        if isinstance(value, (list, tuple)):
            return [self.normalize_value(v) for v in value]
        if isinstance(value, Record):
            return value.primary_key_value
        return value

    # =========================================================================
    # LOGGING
    # =========================================================================

    def log(
        self,
        sql: str,
        fn: Callable[[], T],
        *,
        name: str | None = None,
        params: list[Any] | None = None,
    ) -> T:
        """
        Run fn, logging the statement with its wall-clock duration.

        Failures are logged with their traceback and re-raised unchanged.
        """
        fields: dict[str, Any] = {
            "sql": " ".join(sql.split()),
            "dialect": self.dialect,
            "statement": name or "SQL",
        }
        if params:
            fields["params"] = list(params)

        started = time.perf_counter()
        try:
            result = fn()
        except Exception as e:
            fields["duration_ms"] = round((time.perf_counter() - started) * 1000, 2)
            self.logger.error(name or "SQL", exc_info=e, **fields)
            raise

        fields["duration_ms"] = round((time.perf_counter() - started) * 1000, 2)
        self.logger.info(name or "SQL", **fields)
        return result

    def __repr__(self) -> str:
        return f"<{type(self).__name__} {self.config.redacted()}>"


def _as_text(value: Any) -> str:
    if isinstance(value, (bytes, bytearray)):
        return bytes(value).decode("utf-8")
    return str(value)


def split_statements(script: str) -> list[str]:
    """
    Split a SQL script on semicolons that are outside quotes and comments.

    Empty statements are dropped.
    """
    statements: list[str] = []
    buffer: list[str] = []
    quote: str | None = None
    i = 0
    length = len(script)

    while i < length:
        char = script[i]

        if quote is not None:
            buffer.append(char)
            if char == "\\" and quote != "`" and i + 1 < length:
                # MySQL escapes quotes inside string literals with a backslash.
                buffer.append(script[i + 1])
                i += 2
                continue
            if char == quote:
                quote = None
        elif char in ("'", '"', "`"):
            quote = char
            buffer.append(char)
        elif char == "-" and script.startswith("--", i):
            end = script.find("\n", i)
            end = length if end == -1 else end
            buffer.append(script[i:end])
            i = end
            continue
        elif char == "/" and script.startswith("/*", i):
            end = script.find("*/", i + 2)
            end = length if end == -1 else end + 2
            buffer.append(script[i:end])
            i = end
            continue
        elif char == ";":
            statement = "".join(buffer).strip()
            if statement:
                statements.append(statement)
            buffer = []
        else:
            buffer.append(char)
        i += 1

    statement = "".join(buffer).strip()
    if statement:
        statements.append(statement)
    return statements
