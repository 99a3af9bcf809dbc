"""
MySQL adapter backed by mysql-connector-python.

Parameterized statements go through prepared cursors, which take "?"
placeholders. The session time zone is pinned to UTC, and temporal values are
bound without an offset since MySQL rejects one on DATETIME columns.
"""

import re
from typing import Any

import mysql.connector

from datum.adapters.base import Adapter, Row, split_statements
from datum.core.column import CastFormats, Column, ColumnType

_UTC_OFFSET_RE = re.compile(r"[+-]00:?00$")
_HAS_OFFSET_RE = re.compile(r"[+-]\d{2}:?\d{2}$")

# Largest value MySQL accepts for LIMIT
MAX_LIMIT = "18446744073709551615"


class MySqlAdapter(Adapter):
    """Adapter for MySQL and MariaDB."""

    dialect = "mysql"
    formats = CastFormats(separator=" ")
    unbounded_limit = MAX_LIMIT

    _conn: Any = None

    def connect(self) -> None:
        params: dict[str, Any] = {
            "host": self.config.host,
            "port": self.config.port,
            "database": self.config.database,
            "user": self.config.username,
            "password": self.config.password,
        }
        params = {key: value for key, value in params.items() if value is not None}

        options = dict(self.config.options)
        sslmode = options.pop("sslmode", None)
        if sslmode == "disable":
            params["ssl_disabled"] = True
        params.update(options)

        self._conn = mysql.connector.connect(autocommit=True, time_zone="+00:00", **params)
        self.logger.debug("Connected", dialect=self.dialect, database=self.config.redacted())

    def disconnect(self) -> None:
        if self._conn is not None:
            self._conn.close()
            self._conn = None
            self.logger.debug("Disconnected", dialect=self.dialect)

    @property
    def connection(self) -> Any:
        if self._conn is None:
            self.connect()
        return self._conn

    @property
    def in_transaction(self) -> bool:
        return self._conn is not None and bool(self._conn.in_transaction)

    def placeholder(self, index: int) -> str:
        return "?"

    def _cursor(self, params: list[Any]) -> Any:
        # Not every statement can be prepared; only use a prepared cursor
        # when there is something to bind.
        return self.connection.cursor(prepared=True) if params else self.connection.cursor()

    def _fetch(self, sql: str, params: list[Any]) -> list[Row]:
        cursor = self._cursor(params)
        try:
            cursor.execute(sql, tuple(params) if params else None)
            if not cursor.description:
                return []
            names = [_text(name) for name in cursor.column_names]
            return [dict(zip(names, row)) for row in cursor.fetchall()]
        finally:
            cursor.close()

    def _execute(self, sql: str, params: list[Any]) -> int:
        cursor = self._cursor(params)
        try:
            cursor.execute(sql, tuple(params) if params else None)
            return cursor.rowcount
        finally:
            cursor.close()

    def _execute_insert(self, sql: str, params: list[Any]) -> Any:
        cursor = self._cursor(params)
        try:
            cursor.execute(sql, tuple(params) if params else None)
            return cursor.lastrowid
        finally:
            cursor.close()

    def _execute_script(self, sql: str) -> None:
        for statement in split_statements(sql):
            self._execute(statement, [])

    def _empty_insert(self, table: str) -> str:
        return f"INSERT INTO {table} () VALUES ()"

    def tx_begin(self) -> None:
        self.log("BEGIN", self.connection.start_transaction, name="TRANSACTION")

    def tx_commit(self) -> None:
        self.log("COMMIT", self.connection.commit, name="TRANSACTION")

    def tx_rollback(self) -> None:
        self.log("ROLLBACK", self.connection.rollback, name="TRANSACTION")

    def prepare_migration_log(self) -> None:
        # TEXT columns cannot be indexed without a prefix length.
        self.execute_ddl(
            f"CREATE TABLE IF NOT EXISTS {self.migrations_table} "
            f"(mid VARCHAR(255), INDEX {self.migrations_table}_mid (mid))"
        )

    def columns_of(self, table: str) -> list[Column]:
        statement = f"SHOW FIELDS FROM {table}"
        rows = self.log(statement, lambda: self._fetch(statement, []), name="Schema")
        return [
            Column.reflect(
                _text(row["Field"]),
                _text(row["Default"]) if row["Default"] is not None else None,
                _text(row["Type"]),
            )
            for row in rows
        ]

    def cast_to_storage(self, value: Any, column: Column) -> Any:
        value = super().cast_to_storage(value, column)
        if isinstance(value, str) and column.type in (ColumnType.DATETIME, ColumnType.TIME):
            return _UTC_OFFSET_RE.sub("", value)
        return value

    def cast_to_model(self, value: Any, column: Column) -> Any:
        if column.type in (ColumnType.DATETIME, ColumnType.TIME) and isinstance(value, (str, bytes, bytearray)):
            text = _text(value)
            if not _HAS_OFFSET_RE.search(text):
                value = f"{text}+0000"
        return super().cast_to_model(value, column)


def _text(value: Any) -> str:
    if isinstance(value, (bytes, bytearray)):
        return bytes(value).decode("utf-8")
    return str(value)
