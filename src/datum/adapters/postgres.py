"""
PostgreSQL adapter backed by psycopg 3.

Statements use native $n placeholders through psycopg's RawCursor, and
inserts report generated values with INSERT ... RETURNING.
"""

import re
from typing import Any

import psycopg
from psycopg.pq import TransactionStatus
from psycopg.rows import dict_row

from datum.adapters.base import Adapter, Row
from datum.core.column import CastFormats, Column, ColumnType

_QUOTED_DEFAULT_RE = re.compile(r"^'(.*)'::(bpchar|text|character varying)$", re.S)
_INTEGER_DEFAULT_RE = re.compile(r"^[0-9]+$")
_FLOAT_DEFAULT_RE = re.compile(r"^[0-9]+\.[0-9]*$")


def infer_default_value(value: str | None) -> Any:
    """
    Interpret a column default as reported by information_schema.

    Literal strings, integers, floats and booleans are recovered; expression
    defaults such as nextval(...) or now() yield None.
    """
    if value is None:
        return None

    if re.search(r"true", value, re.I):
        return True
    if re.search(r"false", value, re.I):
        return False

    match = _QUOTED_DEFAULT_RE.match(value)
    if match:
        return match.group(1)
    if _INTEGER_DEFAULT_RE.match(value):
        return int(value)
    if _FLOAT_DEFAULT_RE.match(value):
        return float(value)
    return None


class PostgresAdapter(Adapter):
    """Adapter for PostgreSQL."""

    dialect = "postgres"
    formats = CastFormats(separator=" ")
    supports_returning = True

    _conn: psycopg.Connection | None = None

    def connect(self) -> None:
        params = {
            "host": self.config.host,
            "port": self.config.port,
            "dbname": self.config.database,
            "user": self.config.username,
            "password": self.config.password,
        }
        params = {key: value for key, value in params.items() if value is not None}
        params.update(self.config.options)

        self._conn = psycopg.connect(
            autocommit=True,
            row_factory=dict_row,
            cursor_factory=psycopg.RawCursor,
            **params,
        )
        self.logger.debug("Connected", dialect=self.dialect, database=self.config.redacted())

    def disconnect(self) -> None:
        if self._conn is not None:
            self._conn.close()
            self._conn = None
            self.logger.debug("Disconnected", dialect=self.dialect)

    @property
    def connection(self) -> psycopg.Connection:
        if self._conn is None or self._conn.closed:
            self.connect()
        assert self._conn is not None
        return self._conn

    @property
    def in_transaction(self) -> bool:
        if self._conn is None:
            return False
        return self._conn.info.transaction_status != TransactionStatus.IDLE

    def placeholder(self, index: int) -> str:
        return f"${index}"

    def _fetch(self, sql: str, params: list[Any]) -> list[Row]:
        with self.connection.cursor() as cursor:
            cursor.execute(sql, params or None)
            if cursor.description is None:
                return []
            return list(cursor.fetchall())

    def _execute(self, sql: str, params: list[Any]) -> int:
        with self.connection.cursor() as cursor:
            cursor.execute(sql, params or None)
            return cursor.rowcount

    def _execute_insert(self, sql: str, params: list[Any]) -> Any:
        rows = self._fetch(sql, params)
        return next(iter(rows[0].values())) if rows else None

    def _execute_script(self, sql: str) -> None:
        # Without bind parameters psycopg uses the simple query protocol,
        # which accepts several statements at once.
        with self.connection.cursor() as cursor:
            cursor.execute(sql)

    def columns_of(self, table: str) -> list[Column]:
        params: list[Any] = []
        statement = (
            "SELECT column_name, column_default, data_type, character_maximum_length "
            "FROM information_schema.columns "
            "WHERE table_catalog = current_database() AND table_schema = current_schema() "
            f"AND table_name = {self._bind(params, table)} "
            "ORDER BY ordinal_position"
        )
        rows = self.log(statement, lambda: self._fetch(statement, params), name="Schema", params=params)
        return [
            Column.reflect(
                row["column_name"],
                infer_default_value(row["column_default"]),
                row["data_type"],
                row["character_maximum_length"],
            )
            for row in rows
        ]

    def cast_to_storage(self, value: Any, column: Column) -> Any:
        # Postgres has a native boolean type.
        if column.type == ColumnType.BOOLEAN and value is not None:
            return bool(value)
        return super().cast_to_storage(value, column)
