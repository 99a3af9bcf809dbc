"""
SQLite adapter.

Uses the standard library driver in autocommit mode so that transactions are
only ever opened by an explicit BEGIN.
"""

import sqlite3
from pathlib import Path
from typing import Any

from datum.adapters.base import Adapter, Row
from datum.core.column import Column

MEMORY_DATABASES = ("", "memory", ":memory:")


class SqliteAdapter(Adapter):
    """Adapter for SQLite databases, file-backed or in memory."""

    dialect = "sqlite"
    unbounded_limit = "-1"

    _conn: sqlite3.Connection | None = None

    @property
    def database_path(self) -> str:
        """
        Resolve the database location.

        "sqlite://memory", "sqlite://" and "sqlite:///:memory:" all open an
        in-memory database.
        """
        location = self.config.database or self.config.host or ""
        return ":memory:" if location in MEMORY_DATABASES else location

    def connect(self) -> None:
        path = self.database_path
        if path != ":memory:":
            Path(path).expanduser().parent.mkdir(parents=True, exist_ok=True)

        self._conn = sqlite3.connect(path, isolation_level=None)
        self._conn.row_factory = sqlite3.Row
        self.logger.debug("Connected", dialect=self.dialect, database=path)

    def disconnect(self) -> None:
        if self._conn is not None:
            self._conn.close()
            self._conn = None
            self.logger.debug("Disconnected", dialect=self.dialect)

    @property
    def connection(self) -> sqlite3.Connection:
        if self._conn is None:
            self.connect()
        assert self._conn is not None
        return self._conn

    @property
    def in_transaction(self) -> bool:
        return self._conn is not None and self._conn.in_transaction

    def placeholder(self, index: int) -> str:
        return "?"

    def _fetch(self, sql: str, params: list[Any]) -> list[Row]:
        cursor = self.connection.execute(sql, params)
        try:
            return [dict(row) for row in cursor.fetchall()]
        finally:
            cursor.close()

    def _execute(self, sql: str, params: list[Any]) -> int:
        cursor = self.connection.execute(sql, params)
        try:
            return cursor.rowcount
        finally:
            cursor.close()

    def _execute_insert(self, sql: str, params: list[Any]) -> Any:
        cursor = self.connection.execute(sql, params)
        try:
            return cursor.lastrowid
        finally:
            cursor.close()

    def _execute_script(self, sql: str) -> None:
        # executescript() would COMMIT any open transaction first, so each
        # statement is run on its own instead.
        for statement in _split_script(sql):
            self.connection.execute(statement).close()

    def tx_begin(self) -> None:
        if self.in_transaction:
            return
        super().tx_begin()

    def columns_of(self, table: str) -> list[Column]:
        statement = f'PRAGMA table_info("{table}")'
        rows = self.log(statement, lambda: self._fetch(statement, []), name="Schema")
        return [Column.reflect(row["name"], row["dflt_value"], row["type"]) for row in rows]

    def cast_param(self, value: Any) -> Any:
        value = super().cast_param(value)
        if isinstance(value, bool):
            return 1 if value else 0
        return value


def _split_script(script: str) -> list[str]:
    """Split a script into complete statements using SQLite's own tokenizer."""
    statements: list[str] = []
    buffer = ""
    pieces = script.split(";")

    for index, piece in enumerate(pieces):
        buffer += piece
        if index < len(pieces) - 1:
            buffer += ";"
        if sqlite3.complete_statement(buffer):
            if buffer.strip().strip(";").strip():
                statements.append(buffer.strip())
            buffer = ""

    if buffer.strip().strip(";").strip():
        statements.append(buffer.strip())
    return statements
