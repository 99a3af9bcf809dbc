"""Tests for the SQLite adapter."""

from datetime import datetime, timezone

import pytest

from datum.adapters.sqlite import SqliteAdapter, _split_script
from datum.core.column import ColumnType
from datum.core.dsn import parse_dsn
from datum.core.errors import UnsupportedValue
from datum.core.filters import ConditionsFilter, OrderDirection, SqlFilter


@pytest.fixture
def adapter():
    adapter = SqliteAdapter(parse_dsn("sqlite://memory"))
    adapter.execute_ddl(
        "CREATE TABLE items (\n"
        "  id INTEGER PRIMARY KEY AUTOINCREMENT,\n"
        "  label VARCHAR(40) DEFAULT 'none',\n"
        "  qty INTEGER,\n"
        "  seen_at DATETIME\n"
        ");"
    )
    yield adapter
    adapter.disconnect()


def insert(adapter, **values):
    return adapter.insert("items", values, list(values) + ["id"])


class TestConnection:
    """Tests for database location handling."""

    @pytest.mark.parametrize("dsn", ["sqlite://memory", "sqlite://", "sqlite:///:memory:"])
    def test_memory_locations(self, dsn):
        adapter = SqliteAdapter(parse_dsn(dsn))
        try:
            assert adapter.database_path == ":memory:"
        finally:
            adapter.disconnect()

    def test_file_database(self, tmp_path):
        path = tmp_path / "nested" / "app.db"
        adapter = SqliteAdapter(parse_dsn(f"sqlite:///{path}"))
        try:
            adapter.execute_ddl("CREATE TABLE t (id INTEGER);")
            assert path.exists()
        finally:
            adapter.disconnect()


class TestCrud:
    """Tests for select / count / insert / update / delete."""

    def test_insert_returns_primary_key(self, adapter):
        assert insert(adapter, label="a") == {"id": 1}
        assert insert(adapter, label="b") == {"id": 2}

    def test_empty_insert_uses_defaults(self, adapter):
        result = adapter.insert("items", {}, ["id"])

        assert result == {"id": 1}
        assert adapter.select("items")[0]["label"] == "none"

    def test_select_with_conditions(self, adapter):
        insert(adapter, label="a", qty=1)
        insert(adapter, label="b", qty=2)

        rows = adapter.select("items", where=ConditionsFilter(conditions={"label": "b"}))

        assert [row["qty"] for row in rows] == [2]

    def test_select_with_sql_fragment(self, adapter):
        for qty in (1, 2, 3):
            insert(adapter, label="x", qty=qty)

        rows = adapter.select("items", where=SqlFilter(sql="qty > ? OR label = ?", args=(1, "y")))

        assert [row["qty"] for row in rows] == [2, 3]

    def test_list_condition_renders_in(self, adapter):
        for label in ("a", "b", "c"):
            insert(adapter, label=label)

        rows = adapter.select("items", where=ConditionsFilter(conditions={"id": [1, 3]}))

        assert [row["label"] for row in rows] == ["a", "c"]

    def test_empty_list_condition_matches_nothing(self, adapter):
        insert(adapter, label="a")
        assert adapter.select("items", where=ConditionsFilter(conditions={"id": []})) == []

    def test_none_condition_renders_is_null(self, adapter):
        insert(adapter, label="a", qty=1)
        insert(adapter, label="b")

        rows = adapter.select("items", where=ConditionsFilter(conditions={"qty": None}))

        assert [row["label"] for row in rows] == ["b"]

    def test_dict_condition_is_unsupported(self, adapter):
        with pytest.raises(UnsupportedValue):
            adapter.select("items", where=ConditionsFilter(conditions={"label": {"a": 1}}))

    def test_boolean_condition_is_bound_as_integer(self, adapter):
        insert(adapter, label="a", qty=1)
        rows = adapter.select("items", where=ConditionsFilter(conditions={"qty": True}))
        assert len(rows) == 1

    def test_order_limit_skip(self, adapter):
        for label in ("a", "b", "c", "d"):
            insert(adapter, label=label)

        rows = adapter.select("items", order={"id": OrderDirection.DESC}, limit=2, skip=1)

        assert [row["label"] for row in rows] == ["c", "b"]

    def test_skip_without_limit(self, adapter):
        for label in ("a", "b", "c"):
            insert(adapter, label=label)

        rows = adapter.select("items", order={"id": OrderDirection.ASC}, skip=1)

        assert [row["label"] for row in rows] == ["b", "c"]

    def test_count(self, adapter):
        for qty in (1, 1, 2):
            insert(adapter, qty=qty)

        assert adapter.count("items") == 3
        assert adapter.count("items", where=ConditionsFilter(conditions={"qty": 1})) == 2

    def test_update(self, adapter):
        insert(adapter, label="a", qty=1)
        insert(adapter, label="b", qty=1)

        affected = adapter.update(
            "items", where=ConditionsFilter(conditions={"label": "a"}), values={"qty": 5}
        )

        assert affected == 1
        assert [row["qty"] for row in adapter.select("items")] == [5, 1]

    def test_update_without_values_is_noop(self, adapter):
        insert(adapter, label="a")
        assert adapter.update("items", where=None, values={}) == 0

    def test_delete(self, adapter):
        for label in ("a", "b"):
            insert(adapter, label=label)

        assert adapter.delete("items", where=ConditionsFilter(conditions={"label": "a"})) == 1
        assert adapter.count("items") == 1

    def test_execute_raw(self, adapter):
        insert(adapter, label="a")
        assert adapter.execute("SELECT label FROM items WHERE id = ?", 1) == [{"label": "a"}]


class TestReflection:
    """Tests for columns_of()."""

    def test_columns_of(self, adapter):
        columns = {c.name: c for c in adapter.columns_of("items")}

        assert list(columns) == ["id", "label", "qty", "seen_at"]
        assert columns["id"].type == ColumnType.INTEGER
        assert columns["label"].type == ColumnType.STRING
        assert columns["label"].limit == 40
        assert columns["label"].default == "'none'"
        assert columns["seen_at"].type == ColumnType.DATETIME

    def test_unknown_table_has_no_columns(self, adapter):
        assert adapter.columns_of("missing_table") == []

    def test_keyword_table_name(self, adapter):
        adapter.execute_ddl('CREATE TABLE "order" (id INTEGER PRIMARY KEY, total INTEGER);')

        assert [c.name for c in adapter.columns_of("order")] == ["id", "total"]


class TestCasting:
    """Tests for SQLite casting."""

    def test_datetime_round_trip(self, adapter):
        column = next(c for c in adapter.columns_of("items") if c.name == "seen_at")
        value = datetime(2008, 10, 27, 17, 43, tzinfo=timezone.utc)

        insert(adapter, seen_at=adapter.cast_to_storage(value, column))
        stored = adapter.select("items")[0]["seen_at"]

        assert stored == "2008-10-27T17:43:00+0000"
        assert adapter.cast_to_model(stored, column) == value


class TestTransactions:
    """Tests for transaction handling."""

    def test_commit(self, adapter):
        adapter.transaction(lambda: insert(adapter, label="a"))

        assert not adapter.in_transaction
        assert adapter.count("items") == 1

    def test_rollback_on_exception(self, adapter):
        def fail():
            insert(adapter, label="a")
            raise RuntimeError("boom")

        with pytest.raises(RuntimeError, match="boom"):
            adapter.transaction(fail)

        assert not adapter.in_transaction
        assert adapter.count("items") == 0

    def test_rollback_on_false(self, adapter):
        def refuse():
            insert(adapter, label="a")
            return False

        assert adapter.transaction(refuse) is False
        assert adapter.count("items") == 0

    def test_return_value(self, adapter):
        assert adapter.transaction(lambda: 42) == 42

    def test_atomic_context_manager(self, adapter):
        with pytest.raises(ValueError):
            with adapter.atomic():
                insert(adapter, label="a")
                raise ValueError("nope")

        with adapter.atomic():
            insert(adapter, label="b")

        assert [row["label"] for row in adapter.select("items")] == ["b"]

    def test_begin_is_noop_when_active(self, adapter):
        adapter.tx_begin()
        adapter.tx_begin()

        assert adapter.in_transaction
        adapter.tx_rollback()
        assert not adapter.in_transaction

    def test_ddl_is_transactional(self, adapter):
        def create():
            adapter.execute_ddl("CREATE TABLE extra (id INTEGER);\nCREATE TABLE other (id INTEGER);")
            raise RuntimeError("abort")

        with pytest.raises(RuntimeError):
            adapter.transaction(create)

        assert adapter.columns_of("extra") == []


class TestMigrationLedger:
    """Tests for the migration ledger."""

    def test_prepare_is_idempotent(self, adapter):
        adapter.prepare_migration_log()
        adapter.prepare_migration_log()

        assert adapter.load_migration_log() == []

    def test_register_and_unregister(self, adapter):
        adapter.prepare_migration_log()
        adapter.register_migration("01")
        adapter.register_migration(2)

        assert adapter.load_migration_log() == ["01", "2"]

        adapter.unregister_migration("01")

        assert adapter.load_migration_log() == ["2"]


class TestSplitScript:
    """Tests for statement splitting."""

    def test_splits_statements(self):
        assert _split_script("CREATE TABLE a (id INT);\nCREATE TABLE b (id INT);\n") == [
            "CREATE TABLE a (id INT);",
            "CREATE TABLE b (id INT);",
        ]

    def test_keeps_semicolons_inside_strings(self):
        script = "INSERT INTO a VALUES ('x;y');\nINSERT INTO a VALUES ('z');"
        assert _split_script(script) == ["INSERT INTO a VALUES ('x;y');", "INSERT INTO a VALUES ('z');"]

    def test_trailing_statement_without_semicolon(self):
        assert _split_script("DROP TABLE a") == ["DROP TABLE a"]

    def test_skips_empty_statements(self):
        assert _split_script(";;\n") == []
