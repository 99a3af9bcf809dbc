"""Tests for finders and the chainable query builder."""

from unittest.mock import patch

import pytest

from datum.core.errors import InvalidArgumentError, InvalidStatement, RecordNotFound
from datum.core.filters import ConditionsFilter, OrderDirection, SqlFilter
from datum.query.proxy import QueryProxy


def ids(records):
    return [record.id for record in records]


class TestFind:
    """Tests for primary key lookups."""

    def test_single_id(self, users, user_model):
        user = user_model.find(2)

        assert user.email == "b@example.org"
        assert user.persisted
        assert user.changed_fields == []

    def test_missing_id(self, users, user_model):
        assert user_model.find(99) is None

    def test_several_ids(self, users, user_model):
        assert ids(user_model.find(1, 3)) == [1, 3]
        assert ids(user_model.find([1, 2])) == [1, 2]

    def test_several_ids_partial(self, users, user_model):
        assert ids(user_model.find(1, 99)) == [1]

    def test_no_ids(self, users, user_model):
        assert user_model.find() is None

    def test_find_or_raise_single(self, users, user_model):
        with pytest.raises(RecordNotFound) as exc_info:
            user_model.find_or_raise(99)

        assert exc_info.value.message == "Could not find User with id='99'"
        assert exc_info.value.code == "RECORD_NOT_FOUND"

    def test_find_or_raise_several(self, users, user_model):
        with pytest.raises(RecordNotFound) as exc_info:
            user_model.find_or_raise(1, 99)

        assert exc_info.value.message == (
            "Could not find all User records with id=(1, 99) (obtained 1 results, but expected 2)"
        )

    def test_find_or_raise_found(self, users, user_model):
        assert user_model.find_or_raise(1).name == "A"
        assert ids(user_model.find_or_raise(1, 2)) == [1, 2]


class TestFindBy:
    """Tests for condition and raw SQL lookups."""

    def test_find_by(self, users, user_model):
        assert user_model.find_by(email="c@example.org").id == 3
        assert user_model.find_by(email="nobody@example.org") is None

    def test_find_by_several_conditions(self, users, user_model):
        assert user_model.find_by(active=True, name="C").id == 3
        assert user_model.find_by(active=False, name="C") is None

    def test_find_by_record_value(self, users, user_model):
        assert user_model.find_by(id=users[1]).email == "b@example.org"

    def test_find_by_or_raise(self, users, user_model):
        with pytest.raises(RecordNotFound) as exc_info:
            user_model.find_by_or_raise(email="nobody@example.org", active=True)

        assert exc_info.value.message == (
            "Could not find User with 'email' = \"nobody@example.org\", 'active' = 't'"
        )

    def test_find_by_sql(self, users, user_model):
        assert user_model.find_by_sql("id > ? AND active = ?", 1, True).id == 3
        assert user_model.find_by_sql("id > ?", 3) is None

    def test_find_by_sql_or_raise(self, users, user_model):
        with pytest.raises(RecordNotFound) as exc_info:
            user_model.find_by_sql_or_raise("id > ?", 3)

        assert exc_info.value.message == "Could not find User with 'id > ?' and arguments (3)"


class TestFirstAndLast:
    """Tests for first() and last()."""

    def test_first(self, users, user_model):
        assert user_model.first().id == 1

    def test_first_n_returns_list(self, users, user_model):
        assert ids(user_model.first(2)) == [1, 2]
        assert ids(user_model.first(1)) == [1]
        assert user_model.first(0) == []

    def test_last(self, users, user_model):
        assert user_model.last().id == 3

    def test_last_n_in_forward_order(self, users, user_model):
        assert ids(user_model.last(2)) == [2, 3]

    def test_last_respects_explicit_order(self, users, user_model):
        query = user_model.order_by(name="desc")

        assert query.first().name == "C"
        assert query.last().name == "A"
        assert [u.name for u in query.last(2)] == ["B", "A"]

    def test_empty_table(self, user_model):
        assert user_model.first() is None
        assert user_model.last() is None
        assert user_model.first(3) == []

    def test_or_raise_without_filter(self, user_model):
        with pytest.raises(RecordNotFound) as exc_info:
            user_model.first_or_raise()
        assert exc_info.value.message == "Could not find User"

        with pytest.raises(RecordNotFound):
            user_model.last_or_raise()

    def test_or_raise_with_conditions(self, users, user_model):
        with pytest.raises(RecordNotFound) as exc_info:
            user_model.where(name="Z").first_or_raise()

        assert exc_info.value.message == "Could not find User with 'name' = \"Z\""

    def test_or_raise_found(self, users, user_model):
        assert user_model.first_or_raise().id == 1
        assert user_model.last_or_raise().id == 3


class TestChaining:
    """Tests for building queries."""

    def test_where_conditions(self, users, user_model):
        assert ids(user_model.where(active=True).to_a()) == [1, 3]
        assert user_model.where(active=True).count() == 2

    def test_where_sql(self, users, user_model):
        query = user_model.where("name = ? OR email = ?", "A", "c@example.org")

        assert ids(query.to_a()) == [1, 3]
        assert isinstance(query.filter, SqlFilter)

    def test_where_in(self, users, user_model):
        assert ids(user_model.where(id=[3, 1]).order_by(id="asc").to_a()) == [1, 3]

    def test_where_none_is_null(self, users, user_model):
        user_model(email="d@example.org").save()
        assert ids(user_model.where(name=None).to_a()) == [4]

    def test_limit_and_skip(self, users, user_model):
        assert ids(user_model.limit(2).skip(1).to_a()) == [2, 3]

    def test_skip_without_limit(self, users, user_model):
        assert ids(user_model.order_by(id="asc").skip(2).to_a()) == [3]

    def test_order_by(self, users, user_model):
        assert ids(user_model.order_by(name="desc").to_a()) == [3, 2, 1]
        assert ids(user_model.order_by(active="asc", id=OrderDirection.DESC).to_a()) == [2, 3, 1]

    def test_builders_return_new_proxies(self, users, user_model):
        base = user_model.where(active=True)
        limited = base.limit(1)

        assert limited is not base
        assert base.limit_value is None
        assert limited.limit_value == 1
        assert limited.filter == ConditionsFilter(conditions={"active": True})

    def test_where_replaces_filter(self, users, user_model):
        query = user_model.where(name="A").where(name="B")
        assert ids(query.to_a()) == [2]

    def test_all_and_length(self, users, user_model):
        query = user_model.query()

        assert ids(query.all()) == [1, 2, 3]
        assert query.length() == 3
        assert len(query) == 3
        assert ids(user_model.all()) == [1, 2, 3]

    def test_each_and_map(self, users, user_model):
        seen = []

        assert user_model.where(active=True).each(seen.append) is None
        assert ids(seen) == [1, 3]
        assert user_model.query().map(lambda u: u.name) == ["A", "B", "C"]
        assert [u.id for u in user_model.each()] == [1, 2, 3]

    def test_iteration(self, users, user_model):
        assert [u.name for u in user_model.where(active=False)] == ["B"]

    def test_repr_does_not_query(self, users, user_model):
        query = user_model.where(active=True).limit(5)
        adapter = user_model.connection()

        with patch.object(adapter, "select") as select:
            text = repr(query)

        select.assert_not_called()
        assert text.startswith("<QueryProxy model=User")
        assert "limit=5" in text

    def test_direct_construction(self, users, user_model):
        query = QueryProxy(user_model, where=ConditionsFilter(conditions={"name": "B"}))
        assert ids(query.to_a()) == [2]


class TestUsageErrors:
    """Tests for invalid query construction."""

    def test_where_with_args_and_kwargs(self, user_model):
        with pytest.raises(InvalidArgumentError):
            user_model.where("id = ?", 1, name="A")

    @pytest.mark.parametrize("value", [-1, 1.5, "2", True])
    def test_invalid_limit(self, user_model, value):
        with pytest.raises(InvalidArgumentError):
            user_model.limit(value)

    def test_invalid_skip(self, user_model):
        with pytest.raises(InvalidArgumentError):
            user_model.skip(-3)

    def test_zero_batch_size(self, user_model):
        with pytest.raises(InvalidArgumentError):
            user_model.in_batches_of(0)

    def test_invalid_direction(self, user_model):
        with pytest.raises(InvalidArgumentError):
            user_model.order_by(name="sideways")

    @pytest.mark.parametrize("method", ["count", "delete"])
    def test_bulk_operations_reject_limit_and_order(self, user_model, method):
        with pytest.raises(InvalidArgumentError):
            getattr(user_model.limit(1), method)()
        with pytest.raises(InvalidArgumentError):
            getattr(user_model.order_by(id="asc"), method)()
        with pytest.raises(InvalidArgumentError):
            getattr(user_model.in_batches_of(2), method)()

    def test_update_rejects_limit(self, user_model):
        with pytest.raises(InvalidArgumentError):
            user_model.limit(1).update(name="X")

    def test_update_requires_values(self, user_model):
        with pytest.raises(InvalidStatement):
            user_model.where(active=True).update()

    def test_malformed_where_is_invalid_statement(self, user_model):
        with pytest.raises(InvalidStatement):
            user_model.where("")
        with pytest.raises(InvalidStatement):
            user_model.where(**{"first name": "A"})


class TestBulkOperations:
    """Tests for QueryProxy.update() and delete()."""

    def test_count(self, users, user_model):
        assert user_model.count() == 3
        assert user_model.where("id > ?", 1).count() == 2

    def test_update(self, users, user_model):
        affected = user_model.where(active=True).update(name="Active", nickname="ignored")

        assert affected == 2
        assert [u.name for u in user_model.all()] == ["Active", "B", "Active"]

    def test_update_stamps_updated_at(self, users, user_model):
        user_model.connection().execute("UPDATE users SET updated_at = NULL")

        user_model.where(id=2).update(name="Bee")

        assert user_model.find(2).updated_at is not None
        assert user_model.find(1).updated_at is None

    def test_update_casts_values(self, users, user_model):
        user_model.where(id=1).update(active=False)
        assert user_model.find(1).active is False

    def test_delete(self, users, user_model):
        assert user_model.where(active=True).delete() == 2
        assert ids(user_model.all()) == [2]

    def test_delete_all(self, users, user_model):
        assert user_model.query().delete() == 3
        assert user_model.count() == 0
