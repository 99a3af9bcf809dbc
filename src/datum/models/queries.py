"""
Class-level finders for Record.

This is a closed set: every query operation a model class exposes is
defined here, and each one delegates to a QueryProxy or directly to the
adapter.
"""

from collections.abc import Callable, Iterator
from contextlib import AbstractContextManager
from typing import TYPE_CHECKING, Any, TypeVar

from datum.core.errors import find_by_not_found, find_not_found
from datum.core.filters import ConditionsFilter, build_filter
from datum.query.proxy import QueryProxy

if TYPE_CHECKING:
    from datum.adapters.base import Adapter, Row

T = TypeVar("T")


def _flatten(ids: tuple[Any, ...] | list[Any]) -> list[Any]:
    flat: list[Any] = []
    for item in ids:
        if isinstance(item, (list, tuple, set)):
            flat.extend(_flatten(list(item)))
        else:
            flat.append(item)
    return flat


class Queries:
    """Mixin providing class-level query operations for Record."""

    @classmethod
    def query(cls) -> QueryProxy:
        """Start an unfiltered query."""
        return QueryProxy(cls)

    @classmethod
    def _cast_results(cls, rows: list["Row"], adapter: "Adapter", *, single: bool = False) -> Any:
        if single:
            return cls._synthesize(rows[0], adapter) if rows else None
        return [cls._synthesize(row, adapter) for row in rows]

    @classmethod
    def find(cls, *ids: Any) -> Any:
        """
        Load records by primary key.

        A single id returns an instance or None. Several ids return a list of
        the records found, which may be shorter than the ids given.
        """
        flat = _flatten(ids)
        if not flat:
            return None

        adapter = cls.connection()
        where = ConditionsFilter(conditions={cls.primary_key: flat[0] if len(flat) == 1 else flat})
        rows = adapter.select(cls.table_name(), name=f"{cls.__name__} Load", where=where)
        return cls._cast_results(rows, adapter, single=len(flat) == 1)

    @classmethod
    def find_or_raise(cls, *ids: Any) -> Any:
        """Like find, but raises RecordNotFound unless every id is found."""
        flat = _flatten(ids)
        found = cls.find(*flat)
        if found is None:
            raise find_not_found(cls.__name__, cls.primary_key, flat, 0)
        if isinstance(found, list) and len(found) != len(flat):
            raise find_not_found(cls.__name__, cls.primary_key, flat, len(found))
        return found

    @classmethod
    def find_by(cls, **conditions: Any) -> Any:
        """Return the first record matching the equality conditions, or None."""
        adapter = cls.connection()
        rows = adapter.select(
            cls.table_name(),
            name=f"{cls.__name__} Load",
            where=build_filter((), conditions),
            limit=1,
        )
        return cls._cast_results(rows, adapter, single=True)

    @classmethod
    def find_by_or_raise(cls, **conditions: Any) -> Any:
        found = cls.find_by(**conditions)
        if found is None:
            raise find_by_not_found(cls.__name__, conditions)
        return found

    @classmethod
    def find_by_sql(cls, sql: str, *args: Any) -> Any:
        """Return the first record matching a raw WHERE fragment, or None."""
        return cls.where(sql, *args).first()

    @classmethod
    def find_by_sql_or_raise(cls, sql: str, *args: Any) -> Any:
        return cls.where(sql, *args).first_or_raise()

    @classmethod
    def first(cls, n: int | None = None) -> Any:
        return cls.query().first(n)

    @classmethod
    def first_or_raise(cls) -> Any:
        return cls.query().first_or_raise()

    @classmethod
    def last(cls, n: int | None = None) -> Any:
        return cls.query().last(n)

    @classmethod
    def last_or_raise(cls) -> Any:
        return cls.query().last_or_raise()

    @classmethod
    def where(cls, *args: Any, **kwargs: Any) -> QueryProxy:
        """
        Filter records by equality conditions or by a raw SQL fragment.

        Example:
            User.where(active=True).count()
            User.where("active = ? OR email = ?", True, "a@example.org").to_a()
        """
        return cls.query().where(*args, **kwargs)

    @classmethod
    def order_by(cls, **columns: Any) -> QueryProxy:
        return cls.query().order_by(**columns)

    @classmethod
    def limit(cls, n: int | None) -> QueryProxy:
        return cls.query().limit(n)

    @classmethod
    def skip(cls, n: int | None) -> QueryProxy:
        return cls.query().skip(n)

    @classmethod
    def in_batches_of(cls, n: int | None) -> QueryProxy:
        return cls.query().in_batches_of(n)

    @classmethod
    def count(cls) -> int:
        return cls.query().count()

    @classmethod
    def all(cls) -> list[Any]:
        return cls.query().to_a()

    @classmethod
    def each(cls, fn: Callable[[Any], Any] | None = None) -> Iterator[Any] | None:
        return cls.query().each(fn)

    @classmethod
    def transaction(
        cls,
        fn: Callable[..., T] | None = None,
        *args: Any,
        **kwargs: Any,
    ) -> T | AbstractContextManager[Any]:
        """
        Run fn inside a transaction on this model's connection.

        Without fn, returns a context manager instead:

            with User.transaction():
                user.save()
        """
        adapter = cls.connection()
        if fn is None:
            return adapter.atomic()
        return adapter.transaction(fn, *args, **kwargs)
