"""
Chainable query builder.

A QueryProxy accumulates a filter, an ordering, a limit, an offset and a
batch size. Builder methods return a new proxy; terminal methods (first,
last, count, update, delete, to_a) translate the criteria into a single
adapter call.

This is not a SQL expression compiler: joins, subqueries and composite
boolean trees are expressed with a raw SQL fragment instead.
"""

from collections.abc import Callable, Iterator
from typing import Any, TypeVar

from datum.core.errors import (
    InvalidArgumentError,
    InvalidStatement,
    RecordNotFound,
    find_by_not_found,
    find_by_sql_not_found,
    generic_not_found,
)
from datum.core.filters import (
    ConditionsFilter,
    OrderDirection,
    OrderMap,
    SqlFilter,
    build_filter,
    normalize_order,
)
from datum.query.enumerator import RecordEnumerator

T = TypeVar("T")

_UNSET: Any = object()


def _validate_count(value: Any, method: str) -> int | None:
    if value is None:
        return None
    if isinstance(value, bool) or not isinstance(value, int) or value < 0:
        raise InvalidArgumentError(
            f"Invalid value for {method}; expected a non-negative integer",
            details={"value": repr(value)},
        )
    return value


def _reverse(order: OrderMap) -> OrderMap:
    return {
        column: OrderDirection.ASC if direction == OrderDirection.DESC else OrderDirection.DESC
        for column, direction in order.items()
    }


class QueryProxy:
    """
    Query criteria for a model class.

    Example:
        User.where(active=True).order_by(created_at="desc").limit(10).to_a()
    """

    def __init__(
        self,
        model: Any,
        *,
        where: SqlFilter | ConditionsFilter | None = None,
        order: OrderMap | None = None,
        limit: int | None = None,
        skip: int | None = None,
        batches: int | None = None,
    ) -> None:
        self.model = model
        self._where = where
        self._order = order
        self._limit = limit
        self._skip = skip
        self._batches = batches

    def _clone(
        self,
        *,
        where: Any = _UNSET,
        order: Any = _UNSET,
        limit: Any = _UNSET,
        skip: Any = _UNSET,
        batches: Any = _UNSET,
    ) -> "QueryProxy":
        return QueryProxy(
            self.model,
            where=self._where if where is _UNSET else where,
            order=self._order if order is _UNSET else order,
            limit=self._limit if limit is _UNSET else limit,
            skip=self._skip if skip is _UNSET else skip,
            batches=self._batches if batches is _UNSET else batches,
        )

    # =========================================================================
    # CRITERIA
    # =========================================================================

    @property
    def filter(self) -> SqlFilter | ConditionsFilter | None:
        return self._where

    @property
    def ordering(self) -> OrderMap | None:
        return self._order

    @property
    def limit_value(self) -> int | None:
        return self._limit

    @property
    def skip_value(self) -> int | None:
        return self._skip

    @property
    def batch_size(self) -> int | None:
        return self._batches

    def where(self, *args: Any, **kwargs: Any) -> "QueryProxy":
        """
        Filter by a raw SQL fragment and its bind arguments, or by equality
        conditions. Replaces any previous filter.

        Raises:
            InvalidArgumentError: If both positional and keyword filters are given
        """
        return self._clone(where=build_filter(args, kwargs))

    def order_by(self, **columns: Any) -> "QueryProxy":
        """Order by columns, each given "asc" or "desc"."""
        return self._clone(order=normalize_order(columns))

    def limit(self, n: int | None) -> "QueryProxy":
        return self._clone(limit=_validate_count(n, "limit"))

    def skip(self, n: int | None) -> "QueryProxy":
        """Skip the first n rows (OFFSET)."""
        return self._clone(skip=_validate_count(n, "skip"))

    def in_batches_of(self, n: int | None) -> "QueryProxy":
        """Load records n at a time when iterating."""
        n = _validate_count(n, "in_batches_of")
        if n == 0:
            raise InvalidArgumentError("Invalid value for in_batches_of; batch size must be positive")
        return self._clone(batches=n)

    # =========================================================================
    # TERMINAL OPERATIONS
    # =========================================================================

    def _select(self, *, order: OrderMap | None, limit: int | None) -> list[Any]:
        adapter = self.model.connection()
        rows = adapter.select(
            self.model.table_name(),
            name=f"{self.model.__name__} Load",
            where=self._where,
            order=order,
            limit=limit,
            skip=self._skip,
        )
        return self.model._cast_results(rows, adapter)

    def _not_found(self) -> RecordNotFound:
        name = self.model.__name__
        if self._where is None:
            return generic_not_found(name)
        if isinstance(self._where, SqlFilter):
            return find_by_sql_not_found(name, self._where.sql, self._where.args)
        return find_by_not_found(name, self._where.conditions)

    def _ensure_unbounded(self, method: str) -> None:
        if self._limit is not None:
            raise InvalidArgumentError(f"Cannot use {method} with limit")
        if self._order:
            raise InvalidArgumentError(f"Cannot use {method} with order_by")
        if self._batches is not None:
            raise InvalidArgumentError(f"Cannot use {method} with in_batches_of")

    def first(self, n: int | None = None) -> Any:
        """
        Return the first record, or the first n records.

        Without n, returns a single instance or None. With n, always returns
        a list, even of length one.
        """
        n = _validate_count(n, "first")
        if n == 0:
            return []
        records = self._select(order=self._order, limit=n or 1)
        if n is None:
            return records[0] if records else None
        return records

    def first_or_raise(self) -> Any:
        record = self.first()
        if record is None:
            raise self._not_found()
        return record

    def last(self, n: int | None = None) -> Any:
        """
        Return the last record, or the last n records.

        Records are fetched in reverse order (descending primary key unless an
        ordering was set) and handed back in forward order.
        """
        n = _validate_count(n, "last")
        if n == 0:
            return []
        order = _reverse(self._order) if self._order else {self.model.primary_key: OrderDirection.DESC}
        records = self._select(order=order, limit=n or 1)
        records.reverse()
        if n is None:
            return records[-1] if records else None
        return records

    def last_or_raise(self) -> Any:
        record = self.last()
        if record is None:
            raise self._not_found()
        return record

    def count(self) -> int:
        self._ensure_unbounded("count")
        return self.model.connection().count(
            self.model.table_name(),
            name=f"{self.model.__name__} Count",
            where=self._where,
        )

    def update(self, **values: Any) -> int:
        """
        Update every matching row and return the number affected.

        updated_at is stamped with the current time when the model has
        timestamp columns and no value was given. Names that are not columns
        are dropped.
        """
        from datum.models.lifecycle import utc_now

        self._ensure_unbounded("update")
        if not values:
            raise InvalidStatement("update requires at least one value")

        if self.model.has_timestamp_columns() and "updated_at" not in values:
            values["updated_at"] = utc_now()

        adapter = self.model.connection()
        columns = {column.name: column for column in self.model.columns()}
        changes = {
            name: adapter.cast_to_storage(value, columns[name])
            for name, value in values.items()
            if name in columns
        }
        return adapter.update(
            self.model.table_name(),
            name=f"{self.model.__name__} Update",
            where=self._where,
            values=changes,
        )

    def delete(self) -> int:
        """Delete every matching row and return the number affected."""
        self._ensure_unbounded("delete")
        return self.model.connection().delete(
            self.model.table_name(),
            name=f"{self.model.__name__} Delete",
            where=self._where,
        )

    def to_a(self) -> list[Any]:
        """Load every matching record with a single select."""
        return self._select(order=self._order, limit=self._limit)

    all = to_a

    def length(self) -> int:
        return len(self.to_a())

    def to_enum(self) -> RecordEnumerator:
        return RecordEnumerator(
            self.model,
            where=self._where,
            order=self._order,
            limit=self._limit,
            skip=self._skip,
            batches=self._batches,
        )

    def each(self, fn: Callable[[Any], Any] | None = None) -> Iterator[Any] | None:
        """Call fn for every matching record; without fn, return an iterator."""
        if fn is None:
            return iter(self.to_enum())
        for record in self.to_enum():
            fn(record)
        return None

    def map(self, fn: Callable[[Any], T]) -> list[T]:
        return self.to_enum().map(fn)

    def __iter__(self) -> Iterator[Any]:
        return iter(self.to_enum())

    def __len__(self) -> int:
        return self.length()

    def __repr__(self) -> str:
        parts = [f"model={self.model.__name__}"]
        for label, value in (
            ("where", self._where),
            ("order", self._order),
            ("limit", self._limit),
            ("skip", self._skip),
            ("batches", self._batches),
        ):
            if value is not None:
                parts.append(f"{label}={value!r}")
        return f"<QueryProxy {' '.join(parts)}>"
