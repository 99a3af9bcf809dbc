"""
Lazy, optionally batched iteration over query results.
"""

from collections.abc import Callable, Iterator
from typing import Any, TypeVar

from datum.core.filters import ConditionsFilter, OrderDirection, OrderMap, SqlFilter

T = TypeVar("T")


class RecordEnumerator:
    """
    Iterable over the records matching a query.

    Without a batch size the whole result is loaded with a single select.
    With one, pages of that size are loaded using the number of records
    yielded so far as the OFFSET, until a page comes back empty or the
    overall limit is reached.

    Each iteration starts again from the first page. Rows inserted or
    deleted concurrently may be skipped or seen twice.
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
        self.where = where
        # Offset pagination needs a stable order across pages.
        self.order = order or {model.primary_key: OrderDirection.ASC}
        self.limit = limit
        self.skip = skip
        self.batches = batches

    def _select(self, limit: int | None, offset: int) -> list[Any]:
        adapter = self.model.connection()
        rows = adapter.select(
            self.model.table_name(),
            name=f"{self.model.__name__} Load",
            where=self.where,
            order=self.order,
            limit=limit,
            skip=offset or None,
        )
        return self.model._cast_results(rows, adapter)

    def __iter__(self) -> Iterator[Any]:
        start = self.skip or 0

        if not self.batches:
            yield from self._select(self.limit, start)
            return

        cursor = 0
        while True:
            page_size = self.batches
            if self.limit is not None:
                remaining = self.limit - cursor
                if remaining <= 0:
                    return
                page_size = min(page_size, remaining)

            records = self._select(page_size, start + cursor)
            if not records:
                return

            for record in records:
                cursor += 1
                yield record

    def map(self, fn: Callable[[Any], T]) -> list[T]:
        return [fn(record) for record in self]

    def to_list(self) -> list[Any]:
        return list(self)
