"""
Column cache for memoizing table reflection.
"""

from collections.abc import Callable

from datum.core.column import Column


class ColumnCache:
    """
    Cache of reflected columns keyed by model class.

    Entries live for the lifetime of the process unless explicitly
    invalidated; a schema change requires a cache clear to be picked up.
    """

    def __init__(self) -> None:
        self._cache: dict[type, tuple[Column, ...]] = {}

    def get(self, key: type) -> tuple[Column, ...] | None:
        """Get the cached columns for a model class, or None."""
        return self._cache.get(key)

    def set(self, key: type, columns: list[Column] | tuple[Column, ...]) -> None:
        self._cache[key] = tuple(columns)

    def get_or_build(
        self,
        key: type,
        builder: Callable[[], list[Column]],
    ) -> tuple[Column, ...]:
        """
        Get cached columns or build and cache them.

        Args:
            key: Model class
            builder: Function reflecting the columns if not cached
        """
        cached = self.get(key)
        if cached is not None:
            return cached

        columns = tuple(builder())
        self.set(key, columns)
        return columns

    def invalidate(self, key: type) -> None:
        self._cache.pop(key, None)

    def invalidate_all(self) -> None:
        self._cache.clear()

    def __contains__(self, key: type) -> bool:
        return key in self._cache

    def __len__(self) -> int:
        """Number of cached entries."""
        return len(self._cache)


column_cache = ColumnCache()
