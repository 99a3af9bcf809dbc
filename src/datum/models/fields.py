"""
Field storage for model instances.

Each model class gets a FieldSlots mapping, built once from its reflected
columns, that assigns every column a fixed position. Instances store their
values in a plain list indexed by those positions; reads and writes are
dispatched through the mapping. A DirtyTracker records which fields were
assigned a different value since the last load or save.
"""

from collections.abc import Iterable, Iterator
from typing import Any

from datum.core.column import Column


class FieldSlots:
    """Fixed mapping from column name to value slot."""

    def __init__(self, columns: Iterable[Column]) -> None:
        self.columns: tuple[Column, ...] = tuple(columns)
        self._index = {column.name: i for i, column in enumerate(self.columns)}

    def __contains__(self, name: object) -> bool:
        return name in self._index

    def __len__(self) -> int:
        return len(self.columns)

    def __iter__(self) -> Iterator[str]:
        return iter(self._index)

    @property
    def names(self) -> list[str]:
        return list(self._index)

    def slot(self, name: str) -> int:
        """Position of a column's value; raises KeyError for unknown names."""
        return self._index[name]

    def column(self, name: str) -> Column | None:
        index = self._index.get(name)
        return None if index is None else self.columns[index]

    def empty_values(self) -> list[Any]:
        return [None] * len(self.columns)


class DirtyTracker:
    """
    Set of field names modified since the last load or save.

    Names are kept in the order they were first modified.
    """

    def __init__(self) -> None:
        self._dirty: dict[str, None] = {}

    def mark(self, name: str) -> None:
        self._dirty[name] = None

    def is_dirty(self, name: str) -> bool:
        return name in self._dirty

    def reset(self) -> None:
        self._dirty.clear()

    @property
    def names(self) -> list[str]:
        return list(self._dirty)

    def __bool__(self) -> bool:
        return bool(self._dirty)

    def __len__(self) -> int:
        return len(self._dirty)


class FieldValues:
    """The field values of one model instance, with dirty tracking."""

    def __init__(self, slots: FieldSlots) -> None:
        self.slots = slots
        self.values = slots.empty_values()
        self.dirty = DirtyTracker()

    def get(self, name: str) -> Any:
        return self.values[self.slots.slot(name)]

    def set(self, name: str, value: Any) -> bool:
        """
        Assign a field value.

        Assigning the value a field already holds is a no-op and leaves the
        field clean; any other value is stored and marks the field dirty.

        Returns:
            True if the field was modified
        """
        slot = self.slots.slot(name)
        if self.values[slot] == value and type(self.values[slot]) is type(value):
            return False
        self.values[slot] = value
        self.dirty.mark(name)
        return True

    def as_dict(self) -> dict[str, Any]:
        return dict(zip(self.slots.names, self.values))
