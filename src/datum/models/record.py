"""
Record: base class for all models.

A model maps to a table whose name is derived from the model's hierarchy
root (the class directly inheriting Record), unless `__tablename__` is set:

    class User(Record):
        pass

    Record.establish_connection("sqlite:///app.db")
    user = User(email="a@example.org", name="A")
    user.save()

Columns are reflected from the live table the first time they are needed and
memoized per class until `clear_column_cache()` is called.
"""

from typing import Any, ClassVar

from datum.adapters.base import Adapter, Row
from datum.connection import registry
from datum.core.column import Column
from datum.core.dsn import ConnectionConfig
from datum.core.errors import InvalidHierarchyError
from datum.core.inflector import pluralize, snakefy
from datum.models.fields import FieldSlots, FieldValues
from datum.models.lifecycle import TIMESTAMP_COLUMNS, Lifecycle
from datum.models.queries import Queries
from datum.utils.cache import column_cache


class Record(Queries, Lifecycle):
    """Base class for models."""

    __tablename__: ClassVar[str | None] = None

    primary_key: ClassVar[str] = "id"

    _field_slots: ClassVar[FieldSlots | None] = None

    def __init__(self, **fields: Any) -> None:
        """
        Create a new, unsaved instance.

        Keyword arguments naming a column are assigned to that field; other
        names are ignored.
        """
        object.__setattr__(self, "_fields", FieldValues(type(self).field_slots()))
        object.__setattr__(self, "_persisted", False)
        for name, value in fields.items():
            if name in self._fields.slots:
                self._fields.set(name, value)

    # =========================================================================
    # FIELD ACCESS
    # =========================================================================

    def __getattr__(self, name: str) -> Any:
        # Only reached when regular attribute lookup fails.
        if not name.startswith("_"):
            fields = self.__dict__.get("_fields")
            if fields is not None and name in fields.slots:
                return fields.get(name)
        raise AttributeError(f"'{type(self).__name__}' object has no attribute '{name}'")

    def __setattr__(self, name: str, value: Any) -> None:
        fields = self.__dict__.get("_fields")
        if fields is not None and name in fields.slots:
            fields.set(name, value)
        else:
            object.__setattr__(self, name, value)

    def read_field(self, name: str) -> Any:
        """Read a field by column name, even when a method shadows it."""
        return self._fields.get(name)

    def write_field(self, name: str, value: Any) -> bool:
        """Assign a field by column name; returns whether it changed."""
        return self._fields.set(name, value)

    @property
    def primary_key_value(self) -> Any:
        fields = self.__dict__.get("_fields")
        if fields is None or type(self).primary_key not in fields.slots:
            return None
        return fields.get(type(self).primary_key)

    @property
    def changed_fields(self) -> list[str]:
        """Names of fields modified since the last load or save."""
        return self._fields.dirty.names

    def field_changed(self, name: str) -> bool:
        return self._fields.dirty.is_dirty(name)

    def reset_changed_fields(self) -> None:
        self._fields.dirty.reset()

    def _bulk_set_fields(self, data: Row, adapter: Adapter) -> None:
        # Keys that are not columns of this model are skipped.
        slots = self._fields.slots
        for name, value in data.items():
            column = slots.column(str(name))
            if column is None:
                continue
            self._fields.set(column.name, adapter.cast_to_model(value, column))

    def to_dict(self) -> dict[str, Any]:
        return self._fields.as_dict()

    def __repr__(self) -> str:
        values = ", ".join(f"{name}: {value!r}" for name, value in self.to_dict().items())
        return f"<{type(self).__name__} {values}>"

    def __eq__(self, other: object) -> bool:
        if self is other:
            return True
        if type(self) is not type(other) or not isinstance(other, Record):
            return NotImplemented
        key = self.primary_key_value
        return key is not None and key == other.primary_key_value

    def __hash__(self) -> int:
        key = self.primary_key_value
        if key is None:
            return id(self)
        return hash((type(self), key))

    # =========================================================================
    # CLASS-LEVEL MAPPING
    # =========================================================================

    @classmethod
    def hierarchy_root(cls) -> type["Record"]:
        """
        Return the class directly inheriting Record in this class's MRO.

        Raises:
            InvalidHierarchyError: If the class does not descend from Record
        """
        if cls is Record:
            return cls
        for klass in cls.__mro__:
            if Record in klass.__bases__:
                return klass
        raise InvalidHierarchyError(
            f"Could not find a direct hierarchy between {cls.__name__} and Record",
            details={"model": cls.__name__},
        )

    @classmethod
    def table_name(cls) -> str:
        if cls.__tablename__:
            return cls.__tablename__
        return snakefy(pluralize(cls.hierarchy_root().__name__))

    @classmethod
    def columns(cls) -> tuple[Column, ...]:
        """Reflected columns of this model's table, memoized per class."""
        return column_cache.get_or_build(cls, lambda: cls.connection().columns_of(cls.table_name()))

    @classmethod
    def field_slots(cls) -> FieldSlots:
        slots = cls.__dict__.get("_field_slots")
        if slots is None:
            slots = FieldSlots(cls.columns())
            cls._field_slots = slots
        return slots

    @classmethod
    def clear_column_cache(cls) -> None:
        """Forget reflected columns so the next access reflects the table again."""
        column_cache.invalidate(cls)
        cls._field_slots = None

    @classmethod
    def has_timestamp_columns(cls) -> bool:
        """Whether the table has both created_at and updated_at columns."""
        names = {column.name for column in cls.columns()}
        return all(name in names for name in TIMESTAMP_COLUMNS)

    @classmethod
    def _synthesize(cls, row: Row, adapter: Adapter) -> "Record":
        """Build a persisted, clean instance from a raw database row."""
        record = cls()
        record._bulk_set_fields(row, adapter)
        record.reset_changed_fields()
        record._persisted = True
        return record

    # =========================================================================
    # CONNECTIONS
    # =========================================================================

    @classmethod
    def establish_connection(cls, dsn: str | ConnectionConfig | None = None) -> bool:
        """
        Register the connection used by this class and its subclasses.

        Without a DSN, the configured settings.database_url is used.
        """
        registry.establish(cls, dsn)
        return True

    @classmethod
    def connection(cls) -> Adapter:
        """
        The adapter for this model in the current connection scope.

        Raises:
            ConnectionNotEstablished: If no configuration applies to this class
        """
        cls.hierarchy_root()
        return registry.connection(cls)

    @classmethod
    def connection_established(cls) -> bool:
        return registry.is_established(cls)

    @classmethod
    def disconnect_all(cls) -> None:
        """Forget every connection configuration and close open adapters."""
        registry.disconnect_all()
