"""
Persistence lifecycle for model instances: save, update and delete.
"""

from datetime import datetime, timezone
from typing import TYPE_CHECKING, Any

from datum.core.errors import InvalidArgumentError
from datum.core.filters import ConditionsFilter

if TYPE_CHECKING:
    from datum.adapters.base import Adapter

TIMESTAMP_COLUMNS = ("created_at", "updated_at")


def utc_now() -> datetime:
    """Current UTC time at the resolution stored by adapters."""
    return datetime.now(timezone.utc).replace(microsecond=0)


class Lifecycle:
    """Mixin implementing insert-or-update persistence for Record."""

    @property
    def persisted(self) -> bool:
        """Whether this instance was loaded from, or already written to, the database."""
        return self._persisted or self.primary_key_value is not None

    def _changeset(self, adapter: "Adapter") -> dict[str, Any]:
        # Only dirty fields that map to a column are written.
        slots = self._fields.slots
        changes: dict[str, Any] = {}
        for name in self.changed_fields:
            column = slots.column(name)
            if column is None:
                continue
            changes[name] = adapter.cast_to_storage(self.read_field(name), column)
        return changes

    def _key_filter(self) -> ConditionsFilter:
        return ConditionsFilter(conditions={type(self).primary_key: self.primary_key_value})

    def save(self) -> None:
        """
        Insert or update this record.

        A persisted record is updated with its changed fields only; a new one
        is inserted and receives its generated primary key. Timestamp columns
        are maintained when the model has both created_at and updated_at.
        """
        model = type(self)
        adapter = model.connection()
        timestamps = model.has_timestamp_columns()

        if self.persisted:
            if timestamps:
                self.write_field("updated_at", utc_now())

            adapter.update(
                model.table_name(),
                where=self._key_filter(),
                values=self._changeset(adapter),
                name=f"{model.__name__} Update",
            )
        else:
            if timestamps:
                now = utc_now()
                for name in TIMESTAMP_COLUMNS:
                    if self.read_field(name) is None:
                        self.write_field(name, now)

            changes = self._changeset(adapter)
            returning = list(changes)
            if timestamps:
                returning.extend(TIMESTAMP_COLUMNS)
            returning.append(model.primary_key)

            generated = adapter.insert(
                model.table_name(),
                changes,
                list(dict.fromkeys(returning)),
                primary_key=model.primary_key,
                name=f"{model.__name__} Create",
            )
            self._bulk_set_fields(generated, adapter)
            self._persisted = True

        self.reset_changed_fields()

    def update(self, **values: Any) -> None:
        """
        Assign the given field values, then save.

        Raises:
            InvalidArgumentError: If a name is not a column of this model
        """
        slots = self._fields.slots
        for name, value in values.items():
            if name not in slots:
                raise InvalidArgumentError(
                    f"Unknown field '{name}' for {type(self).__name__}",
                    details={"field": name},
                )
            self.write_field(name, value)
        self.save()

    def delete(self) -> None:
        """
        Delete this record from the database.

        The instance is detached: its primary key is cleared and it is no
        longer persisted, while its other field values are kept.
        """
        model = type(self)
        if self.primary_key_value is not None:
            model.connection().delete(
                model.table_name(),
                where=self._key_filter(),
                name=f"{model.__name__} Delete",
            )

        self._persisted = False
        self.write_field(model.primary_key, None)
        self.reset_changed_fields()
