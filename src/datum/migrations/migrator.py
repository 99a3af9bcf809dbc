"""
Migration discovery, reconciliation and application.

Migrations live in a directory as <id>_<name>.up.sql / <id>_<name>.down.sql
pairs. Their status is reconciled against the ledger table maintained by the
adapter; pending migrations are applied, and applied ones rolled back, inside
a single transaction per operation.
"""

import re
from pathlib import Path
from typing import Any

from datum.adapters.base import Adapter
from datum.core.errors import InvalidArgumentError, MigrationDirectoryNotSet
from datum.logging import get_logger, with_log_context
from datum.migrations.migration import Migration, MigrationStatus
from datum.settings import get_settings

logger = get_logger("datum.migrations")

PATTERN = re.compile(r"(\d+)_([^.]+)\.(up|down)\.sql$", re.IGNORECASE)


def _sort_key(migration: Migration) -> tuple[int, str]:
    # Numeric ids sort numerically so that "10" follows "9".
    return (int(migration.id) if migration.id.isdigit() else -1, migration.id)


class Migrator:
    """
    Applies and reverts migrations on a model hierarchy's connection.

    Example:
        migrator = Migrator("db/migrations")
        migrator.move_forward()
    """

    def __init__(self, path: str | Path | None = None, model: Any = None) -> None:
        """
        Args:
            path: Migrations directory; defaults to settings.migrations_path
            model: Model class whose connection is migrated; defaults to Record
        """
        self._path = Path(path) if path is not None else None
        self._model = model

    @property
    def root(self) -> Path:
        """
        Raises:
            MigrationDirectoryNotSet: If no path was given or configured
        """
        if self._path is None:
            configured = get_settings().migrations_path
            if configured is None:
                raise MigrationDirectoryNotSet()
            self._path = Path(configured)
        return self._path

    @property
    def connection(self) -> Adapter:
        model = self._model
        if model is None:
            from datum.models.record import Record

            model = Record
        return model.connection()

    def enumerate_migrations(self) -> list[Migration]:
        """
        Discover migrations on disk.

        When several files share an id, the first one found wins.

        Raises:
            AsymmetricalMigration: If a migration lacks its up or down script
        """
        migrations: dict[str, Migration] = {}
        for path in sorted(self.root.glob("*.sql")):
            match = PATTERN.search(path.name)
            if match is None:
                continue
            migration_id, name = match.group(1), match.group(2)
            if migration_id in migrations:
                continue
            migration = Migration(id=migration_id, name=name, root=self.root)
            migration.validate_scripts()
            migrations[migration_id] = migration
        return list(migrations.values())

    def migration_status(self) -> list[Migration]:
        """
        Reconcile migrations on disk with the ledger.

        Every migration on disk is marked up or down; ledger ids with no
        scripts on disk are added as missing entries. The result is sorted by id.
        """
        migrations = self.enumerate_migrations()

        adapter = self.connection
        adapter.prepare_migration_log()
        applied = adapter.load_migration_log()
        applied_ids = set(applied)

        for migration in migrations:
            migration.status = MigrationStatus.UP if migration.id in applied_ids else MigrationStatus.DOWN

        known = {migration.id for migration in migrations}
        for migration_id in dict.fromkeys(applied):
            if migration_id not in known:
                migrations.append(Migration.missing_entry(migration_id))

        return sorted(migrations, key=_sort_key)

    def pending(self) -> list[Migration]:
        return [migration for migration in self.migration_status() if migration.is_down]

    def move_forward(self) -> list[Migration]:
        """
        Apply every pending migration, in id order, in one transaction.

        Returns:
            The migrations applied
        """
        to_apply = self.pending()
        if not to_apply:
            logger.info("No pending migrations")
            return []

        adapter = self.connection
        logger.info(f"About to apply {len(to_apply)} migration{'s' if len(to_apply) > 1 else ''}")

        def apply() -> None:
            for migration in to_apply:
                with with_log_context(component="migrator", migration=migration.label):
                    sql = migration.up_sql()
                    logger.info(f"Apply {migration.label}", migration=migration.id)
                    logger.debug(sql, migration=migration.id)
                    adapter.execute_ddl(sql)
                    adapter.register_migration(migration.id)

        adapter.transaction(apply)

        for migration in to_apply:
            migration.status = MigrationStatus.UP
        return to_apply

    def rollback(self, steps: int = 1) -> list[Migration]:
        """
        Revert the most recently applied migrations in one transaction.

        Missing entries have no down script and are never reverted. Each
        reverted migration is removed from the ledger.

        Returns:
            The migrations reverted, most recent first

        Raises:
            InvalidArgumentError: If steps is not a non-negative integer
        """
        if isinstance(steps, bool) or not isinstance(steps, int) or steps < 0:
            raise InvalidArgumentError(
                "Invalid value for rollback; expected a non-negative integer",
                details={"value": repr(steps)},
            )

        applied = [m for m in self.migration_status() if m.is_up and not m.missing]
        to_revert = list(reversed(applied))[:steps]
        if not to_revert:
            logger.info("No migrations to revert")
            return []

        adapter = self.connection
        logger.info(f"About to revert {len(to_revert)} migration{'s' if len(to_revert) > 1 else ''}")

        def revert() -> None:
            for migration in to_revert:
                with with_log_context(component="migrator", migration=migration.label):
                    sql = migration.down_sql()
                    logger.info(f"Revert {migration.label}", migration=migration.id)
                    logger.debug(sql, migration=migration.id)
                    adapter.execute_ddl(sql)
                    adapter.unregister_migration(migration.id)

        adapter.transaction(revert)

        for migration in to_revert:
            migration.status = MigrationStatus.DOWN
        return to_revert
