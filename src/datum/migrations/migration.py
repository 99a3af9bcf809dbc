"""
A single migration: a pair of <id>_<name>.up.sql and <id>_<name>.down.sql
scripts.
"""

from enum import Enum
from pathlib import Path

from pydantic import BaseModel

from datum.core.errors import AsymmetricalMigration

MISSING_NAME = "missing"


class MigrationStatus(str, Enum):
    """Whether a migration is applied."""

    UNKNOWN = "unknown"
    UP = "up"
    DOWN = "down"


class Migration(BaseModel):
    """
    A migration discovered on disk, or recorded in the ledger.

    A ledger entry without scripts on disk is represented with
    `missing=True` and status UP.
    """

    id: str
    name: str
    root: Path | None = None
    status: MigrationStatus = MigrationStatus.UNKNOWN
    missing: bool = False

    @classmethod
    def missing_entry(cls, migration_id: str) -> "Migration":
        return cls(id=migration_id, name=MISSING_NAME, status=MigrationStatus.UP, missing=True)

    @property
    def label(self) -> str:
        return f"{self.id}_{self.name}"

    @property
    def up(self) -> Path | None:
        return self.root / f"{self.label}.up.sql" if self.root is not None else None

    @property
    def down(self) -> Path | None:
        return self.root / f"{self.label}.down.sql" if self.root is not None else None

    @property
    def is_up(self) -> bool:
        return not self.is_down

    @property
    def is_down(self) -> bool:
        return self.status == MigrationStatus.DOWN

    def validate_scripts(self) -> None:
        """
        Raises:
            AsymmetricalMigration: If the up or down script does not exist
        """
        if self.up is None or self.down is None or not self.up.exists() or not self.down.exists():
            raise AsymmetricalMigration(self.id, self.name)

    def up_sql(self) -> str:
        if self.up is None:
            raise FileNotFoundError(f"Migration {self.label} has no scripts on disk")
        return self.up.read_text()

    def down_sql(self) -> str:
        if self.down is None:
            raise FileNotFoundError(f"Migration {self.label} has no scripts on disk")
        return self.down.read_text()
