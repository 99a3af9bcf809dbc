"""
Datum migrations.
"""

from datum.migrations.migration import Migration, MigrationStatus
from datum.migrations.migrator import Migrator

__all__ = [
    "Migration",
    "MigrationStatus",
    "Migrator",
]
