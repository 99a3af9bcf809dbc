"""
Datum utilities.
"""

from datum.utils.cache import ColumnCache, column_cache

__all__ = [
    "ColumnCache",
    "column_cache",
]
