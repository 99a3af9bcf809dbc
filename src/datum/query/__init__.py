"""
Datum query builder.
"""

from datum.query.enumerator import RecordEnumerator
from datum.query.proxy import QueryProxy

__all__ = [
    "QueryProxy",
    "RecordEnumerator",
]
