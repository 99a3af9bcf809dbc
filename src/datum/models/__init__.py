"""
Datum models: the Record base class and its field storage.
"""

from datum.models.fields import DirtyTracker, FieldSlots, FieldValues
from datum.models.record import Record

__all__ = [
    "Record",
    "FieldSlots",
    "FieldValues",
    "DirtyTracker",
]
