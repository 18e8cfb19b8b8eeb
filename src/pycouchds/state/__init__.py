"""Record store layer.

:class:`RecordStore` is the interface the data source calls into;
:class:`MemoryRecordStore` is a small in-memory implementation of it.
"""

from pycouchds.state.protocol import RecordStore
from pycouchds.state.store import MemoryRecordStore, QueryStatus, RecordStatus

__all__ = ["MemoryRecordStore", "QueryStatus", "RecordStatus", "RecordStore"]
